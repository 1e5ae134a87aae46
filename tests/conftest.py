"""Shared fixtures: sample schema, templates and generator config.

The widget schema in fixtures/schema.ts is the reference source: five
canonical operations, one WidgetType with three fields (one repeated) and a
single Streaming capability. Variants are built by string replacement so
every test starts from a known-valid source.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable

import pytest

from axe_handle.config import GeneratorConfig

FIXTURES = Path(__file__).parent / "fixtures"
SCHEMA_PATH = FIXTURES / "schema.ts"
TEMPLATE_DIR = FIXTURES / "templates"

WIDGET_SCHEMA = SCHEMA_PATH.read_text(encoding="utf-8")

PROJECT = {
    "projectName": "widget-server",
    "version": "0.1.0",
    "description": "Widget MCP server",
    "author": "Widget Team",
    "license": "MIT",
}


@pytest.fixture
def widget_source() -> str:
    return WIDGET_SCHEMA


@pytest.fixture
def write_schema(tmp_path: Path) -> Callable[[str], Path]:
    """Write schema text to a file in tmp_path and return its path."""

    def _write(text: str, name: str = "schema.ts") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A private copy of the fixture templates."""
    target = tmp_path / "templates"
    shutil.copytree(TEMPLATE_DIR, target)
    return target


@pytest.fixture
def make_config(tmp_path: Path, template_dir: Path) -> Callable[..., GeneratorConfig]:
    """Build a GeneratorConfig rooted in tmp_path; keyword args override."""

    def _make(**overrides) -> GeneratorConfig:
        schema = tmp_path / "schema.ts"
        if not schema.exists():
            schema.write_text(WIDGET_SCHEMA, encoding="utf-8")
        data = {
            "schemaPath": schema,
            "outputDir": tmp_path / "out",
            "templateDir": template_dir,
            "framework": "express",
            "config": dict(PROJECT),
            "outputs": {"server.ts": "server.ts", "handler.ts": "handlers/{category}.ts"},
        }
        data.update(overrides)
        return GeneratorConfig.model_validate(data)

    return _make


@pytest.fixture
def config(make_config) -> GeneratorConfig:
    return make_config()
