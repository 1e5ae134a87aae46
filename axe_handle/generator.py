"""Generation pipeline: initialize -> parse -> build context -> render -> write.

Each step must run in order on a fresh ServerGenerator; calling a step
out of order raises AXE-G006 naming the state it expected.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import structlog
from pydantic import ValidationError

from .cache import SpecificationCache
from .codegen import ERR_WRITE, TemplateEngine
from .config import GeneratorConfig
from .context_builder import build_context
from .errors import generator_error, with_error_handling
from .models import Specification
from .schema_parser import SchemaParser

logger = structlog.get_logger(__name__)

# Generator error codes owned by the orchestrator
ERR_CONFIG = 1
ERR_STATE = 6

CATEGORY_PLACEHOLDER = "{category}"


class GeneratorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    SCHEMA_PARSED = "schema_parsed"
    CONTEXT_BUILT = "context_built"
    RENDERED = "rendered"
    WRITTEN = "written"


def _nearest_existing(path: Path) -> Path:
    current = path
    while not current.exists() and current.parent != current:
        current = current.parent
    return current


def _is_writable_dir(path: Path) -> bool:
    if path.exists():
        return path.is_dir() and os.access(path, os.W_OK)
    ancestor = _nearest_existing(path)
    return ancestor.is_dir() and os.access(ancestor, os.W_OK)


def validate_config(config: GeneratorConfig | Mapping[str, Any]) -> GeneratorConfig:
    """Validate caller config and the paths it names."""
    if not isinstance(config, GeneratorConfig):
        try:
            config = GeneratorConfig.model_validate(config)
        except ValidationError as exc:
            raise generator_error(ERR_CONFIG, "Invalid generator configuration", None, exc) from exc

    if not config.schema_path.is_file():
        raise generator_error(ERR_CONFIG, "Schema file not found", {"path": str(config.schema_path)})
    if not _is_writable_dir(config.output_dir):
        raise generator_error(ERR_CONFIG, "Output directory is not writable", {"path": str(config.output_dir)})
    return config


class ServerGenerator:
    """Drive one generation run through its strictly ordered steps."""

    def __init__(self, engine: TemplateEngine | None = None) -> None:
        self.engine = engine or TemplateEngine()
        self.state = GeneratorState.UNINITIALIZED
        self.config: GeneratorConfig | None = None
        self.spec: Specification | None = None
        self.context: dict[str, Any] | None = None
        self.rendered: dict[Path, str] = {}
        self.written: list[Path] = []

    def _require(self, expected: GeneratorState) -> None:
        if self.state != expected:
            raise generator_error(
                ERR_STATE,
                f"Generator step called out of order: expected state {expected.value}",
                {"expected": expected.value, "actual": self.state.value},
            )

    @with_error_handling(generator_error)
    def initialize(self, config: GeneratorConfig | Mapping[str, Any]) -> None:
        self._require(GeneratorState.UNINITIALIZED)
        self.config = validate_config(config)
        self.engine.load_templates(self.config.template_dir)
        self.state = GeneratorState.INITIALIZED
        logger.info(
            "Generator initialized.",
            project=self.config.project.project_name,
            framework=self.config.framework,
        )

    @with_error_handling(generator_error)
    def parse_schema(self) -> Specification:
        self._require(GeneratorState.INITIALIZED)
        cache = None
        if self.config.cache_path is not None:
            cache = SpecificationCache(self.config.cache_path, self.config.schema_path)
        self.spec = SchemaParser(self.config.schema_path, cache=cache).parse_specification()
        self.state = GeneratorState.SCHEMA_PARSED
        return self.spec

    @with_error_handling(generator_error)
    def prepare_context(self, spec: Specification | None = None) -> dict[str, Any]:
        self._require(GeneratorState.SCHEMA_PARSED)
        self.context = build_context(spec if spec is not None else self.spec, self.config)
        self.state = GeneratorState.CONTEXT_BUILT
        return self.context

    def _outputs(self) -> dict[str, str]:
        if self.config.outputs:
            return dict(self.config.outputs)
        return {name: name for name in self.engine.template_names}

    @with_error_handling(generator_error)
    def render(self) -> dict[Path, str]:
        """Render every configured output in memory."""
        self._require(GeneratorState.CONTEXT_BUILT)

        rendered: dict[Path, str] = {}
        for name, relative in self._outputs().items():
            if CATEGORY_PLACEHOLDER not in relative:
                rendered[self.config.output_dir / relative] = self.engine.render(name, self.context)
                continue
            for category in self.context["categories"]:
                category_context = {
                    **self.context,
                    "category": category,
                    "category_operations": [
                        op for op in self.context["operations"] if op["category"] == category
                    ],
                }
                path = self.config.output_dir / relative.replace(CATEGORY_PLACEHOLDER, category)
                rendered[path] = self.engine.render(name, category_context)

        self.rendered = rendered
        self.state = GeneratorState.RENDERED
        return rendered

    @with_error_handling(generator_error)
    def write(self) -> list[Path]:
        """Write rendered files; the first failure aborts the run."""
        self._require(GeneratorState.RENDERED)

        try:
            self.config.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise generator_error(
                ERR_WRITE, "Failed to create output directory", {"path": str(self.config.output_dir)}, exc,
            ) from exc

        for path, content in self.rendered.items():
            self.engine.write_file(path, content)
            self.written.append(path)

        self.state = GeneratorState.WRITTEN
        logger.info("Generation complete.", output_dir=str(self.config.output_dir), files=len(self.written))
        return list(self.written)

    def generate(self) -> list[Path]:
        """Render every output template and write it to the output directory."""
        self.render()
        return self.write()

    def run(self, config: GeneratorConfig | Mapping[str, Any]) -> list[Path]:
        """Run the whole pipeline from a fresh generator."""
        self.initialize(config)
        self.parse_schema()
        self.prepare_context()
        return self.generate()


def generate_server(config: GeneratorConfig | Mapping[str, Any]) -> list[Path]:
    """Generate a server from ``config`` and return the written paths."""
    return ServerGenerator().run(config)
