"""Render templates and write generated output.

Templates are ``*.j2`` files in one directory, indexed by their name
without the ``.j2`` suffix (``server.ts.j2`` -> ``server.ts``). Sources are
read once by ``load_templates``; rendering never touches the filesystem.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import jinja2
import structlog

from .errors import generator_error
from .naming import camel_case, pascal_case, snake_case

logger = structlog.get_logger(__name__)

TEMPLATE_SUFFIX = ".j2"

# Generator error codes owned by the template engine
ERR_TEMPLATE_DIR = 2
ERR_TEMPLATE_NOT_FOUND = 3
ERR_RENDER = 4
ERR_WRITE = 5


class TemplateEngine:
    """Index, render and write Jinja2 templates."""

    def __init__(self) -> None:
        self._sources: dict[str, str] = {}
        self.env = jinja2.Environment(
            loader=jinja2.DictLoader(self._sources),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=jinja2.StrictUndefined,
            autoescape=False,
        )
        self.env.filters["snake_case"] = snake_case
        self.env.filters["pascal_case"] = pascal_case
        self.env.filters["camel_case"] = camel_case

    @property
    def template_names(self) -> list[str]:
        return sorted(self._sources)

    def load_templates(self, directory: Path | str) -> list[str]:
        """Index every template file in ``directory`` by base name."""
        template_dir = Path(directory)
        if not template_dir.is_dir():
            raise generator_error(
                ERR_TEMPLATE_DIR,
                "Template directory not found",
                {"path": str(template_dir)},
            )
        try:
            sources = {
                path.name[: -len(TEMPLATE_SUFFIX)]: path.read_text(encoding="utf-8")
                for path in sorted(template_dir.iterdir())
                if path.suffix == TEMPLATE_SUFFIX and path.is_file()
            }
        except (OSError, UnicodeDecodeError) as exc:
            raise generator_error(
                ERR_TEMPLATE_DIR,
                "Failed to read template directory",
                {"path": str(template_dir)},
                exc,
            ) from exc

        self._sources.clear()
        self._sources.update(sources)
        logger.debug("Loaded templates.", directory=str(template_dir), templates=self.template_names)
        return self.template_names

    def render(self, name: str, context: Mapping[str, Any]) -> str:
        """Render a loaded template against ``context``."""
        if name not in self._sources:
            raise generator_error(
                ERR_TEMPLATE_NOT_FOUND,
                f"Template not found: {name}",
                {"template": name, "available": self.template_names},
            )
        try:
            return self.env.get_template(name).render(**context)
        except Exception as exc:
            raise generator_error(
                ERR_RENDER,
                f"Failed to render template: {name}",
                {"template": name},
                exc,
            ) from exc

    def write_file(self, path: Path | str, content: str) -> None:
        """Write ``content`` to ``path`` exactly, creating parent directories."""
        output_path = Path(path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as exc:
            raise generator_error(
                ERR_WRITE,
                "Failed to write generated file",
                {"path": str(output_path)},
                exc,
            ) from exc
        logger.info("Generated file.", path=str(output_path), bytes=len(content.encode("utf-8")))
