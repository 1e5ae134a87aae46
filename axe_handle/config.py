"""Generation config supplied by the caller."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Target server framework -> language of the generated sources
FRAMEWORKS: dict[str, str] = {
    "express": "typescript",
    "fastapi": "python",
}


class ProjectConfig(BaseModel):
    """Pass-through project metadata consumed by templates."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    project_name: str = Field(alias="projectName", min_length=1)
    version: str = Field(min_length=1)
    description: str
    author: str
    license: str = Field(min_length=1)


class GeneratorConfig(BaseModel):
    """Everything one generation run needs.

    ``outputs`` maps template name -> output path relative to ``output_dir``;
    when empty every loaded template is written under its own name. A path
    containing ``{category}`` is rendered once per operation category.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_path: Path = Field(alias="schemaPath")
    output_dir: Path = Field(alias="outputDir")
    template_dir: Path = Field(alias="templateDir")
    framework: str
    project: ProjectConfig = Field(alias="config")
    cache_path: Path | None = Field(default=None, alias="cachePath")
    outputs: dict[str, str] = Field(default_factory=dict)
    operation_groups: dict[str, str] = Field(default_factory=dict, alias="operationGroups")

    @field_validator("framework")
    @classmethod
    def _known_framework(cls, value: str) -> str:
        if value not in FRAMEWORKS:
            raise ValueError(f"unknown framework {value!r}; expected one of {sorted(FRAMEWORKS)}")
        return value

    @property
    def language(self) -> str:
        return FRAMEWORKS[self.framework]
