"""Specification model produced by the IDL parser.

The parser, the cache and the context builder all exchange these models.
They are frozen once built; sequences are tuples so nothing downstream can
mutate a parsed specification in place.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field as PydanticField

DEFAULT_VERSION = "1.0.0"

# Placeholder used when an operation declares no type argument
UNTYPED = "any"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class Field(_Frozen):
    """A single member of a type definition."""

    name: str
    type: str
    required: bool
    repeated: bool = False  # sequence of `type` rather than one instance
    description: str = ""


class Type(_Frozen):
    """A named record type with at least one field."""

    name: str
    description: str = ""
    fields: tuple[Field, ...]


class Operation(_Frozen):
    """A remote operation; input/output name entries in `types`."""

    name: str
    description: str = ""
    input_type: str = PydanticField(default=UNTYPED, alias="inputType")
    output_type: str = PydanticField(default=UNTYPED, alias="outputType")
    required: bool = True


class Capability(_Frozen):
    """An optional protocol behavior the generated server may support."""

    name: str
    description: str = ""
    required: bool = True


class Specification(_Frozen):
    """Parsed interface definition."""

    version: str = DEFAULT_VERSION
    operations: tuple[Operation, ...] = ()
    types: tuple[Type, ...] = ()
    capabilities: tuple[Capability, ...] = ()

    def operation_names(self) -> list[str]:
        return [op.name for op in self.operations]

    def type_names(self) -> list[str]:
        return [t.name for t in self.types]

    def to_json(self) -> str:
        """Serialize with the camelCase keys used by the cache file."""
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_json(cls, data: str | bytes) -> Specification:
        return cls.model_validate_json(data)
