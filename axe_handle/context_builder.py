"""Build the Jinja2 template context from a parsed specification.

Groups operations into categories, resolves every type reference to a
target-language type name, and assembles the full context dict handed to
each template. Pure: no I/O, same input -> equal output.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from .config import FRAMEWORKS, GeneratorConfig
from .errors import mapper_error
from .models import UNTYPED, Field, Operation, Specification
from .naming import is_mutation, operation_category, operation_verb, pluralize, snake_case

# Mapper error codes
ERR_MALFORMED = 1
ERR_UNKNOWN_TYPE = 2
ERR_DUPLICATE = 3

# Scalar names in the schema -> target-language type names
_SCALARS: dict[str, dict[str, str]] = {
    "typescript": {
        "string": "string",
        "number": "number",
        "integer": "number",
        "boolean": "boolean",
        "any": "any",
        "unknown": "unknown",
        "object": "Record<string, unknown>",
        "null": "null",
        "undefined": "undefined",
        "bigint": "bigint",
    },
    "python": {
        "string": "str",
        "number": "float",
        "integer": "int",
        "boolean": "bool",
        "any": "Any",
        "unknown": "Any",
        "object": "dict[str, Any]",
        "null": "None",
        "undefined": "None",
        "bigint": "int",
    },
}


def resolve_type(name: str, language: str, repeated: bool = False) -> str:
    """Map a schema type name to its target-language spelling.

    Names outside the scalar table are assumed to be generated types and
    keep their own name.
    """
    resolved = _SCALARS[language].get(name, name)
    if not repeated:
        return resolved
    if language == "python":
        return f"list[{resolved}]"
    if " " in resolved or "<" in resolved:
        return f"Array<{resolved}>"
    return f"{resolved}[]"


def is_scalar(name: str) -> bool:
    return name in _SCALARS["typescript"]


def _check_spec(spec: Any) -> Specification:
    if isinstance(spec, Specification):
        return spec
    try:
        return Specification.model_validate(spec)
    except ValidationError as exc:
        raise mapper_error(
            ERR_MALFORMED,
            "Malformed MCP specification passed to context builder",
            {"received": type(spec).__name__},
            exc,
        ) from exc


def _check_unique(kind: str, names: list[str]) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise mapper_error(ERR_DUPLICATE, f"Duplicate {kind} name: {name}", {kind: name})
        seen.add(name)


def _check_reference(operation: Operation, name: str, known: set[str]) -> None:
    if name == UNTYPED or is_scalar(name) or name in known:
        return
    raise mapper_error(
        ERR_UNKNOWN_TYPE,
        f"Operation {operation.name} references unknown type: {name}",
        {"operation": operation.name, "type": name},
    )


def _field_context(field: Field, language: str, known: set[str]) -> dict[str, Any]:
    return {
        "name": field.name,
        "type": field.type,
        "target_type": resolve_type(field.type, language, field.repeated),
        "element_type": resolve_type(field.type, language),
        "required": field.required,
        "repeated": field.repeated,
        "is_generated": field.type in known,
        "description": field.description,
    }


def build_context(spec: Specification, config: GeneratorConfig) -> dict[str, Any]:
    """Build the full template context from the specification."""
    spec = _check_spec(spec)
    language = FRAMEWORKS[config.framework]

    _check_unique("operation", spec.operation_names())
    _check_unique("type", spec.type_names())
    known = set(spec.type_names())

    operations: list[dict[str, Any]] = []
    categories: dict[str, list[str]] = {}

    for op in spec.operations:
        _check_reference(op, op.input_type, known)
        _check_reference(op, op.output_type, known)

        category = operation_category(op.name, config.operation_groups)
        operations.append({
            "name": op.name,
            "handler_name": snake_case(op.name),
            "description": op.description,
            "input_type": resolve_type(op.input_type, language),
            "output_type": resolve_type(op.output_type, language),
            "input_type_name": op.input_type,
            "output_type_name": op.output_type,
            "required": op.required,
            "category": category,
            "verb": operation_verb(op.name),
            "is_mutation": is_mutation(op.name),
        })
        categories.setdefault(category, []).append(op.name)

    types = [
        {
            "name": t.name,
            "description": t.description,
            "fields": [_field_context(f, language, known) for f in t.fields],
            "required_fields": [f.name for f in t.fields if f.required],
        }
        for t in spec.types
    ]

    capabilities = [
        {"name": c.name, "description": c.description, "required": c.required}
        for c in spec.capabilities
    ]

    return {
        "project": config.project.model_dump(),
        "framework": config.framework,
        "language": language,
        "protocol_version": spec.version,
        "operations": operations,
        "categories": {name: categories[name] for name in sorted(categories)},
        "category_routes": {name: pluralize(name) for name in sorted(categories)},
        "types": types,
        "capabilities": capabilities,
        "required_capabilities": [c.name for c in spec.capabilities if c.required],
        "operation_count": len(operations),
        "type_count": len(types),
    }
