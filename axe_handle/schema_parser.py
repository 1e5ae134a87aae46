"""Extract an MCP specification from a TypeScript interface definition.

Recognized top-level declarations:
- a string constant holding the protocol version (``MCP_VERSION``)
- the operations contract (``interface McpOperations``), one member per
  operation typed ``McpOperation<Input, Output>``
- type definitions (interfaces whose name ends in ``Type``)
- the capabilities contract (``interface McpCapabilities``)

Field type resolution:
- ``T[]`` / ``Array<T>`` -> repeated field of ``T``
- ``Foo<Bar>`` -> ``Foo``
- ``A | B`` -> ``A`` (first alternative only, lossy)
- ``"a"`` / ``1`` / ``true`` literals -> ``string`` / ``number`` / ``boolean``
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from .errors import parser_error
from .loader import (
    annotated_type,
    first_error,
    has_optional_marker,
    jsdoc_comment,
    node_text,
    parse_source,
    property_name,
    read_source,
    string_value,
    unwrap_export,
)
from .models import DEFAULT_VERSION, UNTYPED, Capability, Field, Operation, Specification, Type

if TYPE_CHECKING:
    from tree_sitter import Node

    from .cache import SpecificationCache

logger = structlog.get_logger(__name__)

# Canonical operations every specification must declare, checked in order
REQUIRED_OPERATIONS = ("Get", "List", "Create", "Update", "Delete")

# Parser error codes
ERR_UNREADABLE = 1
ERR_NO_OPERATIONS = 2
ERR_NO_TYPES = 3
ERR_MISSING_OPERATION = 4
ERR_NO_CAPABILITIES = 5
ERR_SYNTAX = 6
ERR_UNRESOLVED_UNION = 7

_INTERFACE_BODIES = {"interface_body", "object_type"}
_REFERENCE_NODES = {"type_identifier", "nested_type_identifier", "generic_type"}
_UNRESOLVABLE = {"null", "undefined", "void", "never"}


@dataclass(frozen=True)
class ParserConventions:
    """Declaration names the parser recognizes."""

    version_constant: str = "MCP_VERSION"
    operations_interface: str = "McpOperations"
    capabilities_interface: str = "McpCapabilities"
    type_suffix: str = "Type"
    type_marker: str = "McpType"
    description_prefix: str = "MCP"


class _UnresolvedUnion(Exception):
    """A union whose first alternative names no type."""

    def __init__(self, text: str) -> None:
        super().__init__(text)
        self.text = text


class SchemaParser:
    """Parse one interface-definition file into a Specification.

    Instances hold no parse state between calls; create one per source or
    share one explicitly.
    """

    def __init__(
        self,
        source_path: Path | str,
        conventions: ParserConventions | None = None,
        cache: SpecificationCache | None = None,
    ) -> None:
        self.source_path = Path(source_path)
        self.conventions = conventions or ParserConventions()
        self.cache = cache

    def parse_specification(self) -> Specification:
        """Return the specification, from cache when fresh, else from source."""
        if self.cache is not None:
            cached = self.cache.try_load()
            if cached is not None:
                logger.debug("Loaded specification from cache.", source=str(self.source_path))
                return cached

        spec = self.parse_from_source()

        if self.cache is not None:
            self.cache.save(spec)
        return spec

    def parse_from_source(self) -> Specification:
        """Read, parse and validate the source file, ignoring any cache."""
        try:
            source = read_source(self.source_path)
        except (OSError, UnicodeDecodeError) as exc:
            raise parser_error(
                ERR_UNREADABLE,
                "Failed to read MCP specification source",
                {"path": str(self.source_path)},
                exc,
            ) from exc
        return self.parse_text(source)

    def parse_text(self, source: bytes | str) -> Specification:
        """Parse and validate source text already in memory."""
        if isinstance(source, str):
            source = source.encode("utf-8")

        tree = parse_source(source)
        error_node = first_error(tree.root_node)
        if error_node is not None:
            row, column = error_node.start_point
            raise parser_error(
                ERR_SYNTAX,
                "MCP specification source contains syntax errors",
                {"path": str(self.source_path), "line": row + 1, "column": column + 1},
            )

        version = DEFAULT_VERSION
        operations: list[Operation] = []
        types: list[Type] = []
        capabilities: list[Capability] = []
        conv = self.conventions

        for child in tree.root_node.named_children:
            node = unwrap_export(child)

            if node.type in ("lexical_declaration", "variable_declaration"):
                found = self._find_version(node)
                if found is not None:
                    version = found
                continue

            if node.type != "interface_declaration":
                continue

            name = node_text(node.child_by_field_name("name"))
            if name == conv.operations_interface:
                operations.extend(self._parse_operations(node))
            if name.endswith(conv.type_suffix) and name != conv.type_marker:
                parsed = self._parse_type(node, name)
                if parsed is not None:
                    types.append(parsed)
            if name == conv.capabilities_interface:
                capabilities.extend(self._parse_capabilities(node))

        spec = Specification(
            version=version,
            operations=tuple(operations),
            types=tuple(types),
            capabilities=tuple(capabilities),
        )
        self.validate(spec)
        logger.debug(
            "Parsed specification.",
            source=str(self.source_path),
            operations=len(operations),
            types=len(types),
            capabilities=len(capabilities),
        )
        return spec

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _find_version(self, node: Node) -> str | None:
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            if node_text(declarator.child_by_field_name("name")) != self.conventions.version_constant:
                continue
            value = declarator.child_by_field_name("value")
            if value is not None and value.type == "as_expression":
                value = value.named_children[0] if value.named_children else None
            if value is not None and value.type == "string":
                return string_value(value)
        return None

    def _members(self, node: Node) -> list[Node]:
        body = node.child_by_field_name("body")
        if body is None or body.type not in _INTERFACE_BODIES:
            return []
        return [m for m in body.named_children if m.type == "property_signature"]

    def _parse_operations(self, node: Node) -> list[Operation]:
        prefix = self.conventions.description_prefix
        operations = []
        for member in self._members(node):
            type_node = annotated_type(member)
            if type_node is None or type_node.type not in _REFERENCE_NODES:
                continue
            name = property_name(member)
            arguments = _type_arguments(type_node)
            operations.append(Operation(
                name=name,
                description=jsdoc_comment(member) or f"{prefix} {name} operation",
                input_type=node_text(arguments[0]) if len(arguments) > 0 else UNTYPED,
                output_type=node_text(arguments[1]) if len(arguments) > 1 else UNTYPED,
                required=not has_optional_marker(member),
            ))
        return operations

    def _parse_type(self, node: Node, type_name: str) -> Type | None:
        fields = []
        for member in self._members(node):
            name = property_name(member)
            type_node = annotated_type(member)
            try:
                field_type = resolve_field_type(type_node)
            except _UnresolvedUnion as exc:
                raise parser_error(
                    ERR_UNRESOLVED_UNION,
                    f"Union type of field {type_name}.{name} has no resolvable first alternative",
                    {"path": str(self.source_path), "type": type_name, "field": name, "alternative": exc.text},
                ) from None
            fields.append(Field(
                name=name,
                type=field_type,
                required=not has_optional_marker(member),
                repeated=is_repeated_type(type_node),
                description=jsdoc_comment(member) or f"{name} field",
            ))

        if not fields:
            logger.debug("Skipping type without fields.", type=type_name)
            return None

        return Type(
            name=type_name,
            description=jsdoc_comment(node) or f"{self.conventions.description_prefix} {type_name}",
            fields=tuple(fields),
        )

    def _parse_capabilities(self, node: Node) -> list[Capability]:
        prefix = self.conventions.description_prefix
        return [
            Capability(
                name=property_name(member),
                description=jsdoc_comment(member) or f"{prefix} {property_name(member)} capability",
                required=not has_optional_marker(member),
            )
            for member in self._members(node)
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, spec: Specification) -> None:
        """Fail fast on the first completeness rule the spec breaks."""
        details = {"path": str(self.source_path)}

        if not spec.operations:
            raise parser_error(ERR_NO_OPERATIONS, "MCP specification does not define any operations", details)

        if not spec.types:
            raise parser_error(ERR_NO_TYPES, "MCP specification does not define any types", details)

        declared = set(spec.operation_names())
        for required in REQUIRED_OPERATIONS:
            if required not in declared:
                raise parser_error(
                    ERR_MISSING_OPERATION,
                    f"MCP specification is missing required operation: {required}",
                    {**details, "operation": required},
                )

        if not spec.capabilities:
            raise parser_error(ERR_NO_CAPABILITIES, "MCP specification does not define any capabilities", details)


def parse_specification(
    source_path: Path | str,
    cache: SpecificationCache | None = None,
    conventions: ParserConventions | None = None,
) -> Specification:
    """Parse a source file with a freshly constructed parser."""
    return SchemaParser(source_path, conventions=conventions, cache=cache).parse_specification()


# ----------------------------------------------------------------------
# Type helpers
# ----------------------------------------------------------------------

def _type_arguments(type_node: Node) -> list[Node]:
    if type_node.type != "generic_type":
        return []
    arguments = type_node.child_by_field_name("type_arguments")
    return list(arguments.named_children) if arguments is not None else []


def _reference_name(type_node: Node) -> str:
    if type_node.type == "generic_type":
        return node_text(type_node.child_by_field_name("name"))
    return node_text(type_node)


def _unwrap(type_node: Node) -> Node:
    while type_node.type in ("parenthesized_type", "readonly_type") and type_node.named_children:
        type_node = type_node.named_children[0]
    return type_node


def is_repeated_type(type_node: Node | None) -> bool:
    """True for ``T[]`` and ``Array<T>`` shaped types."""
    if type_node is None:
        return False
    type_node = _unwrap(type_node)
    if type_node.type == "array_type":
        return True
    return (
        type_node.type == "generic_type"
        and _reference_name(type_node) == "Array"
        and bool(_type_arguments(type_node))
    )


def resolve_field_type(type_node: Node | None) -> str:
    """Resolve a field's type node to the name stored on the Field."""
    if type_node is None:
        return UNTYPED
    type_node = _unwrap(type_node)

    if type_node.type == "array_type":
        return resolve_field_type(type_node.named_children[0])
    if is_repeated_type(type_node):
        return resolve_field_type(_type_arguments(type_node)[0])

    if type_node.type in _REFERENCE_NODES:
        return _reference_name(type_node)

    if type_node.type == "union_type":
        first = _unwrap(type_node.named_children[0])
        if first.type != "union_type" and not _is_nameable(first):
            raise _UnresolvedUnion(node_text(first))
        return resolve_field_type(first)

    if type_node.type == "literal_type":
        return _literal_scalar(type_node)

    return node_text(type_node)


def _is_nameable(type_node: Node) -> bool:
    if type_node.type in ("object_type", "function_type", "constructor_type"):
        return False
    return node_text(type_node) not in _UNRESOLVABLE


def _literal_scalar(type_node: Node) -> str:
    text = node_text(type_node)
    if text in _UNRESOLVABLE:
        return text
    if text in ("true", "false"):
        return "boolean"
    if text[:1] in ("'", '"', "`"):
        return "string"
    return "number"

