"""Read an interface-definition source and build its syntax tree.

The source grammar is TypeScript; tree-sitter produces the generic tree the
schema parser pattern-matches on. Helpers here hide tree-sitter node
details (text decoding, export wrappers, JSDoc lookup).
"""

from __future__ import annotations

import codecs
import re
from pathlib import Path

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

TS_LANGUAGE = Language(tree_sitter_typescript.language_typescript())

_JSDOC_TAG = re.compile(r"^@\w+")
_BRACED_ESCAPE = re.compile(r"\\u\{([0-9a-fA-F]+)\}")
_PY_ESCAPES = frozenset("\\'\"bfnrtvxu")


def read_source(path: Path) -> bytes:
    """Read the raw bytes of a source file, validating they decode as UTF-8."""
    data = Path(path).read_bytes()
    data.decode("utf-8")
    return data


def parse_source(source: bytes) -> Tree:
    """Parse TypeScript source into a tree-sitter syntax tree."""
    parser = Parser(TS_LANGUAGE)
    return parser.parse(source)


def node_text(node: Node | None) -> str:
    """Return the source text covered by a node."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8")


def unwrap_export(node: Node) -> Node:
    """Return the declaration inside an ``export`` statement, else the node."""
    if node.type == "export_statement":
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            return declaration
    return node


def decode_escape(text: str) -> str:
    """Decode one string escape sequence such as ``\\n`` or ``\\u0030``."""
    braced = _BRACED_ESCAPE.fullmatch(text)
    if braced:
        return chr(int(braced.group(1), 16))
    if text[1:2] in ("\n", "\r"):
        return ""  # line continuation
    if text[1:2] not in _PY_ESCAPES and not text[1:2].isdigit():
        return text[1:]  # identity escape, e.g. \q
    return codecs.decode(text, "unicode_escape")


def string_value(node: Node) -> str:
    """Value of a string literal node with escape sequences decoded."""
    parts = []
    for part in node.named_children:
        if part.type == "string_fragment":
            parts.append(node_text(part))
        elif part.type == "escape_sequence":
            parts.append(decode_escape(node_text(part)))
    return "".join(parts)


def has_optional_marker(member: Node) -> bool:
    """True if a property signature carries the ``?`` marker."""
    return any(child.type == "?" for child in member.children)


def property_name(member: Node) -> str:
    """Member name with string-literal quotes removed."""
    name = member.child_by_field_name("name")
    return re.sub(r"['\"]", "", node_text(name))


def annotated_type(member: Node) -> Node | None:
    """The type node inside a member's ``: T`` annotation."""
    annotation = member.child_by_field_name("type")
    if annotation is None:
        return None
    if annotation.type == "type_annotation":
        named = annotation.named_children
        return named[0] if named else None
    return annotation


def jsdoc_comment(node: Node) -> str | None:
    """Return the JSDoc text attached to a node, without tags.

    The comment must be the sibling immediately before the node (or before
    its enclosing ``export`` statement) and start with ``/**``.
    """
    target = node
    if target.parent is not None and target.parent.type == "export_statement":
        target = target.parent

    previous = target.prev_sibling
    if previous is None or previous.type != "comment":
        return None
    raw = node_text(previous)
    if not raw.startswith("/**"):
        return None

    body = raw[3:-2] if raw.endswith("*/") else raw[3:]
    lines = []
    for line in body.splitlines():
        line = line.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        if _JSDOC_TAG.match(line):
            break
        lines.append(line)
    text = "\n".join(lines).strip()
    return text or None


def first_error(root: Node) -> Node | None:
    """Locate the first ERROR or MISSING node in document order."""
    if not root.has_error:
        return None
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node
        stack.extend(reversed(node.children))
    return None
