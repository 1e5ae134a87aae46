"""Identifier conversion and operation categories.

Operation names are PascalCase verbs optionally followed by a resource:
  Get            -> verb get,    category core
  ListResources  -> verb list,   category resource
  CallTool       -> verb call,   category tool
  ReadResource   -> verb read,   category resource
  GetPrompt      -> verb get,    category prompt
  Ping           -> verb ping,   category core
"""

from __future__ import annotations

import re

DEFAULT_CATEGORY = "core"

# Leading verbs recognised in operation names
_VERBS = {
    "get", "list", "create", "update", "delete", "read", "call",
    "set", "subscribe", "unsubscribe", "complete", "initialize", "ping",
    "cancel", "notify",
}

# Verbs whose operations change server state
_MUTATION_VERBS = {"create", "update", "delete", "set", "subscribe", "unsubscribe", "cancel"}

# Known plural/singular mappings for MCP resources
_PLURALS: dict[str, str] = {
    "resource": "resources",
    "tool": "tools",
    "prompt": "prompts",
    "root": "roots",
    "message": "messages",
    "template": "templates",
    "capability": "capabilities",
    "entry": "entries",
    "status": "statuses",
}

_SINGULARS: dict[str, str] = {v: k for k, v in _PLURALS.items()}


def pluralize(word: str) -> str:
    """Return the plural form of a resource name."""
    return _PLURALS.get(word, word + "s")


def singularize(word: str) -> str:
    """Return the singular form of a resource name."""
    if word in _SINGULARS:
        return _SINGULARS[word]
    if word in _PLURALS:
        return word
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("ses"):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def split_words(name: str) -> list[str]:
    """Split camelCase, PascalCase, snake_case or kebab-case into words."""
    s1 = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", name)
    s2 = re.sub(r"([a-z\d])([A-Z])", r"\1 \2", s1)
    return [w for w in re.split(r"[^A-Za-z0-9]+", s2) if w]


def snake_case(name: str) -> str:
    """Convert an identifier to snake_case."""
    return "_".join(w.lower() for w in split_words(name))


def pascal_case(name: str) -> str:
    """Convert an identifier to PascalCase."""
    return "".join(w[:1].upper() + w[1:] for w in split_words(name))


def camel_case(name: str) -> str:
    """Convert an identifier to camelCase."""
    pascal = pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def operation_verb(name: str) -> str:
    """Return the leading verb of an operation name, lowercased."""
    words = split_words(name)
    return words[0].lower() if words else ""


def operation_category(name: str, groups: dict[str, str] | None = None) -> str:
    """Assign an operation to a category.

    Explicit groups win; otherwise the words after a known leading verb name
    the resource, singularized and snake_cased.
    """
    if groups and name in groups:
        return groups[name]

    words = [w.lower() for w in split_words(name)]
    if len(words) < 2 or words[0] not in _VERBS:
        return DEFAULT_CATEGORY
    words[-1] = singularize(words[-1])
    return "_".join(words[1:])


def is_mutation(name: str) -> bool:
    """True if the operation's verb changes server state."""
    return operation_verb(name) in _MUTATION_VERBS
