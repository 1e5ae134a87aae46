"""Structured errors shared by every stage of the generator.

Every failure is an AxeError carrying a stable code of the form
``<PREFIX>-<CATEGORY><NNN>`` (e.g. ``AXE-P004``), a human message, optional
details, and an optional cause. Categories are tags inside the code, not
subclasses, so callers match on ``err.code`` or ``err.category``.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

# Catch-all code for unexpected exceptions wrapped at a stage boundary
UNEXPECTED_ERROR_CODE = 999


class ErrorPrefix(str, Enum):
    AXE = "AXE"
    MCP = "MCP"


class AxeErrorCategory(str, Enum):
    PARSER = "P"
    CLI = "C"
    GENERATOR = "G"
    MAPPER = "M"


class McpErrorCategory(str, Enum):
    SPECIFICATION = "S"
    RUNTIME = "R"


@dataclass(eq=False)
class AxeError(Exception):
    """Structured error raised by the parser, mapper and generator."""

    code: str
    message: str
    details: Mapping[str, Any] | None = None
    cause: BaseException | None = None

    def __post_init__(self) -> None:
        super().__init__(self.code, self.message)
        if self.cause is not None:
            self.__cause__ = self.cause

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    @property
    def prefix(self) -> str:
        return self.code.split("-", 1)[0]

    @property
    def category(self) -> str:
        return self.code.split("-", 1)[1][0]

    @property
    def number(self) -> int:
        return int(self.code.split("-", 1)[1][1:])

    def chain(self) -> list[BaseException]:
        """Return this error followed by each cause, outermost first."""
        chain: list[BaseException] = [self]
        current = self.cause
        while current is not None and current not in chain:
            chain.append(current)
            current = current.cause if isinstance(current, AxeError) else None
        return chain


def create_error(
    prefix: ErrorPrefix,
    category: AxeErrorCategory | McpErrorCategory,
    code: int,
    message: str,
    details: Mapping[str, Any] | None = None,
    cause: BaseException | None = None,
) -> AxeError:
    """Build an AxeError with a formatted ``PREFIX-CNNN`` code."""
    return AxeError(
        code=f"{prefix.value}-{category.value}{code:03d}",
        message=message,
        details=dict(details) if details else None,
        cause=cause,
    )


parser_error = functools.partial(create_error, ErrorPrefix.AXE, AxeErrorCategory.PARSER)
cli_error = functools.partial(create_error, ErrorPrefix.AXE, AxeErrorCategory.CLI)
generator_error = functools.partial(create_error, ErrorPrefix.AXE, AxeErrorCategory.GENERATOR)
mapper_error = functools.partial(create_error, ErrorPrefix.AXE, AxeErrorCategory.MAPPER)
mcp_spec_error = functools.partial(create_error, ErrorPrefix.MCP, McpErrorCategory.SPECIFICATION)
mcp_runtime_error = functools.partial(create_error, ErrorPrefix.MCP, McpErrorCategory.RUNTIME)


def format_error(error: BaseException) -> str:
    """Render an error and its cause chain as plain text for display."""
    if not isinstance(error, AxeError):
        return f"ERROR: {error}"

    message = f"ERROR {error.code}: {error.message}"
    if error.details:
        message += "\n\nDetails:"
        for key, value in error.details.items():
            message += f"\n  {key}: {value}"
    if error.cause is not None:
        message += f"\n\nCaused by: {format_error(error.cause)}"
    return message


def with_error_handling(factory: Callable[..., AxeError]) -> Callable[[F], F]:
    """Wrap non-AxeError exceptions raised by the decorated function.

    AxeErrors pass through untouched; anything else becomes
    ``factory(999, ...)`` with the original exception as cause.
    """

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return fn(*args, **kwargs)
            except AxeError:
                raise
            except Exception as exc:
                raise factory(
                    UNEXPECTED_ERROR_CODE,
                    "An unexpected error occurred",
                    {"function": fn.__name__},
                    exc,
                ) from exc

        return wrapper  # type: ignore[return-value]

    return decorator
