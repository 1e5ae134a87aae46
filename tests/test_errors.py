"""Tests for the structured error model."""

import pytest

from axe_handle.errors import (
    AxeError,
    AxeErrorCategory,
    ErrorPrefix,
    cli_error,
    create_error,
    format_error,
    generator_error,
    mapper_error,
    mcp_runtime_error,
    mcp_spec_error,
    parser_error,
    with_error_handling,
)


class TestCodes:
    """Code formatting per category."""

    def test_create_error(self):
        err = create_error(ErrorPrefix.AXE, AxeErrorCategory.PARSER, 4, "missing")
        assert err.code == "AXE-P004"
        assert err.message == "missing"
        assert err.details is None
        assert err.cause is None

    @pytest.mark.parametrize("factory, code", [
        (parser_error, "AXE-P012"),
        (cli_error, "AXE-C012"),
        (generator_error, "AXE-G012"),
        (mapper_error, "AXE-M012"),
        (mcp_spec_error, "MCP-S012"),
        (mcp_runtime_error, "MCP-R012"),
    ])
    def test_factories(self, factory, code):
        assert factory(12, "msg").code == code

    def test_code_parts(self):
        err = generator_error(999, "unexpected")
        assert (err.prefix, err.category, err.number) == ("AXE", "G", 999)

    def test_str(self):
        assert str(parser_error(1, "bad source")) == "AXE-P001: bad source"

    def test_details_copied(self):
        details = {"path": "a.ts"}
        err = parser_error(1, "bad", details)
        details["path"] = "b.ts"
        assert err.details == {"path": "a.ts"}


class TestCauseChain:
    """Causes form an acyclic chain."""

    def test_chain(self):
        root = OSError("disk")
        middle = parser_error(1, "read failed", cause=root)
        outer = generator_error(999, "run failed", cause=middle)
        assert outer.chain() == [outer, middle, root]
        assert outer.__cause__ is middle

    def test_raisable(self):
        with pytest.raises(AxeError) as exc:
            raise mapper_error(2, "unknown type")
        assert exc.value.code == "AXE-M002"


class TestFormatError:
    """Plain-text rendering for display."""

    def test_with_details_and_cause(self):
        err = parser_error(1, "Failed", {"path": "schema.ts"}, ValueError("bad byte"))
        assert format_error(err) == (
            "ERROR AXE-P001: Failed\n\nDetails:\n  path: schema.ts\n\n"
            "Caused by: ERROR: bad byte"
        )

    def test_nested_axe_cause(self):
        inner = mapper_error(3, "Duplicate")
        text = format_error(generator_error(999, "Run failed", cause=inner))
        assert text == "ERROR AXE-G999: Run failed\n\nCaused by: ERROR AXE-M003: Duplicate"

    def test_plain_exception(self):
        assert format_error(RuntimeError("boom")) == "ERROR: boom"


class TestWithErrorHandling:
    """Wrapping of unexpected exceptions."""

    def test_wraps_unexpected(self):
        @with_error_handling(mapper_error)
        def fails():
            raise KeyError("x")

        with pytest.raises(AxeError) as exc:
            fails()
        assert exc.value.code == "AXE-M999"
        assert exc.value.details == {"function": "fails"}
        assert isinstance(exc.value.cause, KeyError)

    def test_axe_errors_pass_through(self):
        @with_error_handling(mapper_error)
        def fails():
            raise parser_error(5, "no capabilities")

        with pytest.raises(AxeError) as exc:
            fails()
        assert exc.value.code == "AXE-P005"

    def test_return_value(self):
        @with_error_handling(generator_error)
        def works(a, b=2):
            return a + b

        assert works(1, b=3) == 4
        assert works.__name__ == "works"
