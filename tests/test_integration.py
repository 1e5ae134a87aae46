"""End-to-end tests for the generation pipeline.

These drive ServerGenerator through every state against the widget schema
and the fixture templates, checking state ordering, config validation,
cache use and the files written to disk.
"""

from __future__ import annotations

import os

import pytest

from axe_handle.errors import AxeError
from axe_handle.generator import GeneratorState, ServerGenerator, generate_server


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def assert_code(exc_info: pytest.ExceptionInfo, code: str) -> None:
    """Assert a raised AxeError carries ``code``."""
    assert exc_info.value.code == code, f"expected {code}, got {exc_info.value}"


# ===========================================================================
# Full pipeline
# ===========================================================================

class TestPipeline:
    """initialize -> parse -> context -> render -> write."""

    def test_run_writes_outputs(self, config):
        written = ServerGenerator().run(config)
        out = config.output_dir
        assert written == [out / "server.ts", out / "handlers" / "core.ts"]
        for path in written:
            assert path.exists()

    def test_server_file_content(self, config):
        generate_server(config)
        text = (config.output_dir / "server.ts").read_text()
        assert "// widget-server v0.1.0 (MIT)" in text
        assert "// MCP protocol 2024-11-05" in text
        assert "export interface WidgetType {" in text
        assert "  tags: string[];" in text
        assert '{ name: "Delete", category: "core", mutation: true },' in text

    def test_handler_file_per_category(self, config):
        generate_server(config)
        text = (config.output_dir / "handlers" / "core.ts").read_text()
        assert "// Handlers for the core category" in text
        assert "export async function get(input: WidgetType): Promise<WidgetType> {" in text
        assert 'throw new Error("delete is not implemented");' in text

    def test_states_advance(self, config):
        gen = ServerGenerator()
        assert gen.state is GeneratorState.UNINITIALIZED
        gen.initialize(config)
        assert gen.state is GeneratorState.INITIALIZED
        spec = gen.parse_schema()
        assert gen.state is GeneratorState.SCHEMA_PARSED
        gen.prepare_context(spec)
        assert gen.state is GeneratorState.CONTEXT_BUILT
        rendered = gen.render()
        assert gen.state is GeneratorState.RENDERED
        assert not any(path.exists() for path in rendered)
        gen.write()
        assert gen.state is GeneratorState.WRITTEN

    def test_default_outputs_use_template_names(self, make_config, template_dir):
        (template_dir / "handler.ts.j2").unlink()
        config = make_config(outputs={})
        written = generate_server(config)
        assert written == [config.output_dir / "server.ts"]

    def test_mapping_config(self, config):
        data = config.model_dump(by_alias=True)
        written = generate_server(data)
        assert (config.output_dir / "server.ts") in written

    def test_overwrites_existing_output(self, config):
        config.output_dir.mkdir(parents=True)
        stale = config.output_dir / "server.ts"
        stale.write_text("stale")
        generate_server(config)
        assert stale.read_text() != "stale"

    def test_identical_runs_identical_output(self, config):
        generate_server(config)
        first = (config.output_dir / "server.ts").read_bytes()
        generate_server(config)
        assert (config.output_dir / "server.ts").read_bytes() == first


# ===========================================================================
# State machine
# ===========================================================================

class TestStateOrdering:
    """Steps called out of order fail with AXE-G006."""

    def test_parse_before_initialize(self):
        with pytest.raises(AxeError) as exc:
            ServerGenerator().parse_schema()
        assert_code(exc, "AXE-G006")
        assert exc.value.details == {"expected": "initialized", "actual": "uninitialized"}

    def test_generate_before_context(self, config):
        gen = ServerGenerator()
        gen.initialize(config)
        with pytest.raises(AxeError) as exc:
            gen.generate()
        assert_code(exc, "AXE-G006")
        assert exc.value.details["expected"] == "context_built"

    def test_no_backward_transition(self, config):
        gen = ServerGenerator()
        gen.run(config)
        with pytest.raises(AxeError) as exc:
            gen.initialize(config)
        assert_code(exc, "AXE-G006")

    def test_write_before_render(self, config):
        gen = ServerGenerator()
        gen.initialize(config)
        gen.parse_schema()
        gen.prepare_context()
        with pytest.raises(AxeError) as exc:
            gen.write()
        assert_code(exc, "AXE-G006")


# ===========================================================================
# Config validation
# ===========================================================================

class TestInitialize:
    """Config checks performed by initialize()."""

    def test_missing_schema(self, make_config, tmp_path):
        config = make_config(schemaPath=tmp_path / "absent.ts")
        with pytest.raises(AxeError) as exc:
            ServerGenerator().initialize(config)
        assert_code(exc, "AXE-G001")
        assert exc.value.details["path"].endswith("absent.ts")

    def test_unknown_framework(self, config):
        data = config.model_dump(by_alias=True)
        data["framework"] = "koa"
        with pytest.raises(AxeError) as exc:
            ServerGenerator().initialize(data)
        assert_code(exc, "AXE-G001")
        assert exc.value.cause is not None

    def test_missing_project_field(self, config):
        data = config.model_dump(by_alias=True)
        del data["config"]["author"]
        with pytest.raises(AxeError) as exc:
            ServerGenerator().initialize(data)
        assert_code(exc, "AXE-G001")

    def test_missing_output_dir_field(self, config):
        data = config.model_dump(by_alias=True)
        del data["outputDir"]
        with pytest.raises(AxeError) as exc:
            ServerGenerator().initialize(data)
        assert_code(exc, "AXE-G001")

    def test_output_dir_is_file(self, make_config, tmp_path):
        target = tmp_path / "occupied"
        target.write_text("file")
        with pytest.raises(AxeError) as exc:
            ServerGenerator().initialize(make_config(outputDir=target))
        assert_code(exc, "AXE-G001")

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
    def test_output_dir_read_only(self, make_config, tmp_path):
        locked = tmp_path / "locked"
        locked.mkdir()
        locked.chmod(0o500)
        try:
            with pytest.raises(AxeError) as exc:
                ServerGenerator().initialize(make_config(outputDir=locked / "out"))
            assert_code(exc, "AXE-G001")
        finally:
            locked.chmod(0o700)

    def test_missing_template_dir(self, make_config, tmp_path):
        with pytest.raises(AxeError) as exc:
            ServerGenerator().initialize(make_config(templateDir=tmp_path / "none"))
        assert_code(exc, "AXE-G002")


# ===========================================================================
# Failures mid-pipeline
# ===========================================================================

class TestFailures:
    """Errors from lower layers reach the caller intact."""

    def test_parser_error_propagates(self, make_config, tmp_path):
        (tmp_path / "schema.ts").write_text("export interface McpOperations {}\n")
        gen = ServerGenerator()
        gen.initialize(make_config())
        with pytest.raises(AxeError) as exc:
            gen.parse_schema()
        assert_code(exc, "AXE-P002")
        assert gen.state is GeneratorState.INITIALIZED

    def test_unknown_output_template(self, make_config):
        gen = ServerGenerator()
        gen.initialize(make_config(outputs={"missing.ts": "missing.ts"}))
        gen.parse_schema()
        gen.prepare_context()
        with pytest.raises(AxeError) as exc:
            gen.render()
        assert_code(exc, "AXE-G003")

    def test_write_failure_aborts_and_keeps_earlier_files(self, make_config, tmp_path):
        config = make_config(outputs={"server.ts": "a/server.ts", "handler.ts": "blocked/{category}.ts"})
        config.output_dir.mkdir(parents=True)
        (config.output_dir / "blocked").write_text("a file where a directory is needed")

        gen = ServerGenerator()
        gen.initialize(config)
        gen.parse_schema()
        gen.prepare_context()
        with pytest.raises(AxeError) as exc:
            gen.generate()
        assert_code(exc, "AXE-G005")
        assert (config.output_dir / "a" / "server.ts").exists()
        assert gen.written == [config.output_dir / "a" / "server.ts"]

    def test_unexpected_error_wrapped(self, config, monkeypatch):
        gen = ServerGenerator()
        gen.initialize(config)

        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr("axe_handle.generator.SchemaParser.parse_specification", explode)
        with pytest.raises(AxeError) as exc:
            gen.parse_schema()
        assert_code(exc, "AXE-G999")
        assert isinstance(exc.value.cause, RuntimeError)


# ===========================================================================
# Cache
# ===========================================================================

class TestCacheUse:
    """parse_schema goes through the cache when one is configured."""

    def test_cache_written(self, make_config, tmp_path):
        cache_path = tmp_path / "cache" / "schema.json"
        ServerGenerator().run(make_config(cachePath=cache_path))
        assert cache_path.exists()

    def test_no_cache_by_default(self, config, tmp_path):
        ServerGenerator().run(config)
        assert not list(tmp_path.glob("**/*.json"))
