"""Tests for configuration layering and the CLI entry point."""

import json
import logging
from unittest.mock import patch

import pytest

from args import parse_args
from cli_config import (
    apply_cli_overrides,
    apply_config_file,
    apply_env_overrides,
    load_config_file,
    load_runtime_config,
)
from common.logging_utils import configure_logging
from constants import Constants, ExitCodes
from graph.context import ResolutionContext
import depgraph


@pytest.mark.usefixtures("restore_constants")
class TestConfigLayers:
    """File < environment < CLI precedence."""

    def test_yaml_resolver_section(self, tmp_path):
        path = tmp_path / "depgraph.yml"
        path.write_text(
            "resolver:\n"
            "  registry_url: https://npm.example.com/\n"
            "  max_tries: 4\n"
            "  verify_integrity: false\n"
        )
        apply_config_file(str(path))
        assert Constants.REGISTRY_URL_NPM == "https://npm.example.com"
        assert Constants.MAX_TRIES == 4
        assert Constants.VERIFY_INTEGRITY is False

    def test_json_config(self, tmp_path):
        path = tmp_path / "depgraph.json"
        path.write_text(json.dumps({"max_concurrency": 3}))
        assert load_config_file(str(path)) == {"max_concurrency": 3}

    def test_missing_or_broken_files_are_ignored(self, tmp_path):
        assert load_config_file(str(tmp_path / "nope.yml")) == {}
        broken = tmp_path / "broken.yml"
        broken.write_text("resolver: [unclosed\n")
        assert load_config_file(str(broken)) == {}
        assert load_config_file(None) == {}

    def test_env_overrides(self):
        apply_env_overrides({
            Constants.ENV_MAX_TRIES: "7",
            Constants.ENV_REQUEST_TIMEOUT: "2.5",
            Constants.ENV_MAX_CONCURRENCY: "not-a-number",
        })
        assert Constants.MAX_TRIES == 7
        assert Constants.REQUEST_TIMEOUT == 2.5
        assert Constants.MAX_CONCURRENCY == 16

    def test_non_positive_values_rejected(self):
        apply_env_overrides({Constants.ENV_MAX_TRIES: "0"})
        assert Constants.MAX_TRIES == 10

    def test_cli_wins(self, tmp_path, monkeypatch):
        path = tmp_path / "depgraph.yml"
        path.write_text("max_tries: 4\n")
        monkeypatch.setenv(Constants.ENV_MAX_TRIES, "6")
        args = parse_args(["lodash", "-c", str(path), "--max-tries", "2", "--no-verify"])
        load_runtime_config(args)
        assert Constants.MAX_TRIES == 2
        assert Constants.VERIFY_INTEGRITY is False

    def test_cli_without_overrides_keeps_values(self):
        apply_cli_overrides(parse_args(["lodash"]))
        assert Constants.MAX_TRIES == 10
        assert Constants.VERIFY_INTEGRITY is True


class TestCli:
    """Entry point behavior."""

    def test_parse_args_defaults(self):
        args = parse_args(["express@^4", "@types/node"])
        assert args.specifiers == ["express@^4", "@types/node"]
        assert args.DOWNLOAD is False
        assert args.SEQUENTIAL is False
        assert args.LOG_LEVEL is None

    def test_load_seed_file(self, tmp_path):
        path = tmp_path / "seed.txt"
        path.write_text("# resolved earlier\nleft-pad@1.3.0\n\n@babel/core@7.22.0\n")
        assert depgraph.load_seed_file(str(path)) == ["left-pad@1.3.0", "@babel/core@7.22.0"]

    def test_missing_seed_file_exits(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            depgraph.load_seed_file(str(tmp_path / "missing.txt"))
        assert excinfo.value.code == ExitCodes.FILE_ERROR.value

    @pytest.mark.usefixtures("restore_constants")
    def test_main_exits_partial_when_nodes_fail(self):
        class _Node:
            error = True

            def __str__(self):
                return "bad@1.0.0"

        async def _fake_run(args):
            return ["root"], [], []

        with patch.object(depgraph, "run", _fake_run), \
                patch.object(depgraph, "failed_nodes", return_value=[_Node()]):
            with pytest.raises(SystemExit) as excinfo:
                depgraph.main(["root@1.0.0"])
        assert excinfo.value.code == ExitCodes.PARTIAL_GRAPH.value

    @pytest.mark.usefixtures("restore_constants")
    def test_main_success(self):
        async def _fake_run(args):
            return [], [], []

        with patch.object(depgraph, "run", _fake_run):
            with pytest.raises(SystemExit) as excinfo:
                depgraph.main(["root@1.0.0"])
        assert excinfo.value.code == ExitCodes.SUCCESS.value

    @pytest.mark.usefixtures("restore_constants")
    def test_failing_root_keeps_resolved_roots(self, http, registry, capsys, tmp_path):
        registry.publish("good", {"1.0.0": None})
        http.add(registry.url("flaky"), (503, b""))
        output = tmp_path / "graph.json"

        def _context(**kwargs):
            return ResolutionContext(http=http, **kwargs)

        with patch.object(depgraph, "ResolutionContext", _context):
            with pytest.raises(SystemExit) as excinfo:
                depgraph.main(["good@1.0.0", "flaky@^1.0.0", "--tree", "-o", str(output)])
        assert excinfo.value.code == ExitCodes.PARTIAL_GRAPH.value
        assert capsys.readouterr().out.splitlines() == ["good@1.0.0"]
        assert [graph["root"] for graph in json.loads(output.read_text())] == ["good@1.0.0"]

    @pytest.mark.usefixtures("restore_constants")
    def test_every_root_failing_is_connection_error(self, http, registry):
        http.add(registry.url("flaky"), (503, b""))

        def _context(**kwargs):
            return ResolutionContext(http=http, **kwargs)

        with patch.object(depgraph, "ResolutionContext", _context):
            with pytest.raises(SystemExit) as excinfo:
                depgraph.main(["flaky@^1.0.0"])
        assert excinfo.value.code == ExitCodes.CONNECTION_ERROR.value


class TestLogLevel:
    """Log level from the environment and the command line."""

    @pytest.fixture(autouse=True)
    def _restore_root_level(self):
        root = logging.getLogger()
        level = root.level
        yield
        root.setLevel(level)

    def test_environment_level_is_honored(self, monkeypatch):
        monkeypatch.setenv(Constants.LOG_LEVEL_ENV, "DEBUG")
        configure_logging(parse_args(["lodash"]).LOG_LEVEL)
        assert logging.getLogger().level == logging.DEBUG

    def test_cli_level_wins_over_environment(self, monkeypatch):
        monkeypatch.setenv(Constants.LOG_LEVEL_ENV, "DEBUG")
        configure_logging(parse_args(["lodash", "--loglevel", "ERROR"]).LOG_LEVEL)
        assert logging.getLogger().level == logging.ERROR

    def test_defaults_to_info(self, monkeypatch):
        monkeypatch.delenv(Constants.LOG_LEVEL_ENV, raising=False)
        configure_logging(parse_args(["lodash"]).LOG_LEVEL)
        assert logging.getLogger().level == logging.INFO
