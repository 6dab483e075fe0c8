"""Tests for the protorelease CLI (``protorelease.cli.app``)."""

import importlib
import json

import pytest
from typer.testing import CliRunner

from protorelease import __version__
from protorelease.cli.app import app
from protorelease.core.version import Version
from protorelease.git.memory import MemoryUpstream
from protorelease.release import pipeline

from tests.conftest import PROTO_DIR, FakeGenerator

app_module = importlib.import_module("protorelease.cli.app")
runner = CliRunner()

QUIET = {"PROTORELEASE_LOG_LEVEL": "CRITICAL"}


@pytest.fixture(autouse=True)
def _workspace(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def wired(monkeypatch, upstream, repository):
    """Point every command at the in-memory collaborators."""
    state = {"upstream": upstream, "repository": repository, "generator": FakeGenerator()}

    def fake_run_mirror(settings):
        return pipeline.run_mirror(
            settings,
            upstream=state["upstream"],
            repository=state["repository"],
            generator=state["generator"],
        )

    monkeypatch.setattr(app_module, "run_mirror", fake_run_mirror)
    monkeypatch.setattr(app_module, "open_upstream", lambda settings: state["upstream"])
    monkeypatch.setattr(app_module, "open_target", lambda settings: state["repository"])
    return state


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.strip() == f"protorelease {__version__}"

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "run" in result.output
        assert "catalog" in result.output


class TestRun:
    def test_json(self, wired):
        result = runner.invoke(app, ["run", "--json"], env=QUIET)
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [r["tag"] for r in data["releases"]] == ["v5.0.0", "v5.1.0"]
        assert data["stable_version"] == "0.12.0"
        assert set(wired["repository"].tags) == {"v5.0.0", "v5.1.0"}

    def test_table(self, wired):
        result = runner.invoke(app, ["run"], env=QUIET)
        assert result.exit_code == 0, result.output
        assert "v5.1.0" in result.output
        assert "created" in result.output

    def test_rerun_reports_existing(self, wired):
        runner.invoke(app, ["run"], env=QUIET)
        result = runner.invoke(app, ["run", "--json"], env=QUIET)
        assert result.exit_code == 0
        assert json.loads(result.stdout)["skipped"] == ["5.0.0", "5.1.0"]

    def test_failed_version_exits_nonzero(self, wired):
        wired["generator"] = FakeGenerator(fail_for={Version(5, 0)})
        result = runner.invoke(app, ["run", "--json"], env=QUIET)
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert [f["tag"] for f in data["failures"]] == ["v5.0.0"]
        assert [r["tag"] for r in data["releases"]] == ["v5.1.0"]

    def test_fatal_error(self, wired):
        upstream = MemoryUpstream()
        upstream.commit({f"{PROTO_DIR}/tfplugin5.0.proto": b"5.0"})
        wired["upstream"] = upstream
        result = runner.invoke(app, ["run"], env=QUIET)
        assert result.exit_code == 1
        assert "no stable release tags" in result.output
        assert wired["repository"].tags == {}

    def test_invalid_settings(self, wired):
        result = runner.invoke(app, ["run", "--max-workers", "0"], env=QUIET)
        assert result.exit_code == 1
        assert "CONFIG" in result.output

    def test_parallel_option(self, wired):
        result = runner.invoke(app, ["run", "-j", "2", "--json"], env=QUIET)
        assert result.exit_code == 0, result.output
        assert len(json.loads(result.stdout)["releases"]) == 2


class TestCatalog:
    def test_latest_stable_by_default(self, wired):
        result = runner.invoke(app, ["catalog", "--json"], env=QUIET)
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["commit"] == wired["upstream"].tags["v0.12.0"]
        assert [v["version"] for v in data["versions"]] == ["5.0.0", "5.1.0"]

    def test_explicit_ref(self, wired):
        result = runner.invoke(app, ["catalog", "--ref", wired["upstream"].head, "--json"], env=QUIET)
        assert result.exit_code == 0, result.output
        assert [v["tag"] for v in json.loads(result.stdout)["versions"]] == ["v5.0.0", "v5.1.0", "v6.0.0"]

    def test_unknown_ref_is_an_error(self, wired):
        result = runner.invoke(app, ["catalog", "--ref", "deadbeef" * 5], env=QUIET)
        assert result.exit_code == 1
        assert "deadbeef" * 5 in result.output
        assert "No items" not in result.output

    def test_table(self, wired):
        result = runner.invoke(app, ["catalog"], env=QUIET)
        assert result.exit_code == 0
        assert "5.1.0" in result.output


class TestStatus:
    def test_before_and_after_run(self, wired):
        before = json.loads(runner.invoke(app, ["status", "--json"], env=QUIET).stdout)
        assert [v["released"] for v in before["versions"]] == [False, False]

        runner.invoke(app, ["run"], env=QUIET)

        after = json.loads(runner.invoke(app, ["status", "--json"], env=QUIET).stdout)
        assert [v["released"] for v in after["versions"]] == [True, True]
