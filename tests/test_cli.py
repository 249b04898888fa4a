"""Smoke tests for the roster-dedup command line."""
from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path

import pytest
from typer.testing import CliRunner

from roster.cli import app
from roster.core.settings import Settings
from roster.plans.store import load_plan

runner = CliRunner()

REPO_VARIANTS_DIR = Path(__file__).resolve().parents[1] / "config" / "variants"


@pytest.fixture()
def cli_settings(db_session, tmp_path, monkeypatch) -> Settings:
    @contextmanager
    def _scope():
        yield db_session

    settings = Settings(
        _env_file=None,
        PROTECTED_NAMES_PATH=str(tmp_path / "persons-raw.json"),
        VARIANTS_DIR=str(REPO_VARIANTS_DIR),
        PLAN_PATH=str(tmp_path / "dedup-plan.json"),
        BATCH_PAUSE_SECONDS=0,
    )
    monkeypatch.setattr("roster.cli.session_scope", _scope)
    monkeypatch.setattr("roster.cli.setup_logging", lambda level=None: None)
    monkeypatch.setattr("roster.cli.get_settings", lambda: settings)
    return settings


@pytest.fixture()
def seeded(graph):
    graph.person("Jeffrey Epstein")
    graph.person("JEFFREY EPSTEIN")
    graph.person("AUSA")
    graph.person("Kellen")
    graph.commit()
    return graph


def test_dry_run_writes_plan_without_mutating(cli_settings, seeded) -> None:
    result = runner.invoke(app, ["dry-run"])

    assert result.exit_code == 0, result.output
    assert "junk removal" in result.output
    plan = load_plan(cli_settings.plan_path)
    assert len(plan.actions) == 3
    assert len(seeded.ids()) == 4


def test_review_then_execute_plan(cli_settings, seeded) -> None:
    assert runner.invoke(app, ["dry-run"]).exit_code == 0
    plan_path = cli_settings.plan_path
    kellen_action = next(a.id for a in load_plan(plan_path).actions if a.pass_ == 3)

    result = runner.invoke(app, ["reject", plan_path, str(kellen_action)])
    assert result.exit_code == 0, result.output
    assert "Rejected 1 action(s)" in result.output

    result = runner.invoke(app, ["execute-plan", plan_path, "--batch", "1"])
    assert result.exit_code == 0, result.output
    assert "Executed" in result.output
    assert seeded.names() == ["Jeffrey Epstein", "Kellen"]

    result = runner.invoke(app, ["plan-summary", plan_path])
    assert result.exit_code == 0, result.output
    assert "rejected" in result.output


def test_restore_rejected_action(cli_settings, seeded) -> None:
    runner.invoke(app, ["dry-run"])
    plan_path = cli_settings.plan_path
    runner.invoke(app, ["reject", plan_path, "1"])

    result = runner.invoke(app, ["restore", plan_path, "1"])
    assert result.exit_code == 0, result.output
    assert load_plan(plan_path).get_action(1).status == "pending"


def test_reject_unknown_action_fails(cli_settings, seeded) -> None:
    runner.invoke(app, ["dry-run"])
    result = runner.invoke(app, ["reject", cli_settings.plan_path, "99"])
    assert result.exit_code == 1


def test_execute_missing_plan_fails(cli_settings, tmp_path) -> None:
    result = runner.invoke(app, ["execute-plan", str(tmp_path / "missing.json")])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_malformed_plan_summary_fails(cli_settings, tmp_path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"actions": "nope"}))
    result = runner.invoke(app, ["plan-summary", str(path)])
    assert result.exit_code == 1


def test_apply(cli_settings, seeded) -> None:
    result = runner.invoke(app, ["apply"])
    assert result.exit_code == 0, result.output
    assert seeded.names() == ["Jeffrey Epstein"]


def test_maintenance_commands(cli_settings, graph) -> None:
    a = graph.person("Alice Adams")
    b = graph.person("Bob Brown")
    graph.connect(a, b, "met")
    graph.connect(b, a, "met again")
    graph.commit()

    result = runner.invoke(app, ["dedupe-connections"])
    assert result.exit_code == 0, result.output
    assert "Removed 1 connection(s)" in result.output

    result = runner.invoke(app, ["recount"])
    assert result.exit_code == 0, result.output
    assert graph.counts(a) == (0, 1)
