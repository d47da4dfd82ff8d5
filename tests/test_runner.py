"""Tests for the command-line entry point."""

import json

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from swapcheck import config, runner
from swapcheck.database import Database


@pytest.fixture(autouse=True)
def _defaults(monkeypatch):
    monkeypatch.setattr(config, "BACKEND_PROBE", "startup_log")
    monkeypatch.setattr(config, "NEW_BACKEND_SUBSTRING", "")
    monkeypatch.setattr(config, "IGNORED_COLLECTIONS", ["y"])
    monkeypatch.setattr(config, "EXPECTED_COLLECTIONS_AFTER_A", 2)
    monkeypatch.setattr(config, "EXPECTED_COLLECTIONS_AFTER_B", 4)
    monkeypatch.setattr(config, "SHOW_MARKERS", False)
    monkeypatch.setattr(runner, "configure_logging", lambda level=None: None)


@pytest.fixture
def cli(fake_mongo, monkeypatch):
    opened = []

    def _get_db(url=None, database=None):
        opened.append((url, database))
        return Database(fake_mongo)

    monkeypatch.setattr(runner, "get_db", _get_db)
    return opened


def _last_json(capsys):
    lines = capsys.readouterr().out.strip().splitlines()
    return json.loads(lines[-1])


def test_parser_defaults():
    args = runner.build_parser().parse_args([])
    assert args.command == "run"
    assert args.url is None
    assert args.database is None


def test_parser_rejects_unknown_command():
    with pytest.raises(SystemExit):
        runner.build_parser().parse_args(["reset"])


def test_three_invocations_exit_cleanly(cli, fake_mongo, capsys):
    assert runner.main(["run", "--database", "swap"]) == 0
    assert _last_json(capsys)["final"] == "awaiting_b"

    fake_mongo.use_backend("new")
    assert runner.main(["run"]) == 0
    assert _last_json(capsys)["final"] == "awaiting_verify"

    fake_mongo.use_backend("old")
    assert runner.main(["run"]) == 0
    payload = _last_json(capsys)
    assert payload["final"] == "done"
    assert payload["backend"] == "old"
    assert "markers" not in payload

    assert cli[0] == (None, "swap")


def test_out_of_order_run_exits_with_mismatch_code(cli, fake_mongo, capsys):
    fake_mongo.use_backend("new")
    assert runner.main(["run"]) == 2
    assert capsys.readouterr().out == ""


def test_undetectable_backend_exits_with_detection_code(cli, fake_mongo):
    fake_mongo.startup_log = []
    assert runner.main(["run"]) == 4


def test_storage_error_exits_with_one(cli, monkeypatch):
    def _unreachable(self):
        raise ServerSelectionTimeoutError("no servers found")

    monkeypatch.setattr(runner.PhaseController, "run", _unreachable)
    assert runner.main(["run"]) == 1


def test_status_reports_persisted_state(cli, fake_mongo, capsys):
    runner.main(["run"])
    capsys.readouterr()

    assert runner.main(["status"]) == 0
    payload = _last_json(capsys)
    assert payload["resolved"] == "awaiting_b"
    assert payload["ledger"]["state"] == "awaiting_b"
    assert payload["ledger"]["_id"] == "phase_state"
    assert payload["collections"] == ["a", "b"]
    assert payload["indexes"]["a"] == {"declared": ["a_1"], "present": 2}
    assert payload["indexes"]["c"]["present"] == 0
    assert payload["markers"]["enter_b"] is True


def test_show_markers(cli, monkeypatch, capsys):
    monkeypatch.setattr(config, "SHOW_MARKERS", True)
    runner.main(["run"])
    assert _last_json(capsys)["markers"]["phase_a_done"] is True
