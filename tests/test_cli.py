"""
Test suite for slotctl CLI functionality.
"""

import json
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from marty_slots import __version__
from marty_slots.cli import cli


@pytest.fixture
def runner():
    """CLI test runner."""
    return CliRunner()


@pytest.fixture
def invoke(runner, state_file):
    """Invoke slotctl against a temporary state file with quiet logging."""

    def _invoke(*args):
        return runner.invoke(
            cli, ["--state-file", str(state_file), "--log-level", "ERROR", *args]
        )

    return _invoke


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_cli_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("switch", "rollback", "status", "history"):
            assert command in result.output


class TestSwitchCommand:
    """Test the switch command."""

    def test_switch(self, invoke, state_file):
        result = invoke("switch", "green")

        assert result.exit_code == 0, result.output
        assert "Live traffic now goes to green" in result.output
        payload = json.loads(state_file.read_text(encoding="utf-8"))
        assert payload["state"]["active_slot"] == "green"
        assert payload["state"]["previous_slot"] == "blue"

    def test_switch_unknown_slot(self, invoke, state_file):
        result = invoke("switch", "purple")

        assert result.exit_code == 2
        assert "Unknown deployment slot" in result.output
        assert not state_file.exists()

    def test_switch_records_operator(self, invoke):
        invoke("switch", "green", "--operator", "alice")
        result = invoke("history", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output)[0]["operator"] == "alice"

    def test_switch_with_failing_health_check(self, invoke, monkeypatch, state_file):
        response = MagicMock()
        response.status_code = 503
        monkeypatch.setattr("marty_slots.health.requests.get", MagicMock(return_value=response))
        monkeypatch.setattr("marty_slots.health.time.sleep", lambda _: None)

        result = invoke("switch", "green", "--check-health")

        assert result.exit_code == 4
        assert "failed health check" in result.output
        assert not state_file.exists()

    def test_switch_with_passing_health_check(self, invoke, monkeypatch):
        response = MagicMock()
        response.status_code = 200
        get = MagicMock(return_value=response)
        monkeypatch.setattr("marty_slots.health.requests.get", get)

        result = invoke("switch", "green", "--check-health")

        assert result.exit_code == 0, result.output
        assert get.call_args.args[0] == "http://app-green:8080/health"

    def test_switch_writes_nginx_upstream(self, invoke, monkeypatch, tmp_path):
        upstream_conf = tmp_path / "upstream.conf"
        monkeypatch.setenv("SLOTS_ROUTER", "nginx")
        monkeypatch.setenv("SLOTS_NGINX_CONFIG_PATH", str(upstream_conf))

        result = invoke("switch", "green")

        assert result.exit_code == 0, result.output
        assert "server app-green:8080;" in upstream_conf.read_text(encoding="utf-8")


class TestRollbackCommand:
    """Test the rollback command."""

    def test_rollback_without_history(self, invoke):
        result = invoke("rollback")

        assert result.exit_code == 3
        assert "nothing to roll back" in result.output

    def test_switch_then_rollback(self, invoke):
        assert invoke("switch", "green").exit_code == 0

        result = invoke("rollback")

        assert result.exit_code == 0, result.output
        assert "Rolled back; live traffic now goes to blue" in result.output


class TestStatusCommand:
    """Test the status and history commands."""

    def test_status_before_any_switch(self, invoke):
        result = invoke("status", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "active_slot": "blue",
            "previous_slot": None,
            "last_switched_at": None,
        }

    def test_status_table(self, invoke):
        invoke("switch", "green")
        result = invoke("status")

        assert result.exit_code == 0
        assert "Active slot" in result.output
        assert "green" in result.output

    def test_status_with_initial_slot_from_env(self, invoke, monkeypatch):
        monkeypatch.setenv("SLOTS_INITIAL_SLOT", "green")

        result = invoke("status", "--json")

        assert json.loads(result.output)["active_slot"] == "green"

    def test_corrupt_state_file(self, invoke, state_file):
        state_file.parent.mkdir(parents=True)
        state_file.write_text("{oops", encoding="utf-8")

        result = invoke("status")

        assert result.exit_code == 5
        assert "Cannot read state file" in result.output

    def test_undecodable_state_file(self, invoke, state_file):
        state_file.parent.mkdir(parents=True)
        state_file.write_bytes(b"\xff\xfe{}")

        result = invoke("status")

        assert result.exit_code == 5
        assert "Cannot read state file" in result.output

    def test_malformed_history_entry(self, invoke, state_file):
        state_file.parent.mkdir(parents=True)
        state_file.write_text(json.dumps({"history": 5}), encoding="utf-8")

        result = invoke("history")

        assert result.exit_code == 5
        assert "malformed" in result.output

    def test_invalid_env_configuration(self, invoke, monkeypatch):
        monkeypatch.setenv("SLOTS_INITIAL_SLOT", "purple")

        result = invoke("status")

        assert result.exit_code == 1
        assert "Invalid slotctl configuration" in result.output
        assert "initial_slot" in result.output

    def test_history(self, invoke):
        invoke("switch", "green")
        invoke("rollback")

        result = invoke("history", "--json")
        records = json.loads(result.output)
        assert [r["action"] for r in records] == ["switch", "rollback"]

        limited = json.loads(invoke("history", "--json", "--limit", "1").output)
        assert [r["action"] for r in limited] == ["rollback"]

    def test_empty_history_table(self, invoke):
        result = invoke("history")

        assert result.exit_code == 0
        assert "No switches recorded yet" in result.output
