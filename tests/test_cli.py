import json
import sys

import pytest
from click.testing import CliRunner

from flight_cache import main


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("FLIGHT_CACHE_EXPIRY_MS", "FLIGHT_CACHE_EVENT", "FLIGHT_CACHE_LOG_ENABLED"):
        monkeypatch.delenv(name, raising=False)


def _reports(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


def test_run_coalesces_concurrent_calls():
    runner = CliRunner()
    with runner.isolated_filesystem():
        result = runner.invoke(
            main,
            ["run", "--calls", "3", "--rounds", "2", "--", sys.executable, "-c", "print('hello')"],
        )
    assert result.exit_code == 0, result.output
    reports = _reports(result.output)
    assert reports == [
        {"round": 1, "results": ["hello", "hello", "hello"], "producer_calls": 1},
        {"round": 2, "results": ["hello", "hello", "hello"], "producer_calls": 1},
    ]


def test_run_reports_command_failure():
    runner = CliRunner()
    with runner.isolated_filesystem():
        result = runner.invoke(
            main,
            ["run", "--event", "health", "--", sys.executable, "-c", "import sys; sys.exit(2)"],
        )
    assert result.exit_code == 1
    (report,) = _reports(result.output)
    assert report["producer_calls"] == 1
    assert report["error"]["event"] == "health"
    assert report["error"]["returncode"] == 2


def test_run_rejects_invalid_env(monkeypatch):
    monkeypatch.setenv("FLIGHT_CACHE_EXPIRY_MS", "-5")
    runner = CliRunner()
    with runner.isolated_filesystem():
        result = runner.invoke(main, ["run", "--", sys.executable, "-c", "print(1)"])
    assert result.exit_code == 1
    assert "FLIGHT_CACHE_EXPIRY_MS" in result.output
