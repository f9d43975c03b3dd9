import json
import logging

import pytest
import structlog

from leader_reporter.shared.app_logging import configure_logging


@pytest.fixture
def reset_logging():
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()


def json_lines(out: str) -> list[dict]:
    return [json.loads(line) for line in out.splitlines() if line.startswith("{")]


def test_json_format(capsys, reset_logging):
    configure_logging(level="INFO", fmt="json")
    structlog.get_logger("leader_reporter.json_check").info("Current node epoch", epoch=450)

    lines = json_lines(capsys.readouterr().out)
    assert lines[-1]["event"] == "Current node epoch"
    assert lines[-1]["epoch"] == 450
    assert lines[-1]["level"] == "info"
    assert lines[-1]["logger"] == "leader_reporter.json_check"
    assert "timestamp" in lines[-1]


def test_env_selects_format_and_level(capsys, monkeypatch, reset_logging):
    monkeypatch.setenv("LOG_FORMAT", "json")
    monkeypatch.setenv("LOG_LEVEL", "warning")
    configure_logging()

    log = structlog.get_logger("leader_reporter.level_check")
    log.info("hidden")
    log.warning("shown")

    events = [line["event"] for line in json_lines(capsys.readouterr().out)]
    assert "shown" in events
    assert "hidden" not in events


def test_unknown_level_falls_back_to_info(capsys, reset_logging):
    configure_logging(level="verbose", fmt="json")

    assert logging.getLogger().level == logging.INFO
    lines = json_lines(capsys.readouterr().out)
    assert any(line["event"] == "Unknown log level, using INFO" and line["log_level"] == "VERBOSE" for line in lines)
