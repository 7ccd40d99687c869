"""Tests for formwright logging setup and formatters."""

import json
import logging
import sys
from pathlib import Path

import pytest

from formwright.runtime import logging as fw_logging
from formwright.runtime.logging import (
    LOG_FILE_NAME,
    ConsoleFormatter,
    JSONLFormatter,
    log_with_context,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logger():
    root = logging.getLogger("formwright")
    level = root.level
    yield
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def _record(
    level: int = logging.INFO, context: dict | None = None, exc_info=None
) -> logging.LogRecord:
    record = logging.LogRecord(
        name="formwright.runtime.workflow",
        level=level,
        pathname="workflow.py",
        lineno=42,
        msg="Form instance locked",
        args=(),
        exc_info=exc_info,
    )
    if context is not None:
        record.context = context
    return record


class TestJSONLFormatter:
    """Tests for JSONL output."""

    def test_basic_entry(self) -> None:
        entry = json.loads(JSONLFormatter().format(_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "formwright.runtime.workflow"
        assert entry["message"] == "Form instance locked"
        assert entry["timestamp"].endswith("+00:00")
        assert "context" not in entry
        assert "source" not in entry

    def test_context(self) -> None:
        entry = json.loads(JSONLFormatter().format(_record(context={"instance_id": "i-1"})))
        assert entry["context"] == {"instance_id": "i-1"}

    def test_warning_has_source(self) -> None:
        entry = json.loads(JSONLFormatter().format(_record(logging.WARNING)))
        assert entry["source"]["line"] == 42

    def test_exception(self) -> None:
        try:
            raise ValueError("bad value")
        except ValueError:
            exc_info = sys.exc_info()

        entry = json.loads(JSONLFormatter().format(_record(logging.ERROR, exc_info=exc_info)))
        assert entry["exception"] == {"type": "ValueError", "message": "bad value"}


class TestConsoleFormatter:
    def test_plain_output(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(fw_logging, "_NO_COLOR", True)
        line = ConsoleFormatter().format(_record(context={"instance_id": "i-1"}))

        assert "[runtime.workflow] Form instance locked (instance_id=i-1)" in line
        assert line.startswith("[")

    def test_level_shown_for_non_info(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(fw_logging, "_NO_COLOR", True)
        line = ConsoleFormatter().format(_record(logging.WARNING))
        assert "[runtime.workflow] WARNING: Form instance locked" in line


class TestSetupLogging:
    """Tests for handler configuration."""

    def test_console_only(self) -> None:
        assert setup_logging("debug") is None

        root = logging.getLogger("formwright")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)

    def test_unknown_level_name(self) -> None:
        setup_logging("chatty")
        assert logging.getLogger("formwright").level == logging.INFO

    def test_repeated_setup_replaces_handlers(self) -> None:
        setup_logging()
        setup_logging(json_output=True)

        root = logging.getLogger("formwright")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONLFormatter)

    def test_file_output(self, tmp_path: Path) -> None:
        log_file = setup_logging(logging.INFO, log_dir=tmp_path / "logs")

        assert log_file == tmp_path / "logs" / LOG_FILE_NAME
        log_with_context(
            logging.getLogger("formwright.runtime.workflow"),
            logging.INFO,
            "Signature recorded",
            {"instance_id": "i-1"},
            signatory_id="s-1",
        )
        for handler in logging.getLogger("formwright").handlers:
            handler.flush()

        entries = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert entries[-1]["message"] == "Signature recorded"
        assert entries[-1]["context"] == {"instance_id": "i-1", "signatory_id": "s-1"}


class TestLogWithContext:
    def test_without_context(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("formwright.test")
        with caplog.at_level(logging.INFO, logger="formwright"):
            log_with_context(logger, logging.INFO, "plain")

        assert caplog.records[-1].getMessage() == "plain"
        assert not hasattr(caplog.records[-1], "context")

    def test_kwargs_merge_into_context(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("formwright.test")
        with caplog.at_level(logging.INFO, logger="formwright"):
            log_with_context(logger, logging.INFO, "event", {"a": 1}, b=2)

        assert caplog.records[-1].context == {"a": 1, "b": 2}
