"""Unit tests for structured JSON logging and diagnostic sinks."""

import json
import logging
import time
from pathlib import Path

import pytest

from cmdrunner.core.logger import (
    LOGGER_NAME,
    CommandRunnerLogger,
    DiagnosticSink,
    JSONFormatter,
    StdlibSink,
)


@pytest.fixture
def temp_log_dir(tmp_path):
    """Create temporary log directory."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    return log_dir


@pytest.fixture
def logger(temp_log_dir):
    """Create logger with temporary directory."""
    logger = CommandRunnerLogger(log_dir=str(temp_log_dir), level="DEBUG")
    yield logger
    logger.close()


@pytest.fixture(autouse=True)
def reset_handlers():
    """Detach handlers so later tests do not write to closed streams."""
    yield
    root = logging.getLogger(LOGGER_NAME)
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


def read_log_lines(log_file):
    """Read and parse JSON log lines."""
    if not log_file.exists():
        return []

    lines = []
    with log_file.open() as f:
        for line in f:
            if line.strip():
                lines.append(json.loads(line))
    return lines


def test_logger_initialization(temp_log_dir):
    """Test logger initialization creates log directory and file."""
    logger = CommandRunnerLogger(log_dir=str(temp_log_dir))

    assert temp_log_dir.exists()
    assert logger.log_file == temp_log_dir / "cmdrunner.log"


def test_logger_default_directory(tmp_path, monkeypatch):
    """Test logger uses default ~/.cmdrunner/logs directory."""
    fake_home = tmp_path / "fake_home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.delenv("CMDRUNNER_DISABLE_FILE_LOGGING", raising=False)

    logger = CommandRunnerLogger()

    expected_dir = Path("~/.cmdrunner/logs").expanduser()
    assert logger.log_dir == expected_dir
    assert expected_dir.exists()


def test_levels_written(logger):
    """Test each level method writes a record with the right level."""
    logger.debug("d")
    logger.info("i")
    logger.error("e")

    lines = read_log_lines(logger.log_file)
    assert [line["level"] for line in lines] == ["DEBUG", "INFO", "ERROR"]
    assert [line["message"] for line in lines] == ["d", "i", "e"]


def test_structured_logging_with_kv_pairs(logger):
    """Test structured logging with key-value pairs."""
    logger.error("command failed", argv=["/bin/false"], exit_code=1)

    lines = read_log_lines(logger.log_file)
    assert len(lines) == 1
    assert lines[0]["argv"] == ["/bin/false"]
    assert lines[0]["exit_code"] == 1


def test_non_json_values_are_stringified(logger, tmp_path):
    """Test that values json cannot encode are logged as strings."""
    logger.info("path", path=tmp_path)

    lines = read_log_lines(logger.log_file)
    assert lines[0]["path"] == str(tmp_path)


def test_log_level_filtering(logger):
    """Test log level filtering."""
    logger.set_level("ERROR")

    logger.debug("Debug message")
    logger.info("Info message")
    logger.error("Error message")

    lines = read_log_lines(logger.log_file)
    assert len(lines) == 1
    assert lines[0]["level"] == "ERROR"


def test_set_level_with_warn_alias(logger):
    """Test that 'WARN' is accepted as alias for 'WARNING'."""
    logger.set_level("WARN")

    logger.info("Info")
    logger.error("Error")

    lines = read_log_lines(logger.log_file)
    assert [line["level"] for line in lines] == ["ERROR"]


def test_log_level_from_env(temp_log_dir, monkeypatch):
    """Test log level configuration from CMDRUNNER_LOG_LEVEL."""
    monkeypatch.setenv("CMDRUNNER_LOG_LEVEL", "ERROR")

    logger = CommandRunnerLogger(log_dir=str(temp_log_dir))
    logger.info("Info message")
    logger.error("Error message")

    lines = read_log_lines(logger.log_file)
    assert len(lines) == 1
    assert lines[0]["level"] == "ERROR"


def test_operation_context_manager(logger):
    """Test operation context manager with automatic timing."""
    with logger.operation("exec", argv=["/bin/true"]):
        time.sleep(0.02)

    lines = read_log_lines(logger.log_file)
    assert [line["message"] for line in lines] == ["exec_start", "exec_end"]
    assert [line["level"] for line in lines] == ["INFO", "INFO"]
    assert lines[1]["argv"] == ["/bin/true"]
    assert lines[1]["duration_ms"] >= 10


def test_operation_result_fields_in_end_record(logger):
    """Test that fields stored in the yielded dict reach the end record only."""
    with logger.operation("write", path="/tmp/x") as result:
        result["succeeded"] = False
        result["error_code"] = "E_REDIRECT"

    start, end = read_log_lines(logger.log_file)
    assert "succeeded" not in start
    assert end["succeeded"] is False
    assert end["error_code"] == "E_REDIRECT"
    assert end["path"] == "/tmp/x"


def test_operation_context_manager_with_exception(logger):
    """Test operation context manager logs end even on exception."""
    with pytest.raises(ValueError):
        with logger.operation("failing_operation"):
            raise ValueError("Test error")

    lines = read_log_lines(logger.log_file)
    assert [line["message"] for line in lines] == [
        "failing_operation_start",
        "failing_operation_end",
    ]


def test_operation_logs_end_on_system_exit(logger):
    """Test that a CLI-style sys.exit inside the block still closes the operation."""
    with pytest.raises(SystemExit):
        with logger.operation("system") as result:
            result["succeeded"] = False
            raise SystemExit(1)

    lines = read_log_lines(logger.log_file)
    assert lines[-1]["message"] == "system_end"
    assert lines[-1]["succeeded"] is False


def test_reinitializing_replaces_handlers(temp_log_dir):
    """Test that a second logger does not duplicate records."""
    CommandRunnerLogger(log_dir=str(temp_log_dir), level="DEBUG")
    logger = CommandRunnerLogger(log_dir=str(temp_log_dir), level="DEBUG")

    logger.error("once")

    assert len(read_log_lines(logger.log_file)) == 1


def test_json_formatter():
    """Test JSON formatter formats records correctly."""
    formatter = JSONFormatter()
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg="Test message",
        args=(),
        exc_info=None,
    )
    record.kv = {"key1": "value1", "key2": 42}

    data = json.loads(formatter.format(record))

    assert data["level"] == "INFO"
    assert data["message"] == "Test message"
    assert data["key1"] == "value1"
    assert data["key2"] == 42
    assert data["timestamp"].endswith("Z")
    assert len(data["timestamp"]) == 24


def test_disable_file_logging_via_env(monkeypatch):
    """Test that CMDRUNNER_DISABLE_FILE_LOGGING disables file logging."""
    monkeypatch.setenv("CMDRUNNER_DISABLE_FILE_LOGGING", "1")

    logger = CommandRunnerLogger()

    assert logger.log_dir is None
    assert logger.log_file is None
    logger.error("still goes to the console")


def test_console_handler_writes_to_stderr(monkeypatch, capsys):
    """Test that console output never lands on stdout."""
    monkeypatch.setenv("CMDRUNNER_DISABLE_FILE_LOGGING", "1")

    logger = CommandRunnerLogger(level="ERROR")
    logger.error("visible")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert json.loads(captured.err.strip())["message"] == "visible"


class TestStdlibSink:
    """Test the default diagnostic sink."""

    def test_satisfies_protocol(self, logger):
        assert isinstance(StdlibSink(), DiagnosticSink)
        assert isinstance(logger, DiagnosticSink)

    def test_forwards_kv_to_configured_logger(self, logger):
        """Test that sink records reach CommandRunnerLogger's handlers with their fields."""
        StdlibSink().error("command failed", exit_code=2)

        lines = read_log_lines(logger.log_file)
        assert lines[0]["message"] == "command failed"
        assert lines[0]["exit_code"] == 2

    def test_uses_standard_logging(self, caplog, monkeypatch):
        """Test that the sink logs through the 'cmdrunner' logger."""
        monkeypatch.setattr(logging.getLogger(LOGGER_NAME), "propagate", True)
        with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
            StdlibSink().debug("hello", argv=["/bin/true"])

        assert caplog.records[0].getMessage() == "hello"
        assert caplog.records[0].kv == {"argv": ["/bin/true"]}
