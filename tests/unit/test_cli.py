"""Tests for the click CLI."""

import json
import logging
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

from cmdrunner.cli.main import cli
from cmdrunner.core.logger import LOGGER_NAME

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX semantics")


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep config lookups and log files inside tmp_path."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    monkeypatch.setenv("CMDRUNNER_DISABLE_FILE_LOGGING", "1")
    for var in (
        "CMDRUNNER_EXECUTOR",
        "CMDRUNNER_SHELL",
        "CMDRUNNER_OUTPUT_MODE",
        "CMDRUNNER_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    root = logging.getLogger(LOGGER_NAME)
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


def python_args(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestExecCommand:
    def test_success(self):
        result = CliRunner().invoke(cli, ["exec", *python_args("pass")])
        assert result.exit_code == 0

    def test_non_zero_exit(self):
        result = CliRunner().invoke(cli, ["exec", *python_args("raise SystemExit(3)")])
        assert result.exit_code == 1
        assert "Command exited with status 3" in result.output

    def test_missing_program(self):
        result = CliRunner().invoke(cli, ["exec", "/nonexistent/program-xyz"])
        assert result.exit_code == 1
        assert "Cannot run '/nonexistent/program-xyz'" in result.output

    def test_output_redirect(self, tmp_path):
        out = tmp_path / "out.txt"
        code = "import sys; sys.stdout.write('hello')"

        result = CliRunner().invoke(cli, ["exec", "--output", str(out), *python_args(code)])

        assert result.exit_code == 0
        assert out.read_text() == "hello"

    def test_program_options_passed_through(self, tmp_path):
        """Test that options after the program belong to the program."""
        out = tmp_path / "out.txt"
        code = "import sys; sys.stdout.write(' '.join(sys.argv[1:]))"

        result = CliRunner().invoke(
            cli, ["exec", "-o", str(out), *python_args(code), "--output", "-v"]
        )

        assert result.exit_code == 0
        assert out.read_text() == "--output -v"

    def test_redirect_failure(self, tmp_path):
        out = tmp_path / "missing" / "out.txt"
        result = CliRunner().invoke(cli, ["exec", "-o", str(out), *python_args("pass")])

        assert result.exit_code == 1
        assert "Cannot redirect output" in result.output

    def test_requires_program(self):
        result = CliRunner().invoke(cli, ["exec"])
        assert result.exit_code == 2

    def test_executor_option(self, tmp_path):
        out = tmp_path / "out.txt"
        code = "import sys; sys.stdout.write('via subprocess')"

        result = CliRunner().invoke(
            cli, ["--executor", "subprocess", "exec", "-o", str(out), *python_args(code)]
        )

        assert result.exit_code == 0
        assert out.read_text() == "via subprocess"

    def test_error_logged_as_json(self):
        result = CliRunner().invoke(
            cli, ["--log-level", "error", "exec", *python_args("raise SystemExit(5)")]
        )

        assert result.exit_code == 1
        json_lines = [
            json.loads(line) for line in result.output.splitlines() if line.startswith("{")
        ]
        assert json_lines
        assert json_lines[0]["error"]["error_code"] == "E_EXIT_NONZERO"

    def test_operation_records_at_info(self):
        """Test that each invocation is wrapped in start and end records with its result."""
        result = CliRunner().invoke(
            cli, ["--log-level", "info", "exec", *python_args("raise SystemExit(2)")]
        )

        assert result.exit_code == 1
        records = [
            json.loads(line) for line in result.output.splitlines() if line.startswith("{")
        ]
        assert records[0]["message"] == "exec_start"
        end = records[-1]
        assert end["message"] == "exec_end"
        assert end["succeeded"] is False
        assert end["error_code"] == "E_EXIT_NONZERO"
        assert "duration_ms" in end


@posix_only
class TestSystemCommand:
    def test_true(self):
        assert CliRunner().invoke(cli, ["system", "true"]).exit_code == 0

    def test_false(self):
        assert CliRunner().invoke(cli, ["system", "false"]).exit_code == 1

    def test_unknown_command(self):
        result = CliRunner().invoke(cli, ["system", "nonexistent-command-xyz 2>/dev/null"])
        assert result.exit_code == 1

    def test_shell_redirection(self, tmp_path):
        out = tmp_path / "out.txt"
        result = CliRunner().invoke(cli, ["system", f"printf hi > '{out}'"])

        assert result.exit_code == 0
        assert out.read_text() == "hi"


class TestWriteCommand:
    def test_write(self, tmp_path):
        target = tmp_path / "file.txt"
        result = CliRunner().invoke(cli, ["write", str(target), "ios"])

        assert result.exit_code == 0
        assert target.read_text() == "ios"

    def test_write_operation_logged(self, tmp_path):
        target = tmp_path / "file.txt"
        result = CliRunner().invoke(cli, ["--log-level", "info", "write", str(target), "ios"])

        assert result.exit_code == 0
        records = [
            json.loads(line) for line in result.output.splitlines() if line.startswith("{")
        ]
        assert [r["message"] for r in records] == ["write_start", "write_end"]
        assert records[1]["succeeded"] is True

    def test_missing_directory(self, tmp_path):
        target = tmp_path / "missing" / "file.txt"
        result = CliRunner().invoke(cli, ["write", str(target), "ios"])

        assert result.exit_code == 1
        assert "Could not write file" in result.output

    def test_undecodable_argument_bytes(self, tmp_path):
        """Test that argv bytes click could not decode are written back unchanged."""
        target = tmp_path / "file.txt"
        result = CliRunner().invoke(cli, ["write", str(target), "caf\udce9"])

        assert result.exit_code == 0
        assert target.read_bytes() == b"caf\xe9"

    def test_unencodable_text_keeps_old_contents(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_bytes(b"previous")

        result = CliRunner().invoke(cli, ["write", str(target), "bad \ud800"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Could not write file" in result.output
        assert target.read_bytes() == b"previous"

    def test_wrong_argument_count(self, tmp_path):
        result = CliRunner().invoke(cli, ["write", str(tmp_path / "file.txt")])
        assert result.exit_code == 2


class TestConfiguration:
    def test_invalid_project_config(self, tmp_path):
        config_dir = tmp_path / ".cmdrunner"
        config_dir.mkdir()
        (config_dir / "config.json").write_text(json.dumps({"executor": "docker"}))

        result = CliRunner().invoke(cli, ["exec", *python_args("pass")])

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_wrongly_typed_project_config(self, tmp_path):
        config_dir = tmp_path / ".cmdrunner"
        config_dir.mkdir()
        (config_dir / "config.json").write_text(json.dumps({"log_level": 10}))

        result = CliRunner().invoke(cli, ["exec", *python_args("pass")])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Configuration error" in result.output
        assert "log_level" in result.output

    def test_project_config_used(self, tmp_path):
        config_dir = tmp_path / ".cmdrunner"
        config_dir.mkdir()
        (config_dir / "config.json").write_text(json.dumps({"output_mode": "600"}))
        out = tmp_path / "out.txt"

        result = CliRunner().invoke(cli, ["exec", "-o", str(out), *python_args("pass")])

        assert result.exit_code == 0
        if sys.platform != "win32":
            assert out.stat().st_mode & 0o777 == 0o600

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output
