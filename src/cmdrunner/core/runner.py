"""Command runner: run a command, wait for it, report one verdict.

Three entry points share one spawn/wait/judge sequence:

- ``run_shell``: command line handed to the platform interpreter
- ``run_argv``: absolute program path plus argument vector, no shell
- ``run_argv_redirected``: same as ``run_argv`` with stdout sent to a file

Each returns ``True`` only when the child exited normally with status 0.
Every failure (spawn, launch, redirection, wait, signal, non-zero exit) is
logged through the diagnostic sink and collapses to ``False``. ``execute``
returns the full ``RunOutcome`` for callers that need the detail.
"""

import os
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from cmdrunner.core.command_executor import CommandArg, CommandExecutor, CommandSpec, ExitStatus
from cmdrunner.core.config import RunnerConfig
from cmdrunner.core.exceptions import (
    AbnormalTerminationError,
    CommandRunnerException,
    CommandSpecError,
    NonZeroExitError,
    format_error_for_log,
    format_error_for_user,
)
from cmdrunner.core.factory import create_executor
from cmdrunner.core.logger import DiagnosticSink, StdlibSink

ArgvLike = CommandSpec | Sequence[CommandArg]


@dataclass
class RunOutcome:
    """Everything observed about one run.

    Attributes:
        succeeded: The boolean verdict
        status: Decoded exit status, None if the child never ran to termination
        error: Failure cause, None on success
        duration_ms: Wall time from spawn to verdict
    """

    succeeded: bool
    status: ExitStatus | None = None
    error: CommandRunnerException | None = None
    duration_ms: int = 0

    def __bool__(self) -> bool:
        return self.succeeded


class CommandRunner:
    """Spawn commands synchronously and judge their exit status.

    Holds no per-call state, so one instance can serve several threads.
    """

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        logger: DiagnosticSink | None = None,
        config: RunnerConfig | None = None,
    ) -> None:
        """Initialize runner.

        Args:
            executor: Spawn backend (defaults to the one named by config)
            logger: Diagnostic sink (defaults to the "cmdrunner" stdlib logger)
            config: Runner configuration (defaults to RunnerConfig())
        """
        self.config = config or RunnerConfig()
        self.executor = executor or create_executor(
            self.config.executor, output_mode=self.config.output_mode
        )
        self.logger = logger or StdlibSink()

    def run_shell(self, command_line: str) -> bool:
        """Run ``command_line`` through the platform shell; True on exit status 0."""
        return self.execute(command_line, shell=True).succeeded

    def run_argv(self, argv: ArgvLike) -> bool:
        """Run ``argv[0]`` with ``argv`` and no shell; True on exit status 0."""
        return self.execute(argv).succeeded

    def run_argv_redirected(self, output_path: str | os.PathLike[str], argv: ArgvLike) -> bool:
        """Like ``run_argv`` with the child's stdout written to ``output_path``.

        The file is created if missing and truncated otherwise, so after a
        successful run it holds exactly what the program wrote to stdout.
        """
        return self.execute(argv, output_path=output_path).succeeded

    def execute(
        self,
        command: str | ArgvLike,
        output_path: str | os.PathLike[str] | None = None,
        *,
        shell: bool = False,
    ) -> RunOutcome:
        """Run a command and return the detailed outcome.

        Args:
            command: Command line when ``shell`` is set, argument vector otherwise
            output_path: Redirection target for stdout (argument vectors only)
            shell: Pass ``command`` to the platform interpreter

        Returns:
            RunOutcome with verdict, decoded status and failure cause

        Raises:
            CommandSpecError: If the command is malformed. This is a caller
                bug, not a run failure, so it is not folded into the verdict.
        """
        invoke, program, kv = self._prepare(command, output_path, shell)

        self.logger.debug("command_start", executor=self.executor.get_name(), **kv)
        start_time = time.monotonic()
        status: ExitStatus | None = None
        try:
            status = invoke()
            _check_status(status, program)
        except CommandRunnerException as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            self.logger.error(
                format_error_for_user(e),
                duration_ms=duration_ms,
                error=format_error_for_log(e),
                **kv,
            )
            return RunOutcome(succeeded=False, status=status, error=e, duration_ms=duration_ms)

        duration_ms = int((time.monotonic() - start_time) * 1000)
        self.logger.debug("command_end", duration_ms=duration_ms, exit_code=0, **kv)
        return RunOutcome(succeeded=True, status=status, duration_ms=duration_ms)

    def _prepare(
        self,
        command: str | ArgvLike,
        output_path: str | os.PathLike[str] | None,
        shell: bool,
    ) -> tuple[Callable[[], ExitStatus], str, dict[str, object]]:
        if shell:
            if not isinstance(command, str):
                raise CommandSpecError("shell commands must be given as a single string")
            if output_path is not None:
                raise CommandSpecError(
                    "output_path is not supported for shell commands; "
                    "use the shell's own redirection"
                )
            interpreter = self.config.shell or None
            return (
                lambda: self.executor.run_shell(command, shell=interpreter),
                interpreter or "shell",
                {"mode": "shell", "command": command},
            )

        spec = CommandSpec.coerce(command)
        target = os.fspath(output_path) if output_path is not None else None
        kv: dict[str, object] = {"mode": "argv", "argv": list(spec.argv)}
        if target is not None:
            kv["mode"] = "argv_redirected"
            kv["output_path"] = target
        return (lambda: self.executor.run_argv(spec, target), spec.program, kv)


def _check_status(status: ExitStatus, program: str) -> None:
    if status.signal is not None:
        raise AbnormalTerminationError(
            f"Command {status.describe()}",
            program=program,
            signal=status.signal,
            core_dumped=status.core_dumped,
        )
    if status.exit_code != 0:
        raise NonZeroExitError(
            f"Command {status.describe()}",
            program=program,
            exit_code=status.exit_code or 0,
        )


def shell_exec(command_line: str, logger: DiagnosticSink | None = None) -> bool:
    """Run ``command_line`` through the platform shell with default settings."""
    return CommandRunner(logger=logger).run_shell(command_line)


def argv_exec(argv: ArgvLike, logger: DiagnosticSink | None = None) -> bool:
    """Run an absolute program path with its arguments, no shell."""
    return CommandRunner(logger=logger).run_argv(argv)


def argv_exec_redirected(
    output_path: str | os.PathLike[str],
    argv: ArgvLike,
    logger: DiagnosticSink | None = None,
) -> bool:
    """Run a program with its stdout written to ``output_path``."""
    return CommandRunner(logger=logger).run_argv_redirected(output_path, argv)
