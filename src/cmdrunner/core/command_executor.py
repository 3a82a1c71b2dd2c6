"""Command execution abstraction for the runner.

Provides a pluggable interface for spawning a program, waiting for it and
reporting its decoded exit status. Backends differ in how they create the
child (fork/exec, subprocess) but share the data types defined here.
"""

import os
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from cmdrunner.core.exceptions import CommandSpecError

# Exit status of a child whose setup (redirection or exec) failed. Matches the
# shell's "command not found" convention; callers should not rely on it alone
# since executors report setup failures out of band.
SETUP_FAILURE_EXIT_CODE = 127

# rw-r--r--
DEFAULT_OUTPUT_MODE = 0o644

OUTPUT_OPEN_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_BINARY", 0)

CommandArg = str | os.PathLike[str]


@dataclass(frozen=True)
class CommandSpec:
    """Program path plus its full argument vector.

    ``argv[0]`` is the program to run and is passed through as the child's
    own ``argv[0]``. No PATH lookup is ever performed on it.
    """

    argv: tuple[str, ...]

    def __post_init__(self) -> None:
        if isinstance(self.argv, str | bytes):
            raise CommandSpecError("argv must be a sequence of strings, not a single string")
        normalized = tuple(_normalize_arg(arg) for arg in self.argv)
        if not normalized:
            raise CommandSpecError("argv must contain at least the program path")
        if not normalized[0]:
            raise CommandSpecError("program path (argv[0]) must not be empty", argv=normalized)
        object.__setattr__(self, "argv", normalized)

    @classmethod
    def from_args(cls, program: CommandArg, *args: CommandArg) -> "CommandSpec":
        """Build a spec from a program path followed by its arguments."""
        return cls(argv=(program, *args))

    @classmethod
    def coerce(cls, value: "CommandSpec | Sequence[CommandArg]") -> "CommandSpec":
        """Return ``value`` unchanged if it is a spec, otherwise wrap it."""
        if isinstance(value, CommandSpec):
            return value
        if isinstance(value, str | bytes):
            raise CommandSpecError("argv must be a sequence of strings, not a single string")
        return cls(argv=tuple(value))

    @property
    def program(self) -> str:
        return self.argv[0]

    @property
    def args(self) -> tuple[str, ...]:
        return self.argv[1:]

    def __str__(self) -> str:
        return " ".join(self.argv)


def _normalize_arg(arg: object) -> str:
    if isinstance(arg, os.PathLike):
        arg = os.fspath(arg)
    if not isinstance(arg, str):
        raise CommandSpecError(
            f"command arguments must be strings or os.PathLike, got {type(arg).__name__}"
        )
    return arg


@dataclass(frozen=True)
class ExitStatus:
    """Decoded termination status of a child process.

    Attributes:
        exit_code: Code passed to exit() for a normal exit, None if signaled
        signal: Terminating signal number, None for a normal exit
        core_dumped: Whether the signaled process dumped core
    """

    exit_code: int | None = None
    signal: int | None = None
    core_dumped: bool = False

    @property
    def exited_normally(self) -> bool:
        return self.signal is None and self.exit_code is not None

    @property
    def succeeded(self) -> bool:
        return self.exited_normally and self.exit_code == 0

    @classmethod
    def from_wait_status(cls, status: int) -> "ExitStatus":
        """Decode a raw status as returned by ``os.waitpid`` (POSIX only)."""
        if os.WIFSIGNALED(status):
            return cls(signal=os.WTERMSIG(status), core_dumped=os.WCOREDUMP(status))
        if os.WIFEXITED(status):
            return cls(exit_code=os.WEXITSTATUS(status))
        raise ValueError(f"wait status {status:#x} does not describe a terminated process")

    @classmethod
    def from_returncode(cls, returncode: int) -> "ExitStatus":
        """Decode a ``Popen.returncode``; negative values mean killed by signal."""
        if returncode < 0:
            return cls(signal=-returncode)
        return cls(exit_code=returncode)

    def describe(self) -> str:
        if self.signal is not None:
            suffix = " (core dumped)" if self.core_dumped else ""
            return f"killed by signal {self.signal}{suffix}"
        return f"exited with status {self.exit_code}"


class CommandExecutor(ABC):
    """Abstract interface for spawning a command and waiting for it.

    Implementations block until the child terminates and return its decoded
    status. They raise ``ResourceExhaustionError``, ``LaunchFailureError``
    (or its ``RedirectionError`` subclass) and ``WaitFailureError``; judging
    the returned status is left to the caller.
    """

    def __init__(self, output_mode: int = DEFAULT_OUTPUT_MODE) -> None:
        """Initialize executor.

        Args:
            output_mode: Permission bits for redirection targets created by a run
        """
        self.output_mode = output_mode

    @abstractmethod
    def run_argv(self, spec: CommandSpec, output_path: str | None = None) -> ExitStatus:
        """Run ``spec.program`` with ``spec.argv``, without a shell.

        Args:
            spec: Program path and argument vector
            output_path: File that receives the child's stdout (created or
                truncated), or None to inherit the caller's stdout

        Returns:
            Decoded exit status of the child

        Raises:
            ResourceExhaustionError: If the child could not be created
            LaunchFailureError: If the program could not be started
            RedirectionError: If the output file could not be set up
            WaitFailureError: If the child's termination could not be observed
        """
        ...

    @abstractmethod
    def run_shell(self, command_line: str, shell: str | None = None) -> ExitStatus:
        """Run ``command_line`` through the platform command interpreter.

        Args:
            command_line: Command passed verbatim to the interpreter
            shell: Interpreter path overriding the platform default

        Returns:
            Decoded exit status of the interpreter
        """
        ...

    @abstractmethod
    def get_name(self) -> str:
        """Get executor name for logging/debugging."""
        ...
