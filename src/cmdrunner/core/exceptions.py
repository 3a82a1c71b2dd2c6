"""Exception hierarchy with error codes for the command runner.

Every way a run can fail has its own exception type and error code. The
boolean entry points collapse all of them to ``False``; ``CommandRunner.execute``
hands them back for callers that need the distinction.
"""

from dataclasses import dataclass, field
from typing import Any

# Error codes, one per failure kind
E_VALIDATION = "E_VALIDATION"
E_RESOURCE = "E_RESOURCE"
E_LAUNCH = "E_LAUNCH"
E_REDIRECT = "E_REDIRECT"
E_WAIT = "E_WAIT"
E_SIGNALED = "E_SIGNALED"
E_EXIT_NONZERO = "E_EXIT_NONZERO"


@dataclass
class CommandRunnerException(Exception):  # noqa: N818
    """Base exception for all command runner errors.

    Provides structured error handling with error codes and metadata for
    consistent error reporting and logging.
    """

    message: str
    error_code: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Return human-readable error message."""
        return self.message

    def __post_init__(self) -> None:
        """Initialize the exception with the message."""
        super().__init__(self.message)


@dataclass
class CommandSpecError(CommandRunnerException, ValueError):
    """Argument vector is empty or has an empty program element."""

    argv: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.error_code:
            self.error_code = E_VALIDATION
        if self.argv:
            self.metadata["argv"] = list(self.argv)
        super().__post_init__()


@dataclass
class ProcessError(CommandRunnerException):
    """Error tied to a specific program invocation.

    Attributes:
        program: Program path (or shell) that was being run
        errno: OS error number when the failure came from a system call
    """

    program: str = ""
    errno: int | None = None

    def __post_init__(self) -> None:
        if self.program:
            self.metadata["program"] = self.program
        if self.errno is not None:
            self.metadata["errno"] = self.errno
        super().__post_init__()


@dataclass
class ResourceExhaustionError(ProcessError):
    """Process creation failed; no child exists."""

    def __post_init__(self) -> None:
        if not self.error_code:
            self.error_code = E_RESOURCE
        super().__post_init__()


@dataclass
class LaunchFailureError(ProcessError):
    """Child was created but the target program could not be started.

    Covers missing programs, non-executable files and bad executable formats.
    """

    def __post_init__(self) -> None:
        if not self.error_code:
            self.error_code = E_LAUNCH
        super().__post_init__()


@dataclass
class RedirectionError(LaunchFailureError):
    """Output file could not be opened or bound as the child's stdout."""

    output_path: str = ""

    def __post_init__(self) -> None:
        if not self.error_code:
            self.error_code = E_REDIRECT
        if self.output_path:
            self.metadata["output_path"] = self.output_path
        super().__post_init__()


@dataclass
class WaitFailureError(ProcessError):
    """Termination of the child could not be observed."""

    pid: int | None = None

    def __post_init__(self) -> None:
        if not self.error_code:
            self.error_code = E_WAIT
        if self.pid is not None:
            self.metadata["pid"] = self.pid
        super().__post_init__()


@dataclass
class AbnormalTerminationError(ProcessError):
    """Child was terminated by an uncaught signal."""

    signal: int = 0
    core_dumped: bool = False

    def __post_init__(self) -> None:
        if not self.error_code:
            self.error_code = E_SIGNALED
        if self.signal:
            self.metadata["signal"] = self.signal
        if self.core_dumped:
            self.metadata["core_dumped"] = True
        super().__post_init__()


@dataclass
class NonZeroExitError(ProcessError):
    """Child ran to completion and returned a non-zero status."""

    exit_code: int = 0

    def __post_init__(self) -> None:
        if not self.error_code:
            self.error_code = E_EXIT_NONZERO
        self.metadata["exit_code"] = self.exit_code
        super().__post_init__()


@dataclass
class ConfigurationError(CommandRunnerException):
    """Error in runner configuration.

    Raised for invalid config values or unreadable configuration files.
    """

    key: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        if not self.error_code:
            self.error_code = E_VALIDATION
        if self.key:
            self.metadata["config_key"] = self.key
        if self.reason:
            self.metadata["reason"] = self.reason
        super().__post_init__()


def format_error_for_user(exception: CommandRunnerException) -> str:
    """Format exception for user-friendly display.

    Args:
        exception: The command runner exception to format

    Returns:
        One-line message without internal details
    """
    if isinstance(exception, RedirectionError):
        if exception.output_path:
            return f"Cannot redirect output to '{exception.output_path}': {exception.message}"
        return f"Output redirection failed: {exception.message}"

    if isinstance(exception, LaunchFailureError):
        if exception.program:
            return f"Cannot run '{exception.program}': {exception.message}"
        return f"Launch failed: {exception.message}"

    if isinstance(exception, NonZeroExitError):
        return f"Command exited with status {exception.exit_code}"

    if isinstance(exception, AbnormalTerminationError):
        return f"Command killed by signal {exception.signal}"

    if isinstance(exception, ResourceExhaustionError):
        return f"Could not create process: {exception.message}"

    if isinstance(exception, WaitFailureError):
        return f"Could not wait for process: {exception.message}"

    if isinstance(exception, ConfigurationError):
        if exception.key:
            return f"Configuration error '{exception.key}': {exception.message}"
        return f"Configuration error: {exception.message}"

    return str(exception.message)


def format_error_for_log(exception: CommandRunnerException) -> dict[str, Any]:
    """Format exception for structured logging.

    Args:
        exception: The command runner exception to format

    Returns:
        Dictionary with structured error information for logs
    """
    log_data: dict[str, Any] = {
        "error_type": type(exception).__name__,
        "message": exception.message,
        "error_code": exception.error_code,
    }

    if exception.metadata:
        log_data["metadata"] = exception.metadata

    return log_data
