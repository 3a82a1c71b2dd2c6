"""Core modules for cmdrunner.

Contains the command and exit status types, the executor
backends, the runner that judges exit status, plus exceptions, logging and
configuration.
"""

from .command_executor import (
    DEFAULT_OUTPUT_MODE,
    SETUP_FAILURE_EXIT_CODE,
    CommandExecutor,
    CommandSpec,
    ExitStatus,
)
from .exceptions import (
    # Error codes
    E_EXIT_NONZERO,
    E_LAUNCH,
    E_REDIRECT,
    E_RESOURCE,
    E_SIGNALED,
    E_VALIDATION,
    E_WAIT,
    AbnormalTerminationError,
    CommandRunnerException,
    CommandSpecError,
    ConfigurationError,
    LaunchFailureError,
    NonZeroExitError,
    ProcessError,
    RedirectionError,
    ResourceExhaustionError,
    WaitFailureError,
    format_error_for_log,
    format_error_for_user,
)
from .logger import CommandRunnerLogger, DiagnosticSink, StdlibSink
from .runner import CommandRunner, RunOutcome

__all__ = [
    # Constants
    "DEFAULT_OUTPUT_MODE",
    "SETUP_FAILURE_EXIT_CODE",
    # Error codes
    "E_EXIT_NONZERO",
    "E_LAUNCH",
    "E_REDIRECT",
    "E_RESOURCE",
    "E_SIGNALED",
    "E_VALIDATION",
    "E_WAIT",
    # Exception classes
    "AbnormalTerminationError",
    "CommandRunnerException",
    "CommandSpecError",
    "ConfigurationError",
    "LaunchFailureError",
    "NonZeroExitError",
    "ProcessError",
    "RedirectionError",
    "ResourceExhaustionError",
    "WaitFailureError",
    # Execution
    "CommandExecutor",
    "CommandRunner",
    "CommandSpec",
    "ExitStatus",
    "RunOutcome",
    # Logging
    "CommandRunnerLogger",
    "DiagnosticSink",
    "StdlibSink",
    # Error formatting utilities
    "format_error_for_log",
    "format_error_for_user",
]
