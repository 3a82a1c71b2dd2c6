"""
cmdrunner

Run a command as a shell line or as an argument vector, wait for it,
optionally send its stdout to a file, and get back a single verdict.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from cmdrunner.core.command_executor import CommandSpec, ExitStatus
from cmdrunner.core.config import RunnerConfig
from cmdrunner.core.exceptions import (
    AbnormalTerminationError,
    CommandRunnerException,
    CommandSpecError,
    ConfigurationError,
    LaunchFailureError,
    NonZeroExitError,
    RedirectionError,
    ResourceExhaustionError,
    WaitFailureError,
)
from cmdrunner.core.factory import create_executor, create_runner
from cmdrunner.core.runner import (
    CommandRunner,
    RunOutcome,
    argv_exec,
    argv_exec_redirected,
    shell_exec,
)
from cmdrunner.tools.file_io import write_file

__all__ = [
    # Version
    "__version__",
    # Runner
    "CommandRunner",
    "CommandSpec",
    "ExitStatus",
    "RunOutcome",
    "RunnerConfig",
    "create_executor",
    "create_runner",
    # Entry points
    "shell_exec",
    "argv_exec",
    "argv_exec_redirected",
    "write_file",
    # Exceptions
    "CommandRunnerException",
    "CommandSpecError",
    "ConfigurationError",
    "ResourceExhaustionError",
    "LaunchFailureError",
    "RedirectionError",
    "WaitFailureError",
    "AbnormalTerminationError",
    "NonZeroExitError",
]
