"""Factories for executors and runners.

Central place that turns a ``RunnerConfig`` into a ready ``CommandRunner``.
Used by the CLI and by the module-level convenience functions.
"""

import os
from typing import TYPE_CHECKING

from cmdrunner.core.command_executor import DEFAULT_OUTPUT_MODE, CommandExecutor
from cmdrunner.core.config import RunnerConfig
from cmdrunner.core.exceptions import ConfigurationError
from cmdrunner.core.executors import ForkExecutor, SubprocessExecutor
from cmdrunner.core.logger import DiagnosticSink

if TYPE_CHECKING:
    from cmdrunner.core.runner import CommandRunner

_EXECUTORS: dict[str, type[CommandExecutor]] = {
    "fork": ForkExecutor,
    "subprocess": SubprocessExecutor,
}


def default_executor_name() -> str:
    """Return "fork" where the platform supports it, else "subprocess"."""
    return "fork" if hasattr(os, "fork") else "subprocess"


def create_executor(name: str = "auto", output_mode: int = DEFAULT_OUTPUT_MODE) -> CommandExecutor:
    """Create a command executor by name.

    Args:
        name: "auto", "fork" or "subprocess"
        output_mode: Permission bits for redirection files

    Returns:
        Executor instance

    Raises:
        ConfigurationError: If the name is unknown or unsupported on this platform
    """
    if name == "auto":
        name = default_executor_name()

    executor_class = _EXECUTORS.get(name)
    if executor_class is None:
        raise ConfigurationError(f"Unknown executor: {name}", key="executor")
    if executor_class is ForkExecutor and not hasattr(os, "fork"):
        raise ConfigurationError(
            "fork executor is not available on this platform",
            key="executor",
            reason="os.fork missing",
        )
    return executor_class(output_mode=output_mode)


def create_runner(
    config: RunnerConfig | None = None,
    logger: DiagnosticSink | None = None,
) -> "CommandRunner":
    """Create a CommandRunner from configuration.

    Args:
        config: Runner configuration (defaults to RunnerConfig())
        logger: Diagnostic sink (defaults to the "cmdrunner" stdlib logger)

    Returns:
        Configured CommandRunner
    """
    from cmdrunner.core.runner import CommandRunner

    config = config or RunnerConfig()
    executor = create_executor(config.executor, output_mode=config.output_mode)
    return CommandRunner(executor=executor, logger=logger, config=config)
