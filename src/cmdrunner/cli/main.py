"""CLI entry points for cmdrunner.

Implements click-based CLI
"""

import sys
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, NoReturn

import click
from dotenv import load_dotenv
from rich.console import Console

from cmdrunner.core.config import EXECUTOR_CHOICES, RunnerConfig, load_config
from cmdrunner.core.exceptions import (
    CommandRunnerException,
    ConfigurationError,
    format_error_for_user,
)
from cmdrunner.core.factory import create_runner
from cmdrunner.core.logger import CommandRunnerLogger
from cmdrunner.core.runner import CommandRunner, RunOutcome
from cmdrunner.tools.file_io import write_file

# Load .env file from current directory or parent directories
load_dotenv()

# stdout belongs to the commands being run
console = Console(stderr=True)


@dataclass
class CLIState:
    """Settings resolved by the top-level group."""

    config: RunnerConfig
    logger: CommandRunnerLogger

    def runner(self) -> CommandRunner:
        return create_runner(self.config, logger=self.logger)


def run_and_report(
    state: CLIState, operation: str, invoke: Callable[[CommandRunner], RunOutcome], **kv: Any
) -> NoReturn:
    """Run one command inside a logged operation, then exit with its verdict."""
    with state.logger.operation(operation, executor=state.config.executor, **kv) as result:
        try:
            outcome = invoke(state.runner())
        except CommandRunnerException as e:
            result["error_code"] = e.error_code
            console.print(f"[bold red]Error:[/bold red] {format_error_for_user(e)}")
            sys.exit(1)
        result["succeeded"] = outcome.succeeded
        if outcome.error is not None:
            result["error_code"] = outcome.error.error_code
    report_outcome(outcome)


def report_outcome(outcome: RunOutcome) -> NoReturn:
    """Print a one-line failure message and exit with the verdict."""
    if not outcome.succeeded:
        if outcome.error is not None:
            console.print(f"[bold red]Error:[/bold red] {format_error_for_user(outcome.error)}")
        sys.exit(1)
    sys.exit(0)


@click.group()
@click.version_option(version="0.1.0", prog_name="cmdrunner")
@click.option("--profile", "-p", default="default", help="Configuration profile")
@click.option(
    "--executor",
    "-e",
    type=click.Choice(EXECUTOR_CHOICES),
    default=None,
    help="Spawn backend (default: from CMDRUNNER_EXECUTOR or auto)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (default: from CMDRUNNER_LOG_LEVEL or WARNING)",
)
@click.pass_context
def cli(ctx: click.Context, profile: str, executor: str | None, log_level: str | None) -> None:
    """Run commands and report whether they succeeded.

    Exit status is 0 when the command ran and exited 0, 1 otherwise.
    """
    try:
        config = load_config(profile, Path.cwd())
        if executor:
            config = replace(config, executor=executor)
        if log_level:
            config = replace(config, log_level=log_level.upper())
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {format_error_for_user(e)}")
        sys.exit(1)

    ctx.obj = CLIState(config=config, logger=CommandRunnerLogger(level=config.log_level))


@cli.command()
@click.argument("command_line")
@click.pass_obj
def system(state: CLIState, command_line: str) -> None:
    """Run COMMAND_LINE through the platform shell.

    Examples:
        cmdrunner system "ls *.txt | wc -l"
    """
    run_and_report(
        state,
        "system",
        lambda runner: runner.execute(command_line, shell=True),
        command=command_line,
    )


@cli.command(
    "exec",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the program's stdout to this file (created or truncated)",
)
@click.argument("argv", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_obj
def exec_command(state: CLIState, output: str | None, argv: tuple[str, ...]) -> None:
    """Run PROGRAM (an absolute path) with ARGS, without a shell.

    Examples:
        cmdrunner exec /bin/echo hello
        cmdrunner exec --output /tmp/out.txt /bin/sh -c "echo home is $HOME"
    """
    run_and_report(
        state,
        "exec",
        lambda runner: runner.execute(argv, output_path=output),
        argv=list(argv),
        output_path=output,
    )


@cli.command()
@click.argument("writefile", type=click.Path(dir_okay=False))
@click.argument("writestr")
@click.pass_obj
def write(state: CLIState, writefile: str, writestr: str) -> None:
    """Write WRITESTR to WRITEFILE verbatim, replacing its contents.

    The directory holding WRITEFILE must already exist.
    """
    with state.logger.operation("write", path=writefile) as result:
        result["succeeded"] = write_file(writefile, writestr, logger=state.logger)
    if not result["succeeded"]:
        console.print(f"[bold red]Error:[/bold red] Could not write file {writefile}")
        sys.exit(1)


if __name__ == "__main__":
    cli()
