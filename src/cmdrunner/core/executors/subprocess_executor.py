"""Subprocess-based command executor.

Portable backend built on ``subprocess.Popen``. Works wherever Python runs,
including platforms without ``fork``. The redirection target is opened by
the parent with the same flags and mode the fork backend uses and handed to
the child as its stdout.
"""

import errno
import os
import subprocess
import sys

from cmdrunner.core.command_executor import (
    OUTPUT_OPEN_FLAGS,
    CommandExecutor,
    CommandSpec,
    ExitStatus,
)
from cmdrunner.core.exceptions import (
    LaunchFailureError,
    RedirectionError,
    ResourceExhaustionError,
    WaitFailureError,
)

# fork/clone failures inside Popen, as opposed to exec failures
_RESOURCE_ERRNOS = frozenset({errno.EAGAIN, errno.ENOMEM, errno.EMFILE, errno.ENFILE})


class SubprocessExecutor(CommandExecutor):
    """Execute commands using subprocess.Popen."""

    def get_name(self) -> str:
        """Get executor name."""
        return "subprocess"

    def run_shell(self, command_line: str, shell: str | None = None) -> ExitStatus:
        """Run ``command_line`` with ``shell=True``.

        Uses ``/bin/sh`` on POSIX and ``COMSPEC`` on Windows unless ``shell``
        names another interpreter.
        """
        process = self._spawn(
            command_line,
            program=shell or ("cmd.exe" if sys.platform == "win32" else "/bin/sh"),
            shell=True,
            executable=shell,
        )
        return self._wait(process)

    def run_argv(self, spec: CommandSpec, output_path: str | None = None) -> ExitStatus:
        """Run ``spec`` directly, optionally with stdout sent to ``output_path``.

        Args:
            spec: Program path and argument vector
            output_path: File that receives the child's stdout, or None

        Returns:
            Decoded exit status of the child

        Raises:
            ResourceExhaustionError: If the child could not be created
            LaunchFailureError: If the program could not be started
            RedirectionError: If the output file could not be opened
            WaitFailureError: If the child could not be waited on
        """
        stdout_fd: int | None = None
        if output_path is not None:
            try:
                stdout_fd = os.open(output_path, OUTPUT_OPEN_FLAGS, self.output_mode)
            except OSError as e:
                raise RedirectionError(
                    f"Failed to open output file: {e.strerror}",
                    program=spec.program,
                    errno=e.errno,
                    output_path=output_path,
                ) from e

        # Popen dups stdout_fd into the child; the parent copy is released
        # as soon as the child exists (or failed to).
        try:
            process = self._spawn(
                list(spec.argv),
                program=spec.program,
                executable=_no_path_lookup(spec.program),
                stdout=stdout_fd,
            )
        finally:
            if stdout_fd is not None:
                os.close(stdout_fd)
        return self._wait(process)

    def _spawn(
        self,
        args: str | list[str],
        program: str,
        shell: bool = False,
        executable: str | None = None,
        stdout: int | None = None,
    ) -> subprocess.Popen[bytes]:
        try:
            return subprocess.Popen(  # noqa: S603
                args,
                executable=executable,
                shell=shell,
                stdout=stdout,
                close_fds=True,
            )
        except OSError as e:
            if e.errno in _RESOURCE_ERRNOS:
                raise ResourceExhaustionError(
                    f"Failed to create process: {e.strerror}",
                    program=program,
                    errno=e.errno,
                ) from e
            raise LaunchFailureError(
                f"Failed to execute program: {e.strerror or e}",
                program=program,
                errno=e.errno,
            ) from e
        except (ValueError, subprocess.SubprocessError) as e:
            raise LaunchFailureError(
                f"Failed to execute program: {e}",
                program=program,
            ) from e

    def _wait(self, process: subprocess.Popen[bytes]) -> ExitStatus:
        try:
            returncode = process.wait()
        except OSError as e:
            raise WaitFailureError(
                f"Failed to wait for child: {e.strerror}",
                program=str(process.args),
                errno=e.errno,
                pid=process.pid,
            ) from e
        return ExitStatus.from_returncode(returncode)


def _no_path_lookup(program: str) -> str:
    """Make Popen treat a bare name as relative to the cwd, like execv does."""
    if sys.platform == "win32" or os.path.dirname(program):
        return program
    return os.path.join(os.curdir, program)
