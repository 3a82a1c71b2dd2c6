"""Fork/exec command executor (POSIX).

The child is created with ``os.fork``, sets up its own stdout if asked to,
then replaces itself with the target program via ``os.execv``. Any failure
in the child after the fork is written to a close-on-exec status pipe and
the child leaves through ``os._exit`` so it can never run the parent's code.
"""

import contextlib
import errno
import os
from typing import NoReturn

from cmdrunner.core.command_executor import (
    OUTPUT_OPEN_FLAGS,
    SETUP_FAILURE_EXIT_CODE,
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

DEFAULT_SHELL = "/bin/sh"

STAGE_REDIRECT = "redirect"
STAGE_EXEC = "exec"


class ForkExecutor(CommandExecutor):
    """Spawn commands with fork, execv and waitpid.

    Safe to share between threads: every call owns its pipe and pid. Forking
    a multi-threaded process copies only the calling thread, so the child
    sticks to raw ``os`` calls until ``execv``. Python 3.12+ still emits a
    ``DeprecationWarning`` for such forks; programs that run commands from
    many threads can pick the "subprocess" executor, whose spawn happens in
    C without running Python code in the child.
    """

    def get_name(self) -> str:
        """Get executor name."""
        return "fork"

    def run_shell(self, command_line: str, shell: str | None = None) -> ExitStatus:
        """Run ``command_line`` as ``<shell> -c <command_line>``."""
        return self.run_argv(CommandSpec.from_args(shell or DEFAULT_SHELL, "-c", command_line))

    def run_argv(self, spec: CommandSpec, output_path: str | None = None) -> ExitStatus:
        """Fork, set up and exec the child, then wait for it.

        Args:
            spec: Program path and argument vector
            output_path: File that receives the child's stdout, or None

        Returns:
            Decoded exit status of the child

        Raises:
            ResourceExhaustionError: If fork failed
            LaunchFailureError: If execv failed in the child
            RedirectionError: If the child could not open or bind the output file
            WaitFailureError: If waitpid failed
        """
        # os.pipe() descriptors are close-on-exec, so a successful execv
        # closes the write end and the parent reads EOF.
        try:
            status_read, status_write = os.pipe()
        except OSError as e:
            raise ResourceExhaustionError(
                f"Failed to create status pipe: {e.strerror}",
                program=spec.program,
                errno=e.errno,
            ) from e

        argv = list(spec.argv)
        try:
            pid = os.fork()
        except OSError as e:
            os.close(status_read)
            os.close(status_write)
            raise ResourceExhaustionError(
                f"Failed to fork: {e.strerror}",
                program=spec.program,
                errno=e.errno,
            ) from e

        if pid == 0:
            self._exec_child(spec.program, argv, output_path, status_read, status_write)

        os.close(status_write)
        try:
            report = _read_until_eof(status_read)
        finally:
            os.close(status_read)
            wait_status = self._wait(pid, spec.program)

        if report:
            raise _child_setup_error(report, spec, output_path)
        return wait_status

    def _exec_child(
        self,
        program: str,
        argv: list[str],
        output_path: str | None,
        status_read: int,
        status_write: int,
    ) -> NoReturn:
        """Child side of the fork. Never returns."""
        stage = STAGE_EXEC
        err = 0
        try:
            os.close(status_read)
            if output_path is not None:
                stage = STAGE_REDIRECT
                self._redirect_stdout(output_path)
                stage = STAGE_EXEC
            os.execv(program, argv)
        except OSError as e:
            err = e.errno or 0
        finally:
            with contextlib.suppress(OSError):
                os.write(status_write, f"{stage}:{err}".encode("ascii"))
            os._exit(SETUP_FAILURE_EXIT_CODE)

    def _redirect_stdout(self, output_path: str) -> None:
        fd = os.open(output_path, OUTPUT_OPEN_FLAGS, self.output_mode)
        if fd == 1:
            # stdout was closed and open() reused its slot
            os.set_inheritable(fd, True)
            return
        try:
            os.dup2(fd, 1)
        finally:
            os.close(fd)

    def _wait(self, pid: int, program: str) -> ExitStatus:
        try:
            _, status = os.waitpid(pid, 0)
        except OSError as e:
            raise WaitFailureError(
                f"Failed to wait for child: {e.strerror}",
                program=program,
                errno=e.errno,
                pid=pid,
            ) from e
        return ExitStatus.from_wait_status(status)


def _read_until_eof(fd: int) -> bytes:
    chunks = []
    while chunk := os.read(fd, 64):
        chunks.append(chunk)
    return b"".join(chunks)


def _child_setup_error(
    report: bytes, spec: CommandSpec, output_path: str | None
) -> LaunchFailureError:
    stage, _, code = report.decode("ascii", errors="replace").partition(":")
    try:
        err = int(code)
    except ValueError:
        err = 0
    reason = os.strerror(err) if err else "unknown error"

    if stage == STAGE_REDIRECT:
        return RedirectionError(
            f"Failed to redirect stdout: {reason}",
            program=spec.program,
            errno=err or None,
            output_path=output_path or "",
        )
    if err == errno.ENOENT:
        reason = f"{reason} (no PATH lookup is done; use an absolute path)"
    return LaunchFailureError(
        f"Failed to execute program: {reason}",
        program=spec.program,
        errno=err or None,
    )
