"""Command executor implementations.

Provides different backends for spawning commands:
- ForkExecutor: fork/execv/waitpid, stdout redirection done inside the child (POSIX)
- SubprocessExecutor: subprocess.Popen, portable
"""

from cmdrunner.core.executors.fork_executor import ForkExecutor
from cmdrunner.core.executors.subprocess_executor import SubprocessExecutor

__all__ = ["ForkExecutor", "SubprocessExecutor"]
