"""Helpers that sit next to the command runner.

Provides the file writer used to populate files without spawning a process.
"""

from cmdrunner.tools.file_io import write_file

__all__ = ["write_file"]
