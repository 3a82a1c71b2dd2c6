"""File writer: put a literal string into a file.

Companion to the command runner for populating files without spawning a
process. Parent directories are not created.
"""

from pathlib import Path

from cmdrunner.core.logger import DiagnosticSink, StdlibSink


def write_file(
    path: str | Path,
    content: str,
    logger: DiagnosticSink | None = None,
) -> bool:
    """Write ``content`` to ``path`` verbatim, replacing any existing file.

    No trailing newline is added and newlines are not translated. Text that
    came from undecodable command-line bytes (lone surrogates from
    ``os.fsdecode``) is written back as those original bytes.

    Args:
        path: File to create or truncate; its directory must already exist
        content: Exact text to write
        logger: Diagnostic sink (defaults to the "cmdrunner" stdlib logger)

    Returns:
        True if the whole string was written and the file closed cleanly
    """
    logger = logger or StdlibSink()
    logger.debug(f"Writing {content} to {path}", path=str(path), size=len(content))

    # Encode before opening so unencodable text leaves the target untouched
    try:
        data = content.encode("utf-8", errors="surrogateescape")
    except UnicodeEncodeError as e:
        logger.error(
            f"Failed to write file {path}: {e.reason}",
            path=str(path),
        )
        return False

    try:
        with Path(path).open("wb") as f:
            f.write(data)
    except OSError as e:
        logger.error(
            f"Failed to write file {path}: {e.strerror or e}",
            path=str(path),
            errno=e.errno,
        )
        return False

    return True
