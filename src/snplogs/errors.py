"""Fatal error conditions.

Each condition maps to a fixed process exit code so wrapper scripts can tell
them apart. Consistency problems between logs are *not* errors; they are
reported through ``logging`` and never change the output.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class SnplogsError(RuntimeError):
    """Base class for fatal snplogs errors."""

    exit_code = 1


class InputOpenError(SnplogsError):
    """Raised when an input file cannot be opened.

    ``exit_code`` depends on the file's role: the scaffold index and indel log
    share one code, the first and second mutation logs have their own.
    """

    def __init__(self, role: str, path: str | Path, *, exit_code: int = 3) -> None:
        super().__init__(f"Error opening {role} {path}")
        self.role = role
        self.path = str(path)
        self.exit_code = exit_code


class LogReadError(SnplogsError):
    """Raised when a log stream fails mid-read (not ordinary end of file)."""

    exit_code = 4

    def __init__(self, message: str, *, path: Optional[str | Path] = None) -> None:
        super().__init__(message)
        self.path = str(path) if path is not None else None


class LogParseError(LogReadError):
    """Raised for a malformed log line (wrong field count, non-numeric field)."""

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str | Path] = None,
        line_no: Optional[int] = None,
        scaffold: Optional[str] = None,
        line: Optional[str] = None,
    ) -> None:
        where = []
        if path is not None:
            where.append(str(path))
        if line_no is not None:
            where.append(f"line {line_no}")
        if scaffold:
            where.append(f"scaffold {scaffold}")
        full = message
        if where:
            full += " (" + ", ".join(where) + ")"
        if line is not None:
            full += f": {line!r}"
        super().__init__(full, path=path)
        self.line_no = line_no
        self.scaffold = scaffold
        self.line = line


class MissingDepthError(SnplogsError):
    """Raised when depth filtering is enabled but the log has no depth column."""

    exit_code = 7


class OutputOpenError(SnplogsError):
    """Raised when an output file cannot be created."""

    exit_code = 8

    def __init__(self, role: str, path: str | Path) -> None:
        super().__init__(f"Unable to open {role} output file {path}")
        self.role = role
        self.path = str(path)
