"""
Utility functions for the coflow library.
"""

from __future__ import annotations

import linecache
import os
import reprlib
import sys
from dataclasses import dataclass
from typing import Any

# Environment variable to control debug mode
DEBUG_RUNS = os.environ.get("COFLOW_DEBUG", "").lower() in ("1", "true", "yes")

_repr = reprlib.Repr()
_repr.maxstring = 80
_repr.maxother = 80


def describe(value: Any) -> str:
    """Short, bounded repr used in error messages and logs."""
    return _repr.repr(value)


@dataclass(frozen=True)
class CreationSite:
    """Where a ``run()`` call was made."""

    filename: str
    line: int
    function: str
    code: str | None = None

    def format(self) -> str:
        location = f'File "{self.filename}", line {self.line}, in {self.function}'
        if self.code:
            return f"{location}\n    {self.code}"
        return location


def capture_creation_site(skip_frames: int = 2) -> CreationSite | None:
    """
    Capture the caller's frame for debugging where a run was started.

    Args:
        skip_frames: Number of frames to skip (default 2 to skip this function and caller)

    Returns:
        CreationSite for the frame, or None when frames are unavailable
    """
    try:
        frame = sys._getframe(skip_frames)
    except ValueError:
        return None

    filename = frame.f_code.co_filename
    line = frame.f_lineno
    code = linecache.getline(filename, line).strip() or None
    return CreationSite(
        filename=filename,
        line=line,
        function=frame.f_code.co_name,
        code=code,
    )


__all__ = [
    "DEBUG_RUNS",
    "CreationSite",
    "capture_creation_site",
    "describe",
]
