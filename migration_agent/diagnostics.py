"""
Batch-mode diagnostics.

When the agent runs under a non-interactive command runner it reports
pagination progress as plain lines. Interactive hosts pass no reporter.
"""

from __future__ import annotations

import sys
from typing import Protocol, TextIO, runtime_checkable


@runtime_checkable
class ProgressReporter(Protocol):
    """Line-oriented sink for progress text."""

    def line(self, text: str) -> None: ...


class StreamProgressReporter:
    """Writes each progress line to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream

    def line(self, text: str) -> None:
        stream = self.stream or sys.stdout
        stream.write(text + "\n")
        stream.flush()


def format_pagination(page: int, pages: int, found: int) -> str:
    return f"Pagination: {page}/{pages} of {found}"
