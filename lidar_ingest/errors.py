"""
errors.py

Whole-load failures raised inside the loaders.  Per-record problems
(non-finite points, comment or short CSV lines) never reach this level.
"""

from __future__ import annotations

import os


class IngestError(Exception):
    """Base class for load failures.

    Attributes:
        path: The source that failed.
        kind: Short failure-kind name, e.g. ``"OpenFailure"``.
    """

    kind = "IngestError"

    def __init__(self, path: str | os.PathLike, message: str) -> None:
        self.path = os.fspath(path)
        self.message = message
        super().__init__(f"{self.kind} for '{self.path}': {message}")


class OpenFailure(IngestError):
    """The named container or text stream could not be opened."""

    kind = "OpenFailure"


class EmptyResultFailure(IngestError):
    """The source was fully consumed but yielded nothing usable."""

    kind = "EmptyResultFailure"


class ParseFailure(IngestError):
    """A text source contained an unparsable line and strict parsing was requested."""

    kind = "ParseFailure"
