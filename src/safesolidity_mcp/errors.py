"""Analysis error taxonomy.

All of these are caught at the ``engine.analyze`` boundary and turned into a
``FAILED`` result; none of them reach the caller as an exception.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base class for expected, user-facing analysis failures."""


class InputEmpty(AnalysisError):
    def __init__(self) -> None:
        super().__init__("Source code cannot be empty")


class InputTooLarge(AnalysisError):
    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(
            f"Contract size exceeds maximum limit ({round(limit / 1024)}KB): "
            f"got {size} bytes"
        )


class InternalAnalysisFailure(AnalysisError):
    """A detector or extractor raised on input it should have tolerated."""

    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(f"Internal analysis failure in {stage}")
