"""Fatal reconciliation errors. Row-level noise is never raised, only counted."""
from __future__ import annotations

from typing import Iterable, List


class ReconError(ValueError):
    """Base class for errors that abort a source or a whole run"""

    def __init__(self, message: str, source: str = ""):
        super().__init__(message)
        self.source = source


class HeaderNotFoundError(ReconError):
    """No row in the scanned range looks like a header"""


class MissingColumnError(ReconError):
    """A required field has no column after both mapping passes"""

    def __init__(self, source: str, missing: Iterable[str]):
        self.missing: List[str] = list(missing)
        super().__init__(
            f"{source}: missing required columns {self.missing}. "
            f"Check the header row or supply a manual column mapping.",
            source=source,
        )


class EmptySourceError(ReconError):
    """A side of the reconciliation produced no usable records"""
