"""Error kinds raised by the reconstruction stages.

Fatal conditions abort the request and are raised as subclasses of
:class:`ReconstructionError`. Element-level problems (a point with too few
neighbours, a malformed polygon) are recorded as :class:`RecoverableAnomaly`
values, logged, and skipped.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


class ReconstructionError(Exception):
    kind: str = "ReconstructionError"

    def __init__(self, message: str, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage


class EmptyInputError(ReconstructionError):
    kind = "EmptyInputError"


class InsufficientDataError(ReconstructionError):
    kind = "InsufficientDataError"


class DegenerateGeometryError(ReconstructionError):
    kind = "DegenerateGeometryError"


class InternalError(ReconstructionError):
    """Unexpected failure inside a stage; the original exception is the ``__cause__``."""
    kind = "InternalError"


@dataclass(frozen=True)
class RecoverableAnomaly:
    stage: str          # "smoothing" or "export"
    index: int          # point index or polygon index within the stage input
    reason: str
