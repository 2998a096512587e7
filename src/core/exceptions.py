"""
Exception taxonomy for the harvester.

Per-target failures (render delays, selection failures, empty levels) are
caught at the target-loop boundary and turned into skips. Only
SessionFatalError is allowed to reach the top of a run.
"""

from typing import Optional


class HarvestError(Exception):
    """Base class for harvester errors."""

    def __init__(self, message: str, target: Optional[str] = None):
        super().__init__(message)
        self.target = target


class RenderDelayError(HarvestError):
    """A probe or selector wait ran out of time."""


class SelectionError(HarvestError):
    """A required control could not be located or clicked."""


class EmptyEnumerationError(HarvestError):
    """A hierarchy level yielded zero targets."""


class SessionFatalError(HarvestError):
    """The browser session is no longer usable."""
