"""
Exceptions raised while waiting for a release rollout.
"""
from typing import List, Optional


class RolloutWaitError(Exception):
    """Base class for every error surfaced by the wait operation."""


class ManifestParseError(RolloutWaitError):
    """A rendered manifest document could not be parsed."""


class ReleaseHistoryError(RolloutWaitError):
    """Release history could not be read or decoded."""


class ReleaseNotFoundError(ReleaseHistoryError):
    """No revision exists for the requested release."""


class SelectorError(RolloutWaitError):
    """A label selector could not be rendered."""


class ClusterAccessError(RolloutWaitError):
    """A get or list against the cluster failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RolloutTimeoutError(RolloutWaitError, TimeoutError):
    """The deadline elapsed with targets still not ready."""

    def __init__(self, message: str, pending: Optional[List[str]] = None, ticks: int = 0):
        super().__init__(message)
        self.pending = pending or []
        self.ticks = ticks
