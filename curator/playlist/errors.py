"""
Error taxonomy for curation runs.

NoDataError means a source was empty. InsufficientCandidatesError means the
source had data but filtering removed too much; it carries per-stage counts so
the caller can decide whether to relax thresholds and retry.
"""
from typing import Dict, Optional


class CurationError(Exception):
    """Base class for failures of a playlist generation run."""


class NoDataError(CurationError):
    """A required source returned nothing usable."""


class NoListeningHistoryError(NoDataError):
    def __init__(self, message: str = "No listening history found. Play some music first."):
        super().__init__(message)


class NoMusicSectionError(NoDataError):
    def __init__(self, message: str = "No music library section found."):
        super().__init__(message)


class InsufficientCandidatesError(CurationError):
    """
    Filtering removed every candidate.

    Attributes:
        counts: Candidate counts at each filtering stage
        min_days_since_play: Threshold that was in effect
        suggested_min_days: A lower threshold worth retrying with
    """

    def __init__(
        self,
        counts: Dict[str, int],
        min_days_since_play: Optional[int] = None,
        message: Optional[str] = None,
    ):
        self.counts = dict(counts)
        self.min_days_since_play = min_days_since_play
        self.suggested_min_days = (
            min_days_since_play // 2 if min_days_since_play and min_days_since_play > 1 else None
        )
        super().__init__(message or self._build_message())

    def _build_message(self) -> str:
        stages = ", ".join(f"{key}={value}" for key, value in self.counts.items())
        message = f"Insufficient tracks for discovery playlist ({stages})."
        if self.suggested_min_days is not None:
            message += (
                f" No track older than {self.min_days_since_play} days survived filtering;"
                f" try reducing min days since play to {self.suggested_min_days}."
            )
        return message


class QueueCommandError(Exception):
    """A playback-queue command could not be delivered."""
