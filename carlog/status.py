"""Status enum for service urgency levels."""

from enum import Enum


class Status(Enum):
    """Service status categories. Lower value = more urgent."""

    OVERDUE = 1
    DUE_SOON = 2
    OK = 3

    @property
    def label(self) -> str:
        """Human-readable label."""
        return self.name.replace("_", " ")
