"""
Enumerations shared by the storage, lifecycle and API layers.
"""

from __future__ import annotations

from enum import StrEnum


class SkillType(StrEnum):
    OFFERING = "offering"
    SEEKING = "seeking"


class ExchangeStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExchangeStatus.REJECTED, ExchangeStatus.COMPLETED)
