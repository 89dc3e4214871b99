"""Raid models - reporting views and snapshot records."""

from datetime import datetime

from pydantic import BaseModel, Field

from coderaid.models.lease import CodeReservation


class RaidSummary(BaseModel):
    """Counts-only view of one raid for external reporting."""

    remaining_code_count: int
    tried_code_count: int


class RaidState(BaseModel):
    """Full internal state of one raid, for debugging and export."""

    remaining_codes: list[str]
    tried_codes: list[str]
    code_reservations: list[CodeReservation]


class LeaseRecord(BaseModel):
    """Persisted lease: ordered code indices plus expiry."""

    codes: list[int]
    expires_at: datetime


class RaidSnapshot(BaseModel):
    """Persisted raid; bitmaps are base64-encoded portable roaring bitmaps."""

    remaining_codes: str
    tried_codes: str
    code_reservations: list[LeaseRecord] = Field(default_factory=list)


class RegistrySnapshot(BaseModel):
    """Everything the persistence collaborator loads and saves."""

    raids: dict[str, RaidSnapshot] = Field(default_factory=dict)
