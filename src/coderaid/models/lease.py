"""Lease model - a batch of codes checked out to one worker."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from coderaid.utils.time import ensure_utc, utc_now


class Lease(BaseModel):
    """Code indices reserved by a worker until ``expires_at``."""

    codes: list[int] = Field(default_factory=list, description="Code indices, reverse selection order")
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def normalize_expires_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def is_expired(self, now: datetime | None = None) -> bool:
        """A lease is valid up to and including its expiry instant."""
        if now is None:
            now = utc_now()
        return self.expires_at < now


class CodeReservation(BaseModel):
    """Lease information returned to workers."""

    codes: list[str]
    expires_at: datetime
