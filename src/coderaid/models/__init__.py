"""coderaid data models."""

from coderaid.models.lease import CodeReservation, Lease
from coderaid.models.raid import (
    LeaseRecord,
    RaidSnapshot,
    RaidState,
    RaidSummary,
    RegistrySnapshot,
)

__all__ = [
    "CodeReservation",
    "Lease",
    "LeaseRecord",
    "RaidSnapshot",
    "RaidState",
    "RaidSummary",
    "RegistrySnapshot",
]
