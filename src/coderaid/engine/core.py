"""coderaid core engine - code-space allocation and leases for one raid."""

import base64
import logging
from datetime import datetime
from itertools import islice
from typing import Optional

from pyroaring import BitMap

from coderaid.engine.codes import CodeList, pin_codes
from coderaid.models import (
    CodeReservation,
    Lease,
    LeaseRecord,
    RaidSnapshot,
    RaidState,
    RaidSummary,
)
from coderaid.observability.metrics import metrics
from coderaid.utils.time import expires_in, utc_now

logger = logging.getLogger(__name__)

DEFAULT_LEASE_TTL_SECONDS = 60


def bitmap_to_text(bitmap: BitMap) -> str:
    """Encode a bitmap as base64 of its portable roaring serialization."""
    canonical = bitmap.copy()
    canonical.run_optimize()
    return base64.b64encode(canonical.serialize()).decode("ascii")


def bitmap_from_text(text: str) -> BitMap:
    return BitMap.deserialize(base64.b64decode(text.encode("ascii"), validate=True))


class CodeSpaceEngine:
    """
    Allocation state for one named code space.

    Every code index is in at most one of: ``remaining``, ``tried``, or an
    active lease. Tried is terminal; leased codes return to remaining only
    through ``reclaim_expired``.
    """

    def __init__(
        self,
        codes: Optional[CodeList] = None,
        lease_ttl_seconds: float = DEFAULT_LEASE_TTL_SECONDS,
        *,
        remaining: Optional[BitMap] = None,
        tried: Optional[BitMap] = None,
        leases: Optional[list[Lease]] = None,
    ):
        self.codes = codes if codes is not None else pin_codes()
        self.lease_ttl_seconds = lease_ttl_seconds
        if remaining is None:
            remaining = BitMap()
            remaining.add_range(0, len(self.codes))
        self.remaining = remaining
        self.tried = tried if tried is not None else BitMap()
        self.leases: list[Lease] = list(leases or [])

    @property
    def size(self) -> int:
        return len(self.codes)

    # =========================================================================
    # Operations
    # =========================================================================

    def skip(self, count: int) -> int:
        """
        Mark the ``count`` lowest remaining codes as tried without a lease.

        Used to seed codes already known to be wrong. Asking for more than
        what remains skips everything that is left.

        Returns:
            Number of codes moved to tried
        """
        skipped = BitMap(list(islice(self.remaining, max(count, 0))))
        self.remaining ^= skipped
        self.tried |= skipped
        return len(skipped)

    def allocate(self, batch_size: int, now: Optional[datetime] = None) -> Lease:
        """
        Reserve up to ``batch_size`` of the lowest remaining codes.

        An exhausted code space yields a short or empty lease, not an error.
        The lease lists codes in reverse selection order.
        """
        if now is None:
            now = utc_now()
        self.reclaim_expired(now)

        selected = list(islice(self.remaining, max(batch_size, 0)))
        for index in selected:
            self.remaining.discard(index)
        selected.reverse()

        lease = Lease(codes=selected, expires_at=expires_in(self.lease_ttl_seconds, now))
        self.leases.append(lease)

        metrics.inc_counter("codes_reserved", len(selected))
        return lease

    def complete(self, code: str, now: Optional[datetime] = None) -> bool:
        """
        Record a submitted code as tried.

        The code does not have to belong to an outstanding lease. Raises
        UnknownCode for codes outside the code list.

        Returns:
            True if the code was not tried before
        """
        index = self.codes.index_of(code)
        self.reclaim_expired(now)

        if index in self.tried:
            return False

        self.remaining.discard(index)
        self.tried.add(index)
        metrics.inc_counter("codes_tried")
        return True

    def reclaim_expired(self, now: Optional[datetime] = None) -> int:
        """
        Drop expired leases and return their untried codes to remaining.

        Codes completed while leased stay tried.

        Returns:
            Number of codes returned to remaining
        """
        if now is None:
            now = utc_now()

        expired: list[Lease] = []
        live: list[Lease] = []
        for lease in self.leases:
            (expired if lease.is_expired(now) else live).append(lease)

        if not expired:
            return 0

        self.leases = live
        returned = BitMap([
            index
            for lease in expired
            for index in lease.codes
            if index not in self.tried
        ])
        self.remaining |= returned

        if returned:
            metrics.inc_counter("codes_reclaimed", len(returned))
            logger.debug(
                f"Reclaimed {len(returned)} codes from {len(expired)} expired leases"
            )
        return len(returned)

    # =========================================================================
    # Views
    # =========================================================================

    def summary(self) -> RaidSummary:
        """Counts only; leased codes that are not tried count as remaining."""
        tried_count = len(self.tried)
        return RaidSummary(
            tried_code_count=tried_count,
            remaining_code_count=self.size - tried_count,
        )

    def describe(self, lease: Lease) -> CodeReservation:
        """Worker-facing view of a lease with code strings."""
        return CodeReservation(
            codes=[self.codes.code_at(index) for index in lease.codes],
            expires_at=lease.expires_at,
        )

    def state(self) -> RaidState:
        return RaidState(
            remaining_codes=[self.codes.code_at(index) for index in self.remaining],
            tried_codes=[self.codes.code_at(index) for index in self.tried],
            code_reservations=[self.describe(lease) for lease in self.leases],
        )

    def leased_codes(self) -> BitMap:
        """Indices held by active leases and not yet tried."""
        held = BitMap([index for lease in self.leases for index in lease.codes])
        return held - self.tried

    def clone(self) -> "CodeSpaceEngine":
        return CodeSpaceEngine(
            self.codes,
            self.lease_ttl_seconds,
            remaining=self.remaining.copy(),
            tried=self.tried.copy(),
            leases=[lease.model_copy(deep=True) for lease in self.leases],
        )

    # =========================================================================
    # Snapshot
    # =========================================================================

    def to_snapshot(self) -> RaidSnapshot:
        return RaidSnapshot(
            remaining_codes=bitmap_to_text(self.remaining),
            tried_codes=bitmap_to_text(self.tried),
            code_reservations=[
                LeaseRecord(codes=list(lease.codes), expires_at=lease.expires_at)
                for lease in self.leases
            ],
        )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: RaidSnapshot,
        codes: Optional[CodeList] = None,
        lease_ttl_seconds: float = DEFAULT_LEASE_TTL_SECONDS,
    ) -> "CodeSpaceEngine":
        """Rebuild an engine; raises ValueError if indices fall outside the code list."""
        codes = codes if codes is not None else pin_codes()
        remaining = bitmap_from_text(snapshot.remaining_codes)
        tried = bitmap_from_text(snapshot.tried_codes)
        leases = [
            Lease(codes=record.codes, expires_at=record.expires_at)
            for record in snapshot.code_reservations
        ]

        size = len(codes)
        highest = max([bitmap.max() for bitmap in (remaining, tried) if bitmap], default=-1)
        if highest >= size:
            raise ValueError(f"Snapshot references code index {highest} outside 0..{size - 1}")
        if remaining & tried:
            raise ValueError("Snapshot has codes that are both remaining and tried")

        # An untried leased code is held by exactly one lease and is not remaining
        held = BitMap()
        for lease in leases:
            for index in lease.codes:
                if not 0 <= index < size:
                    raise ValueError(
                        f"Snapshot lease references code index {index} outside 0..{size - 1}"
                    )
                if index in tried:
                    continue
                if index in held:
                    raise ValueError(f"Snapshot has code index {index} in more than one lease")
                if index in remaining:
                    raise ValueError(f"Snapshot has code index {index} both leased and remaining")
                held.add(index)

        return cls(
            codes,
            lease_ttl_seconds,
            remaining=remaining,
            tried=tried,
            leases=leases,
        )
