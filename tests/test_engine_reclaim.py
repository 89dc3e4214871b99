"""
Lease expiry tests: expired reservations give their untried codes back.
"""

from datetime import timedelta

from coderaid.engine import CodeSpaceEngine
from coderaid.observability.metrics import metrics

from conftest import T0

AFTER_EXPIRY = T0 + timedelta(minutes=2)


def test_expired_untried_reservation_returns_all_codes(raid):
    raid.allocate(5, now=T0)

    assert raid.reclaim_expired(AFTER_EXPIRY) == 5

    assert raid.summary().tried_code_count == 0
    assert len(raid.remaining) == 10_000
    assert raid.leases == []
    assert metrics.counter_value("codes_reclaimed") == 5


def test_expired_reservation_keeps_tried_code(raid):
    lease = raid.allocate(5, now=T0)
    raid.complete(raid.describe(lease).codes[-1], now=T0)

    assert raid.reclaim_expired(AFTER_EXPIRY) == 4

    assert len(raid.tried) == 1
    assert len(raid.remaining) == 9_999
    returned = {raid.codes.code_at(index) for index in raid.remaining if index < 5}
    assert returned == {"1111", "0000", "1212", "7777"}
    assert 0 not in raid.remaining


def test_live_reservation_is_kept(raid):
    raid.allocate(5, now=T0)

    assert raid.reclaim_expired(T0 + timedelta(seconds=30)) == 0
    assert len(raid.leases) == 1
    assert len(raid.remaining) == 9_995


def test_reservation_valid_until_expiry_instant(raid):
    lease = raid.allocate(5, now=T0)

    assert raid.reclaim_expired(lease.expires_at) == 0
    assert raid.reclaim_expired(lease.expires_at + timedelta(microseconds=1)) == 5


def test_only_expired_reservations_are_reclaimed(raid):
    raid.allocate(5, now=T0)
    late = raid.allocate(5, now=T0 + timedelta(seconds=45))

    assert raid.reclaim_expired(T0 + timedelta(seconds=75)) == 5
    assert raid.leases == [late]
    assert raid.remaining.min() == 0
    assert set(late.codes).isdisjoint(raid.remaining)


def test_allocate_reclaims_before_selecting(raid):
    first = raid.allocate(5, now=T0)
    second = raid.allocate(5, now=AFTER_EXPIRY)

    assert sorted(second.codes) == sorted(first.codes)
    assert raid.leases == [second]


def test_fully_tried_reservation_is_swept_without_returning_codes(raid):
    lease = raid.allocate(2, now=T0)
    for code in raid.describe(lease).codes:
        raid.complete(code, now=T0)

    assert raid.reclaim_expired(AFTER_EXPIRY) == 0
    assert raid.leases == []
    assert len(raid.tried) == 2


def test_tried_is_never_reversed_by_reclaim(raid):
    raid.allocate(5, now=T0)
    raid.complete("0000", now=T0)
    raid.reclaim_expired(AFTER_EXPIRY)
    raid.allocate(5, now=AFTER_EXPIRY)
    raid.reclaim_expired(AFTER_EXPIRY + timedelta(minutes=2))

    assert 2 in raid.tried
    assert 2 not in raid.remaining
    assert len(raid.remaining) + len(raid.tried) == 10_000


def test_partitions_stay_disjoint_through_lifecycle(raid):
    raid.skip(3)
    raid.allocate(5, now=T0)
    raid.complete("6969", now=T0)
    raid.allocate(5, now=T0 + timedelta(seconds=30))
    raid.reclaim_expired(T0 + timedelta(seconds=61))

    leased = raid.leased_codes()
    assert not raid.remaining & raid.tried
    assert not raid.remaining & leased
    assert not raid.tried & leased
    assert len(raid.remaining) + len(raid.tried) + len(leased) == 10_000


def test_clone_is_independent(raid):
    raid.allocate(5, now=T0)
    copy = raid.clone()
    copy.complete("9999", now=T0)
    copy.reclaim_expired(AFTER_EXPIRY)

    assert len(raid.leases) == 1
    assert len(raid.tried) == 0
    assert isinstance(copy, CodeSpaceEngine)
