"""
Background lease sweep tests.
"""

import asyncio
from datetime import timedelta

import pytest

from coderaid.tasks import start_lease_sweep, stop_lease_sweep, sweep_once

from conftest import T0


def test_sweep_once_reclaims_every_raid(registry):
    registry.create("alpha")
    registry.create("beta")
    registry.reserve_codes("alpha", now=T0)
    registry.reserve_codes("beta", now=T0 - timedelta(hours=1))

    assert sweep_once(registry) == 10
    assert registry.get_state("alpha").code_reservations == []
    assert registry.get_state("beta").code_reservations == []


def test_sweep_once_without_raids(registry):
    assert sweep_once(registry) == 0


@pytest.mark.asyncio
async def test_sweep_loop_runs_and_stops(registry):
    registry.create("alpha")
    registry.reserve_codes("alpha", now=T0)

    await start_lease_sweep(registry, interval_seconds=0.05)
    for _ in range(50):
        if not registry.get_state("alpha").code_reservations:
            break
        await asyncio.sleep(0.02)
    await stop_lease_sweep()

    assert registry.get_state("alpha").code_reservations == []
