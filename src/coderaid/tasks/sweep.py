"""Lease expiry sweep background task."""

import asyncio
import logging
import random
from typing import Optional

from coderaid.config import settings
from coderaid.registry import InstanceRegistry

logger = logging.getLogger("coderaid.sweep")

_sweep_task: Optional[asyncio.Task] = None
_shutdown_event: Optional[asyncio.Event] = None


def sweep_once(registry: InstanceRegistry) -> int:
    """
    Reclaim expired reservations in every raid.

    Returns:
        Number of codes returned to remaining across all raids
    """
    returned = 0
    with registry.locked():
        for name in registry.names():
            returned += registry.get(name).reclaim_expired()
    return returned


async def lease_sweep_loop(registry: InstanceRegistry, interval_seconds: float):
    """
    Background loop that returns codes from expired reservations.

    Reclaim-on-touch already keeps every read correct; the sweep only makes
    reservation state fresh for raids nobody has touched in a while.
    Jittered interval (±20%) so restarted replicas do not sweep in lockstep.
    """
    logger.info(
        f"Lease sweep loop started (base interval: {interval_seconds}s with ±20% jitter)"
    )

    while not _shutdown_event.is_set():
        try:
            returned = await asyncio.to_thread(sweep_once, registry)
            if returned > 0:
                logger.info(f"Returned {returned} codes from expired reservations")
        except Exception as e:
            logger.error(f"Lease sweep error: {e}", exc_info=True)

        jittered_interval = interval_seconds * random.uniform(0.8, 1.2)

        try:
            await asyncio.wait_for(_shutdown_event.wait(), timeout=jittered_interval)
        except asyncio.TimeoutError:
            pass

    logger.info("Lease sweep loop stopped")


async def start_lease_sweep(registry: InstanceRegistry, interval_seconds: Optional[float] = None):
    """Start the lease sweep background task."""
    global _sweep_task, _shutdown_event

    _shutdown_event = asyncio.Event()
    _sweep_task = asyncio.create_task(
        lease_sweep_loop(registry, interval_seconds or settings.lease_sweep_interval_seconds)
    )


async def stop_lease_sweep():
    """Stop the lease sweep background task."""
    global _sweep_task, _shutdown_event

    if _shutdown_event:
        _shutdown_event.set()

    if _sweep_task:
        try:
            await asyncio.wait_for(_sweep_task, timeout=10.0)
        except asyncio.TimeoutError:
            logger.warning("Lease sweep task did not stop gracefully, cancelling")
            _sweep_task.cancel()
            try:
                await _sweep_task
            except asyncio.CancelledError:
                pass

    _sweep_task = None
    _shutdown_event = None
