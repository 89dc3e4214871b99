"""coderaid main application."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from coderaid import __version__
from coderaid.api import router
from coderaid.api.deps import validate_auth_config
from coderaid.config import settings
from coderaid.engine import pin_codes
from coderaid.persistence import get_snapshot_store
from coderaid.registry import InstanceRegistry
from coderaid.tasks.sweep import start_lease_sweep, stop_lease_sweep

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("coderaid")


def build_registry() -> InstanceRegistry:
    """Load the code list and restore raids from the configured snapshot."""
    codes = pin_codes(settings.pin_codes_path)
    return InstanceRegistry.load_or_empty(
        get_snapshot_store(settings.data_path),
        codes=codes,
        lease_ttl_seconds=settings.lease_ttl_seconds,
        batch_size=settings.reservation_batch_size,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting coderaid server...")
    logger.info(f"Environment: {settings.env.value}")

    # Validate authentication configuration (fail fast if insecure)
    validate_auth_config()

    app.state.registry = build_registry()
    logger.info(f"Snapshot: {settings.data_path or 'in-memory'}")

    if settings.lease_sweep_enabled:
        await start_lease_sweep(app.state.registry)
        logger.info("Lease sweep task started")

    yield

    logger.info("Shutting down coderaid server...")
    if settings.lease_sweep_enabled:
        await stop_lease_sweep()
    logger.info("Shutdown complete")


app = FastAPI(
    title="coderaid",
    description="Coordinates workers searching a shared PIN code space with leased batches",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(router)


def main():
    """Entry point for the application."""
    uvicorn.run(
        "coderaid.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
