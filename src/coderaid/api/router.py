"""REST API router."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from coderaid import __version__
from coderaid.api.deps import get_registry, verify_api_key
from coderaid.api.schemas import CodeInput, HealthResponse, RaidReference
from coderaid.engine import PersistenceFailure, RaidAlreadyExists, RaidNotFound, UnknownCode
from coderaid.models import CodeReservation, RaidState, RaidSummary
from coderaid.observability.metrics import metrics
from coderaid.registry import InstanceRegistry

router = APIRouter(dependencies=[Depends(verify_api_key)])


def _unavailable(e: PersistenceFailure) -> HTTPException:
    return HTTPException(status_code=503, detail=e.message)


# ============================================================================
# Health & Metrics
# ============================================================================


@router.get("/", response_class=PlainTextResponse)
async def index():
    return "Welcome to codera1d"


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@router.get("/metrics")
async def get_metrics():
    """In-process counters, gauges and timings."""
    return metrics.snapshot()


# ============================================================================
# Raids
# ============================================================================
# Registry calls block on the registry lock and the snapshot write, so these
# handlers are plain functions and run in the threadpool.


@router.get("/raids", response_model=dict[str, RaidSummary])
def list_raids(registry: InstanceRegistry = Depends(get_registry)):
    """Summaries of all raids; expired reservations are reclaimed first."""
    return registry.list_summary()


@router.post("/raids", response_model=dict[str, RaidSummary])
def create_raid(
    request: RaidReference,
    registry: InstanceRegistry = Depends(get_registry),
):
    """Create a raid and return the summaries of all raids."""
    try:
        return registry.create(request.name, request.skip_count)
    except RaidAlreadyExists as e:
        raise HTTPException(status_code=409, detail=e.message)
    except PersistenceFailure as e:
        raise _unavailable(e)


@router.delete("/raids")
def delete_raid(
    request: RaidReference,
    registry: InstanceRegistry = Depends(get_registry),
):
    """Delete a raid. Deleting an unknown raid succeeds."""
    try:
        registry.remove(request.name)
    except PersistenceFailure as e:
        raise _unavailable(e)
    return None


@router.get("/raids/{name}", response_model=RaidState)
def get_raid(name: str, registry: InstanceRegistry = Depends(get_registry)):
    """Full raid state: remaining, tried and reserved codes."""
    try:
        return registry.get_state(name)
    except RaidNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post("/raids/{name}/reserve_codes", response_model=CodeReservation)
def reserve_codes(name: str, registry: InstanceRegistry = Depends(get_registry)):
    """Reserve the next batch of codes for the calling worker."""
    try:
        return registry.reserve_codes(name)
    except RaidNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except PersistenceFailure as e:
        raise _unavailable(e)


@router.post("/raids/{name}/try_code")
def try_code(
    name: str,
    request: CodeInput,
    registry: InstanceRegistry = Depends(get_registry),
):
    """Report a code as tried, whether or not it was reserved."""
    try:
        registry.try_code(name, request.code)
    except RaidNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except UnknownCode as e:
        raise HTTPException(status_code=422, detail=e.message)
    except PersistenceFailure as e:
        raise _unavailable(e)
    return None
