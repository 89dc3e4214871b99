"""API request/response schemas."""

from typing import Optional

from pydantic import BaseModel, Field

# ============================================================================
# Shared schemas
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


# ============================================================================
# Raid schemas
# ============================================================================


class RaidReference(BaseModel):
    """Names a raid; skip_count only applies on create."""

    name: str = Field(..., min_length=1, description="Raid name")
    skip_count: Optional[int] = Field(
        None, ge=0, description="Codes to mark tried up front (lowest indices first)"
    )


class CodeInput(BaseModel):
    """A code a worker has tried."""

    code: str = Field(..., description="Code exactly as listed, e.g. '0420'")

