"""API dependencies."""

import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request

from coderaid.config import Environment, settings
from coderaid.registry import InstanceRegistry

logger = logging.getLogger("coderaid.api")


def get_registry(request: Request) -> InstanceRegistry:
    """Registry created during application startup."""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Raid registry not initialized")
    return registry


async def verify_api_key(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-Api-Key"),
) -> str:
    """
    Verify the shared API key.

    Accepts ``X-Api-Key: <key>`` or ``Authorization: Bearer <key>``. Fails
    closed: without a configured key every request is rejected unless
    insecure dev mode is explicitly enabled.
    """
    if settings.allow_insecure_dev and settings.env == Environment.DEVELOPMENT:
        return "insecure_dev"

    api_key = None
    if x_api_key:
        api_key = x_api_key
    elif authorization and authorization.startswith("Bearer "):
        api_key = authorization[7:]

    if not api_key:
        raise HTTPException(
            status_code=403,
            detail="Missing API key. Use X-Api-Key header or Authorization: Bearer <key>",
        )

    if not settings.api_key:
        logger.error("SECURITY VIOLATION: No API key configured. Set CODERAID_API_KEY.")
        raise HTTPException(
            status_code=503,
            detail="Server misconfigured: authentication not properly initialized",
        )

    if not secrets.compare_digest(api_key, settings.api_key):
        raise HTTPException(status_code=403, detail="Invalid API key")
    return "api_key"


def validate_auth_config() -> None:
    """
    Validate authentication configuration at startup.

    Raises:
        RuntimeError: If configuration is insecure for the current environment
    """
    if settings.allow_insecure_dev and settings.env != Environment.DEVELOPMENT:
        raise RuntimeError(
            f"SECURITY ERROR: allow_insecure_dev=true is only permitted in development. "
            f"Current environment: {settings.env.value}. "
            f"Set CODERAID_ALLOW_INSECURE_DEV=false for {settings.env.value}."
        )

    if not settings.allow_insecure_dev and not settings.api_key:
        raise RuntimeError(
            "SECURITY ERROR: CODERAID_API_KEY must be set "
            "(or CODERAID_ALLOW_INSECURE_DEV=true in development)."
        )

    if settings.allow_insecure_dev:
        logger.warning(
            "=" * 80 + "\n"
            "WARNING: Running in INSECURE DEV MODE\n"
            "  - Authentication is DISABLED\n"
            "  - Set CODERAID_ALLOW_INSECURE_DEV=false for any deployment\n"
            + "=" * 80
        )
    else:
        logger.info(f"Authentication enabled: shared API key for {settings.env.value}")
