"""coderaid REST API."""

from coderaid.api.router import router

__all__ = ["router"]
