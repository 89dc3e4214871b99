"""coderaid engine - code-space allocation, leases and expiry."""

from coderaid.engine.codes import CodeList, pin_codes
from coderaid.engine.core import CodeSpaceEngine
from coderaid.engine.errors import (
    CodeRaidError,
    PersistenceFailure,
    RaidAlreadyExists,
    RaidNotFound,
    UnknownCode,
)

__all__ = [
    "CodeList",
    "CodeRaidError",
    "CodeSpaceEngine",
    "PersistenceFailure",
    "RaidAlreadyExists",
    "RaidNotFound",
    "UnknownCode",
    "pin_codes",
]
