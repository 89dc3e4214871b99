"""coderaid engine errors."""


class CodeRaidError(Exception):
    """Base error for coderaid operations."""

    def __init__(self, message: str, code: str = "CODERAID_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class RaidNotFound(CodeRaidError):
    """Named raid does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Raid not found: {name}", "RAID_NOT_FOUND")
        self.name = name


class RaidAlreadyExists(CodeRaidError):
    """A raid with this name is already registered."""

    def __init__(self, name: str):
        super().__init__(f"Raid already exists: {name}", "RAID_ALREADY_EXISTS")
        self.name = name


class UnknownCode(CodeRaidError):
    """Submitted code is not part of the code list."""

    def __init__(self, code: str):
        super().__init__(f"Unknown code: {code!r}", "UNKNOWN_CODE")
        self.submitted_code = code


class PersistenceFailure(CodeRaidError):
    """Registry snapshot could not be read or durably written."""

    def __init__(self, message: str):
        super().__init__(message, "PERSISTENCE_FAILURE")
