"""Error taxonomy for search and replace operations."""

from typing import Optional


class VaultFindError(Exception):
    """Base class for every error raised by the engine."""


class InvalidPatternError(VaultFindError):
    """A regex-mode query is not a valid pattern."""

    def __init__(self, query: str, reason: str, position: Optional[int] = None):
        self.query = query
        self.reason = reason
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"Invalid pattern {query!r}: {reason}{where}")


class ReadFailure(VaultFindError):
    """A document could not be read during a search sweep."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read {path}" + (f": {reason}" if reason else ""))


class PersistFailure(VaultFindError):
    """The durable write after a replace did not complete."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to persist {path}" + (f": {reason}" if reason else ""))
