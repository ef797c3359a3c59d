"""Error hierarchy shared by connections, plugins, the pool and the manager."""

from __future__ import annotations


class DbError(RuntimeError):
    """Base error for the database access core."""

    prefix = ""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}{self.message}"


class DbConnectionError(DbError):
    """Raised when a server cannot be reached, the handshake fails or a probe fails."""

    prefix = "Connection error: "


class DbQueryError(DbError):
    """Raised when a statement or an unsupported feature fails outside a script run."""

    prefix = "Query error: "


class DbCustomError(DbError):
    """Configuration lookups, dispatch failures and plugin resolution."""


__all__ = [
    "DbConnectionError",
    "DbCustomError",
    "DbError",
    "DbQueryError",
]
