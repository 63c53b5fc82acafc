from __future__ import annotations

from typing import Any, Optional


class SparkleShareError(Exception):
    """Base error for the SparkleShare client."""

    def __init__(self, message: str = "", *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(SparkleShareError):
    """Raised when caller input is invalid."""


class NetworkError(SparkleShareError):
    """Transport failure or timeout: no response was received."""


class AuthError(SparkleShareError):
    """Link code rejected/consumed, or credentials refused by the server."""


class ServerError(SparkleShareError):
    """Non-success HTTP status with a server-supplied body."""

    def __init__(self, message: str = "", *, status_code: Optional[int] = None, body: Any = None) -> None:
        super().__init__(message, status_code=status_code)
        self.body = body


class MalformedResponseError(SparkleShareError):
    """Body was not valid JSON (or not the expected shape) where JSON was expected."""


class PersistenceError(SparkleShareError):
    """Stored state could not be decoded or written."""
