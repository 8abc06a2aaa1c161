from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SoulCypherErrorCode(str, Enum):
    """
    Stable error codes surfaced by the SDK.

    Notes:
    - Every exception raised by the SDK carries exactly one of these codes.
    - They are string enums so they serialize cleanly to logs/JSON.
    """

    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    API_ERROR = "API_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    HEALTH_CHECK_ERROR = "HEALTH_CHECK_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    NOT_CONNECTED = "NOT_CONNECTED"
    MESSAGING_ERROR = "MESSAGING_ERROR"
    SESSION_ERROR = "SESSION_ERROR"


@dataclass(eq=False)
class SoulCypherError(Exception):
    """
    SDK exception with a stable error code and, for HTTP failures, the
    originating status code.
    """

    message: str
    code: SoulCypherErrorCode = SoulCypherErrorCode.API_ERROR
    status_code: Optional[int] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class AuthenticationError(SoulCypherError):
    def __init__(self, message: str = "Invalid or expired API key"):
        super().__init__(message, SoulCypherErrorCode.AUTHENTICATION_ERROR, 401)


class RateLimitError(SoulCypherError):
    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, SoulCypherErrorCode.RATE_LIMIT_ERROR, 429)


class ValidationError(SoulCypherError):
    def __init__(self, message: str):
        super().__init__(message, SoulCypherErrorCode.VALIDATION_ERROR, 400)


class NotFoundError(SoulCypherError):
    def __init__(self, message: str):
        super().__init__(message, SoulCypherErrorCode.NOT_FOUND, 404)


class InternalServerError(SoulCypherError):
    def __init__(self, message: str):
        super().__init__(message, SoulCypherErrorCode.INTERNAL_ERROR, 500)


class APIError(SoulCypherError):
    """Any other non-2xx response from the backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, SoulCypherErrorCode.API_ERROR, status_code)


class NetworkError(SoulCypherError):
    """Raised when no usable response was obtained from the backend."""

    def __init__(self, message: str):
        super().__init__(message, SoulCypherErrorCode.NETWORK_ERROR)


class HealthCheckError(SoulCypherError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, SoulCypherErrorCode.HEALTH_CHECK_ERROR, status_code)


class SessionError(SoulCypherError):
    def __init__(
        self,
        message: str,
        code: SoulCypherErrorCode = SoulCypherErrorCode.SESSION_ERROR,
    ):
        super().__init__(message, code)


class ConnectionSetupError(SessionError):
    """Raised when the LiveKit room cannot be joined."""

    def __init__(self, message: str = "Failed to connect to avatar session"):
        super().__init__(message, SoulCypherErrorCode.CONNECTION_ERROR)


class NotConnectedError(SessionError):
    def __init__(self, message: str = "Not connected to session"):
        super().__init__(message, SoulCypherErrorCode.NOT_CONNECTED)


class MessagingError(SessionError):
    def __init__(self, message: str):
        super().__init__(message, SoulCypherErrorCode.MESSAGING_ERROR)


class SessionCleanupError(SoulCypherError):
    """
    Raised by SoulCypherSDK.cleanup() after every session has been torn down
    when one or more of them failed to disconnect cleanly.
    """

    def __init__(self, failures: dict[str, Exception]):
        self.failures = dict(failures)
        summary = ", ".join(f"{sid}: {err}" for sid, err in self.failures.items())
        super().__init__(
            f"Failed to disconnect {len(self.failures)} session(s): {summary}",
            SoulCypherErrorCode.SESSION_ERROR,
        )
