"""HTTP client for the SoulCypher platform backend."""

import asyncio
import json
from typing import Any, Optional

import aiohttp

from .config import SDKConfig
from .constants import API_VERSION_PREFIX, HEALTH_PATH
from .errors import (
    APIError,
    AuthenticationError,
    HealthCheckError,
    InternalServerError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    SoulCypherError,
    ValidationError,
)
from .log import logger
from .models import (
    Avatar,
    AvatarPage,
    AvatarSession,
    CreateAvatarRequest,
    CreateSessionRequest,
    HealthStatus,
    SessionStatusInfo,
)
from .request_id import REQUEST_ID_HEADER, generate_request_id


def _parse(model: Any, data: Any) -> Any:
    try:
        return model.from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise NetworkError(
            f"Unexpected {model.__name__} response: {e!r}"
        ) from e


class APIClient:
    """
    Thin async wrapper over the backend REST API.

    Every call opens its own aiohttp session and keeps no state between calls.
    Non-2xx responses are raised as SoulCypherError subclasses; failures to
    obtain a response at all are raised as NetworkError.
    """

    def __init__(self, config: SDKConfig):
        if not config.api_key:
            raise AuthenticationError("API key is required")

        self._api_key = config.api_key
        self._base_url = config.resolved_base_url
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_seconds)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _request(
        self, method: str, endpoint: str, payload: Optional[dict[str, Any]] = None
    ) -> Any:
        url = f"{self._base_url}{API_VERSION_PREFIX}{endpoint}"
        request_id = generate_request_id()
        headers = {
            "Content-Type": "application/json",
            "X-API-Key": self._api_key,
            REQUEST_ID_HEADER: request_id,
        }

        logger.debug("%s %s (request_id=%s)", method, endpoint, request_id)
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.request(
                    method, url, json=payload, headers=headers
                ) as response:
                    response_text = await response.text()

                    if not 200 <= response.status < 300:
                        raise self._error_from_response(response.status, response_text)

                    if not response_text:
                        return None
                    return json.loads(response_text)
        except SoulCypherError as e:
            logger.warning(
                "%s %s failed (request_id=%s): %s", method, endpoint, request_id, e
            )
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(
                "%s %s failed (request_id=%s): %r", method, endpoint, request_id, e
            )
            raise NetworkError(f"Request failed: {str(e) or type(e).__name__}") from e

    @classmethod
    def _error_from_response(cls, status: int, response_text: str) -> SoulCypherError:
        """Map a non-2xx response onto the SDK error taxonomy."""
        try:
            error_data = json.loads(response_text)
        except json.JSONDecodeError:
            error_data = {"message": response_text}
        if not isinstance(error_data, dict):
            error_data = {"message": response_text}

        message = cls._format_error_message(status, error_data)

        if status == 401:
            return AuthenticationError(message)
        if status == 429:
            return RateLimitError(message)
        if status == 400:
            return ValidationError(message)
        if status == 404:
            return NotFoundError(message)
        if status == 500:
            return InternalServerError(message)
        return APIError(message, status)

    @staticmethod
    def _format_error_message(status: int, error_data: dict) -> str:
        message = error_data.get("message")
        if message:
            return str(message)

        errors = error_data.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            err = errors[0]
            return (
                f"Error {err.get('status', status)} ({err.get('code', 'unknown')}): "
                f"{err.get('title', 'Error')} - {err.get('detail', 'No details')}"
            )

        return f"Request failed with status {status}"

    # Avatars

    async def get_avatars(self) -> AvatarPage:
        data = await self._request("GET", "/avatars")
        return _parse(AvatarPage, data or {})

    async def get_avatar(self, avatar_id: str) -> Avatar:
        data = await self._request("GET", f"/avatars/{avatar_id}")
        return _parse(Avatar, data)

    async def create_avatar(self, request: CreateAvatarRequest) -> Avatar:
        data = await self._request("POST", "/avatars", request.to_dict())
        return _parse(Avatar, data)

    # Sessions

    async def create_session(self, request: CreateSessionRequest) -> AvatarSession:
        data = await self._request("POST", "/sessions/create", request.to_dict())
        return _parse(AvatarSession, data)

    async def get_session(self, session_id: str) -> AvatarSession:
        data = await self._request("GET", f"/sessions/{session_id}")
        return _parse(AvatarSession, data)

    async def get_session_status(self, session_id: str) -> SessionStatusInfo:
        data = await self._request("GET", f"/sessions/{session_id}/status")
        return _parse(SessionStatusInfo, data)

    async def end_session(self, session_id: str) -> None:
        await self._request("POST", f"/sessions/{session_id}/end")

    async def ping(self) -> HealthStatus:
        """
        Probe backend liveness.

        The health endpoint is mounted at the service root, outside the versioned
        API, and is called without the API key.

        Raises:
            HealthCheckError: If the service answers with a non-2xx status.
            NetworkError: If no response was obtained.
        """
        url = f"{self._base_url}{HEALTH_PATH}"

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(
                    url, headers={"Content-Type": "application/json"}
                ) as response:
                    if not 200 <= response.status < 300:
                        raise HealthCheckError(
                            f"Health check failed: {response.status}", response.status
                        )
                    response_text = await response.text()
                    data = json.loads(response_text) if response_text else {}
        except SoulCypherError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise NetworkError(f"Health check failed: {str(e) or type(e).__name__}") from e

        return HealthStatus.from_dict(data if isinstance(data, dict) else {})
