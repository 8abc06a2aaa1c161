"""SoulCypherSDK: entry point for avatar discovery and session management."""

import asyncio
from typing import Optional

from .api_client import APIClient
from .config import SDKConfig, SDKConfigBuilder
from .errors import AuthenticationError, SessionCleanupError, SoulCypherError
from .log import logger
from .models import (
    Avatar,
    CreateAvatarRequest,
    CreateSessionRequest,
    SessionStatusInfo,
)
from .registry import SessionRegistry
from .session import AvatarSessionManager, RoomFactory


class SoulCypherSDK:
    """
    Creates avatar sessions through the backend and tracks their managers.

    Sessions are registered by id when created or looked up and removed when
    ended. ``cleanup()`` (or leaving an ``async with`` block) disconnects every
    registered session.
    """

    def __init__(
        self,
        config: SDKConfig,
        api_client: Optional[APIClient] = None,
        room_factory: Optional[RoomFactory] = None,
    ):
        """
        Args:
            config: SDK configuration; ``api_key`` is required.
            api_client: Backend client to use instead of one built from ``config``.
            room_factory: Room factory handed to every AvatarSessionManager.

        Raises:
            AuthenticationError: If no API key is configured.
        """
        if not config.api_key:
            raise AuthenticationError("API key is required")

        self._config = config
        self._api = api_client or APIClient(config)
        self._room_factory = room_factory
        self._sessions = SessionRegistry()
        self._last_lookup_error: Optional[SoulCypherError] = None

    @property
    def config(self) -> SDKConfig:
        return self._config

    @property
    def last_lookup_error(self) -> Optional[SoulCypherError]:
        """
        Error behind the most recent ``get_session()`` call that returned None
        because the backend fetch failed. Reset by every successful fetch.
        """
        return self._last_lookup_error

    async def __aenter__(self) -> "SoulCypherSDK":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc is None:
            await self.cleanup()
            return

        # Leave the body's exception in flight.
        try:
            await self.cleanup()
        except SessionCleanupError as e:
            logger.warning("Cleanup after failed block: %s", e)

    async def get_avatars(self) -> list[Avatar]:
        page = await self._api.get_avatars()
        return page.avatars

    async def get_avatar(self, avatar_id: str) -> Avatar:
        return await self._api.get_avatar(avatar_id)

    async def create_avatar(self, request: CreateAvatarRequest) -> Avatar:
        return await self._api.create_avatar(request)

    async def create_session(self, request: CreateSessionRequest) -> AvatarSessionManager:
        """
        Create a backend session and register a manager for it.

        The returned manager is not connected; call ``connect()`` on it.
        """
        session = await self._api.create_session(request)
        manager = self._new_manager(session)
        self._sessions.add(manager)
        logger.info("Created session %s for avatar %s", session.id, request.avatar_id)
        return manager

    async def get_session(self, session_id: str) -> Optional[AvatarSessionManager]:
        """
        Return the manager for ``session_id``, fetching the session from the
        backend if it is not registered yet.

        Returns None if the backend fetch fails for any reason; the failure is
        available from ``last_lookup_error``.
        """
        existing = self._sessions.get(session_id)
        if existing is not None:
            return existing

        try:
            session = await self._api.get_session(session_id)
        except SoulCypherError as e:
            logger.warning("Session lookup for %s failed: %s", session_id, e)
            self._last_lookup_error = e
            return None

        self._last_lookup_error = None
        manager = self._new_manager(session)
        self._sessions.add(manager)
        return manager

    async def get_session_status(self, session_id: str) -> SessionStatusInfo:
        return await self._api.get_session_status(session_id)

    async def end_session(self, session_id: str) -> None:
        """
        Disconnect and unregister the session locally, then end it on the backend.

        The backend is asked to end the session even if leaving the room
        fails, and the local manager is removed either way. A backend failure
        is raised (chained to any disconnect failure); otherwise a disconnect
        failure is raised after the backend call succeeded.
        """
        disconnect_error: Optional[Exception] = None
        manager = self._sessions.get(session_id)
        if manager is not None:
            try:
                await manager.disconnect()
            except Exception as e:
                disconnect_error = e
            finally:
                self._sessions.remove(session_id)

        try:
            await self._api.end_session(session_id)
        except SoulCypherError as e:
            logger.warning("Backend failed to end session %s: %s", session_id, e)
            if disconnect_error is not None:
                raise e from disconnect_error
            raise

        if disconnect_error is not None:
            raise disconnect_error

    def get_active_sessions(self) -> list[AvatarSessionManager]:
        """Snapshot of the registered managers."""
        return self._sessions.snapshot()

    async def cleanup(self) -> None:
        """
        Disconnect every registered session concurrently and clear the registry.

        Raises:
            SessionCleanupError: After all sessions were processed, if any of
                them failed to disconnect.
        """
        managers = self._sessions.snapshot()
        results = await asyncio.gather(
            *(manager.disconnect() for manager in managers), return_exceptions=True
        )
        self._sessions.clear()

        failures: dict[str, Exception] = {}
        for manager, result in zip(managers, results):
            if isinstance(result, Exception):
                failures[manager.session_id] = result
            elif isinstance(result, BaseException):
                raise result

        if failures:
            logger.warning(
                "Cleanup finished with %d failed disconnect(s)", len(failures)
            )
            raise SessionCleanupError(failures)

    async def ping(self) -> bool:
        """Return True if the backend health probe succeeds."""
        try:
            await self._api.ping()
        except SoulCypherError as e:
            logger.warning("Health check failed: %s", e)
            return False
        return True

    def _new_manager(self, session) -> AvatarSessionManager:
        return AvatarSessionManager(session, room_factory=self._room_factory)


def new_sdk(**kwargs) -> SoulCypherSDK:
    """
    Create a SoulCypherSDK with the provided configuration options.

    Args:
        **kwargs: Configuration parameters matching SDKConfig fields
            (``api_key``, ``base_url``, ``environment``, ``timeout_seconds``),
            plus optional ``api_client`` and ``room_factory``.

    Example:
        ```python
        async with new_sdk(api_key="my-api-key") as sdk:
            manager = await sdk.create_session(
                CreateSessionRequest(avatar_id="a1", user_id="u1")
            )
            await manager.connect()
        ```
    """
    builder = SDKConfigBuilder()

    if "api_key" in kwargs:
        builder.with_api_key(kwargs["api_key"])
    if "base_url" in kwargs:
        builder.with_base_url(kwargs["base_url"])
    if "environment" in kwargs:
        builder.with_environment(kwargs["environment"])
    if "timeout_seconds" in kwargs:
        builder.with_timeout(kwargs["timeout_seconds"])

    return SoulCypherSDK(
        builder.build(),
        api_client=kwargs.get("api_client"),
        room_factory=kwargs.get("room_factory"),
    )
