"""In-memory index of the sessions owned by one SoulCypherSDK instance."""

from typing import Iterator, Optional

from .session import AvatarSessionManager


class SessionRegistry:
    def __init__(self):
        self._sessions: dict[str, AvatarSessionManager] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[AvatarSessionManager]:
        return iter(self.snapshot())

    def add(self, manager: AvatarSessionManager) -> None:
        self._sessions[manager.session_id] = manager

    def get(self, session_id: str) -> Optional[AvatarSessionManager]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[AvatarSessionManager]:
        return self._sessions.pop(session_id, None)

    def snapshot(self) -> list[AvatarSessionManager]:
        """Point-in-time copy of the registered managers."""
        return list(self._sessions.values())

    def clear(self) -> None:
        self._sessions.clear()
