"""Backend resource models.

The backend speaks camelCase JSON; these dataclasses expose snake_case
attributes and convert in ``from_dict`` / ``to_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .constants import AvatarProvider


def _parse_timestamp(value: str) -> datetime:
    # fromisoformat() only accepts a trailing "Z" from Python 3.11 on.
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class Avatar:
    """
    Read-only avatar descriptor as published by the backend.

    Attributes:
        id: Avatar identifier.
        name: Display name.
        provider: Media provider kind (see AvatarProvider).
        cost_per_minute: Billing rate for sessions with this avatar.
        is_active: Whether sessions can currently be created for it.
        created_at: ISO-8601 creation timestamp.
    """

    id: str
    name: str
    provider: str
    cost_per_minute: float
    is_active: bool
    created_at: str
    slug: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    preview_video_url: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def has_video(self) -> bool:
        return self.provider != AvatarProvider.AUDIO_ONLY.value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Avatar":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            provider=data.get("provider", AvatarProvider.HEDRA.value),
            cost_per_minute=float(data.get("costPerMinute", 0)),
            is_active=bool(data.get("isActive", True)),
            created_at=data.get("createdAt", ""),
            slug=data.get("slug"),
            description=data.get("description"),
            category=data.get("category"),
            image_url=data.get("imageUrl"),
            preview_video_url=data.get("previewVideoUrl"),
            updated_at=data.get("updatedAt"),
        )


@dataclass(frozen=True)
class AvatarPage:
    avatars: list[Avatar]
    pagination: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AvatarPage":
        return cls(
            avatars=[Avatar.from_dict(a) for a in data.get("avatars", [])],
            pagination=data.get("pagination"),
        )


@dataclass(frozen=True)
class SessionAvatar:
    """Subset of the avatar descriptor echoed back with a session."""

    id: str
    name: str = ""
    slug: Optional[str] = None
    system_prompt: Optional[str] = None
    voice_id: Optional[str] = None
    model_url: Optional[str] = None
    hedra_avatar_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionAvatar":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            slug=data.get("slug"),
            system_prompt=data.get("systemPrompt"),
            voice_id=data.get("voiceId"),
            model_url=data.get("modelUrl"),
            hedra_avatar_id=data.get("hedraAvatarId"),
        )


@dataclass(frozen=True)
class AvatarSession:
    """
    A backend session: the room to join and the credential for joining it.

    The SDK never refreshes a session; once ``expires_at`` has passed the
    LiveKit credential is stale and a new session must be created.
    """

    id: str
    livekit_token: str = field(default="", repr=False)
    livekit_url: str = ""
    room_name: str = ""
    session_id: str = ""
    provider: str = ""
    avatar: Optional[SessionAvatar] = None
    expires_at: str = ""

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if not self.expires_at:
            return False
        now = now or datetime.now(timezone.utc)
        return _parse_timestamp(self.expires_at) <= now

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AvatarSession":
        avatar = data.get("avatar")
        return cls(
            id=data["id"],
            livekit_token=data.get("liveKitToken") or "",
            livekit_url=data.get("liveKitUrl") or "",
            room_name=data.get("roomName", ""),
            session_id=data.get("sessionId", data["id"]),
            provider=data.get("provider", ""),
            avatar=SessionAvatar.from_dict(avatar) if avatar else None,
            expires_at=data.get("expiresAt", ""),
        )


@dataclass
class SessionMetadata:
    session_name: Optional[str] = None
    custom_context: Optional[str] = None
    user_agent: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "sessionName": self.session_name,
                "customContext": self.custom_context,
                "userAgent": self.user_agent,
            }
        )


@dataclass
class CreateSessionRequest:
    avatar_id: str
    user_id: str
    metadata: Optional[SessionMetadata] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"avatarId": self.avatar_id, "userId": self.user_id}
        if self.metadata is not None:
            payload["metadata"] = self.metadata.to_dict()
        return payload


@dataclass
class CreateAvatarRequest:
    name: str
    provider: str = AvatarProvider.HEDRA.value
    cost_per_minute: float = 0.0
    slug: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    preview_video_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "name": self.name,
                "provider": AvatarProvider(self.provider).value,
                "costPerMinute": self.cost_per_minute,
                "slug": self.slug,
                "description": self.description,
                "category": self.category,
                "imageUrl": self.image_url,
                "previewVideoUrl": self.preview_video_url,
            }
        )


@dataclass(frozen=True)
class SessionStatusInfo:
    """Server-side view of a session, including running cost."""

    session_id: str
    status: str
    provider: str
    avatar_id: str
    start_time: str
    duration: float
    estimated_cost: float
    room_name: str
    end_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionStatusInfo":
        return cls(
            session_id=data.get("sessionId", ""),
            status=data.get("status", ""),
            provider=data.get("provider", ""),
            avatar_id=data.get("avatarId", ""),
            start_time=data.get("startTime", ""),
            duration=float(data.get("duration", 0)),
            estimated_cost=float(data.get("estimatedCost", 0)),
            room_name=data.get("roomName", ""),
            end_time=data.get("endTime"),
        )


@dataclass(frozen=True)
class HealthStatus:
    status: str
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HealthStatus":
        return cls(status=data.get("status", ""), timestamp=data.get("timestamp", ""))
