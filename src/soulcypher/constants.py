"""Enumerations and fixed values shared across the SDK."""

from enum import Enum


class AvatarProvider(str, Enum):
    """Media provider behind an avatar."""

    HEDRA = "hedra"  # video + audio
    AUDIO_ONLY = "audio_only"


class SessionEventType(str, Enum):
    """Public event vocabulary emitted by an AvatarSessionManager."""

    SESSION_STARTED = "session.started"
    SESSION_ENDED = "session.ended"
    AVATAR_VIDEO = "avatar.video"
    AVATAR_AUDIO = "avatar.audio"
    AVATAR_RESPONSE = "avatar.response"
    AVATAR_STATUS = "avatar.status"
    AVATAR_ERROR = "avatar.error"
    CONNECTION_QUALITY = "connection.quality"


class SessionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    ENDED = "ended"


class SDKEnvironment(str, Enum):
    PRODUCTION = "production"
    STAGING = "staging"
    DEVELOPMENT = "development"


class MessageType(str, Enum):
    """Discriminator values carried in data-channel messages."""

    CHAT = "chat"
    STATUS = "status"
    RESPONSE = "response"
    ERROR = "error"


# Only production has a published address; other environments need an explicit base_url.
ENVIRONMENT_BASE_URLS = {
    SDKEnvironment.PRODUCTION: "https://api.soulcypher.ai",
}

API_VERSION_PREFIX = "/v1"
HEALTH_PATH = "/health"
