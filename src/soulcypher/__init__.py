"""
SoulCypher Avatar SDK - real-time AI avatar sessions over LiveKit

This package provides a Python SDK for discovering avatars, creating avatar
sessions on the SoulCypher backend, and talking to an avatar through a
LiveKit room with a typed event stream.
"""

from .api_client import APIClient
from .config import SDKConfig, SDKConfigBuilder
from .constants import (
    AvatarProvider,
    MessageType,
    SDKEnvironment,
    SessionEventType,
    SessionStatus,
)
from .errors import (
    APIError,
    AuthenticationError,
    ConnectionSetupError,
    HealthCheckError,
    InternalServerError,
    MessagingError,
    NetworkError,
    NotConnectedError,
    NotFoundError,
    RateLimitError,
    SessionCleanupError,
    SessionError,
    SoulCypherError,
    SoulCypherErrorCode,
    ValidationError,
)
from .events import (
    AvatarErrorPayload,
    QualityPayload,
    ResponsePayload,
    SessionEvent,
    SessionPayload,
    StatusPayload,
    TrackPayload,
)
from .models import (
    Avatar,
    AvatarSession,
    CreateAvatarRequest,
    CreateSessionRequest,
    HealthStatus,
    SessionMetadata,
    SessionStatusInfo,
)
from .request_id import generate_request_id
from .sdk import SoulCypherSDK, new_sdk
from .session import AvatarSessionManager, MediaSink

__version__ = "0.1.0"

__all__ = [
    "APIClient",
    "APIError",
    "AuthenticationError",
    "Avatar",
    "AvatarErrorPayload",
    "AvatarProvider",
    "AvatarSession",
    "AvatarSessionManager",
    "ConnectionSetupError",
    "CreateAvatarRequest",
    "CreateSessionRequest",
    "HealthCheckError",
    "HealthStatus",
    "InternalServerError",
    "MediaSink",
    "MessageType",
    "MessagingError",
    "NetworkError",
    "NotConnectedError",
    "NotFoundError",
    "QualityPayload",
    "RateLimitError",
    "ResponsePayload",
    "SDKConfig",
    "SDKConfigBuilder",
    "SDKEnvironment",
    "SessionCleanupError",
    "SessionError",
    "SessionEvent",
    "SessionEventType",
    "SessionMetadata",
    "SessionPayload",
    "SessionStatus",
    "SessionStatusInfo",
    "SoulCypherError",
    "SoulCypherErrorCode",
    "SoulCypherSDK",
    "StatusPayload",
    "TrackPayload",
    "ValidationError",
    "generate_request_id",
    "new_sdk",
]
