"""Normalized session events.

LiveKit room notifications are translated into the closed SessionEventType
vocabulary here. Each event type carries its own payload dataclass; handlers
receive a SessionEvent wrapping that payload.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from livekit import rtc

from .constants import MessageType, SessionEventType
from .log import logger
from .models import AvatarSession


@dataclass(frozen=True)
class SessionPayload:
    """Payload of session.started and session.ended."""

    session: AvatarSession
    reason: Optional[Any] = None


@dataclass(frozen=True)
class TrackPayload:
    """Payload of avatar.video and avatar.audio."""

    track: Any
    participant: Any = None


@dataclass(frozen=True)
class ResponsePayload:
    text: str
    participant: Any = None


@dataclass(frozen=True)
class StatusPayload:
    status: Optional[str]
    text: Optional[str] = None
    participant: Any = None


@dataclass(frozen=True)
class AvatarErrorPayload:
    text: str
    participant: Any = None


@dataclass(frozen=True)
class QualityPayload:
    quality: Any
    participant: Any = None


EventPayload = Union[
    SessionPayload,
    TrackPayload,
    ResponsePayload,
    StatusPayload,
    AvatarErrorPayload,
    QualityPayload,
]

# The payload class each event type is emitted with.
PAYLOAD_TYPES: dict[SessionEventType, type] = {
    SessionEventType.SESSION_STARTED: SessionPayload,
    SessionEventType.SESSION_ENDED: SessionPayload,
    SessionEventType.AVATAR_VIDEO: TrackPayload,
    SessionEventType.AVATAR_AUDIO: TrackPayload,
    SessionEventType.AVATAR_RESPONSE: ResponsePayload,
    SessionEventType.AVATAR_STATUS: StatusPayload,
    SessionEventType.AVATAR_ERROR: AvatarErrorPayload,
    SessionEventType.CONNECTION_QUALITY: QualityPayload,
}


@dataclass(frozen=True)
class SessionEvent:
    """
    A single normalized event as delivered to handlers.

    Attributes:
        type: The event type.
        session: The session the event originated from.
        timestamp: ISO-8601 UTC time at which the event was emitted.
        data: Payload matching ``type`` (see PAYLOAD_TYPES).
    """

    type: SessionEventType
    session: AvatarSession
    timestamp: str
    data: EventPayload


EventHandler = Callable[[SessionEvent], None]


def utc_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EventHandlers:
    """
    Per-session handler lists keyed by event type.

    Handlers run synchronously in registration order. A handler that raises is
    logged and skipped; it never affects other handlers or the emitter.
    """

    def __init__(self):
        self._handlers: dict[SessionEventType, list[EventHandler]] = {}

    def add(self, event_type: SessionEventType, handler: EventHandler) -> None:
        self._handlers.setdefault(SessionEventType(event_type), []).append(handler)

    def remove(self, event_type: SessionEventType, handler: EventHandler) -> None:
        handlers = self._handlers.get(SessionEventType(event_type))
        if handlers and handler in handlers:
            handlers.remove(handler)

    def count(self, event_type: SessionEventType) -> int:
        return len(self._handlers.get(SessionEventType(event_type), ()))

    def emit(
        self,
        event_type: SessionEventType,
        session: AvatarSession,
        data: EventPayload,
    ) -> Optional[SessionEvent]:
        if not isinstance(data, PAYLOAD_TYPES[event_type]):
            raise TypeError(
                f"{event_type.value} expects {PAYLOAD_TYPES[event_type].__name__}, "
                f"got {type(data).__name__}"
            )

        handlers = self._handlers.get(event_type)
        if not handlers:
            return None

        event = SessionEvent(
            type=event_type, session=session, timestamp=utc_timestamp(), data=data
        )
        # Snapshot so handlers may call on()/off() while being dispatched.
        for handler in list(handlers):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Error in %s handler for session %s", event_type.value, session.id
                )
        return event


def track_event_type(track: Any) -> Optional[SessionEventType]:
    """Map a subscribed track onto avatar.video / avatar.audio by media kind."""
    kind = getattr(track, "kind", None)
    if kind == rtc.TrackKind.KIND_VIDEO:
        return SessionEventType.AVATAR_VIDEO
    if kind == rtc.TrackKind.KIND_AUDIO:
        return SessionEventType.AVATAR_AUDIO
    return None


def decode_data_message(
    payload: bytes, participant: Any = None
) -> Optional[tuple[SessionEventType, EventPayload]]:
    """
    Decode a data-channel packet sent by the avatar.

    Returns the event type and payload to emit, or None when the packet is
    malformed or carries a type this SDK does not handle.
    """
    try:
        data = json.loads(bytes(payload).decode("utf-8"))
    except (UnicodeDecodeError, ValueError, TypeError) as e:
        logger.warning("Failed to parse avatar message: %s", e)
        return None

    if not isinstance(data, dict):
        logger.warning("Ignoring non-object avatar message: %r", data)
        return None

    message_type = data.get("type")
    if message_type == MessageType.STATUS.value:
        return SessionEventType.AVATAR_STATUS, StatusPayload(
            status=data.get("status"), text=data.get("text"), participant=participant
        )
    if message_type == MessageType.RESPONSE.value:
        return SessionEventType.AVATAR_RESPONSE, ResponsePayload(
            text=data.get("text", ""), participant=participant
        )
    if message_type == MessageType.ERROR.value:
        return SessionEventType.AVATAR_ERROR, AvatarErrorPayload(
            text=data.get("text", ""), participant=participant
        )

    logger.debug("Ignoring avatar message with type %r", message_type)
    return None


def encode_chat_message(text: str) -> bytes:
    return json.dumps({"type": MessageType.CHAT.value, "text": text}).encode("utf-8")
