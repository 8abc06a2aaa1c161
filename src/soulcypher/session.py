"""AvatarSessionManager: drives one LiveKit room for one avatar session."""

import functools
from typing import Any, Callable, Optional, Protocol

from livekit import rtc

from .constants import SessionEventType, SessionStatus
from .errors import (
    ConnectionSetupError,
    MessagingError,
    NotConnectedError,
    SessionError,
)
from .events import (
    EventHandler,
    EventHandlers,
    EventPayload,
    QualityPayload,
    SessionPayload,
    TrackPayload,
    decode_data_message,
    encode_chat_message,
    track_event_type,
)
from .log import logger
from .models import AvatarSession


class MediaSink(Protocol):
    """Rendering target for a subscribed avatar track."""

    def attach(self, track: rtc.Track) -> None:
        ...

    def detach(self, track: rtc.Track) -> None:
        ...


RoomFactory = Callable[[], rtc.Room]


class AvatarSessionManager:
    """
    Manages the live connection of a single avatar session.

    The manager handles:
    - Joining the session's LiveKit room with the backend-issued token
    - Translating room notifications into SessionEvents
    - Sending chat messages over the room's reliable data channel
    - Binding optional media sinks to the avatar's video/audio tracks

    At most one room is live per manager. ``disconnect()`` is idempotent and
    always emits ``session.ended``.
    """

    def __init__(
        self, session: AvatarSession, room_factory: Optional[RoomFactory] = None
    ):
        """
        Args:
            session: Backend session carrying the LiveKit URL and token.
            room_factory: Callable creating the room to join. Defaults to
                ``livekit.rtc.Room``.
        """
        self._session = session
        self._room_factory = room_factory
        self._room: Optional[rtc.Room] = None
        self._connecting_room: Optional[rtc.Room] = None
        self._ended = False
        self._handlers = EventHandlers()
        self._room_listeners: list[tuple[str, Callable[..., None]]] = []
        self._video_sink: Optional[MediaSink] = None
        self._audio_sink: Optional[MediaSink] = None
        self._attached: list[tuple[MediaSink, Any]] = []

    @property
    def session(self) -> AvatarSession:
        return self._session

    @property
    def session_id(self) -> str:
        return self._session.id

    @property
    def has_ended(self) -> bool:
        """True once the session has been torn down, locally or by the transport."""
        return self._ended

    @property
    def lifecycle_state(self) -> SessionStatus:
        """
        Like get_status(), but reports ENDED instead of DISCONNECTED once a
        session has been torn down.
        """
        if self._ended and self._room is None:
            return SessionStatus.ENDED
        return self.get_status()

    async def connect(
        self,
        video_sink: Optional[MediaSink] = None,
        audio_sink: Optional[MediaSink] = None,
    ) -> None:
        """
        Join the session's LiveKit room.

        Args:
            video_sink: Optional sink attached to the avatar's video track.
            audio_sink: Optional sink attached to the avatar's audio track.

        Raises:
            ConnectionSetupError: If the session has no LiveKit credentials or the
                room cannot be joined. The manager can be connected again afterwards.
            SessionError: If the manager is already connected or connecting.
        """
        if not self._session.livekit_token or not self._session.livekit_url:
            raise ConnectionSetupError("LiveKit connection details not available")
        if self._room is not None:
            raise SessionError("Session already connected")

        room = (self._room_factory or rtc.Room)()
        self._room = room
        self._video_sink = video_sink
        self._audio_sink = audio_sink
        # Listeners go on before connect() so early track/data events are not lost.
        self._attach_room_listeners(room)
        self._connecting_room = room

        try:
            await room.connect(
                self._session.livekit_url,
                self._session.livekit_token,
                options=rtc.RoomOptions(auto_subscribe=True),
            )
        except Exception as e:
            if self._room is room:
                self._room = None
                self._detach_room_listeners(room)
                self._release_media()
            logger.warning("Session %s failed to connect: %s", self.session_id, e)
            raise ConnectionSetupError(f"Failed to connect to LiveKit: {e}") from e
        finally:
            if self._connecting_room is room:
                self._connecting_room = None

        if self._room is not room:
            # disconnect() or a transport disconnect won the race.
            await self._leave_aborted_room(room)
            raise ConnectionSetupError("Connection aborted before it was established")

        self._ended = False
        logger.info(
            "Session %s connected to room %s", self.session_id, self._session.room_name
        )
        self._emit(SessionEventType.SESSION_STARTED, SessionPayload(self._session))

    async def disconnect(self) -> None:
        """
        Leave the room, if any, and emit ``session.ended``.

        Safe to call repeatedly and on a manager that never connected.

        Raises:
            SessionError: If the transport failed while leaving the room. The
                manager is torn down and ``session.ended`` is emitted regardless.
        """
        room, self._room = self._room, None
        error: Optional[Exception] = None

        if room is not None:
            self._detach_room_listeners(room)
            try:
                await room.disconnect()
            except Exception as e:
                logger.warning("Session %s failed to disconnect: %s", self.session_id, e)
                error = e
            self._release_media()
            logger.info("Session %s disconnected", self.session_id)

        self._ended = True
        self._emit(SessionEventType.SESSION_ENDED, SessionPayload(self._session))

        if error is not None:
            raise SessionError(f"Failed to disconnect from LiveKit: {error}") from error

    async def send_message(self, text: str) -> None:
        """
        Send a chat message to the avatar over the reliable data channel.

        Raises:
            NotConnectedError: If the manager is not connected.
            MessagingError: If the transport rejects the message.
        """
        room = self._room
        if room is None or self._connecting_room is room:
            raise NotConnectedError("Not connected to session")

        try:
            await room.local_participant.publish_data(
                encode_chat_message(text), reliable=True
            )
        except Exception as e:
            raise MessagingError(f"Failed to send message: {e}") from e

    def get_status(self) -> SessionStatus:
        """
        Current connection status as reported by the room.

        A torn-down session reports DISCONNECTED, the same as one that never
        connected; see ``lifecycle_state`` to tell them apart.
        """
        room = self._room
        if room is None:
            return SessionStatus.DISCONNECTED
        if self._connecting_room is room:
            return SessionStatus.CONNECTING

        state = getattr(room, "connection_state", None)
        if state == rtc.ConnectionState.CONN_CONNECTED:
            return SessionStatus.CONNECTED
        if state == rtc.ConnectionState.CONN_RECONNECTING:
            return SessionStatus.CONNECTING
        if state == rtc.ConnectionState.CONN_DISCONNECTED:
            return SessionStatus.DISCONNECTED
        return SessionStatus.ERROR

    def on(self, event_type: SessionEventType, handler: EventHandler) -> None:
        """Register a handler; handlers of one type run in registration order."""
        self._handlers.add(SessionEventType(event_type), handler)

    def off(self, event_type: SessionEventType, handler: EventHandler) -> None:
        """Remove a handler. Removing one that is not registered does nothing."""
        self._handlers.remove(SessionEventType(event_type), handler)

    def _emit(self, event_type: SessionEventType, data: EventPayload) -> None:
        self._handlers.emit(event_type, self._session, data)

    def _attach_room_listeners(self, room: rtc.Room) -> None:
        listeners: list[tuple[str, Callable[..., None]]] = [
            ("track_subscribed", self._on_track_subscribed),
            ("track_unsubscribed", self._on_track_unsubscribed),
            ("data_received", self._on_data_received),
            ("connection_quality_changed", self._on_connection_quality_changed),
            ("disconnected", functools.partial(self._on_disconnected, room)),
        ]
        for event, callback in listeners:
            room.on(event, callback)
        self._room_listeners = listeners

    def _detach_room_listeners(self, room: rtc.Room) -> None:
        listeners, self._room_listeners = self._room_listeners, []
        for event, callback in listeners:
            room.off(event, callback)

    async def _leave_aborted_room(self, room: rtc.Room) -> None:
        if getattr(room, "connection_state", None) != rtc.ConnectionState.CONN_CONNECTED:
            return
        # The join completed after the manager let go of this room.
        try:
            await room.disconnect()
        except Exception:
            logger.exception("Session %s failed to leave aborted room", self.session_id)

    def _release_media(self) -> None:
        attached, self._attached = self._attached, []
        for sink, track in attached:
            self._detach_sink(sink, track)
        self._video_sink = None
        self._audio_sink = None

    def _detach_sink(self, sink: MediaSink, track: Any) -> None:
        try:
            sink.detach(track)
        except Exception:
            logger.exception("Failed to detach track %s", getattr(track, "sid", track))

    def _on_track_subscribed(self, track: Any, publication: Any, participant: Any) -> None:
        event_type = track_event_type(track)
        if event_type is None:
            return

        self._emit(event_type, TrackPayload(track=track, participant=participant))

        if event_type == SessionEventType.AVATAR_VIDEO:
            sink = self._video_sink
        else:
            sink = self._audio_sink
        if sink is None:
            return
        try:
            sink.attach(track)
        except Exception:
            logger.exception("Failed to attach track %s", getattr(track, "sid", track))
            return
        self._attached.append((sink, track))

    def _on_track_unsubscribed(
        self, track: Any, publication: Any, participant: Any
    ) -> None:
        remaining = []
        for sink, attached_track in self._attached:
            if attached_track is track:
                self._detach_sink(sink, track)
            else:
                remaining.append((sink, attached_track))
        self._attached = remaining

    def _on_data_received(self, packet: rtc.DataPacket) -> None:
        decoded = decode_data_message(packet.data, getattr(packet, "participant", None))
        if decoded is not None:
            event_type, payload = decoded
            self._emit(event_type, payload)

    def _on_connection_quality_changed(self, participant: Any, quality: Any) -> None:
        self._emit(
            SessionEventType.CONNECTION_QUALITY,
            QualityPayload(quality=quality, participant=participant),
        )

    def _on_disconnected(self, room: rtc.Room, reason: Any = None) -> None:
        if self._room is not room:
            return

        self._room = None
        self._detach_room_listeners(room)
        self._release_media()
        self._ended = True
        logger.info("Session %s disconnected by transport: %s", self.session_id, reason)
        self._emit(
            SessionEventType.SESSION_ENDED,
            SessionPayload(self._session, reason=reason),
        )
