"""
Example: Chat Session

This example demonstrates how to:
1. List the available avatars
2. Create an avatar session on the backend
3. Join the session's LiveKit room
4. Send a chat message and wait for the avatar's response
5. End the session and clean up
"""

import asyncio
import os
import sys
from typing import List, Optional

from soulcypher import (
    CreateSessionRequest,
    SDKConfig,
    SessionEvent,
    SessionEventType,
    SoulCypherError,
    SoulCypherSDK,
)

# Configuration
RESPONSE_TIMEOUT = 45  # seconds
DEFAULT_MESSAGE = "Hello! Please introduce yourself."


class ResponseCollector:
    """Collects avatar responses and errors from a session."""

    def __init__(self):
        self.responses: List[str] = []
        self.error: Optional[Exception] = None
        self._done = asyncio.Event()

    def on_response(self, event: SessionEvent):
        self.responses.append(event.data.text)
        self._done.set()

    def on_status(self, event: SessionEvent):
        print(f"  avatar status: {event.data.status}")

    def on_avatar_error(self, event: SessionEvent):
        self.finish(Exception(f"Avatar error: {event.data.text}"))

    def on_ended(self, event: SessionEvent):
        if not self.responses:
            self.finish(Exception("Session ended before the avatar responded"))

    def finish(self, error: Optional[Exception]):
        if error and not self.error:
            self.error = error
        self._done.set()

    async def wait(self, timeout: Optional[float] = None):
        try:
            await asyncio.wait_for(self._done.wait(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise TimeoutError("Timed out waiting for avatar response") from e

        if self.error:
            raise self.error


async def main() -> int:
    config = SDKConfig.from_env()
    user_id = os.getenv("SOULCYPHER_USER_ID", "example-user").strip()
    avatar_id = os.getenv("SOULCYPHER_AVATAR_ID", "").strip()
    message = " ".join(sys.argv[1:]) or DEFAULT_MESSAGE

    if not config.api_key:
        print("Missing required environment variable: SOULCYPHER_API_KEY")
        return 1

    async with SoulCypherSDK(config) as sdk:
        if not await sdk.ping():
            print(f"Backend at {config.resolved_base_url} is not healthy")
            return 1

        try:
            if not avatar_id:
                avatars = [a for a in await sdk.get_avatars() if a.is_active]
                if not avatars:
                    print("No active avatars available")
                    return 1
                avatar_id = avatars[0].id
                print(f"Using avatar {avatars[0].name} ({avatar_id})")

            manager = await sdk.create_session(
                CreateSessionRequest(avatar_id=avatar_id, user_id=user_id)
            )
            print(f"Created session {manager.session_id}")

            collector = ResponseCollector()
            manager.on(SessionEventType.AVATAR_RESPONSE, collector.on_response)
            manager.on(SessionEventType.AVATAR_STATUS, collector.on_status)
            manager.on(SessionEventType.AVATAR_ERROR, collector.on_avatar_error)
            manager.on(SessionEventType.SESSION_ENDED, collector.on_ended)

            print("Connecting...")
            await manager.connect()
            print(f"Status: {manager.get_status().value}")

            print(f"Sending: {message}")
            await manager.send_message(message)
            await collector.wait(timeout=RESPONSE_TIMEOUT)

            for text in collector.responses:
                print(f"Avatar: {text}")

            await sdk.end_session(manager.session_id)
            print("Session ended")

        except SoulCypherError as e:
            print(f"SDK error: {e}")
            return 1
        except Exception as e:
            print(f"Error: {e}")
            return 1

    return 0


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    exit(exit_code)
