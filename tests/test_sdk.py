import unittest

from soulcypher import (
    AuthenticationError,
    CreateSessionRequest,
    NetworkError,
    SDKConfig,
    SessionCleanupError,
    SessionError,
    SessionEventType,
    SessionStatus,
    SoulCypherSDK,
    new_sdk,
)
from soulcypher.errors import HealthCheckError, InternalServerError

from fakes import FakeAPIClient, FakeRoom, RoomFactory, make_session


def _sdk(api=None, room_factory=None) -> SoulCypherSDK:
    return SoulCypherSDK(
        SDKConfig(api_key="key-1"),
        api_client=api or FakeAPIClient(),
        room_factory=room_factory or RoomFactory(),
    )


class TestSDKConstruction(unittest.TestCase):
    def test_requires_api_key(self):
        with self.assertRaises(AuthenticationError):
            SoulCypherSDK(SDKConfig(api_key=""))

    def test_new_sdk_builds_config(self):
        sdk = new_sdk(api_key="key-1", base_url="https://api.example.com/", timeout_seconds=3)

        self.assertEqual(sdk.config.resolved_base_url, "https://api.example.com")
        self.assertEqual(sdk.config.timeout_seconds, 3)


class TestSessions(unittest.IsolatedAsyncioTestCase):
    async def test_create_session_registers_unconnected_manager(self):
        api = FakeAPIClient()
        sdk = _sdk(api)

        manager = await sdk.create_session(CreateSessionRequest(avatar_id="a1", user_id="u1"))

        self.assertEqual(manager.session_id, "s1")
        self.assertEqual(manager.session.livekit_token, "tok")
        self.assertEqual(manager.get_status(), SessionStatus.DISCONNECTED)
        self.assertEqual(sdk.get_active_sessions(), [manager])

        await manager.connect()
        self.assertEqual(manager.get_status(), SessionStatus.CONNECTED)

    async def test_get_session_cache_hit_skips_backend(self):
        api = FakeAPIClient()
        sdk = _sdk(api)
        created = await sdk.create_session(CreateSessionRequest(avatar_id="a1", user_id="u1"))
        api.calls.clear()

        found = await sdk.get_session(created.session_id)

        self.assertIs(found, created)
        self.assertEqual(api.calls, [])

    async def test_get_session_miss_fetches_and_caches(self):
        api = FakeAPIClient({"s9": make_session("s9")})
        sdk = _sdk(api)

        first = await sdk.get_session("s9")
        second = await sdk.get_session("s9")

        self.assertIsNotNone(first)
        self.assertIs(first, second)
        self.assertEqual(api.calls, [("get_session", "s9")])

    async def test_get_session_failure_returns_none(self):
        api = FakeAPIClient()
        api.get_error = NetworkError("Request failed: timeout")
        sdk = _sdk(api)

        self.assertIsNone(await sdk.get_session("s1"))
        self.assertIsInstance(sdk.last_lookup_error, NetworkError)
        self.assertEqual(sdk.get_active_sessions(), [])

        api.get_error = None
        self.assertIsNone(await sdk.get_session("missing"))
        self.assertEqual(sdk.last_lookup_error.status_code, 404)

        api.sessions["s1"] = make_session("s1")
        self.assertIsNotNone(await sdk.get_session("s1"))
        self.assertIsNone(sdk.last_lookup_error)

    async def test_end_session_disconnects_then_calls_backend(self):
        api = FakeAPIClient()
        room = FakeRoom()
        sdk = _sdk(api, RoomFactory(room))
        manager = await sdk.create_session(CreateSessionRequest(avatar_id="a1", user_id="u1"))
        ended = []
        manager.on(SessionEventType.SESSION_ENDED, ended.append)
        await manager.connect()

        await sdk.end_session(manager.session_id)

        self.assertEqual(room.disconnect_calls, 1)
        self.assertEqual(len(ended), 1)
        self.assertEqual(sdk.get_active_sessions(), [])
        self.assertEqual(api.calls[-1], ("end_session", "s1"))

    async def test_end_session_removes_locally_even_if_backend_fails(self):
        api = FakeAPIClient()
        api.end_error = InternalServerError("database unavailable")
        sdk = _sdk(api)
        manager = await sdk.create_session(CreateSessionRequest(avatar_id="a1", user_id="u1"))

        with self.assertRaises(InternalServerError):
            await sdk.end_session(manager.session_id)

        self.assertEqual(sdk.get_active_sessions(), [])

    async def test_end_session_reaches_backend_when_room_disconnect_fails(self):
        api = FakeAPIClient()
        room = FakeRoom(disconnect_error=RuntimeError("socket closed"))
        sdk = _sdk(api, RoomFactory(room))
        manager = await sdk.create_session(CreateSessionRequest(avatar_id="a1", user_id="u1"))
        await manager.connect()

        with self.assertRaises(SessionError) as ctx:
            await sdk.end_session(manager.session_id)

        self.assertIn("socket closed", ctx.exception.message)
        self.assertEqual(api.calls[-1], ("end_session", "s1"))
        self.assertEqual(sdk.get_active_sessions(), [])
        self.assertEqual(manager.get_status(), SessionStatus.DISCONNECTED)

    async def test_end_session_backend_failure_chains_disconnect_failure(self):
        api = FakeAPIClient()
        api.end_error = InternalServerError("database unavailable")
        room = FakeRoom(disconnect_error=RuntimeError("socket closed"))
        sdk = _sdk(api, RoomFactory(room))
        manager = await sdk.create_session(CreateSessionRequest(avatar_id="a1", user_id="u1"))
        await manager.connect()

        with self.assertRaises(InternalServerError) as ctx:
            await sdk.end_session(manager.session_id)

        self.assertIsInstance(ctx.exception.__cause__, SessionError)
        self.assertEqual(api.calls[-1], ("end_session", "s1"))
        self.assertEqual(sdk.get_active_sessions(), [])

    async def test_end_unknown_session_still_calls_backend(self):
        api = FakeAPIClient()
        sdk = _sdk(api)

        await sdk.end_session("remote-only")

        self.assertEqual(api.calls, [("end_session", "remote-only")])

    async def test_active_sessions_is_a_snapshot(self):
        sdk = _sdk()
        first = await sdk.create_session(CreateSessionRequest(avatar_id="a1", user_id="u1"))
        await sdk.create_session(CreateSessionRequest(avatar_id="a2", user_id="u1"))

        snapshot = sdk.get_active_sessions()
        await sdk.end_session(first.session_id)

        self.assertEqual(len(snapshot), 2)
        self.assertEqual(len(sdk.get_active_sessions()), 1)


class TestCleanup(unittest.IsolatedAsyncioTestCase):
    async def test_cleanup_disconnects_all_and_reports_failures(self):
        rooms = [FakeRoom(), FakeRoom(disconnect_error=RuntimeError("stuck")), FakeRoom()]
        sdk = _sdk(room_factory=RoomFactory(*rooms))
        managers = []
        for avatar_id in ("a1", "a2", "a3"):
            manager = await sdk.create_session(
                CreateSessionRequest(avatar_id=avatar_id, user_id="u1")
            )
            await manager.connect()
            managers.append(manager)

        with self.assertRaises(SessionCleanupError) as ctx:
            await sdk.cleanup()

        self.assertEqual(list(ctx.exception.failures), ["s2"])
        self.assertEqual([room.disconnect_calls for room in rooms], [1, 1, 1])
        for manager in managers:
            self.assertEqual(manager.get_status(), SessionStatus.DISCONNECTED)
        self.assertEqual(sdk.get_active_sessions(), [])

    async def test_cleanup_with_no_sessions(self):
        sdk = _sdk()

        await sdk.cleanup()

        self.assertEqual(sdk.get_active_sessions(), [])

    async def test_context_manager_cleans_up(self):
        room = FakeRoom()
        async with _sdk(room_factory=RoomFactory(room)) as sdk:
            manager = await sdk.create_session(CreateSessionRequest(avatar_id="a1", user_id="u1"))
            await manager.connect()

        self.assertEqual(room.disconnect_calls, 1)
        self.assertEqual(sdk.get_active_sessions(), [])

    async def test_context_manager_keeps_body_exception(self):
        room = FakeRoom(disconnect_error=RuntimeError("socket closed"))

        with self.assertLogs("soulcypher", level="WARNING") as logs:
            with self.assertRaises(ValueError):
                async with _sdk(room_factory=RoomFactory(room)) as sdk:
                    manager = await sdk.create_session(
                        CreateSessionRequest(avatar_id="a1", user_id="u1")
                    )
                    await manager.connect()
                    raise ValueError("body failed")

        self.assertEqual(room.disconnect_calls, 1)
        self.assertEqual(sdk.get_active_sessions(), [])
        self.assertTrue(any("Cleanup after failed block" in line for line in logs.output))

    async def test_context_manager_raises_cleanup_failure_without_body_error(self):
        room = FakeRoom(disconnect_error=RuntimeError("socket closed"))

        with self.assertRaises(SessionCleanupError):
            async with _sdk(room_factory=RoomFactory(room)) as sdk:
                manager = await sdk.create_session(
                    CreateSessionRequest(avatar_id="a1", user_id="u1")
                )
                await manager.connect()


class TestAvatars(unittest.IsolatedAsyncioTestCase):
    async def test_get_avatars_unwraps_page(self):
        avatars = await _sdk().get_avatars()

        self.assertEqual([a.id for a in avatars], ["a1"])


class TestPing(unittest.IsolatedAsyncioTestCase):
    async def test_ping_true_on_success(self):
        self.assertTrue(await _sdk().ping())

    async def test_ping_false_on_failure(self):
        api = FakeAPIClient()
        api.ping_error = HealthCheckError("Health check failed: 503", 503)

        self.assertFalse(await _sdk(api).ping())


if __name__ == "__main__":
    unittest.main()
