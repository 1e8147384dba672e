"""
Unit tests for the MessageRouter protocol state machine.
"""

import asyncio
import json

import pytest

from chat_server.core.types import (
    COLOR_PALETTE,
    ERR_INVALID_CONNECT,
    ERR_INVALID_FORMAT,
    ERR_PROCESSING,
    WS_CLOSE_SESSION_REPLACED,
)

from tests.helpers import frame, frames_of_type, sent_frames


async def connect(router, websocket, user_id, username):
    await router.process_frame(websocket, frame("CONNECT", userId=user_id, username=username))


@pytest.fixture
def router(backend):
    return backend.router


@pytest.fixture
def store(backend):
    return backend.store


@pytest.fixture
def registry(backend):
    return backend.registry


class TestConnect:
    """CONNECT frames."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_creates_and_binds_new_user(self, router, store, registry, mock_websocket):
        await connect(router, mock_websocket, 1, "Ada Lovelace")

        user = store.get_user(1)
        assert user.username == "Ada Lovelace"
        assert user.initials == "AL"
        assert user.color in COLOR_PALETTE
        assert user.online_status is True
        assert registry.get_user_id(mock_websocket) == 1
        assert sent_frames(mock_websocket) == [
            {"type": "CONNECT", "payload": {"message": "Connected successfully", "userId": 1}}
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_existing_user_flips_online(self, router, store, mock_websocket):
        existing = store.create_user("alice")
        assert existing.online_status is False

        await connect(router, mock_websocket, existing.id, "alice")

        assert store.get_user(existing.id).online_status is True
        assert len(store.list_users()) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_resolves_known_username_with_unknown_id(
        self, router, store, registry, mock_websocket
    ):
        alice = store.create_user("alice")

        await connect(router, mock_websocket, 99, "alice")

        assert len(store.list_users()) == 1
        assert registry.get_user_id(mock_websocket) == alice.id
        ack = frames_of_type(mock_websocket, "CONNECT")[0]
        assert ack["payload"]["userId"] == alice.id

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_announces_to_others_only(self, router, make_websocket):
        alice_ws, bob_ws = make_websocket(), make_websocket()
        await connect(router, alice_ws, 1, "Alice")

        await connect(router, bob_ws, 2, "Bob")

        joined = frames_of_type(alice_ws, "USER_JOINED")
        assert joined == [
            {
                "type": "USER_JOINED",
                "payload": {"userId": 2, "username": "Bob", "message": "Bob is now online"},
            }
        ]
        assert frames_of_type(bob_ws, "USER_JOINED") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"userId": 1},
            {"username": "alice"},
            {"userId": 0, "username": "alice"},
            {"userId": "one", "username": "alice"},
            {"userId": 1, "username": ""},
            {"userId": 1, "username": "   "},
        ],
    )
    async def test_invalid_connect_replies_error(self, router, registry, store, mock_websocket, payload):
        await router.process_frame(mock_websocket, json.dumps({"type": "CONNECT", "payload": payload}))

        assert sent_frames(mock_websocket) == [
            {"type": "ERROR", "payload": {"message": ERR_INVALID_CONNECT}}
        ]
        assert registry.all() == []
        assert store.list_users() == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_without_payload_replies_error(self, router, mock_websocket):
        await router.process_frame(mock_websocket, json.dumps({"type": "CONNECT"}))

        assert frames_of_type(mock_websocket, "ERROR")[0]["payload"]["message"] == ERR_INVALID_CONNECT

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_second_session_replaces_first(self, router, registry, make_websocket):
        first, second = make_websocket(), make_websocket()
        await connect(router, first, 1, "alice")

        await connect(router, second, 1, "alice")
        await asyncio.sleep(0)

        assert registry.all() == [(1, second)]
        first.close.assert_awaited_once_with(
            code=WS_CLOSE_SESSION_REPLACED, reason="Session replaced"
        )

        # The superseded connection's close path does not announce a departure
        assert await router.handle_close(first) is None
        assert frames_of_type(second, "USER_LEFT") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_switching_identity_releases_previous_one(
        self, router, store, registry, make_websocket
    ):
        observer, switcher = make_websocket(), make_websocket()
        await connect(router, observer, 1, "observer")
        await connect(router, switcher, 2, "first")

        await connect(router, switcher, 3, "second")

        assert registry.get_user_id(switcher) == 3
        assert store.get_user(2).online_status is False
        left = frames_of_type(observer, "USER_LEFT")
        assert [f["payload"]["userId"] for f in left] == [2]


class TestChatMessage:
    """CHAT_MESSAGE frames."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_chat_message_persisted_and_echoed_to_all(self, router, store, make_websocket):
        alice_ws, bob_ws = make_websocket(), make_websocket()
        await connect(router, alice_ws, 1, "Alice")
        await connect(router, bob_ws, 2, "Bob")

        await router.process_frame(alice_ws, frame("CHAT_MESSAGE", content="hi", userId=1, channelId=1))

        for ws in (alice_ws, bob_ws):
            chats = frames_of_type(ws, "CHAT_MESSAGE")
            assert len(chats) == 1
            payload = chats[0]["payload"]
            assert payload["content"] == "hi"
            assert payload["message"] == "hi"
            assert payload["userId"] == 1
            assert payload["username"] == "Alice"
            assert payload["channelId"] == 1
            assert payload["messageId"] == 1
            assert payload["timestamp"]

        history = store.list_messages_by_channel(1)
        assert [(e.message.content, e.user.username) for e in history] == [("hi", "Alice")]

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"content": "hi", "userId": 1, "channelId": 99},
            {"content": "hi", "userId": 42, "channelId": 1},
            {"content": "", "userId": 1, "channelId": 1},
            {"userId": 1, "channelId": 1},
            {"content": "hi", "channelId": 1},
        ],
    )
    async def test_unresolvable_chat_message_dropped(self, router, store, make_websocket, payload):
        alice_ws, bob_ws = make_websocket(), make_websocket()
        await connect(router, alice_ws, 1, "Alice")
        await connect(router, bob_ws, 2, "Bob")
        before = (len(sent_frames(alice_ws)), len(sent_frames(bob_ws)))

        await router.process_frame(alice_ws, json.dumps({"type": "CHAT_MESSAGE", "payload": payload}))

        assert store.get_stats()["messages"] == 0
        assert (len(sent_frames(alice_ws)), len(sent_frames(bob_ws))) == before

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_frames_from_unidentified_connection_dropped(self, router, store, make_websocket):
        store.create_user("alice")
        listener, stranger = make_websocket(), make_websocket()
        await connect(router, listener, 2, "bob")

        await router.process_frame(stranger, frame("CHAT_MESSAGE", content="hi", userId=1, channelId=1))
        await router.process_frame(stranger, frame("TYPING", userId=1, channelId=1))

        assert store.get_stats()["messages"] == 0
        stranger.send.assert_not_called()
        assert frames_of_type(listener, "CHAT_MESSAGE") == []
        assert frames_of_type(listener, "TYPING") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timestamps_monotonic_per_channel(self, router, store, mock_websocket):
        await connect(router, mock_websocket, 1, "alice")
        for i in range(5):
            await router.process_frame(
                mock_websocket, frame("CHAT_MESSAGE", content=f"m{i}", userId=1, channelId=1)
            )

        stamps = [e.message.timestamp for e in store.list_messages_by_channel(1)]
        assert len(stamps) == 5
        assert all(a <= b for a, b in zip(stamps, stamps[1:]))


class TestChannelActivity:
    """CHANNEL_JOINED and TYPING frames."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_channel_joined_broadcast(self, router, make_websocket):
        alice_ws, bob_ws = make_websocket(), make_websocket()
        await connect(router, alice_ws, 1, "Alice")
        await connect(router, bob_ws, 2, "Bob")

        await router.process_frame(bob_ws, frame("CHANNEL_JOINED", channelId=2, userId=2))

        expected = {
            "type": "CHANNEL_JOINED",
            "payload": {
                "channelId": 2,
                "userId": 2,
                "username": "Bob",
                "message": "Bob joined #random",
            },
        }
        assert frames_of_type(alice_ws, "CHANNEL_JOINED") == [expected]
        assert frames_of_type(bob_ws, "CHANNEL_JOINED") == [expected]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_typing_broadcast_without_persistence(self, router, store, make_websocket):
        alice_ws, bob_ws = make_websocket(), make_websocket()
        await connect(router, alice_ws, 1, "Alice")
        await connect(router, bob_ws, 2, "Bob")

        await router.process_frame(alice_ws, frame("TYPING", channelId=1, userId=1))

        assert frames_of_type(bob_ws, "TYPING") == [
            {"type": "TYPING", "payload": {"channelId": 1, "userId": 1, "username": "Alice"}}
        ]
        assert len(frames_of_type(alice_ws, "TYPING")) == 1
        assert store.get_stats()["messages"] == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("message_type", ["CHANNEL_JOINED", "TYPING"])
    @pytest.mark.parametrize(
        "payload",
        [{"channelId": 99, "userId": 1}, {"channelId": 1, "userId": 99}, {"channelId": 1}],
    )
    async def test_unresolvable_activity_dropped(self, router, mock_websocket, message_type, payload):
        await connect(router, mock_websocket, 1, "alice")
        before = len(sent_frames(mock_websocket))

        await router.process_frame(mock_websocket, json.dumps({"type": message_type, "payload": payload}))

        assert len(sent_frames(mock_websocket)) == before


class TestMalformedFrames:
    """Frames that fail envelope validation."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2, 3]",
            '"CONNECT"',
            json.dumps({"payload": {}}),
            json.dumps({"type": "SHOUT", "payload": {}}),
            json.dumps({"type": ["CONNECT"], "payload": {}}),
            b"\x00\x01binary",
            "[" * 5000,
            '{"type": "CONNECT", "payload": ' + "{\"a\": " * 5000,
        ],
    )
    async def test_invalid_format_replies_error(self, router, registry, mock_websocket, raw):
        await router.process_frame(mock_websocket, raw)

        assert sent_frames(mock_websocket) == [
            {"type": "ERROR", "payload": {"message": ERR_INVALID_FORMAT}}
        ]
        assert registry.all() == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_deeply_nested_frame_does_not_break_session(self, router, registry, mock_websocket):
        await connect(router, mock_websocket, 1, "alice")

        await router.process_frame(mock_websocket, "[" * 5000)
        await router.process_frame(
            mock_websocket, frame("CHAT_MESSAGE", content="still here", userId=1, channelId=1)
        )

        assert frames_of_type(mock_websocket, "ERROR") == [
            {"type": "ERROR", "payload": {"message": ERR_INVALID_FORMAT}}
        ]
        assert registry.all() == [(1, mock_websocket)]
        chats = frames_of_type(mock_websocket, "CHAT_MESSAGE")
        assert [c["payload"]["content"] for c in chats] == ["still here"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message_type",
        ["USER_JOINED", "USER_LEFT", "CHANNEL_LEFT", "ERROR", "CONNECTION_STATUS"],
    )
    async def test_unhandled_types_reply_error(self, router, mock_websocket, message_type):
        await connect(router, mock_websocket, 1, "alice")

        await router.process_frame(mock_websocket, frame(message_type))

        errors = frames_of_type(mock_websocket, "ERROR")
        assert errors == [
            {"type": "ERROR", "payload": {"message": f"Unsupported message type: {message_type}"}}
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_handler_failure_keeps_connection_open(self, router, store, mock_websocket, monkeypatch):
        await connect(router, mock_websocket, 1, "alice")

        def explode(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(store, "create_message", explode)

        await router.process_frame(mock_websocket, frame("CHAT_MESSAGE", content="hi", userId=1, channelId=1))

        assert frames_of_type(mock_websocket, "ERROR") == [
            {"type": "ERROR", "payload": {"message": ERR_PROCESSING}}
        ]
        mock_websocket.close.assert_not_called()


class TestClosePath:
    """Connection close handling."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_close_unbinds_and_announces_once(self, router, store, registry, make_websocket):
        alice_ws, bob_ws = make_websocket(), make_websocket()
        await connect(router, alice_ws, 1, "Alice")
        await connect(router, bob_ws, 2, "Bob")

        assert await router.handle_close(bob_ws) == 2

        assert frames_of_type(alice_ws, "USER_LEFT") == [
            {
                "type": "USER_LEFT",
                "payload": {"userId": 2, "username": "Bob", "message": "Bob left the chat"},
            }
        ]
        assert frames_of_type(bob_ws, "USER_LEFT") == []
        assert store.get_user(2).online_status is False
        assert registry.all() == [(1, alice_ws)]

        # A second close for the same connection is a no-op
        assert await router.handle_close(bob_ws) is None
        assert len(frames_of_type(alice_ws, "USER_LEFT")) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_close_of_unidentified_connection(self, router, make_websocket):
        alice_ws, stranger = make_websocket(), make_websocket()
        await connect(router, alice_ws, 1, "Alice")

        assert await router.handle_close(stranger) is None
        assert frames_of_type(alice_ws, "USER_LEFT") == []
