"""Test client recovery from malformed downstream frames."""

import asyncio
import logging
from json import JSONEncoder

from websockets.asyncio.server import ServerConnection, serve

from huddle_client.chat_state_machine import ChatStateMachine
from huddle_client.relay import FrameRelay
from huddle_client.session_manager_client import SessionManager
from huddle_common.messages import ChatMessage

GOOD_USERS = JSONEncoder().encode(
    {"messageType": "users", "dataArray": ["alice", "bob"], "data": None}
)

GOOD_MESSAGE = JSONEncoder().encode(
    {
        "messageType": "message",
        "dataArray": None,
        "data": JSONEncoder().encode({"from": "bob", "message": "still here"}),
    }
)

MALFORMED = [
    "For nothing can seem foul to those that win",
    bytes([i for i in range(128, 192)]),
    JSONEncoder().encode({"dummy": 42, "data": "Hello world"}),
    JSONEncoder().encode({"messageType": "message", "data": "{broken"}),
    JSONEncoder().encode({"messageType": "message", "data": None}),
    JSONEncoder().encode({"messageType": "users", "dataArray": [None]}),
    JSONEncoder().encode({"messageType": "kick", "data": "alice"}),
    JSONEncoder().encode({"messageType": "register", "data": "mallory"}),
]


def run_session(frames) -> ChatStateMachine:
    """Connect a chat to a server that sends the frames and hangs up."""

    async def chat_server(conn: ServerConnection) -> None:
        await conn.recv()
        for frame in frames:
            await conn.send(frame)

    async def scenario() -> ChatStateMachine:
        async with serve(chat_server, "localhost", 0) as server:
            port = list(server.sockets)[0].getsockname()[1]

            sm = SessionManager(relay=FrameRelay())
            chat = ChatStateMachine(send=sm.send)
            sm.subscribe(chat.handle_inbound_frame)
            chat.initialize("alice")

            await asyncio.wait_for(
                sm.connect(f"ws://localhost:{port}"), timeout=5
            )
            return chat

    return asyncio.run(scenario())


def test_malformed_frames_are_dropped(caplog):
    """Test that garbage between valid frames changes nothing."""
    frames = [GOOD_USERS] + MALFORMED + [GOOD_MESSAGE]

    with caplog.at_level(logging.DEBUG, logger="huddle-logger"):
        chat = run_session(frames)

    assert [p.name for p in chat.state.roster] == ["alice", "bob"]
    assert chat.state.log == (ChatMessage("bob", "still here"),)
    assert "Discarding malformed frame" in caplog.text
    assert "Discarding malformed chat message" in caplog.text
    assert "Dropping a binary frame" in caplog.text
    assert "Ignoring frame" in caplog.text


def test_utf8_binary_frame_is_accepted():
    """Test that a binary frame holding UTF-8 JSON is handled as text."""
    chat = run_session([GOOD_USERS.encode("utf-8")])

    assert [p.name for p in chat.state.roster] == ["alice", "bob"]
