"""User interface tests on a terminal without styling."""

import asyncio
import io

import pytest
from blessed import Terminal

from huddle_client.chat_state_machine import (
    ChatState,
    ChatStateMachine,
    DisplayMode,
    Participant,
)
from huddle_client.user_interface import UserInterface
from huddle_client.user_interface.themes import THEMES
from huddle_client.user_interface.tiles import (
    ChatTile,
    HeaderTile,
    InputMess,
    InputMode,
    InputTile,
    RosterTile,
)
from huddle_common.colors import color_for
from huddle_common.messages import ChatMessage


@pytest.fixture()
def term():
    """Set up a terminal that prints no escape sequences."""
    return Terminal(force_styling=None, stream=io.StringIO())


@pytest.fixture()
def theme():
    """Set up the light theme."""
    return THEMES[DisplayMode.LIGHT]


def plain(term, lines):
    """Strip formatting from printable lines."""
    return [term.strip_seqs(line) for line in lines]


def test_roster_placeholder(term, theme):
    """Test the roster of an empty room."""
    tile = RosterTile(width=28, height=10)
    assert plain(term, tile.lines(term, ChatState(), theme)) == [
        "No users online"
    ]


def test_roster(term, theme):
    """Test a participant line."""
    tile = RosterTile(width=28, height=10)
    state = ChatState(
        roster=(
            Participant("alice", color_for("alice")),
            Participant("bob", color_for("bob")),
        )
    )
    assert plain(term, tile.lines(term, state, theme)) == [
        "(A) alice online",
        "(B) bob online",
    ]


def test_chat_placeholder(term, theme):
    """Test the message pane of a quiet room."""
    tile = ChatTile(width=40, height=10)
    assert plain(term, tile.lines(term, ChatState(), theme))[0] == (
        "No messages yet"
    )


def test_chat_messages(term, theme):
    """Test message lines, image links included."""
    tile = ChatTile(width=60, height=10)
    state = ChatState(
        log=(
            ChatMessage("bob", "hi"),
            ChatMessage("eve", "http://example.org/cat.gif"),
        )
    )
    assert plain(term, tile.lines(term, state, theme)) == [
        "(B) bob> hi",
        "(E) eve> [image] http://example.org/cat.gif",
    ]


def test_chat_shows_latest_messages(term, theme):
    """Test that only the newest messages fitting the tile are shown."""
    tile = ChatTile(width=40, height=3)
    state = ChatState(
        log=tuple(ChatMessage("bob", f"line {i}") for i in range(10))
    )
    assert plain(term, tile.lines(term, state, theme)) == [
        "(B) bob> line 7",
        "(B) bob> line 8",
        "(B) bob> line 9",
    ]


def test_header(term):
    """Test the counters and the display mode label."""
    tile = HeaderTile(width=80, height=2)
    state = ChatState(
        roster=(Participant("alice", color_for("alice")),),
        log=(ChatMessage("alice", "hi"), ChatMessage("alice", "again")),
        display_mode=DisplayMode.DARK,
    )
    title = plain(term, tile.lines(term, state, THEMES[DisplayMode.DARK]))[0]

    assert title.startswith("huddle chat room")
    assert title.endswith("1 online | 2 messages | dark")
    assert len(title) == 80


def test_long_input_keeps_its_end(term, theme):
    """Test that the end of a long input stays visible."""
    tile = InputTile(width=10, height=1)
    tile.input_text = "abcdefghijklmnop"
    (line,) = tile.lines(term, ChatState(), theme)

    assert len(line) == 10
    assert line.endswith("mnop")
    assert line.startswith("<")


class RecordingTransport:
    """Transport that records outbound frames."""

    def __init__(self) -> None:
        """Construct the transport."""
        self.frames = []

    def send(self, frame: str) -> None:
        """Record a frame."""
        self.frames.append(frame)


def run_ui(term, inputs):
    """Feed input lines to a user interface and return the chat."""
    transport = RecordingTransport()
    chat = ChatStateMachine(send=transport.send)
    shutdowns = []

    async def shutdown() -> None:
        shutdowns.append(True)

    async def scenario() -> UserInterface:
        ui = UserInterface(
            loop=asyncio.get_running_loop(),
            chat=chat,
            shutdown_callback=shutdown,
            term=term,
        )
        chat.handle_inbound_frame(
            '{"messageType": "message", "data":'
            + ' "{\\"from\\": \\"bob\\", \\"message\\": \\"hi\\"}"}'
        )
        ui.footer.input_text = "typed"
        for input_message in inputs:
            if not await ui.handle_input_message(input_message):
                break
        # Let the scheduled redraws run
        await asyncio.sleep(0)
        return ui

    ui = asyncio.run(scenario())
    return ui, chat, transport, shutdowns


def test_theme_and_clear_commands(term):
    """Test the slash commands driving the chat state machine."""
    ui, chat, transport, _ = run_ui(
        term,
        [
            InputMess(InputMode.COMMAND, "theme"),
            InputMess(InputMode.COMMAND, "clear"),
        ],
    )

    assert chat.state.display_mode == DisplayMode.DARK
    assert ui.theme == THEMES[DisplayMode.DARK]
    assert chat.state.log == ()
    assert transport.frames == []


def test_unknown_command(term):
    """Test that an unknown command only shows a notice."""
    ui, chat, transport, _ = run_ui(
        term, [InputMess(InputMode.COMMAND, "dance")]
    )

    assert ui.notice == "Unknown command: /dance"
    assert len(chat.state.log) == 1
    assert transport.frames == []


def test_submit_keeps_text_typed_afterwards(term):
    """Test that sending a line leaves keys typed after Enter alone."""
    ui, _, transport, _ = run_ui(term, [InputMess(InputMode.NORMAL, "hey")])

    assert len(transport.frames) == 1
    assert ui.footer.input_text == "typed"


def test_blank_submit_keeps_input(term):
    """Test that a blank line neither sends nor clears."""
    ui, _, transport, _ = run_ui(term, [InputMess(InputMode.NORMAL, "   ")])

    assert transport.frames == []
    assert ui.footer.input_text == "typed"


@pytest.mark.parametrize(
    "input_message",
    [InputMess(InputMode.EXIT, "exit"), InputMess(InputMode.COMMAND, "quit")],
)
def test_quit(term, input_message):
    """Test that quitting runs the shutdown callback and stops."""
    _, chat, _, shutdowns = run_ui(
        term, [input_message, InputMess(InputMode.COMMAND, "theme")]
    )

    assert shutdowns == [True]
    assert chat.state.display_mode == DisplayMode.LIGHT


@pytest.mark.parametrize(
    "typed, expected",
    [
        ("hello", InputMess(InputMode.NORMAL, "hello")),
        ("/theme", InputMess(InputMode.COMMAND, "theme")),
        ("/ quit ", InputMess(InputMode.COMMAND, "quit")),
    ],
)
def test_take_line_empties_buffer(typed, expected):
    """Test that taking a line empties the buffer at once."""
    tile = InputTile(width=40, height=1)
    tile.input_text = typed

    assert tile.take_line() == expected
    assert tile.input_text == ""


def test_take_blank_line_keeps_buffer():
    """Test that a blank line stays in the buffer."""
    tile = InputTile(width=40, height=1)
    tile.input_text = "   "

    assert tile.take_line() == InputMess(InputMode.NORMAL, "   ")
    assert tile.input_text == "   "
