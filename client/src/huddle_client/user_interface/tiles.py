"""Tile classes for emulating independent I/O widgets of specified size."""

from asyncio import AbstractEventLoop, Queue, run_coroutine_threadsafe
from dataclasses import dataclass
from enum import IntEnum, auto
from typing import Any, Awaitable, Callable, List

from blessed import Terminal, keyboard

from huddle_common.messages import ChatMessage

from ..chat_state_machine import ChatState, Participant
from .themes import Theme, paint


class InputMode(IntEnum):
    """Kind of a line read from the keyboard."""

    NORMAL = auto()
    COMMAND = auto()
    EXIT = auto()


@dataclass
class InputMess:
    """Line read from the keyboard, passed to the event loop."""

    mode: InputMode
    text: str


class Tile:
    """Tile class for emulating an independent I/O widget of specified size."""

    def __init__(
        self,
        name: str = "",
        width: int = 0,
        height: int = 0,
        x: int = 0,
        y: int = 0,
    ) -> None:
        """Instantiate a tile."""
        self.name = name
        self.width = width
        self.height = height
        self.x = x
        self.y = y

    def truncate(self, text: str, t: Terminal) -> str:
        """Truncate text to fit into the rendering box."""
        out = text
        if t.length(text) > self.width:
            out = t.truncate(text, self.width - 1) + ">"
        return out

    def lines(self, t: Terminal, state: ChatState, theme: Theme) -> List[str]:
        """Build the printable lines of the tile."""
        return []

    async def render(
        self, t: Terminal, state: ChatState, theme: Theme
    ) -> None:
        """Render the Tile."""
        style = theme.style(t, "primary")
        lines = self.lines(t, state, theme)
        with t.hidden_cursor():
            for i in range(self.height):
                line = self.truncate(lines[i], t) if i < len(lines) else ""
                print(
                    t.move_xy(self.x, self.y + i)
                    + style(t.ljust(line, self.width)),
                    end="",
                    flush=True,
                )


class HeaderTile(Tile):
    """Header Tile."""

    def lines(self, t: Terminal, state: ChatState, theme: Theme) -> List[str]:
        """Build the title bar and the counters."""
        title = t.bold("huddle") + " chat room"
        counters = (
            f"{len(state.roster)} online | {len(state.log)} messages"
            + f" | {theme.mode_label}"
        )
        right = t.rjust(counters, max(self.width - t.length(title), 0))
        return [title + right, theme.style(t, "border")("—" * self.width)]


class RosterTile(Tile):
    """Roster Tile, lists the online participants."""

    def lines(self, t: Terminal, state: ChatState, theme: Theme) -> List[str]:
        """Build one line per participant."""
        secondary = theme.style(t, "secondary")
        if not state.roster:
            return [secondary("No users online")]
        return [
            self.format_participant(t, participant, theme)
            for participant in state.roster
        ]

    def format_participant(
        self, t: Terminal, participant: Participant, theme: Theme
    ) -> str:
        """Reduce a participant to printable form."""
        badge = paint(t, participant.color)(f"({participant.initial})")
        return (
            badge
            + " "
            + participant.name
            + " "
            + theme.style(t, "secondary")("online")
        )


class ChatTile(Tile):
    """Chat Tile, shows the latest messages of the log."""

    def lines(self, t: Terminal, state: ChatState, theme: Theme) -> List[str]:
        """Build the lines of the most recent messages."""
        if not state.log:
            secondary = theme.style(t, "secondary")
            return [
                secondary("No messages yet"),
                secondary("Start a conversation!"),
            ]

        printable: List[str] = []
        # Walk back from the newest message until the tile is full
        for message in reversed(state.log):
            wrapped = self.format_message(t, message, state, theme)
            printable = wrapped + printable
            if len(printable) >= self.height:
                break
        return printable[-self.height :] if self.height > 0 else []

    def format_message(
        self, t: Terminal, message: ChatMessage, state: ChatState, theme: Theme
    ) -> List[str]:
        """Reduce a chat message to printable, wrapped form."""
        user_color = paint(t, state.color_of(message.sender))
        if message.is_image_link:
            body = theme.style(t, "secondary")("[image] ") + message.message
        else:
            body = message.message

        line = (
            user_color(f"({message.initial}) {message.sender}")
            + theme.style(t, "secondary")("> ")
            + body
        )
        return t.wrap(line, self.width) if self.width > 0 else []


class InputTile(Tile):
    """Input Tile."""

    def __init__(self, prompt: str = "> ", *args: Any, **kwargs: Any) -> None:
        """Init input Tile."""
        self.prompt = prompt
        self.input_text = ""
        Tile.__init__(self, *args, **kwargs)
        self.input_queue: Queue = Queue()
        self._terminate = False

    def terminate(self) -> None:
        """Tell input function to terminate."""
        self._terminate = True

    def lines(self, t: Terminal, state: ChatState, theme: Theme) -> List[str]:
        """Build the prompt line."""
        text = self.prompt + self.input_text
        if t.length(text) > self.width:
            # Keep the end of a long input visible
            text = "<" + text[t.length(text) - self.width + 1 :]
        return [text]

    def take_line(self) -> InputMess:
        """Turn the typed text into an input message.

        Called from the input thread on Enter. The buffer is emptied
        right away unless the line is blank, so keys typed before the
        event loop handles the line are kept.
        """
        text = self.input_text
        if text.startswith("/"):
            mess = InputMess(InputMode.COMMAND, text[1:].strip())
        else:
            mess = InputMess(InputMode.NORMAL, text)
        if text.strip():
            self.input_text = ""
        return mess

    def input(
        self,
        term: Terminal,
        loop: AbstractEventLoop,
        redraw: Callable[[], Awaitable[None]],
    ) -> None:
        """Read keystrokes until told to terminate.

        Runs in its own thread, so everything touching the event loop
        goes through run_coroutine_threadsafe.
        """
        while not self._terminate:
            with term.raw():
                val = term.inkey(0.1)

            if not val:
                continue

            # workaround to have a working ctrl+c in raw mode
            # and with threads
            if val == chr(3):
                run_coroutine_threadsafe(
                    self.input_queue.put(InputMess(InputMode.EXIT, "exit")),
                    loop,
                )
                break

            if val.code == term.KEY_ENTER:
                run_coroutine_threadsafe(
                    self.input_queue.put(self.take_line()), loop
                )
            elif val.code in (term.KEY_BACKSPACE, term.KEY_DELETE):
                self.input_text = self.input_text[:-1]
            elif self.input_filter(val):
                self.input_text += str(val)
            else:
                continue

            run_coroutine_threadsafe(redraw(), loop)

    def input_filter(self, keystroke: keyboard.Keystroke) -> bool:
        """
        For keystroke, return whether it should be allowed as string input.

        Deny multi-byte sequences (such as '\\x1b[A') and control
        characters (such as ^L).
        """
        if keystroke.is_sequence:
            return False
        if ord(keystroke) < ord(" "):
            return False
        return True
