"""Chat state machine.

The chat state machine owns everything the front-end displays:
the roster of connected participants, the log of chat messages
and the display mode. It has two session states:

                   initialize(username)
UNINITIALIZED -------------------------------> ACTIVE

The transition happens once per session and sends a REGISTER
frame to the server, which is expected to answer with a USERS
snapshot. There is no way back: re-registration after a lost
connection is the transport's business.

Inbound frames are handled in either state, one at a time and
in delivery order:

  USERS     the roster is replaced by the snapshot (never merged)
  MESSAGE   the nested chat line is appended to the log
  REGISTER  client-to-server only, ignored

A frame that cannot be decoded is dropped with a warning and
the session goes on. Every operation returns the set of state
parts it changed and passes the same set to the observers.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum, Flag, auto, unique
from typing import Callable, List, Tuple

from huddle_common.colors import color_for
from huddle_common.connection import HuddleTransportError
from huddle_common.messages import (
    ChatMessage,
    HuddleDeserializationError,
    HuddleMessage,
    HuddleProtocolError,
    MsgType,
    Register,
    UserMessage,
    deserialize,
    deserialize_chat_message,
    serialize,
)


class StateChange(Flag):
    """Parts of the chat state touched by an operation."""

    NONE = 0
    ROSTER = auto()
    LOG = auto()
    DISPLAY_MODE = auto()
    # The front-end must clear its input line
    INPUT = auto()


@unique
class SessionState(Enum):
    """Registration state of the chat session."""

    UNINITIALIZED = auto()
    ACTIVE = auto()


@unique
class DisplayMode(Enum):
    """Display mode of the front-end."""

    LIGHT = auto()
    DARK = auto()


@dataclass(frozen=True)
class Participant:
    """A connected participant."""

    name: str
    color: str

    @property
    def initial(self) -> str:
        """Get the avatar initial of the participant."""
        return self.name[:1].upper() or "?"


@dataclass(frozen=True)
class ChatState:
    """Read-only snapshot of the chat state."""

    roster: Tuple[Participant, ...] = field(default_factory=tuple)
    log: Tuple[ChatMessage, ...] = field(default_factory=tuple)
    display_mode: DisplayMode = DisplayMode.LIGHT

    def color_of(self, name: str) -> str:
        """Get the colour of a message sender."""
        for participant in self.roster:
            if participant.name == name:
                return participant.color
        return color_for(name)


StateObserver = Callable[[StateChange, ChatState], None]


class ChatStateMachine:
    """Chat state machine."""

    def __init__(self, send: Callable[[str], None]) -> None:
        """Instantiate the state machine on top of a transport send call."""
        self.log = logging.getLogger("huddle-logger")
        self._send = send
        self._state = ChatState()
        self._observers: List[StateObserver] = []
        self.session_state = SessionState.UNINITIALIZED
        self.username = ""

    @property
    def state(self) -> ChatState:
        """Get the current chat state."""
        return self._state

    def add_observer(self, observer: StateObserver) -> None:
        """Register a state change observer."""
        self._observers.append(observer)

    def initialize(self, username: str) -> StateChange:
        """Register with the server."""
        if self.session_state == SessionState.ACTIVE:
            self.log.warning(
                f"Session already registered as '{self.username}'."
                + f" Not registering '{username}'"
            )
            return StateChange.NONE

        self.username = username
        self.session_state = SessionState.ACTIVE
        if self._send_message(Register(username)):
            self.log.debug(f"Registered as '{username}'")
        return StateChange.NONE

    def handle_inbound_frame(self, raw: str) -> StateChange:
        """Handle a frame received from the server."""
        try:
            message = deserialize(raw)
        except HuddleProtocolError as e:
            self.log.warning(f"Ignoring frame: {str(e)}")
            return StateChange.NONE
        except HuddleDeserializationError as e:
            self.log.warning(f"Discarding malformed frame: {str(e)}")
            return StateChange.NONE

        if message.message_type == MsgType.USERS:
            return self._handle_message_users(message)
        elif message.message_type == MsgType.MESSAGE:
            return self._handle_message_message(message)
        else:
            self.log.debug(
                f"Ignoring inbound {message.message_type.value} frame"
            )
            return StateChange.NONE

    def submit_message(self, text: str) -> StateChange:
        """Send a chat message typed by the user."""
        text = text.strip()
        if not text:
            return StateChange.NONE

        self._send_message(UserMessage(text))
        # The input is cleared whether or not the frame made it out
        return self._notify(StateChange.INPUT)

    def toggle_display_mode(self) -> StateChange:
        """Switch between the light and the dark display mode."""
        if self._state.display_mode == DisplayMode.LIGHT:
            mode = DisplayMode.DARK
        else:
            mode = DisplayMode.LIGHT
        self._state = replace(self._state, display_mode=mode)
        return self._notify(StateChange.DISPLAY_MODE)

    def clear_log(self) -> StateChange:
        """Drop all messages from the log."""
        self._state = replace(self._state, log=())
        return self._notify(StateChange.LOG)

    def _handle_message_users(self, message: HuddleMessage) -> StateChange:
        """Handle message type USERS."""
        roster = tuple(
            Participant(name=name, color=color_for(name))
            for name in message.data_array or []
        )
        self.log.debug(f"Roster snapshot with {len(roster)} participant(s)")
        self._state = replace(self._state, roster=roster)
        return self._notify(StateChange.ROSTER)

    def _handle_message_message(self, message: HuddleMessage) -> StateChange:
        """Handle message type MESSAGE."""
        try:
            chat_message = deserialize_chat_message(message.data)
        except HuddleDeserializationError as e:
            self.log.warning(f"Discarding malformed chat message: {str(e)}")
            return StateChange.NONE

        log = self._state.log + (chat_message,)
        self._state = replace(self._state, log=log)
        return self._notify(StateChange.LOG)

    def _send_message(self, message: HuddleMessage) -> bool:
        """Hand an outbound envelope to the transport."""
        try:
            self._send(serialize(message))
        except HuddleTransportError as e:
            self.log.error(
                f"Failed to send {message.message_type.value} frame: {str(e)}"
            )
            return False
        return True

    def _notify(self, change: StateChange) -> StateChange:
        """Pass a state change to the observers."""
        for observer in list(self._observers):
            try:
                observer(change, self._state)
            except Exception as e:
                self.log.error(
                    f"State observer failed ({type(e).__name__}): {str(e)}"
                )
        return change
