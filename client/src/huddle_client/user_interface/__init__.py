"""Terminal user interface of the huddle chat room."""

import asyncio
import concurrent.futures
import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional

from blessed import Terminal

from ..chat_state_machine import ChatState, ChatStateMachine, StateChange
from .themes import THEMES, Theme
from .tiles import (
    ChatTile,
    HeaderTile,
    InputMess,
    InputMode,
    InputTile,
    RosterTile,
    Tile,
)

ROSTER_WIDTH = 28


class UserInterface:
    """Render the chat state and turn user input into chat operations."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        chat: ChatStateMachine,
        shutdown_callback: Callable[[], Awaitable[None]],
        term: Optional[Terminal] = None,
    ) -> None:
        """Instantiate the user interface."""
        self.log = logging.getLogger("huddle-logger")
        self.term = term if term is not None else Terminal()
        self.loop = loop
        self.chat = chat
        self.shutdown_callback = shutdown_callback
        self.pools: List[concurrent.futures.ThreadPoolExecutor] = []
        self.notice = ""

        width, height = self.term.width, self.term.height
        self.header = HeaderTile(name="Header", width=width, height=2)
        self.roster_tile = RosterTile(
            name="Roster",
            width=ROSTER_WIDTH,
            height=height - 3,
            x=0,
            y=2,
        )
        self.chat_tile = ChatTile(
            name="Chat",
            width=max(width - ROSTER_WIDTH - 1, 0),
            height=height - 3,
            x=ROSTER_WIDTH + 1,
            y=2,
        )
        self.footer = InputTile(
            name="Input", width=width, height=1, x=0, y=height - 1
        )

        self.slash_cmds: Mapping[str, Callable[[], Any]] = {
            "clear": self.chat.clear_log,
            "theme": self.chat.toggle_display_mode,
        }

        self.chat.add_observer(self.on_state_change)

    @property
    def theme(self) -> Theme:
        """Get the theme of the current display mode."""
        return THEMES[self.chat.state.display_mode]

    def input_queue(self) -> asyncio.Queue:
        """Get the queue of complete input lines."""
        return self.footer.input_queue

    async def run(self) -> None:
        """Draw the screen and handle user input until shutdown."""
        print(self.term.enter_fullscreen + self.term.clear, end="")
        await self.render_all()
        self.loop.create_task(  # noqa: FKA01
            self.run_in_thread(
                self.footer.input, self.term, self.loop, self.render_input
            )
        )
        await self.handle_user_input()

    def shutdown(self) -> None:
        """Stop reading input and restore the terminal."""
        self.footer.terminate()
        for pool in self.pools:
            pool.shutdown(wait=True)
        print(self.term.exit_fullscreen, end="", flush=True)

    def on_state_change(self, change: StateChange, state: ChatState) -> None:
        """Redraw the parts of the screen affected by a state change."""
        if change & StateChange.DISPLAY_MODE:
            tiles: List[Tile] = [
                self.header,
                self.roster_tile,
                self.chat_tile,
                self.footer,
            ]
        else:
            tiles = [self.header]
            if change & StateChange.ROSTER:
                tiles.append(self.roster_tile)
            if change & (StateChange.ROSTER | StateChange.LOG):
                # Sender colours follow the roster
                tiles.append(self.chat_tile)
            if change & StateChange.INPUT:
                # The input thread already emptied the buffer
                tiles.append(self.footer)

        for tile in tiles:
            self.loop.create_task(tile.render(self.term, state, self.theme))

    async def render_all(self) -> None:
        """Render every tile."""
        for tile in (self.header, self.roster_tile, self.chat_tile):
            await tile.render(self.term, self.chat.state, self.theme)
        await self.render_input()

    async def render_input(self) -> None:
        """Render the input line and any pending notice."""
        await self.footer.render(self.term, self.chat.state, self.theme)
        if self.notice:
            with self.term.location(0, self.footer.y - 1):
                print(
                    self.theme.style(self.term, "accent")(self.notice),
                    end="",
                    flush=True,
                )

    async def run_in_thread(self, task: Callable, *args: Any) -> None:
        """Run function in another thread."""
        pool = concurrent.futures.ThreadPoolExecutor()
        self.pools.append(pool)
        await self.loop.run_in_executor(pool, task, *args)  # noqa: FKA01

    async def handle_user_input(self) -> None:
        """Handle user input asynchronously."""
        while True:
            input_message: InputMess = await self.input_queue().get()
            if not await self.handle_input_message(input_message):
                break

    async def handle_input_message(self, input_message: InputMess) -> bool:
        """Dispatch one input line, return False once the user quits."""
        mode = input_message.mode
        input_text = input_message.text
        self.notice = ""

        if mode == InputMode.EXIT or (
            mode == InputMode.COMMAND and input_text == "quit"
        ):
            # Note that shutdown is an async coroutine and
            # must be awaited
            await self.shutdown_callback()
            return False

        if mode == InputMode.COMMAND:
            cmd = self.slash_cmds.get(input_text)
            if cmd:
                cmd()
            else:
                self.notice = f"Unknown command: /{input_text}"
                self.log.debug(self.notice)
                await self.render_input()
        elif mode == InputMode.NORMAL:
            self.chat.submit_message(input_text)

        return True
