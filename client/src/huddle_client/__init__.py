"""huddle chat room frontend."""

import asyncio
import logging
import logging.handlers
import os

from .chat_state_machine import ChatStateMachine
from .relay import FrameRelay
from .session_manager_client import SessionManager
from .user_interface import UserInterface


class Client:
    """Frontend application starter."""

    def __init__(self) -> None:
        """Construct the client object."""
        self.server_hostname = os.environ["HUDDLE_SERVER_HOSTNAME"]
        self.server_port = os.environ["HUDDLE_PORT"]

        self._do_logger_config()
        self.log = logging.getLogger("huddle-logger")

        self.username = os.environ.get("HUDDLE_USERNAME", "").strip()
        while not self.username:
            self.username = input("Username: ").strip()

        self.event_loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.event_loop)

        self.relay = FrameRelay()
        self.session_manager = SessionManager(relay=self.relay)
        self.chat = ChatStateMachine(send=self.session_manager.send)
        self.session_manager.subscribe(self.chat.handle_inbound_frame)

        self.ui = UserInterface(
            loop=self.event_loop,
            chat=self.chat,
            shutdown_callback=self._do_graceful_shutdown,
        )

    def run(self) -> None:
        """Run the client application."""
        # Queued until the connection opens
        self.chat.initialize(self.username)
        try:
            self.event_loop.run_until_complete(
                asyncio.gather(  # noqa: FKA01
                    # Connect to the server...
                    self._run_session(),
                    # ...and handle the user
                    self.ui.run(),
                )
            )
        except Exception as e:
            self.log.critical(
                f"Fatal exception ({type(e).__name__}): {str(e)}"
            )
            self.event_loop.run_until_complete(self._do_graceful_shutdown())

    async def _run_session(self) -> None:
        """Stay connected to the server for as long as it lets us."""
        await self.session_manager.connect(
            url=f"ws://{self.server_hostname}:{self.server_port}"
        )
        self.log.info("Session with the server ended")
        await self._do_graceful_shutdown()

    async def _do_graceful_shutdown(self) -> None:
        """Shut down the application gracefully."""
        self.log.info("Closing the connection...")
        await self.session_manager.shutdown()
        self.log.info("Restoring the terminal...")
        self.ui.shutdown()
        self.log.info("Bye, bye...")
        os._exit(0)

    def _do_logger_config(self) -> None:
        """Initialize the logger."""
        logger = logging.getLogger("huddle-logger")

        # Prepare the formatter
        formatter = logging.Formatter(
            fmt="[%(levelname)s] %(asctime)s %(message)s",
        )

        # Create a rotating file handler
        handler = logging.handlers.RotatingFileHandler(
            filename=os.environ["HUDDLE_CLIENT_LOGFILE_PATH"],
            maxBytes=int(os.environ["HUDDLE_CLIENT_LOGFILE_CAPACITY_KB"])
            * 1024,
        )

        # Associate the formatter with the handler...
        handler.setFormatter(formatter)
        # ...and the handler with the logger
        logger.addHandler(handler)

        logger.setLevel(logging.INFO)
