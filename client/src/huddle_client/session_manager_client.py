"""Clientside session manager."""

import asyncio
import contextlib
import logging
from typing import Callable, Optional, Union

import websockets.asyncio.client as ws
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from huddle_common.connection import HuddleTransportError

from .relay import FrameHandler, FrameRelay


class SessionManager:
    """Session manager.

    Manage a session with the server: forward outbound frames to
    the server and publish every inbound frame to the frame relay.
    """

    def __init__(self, relay: Optional[FrameRelay] = None) -> None:
        """Construct a session manager instance."""
        self.log = logging.getLogger("huddle-logger")
        self.relay = relay if relay is not None else FrameRelay()
        self.upstream_frame_queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def connect(self, url: str) -> None:
        """Connect to the server and run until the connection ends."""
        if self.closed:
            raise HuddleTransportError("Session manager already shut down")

        self.log.debug(f"Connecting to the server at {url}...")

        try:
            async with ws.connect(url) as self.conn:
                self.log.debug(
                    "Successfully connected to the server. Handling"
                    + " upstream and downstream concurrently..."
                )
                upstream = asyncio.create_task(
                    self._handle_upstream(self.conn)
                )
                try:
                    await self._handle_downstream(self.conn)
                finally:
                    upstream.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await upstream
        finally:
            self.closed = True

    async def shutdown(self) -> None:
        """Shut down the session manager."""
        self.closed = True
        if hasattr(self, "conn"):
            await self.conn.close()

    def send(self, frame: str) -> None:
        """Queue an outbound frame.

        Frames queued before the connection is open are sent, in order,
        as soon as it opens.
        """
        if self.closed:
            raise HuddleTransportError("Connection to the server is closed")
        self.upstream_frame_queue.put_nowait(frame)

    def subscribe(self, handler: FrameHandler) -> Callable[[], None]:
        """Subscribe to inbound frames."""
        return self.relay.subscribe(handler)

    async def _handle_upstream(self, conn: ws.ClientConnection) -> None:
        """Handle upstream traffic, i.e. client to server."""
        while True:
            frame = await self.upstream_frame_queue.get()
            try:
                await conn.send(frame)
            except ConnectionClosed as e:
                self.log.error(f"Frame not delivered to the server: {e}")

    async def _handle_downstream(self, conn: ws.ClientConnection) -> None:
        """Handle downstream traffic, i.e. server to client."""
        try:
            while True:
                frame = self._as_text(await conn.recv())
                if frame is not None:
                    self.relay.publish(frame)
        except ConnectionClosedOK:
            self.log.info("Connection closed by the server")

    def _as_text(self, frame: Union[str, bytes]) -> Optional[str]:
        """Convert a received frame to text."""
        if isinstance(frame, str):
            return frame
        try:
            return frame.decode("utf-8")
        except UnicodeDecodeError:
            self.log.warning(
                f"Dropping a binary frame of {len(frame)} byte(s)"
                + " that is not valid UTF-8"
            )
            return None
