"""One persistent WebSocket connection to a gateway push endpoint.

No reconnect logic lives here: a StreamConnection is opened once, read until
it fails, and closed. The subscription loop decides what happens next.
"""

from __future__ import annotations

import httpx
import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed, WebSocketException

from mt5rest.engine.decoder import EventKind, decode
from mt5rest.engine.errors import DialError, ReadError, WriteError
from mt5rest.engine.models import Event
from mt5rest.engine.primitives import Seconds
from mt5rest.engine.session import Session

SCHEMES = {"http": "ws", "https": "wss"}


def streamUrl(baseUrl: str, endpoint: str, token: str) -> str:
    """WebSocket URI for `endpoint` under the gateway at `baseUrl`.

    e.g. streamUrl("https://gw.example/api", "/OnQuote", "abc")
         -> "wss://gw.example/api/OnQuote?id=abc"
    """
    url = httpx.URL(baseUrl)
    return str(
        url.copy_with(
            scheme=SCHEMES.get(url.scheme, url.scheme),
            path=url.path.rstrip("/") + endpoint,
            params={"id": token},
        )
    )


class StreamConnection:
    """Owns exactly one websockets client connection."""

    def __init__(self, ws, endpoint: str):
        self.ws = ws
        self.endpoint = endpoint
        self._alive = True

    @classmethod
    async def open(
        cls, session: Session, endpoint: str, openTimeout: Seconds = 45.0
    ) -> StreamConnection:
        """Dial `endpoint` with the session's current token."""
        try:
            uri = streamUrl(session.baseUrl, endpoint, session.token)
            ws = await websockets.connect(
                uri,
                # heartbeat is driven by the subscription loop, not the library
                ping_interval=None,
                open_timeout=openTimeout,
                close_timeout=1,
                # full order history snapshots can be large
                max_size=None,
                compression=None,
                user_agent_header=None,
            )
        except (httpx.InvalidURL, OSError, TimeoutError, WebSocketException) as e:
            raise DialError(f"[{endpoint}] Dial failed: {e}") from e

        logger.info("[{}] Stream opened", endpoint)
        return cls(ws, endpoint)

    @property
    def alive(self) -> bool:
        return self._alive

    async def readFrame(self) -> bytes | str:
        """Block until the next frame arrives."""
        if self.ws is None:
            raise ReadError(f"[{self.endpoint}] Read on closed stream")

        try:
            return await self.ws.recv()
        except (ConnectionClosed, OSError) as e:
            self._alive = False
            raise ReadError(f"[{self.endpoint}] Read failed: {e}") from e

    async def readEvent(self, kind: EventKind) -> Event:
        """Read one frame and decode it strictly as `kind` (DecodeError if it isn't one)."""
        return decode(await self.readFrame(), kind)

    async def sendPing(self) -> None:
        """Send an empty transport ping. The pong is left to the transport."""
        if not self._alive:
            raise WriteError(f"[{self.endpoint}] Ping on closed stream")

        try:
            await self.ws.ping()
        except (ConnectionClosed, OSError) as e:
            self._alive = False
            raise WriteError(f"[{self.endpoint}] Ping failed: {e}") from e

    async def close(self) -> None:
        self._alive = False
        if (ws := self.ws) is None:
            return

        self.ws = None
        await ws.close()
        logger.info("[{}] Stream closed", self.endpoint)

    async def __aenter__(self) -> StreamConnection:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
