"""Resilient push-stream subscription loop.

One SubscriptionLoop keeps one typed gateway stream flowing into one callback
for as long as it runs:

    DISCONNECTED -> CONNECTING -> STREAMING -> (RECONNECT_WAIT -> CONNECTING)* -> STOPPED

- CONNECTING: dial the endpoint (raced against stop). Success resets backoff.
- STREAMING: a reader task (read -> decode -> callback) and a heartbeat task
  (ping every `heartbeat` seconds) share the connection until either of them
  fails or stop is requested. The connection is then closed.
- RECONNECT_WAIT: after a failed dial, wait `backoff` then double it up to
  the ceiling. After a streaming episode, wait the fixed `reconnectPause`.
- STOPPED: `stop()` was called or the task running `run()` was cancelled.

Transport failures never reach the caller. Frames that decode to nothing
are counted in `dropped` and logged at DEBUG.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from mt5rest.engine.decoder import EventKind, decode
from mt5rest.engine.errors import DecodeError, DialError
from mt5rest.engine.models import Event
from mt5rest.engine.primitives import Seconds
from mt5rest.engine.protocols import FrameStream, StreamOpener
from mt5rest.engine.session import Session
from mt5rest.engine.stream import StreamConnection

type EventCallback = Callable[[Event], Awaitable[Any] | Any]


@dataclass(slots=True, frozen=True)
class StreamTiming:
    heartbeat: Seconds = 30.0
    backoffFloor: Seconds = 1.0
    backoffCeiling: Seconds = 300.0
    reconnectPause: Seconds = 1.0
    openTimeout: Seconds = 45.0


class LoopState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    RECONNECT_WAIT = "reconnect-wait"
    STOPPED = "stopped"


@dataclass
class SubscriptionLoop:
    """Reconnecting, heartbeat-monitored reader for one push stream kind."""

    session: Session
    kind: EventKind
    callback: EventCallback
    timing: StreamTiming = field(default_factory=StreamTiming)

    # how connections are made (replaced by fakes in tests)
    opener: StreamOpener = StreamConnection.open

    stopping: asyncio.Event = field(default_factory=asyncio.Event)

    state: LoopState = field(default=LoopState.DISCONNECTED, init=False)
    backoff: Seconds = field(default=0.0, init=False)

    # the one live connection (STREAMING only)
    conn: FrameStream | None = field(default=None, init=False, repr=False)

    # counters
    delivered: int = field(default=0, init=False)
    dropped: int = field(default=0, init=False)
    dials: int = field(default=0, init=False)
    reconnects: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.backoff = self.timing.backoffFloor

    @property
    def name(self) -> str:
        return f"{self.kind.name} :: {self.kind.endpoint}"

    def stop(self) -> None:
        """Request shutdown. `run()` returns promptly from whatever it's waiting on."""
        self.stopping.set()

    @property
    def stopped(self) -> bool:
        return self.state == LoopState.STOPPED

    async def run(self) -> None:
        """Keep the stream flowing until stopped or cancelled."""
        # a loop runs once; STOPPED is terminal
        if self.state == LoopState.STOPPED:
            return

        logger.info("[{}] Subscription starting", self.name)

        try:
            while not self.stopping.is_set():
                self.state = LoopState.CONNECTING

                try:
                    conn = await self.dial()
                except DialError as e:
                    logger.warning("[{}] {} (retrying in {:.1f}s)", self.name, e, self.backoff)
                    self.state = LoopState.RECONNECT_WAIT
                    if await self.pause(self.backoff):
                        break

                    self.backoff = min(self.backoff * 2, self.timing.backoffCeiling)
                    continue

                # stop arrived while dialing
                if conn is None:
                    break

                self.backoff = self.timing.backoffFloor
                self.state = LoopState.STREAMING
                logger.info("[{}] Connected!", self.name)

                await self.stream(conn)

                if self.stopping.is_set():
                    break

                self.reconnects += 1
                self.state = LoopState.RECONNECT_WAIT
                logger.warning(
                    "[{}] Connection dropped, reconnecting in {:.1f}s...",
                    self.name,
                    self.timing.reconnectPause,
                )
                if await self.pause(self.timing.reconnectPause):
                    break
        finally:
            if self.conn is not None:
                conn, self.conn = self.conn, None
                await conn.close()

            self.state = LoopState.STOPPED
            logger.info(
                "[{}] Subscription stopped (delivered: {:,}, dropped: {:,}, dials: {:,})",
                self.name,
                self.delivered,
                self.dropped,
                self.dials,
            )

    async def dial(self) -> FrameStream | None:
        """Open a connection, or return None if stop wins the race.

        Raises DialError when the dial itself fails.
        """
        self.dials += 1
        work = asyncio.ensure_future(
            self.opener(self.session, self.kind.endpoint, self.timing.openTimeout)
        )
        stopper = asyncio.ensure_future(self.stopping.wait())

        try:
            await asyncio.wait((work, stopper), return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            await self.discard(work)
            raise
        finally:
            stopper.cancel()

        if self.stopping.is_set():
            await self.discard(work)
            return None

        return work.result()

    @staticmethod
    async def discard(work: asyncio.Future) -> None:
        """Cancel a pending dial and close whatever it managed to open."""
        work.cancel()
        (got,) = await asyncio.gather(work, return_exceptions=True)
        if got is not None and not isinstance(got, BaseException):
            await got.close()

    async def pause(self, seconds: Seconds) -> bool:
        """Wait `seconds` unless stopped first. Returns True if stopped."""
        if self.stopping.is_set():
            return True

        try:
            await asyncio.wait_for(self.stopping.wait(), timeout=seconds)
        except TimeoutError:
            return False

        return True

    async def stream(self, conn: FrameStream) -> None:
        """Run one STREAMING episode on `conn`, then close it."""
        self.conn = conn
        reader = asyncio.create_task(self.readFrames(conn), name=f"{self.kind.name}-reader")
        heart = asyncio.create_task(self.heartbeat(conn), name=f"{self.kind.name}-heartbeat")
        stopper = asyncio.create_task(self.stopping.wait(), name=f"{self.kind.name}-stop")
        tasks = (reader, heart, stopper)

        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

            for task in (reader, heart):
                if task in done and not task.cancelled() and (err := task.exception()):
                    logger.warning("[{}] {}", self.name, err)
        finally:
            for task in tasks:
                task.cancel()

            await asyncio.gather(*tasks, return_exceptions=True)

            self.conn = None
            await conn.close()

    async def readFrames(self, conn: FrameStream) -> None:
        """Deliver every decodable frame in read order. Ends only by ReadError."""
        while True:
            frame = await conn.readFrame()

            try:
                event = decode(frame, self.kind)
            except DecodeError as e:
                self.dropped += 1
                logger.debug("[{}] Dropped frame: {} ({!r:.200})", self.name, e, frame)
                continue

            await self.deliver(event)

    async def heartbeat(self, conn: FrameStream) -> None:
        """Ping every `heartbeat` seconds. Ends only by WriteError."""
        while True:
            await asyncio.sleep(self.timing.heartbeat)
            await conn.sendPing()

    async def deliver(self, event: Event) -> None:
        self.delivered += 1

        try:
            got = self.callback(event)
            if inspect.isawaitable(got):
                await got
        except Exception:
            logger.exception("[{}] Callback failed for {}", self.name, event)
