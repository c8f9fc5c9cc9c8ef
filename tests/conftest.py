"""Shared test fixtures for the mt5rest test suite.

FakeStream and FakeOpener stand in for gateway WebSocket connections so the
subscription loop can be driven headless. `gateway` builds an httpx client
whose replies come from a test-supplied handler (httpx.MockTransport).
"""

import asyncio
from collections.abc import Callable
from io import StringIO

import httpx
import pytest
import pytest_asyncio
from loguru import logger

from mt5rest.engine.decoder import QUOTE
from mt5rest.engine.errors import ReadError, WriteError
from mt5rest.engine.session import Session
from mt5rest.engine.subscription import StreamTiming, SubscriptionLoop

BASE_URL = "http://gateway.test"

EURUSD = b'{"symbol":"EURUSD","bid":1.0851,"ask":1.0853,"timestampUTC":1700000000000}'
EURUSD_ENVELOPED = (
    b'{"type":"Quote","data":{"symbol":"EURUSD","bid":1.0851,"ask":1.0853,'
    b'"timestampUTC":1700000000000}}'
)
HEARTBEAT = b'{"type":"Heartbeat"}'

# sentinel outcome for FakeOpener: never finish dialing
HANG = object()


# ── Fake streams ────────────────────────────────────────────────────────────


class FakeStream:
    """In-memory FrameStream. Frames (or exceptions to raise) are fed through a queue."""

    def __init__(self, *frames, pingFails: bool = False):
        self.endpoint = ""
        self.frames: asyncio.Queue = asyncio.Queue()
        for frame in frames:
            self.feed(frame)

        self.pingFails = pingFails
        self.pings = 0
        self.closed = False
        self.failed = False

    @property
    def alive(self) -> bool:
        return not (self.closed or self.failed)

    def feed(self, frame) -> None:
        self.frames.put_nowait(frame)

    def hangup(self) -> None:
        """Peer goes away: the next read after queued frames fails."""
        self.feed(ReadError("peer closed"))

    async def readFrame(self):
        if self.closed:
            raise ReadError("read on closed stream")

        item = await self.frames.get()
        if isinstance(item, Exception):
            self.failed = True
            raise item

        return item

    async def sendPing(self) -> None:
        if self.pingFails or not self.alive:
            self.failed = True
            raise WriteError("ping failed")

        self.pings += 1

    async def close(self) -> None:
        self.closed = True
        # wake any reader still blocked on the queue
        self.feed(ReadError("closed"))


class FakeOpener:
    """Scripted dialer. Each dial takes the next outcome:

    - a FakeStream: dial succeeds with it
    - an exception instance: dial raises it
    - HANG (also used once outcomes run out): dial never completes
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.endpoints: list[str] = []
        self.tokens: list[str] = []
        self.opened: list[FakeStream] = []
        self.cancelled = 0

    @property
    def calls(self) -> int:
        return len(self.endpoints)

    async def __call__(self, session, endpoint, openTimeout):
        self.endpoints.append(endpoint)
        self.tokens.append(session.token)
        outcome = self.outcomes.pop(0) if self.outcomes else HANG

        if outcome is HANG:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled += 1
                raise

        if isinstance(outcome, BaseException):
            raise outcome

        outcome.endpoint = endpoint
        self.opened.append(outcome)
        return outcome


class RecordingLoop(SubscriptionLoop):
    """SubscriptionLoop whose timed waits return immediately and are recorded."""

    def __post_init__(self) -> None:
        super().__post_init__()
        self.waits: list[float] = []

    async def pause(self, seconds):
        self.waits.append(seconds)
        await asyncio.sleep(0)
        return self.stopping.is_set()


async def eventually(check: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until `check()` is true (or fail after `timeout`)."""

    async def poll():
        while not check():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout)


# ── Fixtures ────────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session():
    s = Session(BASE_URL)
    s.setToken("tok-123")
    yield s
    await s.aclose()


@pytest.fixture
def events():
    """Callback target recording every delivered event in order."""
    return []


@pytest.fixture
def make_loop(session, events):
    """Build a RecordingLoop over `session` feeding `events`."""

    def make(opener, kind=QUOTE, callback=None, timing=None):
        return RecordingLoop(
            session,
            kind,
            callback or events.append,
            timing=timing or StreamTiming(heartbeat=60.0),
            opener=opener,
        )

    return make


@pytest_asyncio.fixture
async def gateway():
    """Factory for Sessions whose HTTP replies come from `handler(request)`.

    Requests seen are collected on the returned session's `.requests` list.
    """
    made = []

    def make(handler, token: str = "tok-123") -> Session:
        requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        s = Session(BASE_URL, http=httpx.AsyncClient(transport=httpx.MockTransport(record)))
        s.setToken(token)
        s.requests = requests  # type: ignore[attr-defined]
        made.append(s)
        return s

    yield make

    for s in made:
        await s.aclose()


@pytest.fixture
def log_capture():
    """Capture loguru output for assertion. Yields a StringIO buffer."""
    buf = StringIO()
    handler_id = logger.add(buf, format="{level} {message}", level="DEBUG")
    yield buf
    logger.remove(handler_id)
