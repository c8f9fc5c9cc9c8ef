"""Tests for the resilient subscription loop (mt5rest/engine/subscription.py).

Connections come from FakeOpener/FakeStream; RecordingLoop replaces timed waits
with recorded no-ops so backoff sequences can be asserted without sleeping.
"""

import asyncio

import pytest
from conftest import (
    EURUSD,
    EURUSD_ENVELOPED,
    HEARTBEAT,
    FakeOpener,
    FakeStream,
    eventually,
)

from mt5rest.engine.decoder import MAIL, QUOTE
from mt5rest.engine.errors import DialError
from mt5rest.engine.models import MailMessage, Quote
from mt5rest.engine.subscription import LoopState, StreamTiming, SubscriptionLoop

QUOTE_EURUSD = Quote(symbol="EURUSD", bid=1.0851, ask=1.0853, timestampUTC=1700000000000)


async def finish(loop, task, timeout: float = 1.0) -> None:
    loop.stop()
    await asyncio.wait_for(task, timeout)


# ── Backoff ─────────────────────────────────────────────────────────────────


class TestBackoff:
    """Dial failures back off exponentially; streaming failures use the fixed pause."""

    @pytest.mark.asyncio
    async def test_one_two_four_then_one(self, make_loop, events):
        """Three failed dials wait 1, 2, 4; after a streaming episode the wait is 1 again."""
        stream = FakeStream(EURUSD)
        stream.hangup()
        opener = FakeOpener(DialError("refused"), DialError("refused"), DialError("refused"), stream)
        loop = make_loop(opener)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: opener.calls == 5)
        await finish(loop, task)

        assert loop.waits == [1.0, 2.0, 4.0, 1.0]
        assert events == [QUOTE_EURUSD]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_backoff_resets_after_successful_dial(self, make_loop):
        stream = FakeStream()
        stream.hangup()
        opener = FakeOpener(
            DialError("refused"),
            DialError("refused"),
            stream,
            DialError("refused"),
            DialError("refused"),
        )
        loop = make_loop(opener, timing=StreamTiming(heartbeat=60.0, reconnectPause=5.0))

        task = asyncio.create_task(loop.run())
        await eventually(lambda: opener.calls == 6)
        await finish(loop, task)

        # 1, 2 before streaming; fixed 5 after it; back to 1, 2 on fresh failures
        assert loop.waits == [1.0, 2.0, 5.0, 1.0, 2.0]

    @pytest.mark.asyncio
    async def test_backoff_capped_at_ceiling(self, make_loop):
        opener = FakeOpener(*[DialError("refused") for _ in range(11)])
        loop = make_loop(opener)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: opener.calls == 12)
        await finish(loop, task)

        assert loop.waits == [1, 2, 4, 8, 16, 32, 64, 128, 256, 300, 300]
        assert loop.backoff == 300
        assert loop.dials == 12

    @pytest.mark.asyncio
    async def test_streaming_failure_does_not_grow_backoff(self, make_loop):
        streams = []
        for _ in range(3):
            s = FakeStream()
            s.hangup()
            streams.append(s)

        opener = FakeOpener(*streams)
        loop = make_loop(opener)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: opener.calls == 4)
        await finish(loop, task)

        assert loop.waits == [1.0, 1.0, 1.0]
        assert loop.reconnects == 3
        assert all(s.closed for s in streams)


# ── Stop and cancel ─────────────────────────────────────────────────────────


class TestStop:
    """stop() and Task.cancel() end the loop promptly from every blocking point."""

    @pytest.mark.asyncio
    async def test_stop_while_dialing(self, make_loop):
        opener = FakeOpener()
        loop = make_loop(opener)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: opener.calls == 1)
        assert loop.state == LoopState.CONNECTING

        await finish(loop, task)

        assert loop.state == LoopState.STOPPED
        assert opener.cancelled == 1
        assert loop.dials == 1

    @pytest.mark.asyncio
    async def test_stop_while_reading(self, make_loop):
        stream = FakeStream()
        opener = FakeOpener(stream)
        loop = make_loop(opener)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: loop.state == LoopState.STREAMING)

        await finish(loop, task)

        assert stream.closed
        assert loop.state == LoopState.STOPPED
        assert loop.conn is None
        assert opener.calls == 1

    @pytest.mark.asyncio
    async def test_stop_while_waiting(self, session, events):
        """A real (non-recording) wait of 1000s still ends immediately on stop."""
        opener = FakeOpener(DialError("refused"))
        loop = SubscriptionLoop(
            session,
            QUOTE,
            events.append,
            timing=StreamTiming(backoffFloor=1000.0, backoffCeiling=1000.0),
            opener=opener,
        )

        task = asyncio.create_task(loop.run())
        await eventually(lambda: loop.state == LoopState.RECONNECT_WAIT)

        await finish(loop, task, timeout=0.5)

        assert loop.state == LoopState.STOPPED
        assert opener.calls == 1

    @pytest.mark.asyncio
    async def test_stop_before_run_never_dials(self, make_loop):
        opener = FakeOpener()
        loop = make_loop(opener)
        loop.stop()

        await asyncio.wait_for(loop.run(), 0.5)

        assert opener.calls == 0
        assert loop.state == LoopState.STOPPED

    @pytest.mark.asyncio
    async def test_cancel_closes_connection(self, make_loop):
        stream = FakeStream()
        opener = FakeOpener(stream)
        loop = make_loop(opener)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: loop.state == LoopState.STREAMING)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert stream.closed
        assert loop.state == LoopState.STOPPED

    @pytest.mark.asyncio
    async def test_stopped_loop_does_not_restart(self, make_loop):
        opener = FakeOpener()
        loop = make_loop(opener)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: opener.calls == 1)
        await finish(loop, task)

        await loop.run()
        assert opener.calls == 1


# ── Streaming ───────────────────────────────────────────────────────────────


class TestStreaming:
    """Frames reach the callback decoded, in order, and bad frames never end the loop."""

    @pytest.mark.asyncio
    async def test_bare_and_enveloped_frames_deliver_equal_events(self, make_loop, events):
        stream = FakeStream(EURUSD, EURUSD_ENVELOPED)
        loop = make_loop(FakeOpener(stream))

        task = asyncio.create_task(loop.run())
        await eventually(lambda: len(events) == 2)
        await finish(loop, task)

        assert events == [QUOTE_EURUSD, QUOTE_EURUSD]
        assert loop.delivered == 2

    @pytest.mark.asyncio
    async def test_heartbeat_frame_is_dropped_without_ending_stream(self, make_loop, events):
        stream = FakeStream(HEARTBEAT, EURUSD)
        opener = FakeOpener(stream)
        loop = make_loop(opener)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: len(events) == 1)

        assert loop.dropped == 1
        assert loop.state == LoopState.STREAMING
        assert not stream.closed

        await finish(loop, task)
        assert opener.calls == 1

    @pytest.mark.asyncio
    async def test_dropped_frame_logged_at_debug(self, make_loop, events, log_capture):
        stream = FakeStream(b"not json", EURUSD)
        loop = make_loop(FakeOpener(stream))

        task = asyncio.create_task(loop.run())
        await eventually(lambda: len(events) == 1)
        await finish(loop, task)

        assert "DEBUG [quote :: /OnQuote] Dropped frame" in log_capture.getvalue()

    @pytest.mark.asyncio
    async def test_frames_delivered_in_read_order(self, make_loop, events):
        frames = [
            f'{{"symbol":"EURUSD","bid":1.{i:04},"ask":1.{i + 1:04}}}'.encode() for i in range(20)
        ]
        loop = make_loop(FakeOpener(FakeStream(*frames)))

        task = asyncio.create_task(loop.run())
        await eventually(lambda: len(events) == 20)
        await finish(loop, task)

        assert [e.bid for e in events] == [float(f"1.{i:04}") for i in range(20)]

    @pytest.mark.asyncio
    async def test_async_callback(self, make_loop):
        seen = []

        async def collect(event):
            await asyncio.sleep(0)
            seen.append(event.symbol)

        loop = make_loop(FakeOpener(FakeStream(EURUSD)), callback=collect)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: seen == ["EURUSD"])
        await finish(loop, task)

    @pytest.mark.asyncio
    async def test_callback_exception_keeps_streaming(self, make_loop, log_capture):
        seen = []

        def flaky(event):
            seen.append(event)
            if len(seen) == 1:
                raise RuntimeError("boom")

        stream = FakeStream(EURUSD, EURUSD)
        opener = FakeOpener(stream)
        loop = make_loop(opener, callback=flaky)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: len(seen) == 2)
        await finish(loop, task)

        assert opener.calls == 1
        assert "Callback failed" in log_capture.getvalue()
        assert "RuntimeError: boom" in log_capture.getvalue()

    @pytest.mark.asyncio
    async def test_mail_stream_uses_its_endpoint_and_model(self, make_loop, events):
        stream = FakeStream(
            b'{"type":"Mail","data":{"id":7,"from":"Broker","subject":"Margin call"}}'
        )
        opener = FakeOpener(stream)
        loop = make_loop(opener, kind=MAIL)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: len(events) == 1)
        await finish(loop, task)

        assert opener.endpoints == ["/OnMail"]
        assert events == [MailMessage(id=7, sender="Broker", subject="Margin call")]

    @pytest.mark.asyncio
    async def test_dial_carries_current_session_token(self, make_loop, session):
        first = FakeStream()
        opener = FakeOpener(first)
        loop = make_loop(opener)

        task = asyncio.create_task(loop.run())
        await eventually(lambda: loop.state == LoopState.STREAMING)
        session.setToken("tok-rotated")
        first.hangup()
        await eventually(lambda: opener.calls == 2)
        await finish(loop, task)

        assert opener.tokens == ["tok-123", "tok-rotated"]


# ── Heartbeat ───────────────────────────────────────────────────────────────


class TestHeartbeat:
    """The loop pings on its own schedule and treats ping failure as a dead stream."""

    @pytest.mark.asyncio
    async def test_pings_while_streaming(self, make_loop):
        stream = FakeStream()
        loop = make_loop(FakeOpener(stream), timing=StreamTiming(heartbeat=0.01))

        task = asyncio.create_task(loop.run())
        await eventually(lambda: stream.pings >= 3)
        await finish(loop, task)

        assert loop.reconnects == 0

    @pytest.mark.asyncio
    async def test_ping_failure_reconnects_and_resumes(self, make_loop, events):
        dead = FakeStream(pingFails=True)
        fresh = FakeStream(EURUSD)
        opener = FakeOpener(dead, fresh)
        loop = make_loop(opener, timing=StreamTiming(heartbeat=0.01))

        task = asyncio.create_task(loop.run())
        await eventually(lambda: len(events) == 1)

        assert dead.closed
        assert not fresh.closed
        assert loop.waits == [1.0]
        assert loop.reconnects == 1
        assert loop.state == LoopState.STREAMING

        await finish(loop, task)
        assert events == [QUOTE_EURUSD]
        assert fresh.closed
