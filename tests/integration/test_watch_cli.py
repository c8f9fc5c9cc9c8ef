"""Smoke tests for the mt5rest-watch entry point.

These catch missing imports and broken wiring between config, logging,
the client facade and the subscription loops.
"""

import asyncio
import sys

import pytest
import websockets
from loguru import logger

from mt5rest import cli
from mt5rest.helpers import DEFAULTS


def config(**overrides) -> dict:
    return {**DEFAULTS, **overrides}


class TestSetupLogging:
    def test_log_files_created(self, tmp_path):
        try:
            prefix = cli.setupLogging(
                config(MT5REST_LOGDIR=str(tmp_path), MT5REST_LOGLEVEL="WARNING")
            )
            logger.info("hello from the test")
        finally:
            logger.remove()
            logger.add(sys.stderr)

        assert prefix.startswith(str(tmp_path))
        logs = list(tmp_path.rglob("*-mt5rest.log"))
        assert len(logs) == 1
        assert "hello from the test" in logs[0].read_text()


class TestWatch:
    @pytest.mark.asyncio
    async def test_unknown_stream_rejected(self):
        with pytest.raises(SystemExit):
            await cli.watch(config(MT5REST_STREAMS="quote,bogus"))

    @pytest.mark.asyncio
    async def test_streams_events_until_cancelled(self, log_capture):
        paths = []

        async def handler(ws):
            paths.append(ws.request.path)
            await ws.send('{"symbol":"EURUSD","bid":1.1,"ask":1.2}')
            await ws.wait_closed()

        server = await websockets.serve(handler, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]

        try:
            task = asyncio.create_task(
                cli.watch(
                    config(
                        MT5REST_URL=f"http://127.0.0.1:{port}",
                        MT5REST_STREAMS="quote,mail",
                        MT5REST_OPEN_TIMEOUT="2",
                    )
                )
            )

            async def quoteLogged():
                while "[quote] Quote(symbol='EURUSD'" not in log_capture.getvalue():
                    await asyncio.sleep(0.01)

            await asyncio.wait_for(quoteLogged(), 5)

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        finally:
            server.close()
            await server.wait_closed()

        assert set(paths) == {"/OnMail?id=", "/OnQuote?id="}
