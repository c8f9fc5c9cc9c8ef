"""mt5rest-watch: log in, run the configured push subscriptions, log every event.

Everything is configured through MT5REST_* keys (see mt5rest.helpers), read
from `.env.mt5rest` and the environment, e.g.:

    MT5REST_URL=https://gateway.example:5001
    MT5REST_USER=1234567
    MT5REST_PASSWORD=...
    MT5REST_SERVER=Broker-Demo
    MT5REST_STREAMS=quote,orderUpdate,profit
    MT5REST_SYMBOLS=EURUSD,GBPUSD
"""

from __future__ import annotations

import asyncio
import logging
import pathlib
import sys

import whenever
from loguru import logger

from mt5rest.client import MT5Client
from mt5rest.engine.decoder import SUBSCRIPTIONS
from mt5rest.engine.errors import MT5Error
from mt5rest.engine.models import ConnectExRequest, ConnectRequest, Event
from mt5rest.helpers import CONFIG, csv, timingFromConfig


def setupLogging(config: dict | None = None) -> str:
    """Console logging at MT5REST_LOGLEVEL plus full TRACE log files.

    Returns the log file prefix for this run.
    """
    c = CONFIG if config is None else config
    now = whenever.ZonedDateTime.now("UTC")
    LOGDIR = pathlib.Path(c["MT5REST_LOGDIR"] or "runlogs") / f"{now.year}" / f"{now.month:02}"
    LOGDIR.mkdir(exist_ok=True, parents=True)
    stamp = f"{now.year}{now.month:02}{now.day:02}-{now.hour:02}{now.minute:02}{now.second:02}"
    LOG_FILE_TEMPLATE = str(LOGDIR / f"mt5rest-watch-{stamp}")

    # httpx and websockets log through stdlib logging; keep those in their own file
    logging.basicConfig(
        level=logging.INFO,
        filename=LOG_FILE_TEMPLATE + "-transport.log",
        format="%(asctime)s %(name)s %(message)s",
    )

    logger.remove()
    logger.add(sys.stderr, colorize=True, level=c["MT5REST_LOGLEVEL"] or "INFO")

    # TRACE in files so dropped frames and request paths are always recoverable later
    logger.add(sink=LOG_FILE_TEMPLATE + "-mt5rest.log", level="TRACE", colorize=False)
    logger.add(sink=LOG_FILE_TEMPLATE + "-mt5rest-color.log", level="TRACE", colorize=True)

    logger.info("Logging session with prefix: {}", LOG_FILE_TEMPLATE)
    return LOG_FILE_TEMPLATE


async def login(client: MT5Client, config: dict) -> None:
    """Create a gateway session from MT5REST_USER and friends (skipped when no user)."""
    if not (user := config["MT5REST_USER"]):
        logger.warning("No MT5REST_USER configured, streaming without a session token")
        return

    password = config["MT5REST_PASSWORD"] or ""

    if server := config["MT5REST_SERVER"]:
        await client.connectEx(ConnectExRequest(int(user), password, server))
    else:
        host = config["MT5REST_HOST"] or ""
        port = int(config["MT5REST_PORT"] or 443)
        await client.connect(ConnectRequest(int(user), password, host, port))


def report(name: str):
    def logEvent(event: Event) -> None:
        logger.info("[{}] {}", name, event)

    return logEvent


async def watch(config: dict | None = None) -> None:
    c = CONFIG if config is None else config

    streams = csv(c["MT5REST_STREAMS"])
    if unknown := [s for s in streams if s not in SUBSCRIPTIONS]:
        raise SystemExit(f"Unknown streams: {', '.join(unknown)} (known: {', '.join(SUBSCRIPTIONS)})")

    async with MT5Client(
        c["MT5REST_URL"], timeout=float(c["MT5REST_TIMEOUT"] or 30), timing=timingFromConfig(c)
    ) as client:
        await login(client, c)

        if symbols := csv(c["MT5REST_SYMBOLS"]):
            logger.info("Subscribing quotes for: {}", ", ".join(symbols))
            await client.subscribeMany(symbols)

        stopping = asyncio.Event()
        loops = [client.subscription(name, report(name), stopping) for name in streams]

        try:
            await asyncio.gather(*[loop.run() for loop in loops])
        finally:
            stopping.set()
            if client.session.authenticated:
                try:
                    await client.disconnect()
                except MT5Error as e:
                    logger.warning("Disconnect failed: {}", e)


def main() -> None:
    setupLogging()

    try:
        asyncio.run(watch())
    except KeyboardInterrupt:
        # be quiet when manually exiting
        logger.info("Exiting!")
    except MT5Error as e:
        logger.error("Gateway error: {}", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
