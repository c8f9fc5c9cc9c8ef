"""Runtime configuration shared by the client and the watcher CLI."""

from __future__ import annotations

import os
from typing import Final

from dotenv import dotenv_values

from mt5rest.engine.subscription import StreamTiming

DEFAULTS: Final = dict(
    MT5REST_URL="http://127.0.0.1:5000",
    MT5REST_TIMEOUT="30",
    MT5REST_HEARTBEAT="30",
    MT5REST_BACKOFF_FLOOR="1",
    MT5REST_BACKOFF_CEILING="300",
    MT5REST_RECONNECT_PAUSE="1",
    MT5REST_OPEN_TIMEOUT="45",
    MT5REST_LOGDIR="runlogs",
    MT5REST_LOGLEVEL="INFO",
    MT5REST_USER="",
    MT5REST_PASSWORD="",
    MT5REST_HOST="",
    MT5REST_PORT="443",
    MT5REST_SERVER="",
    MT5REST_STREAMS="quote",
    MT5REST_SYMBOLS="",
)

# later sources win: defaults < .env.mt5rest < process environment
CONFIG = {**DEFAULTS, **dotenv_values(".env.mt5rest"), **os.environ}  # type: ignore


def csv(value: str | None) -> list[str]:
    """Split a comma-separated config value, dropping blanks."""
    return [x.strip() for x in (value or "").split(",") if x.strip()]


def timingFromConfig(config: dict[str, str | None] | None = None) -> StreamTiming:
    """Stream timing from MT5REST_* keys (all in seconds)."""
    c = CONFIG if config is None else {**DEFAULTS, **config}

    return StreamTiming(
        heartbeat=float(c["MT5REST_HEARTBEAT"] or DEFAULTS["MT5REST_HEARTBEAT"]),
        backoffFloor=float(c["MT5REST_BACKOFF_FLOOR"] or DEFAULTS["MT5REST_BACKOFF_FLOOR"]),
        backoffCeiling=float(c["MT5REST_BACKOFF_CEILING"] or DEFAULTS["MT5REST_BACKOFF_CEILING"]),
        reconnectPause=float(c["MT5REST_RECONNECT_PAUSE"] or DEFAULTS["MT5REST_RECONNECT_PAUSE"]),
        openTimeout=float(c["MT5REST_OPEN_TIMEOUT"] or DEFAULTS["MT5REST_OPEN_TIMEOUT"]),
    )
