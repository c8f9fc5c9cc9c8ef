"""Pure constants and formatting helpers (stdlib only)."""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from decimal import Decimal
from typing import Final

type Seconds = float
type QueryParams = dict[str, str | list[str]]

# Gateway push endpoints. These names are fixed by the server.
ON_QUOTE: Final = "/OnQuote"
ON_ORDER_UPDATE: Final = "/OnOrderUpdate"
ON_ORDER_PROFIT: Final = "/OnOrderProfit"
ON_OHLC: Final = "/OnOhlc"
ON_TICK_HISTORY: Final = "/OnTickHistory"
ON_MARKET_WATCH: Final = "/OnMarketWatch"
ON_ORDER_BOOK: Final = "/OnOrderBook"
ON_TICK_VALUE: Final = "/OnTickValue"
ON_MAIL: Final = "/OnMail"

# The gateway reads naive timestamps in its own server timezone
GATEWAY_TIME_FORMAT: Final = "%Y-%m-%dT%H:%M:%S"


def fmtTime(when: datetime.datetime) -> str:
    """Format a datetime the way the gateway expects query timestamps."""
    return when.strftime(GATEWAY_TIME_FORMAT)


def fmtFloat(value: float) -> str:
    """Shortest plain decimal text for a float (no exponent, no trailing zeros).

    e.g. 0.1 -> "0.1", 1.0 -> "1", 1e-05 -> "0.00001"
    """
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")

    return text or "0"


def fmtBool(value: bool) -> str:
    return "true" if value else "false"


def fmtInts(values: Iterable[int]) -> list[str]:
    return [str(int(v)) for v in values]
