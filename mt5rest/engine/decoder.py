"""Frame decoding for push streams.

A gateway push frame arrives in one of two shapes, and which one depends on
the gateway build:

    bare:      {"symbol": "EURUSD", "bid": 1.1, "ask": 1.2, ...}
    envelope:  {"type": "Quote", "data": {"symbol": "EURUSD", ...}}

`decode()` tries each shape in order (see STRATEGIES) and returns the first
event that fits, or raises DecodeError when none does. Anything else the
gateway sends on a stream (e.g. {"type": "Heartbeat"}) decodes to nothing
and is dropped by the caller.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Final

from mt5rest.engine.codec import loads, structure, wireNames
from mt5rest.engine.errors import DecodeError
from mt5rest.engine.models import (
    Event,
    MailMessage,
    MarketWatch,
    OhlcSubscription,
    OrderUpdateSummary,
    ProfitUpdate,
    Quote,
    SymbolTickValue,
    TickHistoryEventArgs,
)
from mt5rest.engine.primitives import (
    ON_MAIL,
    ON_MARKET_WATCH,
    ON_OHLC,
    ON_ORDER_PROFIT,
    ON_ORDER_UPDATE,
    ON_QUOTE,
    ON_TICK_HISTORY,
    ON_TICK_VALUE,
)


@dataclass(slots=True, frozen=True)
class EventKind:
    """One typed push stream: where to dial, how envelopes name it, what it decodes to."""

    name: str
    endpoint: str
    label: str
    model: type

    @property
    def keyed(self) -> bool:
        """True when events of this kind must carry a non-empty `symbol`."""
        return any(f.name == "symbol" for f in dataclasses.fields(self.model))

    def accepts(self, obj: dict[str, Any]) -> bool:
        """Discriminator for bare frames.

        Symbol-keyed kinds need a non-empty symbol. The rest need at least one
        of their own keys present, so an unrelated object (or a heartbeat)
        doesn't structure into an all-defaults event.
        """
        if self.keyed:
            return isinstance(obj.get("symbol"), str) and bool(obj["symbol"])

        return not wireNames(self.model).isdisjoint(obj)


QUOTE: Final = EventKind("quote", ON_QUOTE, "Quote", Quote)
ORDER_UPDATE: Final = EventKind("orderUpdate", ON_ORDER_UPDATE, "OrderUpdate", OrderUpdateSummary)
PROFIT: Final = EventKind("profit", ON_ORDER_PROFIT, "ProfitUpdate", ProfitUpdate)
OHLC: Final = EventKind("ohlc", ON_OHLC, "Ohlc", OhlcSubscription)
TICK_HISTORY: Final = EventKind("tickHistory", ON_TICK_HISTORY, "TickHistory", TickHistoryEventArgs)
MARKET_WATCH: Final = EventKind("marketWatch", ON_MARKET_WATCH, "MarketWatch", MarketWatch)
TICK_VALUE: Final = EventKind("tickValue", ON_TICK_VALUE, "TickValue", SymbolTickValue)
MAIL: Final = EventKind("mail", ON_MAIL, "Mail", MailMessage)

SUBSCRIPTIONS: Final[dict[str, EventKind]] = {
    k.name: k
    for k in (QUOTE, ORDER_UPDATE, PROFIT, OHLC, TICK_HISTORY, MARKET_WATCH, TICK_VALUE, MAIL)
}


def direct(obj: Any, kind: EventKind) -> Event | None:
    if not isinstance(obj, dict) or not kind.accepts(obj):
        return None

    return structure(kind.model, obj)


def envelope(obj: Any, kind: EventKind) -> Event | None:
    if not isinstance(obj, dict) or obj.get("type") != kind.label:
        return None

    if not isinstance(data := obj.get("data"), dict):
        return None

    return structure(kind.model, data)


# ordered: first strategy producing an event wins
STRATEGIES: Final[tuple[Callable[[Any, EventKind], Event | None], ...]] = (direct, envelope)


def decode(raw: bytes | str, kind: EventKind) -> Event:
    """Decode one stream frame as `kind` or raise DecodeError.

    Pure: the same frame always gives an equal event or the same failure.
    """
    obj = loads(raw)

    for strategy in STRATEGIES:
        try:
            if (event := strategy(obj, kind)) is not None:
                return event
        except DecodeError:
            # a shape that looked right but didn't structure; try the next one
            continue

    raise DecodeError(f"[{kind.name}] frame matches no known shape")
