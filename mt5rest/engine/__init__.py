"""mt5rest engine layer: gateway calls and push streams with no CLI dependency.

All modules use ``from __future__ import annotations`` and modern
Python typing (``str | None``, ``@dataclass(slots=True)``, PEP 695 aliases).

Modules
-------
primitives
    Pure constants and formatting helpers (stdlib only).
    - Stream endpoints: ``ON_QUOTE``, ``ON_ORDER_UPDATE``, ... ``ON_MAIL``
    - Type aliases: ``Seconds``, ``QueryParams``
    - Functions: ``fmtTime``, ``fmtFloat``, ``fmtBool``, ``fmtInts``

errors
    ``MT5Error`` and its subclasses ``DialError``, ``ReadError``, ``WriteError``,
    ``DecodeError``, ``AuthError``, ``HTTPError``, ``APIError``

codec
    JSON parsing (orjson under CPython) and JSON -> dataclass structuring.
    - ``structure``: build a payload dataclass, rejecting wrongly typed values
    - ``wire``: declare a field whose JSON key isn't a python name (e.g. ``from``)

models
    Payload dataclasses (``Quote``, ``Order``, ``OrderUpdateSummary``, ...),
    request dataclasses with ``.params()``, and request enums (``OrderType``, ...)

session
    ``Session``: base URL, lock-guarded session token, shared ``httpx.AsyncClient``

executor
    ``RequestExecutor``: GET a path, classify the reply, structure the body

connection / account / trading / market / history
    One-shot endpoint groups, each a class taking its dependencies at construction.
    - ``ConnectionManager``: connect/connectEx/connectProxy/checkConnect/disconnect, service calls
    - ``AccountQueries``: account records and opened orders
    - ``OrderTrader``: orderSend/orderModify/orderClose
    - ``MarketData``: symbols, quotes, bar history, server-side quote subscriptions
    - ``HistoryQueries``: closed orders, deals, positions

protocols
    ``FrameStream`` and ``StreamOpener``: what the subscription loop needs from a stream

stream
    ``StreamConnection``: one WebSocket to one push endpoint; ``streamUrl``

decoder
    ``EventKind``, the ``SUBSCRIPTIONS`` table, and ``decode`` (bare then enveloped frames)

subscription
    ``SubscriptionLoop``: reconnecting, heartbeat-monitored stream -> callback loop
    - ``StreamTiming``: heartbeat, backoff floor/ceiling, reconnect pause, dial timeout
    - ``LoopState``: DISCONNECTED, CONNECTING, STREAMING, RECONNECT_WAIT, STOPPED
"""

# Convenience re-exports for common usage:
# from mt5rest.engine import SubscriptionLoop, SUBSCRIPTIONS, StreamTiming
from mt5rest.engine.decoder import SUBSCRIPTIONS, EventKind, decode
from mt5rest.engine.errors import (
    APIError,
    AuthError,
    DecodeError,
    DialError,
    HTTPError,
    MT5Error,
    ReadError,
    WriteError,
)
from mt5rest.engine.session import Session
from mt5rest.engine.stream import StreamConnection, streamUrl
from mt5rest.engine.subscription import LoopState, StreamTiming, SubscriptionLoop

__all__ = [
    "SUBSCRIPTIONS",
    "EventKind",
    "decode",
    "MT5Error",
    "DialError",
    "ReadError",
    "WriteError",
    "DecodeError",
    "AuthError",
    "HTTPError",
    "APIError",
    "Session",
    "StreamConnection",
    "streamUrl",
    "LoopState",
    "StreamTiming",
    "SubscriptionLoop",
]
