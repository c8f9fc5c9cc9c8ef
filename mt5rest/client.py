"""MT5Client: one object for every gateway call and push stream."""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import Iterable
from dataclasses import dataclass, field

import httpx

from mt5rest.engine.decoder import (
    MAIL,
    MARKET_WATCH,
    OHLC,
    ORDER_UPDATE,
    PROFIT,
    QUOTE,
    SUBSCRIPTIONS,
    TICK_HISTORY,
    TICK_VALUE,
    EventKind,
)
from mt5rest.engine.models import (
    AccountDetails,
    AccountRec,
    AccountSummary,
    Bar,
    BarsForSymbol,
    Company,
    ConnectExRequest,
    ConnectProxyRequest,
    ConnectRequest,
    DealInternal,
    Order,
    OrderCloseRequest,
    OrderHistoryEventArgs,
    OrderModifyRequest,
    OrderSendRequest,
    OrderType,
    PaginationReply,
    Quote,
    SortType,
    SymbolInfo,
    SymbolParams,
)
from mt5rest.engine.primitives import (
    ON_MAIL,
    ON_MARKET_WATCH,
    ON_OHLC,
    ON_ORDER_BOOK,
    ON_ORDER_PROFIT,
    ON_ORDER_UPDATE,
    ON_QUOTE,
    ON_TICK_HISTORY,
    ON_TICK_VALUE,
)
from mt5rest.engine.protocols import StreamOpener
from mt5rest.engine.session import Session
from mt5rest.engine.stream import StreamConnection
from mt5rest.engine.subscription import EventCallback, StreamTiming, SubscriptionLoop


@dataclass
class MT5Client:
    """Gateway client.

    One-shot calls are thin delegates to the engine modules wired up in
    __post_init__. Push streams come two ways:
    - onQuote(), onMail(), ...: a raw StreamConnection you read yourself
    - socketOnQuote(cb), ...: a resilient loop feeding decoded events to `cb`
      until `stopping` is set or the task running it is cancelled
    """

    baseUrl: str = "http://127.0.0.1:5000"

    # per-request HTTP timeout
    timeout: float = 30.0

    timing: StreamTiming = field(default_factory=StreamTiming)

    # how stream connections are dialed (tests swap in fakes)
    opener: StreamOpener = StreamConnection.open

    # shared HTTP client (created by the session when not provided)
    http: httpx.AsyncClient | None = field(default=None, repr=False)

    session: Session = field(init=False)

    def __post_init__(self) -> None:
        self.session = Session(self.baseUrl, timeout=self.timeout, http=self.http)  # type: ignore[arg-type]

        from mt5rest.engine.executor import RequestExecutor

        self.executor = RequestExecutor(self.session)

        from mt5rest.engine.connection import ConnectionManager

        self.connection = ConnectionManager(self.session, self.executor)

        from mt5rest.engine.account import AccountQueries

        self.accounts = AccountQueries(self.executor)

        from mt5rest.engine.trading import OrderTrader

        self.trader = OrderTrader(self.executor)

        from mt5rest.engine.market import MarketData

        self.market = MarketData(self.executor)

        from mt5rest.engine.history import HistoryQueries

        self.history = HistoryQueries(self.executor)

    @property
    def token(self) -> str:
        return self.session.token

    async def aclose(self) -> None:
        await self.session.aclose()

    async def __aenter__(self) -> MT5Client:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # ── Connection ──────────────────────────────────────────────────

    async def connect(self, req: ConnectRequest) -> str:
        return await self.connection.connect(req)

    async def connectEx(self, req: ConnectExRequest) -> str:
        return await self.connection.connectEx(req)

    async def connectProxy(self, req: ConnectProxyRequest) -> str:
        return await self.connection.connectProxy(req)

    async def checkConnect(self) -> str:
        return await self.connection.checkConnect()

    async def disconnect(self) -> str:
        return await self.connection.disconnect()

    async def pingHost(self, host: str, port: int = 0) -> int:
        return await self.connection.pingHost(host, port)

    async def search(self, company: str) -> list[Company]:
        return await self.connection.search(company)

    async def serverTimezone(self) -> int:
        return await self.connection.serverTimezone()

    # ── Account ─────────────────────────────────────────────────────

    async def account(self) -> AccountRec:
        return await self.accounts.account()

    async def accountSummary(self) -> AccountSummary:
        return await self.accounts.accountSummary()

    async def accountDetails(self) -> AccountDetails:
        return await self.accounts.accountDetails()

    async def openedOrders(self, sort: SortType | str = "", ascending: bool = True) -> list[Order]:
        return await self.accounts.openedOrders(sort, ascending)

    async def openedOrder(self, ticket: int) -> Order:
        return await self.accounts.openedOrder(ticket)

    # ── Trading ─────────────────────────────────────────────────────

    async def orderSend(self, req: OrderSendRequest) -> Order:
        return await self.trader.orderSend(req)

    async def orderModify(self, req: OrderModifyRequest) -> Order:
        return await self.trader.orderModify(req)

    async def orderClose(self, req: OrderCloseRequest) -> Order:
        return await self.trader.orderClose(req)

    # ── Symbols and quotes ──────────────────────────────────────────

    async def symbols(self) -> dict[str, SymbolInfo]:
        return await self.market.symbols()

    async def symbolList(self) -> list[str]:
        return await self.market.symbolList()

    async def getQuote(self, symbol: str, msNotOlder: int = 0) -> Quote:
        return await self.market.getQuote(symbol, msNotOlder)

    async def getQuoteMany(self, symbols: list[str], msNotOlder: int = 0) -> list[Quote]:
        return await self.market.getQuoteMany(symbols, msNotOlder)

    async def symbolParams(self, symbol: str) -> SymbolParams:
        return await self.market.symbolParams(symbol)

    async def isTradeSession(self, symbol: str) -> bool:
        return await self.market.isTradeSession(symbol)

    async def requiredMargin(
        self, symbol: str, lots: float, orderType: OrderType | str, price: float = 0.0
    ) -> float:
        return await self.market.requiredMargin(symbol, lots, orderType, price)

    # ── Price history ───────────────────────────────────────────────

    async def priceHistory(
        self, symbol: str, start: datetime.datetime, end: datetime.datetime, timeFrame: int
    ) -> list[Bar]:
        return await self.market.priceHistory(symbol, start, end, timeFrame)

    async def priceHistoryMany(
        self,
        symbols: list[str],
        start: datetime.datetime,
        end: datetime.datetime,
        timeFrame: int,
    ) -> list[BarsForSymbol]:
        return await self.market.priceHistoryMany(symbols, start, end, timeFrame)

    async def priceHistoryToday(self, symbol: str, timeFrame: int) -> list[Bar]:
        return await self.market.priceHistoryToday(symbol, timeFrame)

    async def priceHistoryMonth(
        self, symbol: str, year: int, month: int, day: int, timeFrame: int
    ) -> list[Bar]:
        return await self.market.priceHistoryMonth(symbol, year, month, day, timeFrame)

    async def priceHistoryEx(
        self, symbol: str, start: datetime.datetime, numBars: int, timeFrame: int
    ) -> list[Bar]:
        return await self.market.priceHistoryEx(symbol, start, numBars, timeFrame)

    # ── Server-side subscriptions ───────────────────────────────────

    async def subscribe(self, symbol: str, interval: int = 0) -> str:
        return await self.market.subscribe(symbol, interval)

    async def subscribeMany(self, symbols: list[str], interval: int = 0) -> str:
        return await self.market.subscribeMany(symbols, interval)

    async def unSubscribe(self, symbol: str) -> str:
        return await self.market.unSubscribe(symbol)

    async def unSubscribeMany(self, symbols: list[str]) -> str:
        return await self.market.unSubscribeMany(symbols)

    async def subscribeOrderProfit(self, interval: int = 0) -> list[Order]:
        return await self.market.subscribeOrderProfit(interval)

    async def subscribeOhlc(self, symbol: str = "", timeframe: int = 0, interval: int = 0) -> str:
        return await self.market.subscribeOhlc(symbol, timeframe, interval)

    async def unsubscribeOhlc(self, symbol: str = "", timeframe: int = 0) -> str:
        return await self.market.unsubscribeOhlc(symbol, timeframe)

    # ── Order history ───────────────────────────────────────────────

    async def orderHistory(
        self,
        start: datetime.datetime,
        end: datetime.datetime,
        sort: SortType | str = "",
        ascending: bool = True,
        filter: Iterable[str] = (),
    ) -> OrderHistoryEventArgs:
        return await self.history.orderHistory(start, end, sort, ascending, filter)

    async def orderHistoryPagination(
        self,
        start: datetime.datetime,
        end: datetime.datetime,
        ordersPerPage: int,
        pageNumber: int,
        requestAgain: bool = False,
        sort: SortType | str = "",
        ascending: bool = True,
        tickets: Iterable[int] = (),
        ignoreDepositWithdraw: bool = False,
    ) -> PaginationReply:
        return await self.history.orderHistoryPagination(
            start,
            end,
            ordersPerPage,
            pageNumber,
            requestAgain,
            sort,
            ascending,
            tickets,
            ignoreDepositWithdraw,
        )

    async def historyDealsByPositionId(self, ticket: int) -> list[DealInternal]:
        return await self.history.historyDealsByPositionId(ticket)

    async def historyPositions(self, tickets: Iterable[int]) -> list[Order]:
        return await self.history.historyPositions(tickets)

    async def historyPositionsByCloseTime(
        self, start: datetime.datetime, end: datetime.datetime
    ) -> list[Order]:
        return await self.history.historyPositionsByCloseTime(start, end)

    async def orderHistoryDownloadComplete(self) -> bool:
        return await self.history.orderHistoryDownloadComplete()

    # ── Raw streams ─────────────────────────────────────────────────

    async def openStream(self, endpoint: str) -> StreamConnection:
        """Dial one push endpoint. No reconnects: the caller owns the connection."""
        return await self.opener(self.session, endpoint, self.timing.openTimeout)  # type: ignore[return-value]

    async def onQuote(self) -> StreamConnection:
        return await self.openStream(ON_QUOTE)

    async def onOrderUpdate(self) -> StreamConnection:
        return await self.openStream(ON_ORDER_UPDATE)

    async def onOrderProfit(self) -> StreamConnection:
        return await self.openStream(ON_ORDER_PROFIT)

    async def onOhlc(self) -> StreamConnection:
        return await self.openStream(ON_OHLC)

    async def onTickHistory(self) -> StreamConnection:
        return await self.openStream(ON_TICK_HISTORY)

    async def onMarketWatch(self) -> StreamConnection:
        return await self.openStream(ON_MARKET_WATCH)

    async def onOrderBook(self) -> StreamConnection:
        # no typed model for order book frames; read raw with readFrame()
        return await self.openStream(ON_ORDER_BOOK)

    async def onTickValue(self) -> StreamConnection:
        return await self.openStream(ON_TICK_VALUE)

    async def onMail(self) -> StreamConnection:
        return await self.openStream(ON_MAIL)

    # ── Resilient subscriptions ─────────────────────────────────────

    def subscription(
        self,
        kind: EventKind | str,
        callback: EventCallback,
        stopping: asyncio.Event | None = None,
    ) -> SubscriptionLoop:
        """Build (but don't start) a reconnecting loop for `kind`.

        `kind` is an EventKind or its name from SUBSCRIPTIONS ("quote", "mail", ...).
        Run it with `await loop.run()` or `asyncio.create_task(loop.run())`.
        """
        if isinstance(kind, str):
            kind = SUBSCRIPTIONS[kind]

        loop = SubscriptionLoop(
            self.session, kind, callback, timing=self.timing, opener=self.opener
        )

        if stopping is not None:
            loop.stopping = stopping

        return loop

    async def socketOnQuote(
        self, callback: EventCallback, stopping: asyncio.Event | None = None
    ) -> None:
        await self.subscription(QUOTE, callback, stopping).run()

    async def socketOnOrderUpdate(
        self, callback: EventCallback, stopping: asyncio.Event | None = None
    ) -> None:
        await self.subscription(ORDER_UPDATE, callback, stopping).run()

    async def socketOnOrderProfit(
        self, callback: EventCallback, stopping: asyncio.Event | None = None
    ) -> None:
        await self.subscription(PROFIT, callback, stopping).run()

    async def socketOnOhlc(
        self, callback: EventCallback, stopping: asyncio.Event | None = None
    ) -> None:
        await self.subscription(OHLC, callback, stopping).run()

    async def socketOnTickHistory(
        self, callback: EventCallback, stopping: asyncio.Event | None = None
    ) -> None:
        await self.subscription(TICK_HISTORY, callback, stopping).run()

    async def socketOnMarketWatch(
        self, callback: EventCallback, stopping: asyncio.Event | None = None
    ) -> None:
        await self.subscription(MARKET_WATCH, callback, stopping).run()

    async def socketOnTickValue(
        self, callback: EventCallback, stopping: asyncio.Event | None = None
    ) -> None:
        await self.subscription(TICK_VALUE, callback, stopping).run()

    async def socketOnMail(
        self, callback: EventCallback, stopping: asyncio.Event | None = None
    ) -> None:
        await self.subscription(MAIL, callback, stopping).run()
