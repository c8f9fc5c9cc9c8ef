"""Symbols, quotes, price history, and server-side quote subscriptions."""
from __future__ import annotations

import datetime

from mt5rest.engine.codec import structure
from mt5rest.engine.errors import DecodeError
from mt5rest.engine.executor import RequestExecutor
from mt5rest.engine.models import (
    Bar,
    BarsForSymbol,
    Order,
    OrderType,
    Quote,
    SymbolInfo,
    SymbolParams,
)
from mt5rest.engine.primitives import QueryParams, fmtFloat, fmtTime


class MarketData:
    """Symbol metadata, latest quotes and bar history.

    Dependencies injected at construction:
    - executor: one-shot request executor

    Also owns the server-side subscription switches (Subscribe, SubscribeOhlc, ...)
    which decide what the gateway pushes down the /OnQuote and /OnOhlc streams.
    Those calls reply with a plain status text which is returned unchanged.
    """

    def __init__(self, executor: RequestExecutor):
        self.executor = executor

    # ── Symbols ─────────────────────────────────────────────────────

    async def symbols(self) -> dict[str, SymbolInfo]:
        """Every tradable symbol keyed by name."""
        found = await self.executor.json("/Symbols")
        if found is None:
            return {}

        if not isinstance(found, dict):
            raise DecodeError(f"/Symbols: expected object, got {type(found).__name__}")

        return {name: structure(SymbolInfo, info) for name, info in found.items()}

    async def symbolList(self) -> list[str]:
        found = await self.executor.json("/SymbolList")
        if found is None:
            return []

        if not isinstance(found, list) or not all(isinstance(x, str) for x in found):
            raise DecodeError("/SymbolList: expected array of names")

        return found

    async def symbolParams(self, symbol: str) -> SymbolParams:
        """Symbol info plus its group trading rules."""
        return await self.executor.one(SymbolParams, "/SymbolParams", dict(symbol=symbol))

    async def isTradeSession(self, symbol: str) -> bool:
        return await self.executor.scalar(bool, "/IsTradeSession", dict(symbol=symbol))

    async def requiredMargin(
        self, symbol: str, lots: float, orderType: OrderType | str, price: float = 0.0
    ) -> float:
        params: QueryParams = dict(symbol=symbol, lots=fmtFloat(lots), type=str(orderType))
        if price > 0:
            params["price"] = fmtFloat(price)

        return await self.executor.scalar(float, "/RequiredMargin", params)

    # ── Quotes ──────────────────────────────────────────────────────

    async def getQuote(self, symbol: str, msNotOlder: int = 0) -> Quote:
        """Latest quote for `symbol`.

        With `msNotOlder` set, the gateway waits for a quote no older than that many
        milliseconds instead of returning a stale cached one.
        """
        params: QueryParams = dict(symbol=symbol)
        if msNotOlder > 0:
            params["msNotOlder"] = str(msNotOlder)

        return await self.executor.one(Quote, "/GetQuote", params)

    async def getQuoteMany(self, symbols: list[str], msNotOlder: int = 0) -> list[Quote]:
        params: QueryParams = dict(symbols=list(symbols))
        if msNotOlder > 0:
            params["msNotOlder"] = str(msNotOlder)

        return await self.executor.many(Quote, "/GetQuoteMany", params)

    # ── Price history ───────────────────────────────────────────────

    async def priceHistory(
        self,
        symbol: str,
        start: datetime.datetime,
        end: datetime.datetime,
        timeFrame: int,
    ) -> list[Bar]:
        """Bars for `symbol` between `start` and `end` (server time).

        `timeFrame` is the bar size in minutes.
        """
        params: QueryParams = {
            "symbol": symbol,
            "from": fmtTime(start),
            "to": fmtTime(end),
            "timeFrame": str(timeFrame),
        }
        return await self.executor.many(Bar, "/PriceHistory", params)

    async def priceHistoryMany(
        self,
        symbols: list[str],
        start: datetime.datetime,
        end: datetime.datetime,
        timeFrame: int,
    ) -> list[BarsForSymbol]:
        # this endpoint repeats `symbol`, not `symbols`
        params: QueryParams = {
            "symbol": list(symbols),
            "from": fmtTime(start),
            "to": fmtTime(end),
            "timeFrame": str(timeFrame),
        }
        return await self.executor.many(BarsForSymbol, "/PriceHistoryMany", params)

    async def priceHistoryToday(self, symbol: str, timeFrame: int) -> list[Bar]:
        params: QueryParams = dict(symbol=symbol, timeFrame=str(timeFrame))
        return await self.executor.many(Bar, "/PriceHistoryToday", params)

    async def priceHistoryMonth(
        self, symbol: str, year: int, month: int, day: int, timeFrame: int
    ) -> list[Bar]:
        """30 days of bars starting at year/month/day."""
        params: QueryParams = dict(
            symbol=symbol,
            year=str(year),
            month=str(month),
            day=str(day),
            timeFrame=str(timeFrame),
        )
        return await self.executor.many(Bar, "/PriceHistoryMonth", params)

    async def priceHistoryEx(
        self, symbol: str, start: datetime.datetime, numBars: int, timeFrame: int
    ) -> list[Bar]:
        """`numBars` bars counting back from `start`."""
        params: QueryParams = {
            "symbol": symbol,
            "from": fmtTime(start),
            "numBars": str(numBars),
            "timeFrame": str(timeFrame),
        }
        return await self.executor.many(Bar, "/PriceHistoryEx", params)

    # ── Server-side subscriptions ───────────────────────────────────

    async def subscribe(self, symbol: str, interval: int = 0) -> str:
        params: QueryParams = dict(symbol=symbol)
        if interval > 0:
            params["interval"] = str(interval)

        return await self.executor.text("/Subscribe", params)

    async def subscribeMany(self, symbols: list[str], interval: int = 0) -> str:
        params: QueryParams = dict(symbols=list(symbols))
        if interval > 0:
            params["interval"] = str(interval)

        return await self.executor.text("/SubscribeMany", params)

    async def unSubscribe(self, symbol: str) -> str:
        return await self.executor.text("/UnSubscribe", dict(symbol=symbol))

    async def unSubscribeMany(self, symbols: list[str]) -> str:
        return await self.executor.text("/UnSubscribeMany", dict(symbols=list(symbols)))

    async def subscribeOrderProfit(self, interval: int = 0) -> list[Order]:
        """Enable /OnOrderProfit pushes. Replies with the currently opened orders."""
        params: QueryParams = {}
        if interval > 0:
            params["interval"] = str(interval)

        return await self.executor.many(Order, "/SubscribeOrderProfit", params)

    async def subscribeOhlc(self, symbol: str = "", timeframe: int = 0, interval: int = 0) -> str:
        params = self._ohlcParams(symbol, timeframe)
        if interval > 0:
            params["interval"] = str(interval)

        return await self.executor.text("/SubscribeOhlc", params)

    async def unsubscribeOhlc(self, symbol: str = "", timeframe: int = 0) -> str:
        return await self.executor.text("/UnsubscribeOhlc", self._ohlcParams(symbol, timeframe))

    @staticmethod
    def _ohlcParams(symbol: str, timeframe: int) -> QueryParams:
        params: QueryParams = {}
        if symbol:
            params["symbol"] = symbol

        if timeframe > 0:
            params["timeframe"] = str(timeframe)

        return params
