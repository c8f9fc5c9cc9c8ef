"""Gateway payload shapes.

Attribute names follow the gateway's JSON keys so payloads structure
directly (see codec.structure). Enum-like fields on decoded payloads stay
plain `str` so values added by newer gateway builds never fail decoding;
the StrEnums below are for building requests.
"""

from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass, field

from mt5rest.engine.codec import wire
from mt5rest.engine.primitives import QueryParams, fmtBool, fmtFloat


# ── Enumerations ────────────────────────────────────────────────────


class OrderType(enum.StrEnum):
    BUY = "Buy"
    SELL = "Sell"
    BUY_LIMIT = "BuyLimit"
    SELL_LIMIT = "SellLimit"
    BUY_STOP = "BuyStop"
    SELL_STOP = "SellStop"
    BUY_STOP_LIMIT = "BuyStopLimit"
    SELL_STOP_LIMIT = "SellStopLimit"
    CLOSE_BY = "CloseBy"
    BALANCE = "Balance"
    CREDIT = "Credit"


class OrderState(enum.StrEnum):
    STARTED = "Started"
    PLACED = "Placed"
    CANCELLED = "Cancelled"
    PARTIAL = "Partial"
    FILLED = "Filled"
    REJECTED = "Rejected"
    EXPIRED = "Expired"
    REQUEST_ADDING = "RequestAdding"
    REQUEST_MODIFYING = "RequestModifying"
    REQUEST_CANCELLING = "RequestCancelling"


class PlacedType(enum.StrEnum):
    MANUALLY = "Manually"
    BY_EXPERT = "ByExpert"
    BY_DEALER = "ByDealer"
    ON_SL = "OnSL"
    ON_TP = "OnTP"
    ON_STOP_OUT = "OnStopOut"
    ON_ROLLOVER = "OnRollover"
    ON_VMARGIN = "OnVmargin"
    GATEWAY = "Gateway"
    SIGNAL = "Signal"
    SETTLEMENT = "Settlement"
    TRANSFER = "Transfer"
    SYNC = "Sync"
    EXTERNAL_SERVICE = "ExternalService"
    MIGRATION = "Migration"
    MOBILE = "Mobile"
    WEB = "Web"
    ON_SPLIT = "OnSplit"
    DEFAULT = "Default"


class ProxyType(enum.StrEnum):
    NONE = "None"
    HTTPS = "Https"
    SOCKS4 = "Socks4"
    SOCKS5 = "Socks5"


class SortType(enum.StrEnum):
    OPEN_TIME = "OpenTime"
    CLOSE_TIME = "CloseTime"


# ── Errors ──────────────────────────────────────────────────────────


@dataclass(slots=True)
class ExceptionResult:
    """Body of an HTTP 201 reply: the gateway's exception report."""

    message: str = ""
    code: str = ""
    stackTrace: str = ""


# ── Account ─────────────────────────────────────────────────────────


@dataclass(slots=True)
class AccountRec:
    login: int = 0
    type: str = ""
    userName: str = ""
    tradeFlags: int = 0
    country: str = ""
    city: str = ""
    state: str = ""
    zipCode: str = ""
    userAddress: str = ""
    phone: str = ""
    email: str = ""
    balance: float = 0.0
    credit: float = 0.0
    blocked: float = 0.0
    leverage: int = 0


@dataclass(slots=True)
class AccountSummary:
    balance: float = 0.0
    credit: float = 0.0
    profit: float = 0.0
    equity: float = 0.0
    margin: float = 0.0
    freeMargin: float = 0.0
    marginLevel: float = 0.0
    leverage: float = 0.0
    currency: str = ""
    method: str = ""
    type: str = ""
    isInvestor: bool = False


@dataclass(slots=True)
class AccountDetails:
    serverName: str = ""
    user: int = 0
    password: str = ""
    host: str = ""
    port: int = 0
    company: str = ""
    currency: str = ""
    accountName: str = ""
    group: str = ""
    accountType: str = ""
    accountLeverage: int = 0
    accountMethod: str = ""
    isInvestor: bool = False


# ── Orders and deals ────────────────────────────────────────────────


@dataclass(slots=True)
class Order:
    ticket: int = 0
    profit: float = 0.0
    swap: float = 0.0
    commission: float = 0.0
    fee: float = 0.0
    closePrice: float = 0.0
    closeTimestampUTC: int = 0
    closeLots: float = 0.0
    closeComment: str = ""
    openPrice: float = 0.0
    openTimestampUTC: int = 0
    lots: float = 0.0
    contractSize: float = 0.0
    expertId: int = 0
    placedType: str = ""
    orderType: str = ""
    symbol: str = ""
    comment: str = ""
    state: str = ""
    stopLoss: float = 0.0
    takeProfit: float = 0.0
    requestId: int = 0
    digits: int = 0
    profitRate: float = 0.0
    stopLimitPrice: float = 0.0


@dataclass(slots=True)
class DealInternal:
    ticketNumber: int = 0
    id: str = ""
    login: int = 0
    historyTime: int = 0
    orderTicket: int = 0
    openTime: int = 0
    symbol: str = ""
    type: str = ""
    direction: str = ""
    openPrice: float = 0.0
    price: float = 0.0
    stopLoss: float = 0.0
    takeProfit: float = 0.0
    volume: int = 0
    profit: float = 0.0
    profitRate: float = 0.0
    volumeRate: float = 0.0
    commission: float = 0.0
    fee: float = 0.0
    swap: float = 0.0
    expertId: int = 0
    positionTicket: int = 0
    comment: str = ""
    contractSize: float = 0.0
    digits: int = 0
    moneyDigits: int = 0
    freeProfit: float = 0.0
    trailRounder: float = 0.0
    openTimeMs: int = 0
    placedType: str = ""
    lots: float = 0.0


@dataclass(slots=True)
class OrderInternal:
    ticketNumber: int = 0
    id: str = ""
    login: int = 0
    symbol: str = ""
    historyTime: int = 0
    openTime: int = 0
    expirationTime: int = 0
    executionTime: int = 0
    type: str = ""
    fillPolicy: str = ""
    placedType: str = ""
    openPrice: float = 0.0
    stopLimitPrice: float = 0.0
    price: float = 0.0
    stopLoss: float = 0.0
    takeProfit: float = 0.0
    volume: int = 0
    requestVolume: int = 0
    state: str = ""
    expertId: int = 0
    dealTicket: int = 0
    comment: str = ""
    contractSize: float = 0.0
    digits: int = 0
    baseDigits: int = 0
    profitRate: float = 0.0
    openTimeMs: int = 0
    ticket: int = 0
    lots: float = 0.0
    requestLots: float = 0.0


@dataclass(slots=True)
class OrderHistoryEventArgs:
    orders: list[Order] = field(default_factory=list)
    internalDeals: list[DealInternal] = field(default_factory=list)
    internalOrders: list[OrderInternal] = field(default_factory=list)
    action: int = 0
    partialResponse: bool = False


@dataclass(slots=True)
class PaginationReply:
    pagesCount: int = 0
    pageNumber: int = 0
    orders: list[Order] = field(default_factory=list)


# ── Symbols and quotes ──────────────────────────────────────────────


@dataclass(slots=True)
class SymbolInfo:
    updateTime: int = 0
    currency: str = ""
    isin: str = ""
    description: str = ""
    basis: str = ""
    refToSite: str = ""
    custom: int = 0
    profitCurrency: str = ""
    marginCurrency: str = ""
    precision: int = 0
    bkgndColor: int = 0
    digits: int = 0
    points: float = 0.0
    limitPoints: float = 0.0
    id: int = 0
    depthOfMarket: int = 0
    spread: int = 0
    tickValue: float = 0.0
    tickSize: float = 0.0
    contractSize: float = 0.0
    settlementPrice: float = 0.0
    lowerLimit: float = 0.0
    upperLimit: float = 0.0
    faceValue: float = 0.0
    accruedInterest: float = 0.0
    firstTradeTime: int = 0
    lastTradeTime: int = 0
    bidTickValue: float = wire("bid_tickvalue", default=0.0)
    askTickValue: float = wire("ask_tickvalue", default=0.0)


@dataclass(slots=True)
class SymGroup:
    groupName: str = ""
    deviationRate: int = 0
    roundRate: int = 0
    tradeMode: str = ""
    sl: int = 0
    tp: int = 0
    tradeType: str = ""
    fillPolicy: str = ""
    expiration: str = ""
    orderFlags: int = 0
    priceTimeout: int = 0
    requoteTimeout: int = 0
    requestLots: int = 0
    minVolume: int = 0
    maxVolume: int = 0
    volumeStep: int = 0
    initialMargin: float = 0.0
    maintenanceMargin: float = 0.0
    hedgedMargin: float = 0.0
    swapType: str = ""
    swapLong: float = 0.0
    swapShort: float = 0.0
    threeDaysSwap: str = ""
    minLots: float = 0.0
    maxLots: float = 0.0
    lotsStep: float = 0.0


@dataclass(slots=True)
class SymbolParams:
    symbol: str = ""
    symbolInfo: SymbolInfo = field(default_factory=SymbolInfo)
    symbolGroup: SymGroup = field(default_factory=SymGroup)


@dataclass(slots=True)
class Quote:
    symbol: str = ""
    bid: float = 0.0
    ask: float = 0.0
    timestampUTC: int = 0
    last: float = 0.0
    volume: int = 0


# ── Price history ───────────────────────────────────────────────────


@dataclass(slots=True)
class Bar:
    time: str = ""
    openPrice: float = 0.0
    highPrice: float = 0.0
    lowPrice: float = 0.0
    closePrice: float = 0.0
    tickVolume: int = 0
    spread: int = 0
    volume: int = 0


@dataclass(slots=True)
class BarsForSymbol:
    symbol: str = ""
    bars: list[Bar] = field(default_factory=list)
    exception: str = ""


@dataclass(slots=True)
class QuoteHistoryEventArgs:
    symbol: str = ""
    bars: list[Bar] = field(default_factory=list)


# ── Service ─────────────────────────────────────────────────────────


@dataclass(slots=True)
class Result:
    name: str = ""
    access: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Company:
    companyName: str = ""
    results: list[Result] = field(default_factory=list)


# ── Push events ─────────────────────────────────────────────────────


@dataclass(slots=True)
class TransactionInfo:
    updateId: int = 0
    action: int = 0
    ticketNumber: int = 0
    currency: str = ""
    id: int = 0
    s58: str = ""
    orderState: str = ""
    openPrice: float = 0.0
    orderPrice: float = 0.0
    stopLoss: float = 0.0
    takeProfit: float = 0.0
    volume: int = 0


@dataclass(slots=True)
class OrderUpdate:
    trans: TransactionInfo = field(default_factory=TransactionInfo)
    orderInternal: OrderInternal = field(default_factory=OrderInternal)
    deal: DealInternal = field(default_factory=DealInternal)
    oppositeDeal: DealInternal = field(default_factory=DealInternal)
    order: Order = field(default_factory=Order)
    type: str = ""
    closeByTicket: int = 0


@dataclass(slots=True)
class OrderUpdateSummary:
    openedOrders: list[Order] = field(default_factory=list)
    update: OrderUpdate = field(default_factory=OrderUpdate)
    balance: float = 0.0
    equity: float = 0.0
    margin: float = 0.0
    freeMargin: float = 0.0
    profit: float = 0.0
    marginLevel: float = 0.0
    credit: float = 0.0
    user: int = 0


@dataclass(slots=True)
class ProfitUpdate:
    balance: float = 0.0
    credit: float = 0.0
    equity: float = 0.0
    margin: float = 0.0
    freeMargin: float = 0.0
    profit: float = 0.0
    orders: list[Order] = field(default_factory=list)
    marginLevel: float = 0.0
    user: int = 0


@dataclass(slots=True)
class OhlcSubscription:
    symbol: str = ""
    timeframe: int = 0
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0
    time: datetime.datetime | None = None
    volume: int = 0
    tickVolume: int = 0
    lastQuoteTime: datetime.datetime | None = None


@dataclass(slots=True)
class TickBar:
    time: datetime.datetime | None = None
    bid: float = 0.0
    ask: float = 0.0
    last: float = 0.0
    volume: int = 0


@dataclass(slots=True)
class TickHistoryEventArgs:
    symbol: str = ""
    bars: list[TickBar] = field(default_factory=list)


@dataclass(slots=True)
class MarketWatch:
    symbol: str = ""
    high: float = 0.0
    low: float = 0.0
    openPrice: float = 0.0
    closePrice: float = 0.0
    dailyChange: float = 0.0
    bid: float = 0.0
    ask: float = 0.0
    spread: int = 0
    volume: int = 0


@dataclass(slots=True)
class SymbolTickValue:
    symbol: str = ""
    tickValue: float = 0.0
    tickSize: float = 0.0


@dataclass(slots=True)
class MailMessage:
    id: int = 0
    time: datetime.datetime | None = None
    sender: str = wire("from", default="")
    to: str = ""
    subject: str = ""
    body: str = ""


type Event = (
    Quote
    | OrderUpdateSummary
    | ProfitUpdate
    | OhlcSubscription
    | MarketWatch
    | TickHistoryEventArgs
    | SymbolTickValue
    | MailMessage
)


# ── Requests ────────────────────────────────────────────────────────


@dataclass(slots=True)
class ConnectRequest:
    """Login by broker host and port."""

    user: int
    password: str
    host: str
    port: int
    id: str = ""
    hardwareId: str = ""
    otp: str = ""
    connectTimeoutSeconds: int = 0
    downloadOrderHistory: bool = False
    reconnectOnSymbolUpdate: bool = False

    def params(self) -> QueryParams:
        p: QueryParams = dict(
            user=str(self.user), password=self.password, host=self.host, port=str(self.port)
        )
        return p | _connectOptions(
            self.id,
            self.hardwareId,
            self.otp,
            self.connectTimeoutSeconds,
            self.downloadOrderHistory,
            self.reconnectOnSymbolUpdate,
        )


@dataclass(slots=True)
class ConnectExRequest:
    """Login by broker server name instead of host/port."""

    user: int
    password: str
    server: str
    id: str = ""
    hardwareId: str = ""
    otp: str = ""
    connectTimeoutSeconds: int = 0
    connectTimeoutClusterMemberSeconds: int = 0
    downloadOrderHistory: bool = False
    reconnectOnSymbolUpdate: bool = False

    def params(self) -> QueryParams:
        p: QueryParams = dict(user=str(self.user), password=self.password, server=self.server)
        p |= _connectOptions(self.id, self.hardwareId, self.otp, self.connectTimeoutSeconds)
        if self.connectTimeoutClusterMemberSeconds > 0:
            p["connectTimeoutClusterMemberSeconds"] = str(self.connectTimeoutClusterMemberSeconds)

        return p | _connectOptions(
            downloadOrderHistory=self.downloadOrderHistory,
            reconnectOnSymbolUpdate=self.reconnectOnSymbolUpdate,
        )


@dataclass(slots=True)
class ConnectProxyRequest(ConnectRequest):
    """Login by broker host and port through a proxy."""

    proxyHost: str = ""
    proxyPort: int = 0
    proxyType: str = ProxyType.NONE
    proxyUser: str = ""
    proxyPassword: str = ""

    def params(self) -> QueryParams:
        p: QueryParams = dict(
            user=str(self.user),
            password=self.password,
            host=self.host,
            port=str(self.port),
            proxyHost=self.proxyHost,
            proxyPort=str(self.proxyPort),
            proxyType=str(self.proxyType),
        )
        if self.proxyUser:
            p["proxyUser"] = self.proxyUser

        if self.proxyPassword:
            p["proxyPassword"] = self.proxyPassword

        return p | _connectOptions(
            self.id,
            self.hardwareId,
            self.otp,
            self.connectTimeoutSeconds,
            self.downloadOrderHistory,
            self.reconnectOnSymbolUpdate,
        )


def _connectOptions(
    id: str = "",
    hardwareId: str = "",
    otp: str = "",
    connectTimeoutSeconds: int = 0,
    downloadOrderHistory: bool = False,
    reconnectOnSymbolUpdate: bool = False,
) -> QueryParams:
    """Optional login parameters, only sent when set."""
    p: QueryParams = {}
    if id:
        p["id"] = id

    if hardwareId:
        p["hardwareId"] = hardwareId

    if otp:
        p["otp"] = otp

    if connectTimeoutSeconds > 0:
        p["connectTimeoutSeconds"] = str(connectTimeoutSeconds)

    if downloadOrderHistory:
        p["downloadOrderHistory"] = fmtBool(True)

    if reconnectOnSymbolUpdate:
        p["reconnectOnSymbolUpdate"] = fmtBool(True)

    return p


@dataclass(slots=True)
class OrderSendRequest:
    symbol: str
    operation: OrderType | str
    volume: float
    price: float = 0.0
    slippage: int = 0
    stoploss: float = 0.0
    takeprofit: float = 0.0
    comment: str = ""
    expertId: int = 0
    stopLimitPrice: float = 0.0
    placedType: PlacedType | str = ""

    def params(self) -> QueryParams:
        p: QueryParams = dict(
            symbol=self.symbol, operation=str(self.operation), volume=fmtFloat(self.volume)
        )
        if self.price > 0:
            p["price"] = fmtFloat(self.price)

        if self.slippage > 0:
            p["slippage"] = str(self.slippage)

        if self.stoploss > 0:
            p["stoploss"] = fmtFloat(self.stoploss)

        if self.takeprofit > 0:
            p["takeprofit"] = fmtFloat(self.takeprofit)

        if self.comment:
            p["comment"] = self.comment

        if self.expertId > 0:
            p["expertId"] = str(self.expertId)

        if self.stopLimitPrice > 0:
            p["stopLimitPrice"] = fmtFloat(self.stopLimitPrice)

        if self.placedType:
            p["placedType"] = str(self.placedType)

        return p


@dataclass(slots=True)
class OrderModifyRequest:
    ticket: int
    stoploss: float
    takeprofit: float
    price: float = 0.0
    stoplimit: float = 0.0

    def params(self) -> QueryParams:
        # stoploss/takeprofit are always sent: 0 clears them
        p: QueryParams = dict(
            ticket=str(self.ticket),
            stoploss=fmtFloat(self.stoploss),
            takeprofit=fmtFloat(self.takeprofit),
        )
        if self.price > 0:
            p["price"] = fmtFloat(self.price)

        if self.stoplimit > 0:
            p["stoplimit"] = fmtFloat(self.stoplimit)

        return p


@dataclass(slots=True)
class OrderCloseRequest:
    ticket: int
    lots: float = 0.0
    price: float = 0.0
    slippage: int = 0

    def params(self) -> QueryParams:
        p: QueryParams = dict(ticket=str(self.ticket))
        if self.lots > 0:
            p["lots"] = fmtFloat(self.lots)

        if self.price > 0:
            p["price"] = fmtFloat(self.price)

        if self.slippage > 0:
            p["slippage"] = str(self.slippage)

        return p
