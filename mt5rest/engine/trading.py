"""Order placement, modification, and closing."""
from __future__ import annotations

from loguru import logger

from mt5rest.engine.executor import RequestExecutor
from mt5rest.engine.models import Order, OrderCloseRequest, OrderModifyRequest, OrderSendRequest


class OrderTrader:
    """Market and pending order actions.

    Dependencies injected at construction:
    - executor: one-shot request executor

    Each action returns the order as the gateway reports it after the action.
    Failures are never retried here: a rejected order surfaces as APIError.
    """

    def __init__(self, executor: RequestExecutor):
        self.executor = executor

    async def orderSend(self, req: OrderSendRequest) -> Order:
        logger.info("[{}] Sending {} {}", req.symbol, req.operation, req.volume)
        order = await self.executor.one(Order, "/OrderSend", req.params())
        logger.info("[{}] Order accepted: ticket {} ({})", order.symbol, order.ticket, order.state)
        return order

    async def orderModify(self, req: OrderModifyRequest) -> Order:
        logger.info("[{}] Modifying SL {} TP {}", req.ticket, req.stoploss, req.takeprofit)
        return await self.executor.one(Order, "/OrderModify", req.params())

    async def orderClose(self, req: OrderCloseRequest) -> Order:
        logger.info("[{}] Closing (lots: {})", req.ticket, req.lots or "all")
        return await self.executor.one(Order, "/OrderClose", req.params())
