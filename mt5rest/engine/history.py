"""Closed order, deal and position history."""
from __future__ import annotations

import datetime
from collections.abc import Iterable

from mt5rest.engine.executor import RequestExecutor
from mt5rest.engine.models import (
    DealInternal,
    Order,
    OrderHistoryEventArgs,
    PaginationReply,
    SortType,
)
from mt5rest.engine.primitives import QueryParams, fmtBool, fmtInts, fmtTime


def _span(start: datetime.datetime, end: datetime.datetime) -> QueryParams:
    return {"from": fmtTime(start), "to": fmtTime(end)}


class HistoryQueries:
    """Account history lookups.

    Dependencies injected at construction:
    - executor: one-shot request executor

    All time ranges are naive server-time datetimes. The gateway downloads
    history in the background after login (see orderHistoryDownloadComplete);
    queries issued before that finishes may come back partial.
    """

    def __init__(self, executor: RequestExecutor):
        self.executor = executor

    async def orderHistory(
        self,
        start: datetime.datetime,
        end: datetime.datetime,
        sort: SortType | str = "",
        ascending: bool = True,
        filter: Iterable[str] = (),
    ) -> OrderHistoryEventArgs:
        params = _span(start, end)
        if sort:
            params["sort"] = str(sort)

        params["ascending"] = fmtBool(ascending)

        if filters := list(filter):
            params["filter"] = filters

        return await self.executor.one(OrderHistoryEventArgs, "/OrderHistory", params)

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
        """One page of closed orders.

        `requestAgain` forces the gateway to rebuild its cached result set
        instead of paging through the one from the previous call.
        """
        params = _span(start, end)
        params["ordersPerPage"] = str(ordersPerPage)
        params["pageNumber"] = str(pageNumber)
        params["requestAgain"] = fmtBool(requestAgain)
        if sort:
            params["sort"] = str(sort)

        params["ascending"] = fmtBool(ascending)

        if wanted := fmtInts(tickets):
            params["tickets"] = wanted

        params["ignoreDepositWithdraw"] = fmtBool(ignoreDepositWithdraw)

        return await self.executor.one(PaginationReply, "/OrderHistoryPagination", params)

    async def historyDealsByPositionId(self, ticket: int) -> list[DealInternal]:
        return await self.executor.many(
            DealInternal, "/HistoryDealsByPositionId", dict(ticket=str(ticket))
        )

    async def historyPositions(self, tickets: Iterable[int]) -> list[Order]:
        return await self.executor.many(
            Order, "/HistoryPositions", dict(tickets=fmtInts(tickets))
        )

    async def historyPositionsByCloseTime(
        self, start: datetime.datetime, end: datetime.datetime
    ) -> list[Order]:
        return await self.executor.many(Order, "/HistoryPositionsByCloseTime", _span(start, end))

    async def orderHistoryDownloadComplete(self) -> bool:
        return await self.executor.scalar(bool, "/OrderHistoryDownloadComplete")
