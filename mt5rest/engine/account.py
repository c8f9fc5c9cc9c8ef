"""Account and open-order queries."""
from __future__ import annotations

from mt5rest.engine.executor import RequestExecutor
from mt5rest.engine.models import AccountDetails, AccountRec, AccountSummary, Order, SortType
from mt5rest.engine.primitives import QueryParams, fmtBool


class AccountQueries:
    """Account records, trading summary, and currently opened orders.

    Dependencies injected at construction:
    - executor: one-shot request executor
    """

    def __init__(self, executor: RequestExecutor):
        self.executor = executor

    async def account(self) -> AccountRec:
        return await self.executor.one(AccountRec, "/Account")

    async def accountSummary(self) -> AccountSummary:
        """Balance, equity, margin and profit for the logged-in account."""
        return await self.executor.one(AccountSummary, "/AccountSummary")

    async def accountDetails(self) -> AccountDetails:
        return await self.executor.one(AccountDetails, "/AccountDetails")

    async def openedOrders(
        self, sort: SortType | str = "", ascending: bool = True
    ) -> list[Order]:
        params: QueryParams = {}
        if sort:
            params["sort"] = str(sort)

        params["ascending"] = fmtBool(ascending)

        return await self.executor.many(Order, "/OpenedOrders", params)

    async def openedOrder(self, ticket: int) -> Order:
        return await self.executor.one(Order, "/OpenedOrder", dict(ticket=str(ticket)))
