"""Session login/logout and gateway service calls."""
from __future__ import annotations

from loguru import logger

from mt5rest.engine.errors import APIError, AuthError, DecodeError, HTTPError
from mt5rest.engine.executor import RequestExecutor
from mt5rest.engine.models import (
    Company,
    ConnectExRequest,
    ConnectProxyRequest,
    ConnectRequest,
)
from mt5rest.engine.primitives import QueryParams
from mt5rest.engine.session import Session


class ConnectionManager:
    """Creates and drops gateway sessions.

    Dependencies injected at construction:
    - session: receives the token on login, loses it on logout
    - executor: one-shot request executor

    A successful connect stores the returned token on the session so every
    later request and stream dial carries it.
    """

    def __init__(self, session: Session, executor: RequestExecutor):
        self.session = session
        self.executor = executor

    async def _login(self, path: str, params: QueryParams, user: int) -> str:
        try:
            token = await self.executor.text(path, params)
        except (APIError, HTTPError) as e:
            raise AuthError(f"Login for {user} refused: {e}") from e

        if not token:
            raise AuthError(f"Login for {user} returned no session token")

        self.session.setToken(token)
        logger.info("[{}] Session created for account {}", path, user)
        return token

    async def connect(self, req: ConnectRequest) -> str:
        """Login with user, password, host and port. Returns the session token."""
        return await self._login("/Connect", req.params(), req.user)

    async def connectEx(self, req: ConnectExRequest) -> str:
        """Login with a broker server name instead of host/port."""
        return await self._login("/ConnectEx", req.params(), req.user)

    async def connectProxy(self, req: ConnectProxyRequest) -> str:
        """Login through a proxy."""
        return await self._login("/ConnectProxy", req.params(), req.user)

    async def checkConnect(self) -> str:
        """Check connection state; the gateway reconnects the account if it was lost."""
        return await self.executor.text("/CheckConnect")

    async def disconnect(self) -> str:
        got = await self.executor.text("/Disconnect")
        self.session.clearToken()
        logger.info("Session closed")
        return got

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------

    async def pingHost(self, host: str, port: int = 0) -> int:
        """Round trip time to a broker host in milliseconds."""
        params: QueryParams = dict(host=host)
        if port > 0:
            params["port"] = str(port)

        return await self.executor.scalar(int, "/PingHost", params)

    async def search(self, company: str) -> list[Company]:
        """Find broker servers by company name."""
        return await self.executor.many(Company, "/Search", dict(company=company))

    async def serverTimezone(self) -> int:
        """Broker server UTC offset (whole hours)."""
        got = await self.executor.text("/ServerTimezone")
        try:
            return int(float(got))
        except ValueError as e:
            raise DecodeError(f"/ServerTimezone: not a number: {got!r}") from e
