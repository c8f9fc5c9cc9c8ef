"""One-shot request executor: GET a gateway path, classify the reply."""
from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from mt5rest.engine.codec import loads, structure
from mt5rest.engine.errors import APIError, DecodeError, DialError, HTTPError
from mt5rest.engine.models import ExceptionResult
from mt5rest.engine.primitives import QueryParams
from mt5rest.engine.session import Session

# the gateway reads everything from the query string, but still wants this header
REQUEST_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


class RequestExecutor:
    """Synchronous call/response over the session's HTTP client.

    Dependencies injected at construction:
    - session: base URL, token, and shared httpx client

    Nothing here retries. Every failure is raised straight to the caller:
    - DialError: the request never got a reply (connect, timeout, protocol)
    - APIError: gateway reported an exception (HTTP 201 with an ExceptionResult body)
    - HTTPError: any other non-200 reply
    - DecodeError: a 200 reply that doesn't fit the expected shape
    """

    def __init__(self, session: Session):
        self.session = session

    async def execute(self, path: str, params: QueryParams | None = None) -> bytes:
        """GET `path` and return the raw body of a 200 reply."""
        query: QueryParams = dict(params or {})

        # the session token rides along as `id` unless the caller already set one
        if (token := self.session.token) and not query.get("id"):
            query["id"] = token

        logger.trace("GET {}", path)

        try:
            got = await self.session.http.get(
                f"{self.session.baseUrl}{path}", params=query, headers=REQUEST_HEADERS
            )
        except httpx.HTTPError as e:
            raise DialError(f"GET {path} failed: {e}") from e

        body = got.content

        if got.status_code == 201:
            try:
                err = structure(ExceptionResult, loads(body))
            except DecodeError:
                raise APIError("", got.text) from None

            raise APIError(err.code, err.message, err.stackTrace)

        if got.status_code != 200:
            raise HTTPError(got.status_code, got.text)

        return body

    async def text(self, path: str, params: QueryParams | None = None) -> str:
        return (await self.execute(path, params)).decode()

    async def json(self, path: str, params: QueryParams | None = None) -> Any:
        return loads(await self.execute(path, params))

    async def one[T](self, shape: type[T], path: str, params: QueryParams | None = None) -> T:
        """GET `path` and structure the reply object as `shape`."""
        return structure(shape, await self.json(path, params))

    async def many[T](
        self, shape: type[T], path: str, params: QueryParams | None = None
    ) -> list[T]:
        """GET `path` and structure each element of the reply array as `shape`."""
        found = await self.json(path, params)

        # gateway replies `null` for empty collections
        if found is None:
            return []

        if not isinstance(found, list):
            raise DecodeError(f"{path}: expected array, got {type(found).__name__}")

        return [structure(shape, x) for x in found]

    async def scalar[T](self, kind: type[T], path: str, params: QueryParams | None = None) -> T:
        """GET `path` where the reply is a bare JSON bool or number."""
        found = await self.json(path, params)

        if kind is float and isinstance(found, int) and not isinstance(found, bool):
            found = float(found)

        if not isinstance(found, kind) or (kind is not bool and isinstance(found, bool)):
            raise DecodeError(f"{path}: expected {kind.__name__}, got {type(found).__name__}")

        return found
