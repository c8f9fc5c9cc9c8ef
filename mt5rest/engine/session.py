"""Shared gateway session for engine modules."""
from __future__ import annotations

import dataclasses
import threading

import httpx


@dataclasses.dataclass
class Session:
    """Gateway base URL, current session token, and the shared HTTP client.

    The token is written by the connect/disconnect calls and read by every
    request and every stream dial. Reads and writes go through a lock so a
    dial running next to a token rotation never sees a half-updated value.
    """

    baseUrl: str
    timeout: float = 30.0
    http: httpx.AsyncClient = dataclasses.field(default=None, repr=False)  # type: ignore[assignment]

    _token: str = dataclasses.field(default="", repr=False)
    _lock: threading.Lock = dataclasses.field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        self.baseUrl = self.baseUrl.rstrip("/")
        if self.http is None:
            self.http = httpx.AsyncClient(timeout=self.timeout)

    @property
    def token(self) -> str:
        with self._lock:
            return self._token

    def setToken(self, token: str) -> None:
        with self._lock:
            self._token = token

    def clearToken(self) -> None:
        self.setToken("")

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    async def aclose(self) -> None:
        await self.http.aclose()
