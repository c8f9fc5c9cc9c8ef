"""Narrow protocols for the streaming seams.

The subscription loop only needs a handful of calls from a live stream and
one way to open it. Keeping those as protocols lets tests drive the loop
with in-memory connections instead of a gateway.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mt5rest.engine.session import Session


@runtime_checkable
class FrameStream(Protocol):
    """One open push stream."""

    endpoint: str

    @property
    def alive(self) -> bool: ...

    async def readFrame(self) -> bytes | str: ...
    async def sendPing(self) -> None: ...
    async def close(self) -> None: ...


class StreamOpener(Protocol):
    """Dial a push stream for `endpoint` or raise DialError."""

    async def __call__(
        self, session: Session, endpoint: str, openTimeout: float
    ) -> FrameStream: ...
