"""Bounded awaiting of external calls."""

import asyncio
from typing import Awaitable, Optional, TypeVar


T = TypeVar("T")


async def call_with_timeout(awaitable: Awaitable[T], timeout: Optional[float]) -> T:
    """Await ``awaitable``; raise ``asyncio.TimeoutError`` after ``timeout`` seconds (None/0 = unbounded)."""
    if timeout:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    return await awaitable
