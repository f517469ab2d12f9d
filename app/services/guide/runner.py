"""Run blocking LLM calls off the event loop with an upper bound on waiting."""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, TypeVar

from app.config import settings

T = TypeVar("T")


async def run_llm_call(
    func: Callable[..., T], *args: Any, timeout: Optional[float] = None, **kwargs: Any
) -> T:
    """Raise ``asyncio.TimeoutError`` once ``timeout`` seconds pass without a reply.

    On timeout the worker thread is abandoned, not stopped.
    """
    limit = settings.llm_timeout_seconds if timeout is None else timeout
    call = asyncio.to_thread(func, *args, **kwargs)
    if limit <= 0:
        return await call
    return await asyncio.wait_for(call, timeout=limit)
