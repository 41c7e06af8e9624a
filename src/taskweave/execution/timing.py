"""Scoped delay primitive used between retry attempts."""

from __future__ import annotations

import asyncio


async def sleep(seconds: float) -> None:
    """Suspend the calling task for ``seconds`` (non-positive yields once)."""
    await asyncio.sleep(max(0.0, seconds))


__all__ = ["sleep"]
