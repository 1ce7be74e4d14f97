from __future__ import annotations

import asyncio
import collections.abc
import contextlib
from enum import IntEnum
from typing import Any, Callable

from loguru import logger

_lsp_notification_send: Callable[[str, str], Any] | None = None
_lsp_status_begin: (
    Callable[[str], collections.abc.Awaitable[str | int | None]] | None
) = None
_lsp_status_end: Callable[[str | int], collections.abc.Awaitable[None]] | None = None


class UserMessageType(IntEnum):
    ERROR = 1
    WARNING = 2
    INFO = 3


async def error(message: str) -> None:
    await send(message=message, message_type=UserMessageType.ERROR)


async def send(message: str, message_type: UserMessageType) -> None:
    logger.trace(f"User message: [{message_type.name}] {message}")
    if _lsp_notification_send is not None:
        result = _lsp_notification_send(message, message_type.name)
        if isinstance(result, collections.abc.Awaitable):
            await result
    else:
        logger.debug("Sender of user messages is not initialized")


@contextlib.asynccontextmanager
async def status(message: str) -> collections.abc.AsyncIterator[None]:
    # transient status, visible while the body runs. The body doesn't wait for the
    # client to show it
    begin_task: asyncio.Task[str | int | None] | None = None
    if _lsp_status_begin is not None:
        begin_task = asyncio.ensure_future(_lsp_status_begin(message))

    try:
        yield
    finally:
        if begin_task is not None:
            await _end_status(begin_task, message)


async def _end_status(
    begin_task: asyncio.Task[str | int | None], message: str
) -> None:
    if not begin_task.done():
        # status is not shown yet, no need to show it anymore
        begin_task.cancel()
        return

    if begin_task.cancelled():
        return
    exception = begin_task.exception()
    if exception is not None:
        logger.error(f"Failed to show status '{message}'")
        logger.exception(exception)
        return

    token = begin_task.result()
    if token is None or _lsp_status_end is None:
        return
    try:
        await _lsp_status_end(token)
    except Exception as exception:
        logger.error(f"Failed to hide status '{message}'")
        logger.exception(exception)


__all__ = ["error", "status"]
