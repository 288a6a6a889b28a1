import asyncio
import logging
from typing import Any, Callable, Set

from storefront.core.exceptions import StoreError, UpstreamTimeout

logger = logging.getLogger(__name__)

# Strong references to undo tasks scheduled after a timed-out write.
_pending_undos: Set[asyncio.Task] = set()


async def call_blocking(fn: Callable[..., Any], *args, timeout: float, what: str, **kwargs) -> Any:
    """Run a blocking client call in a worker thread, bounded by ``timeout`` seconds."""
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args, **kwargs), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"⏱️ {what} timed out after {timeout}s")
        raise UpstreamTimeout(f"{what} timed out") from e


async def call_blocking_write(
    fn: Callable[..., Any], *args, timeout: float, what: str, undo: Callable[[Any], Any], **kwargs
) -> Any:
    """
    Like ``call_blocking`` for a write that may still commit after the caller
    stopped waiting. A timeout does not stop the worker thread, so once that
    thread finishes ``undo`` is called with its result in the background and
    the late write does not survive.
    """
    work = asyncio.ensure_future(asyncio.to_thread(fn, *args, **kwargs))
    try:
        return await asyncio.wait_for(asyncio.shield(work), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"⏱️ {what} timed out after {timeout}s, undo scheduled")
        task = asyncio.create_task(_undo_when_done(work, undo, what))
        _pending_undos.add(task)
        task.add_done_callback(_pending_undos.discard)
        raise UpstreamTimeout(f"{what} timed out") from e


async def _undo_when_done(work: "asyncio.Future", undo: Callable[[Any], Any], what: str) -> None:
    try:
        result = await work
    except Exception as e:
        logger.warning(f"↩️ Late {what} failed, nothing to undo: {e}")
        return
    try:
        await asyncio.to_thread(undo, result)
        logger.warning(f"↩️ Undid late {what}")
    except Exception as e:
        logger.error(f"❌ Undo of late {what} failed: {e}")


async def wait_for_pending_undos() -> None:
    """Block until every scheduled undo has run."""
    while _pending_undos:
        await asyncio.gather(*list(_pending_undos), return_exceptions=True)


async def read_with_retry(
    fn: Callable[..., Any], *args, timeout: float, retries: int, what: str, **kwargs
) -> Any:
    """Idempotent store reads only: retry on StoreError, never on timeouts."""
    for attempt in range(retries + 1):
        try:
            return await call_blocking(fn, *args, timeout=timeout, what=what, **kwargs)
        except StoreError as e:
            if attempt == retries:
                raise
            logger.warning(f"⚠️ {what} failed ({e.details}), retry {attempt + 1}/{retries}")
