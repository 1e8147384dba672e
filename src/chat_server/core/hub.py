"""
Single-writer dispatcher for the chat server.

Every job that touches the store or the connection registry is submitted
here and executed one at a time by a single worker task, in submission
order. Connection tasks and REST handlers only ever wait on the result.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Tuple

from ..infrastructure import setup_logging
from ..infrastructure.exceptions import HubClosedError

logger = setup_logging(
    component_name="hub",
    log_file="logs/chat_server.log",
)

Job = Tuple[Callable[..., Awaitable[Any]], tuple, asyncio.Future]


class ChatHub:
    """Runs submitted coroutine functions sequentially on one worker task."""

    def __init__(self) -> None:
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self.jobs_processed = 0

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        """Start the worker. Calling start on a running hub is a no-op."""
        if self.is_running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run(), name="chat-hub")
        logger.info("Chat hub started")

    async def stop(self) -> None:
        """Stop the worker and fail any jobs still waiting."""
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

        while self._queue is not None and not self._queue.empty():
            _, _, future = self._queue.get_nowait()
            if not future.done():
                future.set_exception(HubClosedError("Chat hub stopped"))
        logger.info("Chat hub stopped")

    async def submit(self, func: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        """
        Queue ``func(*args)`` and wait for its result.

        Exceptions raised by the job are re-raised here, in the submitter,
        and never stop the worker.

        Raises:
            HubClosedError: If the hub is not running
        """
        if not self.is_running:
            raise HubClosedError("Chat hub is not running")
        future = asyncio.get_running_loop().create_future()
        await self._queue.put((func, args, future))
        return await future

    async def _run(self) -> None:
        while True:
            func, args, future = await self._queue.get()
            try:
                if future.cancelled():
                    continue
                result = await func(*args)
            except asyncio.CancelledError:
                if not future.done():
                    future.set_exception(HubClosedError("Chat hub stopped"))
                raise
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                self.jobs_processed += 1
                self._queue.task_done()
