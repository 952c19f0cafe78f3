"""Best-effort persistence around chat dispatch.

Nothing here may change a chat response. Inbound writes get one bounded
attempt on the request path; outbound writes are queued on a background
worker whose failures only reach the log.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence

from chat_relay.constants import PERSISTENCE_TIMEOUT_SECONDS
from chat_relay.turns import ChatTurn

from .base import SessionStore

logger = logging.getLogger(__name__)

PersistenceJob = Callable[[], object]


class PersistenceWorker:
    """Runs synchronous storage jobs off the request path, one at a time."""

    def __init__(self, max_pending: int = 1000) -> None:
        self._max_pending = max_pending
        self._queue: asyncio.Queue[tuple[str, PersistenceJob]] | None = None
        self._task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def _ensure_started(self) -> asyncio.Queue[tuple[str, PersistenceJob]]:
        loop = asyncio.get_running_loop()
        if self._queue is None or self._loop is not loop or self._task is None or self._task.done():
            self._loop = loop
            self._queue = asyncio.Queue(maxsize=self._max_pending)
            self._task = loop.create_task(self._drain(self._queue))
        return self._queue

    def submit(self, name: str, job: PersistenceJob) -> None:
        queue = self._ensure_started()
        try:
            queue.put_nowait((name, job))
        except asyncio.QueueFull:
            logger.warning("Persistence queue full; dropping job", extra={"job": name})

    async def _drain(self, queue: asyncio.Queue[tuple[str, PersistenceJob]]) -> None:
        while True:
            name, job = await queue.get()
            try:
                await asyncio.to_thread(job)
            except Exception:
                logger.exception("Background persistence job failed", extra={"job": name})
            finally:
                queue.task_done()

    async def join(self, timeout_seconds: float | None = None) -> None:
        """Wait until every queued job has been attempted."""
        if self._queue is None or self._loop is not asyncio.get_running_loop():
            return
        await asyncio.wait_for(self._queue.join(), timeout_seconds)

    async def aclose(self, timeout_seconds: float = PERSISTENCE_TIMEOUT_SECONDS) -> None:
        try:
            await self.join(timeout_seconds)
        except TimeoutError:
            logger.warning("Pending persistence jobs abandoned at shutdown")
        if self._task is not None and self._loop is asyncio.get_running_loop():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._queue = None
        self._task = None
        self._loop = None


class PersistenceHooks:
    def __init__(
        self,
        store: SessionStore,
        worker: PersistenceWorker,
        timeout_seconds: float = PERSISTENCE_TIMEOUT_SECONDS,
    ) -> None:
        self._store = store
        self._worker = worker
        self._timeout_seconds = timeout_seconds

    async def _call(self, func: Callable[..., object], *args: object) -> object:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), self._timeout_seconds)

    async def record_inbound(self, session_ref: str | None, turns: Sequence[ChatTurn]) -> bool:
        """Verify the session and store the latest user turn.

        Returns True when the session exists and the turn was stored, which is
        also the condition for storing the reply.
        """
        if not session_ref:
            return False
        user_turn = next((t for t in reversed(turns) if t.role == "user" and not t.is_blank), None)
        if user_turn is None:
            return False

        try:
            session = await self._call(self._store.get_session, session_ref)
            if session is None:
                logger.warning("Chat session not found", extra={"session_id": session_ref})
                return False
            await self._call(self._store.create_message, session_ref, "user", user_turn.content)
        except Exception:
            logger.warning(
                "Failed to persist inbound message",
                extra={"session_id": session_ref},
                exc_info=True,
            )
            return False
        return True

    def record_outbound(self, session_ref: str, content: str, model_id: str) -> None:
        if not content.strip():
            return

        def store_reply() -> None:
            self._store.create_message(session_ref, "assistant", content, model_id)
            self._store.touch_session(session_ref)

        self._worker.submit("store_assistant_message", store_reply)
