"""
Background email dispatch.

Requests hand messages to a bounded in-process queue and return immediately;
a single worker task drains the queue outside any request or transaction.
Delivery is best-effort: a full queue drops the message, a failed send is
logged and not retried.
"""

from __future__ import annotations

import asyncio

import structlog

from app.core.config import get_settings
from app.services.email import EmailMessage, EmailSender, create_sender

log = structlog.get_logger()

DRAIN_TIMEOUT_SECONDS = 5.0


class EmailDispatcher:
    """Bounded fire-and-forget email queue with one worker."""

    def __init__(self, sender: EmailSender, max_queue_size: int = 100):
        self._sender = sender
        self._queue: asyncio.Queue[EmailMessage] = asyncio.Queue(maxsize=max_queue_size)
        self._worker: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="email-dispatcher")
        log.info("email_dispatch.started", max_queue_size=self._queue.maxsize)

    async def join(self) -> None:
        """Wait until every queued message has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        """Let queued messages drain briefly, then cancel the worker."""
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self.join(), timeout=DRAIN_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            log.warning("email_dispatch.drain_timeout", dropped=self._queue.qsize())
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        log.info("email_dispatch.stopped")

    def submit(self, message: EmailMessage) -> bool:
        """Queue a message without waiting. Returns False if it was dropped."""
        if not self.running:
            log.warning("email_dispatch.not_running", to=message.to, subject=message.subject)
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            log.warning("email_dispatch.queue_full", to=message.to, subject=message.subject)
            return False
        return True

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self._sender.send(message)
                log.info("email.sent", to=message.to, subject=message.subject)
            except Exception:
                log.exception("email.send_failed", to=message.to, subject=message.subject)
            finally:
                self._queue.task_done()


_dispatcher: EmailDispatcher | None = None


def get_email_dispatcher() -> EmailDispatcher:
    """Get or create the process-wide dispatcher (also a FastAPI dependency)."""
    global _dispatcher
    if _dispatcher is None:
        settings = get_settings()
        _dispatcher = EmailDispatcher(
            create_sender(settings), max_queue_size=settings.email_queue_size
        )
    return _dispatcher


async def start_email_dispatcher() -> None:
    get_email_dispatcher().start()


async def stop_email_dispatcher() -> None:
    global _dispatcher
    if _dispatcher is not None:
        await _dispatcher.stop()
        _dispatcher = None
