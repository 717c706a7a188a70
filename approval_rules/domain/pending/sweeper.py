from __future__ import annotations

import asyncio
import logging

from approval_rules.observability.tracing import log_event

from .store import PendingActionStore


class PendingActionSweeper:
    """
    Periodically removes expired pending actions.

    Owned by whoever builds it: ``start()`` schedules the task on the running
    loop and ``await stop()`` cancels it and waits until it has finished.
    """

    def __init__(self, store: PendingActionStore, *, interval: float = 60.0) -> None:
        self._store = store
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="pending-action-sweeper"
        )
        log_event("sweeper.started", interval=self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log_event("sweeper.stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._store.sweep()
            except Exception as exc:
                log_event("sweeper.error", level=logging.ERROR, error=str(exc))

    async def __aenter__(self) -> "PendingActionSweeper":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
