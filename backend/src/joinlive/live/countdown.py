"""Staged on-air transitions driven by a cancellable tick task."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from .selection import SelectionState


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CountdownSession:
    target: SelectionState
    seconds_remaining: int

    def to_event(self, event_type: str) -> dict[str, Any]:
        return {"type": event_type, **self.target.target_fields(), "seconds": self.seconds_remaining}


CountdownCallback = Callable[[CountdownSession], Awaitable[None]]


class CountdownCoordinator:
    """Own the single active countdown and its tick task.

    ``start`` and ``cancel`` must be called while holding *lock*; the tick task
    takes the same lock before every step and re-checks that its session is
    still the active one, so once ``cancel`` returns no further tick or
    completion can be delivered for the cancelled session.
    """

    def __init__(
        self,
        lock: asyncio.Lock,
        *,
        on_tick: CountdownCallback,
        on_complete: CountdownCallback,
        tick_seconds: float = 1.0,
    ) -> None:
        self._lock = lock
        self._on_tick = on_tick
        self._on_complete = on_complete
        self._tick_seconds = tick_seconds
        self._session: CountdownSession | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def session(self) -> CountdownSession | None:
        return self._session

    @property
    def active(self) -> bool:
        return self._session is not None

    def start(self, target: SelectionState, seconds: int) -> tuple[CountdownSession, CountdownSession | None]:
        """Arm a new countdown, returning it and the session it replaced (if any)."""

        replaced = self.cancel()
        session = CountdownSession(target=target, seconds_remaining=seconds)
        self._session = session
        self._task = asyncio.create_task(self._run(session), name="live-countdown")
        logger.info("Countdown started for %s (%ss)", list(target.channel_ids), seconds)
        return session, replaced

    def cancel(self) -> CountdownSession | None:
        session = self._session
        if session is None:
            return None
        self._session = None
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        logger.info("Countdown cancelled for %s", list(session.target.channel_ids))
        return session

    async def aclose(self) -> None:
        """Stop the tick task on shutdown without broadcasting anything."""

        task = self._task
        self._session = None
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self, session: CountdownSession) -> None:
        try:
            while True:
                await asyncio.sleep(self._tick_seconds)
                async with self._lock:
                    if self._session is not session:
                        return
                    session.seconds_remaining -= 1
                    if session.seconds_remaining > 0:
                        await self._on_tick(session)
                        continue
                    self._session = None
                    self._task = None
                    logger.info("Countdown finished for %s", list(session.target.channel_ids))
                    await self._on_complete(session)
                    return
        except Exception:
            logger.exception("Countdown task failed")
            if self._session is session:
                self._session = None
                self._task = None
