"""
lyceum.quiz.scheduler — Scheduled Presentation Transitions
===========================================================

After a participant answers, the next question (or the results summary) is
delivered only after a fixed presentation delay so the feedback stays
visible.  Each such delayed delivery is a :class:`ScheduledTransition`.

Two schedulers share the same bookkeeping:

- :class:`AsyncioTransitionScheduler` — production; one task per transition
  sleeping on the running loop.
- :class:`ManualTransitionScheduler` — virtual time; nothing fires until the
  caller does ``await scheduler.advance(seconds)``.  Used by tests.

Transitions are keyed by ``(session_id, participant_id)``.  A transition
removes itself once its callback has run, and pending transitions can be
cancelled per session (on eviction) or all at once (on shutdown).
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

TransitionKey = tuple[str, str]
TransitionCallback = Callable[[], Awaitable[None]]


class ScheduledTransition:
    """A cancellable, one-shot delayed callback."""

    __slots__ = ("key", "due", "callback", "cancelled", "done", "_task")

    def __init__(self, key: TransitionKey, due: float, callback: TransitionCallback) -> None:
        self.key = key
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.done = False
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.done)

    def cancel(self) -> None:
        if not self.pending:
            return
        self.cancelled = True
        if self._task is not None:
            self._task.cancel()


class TransitionScheduler:
    """Bookkeeping shared by both scheduler implementations."""

    def __init__(self) -> None:
        self._pending: dict[TransitionKey, set[ScheduledTransition]] = defaultdict(set)

    # Subclasses override
    def now(self) -> float:
        raise NotImplementedError

    def _arm(self, transition: ScheduledTransition, delay: float) -> None:
        raise NotImplementedError

    def schedule(
        self, key: TransitionKey, delay: float, callback: TransitionCallback
    ) -> ScheduledTransition:
        """Run *callback* once, *delay* seconds from now."""
        transition = ScheduledTransition(key, self.now() + max(delay, 0.0), callback)
        self._pending[key].add(transition)
        self._arm(transition, max(delay, 0.0))
        return transition

    async def _fire(self, transition: ScheduledTransition) -> None:
        if transition.cancelled:
            return
        try:
            await transition.callback()
        except Exception:
            logger.exception(
                "Scheduled transition failed for session %s / participant %s",
                transition.key[0], transition.key[1],
            )
        finally:
            transition.done = True
            self._forget(transition)

    def _forget(self, transition: ScheduledTransition) -> None:
        bucket = self._pending.get(transition.key)
        if bucket is None:
            return
        bucket.discard(transition)
        if not bucket:
            del self._pending[transition.key]

    def cancel_session(self, session_id: str) -> int:
        """Cancel every pending transition for *session_id*."""
        cancelled = 0
        for key in [k for k in self._pending if k[0] == session_id]:
            for transition in list(self._pending.pop(key, ())):
                transition.cancel()
                cancelled += 1
        return cancelled

    def cancel_all(self) -> int:
        cancelled = 0
        for key in list(self._pending):
            for transition in list(self._pending.pop(key, ())):
                transition.cancel()
                cancelled += 1
        return cancelled

    def pending_count(self, key: TransitionKey | None = None) -> int:
        buckets = [self._pending.get(key, set())] if key is not None else self._pending.values()
        return sum(1 for bucket in buckets for t in bucket if t.pending)


class AsyncioTransitionScheduler(TransitionScheduler):
    """Wall-clock scheduler backed by the running event loop."""

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    def _arm(self, transition: ScheduledTransition, delay: float) -> None:
        async def _sleep_then_fire() -> None:
            await asyncio.sleep(delay)
            await self._fire(transition)

        transition._task = asyncio.get_running_loop().create_task(
            _sleep_then_fire(),
            name=f"quiz-transition-{transition.key[0]}-{transition.key[1]}",
        )


class ManualTransitionScheduler(TransitionScheduler):
    """Virtual-time scheduler: transitions fire only inside :meth:`advance`."""

    def __init__(self, start: float = 0.0) -> None:
        super().__init__()
        self._now = start
        self._heap: list[tuple[float, int, ScheduledTransition]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def _arm(self, transition: ScheduledTransition, delay: float) -> None:
        heapq.heappush(self._heap, (transition.due, next(self._seq), transition))

    async def advance(self, seconds: float) -> int:
        """Move virtual time forward and run every transition that came due.

        Transitions scheduled by a callback run in the same call if they are
        due by the new time.  Returns the number of callbacks executed.
        """
        target = self._now + seconds
        fired = 0
        while self._heap and self._heap[0][0] <= target:
            due, _, transition = heapq.heappop(self._heap)
            self._now = max(self._now, due)
            if transition.cancelled:
                continue
            await self._fire(transition)
            fired += 1
        self._now = target
        return fired
