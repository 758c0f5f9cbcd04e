"""Pausable, cancellable phase timers.

Delayed transitions ("next night starts shortly") are scheduled callbacks.
Pausing freezes each timer's remaining time instead of cancelling it;
resuming reschedules with the frozen remainder.

Two modes:
- with an asyncio loop, timers fire via ``loop.call_later``;
- without a loop (manual mode), time only moves through ``advance()`` or
  ``flush()``, which keeps tests and simulations deterministic.
"""

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Optional
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class TimerEventKind(str, Enum):
    SCHEDULED = "scheduled"
    TRIGGERED = "triggered"
    PAUSED = "paused"
    RESUMED = "resumed"
    CANCELLED = "cancelled"
    CANCELLED_ALL = "cancelled_all"


class TimerEvent(BaseModel):
    """One entry of the timer event history."""

    kind: TimerEventKind
    timer_id: Optional[int] = None
    label: str = ""
    at: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class TimerInfo(BaseModel):
    """Read-only view of a pending timer."""

    id: int
    label: str
    delay_ms: float
    remaining_ms: float
    paused: bool


class _Timer:
    def __init__(self, timer_id: int, label: str, callback: Callable[[], Any], delay_ms: float, due_at: float):
        self.id = timer_id
        self.label = label
        self.callback = callback
        self.delay_ms = delay_ms
        self.due_at = due_at
        self.remaining_ms = delay_ms
        self.handle: Optional[asyncio.TimerHandle] = None


class PhaseTimerManager:
    """Schedules, pauses, resumes and cancels phase transition timers."""

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        history_limit: int = 200,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._loop = loop
        self._manual_now = 0.0
        if clock is not None:
            self._clock = clock
        elif loop is not None:
            self._clock = lambda: loop.time() * 1000
        else:
            self._clock = lambda: self._manual_now
        self._timers: dict[int, _Timer] = {}
        self._next_id = 0
        self._paused = False
        self._history: deque[TimerEvent] = deque(maxlen=history_limit)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _record(self, kind: TimerEventKind, timer: Optional[_Timer] = None, **metadata: Any) -> None:
        self._history.append(
            TimerEvent(
                kind=kind,
                timer_id=timer.id if timer else None,
                label=timer.label if timer else "",
                at=self._clock(),
                metadata=metadata,
            )
        )

    def history(self) -> list[TimerEvent]:
        """Timer events, oldest first."""
        return [event.model_copy(deep=True) for event in self._history]

    def reset_history(self) -> None:
        self._history.clear()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _arm(self, timer: _Timer) -> None:
        timer.due_at = self._clock() + timer.remaining_ms
        if self._loop is not None:
            timer.handle = self._loop.call_later(timer.remaining_ms / 1000, self._fire, timer.id)

    def _fire(self, timer_id: int) -> None:
        timer = self._timers.pop(timer_id, None)
        if timer is None:
            return
        self._record(TimerEventKind.TRIGGERED, timer)
        logger.debug("Timer %d (%s) fired", timer.id, timer.label)
        timer.callback()

    def schedule(self, callback: Callable[[], Any], delay_ms: float, label: str = "") -> int:
        """Schedule ``callback`` after ``delay_ms``; returns the timer id."""
        self._next_id += 1
        delay_ms = max(float(delay_ms), 0.0)
        timer = _Timer(self._next_id, label, callback, delay_ms, self._clock() + delay_ms)
        self._timers[timer.id] = timer
        if not self._paused:
            self._arm(timer)
        self._record(TimerEventKind.SCHEDULED, timer, delay_ms=delay_ms)
        return timer.id

    def pause(self) -> bool:
        """Freeze every pending timer's remaining time."""
        if self._paused or not self._timers:
            return False
        now = self._clock()
        for timer in self._timers.values():
            timer.remaining_ms = max(timer.due_at - now, 0.0)
            if timer.handle is not None:
                timer.handle.cancel()
                timer.handle = None
        self._paused = True
        self._record(TimerEventKind.PAUSED, count=len(self._timers))
        return True

    def resume(self) -> bool:
        """Reschedule paused timers with their frozen remainder."""
        if not self._paused:
            return False
        self._paused = False
        for timer in self._timers.values():
            self._arm(timer)
        self._record(TimerEventKind.RESUMED, count=len(self._timers))
        return True

    def is_paused(self) -> bool:
        return self._paused

    @property
    def manual(self) -> bool:
        """True when timers only fire through advance() or flush()."""
        return self._loop is None

    def cancel(self, timer_id: int) -> bool:
        """Remove a timer without firing it."""
        timer = self._timers.pop(timer_id, None)
        if timer is None:
            return False
        if timer.handle is not None:
            timer.handle.cancel()
        self._record(TimerEventKind.CANCELLED, timer)
        return True

    def cancel_all(self) -> int:
        """Remove every pending timer; also clears the paused flag."""
        count = len(self._timers)
        for timer in self._timers.values():
            if timer.handle is not None:
                timer.handle.cancel()
        self._timers.clear()
        self._paused = False
        if count:
            self._record(TimerEventKind.CANCELLED_ALL, count=count)
        return count

    def list(self) -> list[TimerInfo]:
        now = self._clock()
        return [
            TimerInfo(
                id=timer.id,
                label=timer.label,
                delay_ms=timer.delay_ms,
                remaining_ms=timer.remaining_ms if self._paused else max(timer.due_at - now, 0.0),
                paused=self._paused,
            )
            for timer in sorted(self._timers.values(), key=lambda t: t.id)
        ]

    def pending(self) -> int:
        return len(self._timers)

    # ------------------------------------------------------------------
    # Manual mode
    # ------------------------------------------------------------------

    def advance(self, ms: float) -> int:
        """Move the manual clock forward, firing due timers in order.

        Returns the number of timers fired. Callbacks may schedule further
        timers; those fire too if they fall due within the window.
        """
        if self._loop is not None:
            raise RuntimeError("advance() is only available without an event loop")
        target = self._manual_now + max(ms, 0.0)
        fired = 0
        while not self._paused:
            due = [t for t in self._timers.values() if t.due_at <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due_at, t.id))
            self._manual_now = max(self._manual_now, timer.due_at)
            self._fire(timer.id)
            fired += 1
        self._manual_now = target
        return fired

    def flush(self, max_fires: int = 100) -> int:
        """Fire pending timers in due order until none are left (manual mode)."""
        fired = 0
        while self._timers and not self._paused and fired < max_fires:
            timer = min(self._timers.values(), key=lambda t: (t.due_at, t.id))
            self._manual_now = max(self._manual_now, timer.due_at)
            fired += self.advance(0)
        return fired
