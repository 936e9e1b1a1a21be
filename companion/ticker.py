"""Once-per-second re-evaluation of a PrayerScheduler on a Tk event loop."""

import datetime
import logging
from typing import Callable, Optional

from companion.scheduler import InvalidScheduleError, PrayerScheduler, SchedulerState

logger = logging.getLogger(__name__)

REFRESH_MS = 1000
RETRY_MS = 30000
RELOAD_RETRY_SECONDS = 60


class CountdownTicker:
    """
    Drives ``scheduler.evaluate(now)`` from ``widget.after``.

    ``widget`` is anything with Tk's ``after(ms, func)`` / ``after_cancel(id)``
    pair. At most one callback is pending at any time.

    An InvalidScheduleError stops the ticker. Any other failure while
    evaluating (typically tomorrow's times failing to download) is reported
    and retried after ``retry_ms``.
    """

    def __init__(
        self,
        widget,
        scheduler: PrayerScheduler,
        on_state: Callable[[SchedulerState], None],
        clock: Callable[[], datetime.datetime],
        on_error: Optional[Callable[[Exception], None]] = None,
        interval_ms: int = REFRESH_MS,
        retry_ms: int = RETRY_MS,
    ):
        self.widget = widget
        self.scheduler = scheduler
        self.on_state = on_state
        self.on_error = on_error
        self.clock = clock
        self.interval_ms = interval_ms
        self.retry_ms = retry_ms
        self._after_id = None
        self._generation = 0
        self._last_now: Optional[datetime.datetime] = None

    @property
    def running(self) -> bool:
        return self._after_id is not None

    def start(self) -> None:
        """Evaluate immediately, then every interval until stopped."""
        self.stop()
        self._tick()

    def stop(self) -> None:
        self._generation += 1
        if self._after_id is not None:
            self.widget.after_cancel(self._after_id)
            self._after_id = None

    def replace(self, scheduler: PrayerScheduler) -> None:
        """Swap in a new prayer day (e.g. after a location change) and restart."""
        self.stop()
        self.scheduler = scheduler
        self._last_now = None
        self.start()

    def _report(self, exc: Exception) -> None:
        if self.on_error:
            self.on_error(exc)

    def _schedule(self, generation: int, delay_ms: int) -> None:
        # a callback may have stopped or replaced this ticker
        if generation == self._generation:
            self._after_id = self.widget.after(delay_ms, self._tick)

    def _tick(self) -> None:
        self._after_id = None
        generation = self._generation
        now = self.clock()
        if self._last_now is not None and now < self._last_now:
            logger.debug("Clock went backwards (%s < %s), holding previous instant", now, self._last_now)
            now = self._last_now
        self._last_now = now

        try:
            state = self.scheduler.evaluate(now)
        except InvalidScheduleError as exc:
            logger.error("Stopping countdown: %s", exc)
            self._report(exc)
            return
        except Exception as exc:
            logger.exception("Could not evaluate prayer schedule, retrying in %d ms", self.retry_ms)
            self._report(exc)
            self._schedule(generation, self.retry_ms)
            return

        try:
            self.on_state(state)
        except Exception as exc:
            logger.exception("Countdown display update failed")
            self._report(exc)
        self._schedule(generation, self.interval_ms)


class DayRollover:
    """
    Decides when a finished prayer day has to be reloaded.

    A day is finished once its scheduler reports tomorrow's Fajr with no
    time left. One reload is requested per finished day; if it fails,
    another is requested ``retry_seconds`` after the failure.
    """

    def __init__(self, retry_seconds: int = RELOAD_RETRY_SECONDS):
        self.retry_seconds = retry_seconds
        self._pending_day: Optional[datetime.date] = None
        self._failed_at: Optional[datetime.datetime] = None

    @staticmethod
    def day_finished(state: SchedulerState) -> bool:
        return state.next_is_tomorrow and state.seconds_remaining == 0

    def should_reload(self, day: datetime.date, state: SchedulerState) -> bool:
        if not self.day_finished(state):
            return False
        if self._pending_day != day:
            self._pending_day = day
            self._failed_at = None
            return True
        if self._failed_at is None:
            # reload still in flight
            return False
        if (state.now - self._failed_at).total_seconds() < self.retry_seconds:
            return False
        self._failed_at = None
        return True

    def reload_failed(self, now: datetime.datetime) -> None:
        if self._pending_day is not None:
            self._failed_at = now

    def reload_succeeded(self) -> None:
        self._pending_day = None
        self._failed_at = None
