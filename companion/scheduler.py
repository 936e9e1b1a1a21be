"""
Active / next prayer classification and countdown.

A PrayerScheduler holds today's five prayer instants (plus tomorrow's,
loaded on demand) and answers, for any instant ``now``, which prayer is
active, which one comes next, and how long until it starts.
"""

import datetime
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Union

from companion.timefmt import format_countdown, seconds_until

logger = logging.getLogger(__name__)


class Prayer(enum.Enum):
    FAJR = "Fajr"
    DHUHR = "Dhuhr"
    ASR = "Asr"
    MAGHRIB = "Maghrib"
    ISHA = "Isha"

    @property
    def display_name(self) -> str:
        return PRAYER_DISPLAY[self]


PRAYER_ORDER = tuple(Prayer)

PRAYER_DISPLAY = {
    Prayer.FAJR: "Subuh / Fajr",
    Prayer.DHUHR: "Dzuhur / Dhuhr",
    Prayer.ASR: "Ashar / Asr",
    Prayer.MAGHRIB: "Maghrib",
    Prayer.ISHA: "Isya / Isha",
}


class InvalidScheduleError(ValueError):
    """A prayer day is incomplete, out of order, or does not follow the previous day."""


@dataclass(frozen=True)
class PrayerSlot:
    prayer: Prayer
    instant: datetime.datetime


@dataclass(frozen=True)
class PrayerDay:
    """The five prayer slots of one calendar date at one location."""

    date: datetime.date
    slots: tuple

    def __post_init__(self):
        slots = tuple(self.slots)
        object.__setattr__(self, "slots", slots)
        if len(slots) != len(PRAYER_ORDER):
            raise InvalidScheduleError(
                f"Expected {len(PRAYER_ORDER)} prayer slots for {self.date}, got {len(slots)}"
            )
        names = tuple(slot.prayer for slot in slots)
        if names != PRAYER_ORDER:
            raise InvalidScheduleError(
                f"Prayer slots for {self.date} are not in canonical order: "
                + ", ".join(p.value for p in names)
            )
        for earlier, later in zip(slots, slots[1:]):
            if not earlier.instant < later.instant:
                raise InvalidScheduleError(
                    f"{later.prayer.value} ({later.instant}) does not come after "
                    f"{earlier.prayer.value} ({earlier.instant}) on {self.date}"
                )

    @classmethod
    def from_times(cls, date: datetime.date, times: Mapping[Prayer, datetime.datetime]) -> "PrayerDay":
        """Build a day from a {Prayer: datetime} mapping."""
        missing = [p.value for p in PRAYER_ORDER if p not in times]
        if missing:
            raise InvalidScheduleError(f"Missing prayer times for {date}: {', '.join(missing)}")
        return cls(date, tuple(PrayerSlot(p, times[p]) for p in PRAYER_ORDER))

    def slot(self, prayer: Prayer) -> PrayerSlot:
        return self.slots[PRAYER_ORDER.index(prayer)]

    @property
    def fajr(self) -> PrayerSlot:
        return self.slots[0]

    @property
    def isha(self) -> PrayerSlot:
        return self.slots[-1]


@dataclass(frozen=True)
class SchedulerState:
    now: datetime.datetime
    active: Optional[PrayerSlot]
    next: PrayerSlot
    next_is_tomorrow: bool
    seconds_remaining: int

    @property
    def time_remaining(self) -> str:
        return format_countdown(self.seconds_remaining)

    @property
    def next_label(self) -> str:
        name = self.next.prayer.value
        return f"{name} (tomorrow)" if self.next_is_tomorrow else name


TomorrowSource = Union[PrayerDay, Callable[[], PrayerDay]]


class PrayerScheduler:
    """
    Pure classifier over (today, tomorrow, now).

    ``tomorrow`` may be a PrayerDay or a zero-argument callable returning
    one. The callable runs at most once, the first time a question can
    only be answered with tomorrow's Fajr.
    """

    def __init__(self, today: PrayerDay, tomorrow: TomorrowSource):
        if not isinstance(today, PrayerDay):
            raise InvalidScheduleError(f"Expected a PrayerDay, got {type(today).__name__}")
        self.today = today
        self._tomorrow: Optional[PrayerDay] = None
        self._load_tomorrow: Optional[Callable[[], PrayerDay]] = None
        if isinstance(tomorrow, PrayerDay):
            self._tomorrow = self._check_tomorrow(tomorrow)
        elif callable(tomorrow):
            self._load_tomorrow = tomorrow
        else:
            raise InvalidScheduleError(
                f"tomorrow must be a PrayerDay or a callable, got {type(tomorrow).__name__}"
            )

    def _check_tomorrow(self, day) -> PrayerDay:
        if not isinstance(day, PrayerDay):
            raise InvalidScheduleError(f"Expected a PrayerDay for tomorrow, got {type(day).__name__}")
        if not day.fajr.instant > self.today.isha.instant:
            raise InvalidScheduleError(
                f"Tomorrow's Fajr ({day.fajr.instant}) is not after today's Isha "
                f"({self.today.isha.instant})"
            )
        return day

    @property
    def tomorrow(self) -> PrayerDay:
        if self._tomorrow is None:
            logger.debug("Loading prayer times following %s", self.today.date)
            self._tomorrow = self._check_tomorrow(self._load_tomorrow())
            self._load_tomorrow = None
        return self._tomorrow

    def _next_after(self, index: int) -> PrayerSlot:
        if index + 1 < len(self.today.slots):
            return self.today.slots[index + 1]
        return self.tomorrow.fajr

    def is_active(self, prayer: Prayer, now: datetime.datetime) -> bool:
        """True iff prayer's slot started at or before now and the following slot has not."""
        index = PRAYER_ORDER.index(prayer)
        if self.today.slots[index].instant > now:
            return False
        return now < self._next_after(index).instant

    def active_prayer(self, now: datetime.datetime) -> Optional[PrayerSlot]:
        """Today's active slot, or None before today's Fajr."""
        for slot in self.today.slots:
            if self.is_active(slot.prayer, now):
                return slot
        return None

    def evaluate(self, now: datetime.datetime) -> SchedulerState:
        upcoming = next((s for s in self.today.slots if s.instant > now), None)
        if upcoming is not None:
            next_slot, next_is_tomorrow = upcoming, False
        else:
            next_slot, next_is_tomorrow = self.tomorrow.fajr, True
        return SchedulerState(
            now=now,
            active=self.active_prayer(now),
            next=next_slot,
            next_is_tomorrow=next_is_tomorrow,
            seconds_remaining=max(0, seconds_until(next_slot.instant, now)),
        )
