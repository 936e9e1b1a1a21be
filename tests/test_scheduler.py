"""Tests for the prayer scheduler."""

import datetime
import unittest
from unittest.mock import MagicMock

import pytz

from companion.scheduler import (
    PRAYER_ORDER,
    InvalidScheduleError,
    Prayer,
    PrayerDay,
    PrayerScheduler,
    PrayerSlot,
)

TZ = pytz.timezone("Asia/Jakarta")
DAY = datetime.date(2025, 3, 1)
NEXT_DAY = DAY + datetime.timedelta(days=1)

TIMINGS = {
    Prayer.FAJR: "04:30",
    Prayer.DHUHR: "12:00",
    Prayer.ASR: "15:30",
    Prayer.MAGHRIB: "18:15",
    Prayer.ISHA: "19:30",
}
NEXT_TIMINGS = {
    Prayer.FAJR: "04:29",
    Prayer.DHUHR: "12:00",
    Prayer.ASR: "15:30",
    Prayer.MAGHRIB: "18:15",
    Prayer.ISHA: "19:31",
}


def at(date, hhmm, seconds=0):
    hour, minute = map(int, hhmm.split(":"))
    return TZ.localize(datetime.datetime.combine(date, datetime.time(hour, minute, seconds)))


def make_day(date, timings):
    return PrayerDay.from_times(date, {p: at(date, t) for p, t in timings.items()})


class TestPrayerDay(unittest.TestCase):
    def test_from_times_orders_slots(self):
        day = make_day(DAY, TIMINGS)
        self.assertEqual(tuple(s.prayer for s in day.slots), PRAYER_ORDER)
        self.assertEqual(day.fajr.instant, at(DAY, "04:30"))
        self.assertEqual(day.isha.instant, at(DAY, "19:30"))
        self.assertEqual(day.slot(Prayer.ASR).instant, at(DAY, "15:30"))

    def test_too_few_slots(self):
        slots = [PrayerSlot(p, at(DAY, TIMINGS[p])) for p in PRAYER_ORDER[:4]]
        with self.assertRaises(InvalidScheduleError):
            PrayerDay(DAY, slots)

    def test_names_out_of_order(self):
        order = [Prayer.DHUHR, Prayer.FAJR, Prayer.ASR, Prayer.MAGHRIB, Prayer.ISHA]
        slots = [PrayerSlot(p, at(DAY, "0%d:00" % i)) for i, p in enumerate(order, start=1)]
        with self.assertRaises(InvalidScheduleError):
            PrayerDay(DAY, slots)

    def test_times_not_increasing(self):
        timings = dict(TIMINGS)
        timings[Prayer.ASR] = "11:00"
        with self.assertRaises(InvalidScheduleError):
            make_day(DAY, timings)

    def test_equal_times_rejected(self):
        timings = dict(TIMINGS)
        timings[Prayer.MAGHRIB] = timings[Prayer.ASR]
        with self.assertRaises(InvalidScheduleError):
            make_day(DAY, timings)

    def test_missing_prayer(self):
        times = {p: at(DAY, t) for p, t in TIMINGS.items() if p is not Prayer.ISHA}
        with self.assertRaises(InvalidScheduleError):
            PrayerDay.from_times(DAY, times)

    def test_error_is_value_error(self):
        self.assertTrue(issubclass(InvalidScheduleError, ValueError))


class TestEvaluate(unittest.TestCase):
    def setUp(self):
        self.today = make_day(DAY, TIMINGS)
        self.tomorrow = make_day(NEXT_DAY, NEXT_TIMINGS)
        self.scheduler = PrayerScheduler(self.today, self.tomorrow)

    def test_before_fajr_has_no_active_prayer(self):
        state = self.scheduler.evaluate(at(DAY, "03:00"))
        self.assertIsNone(state.active)
        self.assertIs(state.next.prayer, Prayer.FAJR)
        self.assertFalse(state.next_is_tomorrow)
        self.assertEqual(state.time_remaining, "01:30:00")

    def test_exactly_at_prayer_is_active(self):
        state = self.scheduler.evaluate(at(DAY, "04:30"))
        self.assertIs(state.active.prayer, Prayer.FAJR)
        self.assertIs(state.next.prayer, Prayer.DHUHR)

    def test_midday(self):
        state = self.scheduler.evaluate(at(DAY, "12:05"))
        self.assertIs(state.active.prayer, Prayer.DHUHR)
        self.assertIs(state.next.prayer, Prayer.ASR)
        self.assertEqual(state.next_label, "Asr")
        self.assertEqual(state.time_remaining, "03:25:00")

    def test_after_isha_rolls_over(self):
        state = self.scheduler.evaluate(at(DAY, "21:00"))
        self.assertIs(state.active.prayer, Prayer.ISHA)
        self.assertIs(state.next, self.tomorrow.fajr)
        self.assertTrue(state.next_is_tomorrow)
        self.assertEqual(state.next_label, "Fajr (tomorrow)")
        self.assertEqual(state.time_remaining, "07:29:00")

    def test_rollover_late_isha(self):
        timings = dict(TIMINGS)
        timings[Prayer.ISHA] = "23:50"
        scheduler = PrayerScheduler(make_day(DAY, timings), self.tomorrow)
        state = scheduler.evaluate(at(DAY, "23:55"))
        self.assertIs(state.active.prayer, Prayer.ISHA)
        self.assertIs(state.next.prayer, Prayer.FAJR)
        self.assertTrue(state.next_is_tomorrow)

    def test_countdown_format(self):
        now = at(DAY, "12:00") - datetime.timedelta(seconds=3661)
        self.assertEqual(self.scheduler.evaluate(now).time_remaining, "01:01:01")

    def test_countdown_floors_fractional_seconds(self):
        now = at(DAY, "12:00") - datetime.timedelta(seconds=3661, milliseconds=400)
        self.assertEqual(self.scheduler.evaluate(now).seconds_remaining, 3661)

    def test_stale_day_clamps_countdown(self):
        state = self.scheduler.evaluate(at(NEXT_DAY, "05:00"))
        self.assertTrue(state.next_is_tomorrow)
        self.assertEqual(state.time_remaining, "00:00:00")
        self.assertIsNone(state.active)

    def test_idempotent(self):
        now = at(DAY, "16:00")
        self.assertEqual(self.scheduler.evaluate(now), self.scheduler.evaluate(now))

    def test_state_carries_now(self):
        now = at(DAY, "16:00")
        self.assertEqual(self.scheduler.evaluate(now).now, now)

    def test_sweep_ordering_and_monotonic_next(self):
        now = self.today.fajr.instant + datetime.timedelta(seconds=1)
        end = self.tomorrow.fajr.instant
        candidates = list(self.today.slots) + [self.tomorrow.fajr]
        last_index = -1
        while now < end:
            state = self.scheduler.evaluate(now)
            self.assertIn(state.next, candidates)
            index = candidates.index(state.next)
            self.assertGreaterEqual(index, last_index)
            last_index = index
            if state.active is not None:
                self.assertLess(state.active.instant, state.next.instant)
            now += datetime.timedelta(minutes=7)
        self.assertEqual(last_index, len(candidates) - 1)


class TestIsActive(unittest.TestCase):
    def setUp(self):
        self.scheduler = PrayerScheduler(make_day(DAY, TIMINGS), make_day(NEXT_DAY, NEXT_TIMINGS))

    def test_rows_agree_with_active_prayer(self):
        for hhmm in ("00:10", "04:30", "09:00", "12:00", "15:29", "18:15", "19:30", "23:59"):
            now = at(DAY, hhmm)
            state = self.scheduler.evaluate(now)
            active_rows = {p for p in PRAYER_ORDER if self.scheduler.is_active(p, now)}
            expected = {state.active.prayer} if state.active else set()
            self.assertEqual(active_rows, expected, hhmm)

    def test_isha_active_until_tomorrow_fajr(self):
        self.assertTrue(self.scheduler.is_active(Prayer.ISHA, at(NEXT_DAY, "04:28")))
        self.assertFalse(self.scheduler.is_active(Prayer.ISHA, at(NEXT_DAY, "04:29")))

    def test_nothing_active_before_fajr(self):
        now = at(DAY, "02:00")
        self.assertFalse(any(self.scheduler.is_active(p, now) for p in PRAYER_ORDER))


class TestTomorrow(unittest.TestCase):
    def setUp(self):
        self.today = make_day(DAY, TIMINGS)
        self.tomorrow = make_day(NEXT_DAY, NEXT_TIMINGS)

    def test_loader_not_called_during_the_day(self):
        loader = MagicMock(return_value=self.tomorrow)
        scheduler = PrayerScheduler(self.today, loader)
        scheduler.evaluate(at(DAY, "03:00"))
        scheduler.evaluate(at(DAY, "16:00"))
        loader.assert_not_called()

    def test_loader_called_once_after_isha(self):
        loader = MagicMock(return_value=self.tomorrow)
        scheduler = PrayerScheduler(self.today, loader)
        first = scheduler.evaluate(at(DAY, "20:00"))
        second = scheduler.evaluate(at(DAY, "22:00"))
        loader.assert_called_once_with()
        self.assertIs(first.next, self.tomorrow.fajr)
        self.assertIs(second.next, self.tomorrow.fajr)

    def test_lazy_and_eager_agree(self):
        eager = PrayerScheduler(self.today, self.tomorrow)
        lazy = PrayerScheduler(self.today, lambda: self.tomorrow)
        for hhmm in ("03:00", "12:00", "19:30", "23:00"):
            now = at(DAY, hhmm)
            self.assertEqual(eager.evaluate(now), lazy.evaluate(now))

    def test_tomorrow_must_follow_today(self):
        with self.assertRaises(InvalidScheduleError):
            PrayerScheduler(self.today, self.today)

    def test_lazy_tomorrow_checked_when_loaded(self):
        scheduler = PrayerScheduler(self.today, lambda: self.today)
        scheduler.evaluate(at(DAY, "12:00"))
        with self.assertRaises(InvalidScheduleError):
            scheduler.evaluate(at(DAY, "20:00"))

    def test_loader_returning_wrong_type(self):
        scheduler = PrayerScheduler(self.today, lambda: {"Fajr": "04:29"})
        with self.assertRaises(InvalidScheduleError):
            scheduler.evaluate(at(DAY, "20:00"))

    def test_today_must_be_prayer_day(self):
        with self.assertRaises(InvalidScheduleError):
            PrayerScheduler(list(self.today.slots), self.tomorrow)

    def test_tomorrow_must_be_day_or_callable(self):
        with self.assertRaises(InvalidScheduleError):
            PrayerScheduler(self.today, None)


class TestPrayerNames(unittest.TestCase):
    def test_display_names(self):
        self.assertEqual(Prayer.FAJR.display_name, "Subuh / Fajr")
        self.assertEqual(Prayer.MAGHRIB.display_name, "Maghrib")


if __name__ == "__main__":
    unittest.main()
