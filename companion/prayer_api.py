"""Fetch prayer times and Hijri date from the Aladhan API."""

import datetime
import logging

import requests

from companion.scheduler import PRAYER_ORDER, Prayer, PrayerDay

logger = logging.getLogger(__name__)

ALADHAN_BASE = "https://api.aladhan.com/v1"

DEFAULT_METHOD = 3  # Muslim World League


def _get_data(url: str, params: dict = None, timeout: int = 10) -> dict:
    resp = requests.get(url, params=params, timeout=timeout)
    resp.raise_for_status()
    body = resp.json()
    if body.get("code") != 200:
        raise ValueError(f"Aladhan API error: {body.get('status')}")
    return body["data"]


def _hijri(hijri_data: dict) -> dict:
    return {
        "day": hijri_data["day"],
        "month_name": hijri_data["month"]["en"],
        "month_ar": hijri_data["month"]["ar"],
        "year": hijri_data["year"],
    }


def fetch_prayer_times(lat: float, lon: float, date: datetime.date = None, method: int = DEFAULT_METHOD) -> dict:
    """
    Fetch the five prayer times and the Hijri date for given coordinates and date.

    Returns a dict with:
        timings: {Prayer: "HH:MM"}
        hijri: {day, month_name, month_ar, year}
        gregorian: {date_str, weekday}
    Raises requests.RequestException or ValueError on failure.
    """
    if date is None:
        date = datetime.date.today()
    date_str = date.strftime("%d-%m-%Y")
    logger.info("Fetching prayer times for %s at (%.4f, %.4f), method %s", date_str, lat, lon, method)
    data = _get_data(
        f"{ALADHAN_BASE}/timings/{date_str}",
        params={"latitude": lat, "longitude": lon, "method": method},
    )

    raw_timings = data["timings"]
    missing = [p.value for p in PRAYER_ORDER if p.value not in raw_timings]
    if missing:
        raise ValueError(f"Aladhan response is missing {', '.join(missing)}")
    # "04:30 (WIB)" -> "04:30"
    timings = {p: raw_timings[p.value][:5] for p in PRAYER_ORDER}

    greg_data = data["date"]["gregorian"]
    gregorian = {
        "date_str": greg_data.get("date", date_str),
        "weekday": greg_data.get("weekday", {}).get("en", ""),
    }

    return {"timings": timings, "hijri": _hijri(data["date"]["hijri"]), "gregorian": gregorian}


def time_str_to_dt(time_str: str, date: datetime.date, tz=None) -> datetime.datetime:
    """
    Place an 'HH:MM' string on the given date.
    With a pytz zone the result is localized; otherwise it is naive.
    """
    hour, minute = map(int, time_str.split(":"))
    naive = datetime.datetime.combine(date, datetime.time(hour, minute))
    return tz.localize(naive) if tz else naive


def build_prayer_day(timings: dict, date: datetime.date, tz=None) -> PrayerDay:
    """Turn {Prayer: "HH:MM"} into a validated PrayerDay (InvalidScheduleError if malformed)."""
    times = {Prayer(p): time_str_to_dt(t, date, tz) for p, t in timings.items()}
    return PrayerDay.from_times(date, times)


def fetch_prayer_day(lat: float, lon: float, date: datetime.date, tz=None, method: int = DEFAULT_METHOD) -> PrayerDay:
    result = fetch_prayer_times(lat, lon, date, method)
    return build_prayer_day(result["timings"], date, tz)


def tomorrow_loader(lat: float, lon: float, today: datetime.date, tz=None, method: int = DEFAULT_METHOD):
    """Callable that fetches the day after ``today`` when first invoked."""
    tomorrow = today + datetime.timedelta(days=1)

    def load() -> PrayerDay:
        return fetch_prayer_day(lat, lon, tomorrow, tz, method)

    return load
