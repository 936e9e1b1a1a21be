"""Desktop notifications for upcoming prayers."""

import logging
import threading

from plyer import notification as plyer_notification

from companion.scheduler import PrayerSlot

logger = logging.getLogger(__name__)

APP_NAME = "Prayer Companion"
APP_ICON = ""  # Path to icon file; empty = default


def _send_plyer(title: str, message: str, timeout: int = 10) -> None:
    """Send a desktop notification via plyer (cross-platform)."""
    kwargs = dict(
        app_name=APP_NAME,
        title=title,
        message=message,
        timeout=timeout,
    )
    if APP_ICON:
        kwargs["app_icon"] = APP_ICON
    try:
        plyer_notification.notify(**kwargs)
    except Exception:
        # no notification backend on this desktop; the in-app banner still shows
        logger.warning("Desktop notification failed: %s", title, exc_info=True)


def notify_reminder(prayer_display_name: str, minutes: int, callback=None) -> None:
    """
    Send a desktop notification N minutes before prayer time.
    Optionally calls callback(title, message).
    """
    title = f"{prayer_display_name} in {minutes} minutes"
    message = f"{prayer_display_name} prayer starts in {minutes} minutes. Prepare for prayer."
    _send_plyer(title, message, timeout=15)
    if callback:
        callback(title, message)


def notify_prayer_time(prayer_display_name: str, callback=None) -> None:
    title = f"{prayer_display_name}: time to pray"
    message = f"It is now time for {prayer_display_name} prayer."
    _send_plyer(title, message, timeout=30)
    if callback:
        callback(title, message)


def schedule_reminders(
    slot: PrayerSlot,
    seconds_until_prayer: int,
    lead_minutes=(10, 5),
    gui_callback=None,
) -> list:
    """
    Start timers for each lead time still ahead of the prayer, plus one
    at the prayer itself.

    Returns the started Timer objects so they can be cancelled.
    """
    timers = []
    display_name = slot.prayer.display_name

    for remind_minutes in lead_minutes:
        delay = seconds_until_prayer - remind_minutes * 60
        if delay > 0:
            t = threading.Timer(
                delay,
                notify_reminder,
                args=(display_name, remind_minutes, gui_callback),
            )
            t.daemon = True
            t.start()
            timers.append(t)

    if seconds_until_prayer > 0:
        t = threading.Timer(
            seconds_until_prayer,
            notify_prayer_time,
            args=(display_name, gui_callback),
        )
        t.daemon = True
        t.start()
        timers.append(t)

    if timers:
        logger.debug("Scheduled %d notification(s) for %s", len(timers), slot.prayer.value)
    return timers
