#!/usr/bin/env python3
"""
Prayer Companion Desktop Widget
Islamic pixel-art themed always-on-top window showing:
  - Current location and date (Gregorian + Hijri)
  - Daily prayer times with the active prayer highlighted
  - Countdown to next prayer, rolling over to tomorrow's Fajr after Isha
  - Qibla bearing, distance and a compass arrow
  - Desktop reminders before each prayer
"""

import datetime
import logging
import math
import threading
import tkinter as tk
from tkinter import messagebox

import pytz

from companion.heading import AbsoluteHeading, HeadingFeed
from companion.location import (
    clear_manual_location,
    get_location,
    load_manual_location,
    location_point,
    reverse_geocode,
    save_manual_location,
)
from companion.notifier import schedule_reminders
from companion.prayer_api import build_prayer_day, fetch_prayer_times, tomorrow_loader
from companion.qibla import CompassState, QiblaCompass
from companion.scheduler import PRAYER_ORDER, InvalidScheduleError, Prayer, PrayerScheduler
from companion.settings import load_settings
from companion.ticker import CountdownTicker, DayRollover
from companion.timefmt import seconds_until

logger = logging.getLogger("companion_app")

# ──────────────────────────────────────────────────────────────────────────────
# Theme constants — pixel-art Islamic palette
# ──────────────────────────────────────────────────────────────────────────────
BG_DARK = "#0d1117"
BG_CARD = "#161b22"
BG_HIGHLIGHT = "#1a3a2a"
BORDER_COLOR = "#2ea043"
ACCENT_GOLD = "#f0c040"
ACCENT_GREEN = "#3fb950"
TEXT_WHITE = "#e6edf3"
TEXT_DIM = "#8b949e"
TEXT_RED = "#ff6b6b"
TEXT_FAJR = "#7ec8e3"
TEXT_MAGHRIB = "#ffa07a"

FONT_PIXEL = ("Courier", 10, "bold")
FONT_PIXEL_SM = ("Courier", 8)
FONT_PIXEL_LG = ("Courier", 14, "bold")
FONT_TITLE = ("Courier", 12, "bold")
FONT_CLOCK = ("Courier", 22, "bold")

WINDOW_W = 480
WINDOW_H = 780

COMPASS_SIZE = 180
ARROW_LEN = 70

PIXEL_BORDER_H = "▀" * 52
DIVIDER = "◇ ─────────────────────────── ◇"

ROW_COLORS = {
    Prayer.FAJR: ("#0a1a2a", TEXT_FAJR),
    Prayer.MAGHRIB: ("#1a0a0a", TEXT_MAGHRIB),
}


# ──────────────────────────────────────────────────────────────────────────────
# Main App
# ──────────────────────────────────────────────────────────────────────────────
class CompanionApp:
    def __init__(self, root: tk.Tk, settings: dict):
        self.root = root
        self.settings = settings
        self._drag_x = 0
        self._drag_y = 0

        self.location = {}
        self.place_name = ""
        self.tz = None
        self.hijri = {}
        self.scheduler = None
        self.ticker = None
        self.compass = None
        self.heading_feed = None
        self.active_timers: list = []
        self._load_error = ""
        self.rollover = DayRollover()

        self._setup_window()
        self._build_ui()
        self._start_data_load()

    # ──────────────────────────────────────────────────────────────────────
    # Window setup
    # ──────────────────────────────────────────────────────────────────────
    def _setup_window(self):
        root = self.root
        root.title("Prayer Companion")
        root.configure(bg=BG_DARK)
        root.resizable(False, False)
        root.overrideredirect(True)
        root.attributes("-topmost", True)

        screen_w = root.winfo_screenwidth()
        screen_h = root.winfo_screenheight()
        x = screen_w - WINDOW_W - 40
        y = max(0, (screen_h - WINDOW_H) // 2)
        root.geometry(f"{WINDOW_W}x{WINDOW_H}+{x}+{y}")

        root.bind("<ButtonPress-1>", self._on_drag_start)
        root.bind("<B1-Motion>", self._on_drag_motion)

    def _on_drag_start(self, event):
        self._drag_x = event.x_root - self.root.winfo_x()
        self._drag_y = event.y_root - self.root.winfo_y()

    def _on_drag_motion(self, event):
        # the heading dial needs its own drags
        if isinstance(event.widget, tk.Scale):
            return
        self.root.geometry(f"+{event.x_root - self._drag_x}+{event.y_root - self._drag_y}")

    # ──────────────────────────────────────────────────────────────────────
    # UI construction
    # ──────────────────────────────────────────────────────────────────────
    def _build_ui(self):
        outer = tk.Frame(self.root, bg=BORDER_COLOR, bd=0)
        outer.pack(fill=tk.BOTH, expand=True, padx=2, pady=2)
        inner = tk.Frame(outer, bg=BG_DARK, bd=0)
        inner.pack(fill=tk.BOTH, expand=True, padx=1, pady=1)

        # ── title bar ─────────────────────────────────────────────────────
        title_bar = tk.Frame(inner, bg=BG_CARD, height=32)
        title_bar.pack(fill=tk.X, side=tk.TOP)
        title_bar.pack_propagate(False)
        tk.Label(
            title_bar,
            text="  🕌  PRAYER COMPANION  ◆  القبلة  ",
            font=FONT_PIXEL,
            fg=ACCENT_GOLD,
            bg=BG_CARD,
        ).pack(side=tk.LEFT, padx=6)
        tk.Button(
            title_bar,
            text=" ✕ ",
            font=FONT_PIXEL_SM,
            fg=TEXT_RED,
            bg=BG_CARD,
            activebackground="#3a1a1a",
            bd=0,
            cursor="hand2",
            command=self._quit,
        ).pack(side=tk.RIGHT, padx=4, pady=4)

        tk.Label(inner, text=PIXEL_BORDER_H, font=("Courier", 6), fg=BORDER_COLOR, bg=BG_DARK).pack(fill=tk.X)

        # ── location + dates ─────────────────────────────────────────────
        loc_frame = tk.Frame(inner, bg=BG_DARK)
        loc_frame.pack(pady=(6, 0), fill=tk.X, padx=10)
        self.lbl_location = tk.Label(loc_frame, text="📍 Detecting location…", font=FONT_PIXEL, fg=TEXT_DIM, bg=BG_DARK)
        self.lbl_location.pack(side=tk.LEFT, expand=True)
        tk.Button(
            loc_frame,
            text="📍⟳",
            font=FONT_PIXEL_SM,
            fg=ACCENT_GREEN,
            bg=BG_DARK,
            activebackground=BG_HIGHLIGHT,
            bd=0,
            cursor="hand2",
            command=self._show_location_dialog,
        ).pack(side=tk.RIGHT, padx=4)

        self.lbl_date = tk.Label(inner, text="", font=FONT_PIXEL, fg=TEXT_WHITE, bg=BG_DARK)
        self.lbl_date.pack()
        self.lbl_hijri = tk.Label(inner, text="☪  Loading Hijri date…", font=FONT_PIXEL, fg=ACCENT_GOLD, bg=BG_DARK)
        self.lbl_hijri.pack()
        self.lbl_clock = tk.Label(inner, text="--:--:--", font=FONT_CLOCK, fg=ACCENT_GOLD, bg=BG_DARK, pady=4)
        self.lbl_clock.pack()

        tk.Label(inner, text=DIVIDER, font=("Courier", 9), fg=BORDER_COLOR, bg=BG_DARK).pack(pady=2)

        # ── prayer rows ───────────────────────────────────────────────────
        self.prayer_frame = tk.Frame(inner, bg=BG_DARK)
        self.prayer_frame.pack(fill=tk.X, padx=10, pady=4)
        self.prayer_rows: dict = {}
        self._build_prayer_rows()

        # ── next prayer countdown ─────────────────────────────────────────
        tk.Label(inner, text="NEXT PRAYER", font=FONT_PIXEL, fg=TEXT_DIM, bg=BG_DARK).pack()
        self.lbl_next_name = tk.Label(inner, text="—", font=FONT_PIXEL_LG, fg=ACCENT_GREEN, bg=BG_DARK)
        self.lbl_next_name.pack()
        self.lbl_countdown = tk.Label(inner, text="--:--:--", font=FONT_CLOCK, fg=ACCENT_GOLD, bg=BG_DARK)
        self.lbl_countdown.pack()

        tk.Label(inner, text=DIVIDER, font=("Courier", 9), fg=BORDER_COLOR, bg=BG_DARK).pack(pady=2)

        # ── qibla panel ───────────────────────────────────────────────────
        self._build_qibla_panel(inner)

        # ── notification banner (packed only when a notification fires) ──
        self.notif_frame = tk.Frame(inner, bg="#2d1b00", bd=1, relief=tk.RIDGE)
        self.lbl_notif_title = tk.Label(self.notif_frame, text="", font=FONT_PIXEL, fg=ACCENT_GOLD, bg="#2d1b00")
        self.lbl_notif_title.pack(pady=2)
        self.lbl_notif_msg = tk.Label(
            self.notif_frame, text="", font=FONT_PIXEL_SM, fg=TEXT_WHITE, bg="#2d1b00", wraplength=440,
        )
        self.lbl_notif_msg.pack(pady=(0, 4))

    def _build_prayer_rows(self):
        for prayer in PRAYER_ORDER:
            row_bg, fg = ROW_COLORS.get(prayer, (BG_CARD, TEXT_WHITE))
            row = tk.Frame(self.prayer_frame, bg=row_bg, pady=2)
            row.pack(fill=tk.X, pady=1)

            lbl_name = tk.Label(
                row, text=f"  {prayer.display_name}", font=FONT_PIXEL, fg=fg, bg=row_bg, anchor="w", width=26,
            )
            lbl_name.pack(side=tk.LEFT, padx=4)
            lbl_time = tk.Label(row, text="--:--", font=FONT_PIXEL_LG, fg=fg, bg=row_bg, anchor="e", width=8)
            lbl_time.pack(side=tk.RIGHT, padx=4)

            self.prayer_rows[prayer] = {
                "row": row,
                "lbl_name": lbl_name,
                "lbl_time": lbl_time,
                "bg": row_bg,
                "fg": fg,
            }

    def _build_qibla_panel(self, parent):
        panel = tk.Frame(parent, bg=BG_DARK)
        panel.pack(fill=tk.X, padx=10, pady=4)

        self.canvas = tk.Canvas(
            panel, width=COMPASS_SIZE, height=COMPASS_SIZE, bg=BG_DARK, highlightthickness=0,
        )
        self.canvas.pack(side=tk.LEFT, padx=6)
        c = COMPASS_SIZE / 2
        self.canvas.create_oval(10, 10, COMPASS_SIZE - 10, COMPASS_SIZE - 10, outline=BORDER_COLOR, width=2)
        self.canvas.create_text(c, 20, text="▲", fill=TEXT_DIM, font=FONT_PIXEL_SM)
        self._arrow = self.canvas.create_line(
            c, c, c, c - ARROW_LEN, fill=TEXT_DIM, width=4, arrow=tk.LAST, state=tk.HIDDEN,
        )
        self._compass_msg = self.canvas.create_text(
            c, c, text="Compass\nunavailable", fill=TEXT_DIM, font=FONT_PIXEL_SM, justify=tk.CENTER,
        )

        info = tk.Frame(panel, bg=BG_DARK)
        info.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        tk.Label(info, text="QIBLA", font=FONT_PIXEL, fg=TEXT_DIM, bg=BG_DARK).pack(anchor="w")
        self.lbl_bearing = tk.Label(info, text="Direction  --°", font=FONT_PIXEL, fg=ACCENT_GOLD, bg=BG_DARK)
        self.lbl_bearing.pack(anchor="w")
        self.lbl_distance = tk.Label(info, text="Distance   -- km", font=FONT_PIXEL, fg=ACCENT_GOLD, bg=BG_DARK)
        self.lbl_distance.pack(anchor="w")
        self.lbl_aligned = tk.Label(info, text="", font=FONT_PIXEL, fg=TEXT_DIM, bg=BG_DARK)
        self.lbl_aligned.pack(anchor="w", pady=(6, 0))

        tk.Label(info, text="Device heading", font=FONT_PIXEL_SM, fg=TEXT_DIM, bg=BG_DARK).pack(anchor="w", pady=(6, 0))
        self.heading_dial = tk.Scale(
            info,
            from_=0,
            to=359,
            orient=tk.HORIZONTAL,
            length=200,
            showvalue=True,
            fg=TEXT_WHITE,
            bg=BG_CARD,
            troughcolor=BG_DARK,
            highlightthickness=0,
            command=self._on_heading_dial,
            state=tk.DISABLED,
        )
        self.heading_dial.pack(anchor="w")

    # ──────────────────────────────────────────────────────────────────────
    # Data loading (runs in background thread)
    # ──────────────────────────────────────────────────────────────────────
    def _start_data_load(self):
        t = threading.Thread(target=self._load_data, daemon=True)
        t.start()

    def _load_data(self):
        """Fetch location + prayer times for today and tomorrow in a background thread."""
        try:
            location = load_manual_location() or get_location()
            try:
                tz = pytz.timezone(location["timezone"])
            except pytz.UnknownTimeZoneError:
                logger.warning("Unknown timezone %r, using UTC", location["timezone"])
                tz = pytz.utc

            point = location_point(location)
            method = self.settings["method"]
            today = datetime.datetime.now(tz).date()
            result = fetch_prayer_times(point.lat, point.lon, today, method)
            today_day = build_prayer_day(result["timings"], today, tz)
            # fetched here so the ticker never blocks on the network at Isha
            tomorrow_day = tomorrow_loader(point.lat, point.lon, today, tz, method)()
            scheduler = PrayerScheduler(today_day, tomorrow_day)
            place_name = reverse_geocode(point)
        except Exception as exc:
            logger.exception("Could not load prayer data")
            self._load_error = str(exc)
            self.root.after(0, self._on_data_error)
            return

        def apply():
            self.location = location
            self.tz = tz
            self.hijri = result["hijri"]
            self.place_name = place_name
            self._on_data_loaded(point, scheduler)

        self.root.after(0, apply)

    def _on_data_loaded(self, point, scheduler: PrayerScheduler):
        """Called in main thread once data is ready."""
        loc = self.location
        self.lbl_location.config(text=f"📍 {self.place_name}, {loc['country']}", fg=ACCENT_GREEN)
        hijri = self.hijri
        self.lbl_hijri.config(text=f"☪  {hijri['day']} {hijri['month_name']} {hijri['year']} H")

        for slot in scheduler.today.slots:
            self.prayer_rows[slot.prayer]["lbl_time"].config(text=slot.instant.strftime("%H:%M"))

        self.scheduler = scheduler
        self.rollover.reload_succeeded()
        if self.ticker is None:
            self.ticker = CountdownTicker(
                self.root,
                scheduler,
                on_state=self._on_state,
                clock=lambda: datetime.datetime.now(self.tz or pytz.utc),
                on_error=self._on_schedule_error,
            )
            self.ticker.start()
        else:
            self.ticker.replace(scheduler)

        self._setup_compass(point)
        self._schedule_all_reminders()

    def _on_data_error(self):
        self.rollover.reload_failed(datetime.datetime.now(self.tz or pytz.utc))
        self.lbl_location.config(text=f"⚠ Could not load data: {self._load_error[:60]}", fg=TEXT_RED)

    def _on_schedule_error(self, exc):
        if isinstance(exc, InvalidScheduleError):
            text = "⚠ Invalid prayer schedule"
        else:
            text = "⚠ Countdown error, retrying"
        self.lbl_next_name.config(text=text, fg=TEXT_RED)
        self.lbl_countdown.config(text="--:--:--")

    def _reload_data(self):
        self.lbl_location.config(text="📍 Refreshing location…", fg=TEXT_DIM)
        self._start_data_load()

    # ──────────────────────────────────────────────────────────────────────
    # Notification scheduling
    # ──────────────────────────────────────────────────────────────────────
    def _cancel_reminders(self):
        for t in self.active_timers:
            t.cancel()
        self.active_timers.clear()

    def _schedule_all_reminders(self):
        """Schedule desktop reminders for every upcoming prayer of the loaded day."""
        self._cancel_reminders()
        now = datetime.datetime.now(self.tz)
        slots = list(self.scheduler.today.slots) + [self.scheduler.tomorrow.fajr]
        for slot in slots:
            secs = seconds_until(slot.instant, now)
            if secs > 0:
                self.active_timers.extend(
                    schedule_reminders(
                        slot,
                        secs,
                        lead_minutes=self.settings["reminder_minutes"],
                        gui_callback=self._on_notification,
                    )
                )

    def _on_notification(self, title: str, message: str):
        """Called from a timer thread; schedule GUI update in main thread."""
        self.root.after(0, lambda: self._show_notif_banner(title, message))
        self.root.after(0, self.root.bell)

    def _show_notif_banner(self, title: str, message: str):
        self.lbl_notif_title.config(text=title)
        self.lbl_notif_msg.config(text=message)
        self.notif_frame.pack(fill=tk.X, padx=14, pady=4)
        self.root.attributes("-topmost", True)
        self.root.after(15000, self.notif_frame.pack_forget)

    # ──────────────────────────────────────────────────────────────────────
    # Countdown tick
    # ──────────────────────────────────────────────────────────────────────
    def _on_state(self, state):
        """Called by the ticker once per second with a fresh SchedulerState."""
        now = state.now
        self.lbl_clock.config(text=now.strftime("%H:%M:%S"))
        self.lbl_date.config(text=f"📅 {now.strftime('%A, %d %B %Y')}")

        for prayer, widgets in self.prayer_rows.items():
            if self.scheduler.is_active(prayer, now):
                row_bg, fg = "#1a2a00", ACCENT_GREEN
            elif state.next.prayer is prayer and not state.next_is_tomorrow and state.seconds_remaining <= 600:
                row_bg, fg = "#2a1a00", ACCENT_GOLD
            else:
                row_bg, fg = widgets["bg"], widgets["fg"]
            widgets["row"].config(bg=row_bg)
            widgets["lbl_name"].config(bg=row_bg, fg=fg)
            widgets["lbl_time"].config(bg=row_bg, fg=fg)

        _, name_fg = ROW_COLORS.get(state.next.prayer, (None, ACCENT_GREEN))
        self.lbl_next_name.config(text=state.next_label, fg=name_fg)
        color = TEXT_RED if state.seconds_remaining < 300 else ACCENT_GOLD
        self.lbl_countdown.config(text=state.time_remaining, fg=color)

        day = self.scheduler.today.date
        if self.rollover.should_reload(day, state):
            logger.info("Prayer day %s finished, reloading", day)
            self._start_data_load()

    # ──────────────────────────────────────────────────────────────────────
    # Qibla compass
    # ──────────────────────────────────────────────────────────────────────
    def _setup_compass(self, point):
        tolerance = self.settings["alignment_tolerance"]
        if self.compass is None or self.compass.tolerance_degrees != tolerance:
            self.compass = QiblaCompass(point, tolerance_degrees=tolerance)
            self.heading_feed = HeadingFeed(self.compass)
            # desktops have no magnetometer until the dial is used
            self.heading_feed.unsupported()
        else:
            self.compass.update_location(point)

        reading = self.compass.reading
        self.lbl_bearing.config(text=f"Direction  {reading.bearing_degrees:.0f}°")
        self.lbl_distance.config(text=f"Distance   {reading.distance_km_rounded} km")
        self.heading_dial.config(state=tk.NORMAL)
        self._render_compass()

    def _on_heading_dial(self, value):
        if self.heading_feed is None:
            return
        self.heading_feed.push(AbsoluteHeading(float(value)))
        self._render_compass()

    def _render_compass(self):
        state = self.compass.state
        c = COMPASS_SIZE / 2
        if not isinstance(state, CompassState):
            self.canvas.itemconfigure(self._arrow, state=tk.HIDDEN)
            self.canvas.itemconfigure(self._compass_msg, state=tk.NORMAL)
            self.lbl_aligned.config(text=f"Compass unavailable\n({state.reason.value})", fg=TEXT_DIM)
            return

        angle = math.radians(state.relative_angle_degrees)
        x = c + ARROW_LEN * math.sin(angle)
        y = c - ARROW_LEN * math.cos(angle)
        fg = ACCENT_GREEN if state.is_aligned else ACCENT_GOLD
        self.canvas.coords(self._arrow, c, c, x, y)
        self.canvas.itemconfigure(self._arrow, fill=fg, state=tk.NORMAL)
        self.canvas.itemconfigure(self._compass_msg, state=tk.HIDDEN)
        if state.is_aligned:
            self.lbl_aligned.config(text="✓ Facing the Qibla", fg=ACCENT_GREEN)
        else:
            self.lbl_aligned.config(text=f"Turn {state.relative_angle_degrees:.0f}°", fg=ACCENT_GOLD)

    # ──────────────────────────────────────────────────────────────────────
    # Location dialog
    # ──────────────────────────────────────────────────────────────────────
    def _show_location_dialog(self):
        """Show a dialog to set or refresh location."""
        dlg = tk.Toplevel(self.root)
        dlg.title("Set Location")
        dlg.configure(bg=BG_DARK)
        dlg.geometry("380x340")
        dlg.resizable(False, False)
        dlg.attributes("-topmost", True)
        dlg.transient(self.root)
        dlg.grab_set()

        tk.Label(dlg, text="📍 Set Location", font=FONT_TITLE, fg=ACCENT_GOLD, bg=BG_DARK).pack(pady=(10, 6))

        fields_frame = tk.Frame(dlg, bg=BG_DARK)
        fields_frame.pack(fill=tk.X, padx=20, pady=4)

        labels = ["City:", "Region:", "Country:", "Latitude:", "Longitude:", "Timezone:"]
        keys = ["city", "region", "country", "lat", "lon", "timezone"]
        entries = {}
        for i, (label, key) in enumerate(zip(labels, keys)):
            tk.Label(
                fields_frame, text=label, font=FONT_PIXEL_SM, fg=TEXT_WHITE, bg=BG_DARK, anchor="w", width=10,
            ).grid(row=i, column=0, sticky="w", pady=2)
            ent = tk.Entry(
                fields_frame, font=FONT_PIXEL_SM, fg=TEXT_WHITE, bg=BG_CARD,
                insertbackground=TEXT_WHITE, width=28, relief=tk.FLAT,
            )
            ent.grid(row=i, column=1, sticky="ew", pady=2, padx=(4, 0))
            if self.location and key in self.location:
                ent.insert(0, str(self.location[key]))
            entries[key] = ent
        fields_frame.columnconfigure(1, weight=1)

        btn_frame = tk.Frame(dlg, bg=BG_DARK)
        btn_frame.pack(pady=10)

        def _apply():
            loc = {key: entries[key].get().strip() for key in keys}
            try:
                loc["lat"] = float(loc["lat"])
                loc["lon"] = float(loc["lon"])
                save_manual_location(loc)
            except ValueError as exc:
                messagebox.showerror("Invalid input", f"Invalid coordinates: {exc}", parent=dlg)
                return
            dlg.destroy()
            self._reload_data()

        def _refresh_ip():
            clear_manual_location()
            dlg.destroy()
            self._reload_data()

        tk.Button(
            btn_frame, text="  Save  ", font=FONT_PIXEL_SM, fg=BG_DARK, bg=ACCENT_GREEN,
            bd=0, cursor="hand2", command=_apply,
        ).pack(side=tk.LEFT, padx=6)
        tk.Button(
            btn_frame, text="  Refresh from IP  ", font=FONT_PIXEL_SM, fg=BG_DARK, bg=ACCENT_GOLD,
            bd=0, cursor="hand2", command=_refresh_ip,
        ).pack(side=tk.LEFT, padx=6)
        tk.Button(
            btn_frame, text="  Cancel  ", font=FONT_PIXEL_SM, fg=TEXT_WHITE, bg=BG_CARD,
            bd=0, cursor="hand2", command=dlg.destroy,
        ).pack(side=tk.LEFT, padx=6)

    def _quit(self):
        if self.ticker is not None:
            self.ticker.stop()
        self._cancel_reminders()
        self.root.destroy()


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────
def main():
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings["log_level"], logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    root = tk.Tk()
    CompanionApp(root, settings)
    root.mainloop()


if __name__ == "__main__":
    main()
