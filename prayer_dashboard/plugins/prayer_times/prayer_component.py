import tkinter as tk
from datetime import datetime, timedelta
from typing import Any, Dict

from prayer_dashboard.core.component_base import DashboardComponent

from .resolver import format_countdown
from .session import create_session
from .timings import PRAYER_ORDER, format_time_of_day

NO_MORE_PRAYERS = "No More Prayers"
LOADING = "Loading..."


class PrayerTimesComponent(DashboardComponent):
    name = "Prayer Times"

    def __init__(self, app, config: Dict[str, Any]):
        super().__init__(app, config)
        self.session = self._create_session()
        self.prayer_labels: Dict[str, Dict[str, tk.Label]] = {}

    def _create_session(self):
        cache_dir = self.app.config.data.get("cache", {}).get("directory") if self.app else None
        return create_session(self.config, cache_dir)

    def update_from_config(self) -> None:
        """Location, method or cache settings changed: start over with a new session"""
        self.session = self._create_session()
        self.session.restore_cached()
        self.refresh()

    def initialize(self, parent: tk.Frame) -> None:
        super().initialize(parent)
        colors = self.get_colors()
        pad = self.get_padding()

        # Header: title, city and refresh
        header = tk.Frame(self.frame, bg=colors['background'])
        header.pack(fill=tk.X, pady=(0, pad))
        self.create_label(header, text=self.headline, font_size='title', bold=True).pack(side=tk.LEFT)
        refresh = self.create_label(header, text="↻", font_size='heading', color=colors['muted'], cursor="hand2")
        refresh.pack(side=tk.RIGHT)
        refresh.bind('<Button-1>', lambda e: self.refresh())
        self.city_label = self.create_label(header, text=self.config.get('city', ''), font_size='small')
        self.city_label.pack(side=tk.RIGHT, padx=pad)

        # Next prayer card
        card = tk.Frame(self.frame, bg=colors['accent'], padx=pad * 2, pady=pad * 2)
        card.pack(fill=tk.X, pady=pad)

        nav = tk.Frame(card, bg=colors['accent'])
        nav.pack(fill=tk.X)
        card_label = dict(bg=colors['accent'], color=colors['accent_text'])
        prev_btn = self.create_label(nav, text="‹", font_size='title', cursor="hand2", **card_label)
        prev_btn.pack(side=tk.LEFT)
        prev_btn.bind('<Button-1>', lambda e: self.go_to_previous_day())
        next_btn = self.create_label(nav, text="›", font_size='title', cursor="hand2", **card_label)
        next_btn.pack(side=tk.RIGHT)
        next_btn.bind('<Button-1>', lambda e: self.go_to_next_day())

        center = tk.Frame(nav, bg=colors['accent'])
        center.pack(expand=True)
        self.create_label(center, text="Next Prayer", font_size='small', **card_label).pack()
        self.next_name_label = self.create_label(center, text=LOADING, font_size='title', bold=True, **card_label)
        self.next_name_label.pack()
        self.countdown_label = self.create_label(center, text="", font_size='body', **card_label)
        self.countdown_label.pack()

        self.clock_label = self.create_label(card, text="", font_size='display', bold=True, **card_label)
        self.clock_label.pack(pady=pad)

        dates = tk.Frame(card, bg=colors['accent'])
        dates.pack(fill=tk.X)
        self.hijri_label = self.create_label(dates, text=LOADING, font_size='small', **card_label)
        self.hijri_label.pack(side=tk.LEFT)
        self.gregorian_label = self.create_label(dates, text=LOADING, font_size='small', **card_label)
        self.gregorian_label.pack(side=tk.RIGHT)

        # Prayer table
        table = tk.Frame(self.frame, bg=colors['background'])
        table.pack(fill=tk.X, pady=pad)
        for row, prayer in enumerate(PRAYER_ORDER):
            name_label = self.create_label(table, text=prayer, font_size='heading', anchor="w", width=12)
            name_label.grid(row=row, column=0, sticky="we", pady=2)
            time_label = self.create_label(table, text="--:--", font_size='heading', anchor="e", width=8)
            time_label.grid(row=row, column=1, sticky="we", pady=2)
            self.prayer_labels[prayer] = {'name': name_label, 'time': time_label}
        table.columnconfigure(0, weight=1)

        # Status line: loading / error with retry
        status = tk.Frame(self.frame, bg=colors['background'])
        status.pack(fill=tk.X, pady=pad)
        self.status_label = self.create_label(status, text="", font_size='small', color=colors['error'], wraplength=320, justify=tk.LEFT)
        self.status_label.pack(side=tk.LEFT)
        self.retry_button = tk.Button(status, text="Retry", command=self.refresh)

        self.session.restore_cached()
        self.update()
        self.refresh()
        self._tick()

        self._schedule_next_day_update()

    @property
    def daily_task_name(self) -> str:
        return f"{self.name}_daily_update"

    def _schedule_next_day_update(self) -> None:
        """Schedule a calendar refresh just after midnight"""
        now = datetime.now()
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1, seconds=5)
        self.app.task_manager.schedule_task(
            self.daily_task_name,
            self._next_day_update,
            (midnight - now).total_seconds(),
        )

    def _next_day_update(self) -> None:
        """Runs on the timer thread; the redraw happens when the result queue is drained"""
        self.logger.info("New day, refreshing prayer times")
        self._start_refresh()
        self._schedule_next_day_update()

    def refresh(self) -> None:
        """Start a background refresh of the calendar"""
        self._start_refresh()
        self.update()

    def _start_refresh(self) -> None:
        request_id = self.session.begin_refresh()
        self.app.task_manager.run_in_background(
            self.name,
            lambda: self.session.refresh(request_id),
        )

    def destroy(self) -> None:
        self.app.task_manager.cancel_task(self.daily_task_name)
        super().destroy()

    def go_to_previous_day(self) -> None:
        if self.session.go_to_previous_day():
            self.update()

    def go_to_next_day(self) -> None:
        if self.session.go_to_next_day():
            self.update()

    def _tick(self) -> None:
        """Live clock and countdown, once per second"""
        if not self.frame or not self.frame.winfo_exists():
            return
        self.session.tick()
        self.clock_label.config(text=datetime.now().strftime("%H:%M:%S"))
        self._render_next_prayer()
        self.frame.after(1000, self._tick)

    def handle_background_result(self, result: Any) -> None:
        """Refresh finished on the worker thread; redraw from session state"""
        super().handle_background_result(result)
        self.update()

    def update(self) -> None:
        """Update component display from the session"""
        if not self.frame:
            return
        colors = self.get_colors()
        session = self.session

        if session.location_provider.city:
            self.city_label.config(text=session.location_provider.city)

        day = session.current_day()
        self.hijri_label.config(text=day.hijri if day else LOADING)
        self.gregorian_label.config(text=day.gregorian if day else LOADING)
        for prayer, labels in self.prayer_labels.items():
            labels['time'].config(text=format_time_of_day(day.timings[prayer]) if day else "--:--")

        self._render_next_prayer()

        if session.is_loading:
            self.status_label.config(text=LOADING, fg=colors['muted'])
            self.retry_button.pack_forget()
        elif session.error:
            self.status_label.config(text=session.error.detail, fg=colors['error'])
            self.retry_button.pack(side=tk.RIGHT)
        else:
            self.status_label.config(text="")
            self.retry_button.pack_forget()

    def _render_next_prayer(self) -> None:
        colors = self.get_colors()
        upcoming = self.session.next_prayer
        if upcoming is None:
            name = LOADING if self.session.is_loading else ""
            countdown = ""
        elif upcoming.exhausted:
            name, countdown = NO_MORE_PRAYERS, ""
        else:
            name = upcoming.name
            countdown = f"in {format_countdown(upcoming.remaining)}"
        self.next_name_label.config(text=name)
        self.countdown_label.config(text=countdown)

        highlighted = upcoming.name if upcoming else None
        for prayer, labels in self.prayer_labels.items():
            if prayer == highlighted:
                fg, bg = colors['accent_text'], colors['accent']
            else:
                fg, bg = colors['text'], colors['background']
            labels['name'].config(fg=fg, bg=bg)
            labels['time'].config(fg=fg, bg=bg)
