"""
Menu-Bar Application
====================

Shows the Claude usage in the macOS menu bar via pystray.  Clicking the
icon opens a dropdown with all usage limits, the usage rate and the
polling settings.

This layer owns the timers and the fetch.  At most one fetch runs at a
time; a poll that fires while a fetch is in flight is skipped.
"""
from __future__ import annotations

import json
import logging
import subprocess
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable

import pystray  # type: ignore[import-untyped]  # no type stubs available

from . import __version__
from .api import fetch_latest_version, fetch_usage, is_newer_version, read_token
from .config import POLL_CHOICES, STATE_FILE, UPDATE_URL
from .errors import UsageError
from .icon import create_icon_image, create_status_image, menu_bar_is_dark
from .reconciler import DisplayModel, UsageReconciler
from .store import JsonFileStore, MemoryStore

log = logging.getLogger(__name__)

DISPLAY_REFRESH = 60  # Seconds between countdown re-renders


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClaudeUsageApp:
    """Menu-bar application displaying Claude usage."""

    def __init__(self, store: MemoryStore | None = None) -> None:
        """Load cached state and set up the menu-bar icon."""
        self.running = True
        self.store = store if store is not None else JsonFileStore(STATE_FILE)
        self.reconciler = UsageReconciler(self.store, notify=self.notify)
        self.model = self.reconciler.display(utc_now())
        self.latest_version: str | None = None
        self._fetch_lock = threading.Lock()
        self._reschedule = threading.Event()
        self._dark = menu_bar_is_dark()
        self.icon = pystray.Icon(
            'claude_usage',
            icon=create_status_image('…', dark=self._dark),
            title='Loading...',
            menu=pystray.Menu(self._menu_items),
        )

    # ── Menu ──

    def _menu_items(self) -> list[pystray.MenuItem]:
        """Build the dropdown from the current display state."""
        model = self.reconciler.display(utc_now())
        settings = self.reconciler.settings

        def info(text: str) -> pystray.MenuItem:
            return pystray.MenuItem(text, None, enabled=False)

        items = [info(f'{model.title} (stale)' if model.stale else model.title)]
        items += [info(line) for line in model.lines]
        items += [pystray.Menu.SEPARATOR, info(model.extra)]
        if model.rate:
            items.append(info(f'Rate: {model.rate}'))
        if model.error is not None:
            items.append(info(model.error.description))
            if model.error.hint:
                items.append(info(model.error.hint))

        items += [
            pystray.Menu.SEPARATOR,
            info(model.updated),
            pystray.MenuItem('Refresh now', self.on_refresh),
            pystray.MenuItem('Refresh Interval', pystray.Menu(*(
                pystray.MenuItem(
                    label, self._interval_action(seconds), radio=True,
                    checked=lambda item, s=seconds: self.reconciler.settings.base_interval == s,
                )
                for label, seconds in POLL_CHOICES.items()
            ))),
            pystray.MenuItem(
                'Adaptive Polling', self.on_toggle_adaptive,
                checked=lambda item: self.reconciler.settings.adaptive_enabled,
            ),
            pystray.MenuItem('Alerts', pystray.Menu(
                pystray.MenuItem(
                    'Usage Thresholds (' + ', '.join(f'{t}%' for t in settings.alert_thresholds) + ')',
                    self.on_toggle_threshold_alerts,
                    checked=lambda item: self.reconciler.settings.threshold_alerts,
                ),
                pystray.MenuItem(
                    'Usage Reset', self.on_toggle_reset_alerts,
                    checked=lambda item: self.reconciler.settings.reset_alerts,
                ),
                pystray.MenuItem(
                    'Show Polling Status', self.on_toggle_status_icon,
                    checked=lambda item: self.reconciler.settings.show_status_icon,
                ),
            )),
        ]
        if self.latest_version:
            items.append(info(f'Update available: {self.latest_version}'))
        items += [pystray.Menu.SEPARATOR, pystray.MenuItem('Quit', self.on_quit)]

        return items

    def _interval_action(self, seconds: int) -> Callable[[Any, Any], None]:
        def action(icon: Any, item: Any) -> None:
            self.reconciler.set_base_poll_interval(seconds)
            self._reschedule.set()
        return action

    def on_refresh(self, icon: Any = None, item: Any = None) -> None:
        threading.Thread(target=self.update, daemon=True).start()

    def on_toggle_adaptive(self, icon: Any = None, item: Any = None) -> None:
        self.reconciler.set_adaptive_polling_enabled(not self.reconciler.settings.adaptive_enabled)
        self._reschedule.set()

    def on_toggle_threshold_alerts(self, icon: Any = None, item: Any = None) -> None:
        self.reconciler.set_threshold_alerts(not self.reconciler.settings.threshold_alerts)

    def on_toggle_reset_alerts(self, icon: Any = None, item: Any = None) -> None:
        self.reconciler.set_reset_alerts(not self.reconciler.settings.reset_alerts)

    def on_toggle_status_icon(self, icon: Any = None, item: Any = None) -> None:
        self.reconciler.set_status_icon_visible(not self.reconciler.settings.show_status_icon)
        self.render(self.reconciler.display(utc_now()))

    def on_quit(self, icon: Any = None, item: Any = None) -> None:
        self.running = False
        self._reschedule.set()
        self.icon.stop()

    # ── Notifications ──

    def notify(self, title: str, body: str) -> None:
        """Show a notification; fire and forget."""
        try:
            if self.icon.HAS_NOTIFICATION:
                self.icon.notify(body, title)
                return

            script = f'display notification {json.dumps(body, ensure_ascii=False)} with title {json.dumps(title, ensure_ascii=False)}'
            subprocess.Popen(['osascript', '-e', script], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except (OSError, NotImplementedError):
            log.debug('Notification not delivered: %s', title, exc_info=True)

    # ── Polling ──

    def render(self, model: DisplayModel) -> None:
        """Apply a display model to the menu-bar icon, tooltip and dropdown."""
        self.model = model
        if model.pct is None:
            if model.error is not None:
                self.icon.icon = create_status_image(model.error.token[:1].upper(), model.error.alternate, self._dark)
            else:
                self.icon.icon = create_status_image('…', dark=self._dark)
        elif model.error is not None:
            self.icon.icon = create_status_image('!', model.error.alternate, self._dark)
        else:
            color = 'grey' if model.stale else model.color
            self.icon.icon = create_icon_image(model.pct, color, self._dark)

        tooltip = [model.title]
        if model.error is not None:
            tooltip.append(model.error.description)
        elif model.stale:
            tooltip.append('Data may be outdated')
        self.icon.title = '\n'.join(tooltip)
        self.icon.update_menu()

    def update(self) -> None:
        """Fetch current usage and hand the result to the reconciler.

        Skipped when another fetch is still in flight.
        """
        if not self._fetch_lock.acquire(blocking=False):
            log.debug('Fetch already in flight, skipping')
            return

        try:
            self._dark = menu_bar_is_dark()
            try:
                payload = fetch_usage()
            except UsageError as e:
                model, _ = self.reconciler.on_fetch_failed(e, utc_now())
            else:
                model, _ = self.reconciler.on_fetch_succeeded(payload, utc_now())
            self.render(model)
        finally:
            self._fetch_lock.release()

    def poll_loop(self) -> None:
        """Poll the API at the interval the reconciler asks for.

        Changing the base interval or toggling adaptive polling cuts the
        current wait short.
        """
        while self.running:
            # Settings changed during the fetch still cut the wait
            self._reschedule.clear()
            self.update()
            interval = self.reconciler.next_interval
            log.debug('Next poll in %ds', interval)
            for _ in range(interval):
                if not self.running or self._reschedule.is_set():
                    break
                time.sleep(1)

    def display_loop(self) -> None:
        """Re-render countdowns and the stale flag between polls."""
        while self.running:
            time.sleep(DISPLAY_REFRESH)
            if self.running:
                self.render(self.reconciler.display(utc_now()))

    def check_for_update(self) -> None:
        latest = fetch_latest_version(UPDATE_URL)
        if latest and is_newer_version(latest, __version__):
            log.info('Update available: %s', latest)
            self.latest_version = latest
            self.icon.update_menu()

    def _on_icon_ready(self, icon: Any) -> None:
        """Called by pystray in a separate thread once the icon is set up."""
        try:
            icon.visible = True
            try:
                read_token()
            except UsageError as e:
                self.notify('Claude Usage', f'{e.description}\n{e.hint}')
            threading.Thread(target=self.display_loop, daemon=True).start()
            threading.Thread(target=self.check_for_update, daemon=True).start()
            self.poll_loop()
        except Exception:
            log.exception('Poll loop crashed')

    def run(self) -> None:
        self.icon.run(setup=self._on_icon_ready)
