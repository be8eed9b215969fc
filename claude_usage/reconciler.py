"""
Usage Reconciler
================

Folds each fetch result into the cached state and derives what the
menu bar shows and when to poll next.

On success the steps run in a fixed order: reset-cycle detection (and
its reset cascade), snapshot history, rate estimate, alerts, adaptive
polling, display.  On failure only the error shown changes; history,
cycle marker and polling state keep their last good values.

The caller owns the timer and the fetch and must not run two fetches at
once.  All public methods take an internal lock, so a separate display
refresh may call ``display()`` from another thread.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from . import formatting
from .alerts import AlertState
from .config import SETTINGS_KEY, Settings
from .cycle import detect_transition
from .errors import UsageError
from .history import dumps_history, estimate_rate, loads_history, recent, record
from .models import CATEGORIES, PRIMARY, UsagePayload, UsageSnapshot
from .scheduler import DynamicRefreshState, PollStatus, effective_interval, effective_ladder
from .store import MemoryStore

log = logging.getLogger(__name__)

KEY_HISTORY = 'history'
KEY_CYCLE = 'cycle_marker'
KEY_FIRED = 'fired_thresholds'
KEY_PREVIOUS = 'previous_pcts'
KEY_REFRESH = 'dynamic_refresh'

Notify = Callable[[str, str], None]


@dataclass(frozen=True)
class DisplayModel:
    """Everything the menu bar and its dropdown need to render."""
    title: str
    pct: int | None = None
    color: str = 'grey'
    lines: list[str] = field(default_factory=list)
    extra: str = 'Extra: --'
    rate: str | None = None
    status: PollStatus | None = None
    updated: str = 'Updated: --'
    stale: bool = False
    error: UsageError | None = None


class UsageReconciler:
    """Owns the cached usage state and reconciles fetch results into it."""

    def __init__(self, store: MemoryStore, settings: Settings | None = None, notify: Notify | None = None) -> None:
        """Load persisted state from *store*.

        Parameters
        ----------
        store : MemoryStore
            Key-value store for history, cycle marker, alert and polling state.
        settings : Settings, optional
            Current settings; defaults to those stored under ``settings``.
        notify : callable, optional
            ``notify(title, body)``; failures are logged and ignored.
        """
        self.store = store
        if settings is None:
            settings = Settings.from_json(store.get(SETTINGS_KEY))
        else:
            store.set(SETTINGS_KEY, settings.to_json())
        self.settings = settings
        self._notify = notify
        self._lock = threading.Lock()

        self.history = loads_history(store.get(KEY_HISTORY))
        self.cycle_marker = store.get(KEY_CYCLE)
        self.alerts = AlertState.loads(store.get(KEY_FIRED), store.get(KEY_PREVIOUS))
        self.refresh = DynamicRefreshState.loads(store.get(KEY_REFRESH), self.settings.base_interval)

        self.payload: UsagePayload | None = None
        self.last_success: datetime | None = None
        self.error: UsageError | None = None

    # ── Fetch results ──

    def on_fetch_succeeded(self, payload: UsagePayload, now: datetime) -> tuple[DisplayModel, int]:
        """Reconcile a successful fetch and return the display and next interval."""
        with self._lock:
            self.payload = payload
            self.last_success = now
            self.error = None

            primary = payload.primary
            new_cycle, self.cycle_marker = detect_transition(
                self.cycle_marker, primary.resets_at if primary else None,
            )
            if new_cycle:
                log.debug('New usage cycle, resets at %s', self.cycle_marker)
                self._start_cycle()
            elif primary is not None:
                self.history = record(self.history, primary.utilization, now)

            pcts = {key: point.pct for key, point in payload.categories.items()}
            self._fire_alerts(payload, pcts, now)

            if primary is not None and self.settings.adaptive_enabled and not new_cycle:
                idle_tier = len(effective_ladder(self.settings.base_interval))
                tier = self.refresh.tier
                self.refresh.advance(primary.pct, idle_tier)
                if tier != self.refresh.tier:
                    log.debug('Polling tier %d -> %d', tier, self.refresh.tier)

            self._persist()
            return self._display(now), self._interval()

    def on_fetch_failed(self, error: UsageError, now: datetime) -> tuple[DisplayModel, int]:
        """Record a failed fetch; cached usage and polling state stay as they are."""
        with self._lock:
            log.debug('Fetch failed: %s (%s)', error.token, error.description)
            self.error = error
            return self._display(now), self._interval()

    def display(self, now: datetime) -> DisplayModel:
        with self._lock:
            return self._display(now)

    @property
    def next_interval(self) -> int:
        with self._lock:
            return self._interval()

    def snapshot_history(self) -> list[UsageSnapshot]:
        with self._lock:
            return list(self.history)

    # ── Settings ──

    def set_adaptive_polling_enabled(self, enabled: bool) -> None:
        """Enable or disable adaptive polling; both start from the base rate."""
        with self._lock:
            self.settings.adaptive_enabled = enabled
            self._reset_refresh()
            self._save_settings()

    def set_base_poll_interval(self, seconds: int) -> None:
        """Change the base interval; the tier ladder is derived from it."""
        if seconds <= 0:
            raise ValueError(f'Poll interval must be positive, got {seconds}')

        with self._lock:
            self.settings.base_interval = seconds
            self._reset_refresh()
            self._save_settings()

    def set_alert_thresholds(self, thresholds: list[int]) -> None:
        """Replace the alert thresholds; already fired ones stay fired this cycle."""
        if any(not 0 < t <= 100 for t in thresholds):
            raise ValueError(f'Thresholds must be within 1..100, got {thresholds}')

        with self._lock:
            self.settings.alert_thresholds = sorted(set(thresholds))
            self.alerts.fired &= set(self.settings.alert_thresholds)
            self.store.set(KEY_FIRED, self.alerts.dumps_fired())
            self._save_settings()

    def set_threshold_alerts(self, enabled: bool) -> None:
        with self._lock:
            self.settings.threshold_alerts = enabled
            self._save_settings()

    def set_reset_alerts(self, enabled: bool) -> None:
        with self._lock:
            self.settings.reset_alerts = enabled
            self._save_settings()

    def set_status_icon_visible(self, visible: bool) -> None:
        with self._lock:
            self.settings.show_status_icon = visible
            self._save_settings()

    # ── Internals ──

    def _start_cycle(self) -> None:
        self.history = []
        self.alerts.new_cycle()
        self.refresh = DynamicRefreshState.initial(self.settings.base_interval)

    def _reset_refresh(self) -> None:
        self.refresh = DynamicRefreshState.initial(self.settings.base_interval)
        self.store.set(KEY_REFRESH, self.refresh.dumps())

    def _interval(self) -> int:
        return effective_interval(self.refresh, self.settings.adaptive_enabled, self.settings.base_interval)

    def _fire_alerts(self, payload: UsagePayload, pcts: dict[str, int], now: datetime) -> None:
        reset = self.alerts.check_resets(pcts)
        if self.settings.reset_alerts:
            for key in reset:
                self._send('Claude usage reset', f'{CATEGORIES[key]} limit is back to 0%.')

        primary = payload.primary
        if primary is None or not self.settings.threshold_alerts:
            return

        for threshold in self.alerts.check_thresholds(self.settings.alert_thresholds, primary.pct):
            body = f'{CATEGORIES[PRIMARY]} limit: {primary.pct}% used'
            if primary.resets_at:
                body += f', resets in {formatting.countdown(primary.resets_at, now)}'
            self._send(f'Claude usage above {threshold}%', body + '.')

    def _send(self, title: str, body: str) -> None:
        if self._notify is None:
            return

        try:
            self._notify(title, body)
        except Exception:
            log.debug('Notification failed: %s', title, exc_info=True)

    def _persist(self) -> None:
        self.store.set(KEY_HISTORY, dumps_history(self.history))
        if self.cycle_marker is not None:
            self.store.set(KEY_CYCLE, self.cycle_marker)
        self.store.set(KEY_FIRED, self.alerts.dumps_fired())
        self.store.set(KEY_PREVIOUS, self.alerts.dumps_previous())
        self.store.set(KEY_REFRESH, self.refresh.dumps())

    def _save_settings(self) -> None:
        self.store.set(SETTINGS_KEY, self.settings.to_json())

    def _is_stale(self, now: datetime) -> bool:
        if self.last_success is None:
            return False

        return now - self.last_success > timedelta(seconds=2 * self.settings.base_interval)

    def _display(self, now: datetime) -> DisplayModel:
        payload = self.payload
        status = self.refresh.status if self.settings.adaptive_enabled else None
        estimate = estimate_rate(recent(self.history, now))
        rate = formatting.rate_text(estimate) if estimate else None

        if payload is None:
            title = self.error.token if self.error else '...'
            return DisplayModel(title=title, status=status, error=self.error)

        lines = [
            formatting.category_line(label, payload.categories.get(key), now)
            for key, label in CATEGORIES.items()
        ]
        primary = payload.primary
        pct = primary.pct if primary else None

        if self.error is not None:
            title = self.error.token
        elif primary is None:
            title = '--'
        else:
            title = formatting.compact(primary.pct, primary.resets_at, now)
            if status is not None and self.settings.show_status_icon:
                title = f'{title} {status.symbol}'

        return DisplayModel(
            title=title,
            pct=pct,
            color=formatting.color_name(pct) if pct is not None else 'grey',
            lines=lines,
            extra=formatting.extra_text(payload.extra_usage),
            rate=rate,
            status=status,
            updated=formatting.updated_text(self.last_success),
            stale=self._is_stale(now),
            error=self.error,
        )
