"""Configuration constants and persisted user settings."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

# ── Polling ────────────────────────────────────────────────────
POLL_INTERVAL = 300  # Default base interval (seconds)
POLL_CHOICES = {  # Menu label -> base interval
    'Every 1 minute': 60,
    'Every 5 minutes': 300,
    'Every 30 minutes': 1800,
    'Every hour': 3600,
}
POLL_TIERS = (60, 120, 300, 900)  # Adaptive ladder, fastest first
POLL_UNCHANGED_STEPS = 2  # Unchanged fetches before slowing down one tier

# ── Snapshot history ───────────────────────────────────────────
HISTORY_MAX_AGE = 6 * 3600
HISTORY_MAX_ENTRIES = 100
RATE_MIN_SPAN = 5 * 60  # Need this much baseline before estimating a rate
RATE_MAX_HORIZON = 100  # Hours; longer projections are not shown

# ── Alerts and display ─────────────────────────────────────────
ALERT_THRESHOLDS = [80, 90]
COUNTDOWN_HOURS_FROM = 30  # Below this only the percentage is shown
COUNTDOWN_FULL_FROM = 61  # From here on hours and minutes are shown
COLOR_LEVELS = (  # (upper bound exclusive, color name)
    (30, 'grey'),
    (61, 'green'),
    (81, 'yellow'),
    (91, 'orange'),
)
COLOR_MAX = 'red'

# ── API ────────────────────────────────────────────────────────
API_URL_USAGE = 'https://api.anthropic.com/api/oauth/usage'
KEYCHAIN_SERVICE = 'Claude Code-credentials'
CLAUDE_CREDENTIALS = Path.home() / '.claude' / '.credentials.json'
REQUEST_TIMEOUT = 10
UPDATE_URL = os.environ.get('CLAUDE_USAGE_UPDATE_URL', '')

# ── Files ──────────────────────────────────────────────────────
STATE_DIR = Path(os.environ.get(
    'CLAUDE_USAGE_STATE_DIR',
    Path.home() / 'Library' / 'Application Support' / 'ClaudeUsage',
))
STATE_FILE = STATE_DIR / 'state.json'
LOG_FILE = STATE_DIR / 'claude_usage.log'

SETTINGS_KEY = 'settings'


@dataclass
class Settings:
    """User-adjustable settings, stored as JSON in the key-value store."""
    base_interval: int = POLL_INTERVAL
    adaptive_enabled: bool = True
    alert_thresholds: list[int] = field(default_factory=lambda: list(ALERT_THRESHOLDS))
    threshold_alerts: bool = True
    reset_alerts: bool = True
    show_status_icon: bool = True

    @classmethod
    def from_json(cls, raw: str | None) -> Settings:
        """Parse stored settings, falling back to defaults field by field."""
        settings = cls()
        if not raw:
            return settings

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            log.warning('Settings are corrupt, using defaults')
            return settings
        if not isinstance(data, dict):
            return settings

        for f in fields(cls):
            value = data.get(f.name)
            if _valid(f.name, value):
                setattr(settings, f.name, value)

        settings.alert_thresholds = sorted(set(settings.alert_thresholds))
        return settings

    def to_json(self) -> str:
        return json.dumps(asdict(self))


def _valid(name: str, value: Any) -> bool:
    if name == 'base_interval':
        return isinstance(value, int) and not isinstance(value, bool) and value > 0
    if name == 'alert_thresholds':
        return isinstance(value, list) and all(
            isinstance(v, int) and not isinstance(v, bool) and 0 < v <= 100 for v in value
        )
    return isinstance(value, bool)
