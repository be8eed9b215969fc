"""Text formatting for the menu-bar title and the dropdown."""
from __future__ import annotations

from datetime import datetime

from .config import COLOR_LEVELS, COLOR_MAX, COUNTDOWN_FULL_FROM, COUNTDOWN_HOURS_FROM
from .models import ExtraUsage, RateEstimate, UsagePoint


def parse_time(iso_str: str) -> datetime | None:
    """Parse an ISO 8601 timestamp, or return None if it is not one."""
    try:
        return datetime.fromisoformat(iso_str.replace('Z', '+00:00'))
    except (ValueError, AttributeError):
        return None


def color_name(pct: int) -> str:
    for bound, name in COLOR_LEVELS:
        if pct < bound:
            return name

    return COLOR_MAX


def countdown(resets_at: str, now: datetime, hours_only: bool = False) -> str:
    """Return the time left until *resets_at*.

    Past:          "due now"
    Under 1 hour:  "37m"
    Under 1 day:   "2h 20m" (or "2h" with *hours_only*)
    Later:         "Jan 8"
    """
    reset = parse_time(resets_at)
    if reset is None:
        return '?'

    seconds = int((reset - now).total_seconds())
    if seconds < 0:
        return 'due now'

    hours, mins = seconds // 3600, seconds % 3600 // 60
    if hours == 0:
        return f'{mins}m'
    if hours < 24:
        return f'{hours}h' if hours_only else f'{hours}h {mins}m'

    local = reset.astimezone()
    return f'{local:%b} {local.day}'


def compact(pct: int, resets_at: str | None, now: datetime) -> str:
    """Format a percentage for the menu-bar title.

    Low usage shows the percentage alone, medium usage adds the hours
    until reset and high usage adds hours and minutes.
    """
    if pct < COUNTDOWN_HOURS_FROM or not resets_at:
        return f'{pct}%'

    return f'{pct}% {countdown(resets_at, now, hours_only=pct < COUNTDOWN_FULL_FROM)}'


def category_line(label: str, point: UsagePoint | None, now: datetime) -> str:
    if point is None:
        return f'{label}: --'

    reset = countdown(point.resets_at, now) if point.resets_at else '--'
    return f'{label}: {point.pct}% (resets {reset})'


def rate_text(estimate: RateEstimate) -> str:
    if estimate.stable:
        return 'stable'

    text = f'~{estimate.per_hour_pct:.0f}%/hr'
    if estimate.hours_to_limit is not None:
        text += f' — limit in ~{estimate.hours_to_limit}h'
    return text


def extra_text(extra: ExtraUsage | None) -> str:
    """Format extra usage; credits are reported in cents."""
    if extra is None or not extra.is_enabled:
        return 'Extra: --'

    text = f'Extra: ${extra.used_credits / 100:.2f}/${extra.monthly_limit / 100:.0f}'
    if extra.utilization is not None:
        text += f' ({extra.utilization:.0f}%)'
    return text


def updated_text(when: datetime | None) -> str:
    if when is None:
        return 'Updated: --'

    return f'Updated: {when.astimezone():%H:%M}'
