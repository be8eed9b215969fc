"""Data models for usage payloads and snapshot history."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .errors import DecodeError

PRIMARY = 'five_hour'

# API key -> dropdown label, in display order
CATEGORIES: dict[str, str] = {
    'five_hour': '5-hour',
    'seven_day': 'Weekly',
    'seven_day_sonnet': 'Sonnet',
    'seven_day_opus': 'Opus',
}


def clamp_pct(value: float) -> int:
    """Truncate a utilization value to an integer percentage in 0..100.

    Truncates toward zero rather than rounding, so 99.9 is 99.
    """
    return min(100, max(0, int(value)))


@dataclass(frozen=True)
class UsagePoint:
    utilization: float
    resets_at: str | None = None

    @property
    def pct(self) -> int:
        return clamp_pct(self.utilization)


@dataclass(frozen=True)
class ExtraUsage:
    is_enabled: bool
    monthly_limit: float  # cents
    used_credits: float  # cents
    utilization: float | None = None


@dataclass(frozen=True)
class UsagePayload:
    """One successful fetch: utilization per category plus extra usage."""
    categories: dict[str, UsagePoint] = field(default_factory=dict)
    extra_usage: ExtraUsage | None = None

    @property
    def primary(self) -> UsagePoint | None:
        return self.categories.get(PRIMARY)


@dataclass(frozen=True)
class UsageSnapshot:
    timestamp: datetime
    pct: float


@dataclass(frozen=True)
class RateEstimate:
    per_hour_pct: float
    hours_to_limit: int | None = None

    @property
    def stable(self) -> bool:
        return self.per_hour_pct <= 0


def _number(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f'{where} is not a number')
    if not math.isfinite(value):
        raise DecodeError(f'{where} is not finite')
    return float(value)


def _parse_point(key: str, entry: Any) -> UsagePoint | None:
    if entry is None:
        return None
    if not isinstance(entry, dict):
        raise DecodeError(f'{key} is not an object')
    if entry.get('utilization') is None:
        return None

    resets_at = entry.get('resets_at')
    if resets_at is not None and not isinstance(resets_at, str):
        raise DecodeError(f'{key}.resets_at is not a string')

    return UsagePoint(_number(entry['utilization'], f'{key}.utilization'), resets_at or None)


def _parse_extra(entry: Any) -> ExtraUsage | None:
    if entry is None:
        return None
    if not isinstance(entry, dict):
        raise DecodeError('extra_usage is not an object')

    utilization = entry.get('utilization')
    return ExtraUsage(
        is_enabled=bool(entry.get('is_enabled')),
        monthly_limit=_number(entry.get('monthly_limit') or 0, 'extra_usage.monthly_limit'),
        used_credits=_number(entry.get('used_credits') or 0, 'extra_usage.used_credits'),
        utilization=None if utilization is None else _number(utilization, 'extra_usage.utilization'),
    )


def parse_payload(data: Any) -> UsagePayload:
    """Build a ``UsagePayload`` from the decoded usage API response.

    Every category is optional.  Raises ``DecodeError`` when the response
    does not have the expected shape.

    Parameters
    ----------
    data : Any
        Decoded JSON body, e.g. ``{'five_hour': {'utilization': 42.0,
        'resets_at': '2025-01-01T05:00:00Z'}, ...}``.
    """
    if not isinstance(data, dict):
        raise DecodeError('response is not an object')

    categories = {}
    for key in CATEGORIES:
        point = _parse_point(key, data.get(key))
        if point is not None:
            categories[key] = point

    return UsagePayload(categories=categories, extra_usage=_parse_extra(data.get('extra_usage')))
