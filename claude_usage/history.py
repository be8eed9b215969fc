"""
Snapshot History
================

Time-pruned list of ``(timestamp, pct)`` snapshots for the primary
category, and the rate-of-change estimate derived from it.

The functions here are pure: they return new lists and never mutate
their input.  The reconciler persists the result.
"""
from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timedelta, timezone

from .config import HISTORY_MAX_AGE, HISTORY_MAX_ENTRIES, RATE_MAX_HORIZON, RATE_MIN_SPAN
from .models import RateEstimate, UsageSnapshot

log = logging.getLogger(__name__)


def record(history: list[UsageSnapshot], pct: float, now: datetime) -> list[UsageSnapshot]:
    """Append a snapshot, then prune by age and by count.

    Parameters
    ----------
    history : list of UsageSnapshot
        Existing snapshots, oldest first.
    pct : float
        Current utilization of the primary category.
    now : datetime
        Timestamp of the snapshot (timezone-aware).

    Returns
    -------
    list of UsageSnapshot
        At most ``HISTORY_MAX_ENTRIES`` snapshots, none older than
        ``HISTORY_MAX_AGE`` seconds before *now*.
    """
    # Entries from the future (clock set back) would break timestamp order
    kept = [s for s in history if s.timestamp <= now]
    kept.append(UsageSnapshot(now, pct))

    kept = recent(kept, now)

    if len(kept) > HISTORY_MAX_ENTRIES:
        kept = kept[-HISTORY_MAX_ENTRIES:]

    return kept


def recent(history: list[UsageSnapshot], now: datetime) -> list[UsageSnapshot]:
    """Return the snapshots no older than ``HISTORY_MAX_AGE`` seconds before *now*."""
    cutoff = now - timedelta(seconds=HISTORY_MAX_AGE)
    return [s for s in history if s.timestamp >= cutoff]


def estimate_rate(history: list[UsageSnapshot]) -> RateEstimate | None:
    """Estimate utilization growth per hour from the oldest and newest snapshot.

    Returns None with fewer than two snapshots or when they span less
    than ``RATE_MIN_SPAN`` seconds.
    """
    if len(history) < 2:
        return None

    first, last = history[0], history[-1]
    span = (last.timestamp - first.timestamp).total_seconds()
    if span < RATE_MIN_SPAN:
        return None

    per_hour = (last.pct - first.pct) / (span / 3600)
    if per_hour <= 0:
        return RateEstimate(per_hour)

    remaining = 100 - last.pct
    if remaining <= 0:
        return RateEstimate(per_hour)

    hours = remaining / per_hour
    if hours >= RATE_MAX_HORIZON:
        return RateEstimate(per_hour)

    return RateEstimate(per_hour, math.floor(hours))


def dumps_history(history: list[UsageSnapshot]) -> str:
    return json.dumps([[s.timestamp.timestamp(), s.pct] for s in history])


def loads_history(raw: str | None) -> list[UsageSnapshot]:
    """Deserialize a stored history blob.

    Anything unreadable yields an empty history, which only means the
    rate estimate has to build up a new baseline.
    """
    if not raw:
        return []

    try:
        items = json.loads(raw)
        history = [
            UsageSnapshot(datetime.fromtimestamp(float(ts), timezone.utc), float(pct))
            for ts, pct in items
        ]
    except (json.JSONDecodeError, TypeError, ValueError, OverflowError, OSError):
        log.warning('Snapshot history is corrupt, starting over')
        return []

    if any(a.timestamp > b.timestamp for a, b in zip(history, history[1:])):
        log.warning('Snapshot history is out of order, starting over')
        return []

    return history
