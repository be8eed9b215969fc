from __future__ import annotations

from datetime import datetime, timezone

import pytest

from claude_usage.models import ExtraUsage, UsagePayload, UsagePoint
from claude_usage.store import MemoryStore

RESET_A = '2025-01-01T00:00:00Z'
RESET_B = '2025-01-08T00:00:00Z'
WEEKLY_RESET = '2025-01-08T12:00:00Z'


def make_payload(pct: float, resets_at: str | None = RESET_A, **others: float) -> UsagePayload:
    """Payload with the primary category plus optional other categories at *pct*."""
    categories = {'five_hour': UsagePoint(pct, resets_at)}
    for key, value in others.items():
        categories[key] = UsagePoint(value, WEEKLY_RESET)
    return UsagePayload(categories=categories, extra_usage=ExtraUsage(False, 0, 0))


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 12, 31, 20, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()
