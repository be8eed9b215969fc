from datetime import datetime, timezone

import pytest

from claude_usage.formatting import category_line, color_name, compact, countdown, extra_text, parse_time, updated_text
from claude_usage.models import ExtraUsage, UsagePoint

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize('resets_at, expected', [
    ('2025-01-01T11:59:00Z', 'due now'),
    ('2025-01-01T12:37:00Z', '37m'),
    ('2025-01-01T14:20:30Z', '2h 20m'),
    ('2025-01-02T11:59:00+00:00', '23h 59m'),
    ('2025-01-15T12:00:00Z', 'Jan 15'),
    ('not a date', '?'),
])
def test_countdown(resets_at, expected):
    assert countdown(resets_at, NOW) == expected


def test_countdown_hours_only():
    assert countdown('2025-01-01T14:20:00Z', NOW, hours_only=True) == '2h'
    assert countdown('2025-01-01T12:20:00Z', NOW, hours_only=True) == '20m'


@pytest.mark.parametrize('pct, expected', [
    (0, '0%'),
    (29, '29%'),
    (30, '30% 2h'),
    (60, '60% 2h'),
    (61, '61% 2h 20m'),
    (100, '100% 2h 20m'),
])
def test_compact_countdown_policy(pct, expected):
    assert compact(pct, '2025-01-01T14:20:00Z', NOW) == expected


def test_compact_without_reset_time():
    assert compact(75, None, NOW) == '75%'


@pytest.mark.parametrize('pct, expected', [
    (-1, 'grey'), (0, 'grey'), (29, 'grey'),
    (30, 'green'), (60, 'green'),
    (61, 'yellow'), (80, 'yellow'),
    (81, 'orange'), (90, 'orange'),
    (91, 'red'), (100, 'red'), (200, 'red'),
])
def test_color_name_boundaries(pct, expected):
    assert color_name(pct) == expected


def test_category_line():
    assert category_line('Weekly', UsagePoint(45.9, '2025-01-01T13:05:00Z'), NOW) == 'Weekly: 45% (resets 1h 5m)'
    assert category_line('Weekly', UsagePoint(45.9), NOW) == 'Weekly: 45% (resets --)'
    assert category_line('Sonnet', None, NOW) == 'Sonnet: --'


def test_extra_text():
    assert extra_text(ExtraUsage(True, 5000, 1234, 24.7)) == 'Extra: $12.34/$50 (25%)'
    assert extra_text(ExtraUsage(True, 5000, 0)) == 'Extra: $0.00/$50'
    assert extra_text(ExtraUsage(False, 5000, 1234, 24.7)) == 'Extra: --'
    assert extra_text(None) == 'Extra: --'


def test_updated_text():
    assert updated_text(None) == 'Updated: --'
    assert updated_text(NOW).startswith('Updated: ')
    assert len(updated_text(NOW)) == len('Updated: 12:00')


def test_parse_time_accepts_z_suffix():
    assert parse_time('2025-01-01T12:00:00Z') == NOW
    assert parse_time('') is None
