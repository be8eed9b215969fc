import pytest

from claude_usage.errors import (
    CredentialNotFoundError, CredentialUnreadableError, DecodeError, HttpStatusError, NetworkError, UsageError,
)
from claude_usage.models import ExtraUsage, UsagePoint, clamp_pct, parse_payload


@pytest.mark.parametrize('value, expected', [
    (0.0, 0), (50.0, 50), (100.0, 100), (75.7, 75), (99.9, 99),
    (-1.0, 0), (-50.5, 0), (-0.1, 0), (100.1, 100), (200.0, 100),
])
def test_clamp_pct_truncates_and_clamps(value, expected):
    assert clamp_pct(value) == expected


def test_parse_full_payload():
    payload = parse_payload({
        'five_hour': {'utilization': 42.7, 'resets_at': '2025-01-01T05:00:00Z'},
        'seven_day': {'utilization': 12, 'resets_at': None},
        'seven_day_sonnet': None,
        'seven_day_opus': {'utilization': None},
        'extra_usage': {'is_enabled': True, 'monthly_limit': 5000, 'used_credits': 1234.0, 'utilization': 24.68},
        'unknown_field': 'ignored',
    })

    assert payload.categories == {
        'five_hour': UsagePoint(42.7, '2025-01-01T05:00:00Z'),
        'seven_day': UsagePoint(12.0, None),
    }
    assert payload.primary.pct == 42
    assert payload.extra_usage == ExtraUsage(True, 5000.0, 1234.0, 24.68)


def test_parse_empty_payload():
    payload = parse_payload({})
    assert payload.categories == {}
    assert payload.primary is None
    assert payload.extra_usage is None


@pytest.mark.parametrize('data', [
    [],
    'text',
    {'five_hour': 'high'},
    {'five_hour': {'utilization': '42'}},
    {'five_hour': {'utilization': True}},
    {'five_hour': {'utilization': float('nan')}},
    {'five_hour': {'utilization': 1, 'resets_at': 12345}},
    {'extra_usage': []},
    {'extra_usage': {'is_enabled': True, 'monthly_limit': 'lots'}},
])
def test_parse_rejects_unexpected_shapes(data):
    with pytest.raises(DecodeError) as exc_info:
        parse_payload(data)
    assert exc_info.value.token == 'json?'


@pytest.mark.parametrize('error, token', [
    (CredentialNotFoundError(), 'key?'),
    (CredentialUnreadableError(), 'key?'),
    (NetworkError('ConnectionError'), 'network?'),
    (HttpStatusError(401), 'auth?'),
    (HttpStatusError(403), 'auth?'),
    (HttpStatusError(429), 'rate limit?'),
    (HttpStatusError(500), 'http?'),
    (HttpStatusError(404), 'http?'),
    (DecodeError('body is not JSON'), 'json?'),
])
def test_error_tokens(error, token):
    assert isinstance(error, UsageError)
    assert error.token == token
    assert error.description
    assert error.alternate == (token == 'rate limit?')


def test_error_descriptions():
    assert str(HttpStatusError(502)) == 'HTTP error 502'
    assert HttpStatusError(502).hint is None
    assert HttpStatusError(401).hint
    assert NetworkError('Timeout').description == 'Network error: Timeout'
    assert NetworkError().description == 'Network error'
    assert DecodeError('x').description == 'Unexpected response: x'
    assert CredentialNotFoundError().hint
