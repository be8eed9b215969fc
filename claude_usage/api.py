"""
Usage API Client
================

Reads the Claude Code OAuth token (macOS keychain first, then
``~/.claude/.credentials.json``) and fetches the usage endpoint.
Every failure is raised as a ``UsageError`` subclass.
"""
from __future__ import annotations

import json
import logging
import re
import subprocess
from typing import Any

import requests

from . import __version__
from .config import API_URL_USAGE, CLAUDE_CREDENTIALS, KEYCHAIN_SERVICE, REQUEST_TIMEOUT
from .errors import CredentialNotFoundError, CredentialUnreadableError, DecodeError, HttpStatusError, NetworkError
from .models import UsagePayload, parse_payload

log = logging.getLogger(__name__)


def _keychain_credentials() -> str | None:
    """Return the raw credentials JSON from the macOS keychain, or None."""
    try:
        result = subprocess.run(
            ['/usr/bin/security', 'find-generic-password', '-s', KEYCHAIN_SERVICE, '-w'],
            capture_output=True, text=True, timeout=REQUEST_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired):
        log.debug('Keychain not available', exc_info=True)
        return None
    if result.returncode != 0:
        return None

    return result.stdout.strip() or None


def _file_credentials() -> str | None:
    try:
        return CLAUDE_CREDENTIALS.read_text(encoding='utf-8')
    except FileNotFoundError:
        return None
    except OSError as e:
        raise CredentialUnreadableError() from e


def read_token() -> str:
    """Return the Claude Code OAuth access token.

    Raises
    ------
    CredentialNotFoundError
        Neither the keychain item nor the credentials file exists.
    CredentialUnreadableError
        Credentials exist but contain no usable access token.
    """
    raw = _keychain_credentials() or _file_credentials()
    if raw is None:
        raise CredentialNotFoundError()

    try:
        creds = json.loads(raw)
        token = creds['claudeAiOauth']['accessToken']
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise CredentialUnreadableError() from e
    if not isinstance(token, str) or not token:
        raise CredentialUnreadableError()

    return token


def api_headers(token: str) -> dict[str, str]:
    return {
        'Authorization': f'Bearer {token}',
        'Content-Type': 'application/json',
        'User-Agent': f'claude-usage/{__version__}',
        'anthropic-beta': 'oauth-2025-04-20',
    }


def fetch_usage() -> UsagePayload:
    """Fetch and parse usage data from the Anthropic OAuth usage API."""
    headers = api_headers(read_token())

    try:
        resp = requests.get(API_URL_USAGE, headers=headers, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
    except requests.HTTPError as e:
        code = e.response.status_code if e.response is not None else 0
        raise HttpStatusError(code) from e
    except requests.RequestException as e:
        raise NetworkError(e.__class__.__name__) from e

    try:
        data: Any = resp.json()
    except ValueError as e:
        raise DecodeError('body is not JSON') from e

    log.debug('Usage response: %s', data)
    return parse_payload(data)


# ── Update check ──────────────────────────────────────────────


def _version_parts(version: str) -> list[int]:
    base = version.removeprefix('v').split('-', 1)[0]
    return [int(p) for p in base.split('.') if p.isdigit()]


def _is_prerelease(version: str) -> bool:
    return '-' in version.removeprefix('v')


def is_newer_version(remote: str, local: str) -> bool:
    """Return True if *remote* is a newer release than *local*.

    Versions are dotted numbers with an optional ``v`` prefix; missing
    parts count as 0.  With equal numbers a clean release is newer than
    a pre-release (``2.8.1`` > ``2.8.1-beta``), two pre-releases are equal.
    """
    ours, theirs = _version_parts(local), _version_parts(remote)
    width = max(len(ours), len(theirs))
    ours += [0] * (width - len(ours))
    theirs += [0] * (width - len(theirs))
    if theirs != ours:
        return theirs > ours

    return _is_prerelease(local) and not _is_prerelease(remote)


def fetch_latest_version(url: str) -> str | None:
    """Return the latest release tag from a GitHub-style releases endpoint, or None."""
    if not url:
        return None

    try:
        resp = requests.get(url, headers={'Accept': 'application/vnd.github+json'}, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        tag = resp.json().get('tag_name')
    except (requests.RequestException, ValueError, AttributeError):
        log.debug('Update check failed', exc_info=True)
        return None

    if not isinstance(tag, str) or not re.match(r'v?\d', tag):
        return None
    return tag
