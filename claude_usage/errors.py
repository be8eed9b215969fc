"""
Fetch Errors
============

Every failure of a usage fetch is raised as a ``UsageError`` subclass.
Each kind carries a short menu-bar token, a description for the
dropdown and an optional hint.  The mapping is static data.
"""
from __future__ import annotations


class UsageError(Exception):
    """Base class for all recoverable fetch failures."""

    token = 'error?'
    description = 'Unexpected error'
    hint: str | None = None
    alternate = False  # Render with the alternate (warning) color

    def __str__(self) -> str:
        return self.description


class CredentialNotFoundError(UsageError):
    token = 'key?'
    description = 'No Claude Code credentials found'
    hint = 'Install Claude Code and run "claude" once to log in.'


class CredentialUnreadableError(UsageError):
    token = 'key?'
    description = 'Claude Code credentials could not be read'
    hint = 'Log out and back in to Claude Code to refresh the stored token.'


class NetworkError(UsageError):
    token = 'network?'
    hint = 'Check your internet connection.'

    def __init__(self, cause: object = None) -> None:
        super().__init__(cause)
        self.cause = cause

    @property
    def description(self) -> str:  # type: ignore[override]
        if self.cause:
            return f'Network error: {self.cause}'
        return 'Network error'


# status code -> (token, description, hint, alternate)
_HTTP_STATUS: dict[int, tuple[str, str, str | None, bool]] = {
    401: ('auth?', 'Authentication expired', 'Run "claude" to log in again.', False),
    403: ('auth?', 'Access denied', 'Run "claude" to log in again.', False),
    429: ('rate limit?', 'Too many requests', 'Polling will continue at the normal interval.', True),
}


class HttpStatusError(UsageError):

    def __init__(self, code: int) -> None:
        super().__init__(code)
        self.code = code
        token, description, hint, alternate = _HTTP_STATUS.get(
            code, ('http?', f'HTTP error {code}', None, False),
        )
        self.token = token
        self.description = description
        self.hint = hint
        self.alternate = alternate


class DecodeError(UsageError):
    token = 'json?'
    hint = 'The usage API may have changed. Check for an update.'

    def __init__(self, cause: object = None) -> None:
        super().__init__(cause)
        self.cause = cause

    @property
    def description(self) -> str:  # type: ignore[override]
        if self.cause:
            return f'Unexpected response: {self.cause}'
        return 'Unexpected response'
