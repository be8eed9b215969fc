"""Detect when the provider starts a new usage cycle."""
from __future__ import annotations


def detect_transition(stored_marker: str | None, resets_at: str | None) -> tuple[bool, str | None]:
    """Compare the primary category's reset time with the last one seen.

    The reset timestamp is compared as the raw string.  A missing reset
    time never clears the stored marker, otherwise the next fetch that
    carries the old value again would look like a new cycle.

    Parameters
    ----------
    stored_marker : str or None
        ``resets_at`` of the last cycle seen.
    resets_at : str or None
        ``resets_at`` from the current fetch.

    Returns
    -------
    tuple of (bool, str or None)
        Whether a new cycle started, and the marker to store.
    """
    if resets_at is None:
        return False, stored_marker

    return resets_at != stored_marker, resets_at
