"""
Adaptive Polling
================

Polls faster while usage is climbing and falls back to the user's base
interval once it has been flat for a while.

The tier ladder only contains intervals strictly shorter than the base
interval, fastest first.  Tier index ``len(ladder)`` means "idle": poll
at the base interval.  Adaptive polling never polls slower than the
base interval the user chose.
"""
from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass

from .config import POLL_TIERS, POLL_UNCHANGED_STEPS

log = logging.getLogger(__name__)


class PollStatus(enum.Enum):
    UP = 'up'  # Usage increasing, polling faster
    DOWN = 'down'  # Cooling down towards the base interval
    IDLE = 'idle'  # At the base interval

    @property
    def symbol(self) -> str:
        return {'up': '↑', 'down': '↓', 'idle': '·'}[self.value]


def effective_ladder(base_interval: int, tiers: tuple[int, ...] = POLL_TIERS) -> list[int]:
    """Return the tiers faster than *base_interval*, fastest first."""
    return sorted(t for t in tiers if t < base_interval)


@dataclass
class DynamicRefreshState:
    tier: int
    previous: int | None = None
    unchanged: int = 0
    status: PollStatus = PollStatus.IDLE

    @classmethod
    def initial(cls, base_interval: int) -> DynamicRefreshState:
        """Start at the base interval, not the fastest tier."""
        return cls(tier=len(effective_ladder(base_interval)))

    def advance(self, pct: int, idle_tier: int) -> None:
        """Step the tier index after a successful fetch.

        Parameters
        ----------
        pct : int
            Current percentage of the primary category.
        idle_tier : int
            Length of the effective ladder, i.e. the index of the base rate.
        """
        if self.previous is None:
            self.previous = pct
            return

        if pct > self.previous:
            self.tier = max(0, self.tier - 1)
            self.unchanged = 0
            self.status = PollStatus.UP
        elif pct == self.previous:
            self.unchanged += 1
            if self.unchanged >= POLL_UNCHANGED_STEPS:
                self.tier = min(idle_tier, self.tier + 1)
                self.unchanged = 0
            self.status = PollStatus.IDLE if self.tier == idle_tier else PollStatus.DOWN
        else:
            # A drop means a reset; the cycle detector resets the tier
            self.unchanged = 0
            self.status = PollStatus.IDLE

        self.previous = pct

    def dumps(self) -> str:
        return json.dumps({
            'tier': self.tier, 'previous': self.previous,
            'unchanged': self.unchanged, 'status': self.status.value,
        })

    @classmethod
    def loads(cls, raw: str | None, base_interval: int) -> DynamicRefreshState:
        """Restore a stored state, clamping the tier to the current ladder."""
        idle_tier = len(effective_ladder(base_interval))
        if not raw:
            return cls(tier=idle_tier)

        try:
            data = json.loads(raw)
            previous = data['previous']
            state = cls(
                tier=min(idle_tier, max(0, int(data['tier']))),
                previous=None if previous is None else int(previous),
                unchanged=max(0, int(data['unchanged'])),
                status=PollStatus(data['status']),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            log.warning('Adaptive polling state is corrupt, starting over')
            return cls(tier=idle_tier)

        return state


def effective_interval(state: DynamicRefreshState, enabled: bool, base_interval: int) -> int:
    """Return the interval until the next poll in seconds."""
    ladder = effective_ladder(base_interval)
    if not enabled or not ladder or state.tier >= len(ladder):
        return base_interval

    return ladder[state.tier]
