"""
Threshold Alerts
================

Two independent alert strategies:

* boundary crossing - each configured threshold fires at most once per
  usage cycle, tracked in ``AlertState.fired``;
* reset to zero - a category that drops from above 0% to exactly 0%
  fires a reset alert, tracked per category in ``AlertState.previous``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

log = logging.getLogger(__name__)


@dataclass
class AlertState:
    fired: set[int] = field(default_factory=set)
    previous: dict[str, int] = field(default_factory=dict)

    def check_thresholds(self, thresholds: list[int], pct: int) -> list[int]:
        """Return thresholds newly reached by *pct* and mark them as fired."""
        crossed = []
        for threshold in sorted(thresholds):
            if pct >= threshold and threshold not in self.fired:
                self.fired.add(threshold)
                crossed.append(threshold)

        return crossed

    def check_resets(self, pcts: dict[str, int]) -> list[str]:
        """Return categories that dropped to 0% and remember the new values.

        Categories missing from *pcts* keep their previous value.
        """
        reset = [key for key, pct in pcts.items() if pct == 0 and self.previous.get(key, 0) > 0]
        self.previous.update(pcts)

        return reset

    def new_cycle(self) -> None:
        self.fired.clear()

    # ── Persistence ──

    def dumps_fired(self) -> str:
        return json.dumps(sorted(self.fired))

    def dumps_previous(self) -> str:
        return json.dumps(self.previous)

    @classmethod
    def loads(cls, fired_raw: str | None, previous_raw: str | None) -> AlertState:
        state = cls()
        try:
            if fired_raw:
                state.fired = {int(v) for v in json.loads(fired_raw)}
            if previous_raw:
                state.previous = {str(k): int(v) for k, v in json.loads(previous_raw).items()}
        except (json.JSONDecodeError, TypeError, ValueError, AttributeError):
            log.warning('Alert state is corrupt, starting over')
            return cls()

        return state
