"""String key-value persistence for state that must survive restarts."""
from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path

log = logging.getLogger(__name__)


class MemoryStore:
    """In-memory store; also the base for ``JsonFileStore``."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._save()

    def _save(self) -> None:
        pass


class JsonFileStore(MemoryStore):
    """Store backed by a single JSON object on disk.

    A missing or corrupt file reads as an empty store.  Write failures
    are logged and otherwise ignored; the in-memory values stay current.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(self._load())

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as e:
            log.warning('State file %s unreadable (%s), starting empty', self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}

        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self) -> None:
        tmp = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix='.state-', suffix='.json')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self._data, f, indent=2)
            os.replace(tmp, self.path)
        except OSError:
            log.warning('Could not write state file %s', self.path, exc_info=True)
            if tmp is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp)
