"""Entry point: ``python -m claude_usage`` or ``claude-usage``."""
from __future__ import annotations

import logging
import os
import sys

from .config import LOG_FILE

log = logging.getLogger('claude_usage')


def main() -> None:
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=LOG_FILE,
        level=logging.DEBUG if os.environ.get('CLAUDE_USAGE_DEBUG') else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
    )

    from .app import ClaudeUsageApp

    try:
        ClaudeUsageApp().run()
    except Exception:
        log.exception('Claude Usage crashed')
        sys.exit(1)


if __name__ == '__main__':
    main()
