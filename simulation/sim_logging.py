"""Session activity logging.

``ActivityLog`` keeps a short in-memory list of timestamped, human-readable
lines (newest first) for the presentation layer. Each line is mirrored to the
module logger; configuring handlers is left to the host application.

Nothing is written to disk; session state is ephemeral.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Callable

logger = logging.getLogger(__name__)


class ActivityLog:
    """Bounded, newest-first list of activity lines for one session.

    Lines look like ``[12:00:05] Bought 2x AAPL at 100.00 (cost 200.00).``.
    Older lines fall off once ``max_lines`` is reached.
    """

    def __init__(
        self,
        max_lines: int = 50,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._lines: deque[str] = deque(maxlen=max_lines)
        self._clock = clock
        self._status = "Waiting to start..."

    def record(self, message: str, level: int = logging.INFO) -> str:
        """Prepend a timestamped line and mirror it to the logger."""
        line = f"[{self._clock():%H:%M:%S}] {message}"
        self._lines.appendleft(line)
        logger.log(level, message)
        return line

    def set_status(self, status: str) -> None:
        """Replace the single "current action" line."""
        self._status = status
        logger.debug("Status: %s", status)

    @property
    def status(self) -> str:
        return self._status

    @property
    def lines(self) -> list[str]:
        return list(self._lines)
