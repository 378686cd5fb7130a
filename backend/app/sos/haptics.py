"""
haptics.py — Vibration feedback backends.

Patterns alternate vibrate/pause durations in milliseconds, e.g.
``[200, 100, 200]`` = buzz 200 ms, pause 100 ms, buzz 200 ms.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

logger = logging.getLogger(__name__)

# Buzz-pause-buzz-pause-buzz when an SOS is confirmed
TRIGGER_PATTERN = [200, 100, 200, 100, 200]


class Haptics:
    """Base haptics backend. ``vibrate`` returns False when unsupported."""

    def vibrate(self, pattern: Sequence[int]) -> bool:
        raise NotImplementedError


class LoggingHaptics(Haptics):
    """Headless backend: records and logs patterns instead of buzzing."""

    def __init__(self) -> None:
        self.patterns: List[List[int]] = []

    def vibrate(self, pattern: Sequence[int]) -> bool:
        self.patterns.append(list(pattern))
        logger.debug("Vibrate %s", list(pattern))
        return True
