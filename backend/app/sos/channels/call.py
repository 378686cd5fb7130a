"""
call.py — Voice-call channel via the ``tel:`` URI scheme.

    tel:27821112222

Opening the URI hands the number to the device dialer; it does not
place or confirm the call.
"""

from __future__ import annotations

import logging
import re

from backend.app.sos.channels.launchers import Launcher

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(phone: str) -> str:
    """Strip every non-digit: ``"+27 82 111-2222"`` → ``"27821112222"``."""
    return _NON_DIGITS.sub("", phone)


def build_url(phone_digits: str) -> str:
    return f"tel:{phone_digits}"


def invoke(launcher: Launcher, url: str) -> None:
    """Open the dialer in the current context."""
    logger.debug("[CALL] %s", url)
    launcher.open(url, new_context=False)
