"""
message.py — Messaging-app deep link channel.

    https://wa.me/27821112222?text=%F0%9F%9A%A8%20EMERGENCY%20ALERT...

The message must already be percent-encoded (composer.encoded_message).
The link opens in a new browsing context so the dialer opened by the
preceding call invocation is not replaced.
"""

from __future__ import annotations

import logging
from typing import Optional

from backend.app.core.config import settings
from backend.app.sos.channels.launchers import Launcher

logger = logging.getLogger(__name__)


def build_url(phone_digits: str, encoded_message: str, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.MESSAGING_BASE_URL).rstrip("/")
    return f"{base}/{phone_digits}?text={encoded_message}"


def invoke(launcher: Launcher, url: str) -> None:
    logger.debug("[MESSAGE] %s", url[:60])
    launcher.open(url, new_context=True)
