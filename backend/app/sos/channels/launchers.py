"""
launchers.py — Hand a URI to the platform.

    simulation  log + record, always succeeds (development / headless)
    browser     stdlib webbrowser (tel: / https: handlers of the desktop)

A launcher returns nothing on success and raises
ChannelInvocationFailure when the platform refuses the URI.
"""

from __future__ import annotations

import logging
import webbrowser
from typing import List, Optional, Tuple

from backend.app.core.config import settings
from backend.app.core.errors import ChannelInvocationFailure

logger = logging.getLogger(__name__)


class Launcher:
    name = "abstract"

    def open(self, url: str, *, new_context: bool = False) -> None:
        raise NotImplementedError


class SimulationLauncher(Launcher):
    """Records every opened URI instead of leaving the process."""

    name = "simulation"

    def __init__(self) -> None:
        self.opened: List[Tuple[str, bool]] = []

    def open(self, url: str, *, new_context: bool = False) -> None:
        self.opened.append((url, new_context))
        logger.info(
            "[LAUNCH/simulation] %s%s",
            url[:80] + ("..." if len(url) > 80 else ""),
            " (new context)" if new_context else "",
        )


class BrowserLauncher(Launcher):
    """Delegates to the desktop's registered URI handlers."""

    name = "browser"

    def open(self, url: str, *, new_context: bool = False) -> None:
        # new=2 → new tab where supported, new=0 → same window
        opened = webbrowser.open(url, new=2 if new_context else 0)
        if not opened:
            scheme = url.split(":", 1)[0]
            raise ChannelInvocationFailure(scheme, url, "no handler accepted the URI")


def get_launcher(provider: Optional[str] = None) -> Launcher:
    provider = provider or settings.CHANNEL_PROVIDER
    if provider == "simulation":
        return SimulationLauncher()
    if provider == "browser":
        return BrowserLauncher()
    raise ValueError(f"Unknown CHANNEL_PROVIDER: {provider}")
