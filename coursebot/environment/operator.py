"""Blocking hand-off to the human running the bot."""

from __future__ import annotations

import logging
import sys

from plyer import notification

logger = logging.getLogger(__name__)

APP_NAME = "coursebot"


def _notify(message: str) -> None:
    try:
        notification.notify(title=f"{APP_NAME}: attention needed", message=message[:256],
                            app_name=APP_NAME, timeout=10)
    except Exception as e:
        # No notification backend on this machine (headless CI, no dbus, ...).
        logger.debug("Desktop notification failed: %s", e)


def wait_for_operator(message: str) -> None:
    """Log *message*, alert the operator and block until Enter is pressed."""
    logger.warning("Operator needed: %s", message)
    _notify(message)
    sys.stdout.write("\a")
    sys.stdout.flush()
    input("Press Enter to continue...")
