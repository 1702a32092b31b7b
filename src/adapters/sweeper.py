"""
Expiry sweeper.

Background thread that periodically deletes expired, unused invitations.
Each pass calls InvitationService.cleanup_expired; a failing pass is logged
and the next one runs on schedule.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from src.components.invitations.models import CleanupResult

logger = logging.getLogger(__name__)


class CleanupPort(Protocol):
    def cleanup_expired(self) -> CleanupResult:
        ...


class ExpirySweeper:
    """Runs the expiry sweep every interval_seconds on a daemon thread."""

    def __init__(
        self,
        service: CleanupPort,
        interval_seconds: float = 3600.0,
    ) -> None:
        self._service = service
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False

    def start(self) -> None:
        """Start the background sweeper."""
        if self._running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop, name="invitation-sweeper", daemon=True
        )
        self._thread.start()
        self._running = True
        logger.info("Expiry sweeper started (interval: %.1fs)", self._interval)

    def stop(self) -> None:
        """Stop the sweeper gracefully."""
        if not self._running:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
        self._running = False
        logger.info("Expiry sweeper stopped")

    def run_once(self) -> CleanupResult:
        """Sweep immediately on the calling thread."""
        return self._service.cleanup_expired()

    @property
    def is_running(self) -> bool:
        return self._running

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(timeout=self._interval):
            try:
                self.run_once()
            except Exception:
                logger.exception("Error in expiry sweeper loop")
