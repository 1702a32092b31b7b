"""
Time Interface.

Invitation timestamps are epoch seconds, so the orchestrator only needs
a source of "now" that tests can pin.
"""

from __future__ import annotations

from typing import Protocol


class TimePort(Protocol):
    """Clock interface."""

    def now_unix(self) -> int:
        """Get current time as whole epoch seconds."""
        ...
