from __future__ import annotations

import threading
from dataclasses import dataclass, field


@dataclass
class CancelToken:
    """Caller-owned flag checked by the HTTP layer before and between attempts."""

    reason: str | None = None
    _event: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self, reason: str | None = None) -> None:
        self.reason = reason or "cancelled by caller"
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if cancelled meanwhile."""
        return self._event.wait(seconds)
