"""Cooperative cancellation for long-running simulations."""

from __future__ import annotations

import threading

from .errors import SimulationCancelledError


class CancellationToken:
    """Flag shared between a caller and one simulation run.

    The run checks it at every day boundary and before every oracle call.
    ``cancel`` may be called from any thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SimulationCancelledError(self.reason or "cancelled")
