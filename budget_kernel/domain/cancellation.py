"""
CancellationToken -- process-wide, cancellable timeline.

Every wait in the payroll engine goes through ``wait()`` so that cancelling
the token wakes it immediately.  The token never interrupts work that has
already started; callers check it at safe points (before a transaction,
between retry attempts).
"""

from __future__ import annotations

import threading

from budget_kernel.exceptions import PayrollRunCancelledError


class CancellationToken:
    """Thin wrapper over ``threading.Event`` with wait-or-cancel semantics."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled before or during."""
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(timeout=seconds)

    def raise_if_cancelled(self, operation: str) -> None:
        if self._event.is_set():
            raise PayrollRunCancelledError(operation)
