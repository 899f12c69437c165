"""User-facing message channel (success / error toasts)."""

import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Toast:
    message: str
    kind: str  # "success" | "error" | "info"


class Toaster:
    """Instance-scoped toast dispatcher. Each workflow or page owns one."""

    def __init__(self):
        self.history: list[Toast] = []
        self._listeners: list[Callable[[Toast], None]] = []

    def subscribe(self, listener: Callable[[Toast], None]) -> Callable[[], None]:
        """Register a listener. Returns the function that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def show(self, message: str, kind: str = "info") -> Toast:
        toast = Toast(message=message, kind=kind)
        self.history.append(toast)
        if kind == "error":
            logger.warning(f"Toast: {message}")
        else:
            logger.info(f"Toast: {message}")
        for listener in list(self._listeners):
            listener(toast)
        return toast

    def success(self, message: str) -> Toast:
        return self.show(message, "success")

    def error(self, message: str) -> Toast:
        return self.show(message, "error")

    @property
    def last(self) -> Toast | None:
        return self.history[-1] if self.history else None

    def dispose(self):
        """Drop all listeners (page teardown)."""
        self._listeners.clear()
