"""
Progress reporting and cooperative cancellation

The importer only ever calls enter_frame() and user_cancelled() on its host.
"""

import threading
from typing import Optional, Protocol, runtime_checkable

from loguru import logger


@runtime_checkable
class ProgressReporter(Protocol):

    def enter_frame(self, fraction: float, message: str) -> None:
        """Advance by `fraction` of the current task and show `message`."""

    def user_cancelled(self) -> bool: ...


class NullProgress:
    """Reports nothing and never cancels"""

    def enter_frame(self, fraction: float, message: str) -> None:
        pass

    def user_cancelled(self) -> bool:
        return False


class LoggingProgress:
    """
    Logs progress messages with loguru.

    Repeated identical messages are logged once. Cancellation is driven by a
    threading.Event, e.g. set from a SIGINT handler.
    """

    def __init__(self, cancel_event: Optional[threading.Event] = None):
        self.cancel_event = cancel_event or threading.Event()
        self.completed = 0.0
        self._last_message = None

    def enter_frame(self, fraction: float, message: str) -> None:
        self.completed += fraction
        if message != self._last_message:
            logger.info(message)
            self._last_message = message

    def user_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()
