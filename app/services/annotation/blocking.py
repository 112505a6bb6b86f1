"""
Reference-counted busy flag gating mutating operations
"""
from contextlib import contextmanager
from typing import Optional

DEFAULT_BLOCKING_MESSAGE = "Working..."


class BlockingCoordinator:
    """
    Counter of outstanding blocking operations

    Nested or overlapping operations (a model load still running while an
    inference starts) each call start() and stop(); the session is only
    unblocked once every start() has been matched.
    """

    def __init__(self):
        self.counter = 0
        self.message = ""

    @property
    def is_blocked(self) -> bool:
        return self.counter > 0

    def start(self, message: Optional[str] = None) -> None:
        self.message = message or DEFAULT_BLOCKING_MESSAGE
        self.counter += 1

    def stop(self) -> None:
        self.counter = max(0, self.counter - 1)

    @contextmanager
    def blocking(self, message: Optional[str] = None):
        """Hold the block for the duration of a with-block"""
        self.start(message)
        try:
            yield self
        finally:
            self.stop()

    def reset(self) -> None:
        self.counter = 0
        self.message = ""
