"""Signal-driven shutdown for pmon."""

import signal
import threading
from collections.abc import Iterable
from types import FrameType
from typing import Any

from pmon.log import get_logger

logger = get_logger("shutdown")

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownController:
    """
    Turns termination signals into a one-shot cancellation event.

    The first signal sets the event; later ones are ignored. Handlers can
    only be installed from the main thread.
    """

    def __init__(self, signals: Iterable[signal.Signals] = DEFAULT_SIGNALS) -> None:
        self._signals = tuple(signals)
        self._event = threading.Event()
        self._lock = threading.RLock()
        self._received: int | None = None
        self._previous: dict[int, Any] = {}

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def received(self) -> int | None:
        """The signal number that triggered shutdown, if any."""
        return self._received

    def install(self) -> None:
        """Register handlers for the configured signals."""
        for signum in self._signals:
            if signum not in self._previous:
                self._previous[signum] = signal.signal(signum, self._handle)

    def restore(self) -> None:
        """Put back the handlers that were active before ``install``."""
        for signum, handler in self._previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._previous.clear()

    def trigger(self, signum: int | None = None) -> bool:
        """
        Request shutdown.

        Returns:
            True if this call cancelled, False if shutdown was already requested.
        """
        with self._lock:
            if self._event.is_set():
                logger.debug("Already shutting down, ignoring signal %s", signum)
                return False
            self._received = signum
            self._event.set()
        logger.info("Shutdown requested (signal %s)", signum)
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until shutdown is requested. Returns False on timeout."""
        return self._event.wait(timeout=timeout)

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        self.trigger(signum)

    def __enter__(self) -> "ShutdownController":
        self.install()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.restore()
