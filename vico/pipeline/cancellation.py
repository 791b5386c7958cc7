import signal
import threading
import logging
from pathlib import Path
from typing import Optional


class InFlightSlot:
    """The temp path of the encode currently running, if any.

    Set right before ffmpeg starts and cleared right after commit or discard.
    The interrupt path calls discard() to delete whatever is still there.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._path: Optional[Path] = None

    def set(self, path: Path) -> None:
        with self._lock:
            self._path = path

    def get(self) -> Optional[Path]:
        with self._lock:
            return self._path

    def clear(self) -> None:
        with self._lock:
            self._path = None

    def discard(self) -> Optional[Path]:
        """Deletes the in-flight file (if present), clears the slot and returns the deleted path."""
        with self._lock:
            path, self._path = self._path, None
        if path is not None and path.exists():
            path.unlink()
            return path
        return None


def install_signal_handlers(cancel_event: threading.Event) -> None:
    """Routes SIGINT/SIGTERM to cancel_event. Must run on the main thread."""
    logger = logging.getLogger(__name__)

    def _handler(signum, _frame):
        logger.info(f"Received signal {signum}, cancelling run")
        cancel_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
