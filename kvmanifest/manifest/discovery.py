"""
Discovery Loop

Background thread that long-polls the watch client and merges every
material change into the snapshot.

Failures are retried forever with linear backoff (1s, 2s, ... 10s).
Only an explicit stop ends the loop.
"""

import logging
import threading
from typing import Callable

from kvmanifest.common.exceptions import WatchError
from kvmanifest.common.logging_setup import get_service_logger

from .snapshot import Snapshot
from .watch import WatchClient

# Retry counter cap; also the longest backoff in seconds
MAX_RETRY_TIMES = 10


def backoff_delay(retry_count: int) -> float:
    """Seconds to wait after the retry_count-th consecutive failure"""
    return float(min(max(retry_count, 0), MAX_RETRY_TIMES))


class DiscoveryLoop:
    """
    Watch/retry/merge engine.

    The cursor and retry counter are private to the loop thread. The
    snapshot is the only state shared with readers.
    """

    def __init__(
        self,
        watch_client: WatchClient,
        snapshot: Snapshot,
        key_prefix: str,
        span: float,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        sleep: Callable[[float], object] | None = None,
    ):
        self.watch_client = watch_client
        self.snapshot = snapshot
        self.key_prefix = key_prefix
        self.span = span
        self.logger = logger or get_service_logger("manifest.discovery")

        self.cursor = 0
        self.retry_count = 0

        self._stop_event = threading.Event()
        self.ready = threading.Event()
        # Backoff sleep wakes early on stop
        self._sleep = sleep or self._stop_event.wait
        self._thread: threading.Thread | None = None

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Spawn the loop thread"""
        if self._thread is not None:
            return

        self._thread = threading.Thread(
            target=self.run,
            name=f"kvmanifest-discovery[{self.key_prefix}]",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """
        Signal the loop to stop. Never blocks and may be called repeatedly.

        An in-flight fetch completes before the loop sees the signal.
        """
        self._stop_event.set()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the loop thread to exit. Returns True if it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def run(self) -> None:
        """Loop body; runs on the discovery thread until stopped"""
        try:
            while not self._stop_event.is_set():
                delay = self.poll_once()
                if delay > 0:
                    self._sleep(delay)
        finally:
            self._shutdown()

    def poll_once(self) -> float:
        """
        Run one fetch/apply step.

        Returns:
            Backoff delay before the next attempt (0 after a success)
        """
        try:
            result = self.watch_client.fetch(self.key_prefix, self.cursor, self.span)
        except WatchError as e:
            return self._on_failure(e)
        except Exception as e:
            # Anything else is retried too, with the traceback attached
            return self._on_failure(e, exc_info=True)

        self.retry_count = 0

        if result.index != self.cursor:
            topic = "service load success" if self.cursor == 0 else "service update success"
            self.cursor = result.index
            merged = self.snapshot.merge(result.entries)

            self.logger.info(
                topic,
                extra={
                    "key_prefix": self.key_prefix,
                    "index": result.index,
                    "entry_count": merged,
                },
            )
            self.ready.set()

        return 0.0

    def _on_failure(self, error: Exception, exc_info: bool = False) -> float:
        if self.retry_count < MAX_RETRY_TIMES:
            self.retry_count += 1

        delay = backoff_delay(self.retry_count)
        self.logger.warning(
            "service update fail",
            exc_info=exc_info,
            extra={
                "key_prefix": self.key_prefix,
                "error": str(error),
                "retry_count": self.retry_count,
                "backoff_s": delay,
            },
        )
        return delay

    def _shutdown(self) -> None:
        self.logger.info("service stop", extra={"key_prefix": self.key_prefix})
        self.snapshot.clear()
        try:
            self.watch_client.close()
        except Exception as e:
            self.logger.warning(f"Error closing watch client: {e}")
