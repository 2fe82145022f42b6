"""
Manifest - locally cached view of a Consul KV prefix

Responsible for:
- Building the watch client and starting the discovery loop
- Point lookups against the current snapshot
- Lifecycle (close) and connection diagnostics
"""

import logging

from kvmanifest.common.config import ManifestConfig, ManifestOption
from kvmanifest.common.exceptions import (
    ConstructionError,
    KeyNotFoundError,
    KVManifestError,
    NilEntryError,
)
from kvmanifest.common.logging_setup import get_service_logger

from .discovery import DiscoveryLoop
from .snapshot import Entry, Snapshot
from .watch import ConsulWatchClient, WatchClient

KEY_SEPARATOR = "/"


class Manifest:
    """
    Concurrency-safe accessor over a watched key prefix.

    Usage:
        manifest = Manifest(ManifestConfig(key_prefix="app/config"), with_span(3))
        value = as_string(manifest.acquire("foo"))
        manifest.close()
    """

    def __init__(
        self,
        config: ManifestConfig | None = None,
        *options: ManifestOption,
        watch_client: WatchClient | None = None,
    ):
        self.watch_client: WatchClient | None = None
        try:
            cfg = (config or ManifestConfig()).with_defaults()
            for option in options:
                cfg = option(cfg)
            cfg.validate()

            self.config = cfg
            self.logger: logging.Logger | logging.LoggerAdapter = (
                cfg.logger or get_service_logger("manifest")
            )
            self.watch_client = watch_client or ConsulWatchClient.from_config(cfg)
            self.snapshot = Snapshot()
            self._discovery = DiscoveryLoop(
                watch_client=self.watch_client,
                snapshot=self.snapshot,
                key_prefix=cfg.key_prefix,
                span=cfg.discovery_span,
                logger=self.logger,
            )
            self._discovery.start()
        except Exception as e:
            self._release_watch_client()
            if isinstance(e, ConstructionError):
                raise
            if isinstance(e, KVManifestError):
                raise ConstructionError(e.message) from e
            raise ConstructionError(f"{type(e).__name__}: {e}") from e

        self.logger.info(
            f"Manifest started (prefix: {cfg.key_prefix})",
            extra={"key_prefix": cfg.key_prefix, "address": cfg.address},
        )

    def __enter__(self) -> "Manifest":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def is_running(self) -> bool:
        return self._discovery.is_running

    def compose_key(self, key: str) -> str:
        """Caller-relative key -> fully-qualified key"""
        return self.config.key_prefix + KEY_SEPARATOR + key.lstrip(KEY_SEPARATOR)

    def acquire(self, key: str) -> Entry:
        """
        Return the entry stored under <prefix>/<key>.

        Raises:
            KeyNotFoundError: key absent from the current snapshot
            NilEntryError: key present but its entry is None
        """
        full_key = self.compose_key(key)
        present, entry = self.snapshot.lookup(full_key)

        if not present:
            raise KeyNotFoundError(full_key)
        if entry is None:
            raise NilEntryError(full_key)

        return entry

    def wait_ready(self, timeout: float | None = None) -> bool:
        """Block until the first successful load. Returns False on timeout."""
        return self._discovery.ready.wait(timeout)

    def close(self) -> None:
        """
        Signal the discovery loop to stop and return immediately.

        Safe to call more than once. The snapshot is cleared by the loop
        thread once it observes the signal.
        """
        if not self._discovery.stopped:
            self.logger.info(
                "Manifest closing",
                extra={"key_prefix": self.config.key_prefix},
            )
        self._discovery.stop()

    def _release_watch_client(self) -> None:
        """Close the watch client of a construction that failed"""
        if self.watch_client is None:
            return
        try:
            self.watch_client.close()
        except Exception as e:
            get_service_logger("manifest").warning(f"Error closing watch client: {e}")

    def describe_connection(self) -> list[str]:
        """Effective connection parameters, one key=value per line"""
        return [
            f"Address={self.config.address}",
            f"Scheme={self.config.scheme}",
            f"Datacenter={self.config.datacenter}",
            f"KeyPrefix={self.config.key_prefix}",
        ]

    def generate_env(self) -> list[str]:
        """Consul CLI environment for the same agent, plus datacenter and prefix"""
        return [
            f"CONSUL_HTTP_ADDR={self.config.host}",
            f"CONSUL_HTTP_TOKEN={self.config.token or ''}",
            f"CONSUL_HTTP_SSL={str(self.config.scheme == 'https').lower()}",
            f"CONSUL_HTTP_SSL_VERIFY={str(self.config.verify).lower()}",
            f"Datacenter={self.config.datacenter}",
            f"KeyPrefix={self.config.key_prefix}",
        ]
