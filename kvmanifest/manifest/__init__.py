"""
Manifest - Consul KV configuration cache

Responsibilities:
- Long-poll a key prefix and keep a local snapshot of it
- Retry failed watches with linear backoff
- Serve point lookups while the snapshot is being refreshed
"""

from .discovery import MAX_RETRY_TIMES, DiscoveryLoop, backoff_delay
from .service import Manifest
from .snapshot import Entry, ReadWriteLock, Snapshot
from .watch import ConsulWatchClient, FetchResult, WatchClient

__all__ = [
    "MAX_RETRY_TIMES",
    "DiscoveryLoop",
    "backoff_delay",
    "Manifest",
    "Entry",
    "ReadWriteLock",
    "Snapshot",
    "ConsulWatchClient",
    "FetchResult",
    "WatchClient",
]
