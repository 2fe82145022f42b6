"""
kvmanifest - locally cached, eventually-consistent view of a Consul KV prefix.

    from kvmanifest import Manifest, ManifestConfig, with_span, as_string

    manifest = Manifest(ManifestConfig(key_prefix="app/config"), with_span(3))
    manifest.wait_ready(timeout=5)
    print(as_string(manifest.acquire("foo")))
    manifest.close()
"""

from .common import (
    ConfigError,
    ConstructionError,
    DecodeError,
    KeyNotFoundError,
    KVManifestError,
    ManifestConfig,
    NilEntryError,
    WatchError,
    get_service_logger,
    load_manifest_config,
    with_address,
    with_datacenter,
    with_key_prefix,
    with_logger,
    with_span,
    with_token,
)
from .decoders import (
    as_bool,
    as_byte_slices,
    as_bytes,
    as_int,
    as_int64,
    as_json,
    as_set,
    as_string,
    as_strings,
    as_toml,
    as_yaml,
)
from .manifest import ConsulWatchClient, Entry, FetchResult, Manifest, WatchClient

__version__ = "1.0.0"

__all__ = [
    "Manifest",
    "ManifestConfig",
    "Entry",
    "FetchResult",
    "WatchClient",
    "ConsulWatchClient",
    "load_manifest_config",
    "with_address",
    "with_datacenter",
    "with_key_prefix",
    "with_logger",
    "with_span",
    "with_token",
    "get_service_logger",
    "KVManifestError",
    "ConfigError",
    "ConstructionError",
    "WatchError",
    "KeyNotFoundError",
    "NilEntryError",
    "DecodeError",
    "as_bool",
    "as_byte_slices",
    "as_bytes",
    "as_int",
    "as_int64",
    "as_json",
    "as_set",
    "as_string",
    "as_strings",
    "as_toml",
    "as_yaml",
]
