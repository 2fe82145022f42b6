"""
Common Utilities

Shared modules used across the package:
- config.py - Configuration dataclass, options and loaders
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
"""

from .config import (
    DEFAULT_ADDRESS,
    DEFAULT_DATACENTER,
    DEFAULT_DISCOVERY_SPAN,
    DEFAULT_KEY_PREFIX,
    ManifestConfig,
    ManifestOption,
    load_manifest_config,
    with_address,
    with_datacenter,
    with_key_prefix,
    with_logger,
    with_span,
    with_token,
)
from .exceptions import (
    KVManifestError,
    ConfigError,
    ConstructionError,
    WatchError,
    KeyNotFoundError,
    NilEntryError,
    DecodeError,
)
from .logging_setup import (
    JsonFormatter,
    ServiceLoggerAdapter,
    setup_logging,
    get_service_logger,
)

__all__ = [
    # Config
    "DEFAULT_ADDRESS",
    "DEFAULT_DATACENTER",
    "DEFAULT_DISCOVERY_SPAN",
    "DEFAULT_KEY_PREFIX",
    "ManifestConfig",
    "ManifestOption",
    "load_manifest_config",
    "with_address",
    "with_datacenter",
    "with_key_prefix",
    "with_logger",
    "with_span",
    "with_token",
    # Exceptions
    "KVManifestError",
    "ConfigError",
    "ConstructionError",
    "WatchError",
    "KeyNotFoundError",
    "NilEntryError",
    "DecodeError",
    # Logging
    "JsonFormatter",
    "ServiceLoggerAdapter",
    "setup_logging",
    "get_service_logger",
]
