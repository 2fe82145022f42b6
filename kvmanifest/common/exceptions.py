"""
Custom Exception Classes for kvmanifest

Hierarchical exception structure for error handling across the manifest,
watch client and decoders.
"""


class KVManifestError(Exception):
    """Base exception for all kvmanifest errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(KVManifestError):
    """Configuration-related errors"""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(f"Config Error: {message}", recoverable)


class ConstructionError(KVManifestError):
    """Manifest could not be built; the discovery loop was never started"""

    def __init__(self, message: str):
        super().__init__(f"Construction Error: {message}", recoverable=True)


class WatchError(KVManifestError):
    """Remote watch failed (network, remote unavailable, bad response)"""

    def __init__(
        self,
        message: str,
        prefix: str | None = None,
        status_code: int | None = None,
    ):
        self.prefix = prefix
        self.status_code = status_code
        super().__init__(f"Watch Error: {message}", recoverable=True)


class KeyNotFoundError(KVManifestError, KeyError):
    """Key is absent from the current snapshot"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"key not exists: {key}", recoverable=True)

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.message


class NilEntryError(KVManifestError):
    """Key is present in the snapshot but its entry is None"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"nil entry stored for key: {key}", recoverable=False)


class DecodeError(KVManifestError, ValueError):
    """Raw value could not be converted to the requested type"""

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(f"Decode Error [{key}]: {message}", recoverable=False)
