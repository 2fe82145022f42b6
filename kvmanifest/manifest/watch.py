"""
Remote Watch Client

Blocking "list keys under prefix" query against Consul's KV HTTP API.

A request carrying `index=N` is held by the server until the namespace
index moves past N or the wait time elapses, then the full entry set
under the prefix is returned together with the current index.
"""

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from kvmanifest.common.config import ManifestConfig
from kvmanifest.common.exceptions import WatchError
from kvmanifest.common.logging_setup import get_service_logger

from .snapshot import Entry

INDEX_HEADER = "X-Consul-Index"
TOKEN_HEADER = "X-Consul-Token"
# Extra read timeout on top of the wait, beyond the server's wait/16 jitter
TIMEOUT_MARGIN_SECONDS = 5.0


@dataclass
class FetchResult:
    """Entries under a prefix as of `index`"""
    entries: list[Entry] = field(default_factory=list)
    index: int = 0


class WatchClient(Protocol):
    """Collaborator used by the discovery loop"""

    def fetch(self, prefix: str, cursor: int, max_wait: float) -> FetchResult:
        """
        Block up to max_wait seconds for a change past cursor.

        Raises:
            WatchError: on any connectivity or protocol failure
        """
        ...

    def close(self) -> None:
        ...


class ConsulWatchClient:
    """
    Consul KV binding of the watch client.

    Reuses a single HTTP client across long-polls.
    """

    def __init__(
        self,
        address: str,
        datacenter: str,
        token: str | None = None,
        verify: bool = True,
        transport: httpx.BaseTransport | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.address = address.rstrip("/")
        self.datacenter = datacenter
        self.token = token
        self.verify = verify
        self.logger = logger or get_service_logger("manifest.watch")

        headers = {"Accept": "application/json"}
        if token:
            headers[TOKEN_HEADER] = token

        self._client = httpx.Client(
            base_url=self.address,
            headers=headers,
            verify=verify,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: ManifestConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> "ConsulWatchClient":
        return cls(
            address=config.address,
            datacenter=config.datacenter,
            token=config.token,
            verify=config.verify,
            transport=transport,
            logger=config.logger,
        )

    def close(self) -> None:
        """Close HTTP client"""
        if not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> "ConsulWatchClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def fetch(self, prefix: str, cursor: int, max_wait: float) -> FetchResult:
        """
        List all keys under prefix, blocking while the index equals cursor.

        A 404 is Consul's answer for an empty prefix and yields no entries.
        """
        params = {
            "recurse": "true",
            "dc": self.datacenter,
            "index": str(cursor),
            "wait": f"{int(max_wait * 1000)}ms",
        }
        timeout = httpx.Timeout(
            10.0,
            read=max_wait + max_wait / 16 + TIMEOUT_MARGIN_SECONDS,
        )

        try:
            response = self._client.get(
                f"/v1/kv/{prefix.lstrip('/')}",
                params=params,
                timeout=timeout,
            )
        except httpx.HTTPError as e:
            raise WatchError(f"request failed: {e}", prefix=prefix) from e

        if response.status_code == 404:
            return FetchResult(entries=[], index=self._parse_index(response, prefix))

        if response.is_error:
            raise WatchError(
                f"unexpected response {response.status_code}: {response.text[:200]}",
                prefix=prefix,
                status_code=response.status_code,
            )

        index = self._parse_index(response, prefix)

        try:
            payload = response.json()
        except ValueError as e:
            raise WatchError(f"malformed response body: {e}", prefix=prefix) from e

        if payload is None:
            payload = []
        if not isinstance(payload, list):
            raise WatchError("response body is not a list", prefix=prefix)

        entries = [self._parse_entry(item, prefix) for item in payload]

        self.logger.debug(
            f"Fetched {len(entries)} entries under {prefix} (index: {index})",
            extra={"key_prefix": prefix, "index": index, "entry_count": len(entries)},
        )

        return FetchResult(entries=entries, index=index)

    def _parse_index(self, response: httpx.Response, prefix: str) -> int:
        raw = response.headers.get(INDEX_HEADER)
        if raw is None:
            raise WatchError(f"missing {INDEX_HEADER} header", prefix=prefix)
        try:
            index = int(raw)
        except ValueError as e:
            raise WatchError(f"invalid {INDEX_HEADER} header: {raw!r}", prefix=prefix) from e
        if index < 0:
            raise WatchError(f"negative {INDEX_HEADER} header: {index}", prefix=prefix)
        return index

    def _parse_entry(self, item: Any, prefix: str) -> Entry:
        """Convert one Consul KVPair JSON object into an Entry"""
        if not isinstance(item, dict) or "Key" not in item:
            raise WatchError(f"malformed KV pair: {item!r}", prefix=prefix)

        raw_value = item.get("Value")
        try:
            value = base64.b64decode(raw_value, validate=True) if raw_value else b""
        except (binascii.Error, TypeError) as e:
            raise WatchError(f"invalid value encoding for {item['Key']}", prefix=prefix) from e

        return Entry(
            key=item["Key"],
            value=value,
            modify_index=int(item.get("ModifyIndex") or 0),
            create_index=int(item.get("CreateIndex") or 0),
            lock_index=int(item.get("LockIndex") or 0),
            flags=int(item.get("Flags") or 0),
            session=item.get("Session") or None,
        )
