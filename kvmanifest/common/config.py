"""
Configuration Dataclasses

Connection and discovery settings for a Manifest, with loaders for
environment variables and YAML files.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable

import yaml

from .exceptions import ConfigError

DEFAULT_ADDRESS = "http://127.0.0.1:8500"
DEFAULT_DATACENTER = "dc1"
DEFAULT_KEY_PREFIX = "hello"
# Maximum blocking time of a single watch request, in seconds
DEFAULT_DISCOVERY_SPAN = 60.0

_TRUE_STRINGS = {"1", "t", "true", "yes", "on"}


@dataclass
class ManifestConfig:
    """Manifest configuration. Empty/zero fields are filled with defaults."""
    address: str = DEFAULT_ADDRESS
    datacenter: str = DEFAULT_DATACENTER
    key_prefix: str = DEFAULT_KEY_PREFIX
    discovery_span: float = DEFAULT_DISCOVERY_SPAN
    logger: logging.Logger | logging.LoggerAdapter | None = field(default=None, repr=False)
    token: str | None = field(default=None, repr=False)
    verify: bool = True

    @property
    def scheme(self) -> str:
        """URL scheme of the server address"""
        if "://" in self.address:
            return self.address.split("://", 1)[0].lower()
        return "http"

    @property
    def host(self) -> str:
        """Server address without the scheme, as Consul's CLI expects it"""
        return self.address.split("://", 1)[-1].rstrip("/")

    def with_defaults(self) -> "ManifestConfig":
        """
        Return a copy with every unset field replaced by its default.

        The receiver is left untouched.
        """
        return replace(
            self,
            address=self.address or DEFAULT_ADDRESS,
            datacenter=self.datacenter or DEFAULT_DATACENTER,
            key_prefix=self.key_prefix or DEFAULT_KEY_PREFIX,
            discovery_span=self.discovery_span or DEFAULT_DISCOVERY_SPAN,
        )

    def validate(self) -> None:
        """Raise ConfigError when settings cannot be used"""
        if self.discovery_span <= 0:
            raise ConfigError(f"discovery_span must be positive, got {self.discovery_span}")
        if self.key_prefix and self.key_prefix.strip("/") == "":
            raise ConfigError(f"key_prefix must name a path, got {self.key_prefix!r}")
        if self.scheme not in ("http", "https"):
            raise ConfigError(f"unsupported address scheme: {self.address}")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ManifestConfig":
        """
        Build a config from environment variables.

        Recognized: CONSUL_HTTP_ADDR, CONSUL_HTTP_TOKEN, CONSUL_HTTP_SSL_VERIFY,
        KVMANIFEST_DATACENTER, KVMANIFEST_KEY_PREFIX, KVMANIFEST_DISCOVERY_SPAN.
        """
        env = os.environ if environ is None else environ

        span = env.get("KVMANIFEST_DISCOVERY_SPAN")
        verify = env.get("CONSUL_HTTP_SSL_VERIFY")

        return cls(
            address=_normalize_address(env.get("CONSUL_HTTP_ADDR", "")),
            datacenter=env.get("KVMANIFEST_DATACENTER", ""),
            key_prefix=env.get("KVMANIFEST_KEY_PREFIX", ""),
            discovery_span=_parse_span(span) if span else 0.0,
            token=env.get("CONSUL_HTTP_TOKEN") or None,
            verify=verify.strip().lower() in _TRUE_STRINGS if verify else True,
        ).with_defaults()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManifestConfig":
        """Load config from a dictionary (e.g. the `consul` section of a YAML file)"""
        span = data.get("discovery_span")
        return cls(
            address=_normalize_address(str(data.get("address") or "")),
            datacenter=str(data.get("datacenter") or ""),
            key_prefix=str(data.get("key_prefix") or ""),
            discovery_span=_parse_span(span) if span is not None else 0.0,
            token=data.get("token"),
            verify=bool(data.get("verify", True)),
        ).with_defaults()


# Functional options, applied in order after defaults
ManifestOption = Callable[[ManifestConfig], ManifestConfig]


def with_span(seconds: float) -> ManifestOption:
    """Override the maximum watch block duration"""
    span = _parse_span(seconds)
    return lambda cfg: replace(cfg, discovery_span=span)


def with_logger(logger: logging.Logger | logging.LoggerAdapter) -> ManifestOption:
    """Send manifest logs to the given logger"""
    return lambda cfg: replace(cfg, logger=logger)


def with_address(address: str) -> ManifestOption:
    return lambda cfg: replace(cfg, address=_normalize_address(address))


def with_datacenter(datacenter: str) -> ManifestOption:
    return lambda cfg: replace(cfg, datacenter=datacenter)


def with_key_prefix(key_prefix: str) -> ManifestOption:
    return lambda cfg: replace(cfg, key_prefix=key_prefix)


def with_token(token: str | None) -> ManifestOption:
    """ACL token sent as X-Consul-Token"""
    return lambda cfg: replace(cfg, token=token)


def load_manifest_config(config_path: str | Path) -> ManifestConfig:
    """
    Load manifest configuration from a YAML file.

    Expected layout:

        consul:
          address: http://127.0.0.1:8500
          datacenter: dc1
          key_prefix: mp_service/release/manifest
          discovery_span: 60

    Raises:
        ConfigError: file missing, unreadable or not valid YAML
    """
    path = Path(config_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"error parsing {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")

    section = data.get("consul", data)
    if not isinstance(section, dict):
        raise ConfigError(f"'consul' section in {path} must be a mapping")

    return ManifestConfig.from_dict(section)


def _normalize_address(address: str) -> str:
    """Accept host:port as well as full URLs"""
    address = address.strip()
    if address and "://" not in address:
        return f"http://{address}"
    return address


def _parse_span(value: Any) -> float:
    """Parse a duration in seconds; accepts numbers and '60s'/'500ms' strings"""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)

    text = str(value).strip().lower()
    try:
        if text.endswith("ms"):
            return float(text[:-2]) / 1000.0
        if text.endswith("s"):
            return float(text[:-1])
        if text.endswith("m"):
            return float(text[:-1]) * 60.0
        return float(text)
    except ValueError as e:
        raise ConfigError(f"invalid duration: {value!r}") from e
