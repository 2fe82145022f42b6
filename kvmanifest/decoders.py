"""
Value Decoders

Convert an Entry returned by Manifest.acquire into typed values.

    enabled = as_bool(manifest.acquire("enable"))
    users = as_set(manifest.acquire("whitelist"), "\\n")

When acquire raises, the decoder is never called and the lookup error
reaches the caller unchanged.
"""

import json
import tomllib
from typing import Any

import yaml

from kvmanifest.common.exceptions import DecodeError
from kvmanifest.manifest.snapshot import Entry

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_BOOL_VALUES = {
    "1": True, "t": True, "T": True, "TRUE": True, "true": True, "True": True,
    "0": False, "f": False, "F": False, "FALSE": False, "false": False, "False": False,
}


def _text(entry: Entry) -> str:
    try:
        return entry.value.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"value is not valid UTF-8: {e}", entry.key) from e


def _fields(entry: Entry, separator: str) -> list[str]:
    if not separator:
        raise DecodeError("separator must not be empty", entry.key)
    value = _text(entry).strip()
    if not value:
        return []
    return value.split(separator)


def as_bytes(entry: Entry) -> bytes:
    return entry.value


def as_string(entry: Entry) -> str:
    return _text(entry)


def as_int(entry: Entry) -> int:
    """
    Strict base-10 parse into a signed 64-bit integer.

    Only ASCII digits with an optional sign are accepted; whitespace,
    underscores and out-of-range values raise DecodeError.
    """
    text = _text(entry)
    if not text.isascii() or text != text.strip() or "_" in text:
        raise DecodeError(f"invalid integer: {text!r}", entry.key)
    try:
        value = int(text, 10)
    except ValueError as e:
        raise DecodeError(f"invalid integer: {text!r}", entry.key) from e
    if not INT64_MIN <= value <= INT64_MAX:
        raise DecodeError(f"value out of int64 range: {text}", entry.key)
    return value


def as_int64(entry: Entry) -> int:
    return as_int(entry)


def as_bool(entry: Entry) -> bool:
    text = _text(entry)
    try:
        return _BOOL_VALUES[text]
    except KeyError:
        raise DecodeError(f"invalid boolean: {text!r}", entry.key) from None


def as_strings(entry: Entry, separator: str) -> list[str]:
    """Split the trimmed value; an empty value gives an empty list"""
    return _fields(entry, separator)


def as_byte_slices(entry: Entry, separator: str) -> list[bytes]:
    return [field.encode("utf-8") for field in _fields(entry, separator)]


def as_set(entry: Entry, separator: str) -> set[str]:
    return set(_fields(entry, separator))


def as_json(entry: Entry) -> Any:
    try:
        return json.loads(entry.value)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"invalid JSON: {e}", entry.key) from e


def as_toml(entry: Entry) -> dict[str, Any]:
    try:
        return tomllib.loads(_text(entry))
    except tomllib.TOMLDecodeError as e:
        raise DecodeError(f"invalid TOML: {e}", entry.key) from e


def as_yaml(entry: Entry) -> Any:
    try:
        return yaml.safe_load(entry.value)
    except yaml.YAMLError as e:
        raise DecodeError(f"invalid YAML: {e}", entry.key) from e
