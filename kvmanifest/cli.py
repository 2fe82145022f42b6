#!/usr/bin/env python3
"""
kvmanifest CLI - Inspect a watched Consul KV prefix

Usage:
    # Print the Consul environment for the configured agent
    kvmanifest env

    # Read one key after the first load, decoded as JSON
    kvmanifest --prefix mp_service/release/manifest get settings --decode json

    # Print keys every 2 seconds for 30 seconds
    kvmanifest watch foo enable whitelist --interval 2 --duration 30

Output is JSON for easy parsing. Logs go to stderr, shaped by
KVMANIFEST_LOG_LEVEL and KVMANIFEST_LOG_FORMAT.
"""

import argparse
import json
import sys
import time
from typing import Any, Callable

from kvmanifest.common.config import (
    ManifestConfig,
    load_manifest_config,
    with_address,
    with_datacenter,
    with_key_prefix,
    with_span,
    with_token,
)
from kvmanifest.common.exceptions import ConfigError, ConstructionError, KVManifestError
from kvmanifest.common.logging_setup import setup_logging
from kvmanifest.decoders import (
    as_bool,
    as_int,
    as_json,
    as_string,
    as_strings,
    as_toml,
    as_yaml,
)
from kvmanifest.manifest import Entry, Manifest

EXIT_OK = 0
EXIT_LOOKUP_FAILED = 1
EXIT_CONSTRUCTION_FAILED = 2

DECODERS: dict[str, Callable[[Entry], Any]] = {
    "string": as_string,
    "int": as_int,
    "bool": as_bool,
    "json": as_json,
    "yaml": as_yaml,
    "toml": as_toml,
    "lines": lambda entry: as_strings(entry, "\n"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kvmanifest",
        description="Inspect a locally cached Consul KV prefix",
    )
    parser.add_argument("--config", help="YAML file with a 'consul' section")
    parser.add_argument("--address", help="Consul HTTP address")
    parser.add_argument("--datacenter", help="Consul datacenter")
    parser.add_argument("--prefix", help="Key prefix to watch")
    parser.add_argument("--span", type=float, help="Max watch block time in seconds")
    parser.add_argument("--token", help="Consul ACL token")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("env", help="Print connection environment")

    get_parser = subparsers.add_parser("get", help="Read a single key")
    get_parser.add_argument("key")
    get_parser.add_argument("--decode", choices=sorted(DECODERS), default="string")
    get_parser.add_argument("--wait", type=float, default=10.0,
                            help="Seconds to wait for the first load")

    watch_parser = subparsers.add_parser("watch", help="Print keys periodically")
    watch_parser.add_argument("keys", nargs="+")
    watch_parser.add_argument("--decode", choices=sorted(DECODERS), default="string")
    watch_parser.add_argument("--interval", type=float, default=2.0)
    watch_parser.add_argument("--duration", type=float, default=30.0)

    return parser


def build_config(args: argparse.Namespace) -> tuple[ManifestConfig, list]:
    """Config file / environment first, then command-line overrides as options"""
    if args.config:
        config = load_manifest_config(args.config)
    else:
        config = ManifestConfig.from_env()

    options = []
    if args.address:
        options.append(with_address(args.address))
    if args.datacenter:
        options.append(with_datacenter(args.datacenter))
    if args.prefix:
        options.append(with_key_prefix(args.prefix))
    if args.span:
        options.append(with_span(args.span))
    if args.token:
        options.append(with_token(args.token))

    return config, options


def read_key(manifest: Manifest, key: str, decode: str) -> dict[str, Any]:
    """Look up and decode one key, reporting failures in the result"""
    try:
        entry = manifest.acquire(key)
        return {
            "key": entry.key,
            "value": DECODERS[decode](entry),
            "modify_index": entry.modify_index,
        }
    except KVManifestError as e:
        return {"key": manifest.compose_key(key), "error": str(e)}


def cmd_env(manifest: Manifest, args: argparse.Namespace) -> int:
    for line in manifest.generate_env():
        print(line)
    return EXIT_OK


def cmd_get(manifest: Manifest, args: argparse.Namespace) -> int:
    if not manifest.wait_ready(args.wait):
        print(json.dumps({"error": f"no data loaded within {args.wait}s"}))
        return EXIT_LOOKUP_FAILED

    result = read_key(manifest, args.key, args.decode)
    print(json.dumps(result, default=str))
    return EXIT_LOOKUP_FAILED if "error" in result else EXIT_OK


def cmd_watch(manifest: Manifest, args: argparse.Namespace) -> int:
    deadline = time.monotonic() + args.duration
    while time.monotonic() < deadline:
        for key in args.keys:
            print(json.dumps(read_key(manifest, key, args.decode), default=str), flush=True)
        time.sleep(args.interval)
    return EXIT_OK


COMMANDS = {
    "env": cmd_env,
    "get": cmd_get,
    "watch": cmd_watch,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging()

    try:
        config, options = build_config(args)
        manifest = Manifest(config, *options)
    except (ConfigError, ConstructionError) as e:
        print(json.dumps({"error": str(e)}), file=sys.stderr)
        return EXIT_CONSTRUCTION_FAILED

    try:
        return COMMANDS[args.command](manifest, args)
    except KeyboardInterrupt:
        return EXIT_OK
    finally:
        manifest.close()


if __name__ == "__main__":
    sys.exit(main())
