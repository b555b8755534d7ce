# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""platestatus CLI: serve and one-shot lookup commands.

Usage:
    platestatus serve [--host HOST] [--port PORT]
    platestatus lookup PATENTE [--debug]
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys

from .config import Settings
from .errors import ConfigError, InvalidIdentifierError, PlateStatusError
from .logging_config import configure


def _settings_from(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    overrides = {}
    if getattr(args, "host", None):
        overrides["host"] = args.host
    if getattr(args, "port", None):
        overrides["port"] = args.port
    if getattr(args, "target_url", None):
        overrides["target_url"] = args.target_url
    if getattr(args, "debug_dir", None):
        overrides["debug_dir"] = args.debug_dir
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return dataclasses.replace(settings, **overrides)


def cmd_serve(args: argparse.Namespace) -> None:
    from .server import serve

    serve(_settings_from(args))


async def _lookup(settings: Settings, patente: str, debug: bool) -> dict:
    from .scraper import StatusScraper

    async with StatusScraper(settings) as scraper:
        result = await scraper.lookup(patente, debug=debug)
    return result.record


def cmd_lookup(args: argparse.Namespace) -> None:
    settings = _settings_from(args)
    configure(json_output=settings.log_json, level=settings.log_level)
    try:
        record = asyncio.run(_lookup(settings, args.patente, args.debug))
    except InvalidIdentifierError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except PlateStatusError as e:
        print(f"Lookup failed: {e}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(record, ensure_ascii=False, indent=2))


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Vehicle plate status scraper",
        prog="platestatus",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_serve = subparsers.add_parser("serve", help="Start the HTTP server")
    p_serve.add_argument("--host", type=str, metavar="HOST", help="Bind address (default: PLATESTATUS_HOST or 0.0.0.0)")
    p_serve.add_argument("--port", type=int, metavar="PORT", help="Bind port (default: PLATESTATUS_PORT or 3000)")
    p_serve.add_argument("--target-url", type=str, metavar="URL", help="Lookup page URL")

    p_lookup = subparsers.add_parser("lookup", help="Look up one plate and print the record as JSON")
    p_lookup.add_argument("patente", help="Plate code (case and surrounding spaces ignored)")
    p_lookup.add_argument("--debug", action="store_true", help="Save a full-page screenshot")
    p_lookup.add_argument("--debug-dir", type=str, metavar="DIR", help="Screenshot directory")
    p_lookup.add_argument("--target-url", type=str, metavar="URL", help="Lookup page URL")

    args = parser.parse_args(argv)
    commands = {"serve": cmd_serve, "lookup": cmd_lookup}
    try:
        commands[args.command](args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
