#!/usr/bin/env python3
"""
Command-line interface for the Vairified Partner API.

Usage:
    vairified member vair_mem_0ABC123def456GHI789jk
    vairified search --city Austin --rating-min 4.0 --vairified-only
    vairified updates
    vairified scopes
    vairified usage

The API key is read from VAIRIFIED_API_KEY (or --api-key); the environment
from VAIRIFIED_ENV (or --env).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, Optional

from .client import Vairified
from .core.config import configure_logging, get_settings
from .errors import ConfigurationError, VairifiedError


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _run(args: argparse.Namespace, action: Callable[[Vairified], Awaitable[Any]]) -> int:
    """Create a client, run ``action`` and print its JSON result."""

    async def runner() -> Any:
        async with Vairified(api_key=args.api_key, env=args.env, base_url=args.base_url) as client:
            return await action(client)

    try:
        _print_json(asyncio.run(runner()))
    except (ConfigurationError, VairifiedError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_member(args: argparse.Namespace) -> int:
    async def action(client: Vairified) -> Any:
        member = await client.get_member(args.player_id)
        return member.model_dump(mode="json")

    return _run(args, action)


def cmd_search(args: argparse.Namespace) -> int:
    criteria = {
        "name": args.name,
        "city": args.city,
        "state": args.state,
        "country": args.country,
        "zip_code": args.zip_code,
        "rating_min": args.rating_min,
        "rating_max": args.rating_max,
        "gender": args.gender,
        "vairified_only": args.vairified_only,
        "age": args.age,
        "age_min": args.age_min,
        "age_max": args.age_max,
        "page": args.page,
        "limit": args.limit,
    }

    async def action(client: Vairified) -> Any:
        results = await client.search(**{k: v for k, v in criteria.items() if v is not None})
        return results.model_dump(mode="json", exclude={"filters"})

    return _run(args, action)


def cmd_updates(args: argparse.Namespace) -> int:
    async def action(client: Vairified) -> Any:
        return [update.model_dump(mode="json") for update in await client.get_rating_updates()]

    return _run(args, action)


def cmd_scopes(args: argparse.Namespace) -> int:
    async def action(client: Vairified) -> Any:
        return await client.get_available_scopes()

    return _run(args, action)


def cmd_usage(args: argparse.Namespace) -> int:
    async def action(client: Vairified) -> Any:
        return await client.get_usage()

    return _run(args, action)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Vairified Partner API CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--api-key", help="Partner API key (default: VAIRIFIED_API_KEY)")
    parser.add_argument("--env", choices=["production", "staging", "local"], help="Environment preset")
    parser.add_argument("--base-url", help="Override the API base URL")
    parser.add_argument("--log-level", help="Logging level (default: VAIRIFIED_LOG_LEVEL or WARNING)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # member command
    member_parser = subparsers.add_parser("member", help="Get a connected member")
    member_parser.add_argument("player_id", help="External player ID (vair_mem_xxx)")

    # search command
    search_parser = subparsers.add_parser("search", help="Search for players")
    search_parser.add_argument("--name", help="Name (partial match)")
    search_parser.add_argument("--city")
    search_parser.add_argument("--state", help="State code (e.g. TX)")
    search_parser.add_argument("--country", help="Country code (e.g. US)")
    search_parser.add_argument("--zip-code")
    search_parser.add_argument("--rating-min", type=float)
    search_parser.add_argument("--rating-max", type=float)
    search_parser.add_argument("--gender", choices=["MALE", "FEMALE"])
    search_parser.add_argument("--vairified-only", action="store_true", default=None)
    search_parser.add_argument("--age", type=int, help="Exact age (overrides --age-min/--age-max)")
    search_parser.add_argument("--age-min", type=int)
    search_parser.add_argument("--age-max", type=int)
    search_parser.add_argument("--page", type=int)
    search_parser.add_argument("--limit", type=int, help="Results per page (default: 20, max 100)")

    # other commands
    subparsers.add_parser("updates", help="List rating updates for subscribed members")
    subparsers.add_parser("scopes", help="List available OAuth scopes")
    subparsers.add_parser("usage", help="Show API usage statistics")

    args = parser.parse_args(argv)

    configure_logging(args.log_level or get_settings().log_level)

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "member": cmd_member,
        "search": cmd_search,
        "updates": cmd_updates,
        "scopes": cmd_scopes,
        "usage": cmd_usage,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
