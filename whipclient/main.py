"""
Command line entrypoint.

``whip-client teardown`` deletes a session resource left behind by a
publisher that exited without calling ``stop``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

import httpx

from .config import DEFAULT_PROFILE, ClientConfig, load_config
from .signaling.resource import ResourceClient
from .utils.logging import configure_logging

LOG = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="whip-client", description="WHIP client utilities")
    parser.add_argument("--config", help="YAML profile file")
    parser.add_argument("--profile", default=DEFAULT_PROFILE, help="profile to load from --config")
    parser.add_argument("--token", help="bearer token (overrides the profile)")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)
    teardown = commands.add_parser("teardown", help="DELETE a WHIP session resource")
    teardown.add_argument("resource_url", help="session resource URL (the Location of the session)")
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> ClientConfig:
    config = load_config(args.config, args.profile) if args.config else ClientConfig()
    if args.token:
        config = config.model_copy(update={"token": args.token})
    return config


async def teardown(
    config: ClientConfig,
    resource_url: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    http = httpx.AsyncClient(timeout=config.timeout, transport=transport)
    async with http, ResourceClient(token=config.token, http=http, headers=config.request_headers()) as resource:
        try:
            response = await resource.delete(resource_url)
        except httpx.HTTPError as exc:
            LOG.error("DELETE %s failed: %s", resource_url, exc)
            return 1
    if not response.ok:
        LOG.error("DELETE %s rejected with status %s", resource_url, response.status)
        return 1
    LOG.info("Deleted %s", resource_url)
    return 0


def run(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    config = resolve_config(args)

    try:
        return asyncio.run(teardown(config, args.resource_url))
    except KeyboardInterrupt:
        LOG.info("Interrupted by user.")
        return 130


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
