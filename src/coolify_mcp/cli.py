"""Command line entry point for the Coolify MCP server.

Usage:
    # stdio transport for desktop MCP clients
    COOLIFY_BASE_URL=https://coolify.example.com COOLIFY_ACCESS_TOKEN=... coolify-mcp

    # streamable HTTP transport
    coolify-mcp --transport http --host 0.0.0.0 --port 15005
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
import logging
import sys

from pydantic import ValidationError

from coolify_mcp.client.coolify_client import CoolifyAPIError, CoolifyClient
from coolify_mcp.config import Settings
from coolify_mcp.observability.logging import configure_logging
from coolify_mcp.server import create_server


logger = logging.getLogger(__name__)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coolify-mcp",
        description="MCP server for managing a Coolify instance and searching its documentation",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        help="MCP transport (default: MCP_TRANSPORT or stdio)",
    )
    parser.add_argument("--host", help="Bind host for the http transport (default: MCP_HOST)")
    parser.add_argument("--port", type=int, help="Bind port for the http transport (default: MCP_PORT)")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Root log level (default: LOG_LEVEL or info)",
    )
    parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Skip the Coolify connection check at startup",
    )
    return parser


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        "mcp_transport": args.transport,
        "mcp_host": args.host,
        "mcp_port": args.port,
        "log_level": args.log_level,
    }
    return settings.model_copy(update={key: value for key, value in overrides.items() if value is not None})


async def _validate_connection(settings: Settings) -> str:
    async with CoolifyClient(
        settings.coolify_base_url,
        settings.coolify_access_token,
        timeout=float(settings.http_timeout),
    ) as check_client:
        await check_client.validate_connection()
        version = await check_client.get_version()
    return version["version"]


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    try:
        settings = _apply_overrides(Settings(), args)
    except ValidationError as exc:
        configure_logging("info")
        logger.error("Invalid configuration: %s", exc)
        return 1

    configure_logging(settings.log_level, settings.log_json)

    missing = settings.missing_connection_settings()
    if missing:
        logger.error("Missing required environment variables: %s", ", ".join(missing))
        return 1

    if not args.no_validate:
        try:
            version = asyncio.run(_validate_connection(settings))
        except CoolifyAPIError as exc:
            logger.error("%s", exc)
            return 1
        logger.info("Connected to Coolify %s at %s", version, settings.coolify_base_url)

    mcp = create_server(settings)
    if settings.mcp_transport == "http":
        logger.info("Serving MCP over http on %s:%d", settings.mcp_host, settings.mcp_port)
        mcp.run(transport="http", host=settings.mcp_host, port=settings.mcp_port)
    else:
        mcp.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
