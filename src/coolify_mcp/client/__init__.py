"""Coolify REST API client and composite diagnostics."""

from coolify_mcp.client.coolify_client import (
    CoolifyAPIError,
    CoolifyClient,
    CoolifyConnectionError,
    CoolifyLookupError,
    is_likely_uuid,
)
from coolify_mcp.client.diagnostics import diagnose_application, diagnose_server, find_infrastructure_issues


__all__ = [
    "CoolifyAPIError",
    "CoolifyClient",
    "CoolifyConnectionError",
    "CoolifyLookupError",
    "diagnose_application",
    "diagnose_server",
    "find_infrastructure_issues",
    "is_likely_uuid",
]
