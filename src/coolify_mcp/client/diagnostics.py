"""Composite diagnostics built from several Coolify API calls.

Each report fans its API calls out concurrently. A failing call does not fail
the report: its error is recorded as ``"<part>: <message>"`` and the rest of
the report is still derived from whatever succeeded.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
import logging
from typing import Any

from coolify_mcp.client.coolify_client import CoolifyClient
from coolify_mcp.client.models import (
    ApplicationDiagnostic,
    ApplicationSummary,
    EnvironmentVariableKey,
    EnvironmentVariablesOverview,
    HealthReport,
    HealthStatus,
    InfrastructureIssue,
    InfrastructureIssuesReport,
    InfrastructureSummary,
    RecentDeployment,
    ServerDiagnostic,
    ServerDomains,
    ServerResourceStatus,
    ServerSummary,
    ServerValidationResult,
)


logger = logging.getLogger(__name__)

APPLICATION_LOG_LINES = 50
RECENT_DEPLOYMENT_WINDOW = 5
UNHEALTHY_STATUS_MARKERS = ("exited", "unhealthy", "error")


def is_unhealthy_status(status: str) -> bool:
    return any(marker in status for marker in UNHEALTHY_STATUS_MARKERS)


async def _gather_parts(parts: dict[str, Awaitable[Any]], errors: list[str]) -> dict[str, Any]:
    """Await all parts concurrently; failed parts map to None and append to ``errors``."""
    names = list(parts)
    outcomes = await asyncio.gather(*parts.values(), return_exceptions=True)
    results: dict[str, Any] = {}
    for name, outcome in zip(names, outcomes):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            logger.warning(f"Diagnostic part '{name}' failed: {outcome}")
            errors.append(f"{name}: {outcome}")
            results[name] = None
        else:
            results[name] = outcome
    return results


def application_health(app: dict[str, Any] | None, deployments: list[dict[str, Any]] | None) -> HealthReport:
    """Derive application health from its status string and recent deployments."""
    issues: list[str] = []
    status: HealthStatus = "unknown"

    if app is not None:
        app_status = app.get("status") or ""
        # "healthy" is a substring of "unhealthy", so failure markers go first
        if is_unhealthy_status(app_status):
            status = "unhealthy"
            issues.append(f"Status: {app_status}")
        elif "running" in app_status:
            status = "healthy"
        else:
            issues.append(f"Status: {app_status}")

    if deployments:
        failed = [d for d in deployments[:RECENT_DEPLOYMENT_WINDOW] if d.get("status") == "failed"]
        if failed:
            issues.append(f"{len(failed)} failed deployment(s) in last {RECENT_DEPLOYMENT_WINDOW}")
            if status == "healthy":
                status = "unhealthy"

    return HealthReport(status=status, issues=issues)


def server_health(server: dict[str, Any] | None, resources: list[dict[str, Any]] | None) -> HealthReport:
    """Derive server health from reachability, usability and hosted resources."""
    issues: list[str] = []
    status: HealthStatus = "unknown"

    if server is not None:
        if server.get("is_reachable") is True:
            status = "healthy"
        elif server.get("is_reachable") is False:
            status = "unhealthy"
            issues.append("Server is not reachable")
        if server.get("is_usable") is False:
            issues.append("Server is not usable")
            status = "unhealthy"

    if resources:
        unhealthy = [r for r in resources if is_unhealthy_status(r.get("status") or "")]
        if unhealthy:
            issues.append(f"{len(unhealthy)} unhealthy resource(s)")

    return HealthReport(status=status, issues=issues)


async def diagnose_application(client: CoolifyClient, query: str) -> ApplicationDiagnostic:
    """Aggregate details, logs, env var names and recent deployments for one application.

    Args:
        client: Connected Coolify client
        query: Application UUID, name or domain (FQDN)
    """
    try:
        uuid = await client.resolve_application_uuid(query)
    except Exception as exc:
        logger.info(f"Application lookup for '{query}' failed: {exc}")
        return ApplicationDiagnostic(errors=[str(exc)])

    errors: list[str] = []
    parts = await _gather_parts(
        {
            "application": client.get_application(uuid),
            "logs": client.get_application_logs(uuid, APPLICATION_LOG_LINES),
            "environment_variables": client.list_application_env_vars(uuid),
            "deployments": client.list_application_deployments(uuid),
        },
        errors,
    )

    app = parts["application"]
    logs = parts["logs"]
    env_vars = parts["environment_variables"] or []
    deployments = parts["deployments"] or []

    return ApplicationDiagnostic(
        application=(
            ApplicationSummary(
                uuid=app.get("uuid") or uuid,
                name=app.get("name"),
                status=app.get("status") or "unknown",
                fqdn=app.get("fqdn") or None,
                git_repository=app.get("git_repository") or None,
                git_branch=app.get("git_branch") or None,
            )
            if app
            else None
        ),
        health=application_health(app, deployments),
        logs=logs if isinstance(logs, str) else None,
        environment_variables=EnvironmentVariablesOverview(
            count=len(env_vars),
            variables=[
                EnvironmentVariableKey(key=var.get("key", ""), is_build_time=bool(var.get("is_build_time")))
                for var in env_vars
            ],
        ),
        recent_deployments=[
            RecentDeployment(uuid=d.get("uuid"), status=d.get("status"), created_at=d.get("created_at"))
            for d in deployments[:RECENT_DEPLOYMENT_WINDOW]
        ],
        errors=errors,
    )


async def diagnose_server(client: CoolifyClient, query: str) -> ServerDiagnostic:
    """Aggregate details, hosted resources, domains and validation for one server.

    Args:
        client: Connected Coolify client
        query: Server UUID, name or IP address
    """
    try:
        uuid = await client.resolve_server_uuid(query)
    except Exception as exc:
        logger.info(f"Server lookup for '{query}' failed: {exc}")
        return ServerDiagnostic(errors=[str(exc)])

    errors: list[str] = []
    parts = await _gather_parts(
        {
            "server": client.get_server(uuid),
            "resources": client.get_server_resources(uuid),
            "domains": client.get_server_domains(uuid),
            "validation": client.validate_server(uuid),
        },
        errors,
    )

    server = parts["server"]
    resources = parts["resources"] or []
    domains = parts["domains"] or []
    validation = parts["validation"]

    return ServerDiagnostic(
        server=(
            ServerSummary(
                uuid=server.get("uuid") or uuid,
                name=server.get("name"),
                ip=server.get("ip"),
                status=server.get("status") or None,
                is_reachable=server.get("is_reachable"),
            )
            if server
            else None
        ),
        health=server_health(server, resources),
        resources=[
            ServerResourceStatus(uuid=r.get("uuid"), name=r.get("name"), type=r.get("type"), status=r.get("status"))
            for r in resources
        ],
        domains=[ServerDomains(ip=d.get("ip"), domains=d.get("domains") or []) for d in domains],
        validation=(
            ServerValidationResult(
                message=validation.get("message"),
                validation_logs=validation.get("validation_logs") or None,
            )
            if isinstance(validation, dict)
            else None
        ),
        errors=errors,
    )


def _resource_issues(kind: str, label: str, items: list[dict[str, Any]]) -> list[InfrastructureIssue]:
    issues = []
    for item in items:
        status = item.get("status") or ""
        if is_unhealthy_status(status) or status == "stopped":
            issues.append(
                InfrastructureIssue(
                    type=kind,
                    uuid=item.get("uuid"),
                    name=item.get("name"),
                    issue=f"{label} status: {status}",
                    status=status,
                )
            )
    return issues


async def find_infrastructure_issues(client: CoolifyClient) -> InfrastructureIssuesReport:
    """Scan servers, applications, databases and services for common problems."""
    errors: list[str] = []
    parts = await _gather_parts(
        {
            "servers": client.list_servers(),
            "applications": client.list_applications(),
            "databases": client.list_databases(),
            "services": client.list_services(),
        },
        errors,
    )

    issues: list[InfrastructureIssue] = []
    for server in parts["servers"] or []:
        if server.get("is_reachable") is False:
            issues.append(
                InfrastructureIssue(
                    type="server",
                    uuid=server.get("uuid"),
                    name=server.get("name"),
                    issue="Server is not reachable",
                    status=server.get("status") or "unreachable",
                )
            )
    issues.extend(_resource_issues("application", "Application", parts["applications"] or []))
    issues.extend(_resource_issues("database", "Database", parts["databases"] or []))
    issues.extend(_resource_issues("service", "Service", parts["services"] or []))

    def count(kind: str) -> int:
        return sum(1 for issue in issues if issue.type == kind)

    return InfrastructureIssuesReport(
        summary=InfrastructureSummary(
            total_issues=len(issues),
            unhealthy_applications=count("application"),
            unhealthy_databases=count("database"),
            unhealthy_services=count("service"),
            unreachable_servers=count("server"),
        ),
        issues=issues,
        errors=errors,
    )
