"""Pydantic models for Coolify API projections and diagnostic reports."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


HealthStatus = Literal["healthy", "unhealthy", "unknown"]


# ============================================================================
# List summaries (reduced versions of full API objects)
# ============================================================================


class ServerSummary(BaseModel):
    """Essential server fields returned by list endpoints in summary mode."""

    uuid: str
    name: str | None = None
    ip: str | None = None
    status: str | None = None
    is_reachable: bool | None = None


class ApplicationSummary(BaseModel):
    uuid: str
    name: str | None = None
    status: str | None = None
    fqdn: str | None = None
    git_repository: str | None = None
    git_branch: str | None = None


class DatabaseSummary(BaseModel):
    uuid: str
    name: str | None = None
    type: str | None = None
    status: str | None = None
    is_public: bool | None = None


class ServiceSummary(BaseModel):
    uuid: str
    name: str | None = None
    type: str | None = None
    status: str | None = None
    domains: list[str] | None = None


class DeploymentSummary(BaseModel):
    uuid: str | None = None
    deployment_uuid: str | None = None
    application_name: str | None = None
    status: str | None = None
    created_at: str | None = None


class ProjectSummary(BaseModel):
    uuid: str
    name: str | None = None
    description: str | None = None


# ============================================================================
# Diagnostic reports
# ============================================================================


class HealthReport(BaseModel):
    """Derived health of a resource with the reasons behind it."""

    status: HealthStatus = Field(default="unknown", description="healthy, unhealthy or unknown")
    issues: list[str] = Field(default_factory=list, description="Human-readable problems found")


class EnvironmentVariableKey(BaseModel):
    key: str
    is_build_time: bool = False


class EnvironmentVariablesOverview(BaseModel):
    """Environment variable names only; values are never included in diagnostics."""

    count: int = 0
    variables: list[EnvironmentVariableKey] = Field(default_factory=list)


class RecentDeployment(BaseModel):
    uuid: str | None = None
    status: str | None = None
    created_at: str | None = None


class ApplicationDiagnostic(BaseModel):
    """Aggregated application details, logs, env var names and recent deployments.

    Example:
        {
            "application": {"uuid": "xs0sgs4gog044s4k4c88kgsc", "name": "api", "status": "running:healthy", ...},
            "health": {"status": "healthy", "issues": []},
            "logs": "...",
            "environment_variables": {"count": 2, "variables": [{"key": "PORT", "is_build_time": false}]},
            "recent_deployments": [{"uuid": "...", "status": "finished", "created_at": "..."}],
            "errors": []
        }
    """

    application: ApplicationSummary | None = None
    health: HealthReport = Field(default_factory=HealthReport)
    logs: str | None = None
    environment_variables: EnvironmentVariablesOverview = Field(default_factory=EnvironmentVariablesOverview)
    recent_deployments: list[RecentDeployment] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list, description="Lookup or partial fetch failures")


class ServerResourceStatus(BaseModel):
    uuid: str | None = None
    name: str | None = None
    type: str | None = None
    status: str | None = None


class ServerDomains(BaseModel):
    ip: str | None = None
    domains: list[str] = Field(default_factory=list)


class ServerValidationResult(BaseModel):
    message: str | None = None
    validation_logs: str | None = None


class ServerDiagnostic(BaseModel):
    """Aggregated server details, hosted resources, domains and validation."""

    server: ServerSummary | None = None
    health: HealthReport = Field(default_factory=HealthReport)
    resources: list[ServerResourceStatus] = Field(default_factory=list)
    domains: list[ServerDomains] = Field(default_factory=list)
    validation: ServerValidationResult | None = None
    errors: list[str] = Field(default_factory=list)


class InfrastructureIssue(BaseModel):
    type: Literal["server", "application", "database", "service"]
    uuid: str | None = None
    name: str | None = None
    issue: str
    status: str


class InfrastructureSummary(BaseModel):
    total_issues: int = 0
    unhealthy_applications: int = 0
    unhealthy_databases: int = 0
    unhealthy_services: int = 0
    unreachable_servers: int = 0


class InfrastructureIssuesReport(BaseModel):
    """Infrastructure-wide scan for unreachable servers and failing resources."""

    summary: InfrastructureSummary = Field(default_factory=InfrastructureSummary)
    issues: list[InfrastructureIssue] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
