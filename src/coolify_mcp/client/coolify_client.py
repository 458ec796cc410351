"""Async HTTP client for the Coolify REST API (``/api/v1``)."""

from __future__ import annotations

from collections.abc import Mapping
import logging
import re
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from coolify_mcp.client.models import (
    ApplicationSummary,
    DatabaseSummary,
    DeploymentSummary,
    ProjectSummary,
    ServerSummary,
    ServiceSummary,
)


logger = logging.getLogger(__name__)

SummaryT = TypeVar("SummaryT", bound=BaseModel)

COOLIFY_UUID_PATTERN = re.compile(r"^[a-z0-9]{20,}$", re.IGNORECASE)
STANDARD_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class CoolifyAPIError(RuntimeError):
    """Raised when the Coolify API answers with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CoolifyConnectionError(CoolifyAPIError):
    """Raised when the Coolify server cannot be reached."""


class CoolifyLookupError(ValueError):
    """Raised when a name or domain lookup matches no resource or several."""


def is_likely_uuid(query: str) -> bool:
    """Return True for Coolify ids (20+ alphanumerics) and hyphenated 8-4-4-4-12 UUIDs."""
    return bool(COOLIFY_UUID_PATTERN.match(query) or STANDARD_UUID_PATTERN.match(query))


def _drop_none(data: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Drop unset values; explicit ``False`` is kept so features can be switched off."""
    if data is None:
        return None
    return {key: value for key, value in data.items() if value is not None}


def _segment(value: str) -> str:
    return quote(str(value), safe="")


def _summarize(items: Any, model: type[SummaryT]) -> Any:
    if not isinstance(items, list):
        return items
    return [model.model_validate(item) for item in items]


class CoolifyClient:
    """HTTP client for the Coolify API.

    Usage:
        async with CoolifyClient("https://coolify.example.com", token) as client:
            servers = await client.list_servers(summary=True)
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Coolify base URL is required")
        if not access_token:
            raise ValueError("Coolify access token is required")

        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/api/v1",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0)),
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> CoolifyClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        try:
            return await self._client.request(method, path, params=_drop_none(params), json=json)
        except httpx.TransportError as exc:
            logger.warning(f"{method} {path} failed: {exc!r}")
            raise CoolifyConnectionError(
                f"Failed to connect to Coolify server at {self.base_url}. "
                "Please check if the server is running and accessible."
            ) from exc

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        response = await self._send(method, path, params=params, json=json)

        # 204 No Content and friends decode to an empty object
        data: Any = {}
        if response.content.strip():
            try:
                data = response.json()
            except ValueError:
                data = response.text

        if not response.is_success:
            message = data.get("message") if isinstance(data, dict) else None
            logger.debug(f"{method} {path} -> HTTP {response.status_code}")
            raise CoolifyAPIError(
                message or f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )
        return data

    # ------------------------------------------------------------------
    # Health & version
    # ------------------------------------------------------------------

    async def get_version(self) -> dict[str, str]:
        # /version answers with plain text, not JSON
        response = await self._send("GET", "/version")
        if not response.is_success:
            raise CoolifyAPIError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )
        return {"version": response.text.strip()}

    async def validate_connection(self) -> None:
        try:
            await self.get_version()
        except CoolifyAPIError as exc:
            raise CoolifyConnectionError(
                f"Failed to connect to Coolify server: {exc}", status_code=exc.status_code
            ) from exc

    # ------------------------------------------------------------------
    # Servers
    # ------------------------------------------------------------------

    async def list_servers(self, *, page: int | None = None, per_page: int | None = None, summary: bool = False):
        servers = await self._request("GET", "/servers", params={"page": page, "per_page": per_page})
        return _summarize(servers, ServerSummary) if summary else servers

    async def get_server(self, uuid: str) -> dict[str, Any]:
        return await self._request("GET", f"/servers/{_segment(uuid)}")

    async def get_server_resources(self, uuid: str) -> list[dict[str, Any]]:
        return await self._request("GET", f"/servers/{_segment(uuid)}/resources")

    async def get_server_domains(self, uuid: str) -> list[dict[str, Any]]:
        return await self._request("GET", f"/servers/{_segment(uuid)}/domains")

    async def validate_server(self, uuid: str) -> dict[str, Any]:
        return await self._request("GET", f"/servers/{_segment(uuid)}/validate")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def list_projects(self, *, page: int | None = None, per_page: int | None = None, summary: bool = False):
        projects = await self._request("GET", "/projects", params={"page": page, "per_page": per_page})
        return _summarize(projects, ProjectSummary) if summary else projects

    async def get_project(self, uuid: str) -> dict[str, Any]:
        return await self._request("GET", f"/projects/{_segment(uuid)}")

    async def create_project(self, name: str, description: str | None = None) -> dict[str, Any]:
        return await self._request("POST", "/projects", json=_drop_none({"name": name, "description": description}))

    async def update_project(
        self, uuid: str, *, name: str | None = None, description: str | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "PATCH",
            f"/projects/{_segment(uuid)}",
            json=_drop_none({"name": name, "description": description}),
        )

    async def delete_project(self, uuid: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/projects/{_segment(uuid)}")

    # ------------------------------------------------------------------
    # Environments
    # ------------------------------------------------------------------

    async def list_project_environments(self, project_uuid: str) -> list[dict[str, Any]]:
        return await self._request("GET", f"/projects/{_segment(project_uuid)}/environments")

    async def get_project_environment(self, project_uuid: str, environment: str) -> dict[str, Any]:
        """Fetch an environment by name or UUID."""
        return await self._request("GET", f"/projects/{_segment(project_uuid)}/{_segment(environment)}")

    async def create_project_environment(
        self, project_uuid: str, name: str, description: str | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/projects/{_segment(project_uuid)}/environments",
            json=_drop_none({"name": name, "description": description}),
        )

    async def delete_project_environment(self, environment_uuid: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/projects/environments/{_segment(environment_uuid)}")

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    async def list_applications(
        self, *, page: int | None = None, per_page: int | None = None, summary: bool = False
    ):
        applications = await self._request("GET", "/applications", params={"page": page, "per_page": per_page})
        return _summarize(applications, ApplicationSummary) if summary else applications

    async def get_application(self, uuid: str) -> dict[str, Any]:
        return await self._request("GET", f"/applications/{_segment(uuid)}")

    async def update_application(self, uuid: str, data: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", f"/applications/{_segment(uuid)}", json=_drop_none(data))

    async def delete_application(
        self,
        uuid: str,
        *,
        delete_configurations: bool | None = None,
        delete_volumes: bool | None = None,
        docker_cleanup: bool | None = None,
        delete_connected_networks: bool | None = None,
    ) -> dict[str, Any]:
        params = {
            "delete_configurations": delete_configurations,
            "delete_volumes": delete_volumes,
            "docker_cleanup": docker_cleanup,
            "delete_connected_networks": delete_connected_networks,
        }
        return await self._request("DELETE", f"/applications/{_segment(uuid)}", params=params)

    async def get_application_logs(self, uuid: str, lines: int = 100) -> Any:
        return await self._request("GET", f"/applications/{_segment(uuid)}/logs", params={"lines": lines})

    async def start_application(
        self, uuid: str, *, force: bool | None = None, instant_deploy: bool | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/applications/{_segment(uuid)}/start",
            params={"force": force, "instant_deploy": instant_deploy},
        )

    async def stop_application(self, uuid: str) -> dict[str, Any]:
        return await self._request("POST", f"/applications/{_segment(uuid)}/stop")

    async def restart_application(self, uuid: str) -> dict[str, Any]:
        return await self._request("POST", f"/applications/{_segment(uuid)}/restart")

    async def list_application_env_vars(self, uuid: str) -> list[dict[str, Any]]:
        return await self._request("GET", f"/applications/{_segment(uuid)}/envs")

    async def create_application_env_var(
        self,
        uuid: str,
        key: str,
        value: str,
        *,
        is_build_time: bool | None = None,
        is_preview: bool | None = None,
        is_literal: bool | None = None,
        is_multiline: bool | None = None,
        is_shown_once: bool | None = None,
    ) -> dict[str, Any]:
        payload = {
            "key": key,
            "value": value,
            "is_build_time": is_build_time,
            "is_preview": is_preview,
            "is_literal": is_literal,
            "is_multiline": is_multiline,
            "is_shown_once": is_shown_once,
        }
        return await self._request("POST", f"/applications/{_segment(uuid)}/envs", json=_drop_none(payload))

    async def update_application_env_var(
        self,
        uuid: str,
        key: str,
        value: str,
        *,
        is_build_time: bool | None = None,
        is_preview: bool | None = None,
        is_literal: bool | None = None,
        is_multiline: bool | None = None,
        is_shown_once: bool | None = None,
    ) -> dict[str, Any]:
        payload = {
            "key": key,
            "value": value,
            "is_build_time": is_build_time,
            "is_preview": is_preview,
            "is_literal": is_literal,
            "is_multiline": is_multiline,
            "is_shown_once": is_shown_once,
        }
        return await self._request("PATCH", f"/applications/{_segment(uuid)}/envs", json=_drop_none(payload))

    async def bulk_update_application_env_vars(
        self, uuid: str, variables: list[Mapping[str, Any]]
    ) -> dict[str, Any]:
        payload = {"data": [_drop_none(variable) for variable in variables]}
        return await self._request("PATCH", f"/applications/{_segment(uuid)}/envs/bulk", json=payload)

    async def delete_application_env_var(self, uuid: str, env_uuid: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/applications/{_segment(uuid)}/envs/{_segment(env_uuid)}")

    async def list_application_deployments(self, uuid: str) -> list[dict[str, Any]]:
        return await self._request("GET", f"/applications/{_segment(uuid)}/deployments")

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def list_databases(self, *, page: int | None = None, per_page: int | None = None, summary: bool = False):
        databases = await self._request("GET", "/databases", params={"page": page, "per_page": per_page})
        return _summarize(databases, DatabaseSummary) if summary else databases

    async def get_database(self, uuid: str) -> dict[str, Any]:
        return await self._request("GET", f"/databases/{_segment(uuid)}")

    async def start_database(self, uuid: str) -> dict[str, Any]:
        return await self._request("POST", f"/databases/{_segment(uuid)}/start")

    async def stop_database(self, uuid: str) -> dict[str, Any]:
        return await self._request("POST", f"/databases/{_segment(uuid)}/stop")

    async def restart_database(self, uuid: str) -> dict[str, Any]:
        return await self._request("POST", f"/databases/{_segment(uuid)}/restart")

    # ------------------------------------------------------------------
    # Services (lifecycle actions are GET requests in the Coolify API)
    # ------------------------------------------------------------------

    async def list_services(self, *, page: int | None = None, per_page: int | None = None, summary: bool = False):
        services = await self._request("GET", "/services", params={"page": page, "per_page": per_page})
        return _summarize(services, ServiceSummary) if summary else services

    async def get_service(self, uuid: str) -> dict[str, Any]:
        return await self._request("GET", f"/services/{_segment(uuid)}")

    async def start_service(self, uuid: str) -> dict[str, Any]:
        return await self._request("GET", f"/services/{_segment(uuid)}/start")

    async def stop_service(self, uuid: str) -> dict[str, Any]:
        return await self._request("GET", f"/services/{_segment(uuid)}/stop")

    async def restart_service(self, uuid: str) -> dict[str, Any]:
        return await self._request("GET", f"/services/{_segment(uuid)}/restart")

    async def list_service_env_vars(self, uuid: str) -> list[dict[str, Any]]:
        return await self._request("GET", f"/services/{_segment(uuid)}/envs")

    async def create_service_env_var(
        self, uuid: str, key: str, value: str, *, is_build_time: bool | None = None
    ) -> dict[str, Any]:
        payload = {"key": key, "value": value, "is_build_time": is_build_time}
        return await self._request("POST", f"/services/{_segment(uuid)}/envs", json=_drop_none(payload))

    async def delete_service_env_var(self, uuid: str, env_uuid: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/services/{_segment(uuid)}/envs/{_segment(env_uuid)}")

    # ------------------------------------------------------------------
    # Deployments
    # ------------------------------------------------------------------

    async def list_deployments(
        self, *, page: int | None = None, per_page: int | None = None, summary: bool = False
    ):
        deployments = await self._request("GET", "/deployments", params={"page": page, "per_page": per_page})
        return _summarize(deployments, DeploymentSummary) if summary else deployments

    async def get_deployment(self, uuid: str) -> dict[str, Any]:
        return await self._request("GET", f"/deployments/{_segment(uuid)}")

    async def deploy_by_tag_or_uuid(self, tag_or_uuid: str, force: bool = False) -> dict[str, Any]:
        return await self._request("GET", "/deploy", params={"tag": tag_or_uuid, "force": force})

    async def cancel_deployment(self, uuid: str) -> dict[str, Any]:
        return await self._request("POST", f"/deployments/{_segment(uuid)}/cancel")

    # ------------------------------------------------------------------
    # Smart lookup
    # ------------------------------------------------------------------

    async def resolve_application_uuid(self, query: str) -> str:
        """Resolve an application UUID, name or domain (FQDN) to its UUID.

        Raises:
            CoolifyLookupError: No application or more than one matches
        """
        if is_likely_uuid(query):
            return query

        applications = await self.list_applications()
        needle = query.lower()
        matches = [
            app
            for app in applications
            if needle in (app.get("name") or "").lower() or needle in (app.get("fqdn") or "").lower()
        ]

        if not matches:
            raise CoolifyLookupError(f'No application found matching "{query}"')
        if len(matches) > 1:
            match_list = ", ".join(f"{app.get('name')} ({app.get('fqdn') or 'no domain'})" for app in matches)
            raise CoolifyLookupError(
                f'Multiple applications match "{query}": {match_list}. Please be more specific or use a UUID.'
            )
        return matches[0]["uuid"]

    async def resolve_server_uuid(self, query: str) -> str:
        """Resolve a server UUID, name or IP address to its UUID.

        Raises:
            CoolifyLookupError: No server or more than one matches
        """
        if is_likely_uuid(query):
            return query

        servers = await self.list_servers()
        needle = query.lower()
        matches = [
            server
            for server in servers
            if needle in (server.get("name") or "").lower() or query in (server.get("ip") or "")
        ]

        if not matches:
            raise CoolifyLookupError(f'No server found matching "{query}"')
        if len(matches) > 1:
            match_list = ", ".join(f"{server.get('name')} ({server.get('ip')})" for server in matches)
            raise CoolifyLookupError(
                f'Multiple servers match "{query}": {match_list}. Please be more specific or use a UUID.'
            )
        return matches[0]["uuid"]
