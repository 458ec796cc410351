"""FastMCP server exposing Coolify management and documentation search tools.

Every tool returns text: the JSON-encoded result on success or
``"Error: <message>"`` on failure. Tools never raise to the protocol layer.
"""

from collections.abc import Awaitable
import logging
from typing import Annotated, Any

from fastmcp import FastMCP
import orjson
from pydantic import BaseModel

from coolify_mcp.client.coolify_client import CoolifyClient
from coolify_mcp.client.diagnostics import diagnose_application, diagnose_server, find_infrastructure_issues
from coolify_mcp.config import Settings
from coolify_mcp.observability.context import tool_call_context
from coolify_mcp.search.engine import DocsSearchEngine


logger = logging.getLogger(__name__)

SERVER_NAME = "coolify"

READ_ONLY = True
MUTATING = False


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def format_result(result: Any) -> str:
    """Serialize a tool result as indented JSON text."""
    return orjson.dumps(result, default=_json_default, option=orjson.OPT_INDENT_2).decode("utf-8")


async def run_tool(name: str, operation: Awaitable[Any]) -> str:
    """Await ``operation`` inside a tool-call log context and wrap the outcome as text."""
    with tool_call_context(name):
        try:
            result = await operation
        except Exception as exc:
            logger.warning(f"Tool {name} failed: {exc}", exc_info=logger.isEnabledFor(logging.DEBUG))
            return f"Error: {exc}"
        logger.debug(f"Tool {name} completed")
        return format_result(result)


def create_server(
    settings: Settings,
    *,
    client: CoolifyClient | None = None,
    docs_engine: DocsSearchEngine | None = None,
) -> FastMCP:
    """Create the MCP server with every Coolify and documentation tool registered."""
    if client is None:
        client = CoolifyClient(
            settings.coolify_base_url,
            settings.coolify_access_token,
            timeout=float(settings.http_timeout),
        )
    if docs_engine is None:
        docs_engine = DocsSearchEngine(
            settings.docs_full_url,
            base_url=settings.docs_base_url,
            timeout=settings.docs_fetch_timeout,
        )

    mcp = FastMCP(
        name=SERVER_NAME,
        instructions=(
            "Manage a Coolify instance: servers, projects, environments, applications, databases, "
            "services and deployments. Start troubleshooting with find_issues, diagnose_app or "
            "diagnose_server, and use search_docs for Coolify how-to questions."
        ),
        mask_error_details=True,
    )

    _register_docs_tools(mcp, docs_engine, settings.docs_search_limit)
    _register_server_tools(mcp, client)
    _register_project_tools(mcp, client)
    _register_application_tools(mcp, client)
    _register_database_tools(mcp, client)
    _register_service_tools(mcp, client)
    _register_deployment_tools(mcp, client)
    _register_diagnostic_tools(mcp, client)
    return mcp


async def _search_docs(engine: DocsSearchEngine, query: str, limit: int) -> dict[str, Any]:
    results = await engine.search(query, limit)
    logger.info("search_docs query='%s' hits=%d", query[:50], len(results))
    return {
        "query": query,
        "count": len(results),
        "chunks_indexed": engine.get_chunk_count(),
        "results": results,
    }


def _register_docs_tools(mcp: FastMCP, engine: DocsSearchEngine, default_limit: int) -> None:
    @mcp.tool(name="search_docs", annotations={"title": "Search Coolify Docs", "readOnlyHint": READ_ONLY})
    async def search_docs(
        query: Annotated[str, "Search terms, e.g. 'docker compose environment variables' or '502 bad gateway'"],
        limit: Annotated[int | None, "Maximum number of results"] = None,
    ) -> str:
        """Full-text search over the official Coolify documentation.

        The documentation is downloaded and indexed on first use. Each hit
        carries the section title, its URL, the page description, a snippet
        around the query terms and a relevance score.

        Returns:
            {
                "query": "502 error",
                "count": 2,
                "chunks_indexed": 812,
                "results": [
                    {"title": "502 Bad Gateway Error > Common Causes", "url": "https://coolify.io/docs/...",
                     "description": "...", "snippet": "...", "score": 14.2}
                ]
            }
        """
        return await run_tool("search_docs", _search_docs(engine, query, default_limit if limit is None else limit))


def _register_server_tools(mcp: FastMCP, client: CoolifyClient) -> None:
    @mcp.tool(name="get_version", annotations={"title": "Coolify Version", "readOnlyHint": READ_ONLY})
    async def get_version() -> str:
        """Get the Coolify API version."""
        return await run_tool("get_version", client.get_version())

    @mcp.tool(name="list_servers", annotations={"title": "List Servers", "readOnlyHint": READ_ONLY})
    async def list_servers(
        page: Annotated[int | None, "Page number"] = None,
        per_page: Annotated[int | None, "Items per page"] = None,
        summary: Annotated[bool, "Return only uuid, name, ip, status and reachability"] = False,
    ) -> str:
        """List all servers."""
        return await run_tool("list_servers", client.list_servers(page=page, per_page=per_page, summary=summary))

    @mcp.tool(name="get_server", annotations={"title": "Get Server", "readOnlyHint": READ_ONLY})
    async def get_server(uuid: Annotated[str, "Server UUID"]) -> str:
        """Get server details."""
        return await run_tool("get_server", client.get_server(uuid))

    @mcp.tool(name="get_server_resources", annotations={"title": "Server Resources", "readOnlyHint": READ_ONLY})
    async def get_server_resources(uuid: Annotated[str, "Server UUID"]) -> str:
        """Get resources running on a server."""
        return await run_tool("get_server_resources", client.get_server_resources(uuid))

    @mcp.tool(name="get_server_domains", annotations={"title": "Server Domains", "readOnlyHint": READ_ONLY})
    async def get_server_domains(uuid: Annotated[str, "Server UUID"]) -> str:
        """Get domains configured on a server."""
        return await run_tool("get_server_domains", client.get_server_domains(uuid))

    @mcp.tool(name="validate_server", annotations={"title": "Validate Server", "readOnlyHint": READ_ONLY})
    async def validate_server(uuid: Annotated[str, "Server UUID"]) -> str:
        """Validate the server connection."""
        return await run_tool("validate_server", client.validate_server(uuid))


def _register_project_tools(mcp: FastMCP, client: CoolifyClient) -> None:
    @mcp.tool(name="list_projects", annotations={"title": "List Projects", "readOnlyHint": READ_ONLY})
    async def list_projects(
        page: Annotated[int | None, "Page number"] = None,
        per_page: Annotated[int | None, "Items per page"] = None,
        summary: Annotated[bool, "Return only uuid, name and description"] = False,
    ) -> str:
        """List all projects."""
        return await run_tool("list_projects", client.list_projects(page=page, per_page=per_page, summary=summary))

    @mcp.tool(name="get_project", annotations={"title": "Get Project", "readOnlyHint": READ_ONLY})
    async def get_project(uuid: Annotated[str, "Project UUID"]) -> str:
        """Get project details."""
        return await run_tool("get_project", client.get_project(uuid))

    @mcp.tool(name="create_project", annotations={"title": "Create Project", "readOnlyHint": MUTATING})
    async def create_project(
        name: Annotated[str, "Project name"],
        description: Annotated[str | None, "Description"] = None,
    ) -> str:
        """Create a new project."""
        return await run_tool("create_project", client.create_project(name, description))

    @mcp.tool(name="update_project", annotations={"title": "Update Project", "readOnlyHint": MUTATING})
    async def update_project(
        uuid: Annotated[str, "Project UUID"],
        name: Annotated[str | None, "Project name"] = None,
        description: Annotated[str | None, "Description"] = None,
    ) -> str:
        """Update a project."""
        return await run_tool("update_project", client.update_project(uuid, name=name, description=description))

    @mcp.tool(name="delete_project", annotations={"title": "Delete Project", "readOnlyHint": MUTATING})
    async def delete_project(uuid: Annotated[str, "Project UUID"]) -> str:
        """Delete a project."""
        return await run_tool("delete_project", client.delete_project(uuid))

    @mcp.tool(name="list_environments", annotations={"title": "List Environments", "readOnlyHint": READ_ONLY})
    async def list_environments(project_uuid: Annotated[str, "Project UUID"]) -> str:
        """List environments in a project."""
        return await run_tool("list_environments", client.list_project_environments(project_uuid))

    @mcp.tool(name="get_environment", annotations={"title": "Get Environment", "readOnlyHint": READ_ONLY})
    async def get_environment(
        project_uuid: Annotated[str, "Project UUID"],
        environment: Annotated[str, "Environment name or UUID"],
    ) -> str:
        """Get environment details."""
        return await run_tool("get_environment", client.get_project_environment(project_uuid, environment))

    @mcp.tool(name="create_environment", annotations={"title": "Create Environment", "readOnlyHint": MUTATING})
    async def create_environment(
        project_uuid: Annotated[str, "Project UUID"],
        name: Annotated[str, "Environment name"],
        description: Annotated[str | None, "Description"] = None,
    ) -> str:
        """Create an environment in a project."""
        return await run_tool(
            "create_environment", client.create_project_environment(project_uuid, name, description)
        )

    @mcp.tool(name="delete_environment", annotations={"title": "Delete Environment", "readOnlyHint": MUTATING})
    async def delete_environment(environment_uuid: Annotated[str, "Environment UUID"]) -> str:
        """Delete an environment."""
        return await run_tool("delete_environment", client.delete_project_environment(environment_uuid))


def _register_application_tools(mcp: FastMCP, client: CoolifyClient) -> None:
    @mcp.tool(name="list_applications", annotations={"title": "List Applications", "readOnlyHint": READ_ONLY})
    async def list_applications(
        page: Annotated[int | None, "Page number"] = None,
        per_page: Annotated[int | None, "Items per page"] = None,
        summary: Annotated[bool, "Return only uuid, name, status, fqdn and git info"] = False,
    ) -> str:
        """List all applications."""
        return await run_tool(
            "list_applications", client.list_applications(page=page, per_page=per_page, summary=summary)
        )

    @mcp.tool(name="get_application", annotations={"title": "Get Application", "readOnlyHint": READ_ONLY})
    async def get_application(uuid: Annotated[str, "Application UUID"]) -> str:
        """Get application details."""
        return await run_tool("get_application", client.get_application(uuid))

    @mcp.tool(name="update_application", annotations={"title": "Update Application", "readOnlyHint": MUTATING})
    async def update_application(
        uuid: Annotated[str, "Application UUID"],
        name: Annotated[str | None, "Name"] = None,
        description: Annotated[str | None, "Description"] = None,
        fqdn: Annotated[str | None, "Domain"] = None,
        git_branch: Annotated[str | None, "Git branch"] = None,
    ) -> str:
        """Update an application."""
        data = {"name": name, "description": description, "fqdn": fqdn, "git_branch": git_branch}
        return await run_tool("update_application", client.update_application(uuid, data))

    @mcp.tool(name="delete_application", annotations={"title": "Delete Application", "readOnlyHint": MUTATING})
    async def delete_application(
        uuid: Annotated[str, "Application UUID"],
        delete_volumes: Annotated[bool | None, "Delete volumes"] = None,
    ) -> str:
        """Delete an application."""
        return await run_tool("delete_application", client.delete_application(uuid, delete_volumes=delete_volumes))

    @mcp.tool(name="start_application", annotations={"title": "Start Application", "readOnlyHint": MUTATING})
    async def start_application(
        uuid: Annotated[str, "Application UUID"],
        force: Annotated[bool | None, "Force rebuild"] = None,
        instant_deploy: Annotated[bool | None, "Skip the deployment queue"] = None,
    ) -> str:
        """Start (deploy) an application."""
        return await run_tool(
            "start_application", client.start_application(uuid, force=force, instant_deploy=instant_deploy)
        )

    @mcp.tool(name="stop_application", annotations={"title": "Stop Application", "readOnlyHint": MUTATING})
    async def stop_application(uuid: Annotated[str, "Application UUID"]) -> str:
        """Stop an application."""
        return await run_tool("stop_application", client.stop_application(uuid))

    @mcp.tool(name="restart_application", annotations={"title": "Restart Application", "readOnlyHint": MUTATING})
    async def restart_application(uuid: Annotated[str, "Application UUID"]) -> str:
        """Restart an application."""
        return await run_tool("restart_application", client.restart_application(uuid))

    @mcp.tool(name="get_application_logs", annotations={"title": "Application Logs", "readOnlyHint": READ_ONLY})
    async def get_application_logs(
        uuid: Annotated[str, "Application UUID"],
        lines: Annotated[int, "Number of lines"] = 100,
    ) -> str:
        """Get application logs."""
        return await run_tool("get_application_logs", client.get_application_logs(uuid, lines))

    @mcp.tool(name="list_application_envs", annotations={"title": "List App Env Vars", "readOnlyHint": READ_ONLY})
    async def list_application_envs(uuid: Annotated[str, "Application UUID"]) -> str:
        """List application environment variables."""
        return await run_tool("list_application_envs", client.list_application_env_vars(uuid))

    @mcp.tool(name="create_application_env", annotations={"title": "Create App Env Var", "readOnlyHint": MUTATING})
    async def create_application_env(
        uuid: Annotated[str, "Application UUID"],
        key: Annotated[str, "Variable key"],
        value: Annotated[str, "Variable value"],
        is_build_time: Annotated[bool | None, "Build time variable"] = None,
    ) -> str:
        """Create an application environment variable."""
        return await run_tool(
            "create_application_env",
            client.create_application_env_var(uuid, key, value, is_build_time=is_build_time),
        )

    @mcp.tool(name="update_application_env", annotations={"title": "Update App Env Var", "readOnlyHint": MUTATING})
    async def update_application_env(
        uuid: Annotated[str, "Application UUID"],
        key: Annotated[str, "Variable key"],
        value: Annotated[str, "Variable value"],
    ) -> str:
        """Update an application environment variable."""
        return await run_tool("update_application_env", client.update_application_env_var(uuid, key, value))

    @mcp.tool(
        name="bulk_update_application_envs",
        annotations={"title": "Bulk Update App Env Vars", "readOnlyHint": MUTATING},
    )
    async def bulk_update_application_envs(
        uuid: Annotated[str, "Application UUID"],
        variables: Annotated[list[dict[str, Any]], "Variables as [{'key': ..., 'value': ...}]"],
    ) -> str:
        """Create or update several application environment variables at once."""
        return await run_tool(
            "bulk_update_application_envs", client.bulk_update_application_env_vars(uuid, variables)
        )

    @mcp.tool(name="delete_application_env", annotations={"title": "Delete App Env Var", "readOnlyHint": MUTATING})
    async def delete_application_env(
        uuid: Annotated[str, "Application UUID"],
        env_uuid: Annotated[str, "Env variable UUID"],
    ) -> str:
        """Delete an application environment variable."""
        return await run_tool("delete_application_env", client.delete_application_env_var(uuid, env_uuid))


def _register_database_tools(mcp: FastMCP, client: CoolifyClient) -> None:
    @mcp.tool(name="list_databases", annotations={"title": "List Databases", "readOnlyHint": READ_ONLY})
    async def list_databases(
        page: Annotated[int | None, "Page number"] = None,
        per_page: Annotated[int | None, "Items per page"] = None,
        summary: Annotated[bool, "Return only uuid, name, type, status and exposure"] = False,
    ) -> str:
        """List all databases."""
        return await run_tool("list_databases", client.list_databases(page=page, per_page=per_page, summary=summary))

    @mcp.tool(name="get_database", annotations={"title": "Get Database", "readOnlyHint": READ_ONLY})
    async def get_database(uuid: Annotated[str, "Database UUID"]) -> str:
        """Get database details."""
        return await run_tool("get_database", client.get_database(uuid))

    @mcp.tool(name="start_database", annotations={"title": "Start Database", "readOnlyHint": MUTATING})
    async def start_database(uuid: Annotated[str, "Database UUID"]) -> str:
        """Start a database."""
        return await run_tool("start_database", client.start_database(uuid))

    @mcp.tool(name="stop_database", annotations={"title": "Stop Database", "readOnlyHint": MUTATING})
    async def stop_database(uuid: Annotated[str, "Database UUID"]) -> str:
        """Stop a database."""
        return await run_tool("stop_database", client.stop_database(uuid))

    @mcp.tool(name="restart_database", annotations={"title": "Restart Database", "readOnlyHint": MUTATING})
    async def restart_database(uuid: Annotated[str, "Database UUID"]) -> str:
        """Restart a database."""
        return await run_tool("restart_database", client.restart_database(uuid))


def _register_service_tools(mcp: FastMCP, client: CoolifyClient) -> None:
    @mcp.tool(name="list_services", annotations={"title": "List Services", "readOnlyHint": READ_ONLY})
    async def list_services(
        page: Annotated[int | None, "Page number"] = None,
        per_page: Annotated[int | None, "Items per page"] = None,
        summary: Annotated[bool, "Return only uuid, name, type, status and domains"] = False,
    ) -> str:
        """List all services."""
        return await run_tool("list_services", client.list_services(page=page, per_page=per_page, summary=summary))

    @mcp.tool(name="get_service", annotations={"title": "Get Service", "readOnlyHint": READ_ONLY})
    async def get_service(uuid: Annotated[str, "Service UUID"]) -> str:
        """Get service details."""
        return await run_tool("get_service", client.get_service(uuid))

    @mcp.tool(name="start_service", annotations={"title": "Start Service", "readOnlyHint": MUTATING})
    async def start_service(uuid: Annotated[str, "Service UUID"]) -> str:
        """Start a service."""
        return await run_tool("start_service", client.start_service(uuid))

    @mcp.tool(name="stop_service", annotations={"title": "Stop Service", "readOnlyHint": MUTATING})
    async def stop_service(uuid: Annotated[str, "Service UUID"]) -> str:
        """Stop a service."""
        return await run_tool("stop_service", client.stop_service(uuid))

    @mcp.tool(name="restart_service", annotations={"title": "Restart Service", "readOnlyHint": MUTATING})
    async def restart_service(uuid: Annotated[str, "Service UUID"]) -> str:
        """Restart a service."""
        return await run_tool("restart_service", client.restart_service(uuid))

    @mcp.tool(name="list_service_envs", annotations={"title": "List Service Env Vars", "readOnlyHint": READ_ONLY})
    async def list_service_envs(uuid: Annotated[str, "Service UUID"]) -> str:
        """List service environment variables."""
        return await run_tool("list_service_envs", client.list_service_env_vars(uuid))

    @mcp.tool(name="create_service_env", annotations={"title": "Create Service Env Var", "readOnlyHint": MUTATING})
    async def create_service_env(
        uuid: Annotated[str, "Service UUID"],
        key: Annotated[str, "Variable key"],
        value: Annotated[str, "Variable value"],
    ) -> str:
        """Create a service environment variable."""
        return await run_tool("create_service_env", client.create_service_env_var(uuid, key, value))

    @mcp.tool(name="delete_service_env", annotations={"title": "Delete Service Env Var", "readOnlyHint": MUTATING})
    async def delete_service_env(
        uuid: Annotated[str, "Service UUID"],
        env_uuid: Annotated[str, "Env variable UUID"],
    ) -> str:
        """Delete a service environment variable."""
        return await run_tool("delete_service_env", client.delete_service_env_var(uuid, env_uuid))


def _register_deployment_tools(mcp: FastMCP, client: CoolifyClient) -> None:
    @mcp.tool(name="list_deployments", annotations={"title": "List Deployments", "readOnlyHint": READ_ONLY})
    async def list_deployments(
        page: Annotated[int | None, "Page number"] = None,
        per_page: Annotated[int | None, "Items per page"] = None,
        summary: Annotated[bool, "Return only ids, application name, status and creation time"] = False,
    ) -> str:
        """List running deployments."""
        return await run_tool(
            "list_deployments", client.list_deployments(page=page, per_page=per_page, summary=summary)
        )

    @mcp.tool(name="get_deployment", annotations={"title": "Get Deployment", "readOnlyHint": READ_ONLY})
    async def get_deployment(uuid: Annotated[str, "Deployment UUID"]) -> str:
        """Get deployment details."""
        return await run_tool("get_deployment", client.get_deployment(uuid))

    @mcp.tool(name="deploy", annotations={"title": "Deploy", "readOnlyHint": MUTATING})
    async def deploy(
        tag_or_uuid: Annotated[str, "Tag or UUID"],
        force: Annotated[bool, "Force rebuild"] = False,
    ) -> str:
        """Deploy by tag or UUID."""
        return await run_tool("deploy", client.deploy_by_tag_or_uuid(tag_or_uuid, force))

    @mcp.tool(name="cancel_deployment", annotations={"title": "Cancel Deployment", "readOnlyHint": MUTATING})
    async def cancel_deployment(uuid: Annotated[str, "Deployment UUID"]) -> str:
        """Cancel a queued or running deployment."""
        return await run_tool("cancel_deployment", client.cancel_deployment(uuid))

    @mcp.tool(
        name="list_application_deployments",
        annotations={"title": "List App Deployments", "readOnlyHint": READ_ONLY},
    )
    async def list_application_deployments(uuid: Annotated[str, "Application UUID"]) -> str:
        """List deployments for an application."""
        return await run_tool("list_application_deployments", client.list_application_deployments(uuid))


def _register_diagnostic_tools(mcp: FastMCP, client: CoolifyClient) -> None:
    @mcp.tool(name="diagnose_app", annotations={"title": "Diagnose Application", "readOnlyHint": READ_ONLY})
    async def diagnose_app(query: Annotated[str, "Application UUID, name or domain"]) -> str:
        """Diagnose an application: status, health issues, recent logs, env var names and deployments.

        Accepts a UUID, a name or a domain, e.g. "my-api" or "api.example.com".
        """
        return await run_tool("diagnose_app", diagnose_application(client, query))

    @mcp.tool(name="diagnose_server", annotations={"title": "Diagnose Server", "readOnlyHint": READ_ONLY})
    async def diagnose_server_tool(query: Annotated[str, "Server UUID, name or IP address"]) -> str:
        """Diagnose a server: reachability, hosted resources, domains and validation."""
        return await run_tool("diagnose_server", diagnose_server(client, query))

    @mcp.tool(name="find_issues", annotations={"title": "Find Infrastructure Issues", "readOnlyHint": READ_ONLY})
    async def find_issues() -> str:
        """Scan the whole infrastructure for unreachable servers and unhealthy resources."""
        return await run_tool("find_issues", find_infrastructure_issues(client))
