"""MCP protocol server for hfspace-mcp.

Exposes every bound Space endpoint as an MCP tool (and a matching
prompt), plus the working directory as resources, over stdio.
Claude Desktop (or any MCP client) launches this as a subprocess.

Tool schemas come from Space discovery at startup, so this uses the
low-level Server rather than FastMCP's signature-derived tools.

Entry points:
    hfspace-mcp              (console script)
    python -m hfspace_mcp.mcp
"""

import base64
import logging
from typing import Any, Optional

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server

from hfspace_mcp import __version__
from hfspace_mcp.config import SERVER_NAME, Config
from hfspace_mcp.endpoints.progress import ProgressNotification, ProgressSink, ProgressToken
from hfspace_mcp.mcp.registry import get_endpoint, list_endpoints, load_endpoints
from hfspace_mcp.working_directory import WorkingDirectory

logger = logging.getLogger(__name__)

AVAILABLE_RESOURCES = "Available Resources"


class ToolCallFailed(Exception):
    """Raised inside the SDK handler so it reports isError=True."""
    pass


# ─────────────────────────────────────────────────────────────────────
# HANDLERS (transport-free)
# ─────────────────────────────────────────────────────────────────────

def list_tools() -> list[types.Tool]:
    return [endpoint.tool_definition() for endpoint in list_endpoints()]


async def call_tool(
    name: str,
    arguments: Optional[dict[str, Any]],
    progress_token: Optional[ProgressToken] = None,
    sink: Optional[ProgressSink] = None,
) -> types.CallToolResult:
    """
    Dispatch a tool call.

    Call failures come back as isError results with a single text
    block, never as exceptions.

    Raises:
        ValueError: If the tool name is unknown
    """
    endpoint = get_endpoint(name)
    try:
        return await endpoint.call(arguments or {}, progress_token=progress_token, sink=sink)
    except Exception as e:
        logger.error(f"Tool {name} failed: {e}")
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=f"{SERVER_NAME} error: {e}")],
            isError=True,
        )


def list_prompts() -> list[types.Prompt]:
    return [
        types.Prompt(
            name=AVAILABLE_RESOURCES,
            description="List of available resources.",
            arguments=[],
        ),
        *(endpoint.prompt_definition() for endpoint in list_endpoints()),
    ]


def get_prompt(
    name: str,
    arguments: Optional[dict[str, str]],
    working_directory: WorkingDirectory,
) -> types.GetPromptResult:
    """
    Render a prompt.

    Raises:
        ValueError: If the prompt name is unknown
    """
    if name == AVAILABLE_RESOURCES:
        return types.GetPromptResult(
            messages=[
                types.PromptMessage(
                    role="user",
                    content=types.TextContent(type="text", text=working_directory.resource_table()),
                )
            ]
        )
    try:
        endpoint = get_endpoint(name)
    except ValueError:
        raise ValueError(f"Unknown prompt: {name}") from None
    return endpoint.get_prompt_template(arguments)


def list_resources(working_directory: WorkingDirectory) -> list[types.Resource]:
    return [
        types.Resource(
            uri=working_directory.file_url(resource.path),
            name=resource.name,
            mimeType=resource.mime_type,
        )
        for resource in working_directory.supported_resources()
    ]


def read_resource(uri: str, working_directory: WorkingDirectory) -> list[ReadResourceContents]:
    contents = working_directory.read_resource(uri)
    if contents.text is not None:
        return [ReadResourceContents(content=contents.text, mime_type=contents.mime_type)]
    return [
        ReadResourceContents(content=base64.b64decode(contents.blob or ""), mime_type=contents.mime_type)
    ]


# ─────────────────────────────────────────────────────────────────────
# SERVER
# ─────────────────────────────────────────────────────────────────────

def progress_notification(notification: ProgressNotification) -> types.ServerNotification:
    params = types.ProgressNotificationParams.model_validate(
        {
            "progressToken": notification.progress_token,
            "progress": notification.progress,
            "total": notification.total,
            "message": notification.message,
            "_meta": notification.meta,
        }
    )
    return types.ServerNotification(
        types.ProgressNotification(method="notifications/progress", params=params)
    )


def create_server(working_directory: WorkingDirectory) -> Server:
    """Build the MCP server over the registered endpoints."""
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return list_tools()

    @server.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: dict[str, Any]) -> list[types.ContentBlock]:
        ctx = server.request_context
        progress_token = ctx.meta.progressToken if ctx.meta else None

        async def send(notification: ProgressNotification) -> None:
            await ctx.session.send_notification(
                progress_notification(notification), related_request_id=ctx.request_id
            )

        result = await call_tool(name, arguments, progress_token=progress_token, sink=send)
        if result.isError:
            raise ToolCallFailed(result.content[0].text)
        return list(result.content)

    @server.list_prompts()
    async def handle_list_prompts() -> list[types.Prompt]:
        return list_prompts()

    @server.get_prompt()
    async def handle_get_prompt(
        name: str, arguments: Optional[dict[str, str]]
    ) -> types.GetPromptResult:
        return get_prompt(name, arguments, working_directory)

    @server.list_resources()
    async def handle_list_resources() -> list[types.Resource]:
        return list_resources(working_directory)

    @server.read_resource()
    async def handle_read_resource(uri) -> list[ReadResourceContents]:
        return read_resource(str(uri), working_directory)

    return server


async def run_server(config: Config) -> None:
    """Resolve configured Spaces, then serve MCP over stdio until closed."""
    working_directory = WorkingDirectory(config.work_dir, desktop_mode=config.desktop_mode)
    endpoints = await load_endpoints(config, working_directory=working_directory)
    logger.info(f"Serving {len(endpoints)} endpoint(s) from {working_directory.directory}")

    server = create_server(working_directory)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
