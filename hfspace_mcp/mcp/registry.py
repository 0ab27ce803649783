"""
MCP Endpoint Registry - the table of bound endpoints, keyed by tool name.

Populated once at startup from the configured space paths; read-only
while the server handles requests.

Usage:
    # At startup
    await load_endpoints(config)

    # In MCP handlers
    endpoint = get_endpoint("FLUX_1-schnell-infer")
    result = await endpoint.call(arguments)
"""

import logging
from typing import Optional, TYPE_CHECKING

from hfspace_mcp.endpoints.errors import NoValidEndpointError

if TYPE_CHECKING:
    from hfspace_mcp.adapters.base import RemoteConnector
    from hfspace_mcp.config import Config
    from hfspace_mcp.endpoints.content import ContentConverter
    from hfspace_mcp.endpoints.wrapper import EndpointWrapper
    from hfspace_mcp.working_directory import WorkingDirectory

logger = logging.getLogger(__name__)

_endpoints: dict[str, "EndpointWrapper"] = {}


def register_endpoint(endpoint: "EndpointWrapper") -> None:
    """
    Register a bound endpoint under its tool name.

    A later endpoint with the same tool name replaces the earlier one.
    """
    if endpoint.tool_name in _endpoints:
        logger.warning(f"Tool name {endpoint.tool_name} registered twice; keeping the latest")
    _endpoints[endpoint.tool_name] = endpoint


def get_endpoint(tool_name: str) -> "EndpointWrapper":
    """
    Look up an endpoint by tool name.

    Raises:
        ValueError: If no endpoint has that name
    """
    try:
        return _endpoints[tool_name]
    except KeyError:
        raise ValueError(f"Unknown tool: {tool_name}") from None


def list_endpoints() -> list["EndpointWrapper"]:
    return list(_endpoints.values())


def clear_endpoints() -> None:
    """
    Clear all registered endpoints.

    Primarily useful for testing to reset state between tests.
    """
    _endpoints.clear()


async def load_endpoints(
    config: "Config",
    connector: Optional["RemoteConnector"] = None,
    converter: Optional["ContentConverter"] = None,
    working_directory: Optional["WorkingDirectory"] = None,
) -> list["EndpointWrapper"]:
    """
    Resolve every configured space path and register the results.

    Failures are logged and skipped; other paths still load.

    Raises:
        NoValidEndpointError: If no path resolved at all
    """
    from hfspace_mcp.endpoints.content import default_converter
    from hfspace_mcp.endpoints.wrapper import EndpointWrapper
    from hfspace_mcp.working_directory import WorkingDirectory

    if connector is None:
        from hfspace_mcp.adapters.gradio import GradioConnector
        connector = GradioConnector()
    converter = converter or default_converter()
    working_directory = working_directory or WorkingDirectory(
        config.work_dir, desktop_mode=config.desktop_mode
    )

    loaded = []
    for space_path in config.space_paths:
        try:
            endpoint = await EndpointWrapper.create_endpoint(
                space_path,
                connector,
                working_directory,
                converter=converter,
                hf_token=config.hf_token,
                desktop_mode=config.desktop_mode,
                debug=config.debug,
            )
        except Exception as e:
            # connection failures surface as whatever gradio_client raises
            logger.error(f"Error loading {space_path}: {e}")
            continue
        register_endpoint(endpoint)
        loaded.append(endpoint)

    if not _endpoints:
        raise NoValidEndpointError("No valid endpoints found in any of the provided spaces")

    return loaded
