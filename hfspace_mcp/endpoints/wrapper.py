"""
EndpointWrapper - one Space endpoint exposed as one MCP tool.

Resolves which endpoint to bind, publishes the tool and prompt
definitions, and drives a call end to end: file-argument validation,
submission, streaming progress, and result conversion.

Usage:
    wrapper = await EndpointWrapper.create_endpoint(
        "evalstate/FLUX.1-schnell", GradioConnector(),
        working_directory=WorkingDirectory("."),
    )
    result = await wrapper.call({"prompt": "a lighthouse"}, progress_token="t1", sink=send)
"""

import json
import logging
import uuid
from contextlib import aclosing
from enum import Enum
from typing import Any, Optional

from mcp import types

from hfspace_mcp.adapters.base import RemoteClient, RemoteConnector
from hfspace_mcp.adapters.schema import ApiStructure, EndpointSpec, ParameterDescriptor, RemoteEvent
from hfspace_mcp.endpoints.content import ContentConverter, ConversionContext, default_converter
from hfspace_mcp.endpoints.errors import (
    EndpointCallError,
    NoDataReceivedError,
    NoValidEndpointError,
    RemoteExecutionError,
)
from hfspace_mcp.endpoints.paths import EndpointReference, parse_path, split_space_path
from hfspace_mcp.endpoints.progress import ProgressNotifier, ProgressSink, ProgressToken
from hfspace_mcp.endpoints.schema_convert import (
    convert_api_to_schema,
    is_file_parameter,
    schema_property_names,
)
from hfspace_mcp.working_directory import WorkingDirectory

logger = logging.getLogger(__name__)

# Tried in order when the configured path does not name an endpoint
PREFERRED_ENDPOINTS: tuple[str, ...] = (
    "/predict",
    "/infer",
    "/generate",
    "/complete",
    "/model_chat",
    "/lambda",
    "/generate_image",
    "/process_prompt",
    "/on_submit",
    "/add_text",
)


def select_endpoint(
    api: ApiStructure,
    owner: str,
    space: str,
    target: Optional[str] = None,
) -> tuple[EndpointReference, EndpointSpec]:
    """
    Pick the endpoint to bind.

    Explicit target, then PREFERRED_ENDPOINTS in order, then the first
    named endpoint, then the first unnamed endpoint with at least one
    parameter and one return.

    Raises:
        NoValidEndpointError: If nothing qualifies
    """
    base = f"{owner}/{space}"
    named = api.named_endpoints

    if target:
        if f"/{target}" in named:
            return parse_path(f"{base}/{target}"), named[f"/{target}"]
        if target in api.unnamed_endpoints:
            return parse_path(f"{base}/{target}"), api.unnamed_endpoints[target]
        logger.warning(f"Endpoint /{target} not found on {base}, choosing one")

    for name in PREFERRED_ENDPOINTS:
        if name in named:
            return parse_path(f"{base}{name}"), named[name]

    for name, spec in named.items():
        return parse_path(f"{base}/{name.lstrip('/')}"), spec

    for index, spec in api.unnamed_endpoints.items():
        if spec.parameters and spec.returns:
            return parse_path(f"{base}/{index}"), spec

    raise NoValidEndpointError(f"No valid endpoints found for {base}")


# ─────────────────────────────────────────────────────────────────────
# CALL STATE
# ─────────────────────────────────────────────────────────────────────

class CallPhase(str, Enum):
    AWAITING = "awaiting"
    STREAMING = "streaming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CallSession:
    """
    State of one call's event stream.

    Data policy: the last data event holding at least one non-None
    value wins. Later empty or all-None events (acks) never overwrite
    an earlier meaningful result.
    """

    def __init__(self):
        self.phase = CallPhase.AWAITING
        self.data: Optional[list[Any]] = None
        self.error: Optional[str] = None

    def on_data(self, data: list[Any]) -> None:
        self.phase = CallPhase.STREAMING
        if any(item is not None for item in data):
            self.data = list(data)

    def on_status(self) -> None:
        if self.phase is CallPhase.AWAITING:
            self.phase = CallPhase.STREAMING

    def fail(self, message: str) -> RemoteExecutionError:
        self.phase = CallPhase.FAILED
        self.error = message
        return RemoteExecutionError(f"Gradio error: {message}")

    def finish(self) -> list[Any]:
        """
        Close the stream and return the captured payload.

        Raises:
            NoDataReceivedError: If no meaningful data event arrived
        """
        if self.data is None:
            self.phase = CallPhase.FAILED
            self.error = "No data received from endpoint"
            raise NoDataReceivedError(self.error)
        self.phase = CallPhase.SUCCEEDED
        return self.data


# ─────────────────────────────────────────────────────────────────────
# WRAPPER
# ─────────────────────────────────────────────────────────────────────

class EndpointWrapper:
    """
    One bound Space endpoint.

    Design decisions:
    - Immutable binding: reference and endpoint spec never change
    - Schema derived once at construction
    - Converter registry injected, shared read-only across calls
    """

    def __init__(
        self,
        reference: EndpointReference,
        endpoint: EndpointSpec,
        client: RemoteClient,
        working_directory: WorkingDirectory,
        converter: Optional[ContentConverter] = None,
        hf_token: Optional[str] = None,
        desktop_mode: bool = True,
        debug: bool = False,
    ):
        self.reference = reference
        self.endpoint = endpoint
        self._client = client
        self._working_directory = working_directory
        self._converter = converter or default_converter()
        self._hf_token = hf_token
        self._desktop_mode = desktop_mode
        self._debug = debug

        self._schema = convert_api_to_schema(endpoint)
        self._parameters_by_key: dict[str, ParameterDescriptor] = {}
        for name, param in zip(schema_property_names(endpoint.parameters), endpoint.parameters):
            self._parameters_by_key[name] = param
        for param in endpoint.parameters:
            for key in (param.parameter_name, param.label):
                if key:
                    self._parameters_by_key.setdefault(key, param)

    @classmethod
    async def create_endpoint(
        cls,
        configured_path: str,
        connector: RemoteConnector,
        working_directory: WorkingDirectory,
        converter: Optional[ContentConverter] = None,
        hf_token: Optional[str] = None,
        desktop_mode: bool = True,
        debug: bool = False,
    ) -> "EndpointWrapper":
        """
        Connect to a Space and bind the best endpoint for configured_path.

        Raises:
            InvalidPathFormatError: If the path is not owner/space[/endpoint]
            NoValidEndpointError: If the Space exposes nothing callable
        """
        owner, space, target = split_space_path(configured_path)

        client = await connector.connect(f"{owner}/{space}", token=hf_token)
        api = await client.view_api()

        if debug:
            raw = getattr(client, "raw_api", None) or api.model_dump()
            debug_file = working_directory.directory / f"{owner}_{space}_debug_api.json"
            working_directory.save_file(
                json.dumps(raw, indent=2, default=str).encode("utf-8"), debug_file
            )

        reference, endpoint = select_endpoint(api, owner, space, target)
        logger.info(f"Bound {configured_path} to {reference.space_id} {reference.endpoint}")

        return cls(
            reference,
            endpoint,
            client,
            working_directory,
            converter=converter,
            hf_token=hf_token,
            desktop_mode=desktop_mode,
            debug=debug,
        )

    # ─────────────────────────────────────────────────────────────────
    # DEFINITIONS
    # ─────────────────────────────────────────────────────────────────

    @property
    def tool_name(self) -> str:
        return self.reference.tool_name

    @property
    def input_schema(self) -> dict[str, Any]:
        return self._schema

    def tool_definition(self) -> types.Tool:
        return types.Tool(
            name=self.tool_name,
            description=f"Call the {self.reference.display_name}",
            inputSchema=self._schema,
        )

    def prompt_name(self) -> str:
        return self.tool_name

    def prompt_definition(self) -> types.Prompt:
        required = set(self._schema["required"])
        return types.Prompt(
            name=self.prompt_name(),
            description=f"Use the {self.reference.display_name}.",
            arguments=[
                types.PromptArgument(
                    name=name,
                    description=prop.get("description") or name,
                    required=name in required,
                )
                for name, prop in self._schema["properties"].items()
            ],
        )

    def get_prompt_template(self, arguments: Optional[dict[str, str]] = None) -> types.GetPromptResult:
        """Fill-in-the-blank prompt text for this endpoint's parameters."""
        arguments = arguments or {}
        lines = []
        for name, prop in self._schema["properties"].items():
            default_hint = f" - default: {prop['default']}" if "default" in prop else ""
            value = arguments.get(name) or f"[Provide {prop.get('description') or name}{default_hint}]"
            lines.append(f"{name}: {value}")

        text = f"Using the {self.reference.display_name}:\n\n" + "\n".join(lines)
        return types.GetPromptResult(
            description=f"Use the {self.reference.display_name}.",
            messages=[
                types.PromptMessage(
                    role="user",
                    content=types.TextContent(type="text", text=text),
                )
            ],
        )

    # ─────────────────────────────────────────────────────────────────
    # CALLS
    # ─────────────────────────────────────────────────────────────────

    def _prepare_arguments(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Swap local paths / URLs in file arguments for upload handles."""
        prepared = dict(arguments)
        for key, value in arguments.items():
            param = self._parameters_by_key.get(key)
            if param is not None and is_file_parameter(param) and isinstance(value, str):
                validated = self._working_directory.validate_path(value)
                prepared[key] = self._client.upload_handle(validated)
        return prepared

    async def call(
        self,
        arguments: Optional[dict[str, Any]] = None,
        progress_token: Optional[ProgressToken] = None,
        sink: Optional[ProgressSink] = None,
    ) -> types.CallToolResult:
        """
        Run one tool call.

        Raises:
            EndpointCallError: Wrapping whatever went wrong, message
                prefixed with "Error calling endpoint:"
        """
        try:
            parameters = self._prepare_arguments(arguments or {})
            return await self.handle_tool_call(parameters, progress_token, sink)
        except Exception as e:
            raise EndpointCallError(f"Error calling endpoint: {e}") from e

    async def handle_tool_call(
        self,
        parameters: dict[str, Any],
        progress_token: Optional[ProgressToken] = None,
        sink: Optional[ProgressSink] = None,
    ) -> types.CallToolResult:
        session = CallSession()
        notifier = ProgressNotifier(sink)
        events: list[RemoteEvent] = []

        try:
            stream = self._client.submit(self.reference.endpoint, parameters)
            async with aclosing(stream):
                async for event in stream:
                    if self._debug:
                        events.append(event)

                    if event.type == "data":
                        session.on_data(event.data)
                    elif event.type == "status":
                        session.on_status()
                        if event.stage == "error":
                            raise session.fail(event.message or "Unknown error")
                        await notifier.notify(event, progress_token)

            data = session.finish()
            return await self._convert_results(data)
        finally:
            if self._debug and events:
                self._dump_events(events)

    async def _convert_results(self, data: list[Any]) -> types.CallToolResult:
        ctx = ConversionContext(
            tool_name=self.tool_name,
            working_directory=self._working_directory,
            hf_token=self._hf_token,
            desktop_mode=self._desktop_mode,
            debug=self._debug,
        )
        content = []
        for index, descriptor in enumerate(self.endpoint.returns):
            value = data[index] if index < len(data) else None
            content.append(await self._converter.convert(descriptor, value, ctx))
        return types.CallToolResult(content=content, isError=False)

    def _dump_events(self, events: list[RemoteEvent]) -> None:
        """Write the call's events to the working directory; never raises OSError."""
        debug_file = (
            self._working_directory.directory
            / f"{self.tool_name}_status_{uuid.uuid4().hex[:5]}.json"
        )
        payload = [event.model_dump() for event in events]
        try:
            self._working_directory.save_file(
                json.dumps(payload, indent=2, default=str).encode("utf-8"), debug_file
            )
        except OSError as e:
            logger.warning(f"Could not write event dump {debug_file}: {e}")
