"""Shared test fixtures for hfspace-mcp tests."""

import pytest
from typing import Any, Optional

from hfspace_mcp.adapters.schema import (
    ApiStructure,
    DataEvent,
    EndpointSpec,
    ParameterDescriptor,
    ReturnDescriptor,
    StatusEvent,
)
from hfspace_mcp.endpoints.content import ConversionContext
from hfspace_mcp.mcp.registry import clear_endpoints
from hfspace_mcp.working_directory import WorkingDirectory


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

MOCK_OWNER = "evalstate"
MOCK_SPACE = "FLUX.1-schnell"
MOCK_SPACE_ID = f"{MOCK_OWNER}/{MOCK_SPACE}"
MOCK_TOKEN = "hf_test_token"
MOCK_IMAGE_URL = "https://evalstate-flux-1-schnell.hf.space/file=/tmp/gradio/abc/image.webp"
MOCK_AUDIO_URL = "https://evalstate-tts.hf.space/file=/tmp/gradio/def/speech.wav"

# Trimmed view_api(return_format="dict") payload for FLUX.1-schnell
MOCK_FLUX_API = {
    "named_endpoints": {
        "/infer": {
            "parameters": [
                {
                    "label": "Prompt",
                    "parameter_name": "prompt",
                    "parameter_has_default": False,
                    "parameter_default": None,
                    "type": {"type": "string"},
                    "python_type": {"type": "str", "description": ""},
                    "component": "Textbox",
                    "example_input": "Hello!!",
                },
                {
                    "label": "Width",
                    "parameter_name": "width",
                    "parameter_has_default": True,
                    "parameter_default": 1024,
                    "type": {"type": "number"},
                    "python_type": {"type": "float", "description": "numeric value between 256 and 2048"},
                    "component": "Slider",
                    "example_input": 256,
                },
            ],
            "returns": [
                {
                    "label": "Result",
                    "type": {"type": "object"},
                    "python_type": {"type": "filepath", "description": ""},
                    "component": "Image",
                },
                {
                    "label": "Seed",
                    "type": {"type": "number"},
                    "python_type": {"type": "float", "description": ""},
                    "component": "Number",
                },
            ],
            "type": {"generator": False, "cancel": False},
        }
    },
    "unnamed_endpoints": {},
}


# ─────────────────────────────────────────────────────────────────────
# FACTORIES
# ─────────────────────────────────────────────────────────────────────

def make_param(
    label: str = "",
    parameter_name: Optional[str] = None,
    type: str = "string",
    python_type: str = "str",
    description: str = "",
    component: str = "Textbox",
    **kwargs: Any,
) -> ParameterDescriptor:
    return ParameterDescriptor(
        label=label,
        parameter_name=parameter_name,
        type=type,
        python_type={"type": python_type, "description": description},
        component=component,
        **kwargs,
    )


def make_return(label: str = "Output", component: str = "Textbox", type: str = "string") -> ReturnDescriptor:
    return ReturnDescriptor(label=label, component=component, type=type)


def make_endpoint(
    parameters: Optional[list[ParameterDescriptor]] = None,
    returns: Optional[list[ReturnDescriptor]] = None,
) -> EndpointSpec:
    return EndpointSpec(
        parameters=parameters if parameters is not None else [make_param("Text", "text")],
        returns=returns if returns is not None else [make_return()],
    )


# ─────────────────────────────────────────────────────────────────────
# FAKE REMOTE
# ─────────────────────────────────────────────────────────────────────

class UploadHandle:
    """Stands in for gradio_client's handle_file() result."""

    def __init__(self, path: str):
        self.path = path

    def __eq__(self, other):
        return isinstance(other, UploadHandle) and other.path == self.path


class FakeRemoteClient:
    """Scripted RemoteClient: replays `events` and records every submission."""

    def __init__(self, api: Optional[ApiStructure] = None, events: Optional[list] = None):
        self.api = api or ApiStructure()
        self.events = events if events is not None else [DataEvent(data=["ok"])]
        self.submissions: list[tuple[Any, dict[str, Any]]] = []
        self.closed = False

    async def view_api(self) -> ApiStructure:
        return self.api

    async def submit(self, endpoint, arguments):
        self.submissions.append((endpoint, dict(arguments)))
        try:
            for event in self.events:
                yield event
        finally:
            self.closed = True

    def upload_handle(self, path_or_url: str) -> UploadHandle:
        return UploadHandle(path_or_url)


class FakeConnector:
    """Scripted RemoteConnector handing back a single FakeRemoteClient."""

    def __init__(self, client: Optional[FakeRemoteClient] = None, error: Optional[Exception] = None):
        self.client = client or FakeRemoteClient()
        self.error = error
        self.connections: list[tuple[str, Optional[str]]] = []

    async def connect(self, space_id: str, token: Optional[str] = None) -> FakeRemoteClient:
        self.connections.append((space_id, token))
        if self.error is not None:
            raise self.error
        return self.client


def status(stage: str, **kwargs: Any) -> StatusEvent:
    return StatusEvent(stage=stage, **kwargs)


# ─────────────────────────────────────────────────────────────────────
# FIXTURES
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def work_dir(tmp_path):
    return WorkingDirectory(tmp_path)


@pytest.fixture
def desktop_work_dir(tmp_path):
    return WorkingDirectory(tmp_path, desktop_mode=True)


@pytest.fixture
def conversion_context(work_dir):
    return ConversionContext(tool_name="FLUX_1-schnell-infer", working_directory=work_dir)


@pytest.fixture
def flux_api():
    return ApiStructure.model_validate(MOCK_FLUX_API)


@pytest.fixture(autouse=True)
def reset_registry():
    """Each test starts with an empty endpoint registry."""
    clear_endpoints()
    yield
    clear_endpoints()


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    """No real waiting between retries in tests."""
    monkeypatch.setenv("HFSPACE_RETRY_ATTEMPTS", "2")
    monkeypatch.setenv("HFSPACE_RETRY_MIN_WAIT", "0")
    monkeypatch.setenv("HFSPACE_RETRY_MAX_WAIT", "0")
