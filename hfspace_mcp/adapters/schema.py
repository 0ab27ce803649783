"""
Data model for remote Space endpoints.

Pydantic models for the discovery document returned by
gradio_client's view_api(return_format="dict") and for the events
streamed back while a submission runs. These are the common language
between the remote adapter and the endpoint layer.
"""

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class ComponentKind(str, Enum):
    """UI component families that change how values are handled."""
    IMAGE = "Image"
    AUDIO = "Audio"
    CHATBOT = "Chatbot"
    OTHER = "Other"


def component_kind(component: Optional[str]) -> ComponentKind:
    """Map a raw component name onto ComponentKind. Unknown names are OTHER."""
    for kind in (ComponentKind.IMAGE, ComponentKind.AUDIO, ComponentKind.CHATBOT):
        if component == kind.value:
            return kind
    return ComponentKind.OTHER


class PythonType(BaseModel):
    """Free-text type expression and description attached to a slot."""
    type: str = ""
    description: str = ""

    @field_validator("type", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


def _coarse_type(value: Any) -> Any:
    # view_api reports a JSON-schema dict; older payloads use a bare tag
    if value is None:
        return ""
    if isinstance(value, dict):
        inner = value.get("type", "")
        return inner if isinstance(inner, str) else ""
    return value


class ReturnDescriptor(BaseModel):
    """One output slot of an endpoint."""
    label: str = ""
    type: str = ""
    python_type: PythonType = Field(default_factory=PythonType)
    component: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        return _coarse_type(value)

    @field_validator("python_type", mode="before")
    @classmethod
    def _default_python_type(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("label", "component", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def component_kind(self) -> ComponentKind:
        return component_kind(self.component)


class ParameterDescriptor(ReturnDescriptor):
    """One input slot of an endpoint."""
    parameter_name: Optional[str] = None
    parameter_has_default: bool = False
    parameter_default: Any = None
    example_input: Any = None


class EndpointCapabilities(BaseModel):
    generator: bool = False
    cancel: bool = False


class EndpointSpec(BaseModel):
    """Discovery result for one callable endpoint."""
    parameters: list[ParameterDescriptor] = Field(default_factory=list)
    returns: list[ReturnDescriptor] = Field(default_factory=list)
    type: EndpointCapabilities = Field(default_factory=EndpointCapabilities)

    @field_validator("type", mode="before")
    @classmethod
    def _default_capabilities(cls, value: Any) -> Any:
        return {} if value is None else value


class ApiStructure(BaseModel):
    """Named and positional endpoints exposed by one Space, in discovery order."""
    named_endpoints: dict[str, EndpointSpec] = Field(default_factory=dict)
    unnamed_endpoints: dict[str, EndpointSpec] = Field(default_factory=dict)

    @field_validator("named_endpoints", "unnamed_endpoints", mode="before")
    @classmethod
    def _string_keys(cls, value: Any) -> Any:
        # gradio_client keys unnamed endpoints by integer fn_index
        if isinstance(value, dict):
            return {str(key): spec for key, spec in value.items()}
        return {} if value is None else value


# ─────────────────────────────────────────────────────────────────────
# STREAM EVENTS
# ─────────────────────────────────────────────────────────────────────

class ProgressUnit(BaseModel):
    """One entry of step-progress data reported by a running job."""
    index: Optional[int] = None
    length: Optional[int] = None
    unit: Optional[str] = None
    progress: Optional[float] = None
    desc: Optional[str] = None


class StatusEvent(BaseModel):
    """Queue / processing status update for a submission."""
    type: Literal["status"] = "status"
    stage: str
    message: Optional[str] = None
    queue: bool = False
    position: Optional[int] = None
    eta: Optional[float] = None
    progress_data: Optional[list[ProgressUnit]] = None


class DataEvent(BaseModel):
    """Positional output values produced by a submission."""
    type: Literal["data"] = "data"
    data: list[Any] = Field(default_factory=list)


RemoteEvent = Union[DataEvent, StatusEvent]
