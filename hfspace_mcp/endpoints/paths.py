"""
Endpoint path parsing.

A fully specified endpoint path is "owner/space/endpoint", where the
endpoint is either a name ("predict" -> "/predict") or the positional
index of an unnamed endpoint ("0"). Configured paths may omit the
endpoint; the wrapper then picks one after discovery.
"""

import re
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from hfspace_mcp.endpoints.errors import InvalidPathFormatError

MAX_TOOL_NAME_LENGTH = 64
_TOOL_NAME_INVALID = re.compile(r"[^a-zA-Z0-9_-]")
_INDEX = re.compile(r"-?\d+")


class EndpointReference(BaseModel):
    """Identifies one remote callable and the names it is exposed under."""
    model_config = ConfigDict(frozen=True)

    owner: str
    space: str
    endpoint: Union[int, str]
    tool_name: str
    display_name: str

    @property
    def space_id(self) -> str:
        return f"{self.owner}/{self.space}"

    @property
    def is_positional(self) -> bool:
        return isinstance(self.endpoint, int)


def _segments(path: str) -> list[str]:
    return path[1:].split("/") if path.startswith("/") else path.split("/")


def _as_index(raw: str) -> Optional[int]:
    # plain digits only, so "1_000" stays a name
    return int(raw) if _INDEX.fullmatch(raw) else None


def format_tool_name(space: str, endpoint: str) -> str:
    return _TOOL_NAME_INVALID.sub("_", f"{space}-{endpoint}")[:MAX_TOOL_NAME_LENGTH]


def format_display_name(space: str, endpoint: str) -> str:
    return f"{space} endpoint /{endpoint}"


def has_explicit_endpoint(path: str) -> bool:
    """True when the path names owner, space and endpoint."""
    return len(_segments(path)) == 3


def parse_path(path: str) -> EndpointReference:
    """
    Parse "owner/space/endpoint" into an EndpointReference.

    Raises:
        InvalidPathFormatError: If the path does not have exactly three segments
    """
    parts = _segments(path)
    if len(parts) != 3:
        raise InvalidPathFormatError(
            f"Invalid endpoint path format [{path}]. Use owner/space/endpoint"
        )

    owner, space, raw_endpoint = parts
    index = _as_index(raw_endpoint)
    return EndpointReference(
        owner=owner,
        space=space,
        endpoint=index if index is not None else f"/{raw_endpoint}",
        tool_name=format_tool_name(space, raw_endpoint),
        display_name=format_display_name(space, raw_endpoint),
    )


def split_space_path(path: str) -> tuple[str, str, Optional[str]]:
    """
    Split a configured path into (owner, space, endpoint-or-None).

    Raises:
        InvalidPathFormatError: If the path has fewer than 2 or more than 3 segments
    """
    parts = _segments(path)
    if len(parts) < 2 or len(parts) > 3:
        raise InvalidPathFormatError(
            f"Invalid space path format [{path}]. Use: owner/space or owner/space/endpoint"
        )
    endpoint = parts[2] if len(parts) == 3 and parts[2] else None
    return parts[0], parts[1], endpoint
