"""
Remote Space protocols - define the contract for the computation backend.

This is the WHAT (interface), not the HOW (implementation).
See gradio.py for the gradio_client implementation.
"""

from typing import Any, AsyncGenerator, Optional, Protocol, Union

from hfspace_mcp.adapters.schema import ApiStructure, RemoteEvent


class RemoteClient(Protocol):
    """
    A connection to one remote Space.

    Implementations must provide:
    - Endpoint discovery (view_api)
    - Streaming submission (submit)
    - Upload handles for file-like arguments (upload_handle)
    """

    async def view_api(self) -> ApiStructure:
        """Return the named and unnamed endpoints the Space exposes."""
        ...

    def submit(
        self,
        endpoint: Union[str, int],
        arguments: dict[str, Any],
    ) -> AsyncGenerator[RemoteEvent, None]:
        """
        Submit a call and stream its events.

        Args:
            endpoint: Endpoint name ("/predict") or positional index
            arguments: Argument map keyed by schema property name

        Yields:
            StatusEvent and DataEvent objects in stream order

        Callers close the stream (aclose) when they stop early, so an
        implementation can cancel the remote job.
        """
        ...

    def upload_handle(self, path_or_url: str) -> Any:
        """Wrap a local path or URL so the Space receives it as a file."""
        ...


class RemoteConnector(Protocol):
    """Factory that opens RemoteClient connections."""

    async def connect(self, space_id: str, token: Optional[str] = None) -> RemoteClient:
        """
        Connect to a Space.

        Args:
            space_id: "owner/space" identifier
            token: Optional bearer token for private or gated Spaces
        """
        ...
