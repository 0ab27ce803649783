"""Exceptions raised while resolving and calling Space endpoints."""


class EndpointError(Exception):
    """Base class for endpoint resolution and call failures."""
    pass


class InvalidPathFormatError(EndpointError):
    """Endpoint path does not have the expected owner/space[/endpoint] shape."""
    pass


class NoValidEndpointError(EndpointError):
    """Discovery succeeded but nothing callable was found."""
    pass


class InvalidFilePathError(EndpointError):
    """A file argument points outside the working directory or does not exist."""
    pass


class RemoteExecutionError(EndpointError):
    """The Space reported an error while running the call."""
    pass


class NoDataReceivedError(EndpointError):
    """The event stream ended without producing any output."""
    pass


class EndpointCallError(EndpointError):
    """Envelope for any failure during a tool call."""
    pass


class ContentConversionError(Exception):
    """A returned value could not be turned into a content block."""
    pass
