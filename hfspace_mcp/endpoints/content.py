"""
Content conversion - turn returned values into MCP content blocks.

A ContentConverter maps component kinds to converter coroutines.
Converters may return None to defer to the default text rendering.
Image and audio outputs are fetched, saved to the working directory,
and returned inline (image) or as an embedded resource (audio).

Build one registry at startup with default_converter() and pass it to
every EndpointWrapper; it is read-only once calls start.
"""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

import httpx
from mcp import types
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from hfspace_mcp.adapters.schema import ComponentKind, ReturnDescriptor
from hfspace_mcp.config import (
    get_fetch_timeout,
    get_retry_attempts,
    get_retry_max_wait,
    get_retry_min_wait,
)
from hfspace_mcp.endpoints.errors import ContentConversionError
from hfspace_mcp.mime_types import (
    FALLBACK_MIME_TYPE,
    extension_from_filename,
    extension_from_url,
    mime_type_from_extension,
)
from hfspace_mcp.working_directory import WorkingDirectory

logger = logging.getLogger(__name__)

ContentBlock = Union[types.TextContent, types.ImageContent, types.EmbeddedResource]

DEFAULT_IMAGE_MIME_TYPE = "image/png"
DEFAULT_AUDIO_MIME_TYPE = "audio/wav"

AUDIO_UNSUPPORTED_NOTE = (
    "Your audio was successfully created and is available for playback. "
    "Claude Desktop does not currently support audio content"
)


@dataclass
class ConversionContext:
    """Per-call settings the converters need."""
    tool_name: str
    working_directory: WorkingDirectory
    hf_token: Optional[str] = None
    desktop_mode: bool = True
    debug: bool = False


Converter = Callable[
    [ReturnDescriptor, Any, ConversionContext], Awaitable[Optional[ContentBlock]]
]


def _field(value: Any, name: str) -> Any:
    if isinstance(value, dict):
        return value.get(name)
    return getattr(value, name, None)


def text_content(descriptor: ReturnDescriptor, value: Any) -> types.TextContent:
    """Default rendering: "<label>: <value>" (non-strings as JSON)."""
    label = f"{descriptor.label}: " if descriptor.label else ""
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    return types.TextContent(type="text", text=f"{label}{text}")


# ─────────────────────────────────────────────────────────────────────
# FETCH / MIME / SAVE
# ─────────────────────────────────────────────────────────────────────

@dataclass
class FetchedResource:
    data: bytes
    mime_type: str
    extension: str

    @property
    def base64_data(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")


def determine_mime_type(
    value: Any,
    original_name: Optional[str],
    content_type: Optional[str],
    fallback: str,
) -> str:
    """
    Pick a MIME type, most trustworthy source first.

    Explicit mime field on the value, then the original filename's
    extension, then the response Content-Type (ignoring the generic
    octet-stream), then the fallback.
    """
    explicit = _field(value, "mime_type") or _field(value, "mimeType")
    if explicit:
        return explicit

    if original_name:
        extension = extension_from_filename(original_name)
        if extension:
            return mime_type_from_extension(extension)

    if content_type:
        header_type = content_type.split(";")[0].strip()
        if header_type and header_type != FALLBACK_MIME_TYPE:
            return header_type

    return fallback


def choose_extension(original_name: Optional[str], url: str, mime_type: str) -> str:
    """The original file's extension wins over one derived from the MIME type."""
    extension = (extension_from_filename(original_name) if original_name else None) \
        or extension_from_url(url)
    if extension:
        return extension
    subtype = mime_type.split("/")[-1] if "/" in mime_type else ""
    return subtype or "bin"


async def fetch_resource(
    value: Any,
    fallback_mime_type: str,
    ctx: ConversionContext,
) -> FetchedResource:
    """
    Download the file a value points at.

    Raises:
        ContentConversionError: On a non-2xx response
    """
    url = _field(value, "url")
    headers = {}
    if ctx.hf_token:
        headers["Authorization"] = f"Bearer {ctx.hf_token}"

    @retry(
        stop=stop_after_attempt(get_retry_attempts()),
        wait=wait_exponential(multiplier=1, min=get_retry_min_wait(), max=get_retry_max_wait()),
        retry=retry_if_exception_type(httpx.TransportError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def get_with_retry() -> httpx.Response:
        async with httpx.AsyncClient(timeout=get_fetch_timeout(), follow_redirects=True) as client:
            return await client.get(url, headers=headers)

    response = await get_with_retry()
    if response.status_code >= 400:
        raise ContentConversionError(
            f"Failed to fetch resource: {response.status_code} {response.reason_phrase}"
        )

    original_name = _field(value, "orig_name")
    mime_type = determine_mime_type(
        value, original_name, response.headers.get("content-type"), fallback_mime_type
    )
    return FetchedResource(
        data=response.content,
        mime_type=mime_type,
        extension=choose_extension(original_name, url, mime_type),
    )


def save_resource(resource: FetchedResource, prefix: str, ctx: ConversionContext) -> str:
    filename = ctx.working_directory.generate_filename(prefix, resource.extension, ctx.tool_name)
    ctx.working_directory.save_file(resource.data, filename)
    logger.info(f"Saved {prefix} to {filename}")
    return str(filename)


# ─────────────────────────────────────────────────────────────────────
# CONVERTERS
# ─────────────────────────────────────────────────────────────────────

async def convert_image(
    descriptor: ReturnDescriptor, value: Any, ctx: ConversionContext
) -> Optional[ContentBlock]:
    if not _field(value, "url"):
        return None
    try:
        resource = await fetch_resource(value, DEFAULT_IMAGE_MIME_TYPE, ctx)
        try:
            save_resource(resource, "image", ctx)
        except OSError as e:
            if not ctx.desktop_mode:
                raise
            logger.warning(f"Could not save image for {ctx.tool_name}: {e}")
        return types.ImageContent(type="image", data=resource.base64_data, mimeType=resource.mime_type)
    except Exception as e:
        logger.warning(f"Image conversion failed: {e}")
        return types.TextContent(type="text", text=f"Failed to load image: {e}")


async def convert_audio(
    descriptor: ReturnDescriptor, value: Any, ctx: ConversionContext
) -> Optional[ContentBlock]:
    if not _field(value, "url"):
        return None
    try:
        resource = await fetch_resource(value, DEFAULT_AUDIO_MIME_TYPE, ctx)
        filename = save_resource(resource, "audio", ctx)
        uri = ctx.working_directory.file_url(filename)

        if ctx.desktop_mode:
            contents: Union[types.TextResourceContents, types.BlobResourceContents] = (
                types.TextResourceContents(uri=uri, mimeType="text/plain", text=AUDIO_UNSUPPORTED_NOTE)
            )
        else:
            contents = types.BlobResourceContents(
                uri=uri, mimeType=resource.mime_type, blob=resource.base64_data
            )
        return types.EmbeddedResource(type="resource", resource=contents)
    except Exception as e:
        logger.warning(f"Audio conversion failed: {e}")
        return types.TextContent(type="text", text=f"Failed to load audio: {e}")


async def convert_chatbot(
    descriptor: ReturnDescriptor, value: Any, ctx: ConversionContext
) -> Optional[ContentBlock]:
    # chat history is rendered as plain text
    return None


class ContentConverter:
    """
    Registry of converters keyed by ComponentKind.

    Usage:
        converter = default_converter()
        block = await converter.convert(descriptor, value, ctx)
    """

    def __init__(self):
        self._converters: dict[ComponentKind, Converter] = {}

    def register(self, kind: ComponentKind, converter: Converter) -> None:
        self._converters[kind] = converter

    def registered(self) -> list[ComponentKind]:
        return list(self._converters)

    async def convert(
        self,
        descriptor: ReturnDescriptor,
        value: Any,
        ctx: ConversionContext,
    ) -> ContentBlock:
        """Convert one value; falls back to text when no converter applies."""
        if ctx.debug:
            debug_file = ctx.working_directory.generate_filename("debug", "json", ctx.tool_name)
            ctx.working_directory.save_file(
                json.dumps(value, indent=2, default=str).encode("utf-8"), debug_file
            )

        converter = self._converters.get(descriptor.component_kind)
        result = await converter(descriptor, value, ctx) if converter else None
        return result if result is not None else text_content(descriptor, value)


def default_converter() -> ContentConverter:
    """Registry with the image, audio and chatbot converters."""
    converter = ContentConverter()
    converter.register(ComponentKind.IMAGE, convert_image)
    converter.register(ComponentKind.AUDIO, convert_audio)
    converter.register(ComponentKind.CHATBOT, convert_chatbot)
    return converter
