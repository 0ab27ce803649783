"""
MIME type tables and helpers.

Covers which files are offered as resources in desktop mode, which are
read back as text, and how MIME types are inferred from the names of
files a Space returns.
"""

import re
from typing import Optional

FALLBACK_MIME_TYPE = "application/octet-stream"

# Known MIME types that should be handled as text
TEXT_BASED_MIME_TYPES: tuple[str, ...] = (
    "text/*",
    "application/json",
    "application/xml",
    "application/yaml",
    "application/javascript",
    "application/typescript",
)

DOCUMENT_MIME_TYPES: tuple[str, ...] = ("application/pdf",)

IMAGE_MIME_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/webp",
    "image/gif",
    "image/png",
)

CLAUDE_SUPPORTED_MIME_TYPES: tuple[str, ...] = (
    TEXT_BASED_MIME_TYPES + DOCUMENT_MIME_TYPES + IMAGE_MIME_TYPES
)

IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "webp", "bmp"})
AUDIO_EXTENSIONS = frozenset({"wav", "mp3", "ogg", "flac", "m4a", "aac"})

_URL_FILENAME = re.compile(r"/([^/?#]+)[^/]*$")


def treat_as_text(mime_type: str) -> bool:
    return mime_type.startswith("text/") or mime_type in TEXT_BASED_MIME_TYPES


def is_claude_supported(mime_type: str) -> bool:
    """Match against the supported list; "text/*" matches by main type."""
    main_type = mime_type.split("/")[0]
    for supported in CLAUDE_SUPPORTED_MIME_TYPES:
        if supported.endswith("/*"):
            if supported.split("/")[0] == main_type:
                return True
        elif supported == mime_type:
            return True
    return False


def extension_from_url(url: str) -> Optional[str]:
    """Extension of the last path segment of a URL, if it has one."""
    match = _URL_FILENAME.search(url)
    if match and "." in match.group(1):
        return match.group(1).split(".")[-1] or None
    return None


def extension_from_filename(filename: str) -> Optional[str]:
    name = filename.replace("\\", "/").split("/")[-1]
    if "." not in name:
        return None
    return name.split(".")[-1] or None


def mime_type_from_extension(extension: str) -> str:
    """image/<ext> or audio/<ext> for known media, else application/<ext>."""
    ext = extension.lower()
    if ext in IMAGE_EXTENSIONS:
        return f"image/{ext}"
    if ext in AUDIO_EXTENSIONS:
        return f"audio/{ext}"
    return f"application/{ext}"
