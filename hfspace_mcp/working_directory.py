"""
Working directory - where generated files land and local inputs come from.

File arguments must resolve inside this directory (URLs are passed
through untouched). Files saved here are listed back to the client as
MCP resources.
"""

import base64
import mimetypes
import re
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote

from pydantic import BaseModel

from hfspace_mcp.endpoints.errors import InvalidFilePathError
from hfspace_mcp.mime_types import FALLBACK_MIME_TYPE, is_claude_supported, treat_as_text

MAX_RESOURCE_SIZE = 2 * 1024 * 1024
_FILE_URI = re.compile(r"^file://")
_FILE_RELATIVE = re.compile(r"^file:\./")


class ResourceFile(BaseModel):
    """A file in the working directory, as offered to the client."""
    path: Path
    uri: str
    name: str
    mime_type: str
    size: int
    last_modified: datetime


class ResourceContents(BaseModel):
    uri: str
    mime_type: str
    text: Optional[str] = None
    blob: Optional[str] = None


def guess_mime_type(name: Union[str, Path]) -> str:
    mime_type, _ = mimetypes.guess_type(str(name))
    return mime_type or FALLBACK_MIME_TYPE


def format_file_size(size: int) -> str:
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    unit_index = 0
    while value >= 1024 and unit_index < len(units) - 1:
        value /= 1024
        unit_index += 1
    return f"{value:.1f} {units[unit_index]}"


class WorkingDirectory:
    """
    Bounded file area for one server process.

    Design decisions:
    - Relative paths resolve against the directory, not the process cwd
    - Containment is checked on resolved paths, so ".." cannot escape
    - desktop_mode filters listed resources to types Claude Desktop reads
    """

    def __init__(self, directory: Union[str, Path], desktop_mode: bool = False):
        self.directory = Path(directory).resolve()
        self.desktop_mode = desktop_mode

    def list_files(self) -> list[Path]:
        """All files below the directory, recursively, sorted by path."""
        return sorted(p for p in self.directory.rglob("*") if p.is_file())

    def resource_file(self, path: Path) -> ResourceFile:
        relative = path.relative_to(self.directory).as_posix()
        stats = path.stat()
        return ResourceFile(
            path=path,
            uri=f"file:./{relative}",
            name=path.name,
            mime_type=guess_mime_type(path.name),
            size=stats.st_size,
            last_modified=datetime.fromtimestamp(stats.st_mtime),
        )

    def generate_filename(self, prefix: str, extension: str, tool_name: str) -> Path:
        """<dir>/<YYYY-MM-DD>_<tool>_<prefix>_<5 hex>.<ext>"""
        random_id = uuid.uuid4().hex[:5]
        return self.directory / f"{date.today().isoformat()}_{tool_name}_{prefix}_{random_id}.{extension}"

    def save_file(self, data: bytes, path: Union[str, Path]) -> Path:
        target = Path(path)
        target.write_bytes(data)
        return target

    def file_url(self, path: Union[str, Path]) -> str:
        return (self.directory / path).resolve().as_uri()

    def is_supported_file(self, path: Path) -> bool:
        if not self.desktop_mode:
            return True
        try:
            if path.stat().st_size > MAX_RESOURCE_SIZE:
                return False
        except OSError:
            return False
        mime_type, _ = mimetypes.guess_type(path.name)
        if mime_type is None:
            return False
        return is_claude_supported(mime_type)

    def supported_resources(self) -> list[ResourceFile]:
        return [self.resource_file(p) for p in self.list_files() if self.is_supported_file(p)]

    def validate_path(self, candidate: str) -> str:
        """
        Resolve a file argument and check it is usable.

        http(s) URLs are returned unchanged. file:// URIs are stripped and
        percent-decoded, file:./ references are stripped. Anything else
        must be an existing file inside the working directory.

        Raises:
            InvalidFilePathError: If the path escapes the directory, is missing
                or is not a regular file
        """
        if candidate.startswith("http://") or candidate.startswith("https://"):
            return candidate

        if _FILE_URI.match(candidate):
            raw = unquote(_FILE_URI.sub("", candidate))
        else:
            raw = _FILE_RELATIVE.sub("", candidate)
        resolved = (self.directory / raw).resolve()

        if not resolved.is_relative_to(self.directory):
            raise InvalidFilePathError(
                f"Invalid or missing file: {candidate} (path is outside of working directory)"
            )
        if not resolved.exists():
            raise InvalidFilePathError(f"Invalid or missing file: {candidate} (file not found)")
        if not resolved.is_file():
            raise InvalidFilePathError(f"Invalid or missing file: {candidate} (not a file)")
        return str(resolved)

    def read_resource(self, uri: str) -> ResourceContents:
        path = Path(self.validate_path(uri))
        mime_type = guess_mime_type(path.name)
        if treat_as_text(mime_type):
            return ResourceContents(uri=uri, mime_type=mime_type, text=path.read_text(encoding="utf-8"))
        blob = base64.b64encode(path.read_bytes()).decode("utf-8")
        return ResourceContents(uri=uri, mime_type=mime_type, blob=blob)

    def resource_table(self) -> str:
        """Markdown table of supported files, for the Available Resources prompt."""
        resources = self.supported_resources()
        if not resources:
            return "No resources available."

        rows = "\n".join(
            f"| {f.uri} | {f.name} | {f.mime_type} | {format_file_size(f.size)} "
            f"| {f.last_modified.isoformat()} |"
            for f in resources
        )
        return (
            "The following resources are available for tool calls:\n"
            "| Resource URI | Name | MIME Type | Size | Last Modified |\n"
            "|--------------|------|-----------|------|---------------|\n"
            f"{rows}\n\n"
            "Prefer using the Resource URI for tool parameters which require a file input. "
            "URLs are also accepted."
        )
