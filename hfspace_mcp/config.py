"""
Configuration constants and Pydantic models for hfspace-mcp.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


# ─────────────────────────────────────────────────────────────────────
# DEFAULTS
# ─────────────────────────────────────────────────────────────────────

DEFAULT_SPACE_PATHS: list[str] = ["evalstate/FLUX.1-schnell"]
SERVER_NAME: str = "hfspace-mcp"


# ─────────────────────────────────────────────────────────────────────
# RETRY CONFIGURATION - For transient connection failures
# ─────────────────────────────────────────────────────────────────────

def _int_from_env(key: str, default: int) -> int:
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_retry_attempts() -> int:
    """
    Get max retry attempts from environment or default.

    Set HFSPACE_RETRY_ATTEMPTS in .env (default: 3).
    """
    return _int_from_env("HFSPACE_RETRY_ATTEMPTS", 3)


def get_retry_min_wait() -> int:
    """Minimum wait between retries in seconds (HFSPACE_RETRY_MIN_WAIT, default 1)."""
    return _int_from_env("HFSPACE_RETRY_MIN_WAIT", 1)


def get_retry_max_wait() -> int:
    """Maximum wait between retries in seconds (HFSPACE_RETRY_MAX_WAIT, default 10)."""
    return _int_from_env("HFSPACE_RETRY_MAX_WAIT", 10)


def get_fetch_timeout() -> float:
    """
    Get the timeout for fetching generated files.

    Set HFSPACE_FETCH_TIMEOUT in .env (default: 60 seconds).
    """
    try:
        return float(os.environ.get("HFSPACE_FETCH_TIMEOUT", "60"))
    except ValueError:
        return 60.0


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def get_hf_token() -> Optional[str]:
    """
    Get HuggingFace token.

    HF_TOKEN wins; otherwise falls back to the token cached by
    `huggingface-cli login`.
    """
    token = os.environ.get("HF_TOKEN")
    if token:
        return token
    from huggingface_hub import get_token
    return get_token()


def get_work_dir() -> Path:
    """Working directory from MCP_HF_WORK_DIR, or the current directory."""
    return Path(os.environ.get("MCP_HF_WORK_DIR") or os.getcwd()).resolve()


def is_desktop_mode() -> bool:
    """
    Check if running for Claude Desktop.

    On unless CLAUDE_DESKTOP_MODE is exactly "false". Desktop mode
    restricts resources to supported MIME types and swaps inline
    audio for a text note.
    """
    return os.environ.get("CLAUDE_DESKTOP_MODE") != "false"


# ─────────────────────────────────────────────────────────────────────
# DATA MODELS
# ─────────────────────────────────────────────────────────────────────

class Config(BaseModel):
    """Resolved runtime configuration."""
    space_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_SPACE_PATHS))
    work_dir: Path = Field(default_factory=lambda: Path.cwd())
    hf_token: Optional[str] = None
    desktop_mode: bool = True
    debug: bool = False


def load_config(
    space_paths: Optional[list[str]] = None,
    work_dir: Optional[str] = None,
    hf_token: Optional[str] = None,
    desktop_mode: Optional[bool] = None,
    debug: bool = False,
) -> Config:
    """
    Build a Config from explicit values, falling back to the environment.

    Explicit (CLI) values win over environment variables, which win
    over defaults. Blank space paths are dropped.
    """
    paths = [p.strip() for p in (space_paths or []) if p and p.strip()]

    return Config(
        space_paths=paths or list(DEFAULT_SPACE_PATHS),
        work_dir=Path(work_dir).resolve() if work_dir else get_work_dir(),
        hf_token=hf_token or get_hf_token(),
        desktop_mode=is_desktop_mode() if desktop_mode is None else desktop_mode,
        debug=debug,
    )
