"""CLI entry point for hfspace-mcp.

Parses space paths and options, resolves configuration, then serves
MCP over stdio. All logging goes to stderr; stdout carries the
protocol.

Entry point:
    hfspace-mcp [owner/space[/endpoint] ...] [--work-dir DIR] [--hf-token TOKEN]
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from hfspace_mcp import __version__
from hfspace_mcp.config import load_config
from hfspace_mcp.endpoints.errors import NoValidEndpointError

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# ARGUMENT PARSING
# ─────────────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hfspace-mcp",
        description="Expose Hugging Face Gradio Spaces as MCP tools.",
    )
    parser.add_argument(
        "spaces", nargs="*",
        help="Space paths: owner/space or owner/space/endpoint (default: evalstate/FLUX.1-schnell)",
    )
    parser.add_argument("--work-dir", default=None, help="Directory for inputs and generated files")
    parser.add_argument("--hf-token", default=None, help="Hugging Face token (overrides HF_TOKEN)")
    parser.add_argument(
        "--desktop-mode", action=argparse.BooleanOptionalAction, default=None,
        help="Restrict output to what Claude Desktop can display (default: on)",
    )
    parser.add_argument("--debug", action="store_true", help="Write API and event dumps to the work dir")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


# ─────────────────────────────────────────────────────────────────────
# ENTRY POINT
# ─────────────────────────────────────────────────────────────────────


def main(argv=None):
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Logging
    level = logging.DEBUG if (args.verbose or args.debug) else logging.INFO
    logging.basicConfig(level=level, format="%(name)s %(message)s", stream=sys.stderr)

    # Load env
    load_dotenv()

    config = load_config(
        space_paths=args.spaces,
        work_dir=args.work_dir,
        hf_token=args.hf_token,
        desktop_mode=args.desktop_mode,
        debug=args.debug,
    )

    from hfspace_mcp.mcp.server import run_server

    try:
        asyncio.run(run_server(config))
    except NoValidEndpointError as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
