"""
hfspace-mcp MCP server package.

Exposes Gradio Space endpoints as MCP tools for Claude Desktop and
other MCP clients.

Usage:
    python -m hfspace_mcp.mcp evalstate/FLUX.1-schnell

Optional environment:
    HF_TOKEN=hf_...                 # private Spaces, ZeroGPU quota
    MCP_HF_WORK_DIR=/path/to/files  # default: current directory
"""

from hfspace_mcp.mcp.server import create_server, run_server

__all__ = ["create_server", "run_server"]
