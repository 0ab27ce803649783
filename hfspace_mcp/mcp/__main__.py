"""
Run hfspace-mcp as MCP server.

Usage:
    python -m hfspace_mcp.mcp [space paths...] [--work-dir DIR]
"""

from hfspace_mcp.cli import main

if __name__ == "__main__":
    main()
