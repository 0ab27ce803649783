"""
hfspace-mcp: expose Hugging Face Gradio Spaces as MCP tools.
"""

__version__ = "0.1.0"
