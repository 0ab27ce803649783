"""
Adapters for remote Space backends.

Protocol defines WHAT, implementations define HOW.
"""

from .base import RemoteClient, RemoteConnector

__all__ = ["RemoteClient", "RemoteConnector"]
