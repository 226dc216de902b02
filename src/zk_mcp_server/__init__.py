"""MCP server mirroring a live ZooKeeper tree."""

__version__ = "0.1.0"
