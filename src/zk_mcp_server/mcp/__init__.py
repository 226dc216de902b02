"""MCP server exposing the ZooKeeper tree mirror over stdio."""
