# remote-mcp-server: OAuth 2.1 authorization server fronting an MCP endpoint.
# Created: 2026-10-18

__version__ = "0.1.0"
