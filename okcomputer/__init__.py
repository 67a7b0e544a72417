"""OK Computer: in-memory learning, adaptation and productivity state for an MCP server"""

__version__ = "1.5.0"
