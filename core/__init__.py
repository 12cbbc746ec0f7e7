"""
Shared server infrastructure: configuration, Google services, the MCP server and the assistant session.
"""
