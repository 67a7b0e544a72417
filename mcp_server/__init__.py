"""MCP transport layer for OK Computer"""
