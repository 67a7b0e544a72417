"""
OK Computer build configuration

Usage:
    pip install -e .            # Runtime only
    pip install -e ".[test]"    # With the test suite dependencies
    okcomputer-mcp              # Start the stdio MCP server
"""

from setuptools import setup, find_packages

setup(
    name="okcomputer-mcp",
    version="1.5.0",
    description="Self-improving MCP server that learns from interactions and optimizes itself",
    packages=find_packages(include=["okcomputer", "okcomputer.*", "mcp_server", "mcp_server.*"]),
    install_requires=[
        "mcp>=1.20,<2",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "loguru>=0.7",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "okcomputer-mcp=mcp_server.okc_server:run",
        ],
    },
    python_requires=">=3.10",
)
