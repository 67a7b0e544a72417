"""
OK Computer MCP Server

Self-improving Model Context Protocol server. Learns from interactions,
adapts its behavioral preferences, tracks productivity and periodically
optimizes itself. All state is in memory and lives as long as the process.
"""

import asyncio
import sys
from typing import Any, Dict, List, Optional

from loguru import logger
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError
from mcp.types import (
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    CallToolRequest,
    CallToolResult,
    ErrorData,
    GetPromptResult,
    Prompt,
    Resource,
    ResourceTemplate,
    ServerResult,
    TextContent,
    Tool,
)

from okcomputer.core.config import Settings, settings
from okcomputer.core.errors import InputRejectedError, ToolNotFoundError
from okcomputer.optimization.scheduler import AutoOptimizationScheduler
from okcomputer.state.store import StateStore

from mcp_server.catalog import Catalog
from mcp_server.dispatch import ToolDispatcher
from mcp_server.handlers.registry import ToolRegistry, build_registry


class OKComputerServer:
    """
    Wires the state store, tool registry, dispatcher, catalog and scheduler
    to one low-level MCP ``Server``.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        state: Optional[StateStore] = None,
        registry: Optional[ToolRegistry] = None,
    ):
        self.settings = config or settings
        self.state = state or StateStore(self.settings)
        self.registry = registry or build_registry()
        self.dispatcher = ToolDispatcher(self.state, self.registry, self.settings)
        self.catalog = Catalog(self.state)
        self.scheduler = AutoOptimizationScheduler(self.state, self._scheduled_optimize, self.settings)

        self.app = Server(self.settings.SERVER_NAME, version=self.settings.SERVER_VERSION)
        self._register_handlers()

    def _scheduled_optimize(self, args: Dict[str, Any]):
        return self.dispatcher.dispatch("auto_optimize", args)

    def _register_handlers(self) -> None:
        app = self.app

        @app.list_tools()
        async def list_tools() -> List[Tool]:
            return [
                Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
                for tool in self.registry.definitions()
            ]

        # Registered as a raw request handler: the call_tool decorator folds every
        # exception into an isError result, which would hide protocol rejections.
        # Arguments are validated by the handlers so every call reaches the metrics.
        async def call_tool(request: CallToolRequest) -> ServerResult:
            name = request.params.name
            try:
                result = self.dispatcher.dispatch(name, request.params.arguments or {})
            except ToolNotFoundError as e:
                raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=str(e))) from e
            except InputRejectedError as e:
                raise McpError(ErrorData(code=INVALID_PARAMS, message=str(e))) from e
            except Exception as e:
                # Already recorded by the dispatcher
                return ServerResult(CallToolResult(
                    content=[TextContent(type="text", text=f"Error executing {name}: {e}")],
                    isError=True,
                ))
            return ServerResult(CallToolResult(
                content=[TextContent(type="text", text=block.text) for block in result.content],
                isError=result.is_error,
            ))

        app.request_handlers[CallToolRequest] = call_tool

        @app.list_resources()
        async def list_resources() -> List[Resource]:
            return self.catalog.list_resources()

        @app.list_resource_templates()
        async def list_resource_templates() -> List[ResourceTemplate]:
            return self.catalog.list_resource_templates()

        @app.read_resource()
        async def read_resource(uri) -> List[ReadResourceContents]:
            return [self.catalog.read_resource(str(uri))]

        @app.list_prompts()
        async def list_prompts() -> List[Prompt]:
            return self.catalog.list_prompts()

        @app.get_prompt()
        async def get_prompt(name: str, arguments: Optional[Dict[str, str]]) -> GetPromptResult:
            return self.catalog.get_prompt(name, arguments)

    async def run(self) -> None:
        """Serve over stdio until the client disconnects"""
        logger.info(
            "{name} v{version} starting with {count} tools",
            name=self.settings.SERVER_NAME,
            version=self.settings.SERVER_VERSION,
            count=len(self.registry),
        )
        await self.scheduler.start()
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.app.run(
                    read_stream,
                    write_stream,
                    self.app.create_initialization_options(),
                )
        finally:
            await self.scheduler.stop()
            logger.info("{name} stopped", name=self.settings.SERVER_NAME)


async def main():
    """Run MCP server"""
    # stdout carries the protocol
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)

    await OKComputerServer().run()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
