"""MCP surface: resources, prompts and the low-level request handlers"""

import json

import pytest
from mcp import types
from mcp.shared.exceptions import McpError

from okcomputer.core.errors import InputRejectedError, PromptNotFoundError, ResourceNotFoundError
from okcomputer.state.store import StateStore

from mcp_server.catalog import Catalog
from mcp_server.handlers.registry import ToolDefinition, build_registry
from mcp_server.okc_server import OKComputerServer


@pytest.fixture
def catalog(store: StateStore) -> Catalog:
    return Catalog(store)


@pytest.fixture
def server(settings, store: StateStore) -> OKComputerServer:
    return OKComputerServer(config=settings, state=store)


class TestResources:

    def test_listed_resources(self, catalog: Catalog) -> None:
        """Static resources and the echo template are listed"""
        uris = [str(r.uri) for r in catalog.list_resources()]

        assert uris == ["info://server", "time://current", "metrics://state"]
        assert catalog.list_resource_templates()[0].uriTemplate == "echo://{message}"

    def test_server_info(self, catalog: Catalog) -> None:
        """The server info resource reports name, version and uptime"""
        info = json.loads(catalog.read_resource("info://server").content)

        assert info["name"] == "ok-computer"
        assert info["version"] == "1.5.0"
        assert "uptime" in info

    def test_current_time(self, catalog: Catalog, store: StateStore) -> None:
        """The time resource uses the store clock"""
        payload = json.loads(catalog.read_resource("time://current").content)

        assert payload["timestamp"] == store.now_iso()

    def test_echo(self, catalog: Catalog) -> None:
        """Echo resource URIs are percent-decoded"""
        contents = catalog.read_resource("echo://hello%20world")

        assert contents.content == "hello world"
        assert contents.mime_type == "text/plain"

    def test_metrics_snapshot(self, catalog: Catalog, store: StateStore) -> None:
        """The metrics resource reflects tracked tool usage"""
        store.track_tool_usage("echo", True)

        snapshot = json.loads(catalog.read_resource("metrics://state").content)

        assert snapshot["performance_metrics"]["tool_usage_count"] == {"echo": 1}

    def test_unknown_resource(self, catalog: Catalog) -> None:
        """Unknown resource URIs raise"""
        with pytest.raises(ResourceNotFoundError):
            catalog.read_resource("file:///etc/passwd")


class TestPrompts:

    def test_listed_prompts(self, catalog: Catalog) -> None:
        """Both prompts are listed"""
        assert [p.name for p in catalog.list_prompts()] == ["assistant", "code_review"]

    def test_assistant_default_style(self, catalog: Catalog) -> None:
        """The assistant prompt defaults to the helpful style"""
        result = catalog.get_prompt("assistant", {"task": "plan a trip"})

        assert result.messages[0].content.text == (
            "You are a helpful assistant. Please help me with the following task: plan a trip"
        )

    def test_code_review(self, catalog: Catalog) -> None:
        """The code review prompt embeds the code and language"""
        result = catalog.get_prompt("code_review", {"code": "x = 1", "language": "python"})

        assert result.messages[0].role == "user"
        assert result.messages[0].content.text == (
            "Please review the following python code and provide feedback:\n\n```\nx = 1\n```"
        )

    def test_missing_required_argument(self, catalog: Catalog) -> None:
        """A prompt without its required argument is rejected"""
        with pytest.raises(InputRejectedError):
            catalog.get_prompt("code_review", {})

    def test_unknown_prompt(self, catalog: Catalog) -> None:
        """Unknown prompt names raise"""
        with pytest.raises(PromptNotFoundError):
            catalog.get_prompt("haiku")


class TestServerHandlers:

    @pytest.mark.asyncio
    async def test_list_tools(self, server: OKComputerServer) -> None:
        """tools/list returns all nine tools starting with echo"""
        handler = server.app.request_handlers[types.ListToolsRequest]

        result = await handler(types.ListToolsRequest(method="tools/list"))

        names = [tool.name for tool in result.root.tools]
        assert len(names) == 9
        assert names[0] == "echo"

    @pytest.mark.asyncio
    async def test_call_tool_reports_is_error(self, server: OKComputerServer, store: StateStore) -> None:
        """An in-band validation failure comes back with isError set"""
        handler = server.app.request_handlers[types.CallToolRequest]

        result = await handler(types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(
                name="track_productivity",
                arguments={"action": "add_task", "task": {"name": "x", "efficiency": 1.5}},
            ),
        ))

        assert result.root.isError is True
        assert "between 0 and 1" in result.root.content[0].text
        assert store.productivity.tasks_completed == 0

    @pytest.mark.asyncio
    async def test_call_tool_success(self, server: OKComputerServer) -> None:
        """A successful call returns the tool text"""
        handler = server.app.request_handlers[types.CallToolRequest]

        result = await handler(types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="echo", arguments={"message": "hi"}),
        ))

        assert result.root.isError is False
        assert result.root.content[0].text == "Echo: hi"

    @pytest.mark.asyncio
    async def test_unknown_tool_is_a_protocol_error(self, server: OKComputerServer) -> None:
        """An unknown tool name is rejected with a JSON-RPC error, not an isError result"""
        handler = server.app.request_handlers[types.CallToolRequest]

        with pytest.raises(McpError) as exc_info:
            await handler(types.CallToolRequest(
                method="tools/call",
                params=types.CallToolRequestParams(name="format_disk", arguments={}),
            ))

        assert exc_info.value.error.code == types.METHOD_NOT_FOUND
        assert "format_disk" in exc_info.value.error.message

    @pytest.mark.asyncio
    async def test_too_deep_arguments_are_a_protocol_error(
        self, server: OKComputerServer, store: StateStore
    ) -> None:
        """Arguments past the nesting limit are rejected as invalid params"""
        handler = server.app.request_handlers[types.CallToolRequest]
        arguments = {"message": "x"}
        for _ in range(12):
            arguments = {"nested": arguments}

        with pytest.raises(McpError) as exc_info:
            await handler(types.CallToolRequest(
                method="tools/call",
                params=types.CallToolRequestParams(name="echo", arguments=arguments),
            ))

        assert exc_info.value.error.code == types.INVALID_PARAMS
        assert store.performance.error_count == 1
        assert "echo" not in store.performance.tool_usage_count

    @pytest.mark.asyncio
    async def test_handler_fault_is_an_error_result(self, settings, store: StateStore) -> None:
        """A crashing handler surfaces as an isError result and is counted once"""
        def explode(state, args):
            raise RuntimeError("boom")

        registry = build_registry()
        registry._tools["echo"] = ToolDefinition("echo", "Echo", {"type": "object"}, explode)
        server = OKComputerServer(config=settings, state=store, registry=registry)
        handler = server.app.request_handlers[types.CallToolRequest]

        result = await handler(types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="echo", arguments={}),
        ))

        assert result.root.isError is True
        assert "boom" in result.root.content[0].text
        assert store.performance.error_count == 1
