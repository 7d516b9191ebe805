"""
Tests for the live tool client wrapper around an MCP client session.
"""
from contextlib import AsyncExitStack

import pytest
from mcp.types import CallToolResult, ListToolsResult, TextContent, Tool

from expense_lane.errors import ToolCallError
from expense_lane.services.tools import McpToolClient


class StubSession:
    """Answers like a ``ClientSession`` connected to a tool server."""

    def __init__(self, result=None, tools=()):
        self.result = result
        self.tools = list(tools)
        self.calls = []

    async def call_tool(self, tool, arguments):
        self.calls.append((tool, arguments))
        return self.result

    async def list_tools(self):
        return ListToolsResult(
            tools=[Tool(name=name, inputSchema={"type": "object"}) for name in self.tools]
        )


def _result(text, is_error=False):
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


class TestMcpToolClient:
    @pytest.mark.asyncio
    async def test_call_tool_returns_content(self):
        session = StubSession(_result('{"key": "EXP-1"}'))
        client = McpToolClient("jira", session, AsyncExitStack())

        result = await client.call_tool("jira_create_issue", {"project": "EXP"})

        assert result == {
            "content": [{"type": "text", "text": '{"key": "EXP-1"}'}],
            "isError": False,
        }
        assert session.calls == [("jira_create_issue", {"project": "EXP"})]

    @pytest.mark.asyncio
    async def test_error_result_raises(self):
        client = McpToolClient("jira", StubSession(_result("project not found", True)), AsyncExitStack())

        with pytest.raises(ToolCallError) as exc_info:
            await client.call_tool("jira_create_issue", {})

        assert "project not found" in str(exc_info.value)
        assert "jira" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_error_result_without_text(self):
        session = StubSession(CallToolResult(content=[], isError=True))
        client = McpToolClient("slack", session, AsyncExitStack())

        with pytest.raises(ToolCallError) as exc_info:
            await client.call_tool("chat.postMessage", {})

        assert "unknown error" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_list_tools_returns_names(self):
        session = StubSession(tools=["notion_create_page", "notion_query_database"])
        client = McpToolClient("notion", session, AsyncExitStack())
        assert await client.list_tools() == ["notion_create_page", "notion_query_database"]

    @pytest.mark.asyncio
    async def test_aclose_unwinds_the_stack(self):
        closed = []
        stack = AsyncExitStack()
        stack.callback(closed.append, "session")

        await McpToolClient("slack", StubSession(), stack).aclose()

        assert closed == ["session"]
