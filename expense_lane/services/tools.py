"""
Tool server clients.

The chat, ticketing and document integrations are reached through Model
Context Protocol servers spawned as subprocesses.  Every service talks to a
``ToolClient``; the live implementation wraps an ``mcp.ClientSession`` and
each service module ships a deterministic in‑process stand‑in.
"""
from __future__ import annotations

import json
import logging
import os
from contextlib import AsyncExitStack
from typing import Any, Optional, Protocol

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from expense_lane.errors import ToolCallError

logger = logging.getLogger(__name__)

CLIENT_NAME_PREFIX = "expense-lane"


class ToolClient(Protocol):
    name: str

    async def call_tool(self, tool: str, arguments: dict[str, Any]) -> dict[str, Any]:
        ...

    async def list_tools(self) -> list[str]:
        ...

    async def aclose(self) -> None:
        ...


def text_result(payload: Any) -> dict[str, Any]:
    """Wrap *payload* the way tool servers return JSON documents."""
    return {"content": [{"type": "text", "text": json.dumps(payload)}], "isError": False}


def tool_payload(result: dict[str, Any]) -> dict[str, Any]:
    """Decode the JSON document carried by the first text item of *result*.

    Results without text content are returned unchanged.
    """
    content = result.get("content") or []
    if content and content[0].get("text"):
        try:
            return json.loads(content[0]["text"])
        except json.JSONDecodeError as exc:
            raise ToolCallError("tool", "payload", f"invalid JSON: {exc}") from exc
    return result


class McpToolClient:
    """A connected tool server subprocess."""

    def __init__(self, name: str, session: ClientSession, stack: AsyncExitStack):
        self.name = name
        self._session = session
        self._stack = stack

    @classmethod
    async def connect(
        cls,
        name: str,
        command: str,
        args: list[str],
        env: Optional[dict[str, str]] = None,
    ) -> "McpToolClient":
        logger.debug("Initializing tool client: %s", name)
        params = StdioServerParameters(
            command=command,
            args=args,
            env={**os.environ, **(env or {})},
        )
        stack = AsyncExitStack()
        try:
            read, write = await stack.enter_async_context(stdio_client(params))
            session = await stack.enter_async_context(ClientSession(read, write))
            await session.initialize()
        except Exception:
            await stack.aclose()
            raise
        logger.info("Connected to tool server: %s", name)
        return cls(name, session, stack)

    async def call_tool(self, tool: str, arguments: dict[str, Any]) -> dict[str, Any]:
        logger.debug("Calling %s.%s with args: %s", self.name, tool, json.dumps(arguments, default=str))
        result = await self._session.call_tool(tool, arguments)
        content = [item.model_dump(mode="json") for item in result.content]
        if result.isError:
            text = next((c.get("text") for c in content if c.get("text")), "unknown error")
            logger.error("Failed to call %s.%s: %s", self.name, tool, text)
            raise ToolCallError(self.name, tool, text)
        logger.debug("%s.%s response: %s", self.name, tool, content)
        return {"content": content, "isError": False}

    async def list_tools(self) -> list[str]:
        response = await self._session.list_tools()
        return [tool.name for tool in response.tools]

    async def aclose(self) -> None:
        await self._stack.aclose()
        logger.debug("Closed tool client: %s", self.name)
