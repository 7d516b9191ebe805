"""
Chat channel integration (Slack): locate receipts in recent history and
post confirmations back to the channel.
"""
from __future__ import annotations

import logging
from typing import Any, NamedTuple, Optional

from expense_lane.pipeline.parser import parse_receipt_from_message
from expense_lane.schemas import ChannelMessage, Receipt
from expense_lane.services.tools import text_result, tool_payload

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10

MOCK_HISTORY = [
    {
        "type": "message",
        "user": "U123456",
        "text": "Payment received: $150.00 from John Doe for order #ORD-2024-001",
        "ts": "1234567890.123456",
    }
]


class FoundReceipt(NamedTuple):
    receipt: Receipt
    message: ChannelMessage


def build_confirmation_message(
    receipt: Receipt,
    ticket_key: str,
    document_url: Optional[str] = None,
) -> str:
    lines = [
        "✅ *Payment Processed Successfully*",
        "",
        f"🧾 Order: `{receipt.order_id}`",
        f"💰 Amount: ${receipt.amount:.2f} {receipt.currency}",
        f"👤 Payer: {receipt.payer}",
        "",
        f"📋 Jira Task: {ticket_key}",
    ]
    if document_url:
        lines.append(f"📘 Notion Entry: {document_url}")
    lines += ["", "_Automated via Expense Fast Lane 🚀_"]
    return "\n".join(lines)


class NotificationService:
    def __init__(self, tool_client):
        self.tool_client = tool_client

    async def fetch_latest_messages(
        self, channel_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[ChannelMessage]:
        logger.info("Fetching latest %d messages from Slack channel %s", limit, channel_id)
        result = await self.tool_client.call_tool(
            "conversations.history", {"channel": channel_id, "limit": limit}
        )
        if not result.get("content"):
            return []
        data = tool_payload(result)
        return [ChannelMessage.model_validate(m) for m in data.get("messages") or []]

    async def find_payment_receipt(
        self, channel_id: str, limit: int = 20
    ) -> Optional[FoundReceipt]:
        """First message of the recent history that parses as a receipt."""
        for message in await self.fetch_latest_messages(channel_id, limit):
            if not message.text:
                continue
            receipt = parse_receipt_from_message(message.text)
            if receipt is not None:
                logger.info("Found payment receipt in message: %s...", message.text[:50])
                return FoundReceipt(receipt, message)

        logger.warning("No payment receipt found in recent messages")
        return None

    async def post_message(
        self, channel_id: str, text: str, thread_ts: Optional[str] = None
    ) -> None:
        logger.info("Posting message to Slack channel %s", channel_id)
        arguments: dict[str, Any] = {"channel": channel_id, "text": text}
        if thread_ts:
            arguments["thread_ts"] = thread_ts
        await self.tool_client.call_tool("chat.postMessage", arguments)
        logger.info("Message posted to Slack")

    async def post_confirmation(
        self,
        channel_id: str,
        receipt: Receipt,
        ticket_key: str,
        document_url: Optional[str] = None,
        thread_ts: Optional[str] = None,
    ) -> None:
        text = build_confirmation_message(receipt, ticket_key, document_url)
        await self.post_message(channel_id, text, thread_ts)


class MockNotificationToolClient:
    """Serves a canned channel history and records what gets posted."""

    def __init__(self, history: Optional[list[dict]] = None):
        self.name = "slack-mock"
        self.history = MOCK_HISTORY if history is None else history
        self.posted: list[dict[str, Any]] = []

    async def call_tool(self, tool: str, arguments: dict[str, Any]) -> dict[str, Any]:
        logger.info("[MOCK] Slack.%s called", tool)
        if tool == "conversations.history":
            return text_result({"messages": self.history[: arguments.get("limit", 10)]})
        if tool == "chat.postMessage":
            self.posted.append(dict(arguments))
            logger.info("[MOCK] Message posted: %s...", str(arguments.get("text", ""))[:50])
            return {"ok": True}
        return {}

    async def list_tools(self) -> list[str]:
        return ["conversations.history", "chat.postMessage"]

    async def aclose(self) -> None:
        logger.debug("[MOCK] Slack client closed")
