"""
Plain‑text renderings of receipts, verifications and run summaries.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from expense_lane.schemas import OrchestrationResult, Receipt, VerificationResult


def display_time(value: Optional[str]) -> str:
    """Render an ISO‑8601 string for humans; unparseable input is returned as is."""
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value).strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    except ValueError:
        return value


def format_receipt(receipt: Receipt) -> str:
    lines = [
        f"Order ID: {receipt.order_id}",
        f"Amount: ${receipt.amount:.2f} {receipt.currency}",
        f"Payer: {receipt.payer}",
        f"Source: {receipt.source.value}",
    ]
    if receipt.timestamp:
        lines.append(f"Time: {display_time(receipt.timestamp)}")
    if receipt.description:
        lines.append(f"Description: {receipt.description}")
    return "\n".join(lines)


def format_verification_result(result: VerificationResult) -> str:
    mark = "✅" if result.verified else "❌"
    lines = [
        f"{mark} Payment Verification",
        f"Order: {result.order_id}",
        f"Amount: ${result.amount:.2f}",
        f"Status: {result.status.value.upper()}",
    ]
    if result.transaction_id:
        lines.append(f"Transaction: {result.transaction_id}")
    if result.message:
        lines.append(f"Message: {result.message}")
    lines.append(f"Verified at: {display_time(result.verified_at)}")
    return "\n".join(lines)


def format_summary(result: OrchestrationResult, notified: Optional[bool]) -> str:
    """One line per integration, as shown at the end of a run.

    *notified* is ``None`` when the confirmation step was skipped.
    """
    receipt, verification = result.receipt, result.verification
    lines: list[str] = []
    if receipt is not None:
        lines.append(f"🧾 Receipt: {receipt.order_id} - ${receipt.amount:.2f}")
    if verification is not None:
        lines.append(
            f"💳 Verification: {'✓ Verified' if verification.verified else '✗ Failed'}"
        )
    lines.append(f"📋 Jira: {result.ticket.key}" if result.ticket else "📋 Jira: ✗ Failed")
    lines.append(
        f"📘 Notion: {result.document.id}" if result.document else "📘 Notion: ✗ Failed"
    )
    if notified is None:
        lines.append("🔔 Slack: – Skipped")
    else:
        lines.append(f"🔔 Slack: {'✓ Posted' if notified else '✗ Failed'}")
    return "\n".join(lines)
