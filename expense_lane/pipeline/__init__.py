"""
Expense fast lane pipeline.

Orchestrates: acquire receipt → verify → create ticket → create document
record → post confirmation.  Steps run strictly in sequence; acquisition is
the only fatal step, the three integration steps are isolated from each
other and collect their failures into ``errors``.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, NamedTuple, Optional

from expense_lane.config import Settings
from expense_lane.pipeline.formatting import (
    format_receipt,
    format_summary,
    format_verification_result,
)
from expense_lane.pipeline.result import Err, Ok, Result
from expense_lane.schemas import ChannelMessage, OrchestrationResult, Receipt, RunOptions

if TYPE_CHECKING:
    from expense_lane.services.registry import IntegrationClients

logger = logging.getLogger(__name__)


class Acquired(NamedTuple):
    receipt: Receipt
    message: Optional[ChannelMessage] = None


def log_section(title: str) -> None:
    rule = "=" * 60
    logger.info("\n%s\n  %s\n%s", rule, title, rule)


def _channel(settings: Settings, options: RunOptions) -> Optional[str]:
    return options.source_channel or settings.SLACK_CHANNEL_ID


async def acquire_receipt(
    clients: IntegrationClients, settings: Settings, options: RunOptions
) -> Result[Acquired]:
    """Step 1: the fixture receipt if given, else the first parseable channel message."""
    if options.fixture_receipt is not None:
        logger.info("Using provided fixture receipt")
        return Ok(Acquired(options.fixture_receipt))

    channel_id = _channel(settings, options)
    if not channel_id:
        return Err("No chat channel ID provided")

    try:
        found = await clients.notifications.find_payment_receipt(
            channel_id, settings.CHANNEL_SCAN_LIMIT
        )
    except Exception as exc:
        return Err(f"Failed to read channel messages: {exc}")
    if found is None:
        return Err("No payment receipt found in channel messages")
    return Ok(Acquired(found.receipt, found.message))


async def _isolated(
    integration: str,
    errors: list[str],
    action: Callable[[], Awaitable[Any]],
) -> Result[Any]:
    """Run one integration step; a failure is recorded and never propagated."""
    try:
        return Ok(await action())
    except Exception as exc:
        logger.error("%s step failed: %s", integration, exc)
        errors.append(f"{integration}: {exc}")
        return Err(str(exc))


async def run_fast_lane(
    clients: IntegrationClients,
    settings: Settings,
    options: Optional[RunOptions] = None,
) -> OrchestrationResult:
    options = options or RunOptions()
    errors: list[str] = []

    log_section("🚀 Expense Fast Lane Orchestration")

    # ── Step 1: acquire ──────────────────────────────────────────────────
    logger.info("Step 1: Reading payment message")
    acquired = await acquire_receipt(clients, settings, options)
    if isinstance(acquired, Err):
        logger.error("Orchestration failed: %s", acquired.reason)
        return OrchestrationResult(success=False, errors=[acquired.reason])

    receipt, source_message = acquired.value
    logger.info("Receipt extracted:\n%s", format_receipt(receipt))

    # ── Step 2: verify ───────────────────────────────────────────────────
    logger.info("Step 2: Verifying payment")
    verification = await clients.verifier.verify(receipt)
    logger.info("Payment verification complete:\n%s", format_verification_result(verification))
    if not verification.verified:
        logger.warning("Payment verification failed, but continuing with flow...")

    if options.dry_run:
        logger.info("Dry run mode - skipping Jira, Notion, and Slack updates")
        return OrchestrationResult(
            receipt=receipt, verification=verification, success=True, errors=errors
        )

    # ── Step 3: ticket ───────────────────────────────────────────────────
    logger.info("Step 3: Creating Jira task")
    ticket_step = await _isolated(
        "Jira",
        errors,
        lambda: clients.tickets.create_payment_ticket(receipt, verification),
    )
    ticket = ticket_step.value if isinstance(ticket_step, Ok) else None
    if ticket is not None:
        logger.info("Jira issue created: %s (%s)", ticket.key, ticket.url)

    # ── Step 4: document record ──────────────────────────────────────────
    logger.info("Step 4: Appending to Notion database")
    document_step = await _isolated(
        "Notion",
        errors,
        lambda: clients.documents.create_payment_entry(
            receipt, verification, ticket.key if ticket else None
        ),
    )
    document = document_step.value if isinstance(document_step, Ok) else None
    if document is not None:
        logger.info("Notion page created: %s (%s)", document.id, document.url)

    # ── Step 5: confirmation ─────────────────────────────────────────────
    logger.info("Step 5: Posting confirmation to Slack")
    channel_id = _channel(settings, options)
    notified: Optional[bool] = None
    if channel_id and ticket is not None:
        confirm_step = await _isolated(
            "Slack",
            errors,
            lambda: clients.notifications.post_confirmation(
                channel_id,
                receipt,
                ticket.key,
                document.url if document else None,
                source_message.ts if source_message else None,
            ),
        )
        notified = confirm_step.ok
        if notified:
            logger.info("Confirmation message posted to Slack")
    else:
        logger.warning("Skipped Slack confirmation (missing channel or Jira issue)")

    result = OrchestrationResult(
        receipt=receipt,
        verification=verification,
        ticket=ticket,
        document=document,
        success=not errors,
        errors=errors,
    )

    log_section("✅ Orchestration Complete")
    logger.info("\n%s", format_summary(result, notified))
    if errors:
        logger.warning("Completed with %d error(s):", len(errors))
        for err in errors:
            logger.error("  - %s", err)
    return result
