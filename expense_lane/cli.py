"""
cli.py - command-line entry point for one fast lane run.

Exit code 0 when every step succeeded, 1 otherwise.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from expense_lane.config import Settings
from expense_lane.pipeline import log_section, run_fast_lane
from expense_lane.schemas import OrchestrationResult, Receipt, RunOptions, validate_receipt
from expense_lane.services.registry import ClientRegistry

logger = logging.getLogger("expense_lane.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="expense-lane",
        description="Read a payment message, verify it, and fan out to Jira, Notion and Slack.",
        epilog=(
            "examples:\n"
            "  expense-lane\n"
            "  expense-lane --source-channel C01234567\n"
            "  expense-lane --receipt-file ./receipt.json --dry-run"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-s", "--source-channel",
        help="Slack channel ID to read payment messages from",
    )
    parser.add_argument(
        "-m", "--receipt-file",
        help="Path to a receipt JSON fixture (skips the channel scan)",
    )
    parser.add_argument(
        "-d", "--dry-run",
        action="store_true",
        help="Acquire and verify only (skip Jira/Notion/Slack updates)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s",
        force=True,
    )


def load_receipt_file(path: str) -> Receipt:
    """Read and validate a fixture; raises ``OSError``, ``ValueError`` or ``ValidationError``."""
    file_path = Path(path).resolve()
    logger.info("Loading fixture receipt from: %s", file_path)
    receipt = validate_receipt(json.loads(file_path.read_text(encoding="utf-8")))
    logger.info("Fixture receipt loaded")
    return receipt


async def run(settings: Settings, options: RunOptions) -> OrchestrationResult:
    registry = ClientRegistry(settings)
    try:
        use_mocks = settings.MOCK_MODE or options.fixture_receipt is not None
        if use_mocks:
            logger.info("Skipping tool server initialization (mock mode or fixture receipt provided)")
        clients = await registry.clients_for_run(use_mocks=use_mocks)
        if not use_mocks and not registry.connected:
            logger.warning("No tool servers initialized; running with mock clients instead")
        return await run_fast_lane(clients, settings, options)
    finally:
        await registry.aclose()


def main(argv: Optional[Sequence[str]] = None, settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = settings or Settings()
    except ValidationError as exc:
        logger.error("Failed to load environment: %s", exc)
        logger.info("Please copy env.example to .env and configure your credentials")
        return 1

    log_section("💸 Expense → Revenue Fast Lane")
    logger.info("Mock mode: %s", "enabled" if settings.MOCK_MODE else "disabled")
    if args.dry_run:
        logger.info("Dry run mode: enabled")

    fixture: Optional[Receipt] = None
    if args.receipt_file:
        try:
            fixture = load_receipt_file(args.receipt_file)
        except (OSError, ValueError) as exc:
            logger.error("Invalid receipt file %s: %s", args.receipt_file, exc)
            return 1

    options = RunOptions(
        source_channel=args.source_channel,
        fixture_receipt=fixture,
        dry_run=args.dry_run,
    )
    try:
        result = asyncio.run(run(settings, options))
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1

    if result.success:
        logger.info("🎉 All steps completed successfully!")
        return 0
    logger.warning("⚠️ Completed with some errors")
    return 1


if __name__ == "__main__":
    sys.exit(main())
