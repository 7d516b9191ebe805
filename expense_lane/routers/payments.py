"""
Expense Fast Lane API endpoints.

GET  /api/health           — liveness probe
GET  /api/samples          — canned receipts for the demo picker
POST /api/process-payment  — validate a receipt and run the full pipeline
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from expense_lane.config import Settings
from expense_lane.dependencies import get_app_settings, get_registry
from expense_lane.pipeline import run_fast_lane
from expense_lane.schemas import ReceiptSource, RunOptions, SampleReceipt, utc_now_iso, validate_receipt
from expense_lane.services.registry import ClientRegistry

logger = logging.getLogger(__name__)
router = APIRouter()


def build_samples() -> list[SampleReceipt]:
    now = utc_now_iso()
    rows = [
        ("sample1", "Office Supplies", "ORD-2024-001", "150.00", "John Doe",
         "Payment received: $150.00 from John Doe for order #ORD-2024-001 - Office supplies purchase"),
        ("sample2", "Software Subscription", "ORD-2024-002", "99.99", "Jane Smith",
         "Received $99.99 from Jane Smith, order ORD-2024-002 - Software subscription renewal"),
        ("sample3", "Marketing Campaign", "ORD-2024-003", "275.50", "Alice Johnson",
         "$275.50 payment from Alice Johnson for order #ORD-2024-003 - Marketing campaign expenses"),
    ]
    return [
        SampleReceipt(
            id=sid,
            name=name,
            order_id=order_id,
            amount=amount,
            currency="USD",
            payer=payer,
            description=description,
            timestamp=now,
            source=ReceiptSource.CHANNEL_MESSAGE,
        )
        for sid, name, order_id, amount, payer, description in rows
    ]


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
        for err in exc.errors()
    )


# ── GET /api/health ──────────────────────────────────────────────────────
@router.get("/health")
async def health_check():
    return {"status": "ok", "service": "Expense Fast Lane"}


# ── GET /api/samples ─────────────────────────────────────────────────────
@router.get("/samples")
async def list_samples():
    return [s.model_dump(mode="json", by_alias=True) for s in build_samples()]


# ── POST /api/process-payment ────────────────────────────────────────────
@router.post("/process-payment")
async def process_payment(
    payload: Any = Body(None),
    settings: Settings = Depends(get_app_settings),
    registry: ClientRegistry = Depends(get_registry),
):
    try:
        receipt = validate_receipt(payload)
    except ValidationError as exc:
        message = _validation_message(exc)
        logger.error("API error: %s", message)
        return JSONResponse(status_code=400, content={"success": False, "error": message})

    logger.info("Processing payment: %s", receipt.order_id)
    clients = await registry.clients_for_run(use_mocks=True)
    result = await run_fast_lane(
        clients, settings, RunOptions(fixture_receipt=receipt, dry_run=False)
    )
    return result.model_dump(mode="json", by_alias=True)
