"""
Rule‑based receipt parser.

Recovers an order id, an amount and a payer name from a free‑form chat
message.  Patterns are tried in order and the first one whose extraction
passes schema validation wins; there is no scoring across patterns.

Examples of accepted messages::

    Payment received: $150 from John Doe for Order #12345
    Received $99.99 from jane@example.com, order ABC-123
    Order #789, $50 from Alice
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from pydantic import ValidationError

from expense_lane.schemas import Receipt, ReceiptSource, utc_now_iso

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_CHARS = 200

# ---------------------------------------------------------------------------
# Pattern building blocks
# ---------------------------------------------------------------------------

_AMOUNT = r"\$(?P<amount>\d+(?:\.\d{2})?)"
# A one-word payer must not swallow a following "for" or "order" keyword
_PAYER = r"(?:from|by)\s+(?P<payer>[^\s,]+(?:\s+(?!for\b|order\b)[^\s,]+)?)"
_ORDER = r"(?:order|#)\s*(?P<order_id>[A-Za-z0-9-]+)"

RECEIPT_PATTERNS: list[re.Pattern[str]] = [
    # "Payment received: $150 from John Doe for order #12345"
    re.compile(
        rf"(?:payment|received|paid).*?{_AMOUNT}\s+{_PAYER}[,\s]+.*?{_ORDER}",
        re.IGNORECASE,
    ),
    # "$99.99 from Jane Smith, order ABC-123"
    re.compile(rf"{_AMOUNT}\s+{_PAYER}[,\s]+.*?{_ORDER}", re.IGNORECASE),
    # "Order #789, $50 from Alice"
    re.compile(rf"{_ORDER}[,\s]+.*?{_AMOUNT}\s+{_PAYER}", re.IGNORECASE),
]


def _build_receipt(match: re.Match[str], text: str) -> Optional[Receipt]:
    try:
        return Receipt(
            order_id=match.group("order_id").strip(),
            amount=match.group("amount"),
            currency="USD",
            payer=match.group("payer").strip(),
            description=text[:DESCRIPTION_MAX_CHARS],
            timestamp=utc_now_iso(),
            source=ReceiptSource.CHANNEL_MESSAGE,
        )
    except ValidationError as exc:
        logger.debug("Discarding candidate match %r: %s", match.group(0), exc)
        return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_receipt_from_message(text: str) -> Optional[Receipt]:
    """Return a ``Receipt`` extracted from *text*, or ``None`` if nothing matches."""
    if not text:
        return None
    for pattern in RECEIPT_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        receipt = _build_receipt(match, text)
        if receipt is not None:
            return receipt
    return None
