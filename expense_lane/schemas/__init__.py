from expense_lane.schemas.base import (  # noqa: F401
    ChannelMessage,
    DocumentRecord,
    OrchestrationResult,
    Receipt,
    ReceiptSource,
    RunOptions,
    SampleReceipt,
    TicketRecord,
    VerificationResult,
    VerificationStatus,
    utc_now_iso,
    validate_receipt,
)
