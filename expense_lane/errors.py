"""
Exception hierarchy for the fast lane integrations.
"""


class ExpenseLaneError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(ExpenseLaneError):
    """A required setting for a live integration is missing."""


class ToolCallError(ExpenseLaneError):
    """A tool server returned an error result or an unreadable payload."""

    def __init__(self, client: str, tool: str, message: str):
        self.client = client
        self.tool = tool
        super().__init__(f"{client}.{tool} failed: {message}")


class PaymentApiError(ExpenseLaneError):
    """The payment processor answered with an error status or an unreadable body."""

    def __init__(self, status_code: int, reason: str):
        self.status_code = status_code
        super().__init__(f"Square API error: {status_code} {reason}".rstrip())
