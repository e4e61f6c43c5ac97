"""Formatting utilities for display values."""

from voltstock.utils.constants import (
    ORDER_STATUS_LABELS,
    RMA_STATUS_LABELS,
    STOCK_REQUEST_STATUS_LABELS,
    TXN_STATUS_LABELS,
)


def format_currency(value: float) -> str:
    """Format a float as GBP currency."""
    return f"£{value:,.2f}"


def format_quantity(value: int, reorder_point: int = 0) -> str:
    """Format quantity, flagging stock at or below the reorder point."""
    if reorder_point > 0 and value <= reorder_point:
        return f"{value} (LOW)"
    return str(value)


def format_signed(value: int) -> str:
    """Format a ledger delta with an explicit sign."""
    return f"+{value}" if value > 0 else str(value)


def format_status(status: str) -> str:
    """Human label for any request / order / RMA / ledger status."""
    for labels in (STOCK_REQUEST_STATUS_LABELS, ORDER_STATUS_LABELS,
                   RMA_STATUS_LABELS, TXN_STATUS_LABELS):
        if status in labels:
            return labels[status]
    return status.replace("_", " ").title()
