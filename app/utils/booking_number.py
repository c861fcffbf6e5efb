"""Order and invoice number formatting utilities."""

from app.config import settings


def format_sequence_number(prefix: str, value: int, width: int | None = None) -> str:
    """Render a raw counter value with its letter prefix.

    Args:
        prefix: Series prefix ('K' for orders, 'P' for invoices)
        value: Raw counter value (>= 1)
        width: Zero-padding width; defaults to the configured width

    Returns:
        str: Formatted number like 'K000001'
    """
    width = width or settings.sequence_number_width
    return f"{prefix}{value:0{width}d}"


def format_order_number(value: int) -> str:
    """Format an order number, e.g. 'K000001'."""
    return format_sequence_number(settings.order_number_prefix, value)


def format_invoice_number(value: int) -> str:
    """Format an invoice number, e.g. 'P000001'."""
    return format_sequence_number(settings.invoice_number_prefix, value)


def generate_merchant_reference(order_number: str, attempt: int) -> str:
    """Merchant order reference sent to the gateway, unique per payment attempt.

    Returns:
        str: Reference like 'K000002-1'
    """
    return f"{order_number}-{attempt}"
