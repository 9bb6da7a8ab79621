"""
Utility functions for generating consistent reference formats for various entities.
"""

import random
import string
from datetime import datetime


def generate_booking_reference(booking_id: int) -> str:
    """
    Generate a formatted booking reference in the format BK-XXXXXX.

    Args:
        booking_id (int): The numeric ID of the booking

    Returns:
        str: A formatted booking reference (e.g., BK-000042)
    """
    return f"BK-{booking_id:06d}"


def generate_invoice_number(issued_at: datetime) -> str:
    """
    Generate an invoice number in the format INV-YYYYMM-NNNN.

    Args:
        issued_at (datetime): Issue time; supplies the year and month

    Returns:
        str: e.g. 'INV-202610-4821'
    """
    suffix = "".join(random.choices(string.digits, k=4))
    return f"INV-{issued_at:%Y%m}-{suffix}"


def generate_invoice_document_key(invoice_number: str) -> str:
    return f"{invoice_number}.txt"
