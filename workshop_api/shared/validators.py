"""Shared validation utilities"""

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Optional


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to digits with an optional leading +.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    has_plus = phone.strip().startswith("+")
    digits = re.sub(r"\D", "", phone)

    if len(digits) < 8 or len(digits) > 15:
        raise ValueError("Phone number must have between 8 and 15 digits")

    return f"+{digits}" if has_plus else digits


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_money(value: Optional[float]) -> Optional[float]:
    """Non-negative amount with at most two decimal places"""
    if value is None:
        return value
    if not math.isfinite(value):
        raise ValueError("Amount must be a finite number")
    if value < 0:
        raise ValueError("Amount must be greater than or equal to 0")
    try:
        exponent = Decimal(str(value)).as_tuple().exponent
    except InvalidOperation as e:
        raise ValueError("Invalid amount") from e
    if isinstance(exponent, int) and exponent < -2:
        raise ValueError("Amount must have at most 2 decimal places")
    return value


def validate_plate(plate: Optional[str]) -> Optional[str]:
    """Uppercase plate without separators"""
    if not plate:
        return plate
    cleaned = re.sub(r"[^A-Za-z0-9]", "", plate).upper()
    if not 5 <= len(cleaned) <= 10:
        raise ValueError("Invalid plate format")
    return cleaned


def strip_or_none(value: Optional[str]) -> Optional[str]:
    """Trim a string, collapsing blank values to None"""
    if value is None:
        return None
    value = value.strip()
    return value or None
