"""Shared validation utilities"""

import re
import unicodedata
from datetime import date, datetime
from typing import Optional

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase, stripped email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()
    if not re.match(EMAIL_PATTERN, email):
        raise ValueError("Invalid email format")
    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """Keep digits and a leading +; international numbers have 8 to 15 digits"""
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)
    if not 8 <= len(digits) <= 15:
        raise ValueError("Phone number must have between 8 and 15 digits")
    return f"+{digits}" if phone.strip().startswith("+") else digits


def parse_day(value: str) -> date:
    """Parse a YYYY-MM-DD string"""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError) as e:
        raise ValueError("Date must use the YYYY-MM-DD format") from e


def parse_month(value: str) -> tuple[date, date]:
    """Return the [first day, first day of next month) range of a YYYY-MM string"""
    try:
        start = datetime.strptime(value, "%Y-%m").date()
    except (TypeError, ValueError) as e:
        raise ValueError("Month must use the YYYY-MM format") from e
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def slugify(value: str) -> str:
    """Lowercase, accents stripped, words joined by single hyphens"""
    normalized = unicodedata.normalize("NFD", value)
    ascii_text = "".join(c for c in normalized if unicodedata.category(c) != "Mn")
    ascii_text = re.sub(r"[^a-z0-9\s-]", "", ascii_text.lower())
    ascii_text = re.sub(r"[\s-]+", "-", ascii_text.strip())
    return ascii_text.strip("-")
