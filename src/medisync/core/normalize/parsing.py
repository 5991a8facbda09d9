"""
Parsing utilities for normalizing scraped values.

Handles text, date, amount and flag parsing from the portal's Swiss
French formatting (dd.mm.yyyy dates, 1'234.50 amounts).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

import dateparser


# =============================================================================
# Text
# =============================================================================


def normalize_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace (including nbsp) into single spaces."""
    if not text:
        return ""
    return " ".join(text.replace("\xa0", " ").split())


def clean_text(value: Any) -> str | None:
    """Normalize a scraped value to a stripped string, or None when blank."""
    if value is None:
        return None
    text = normalize_whitespace(str(value))
    return text or None


# =============================================================================
# Date Parsing
# =============================================================================


@dataclass
class ParsedDate:
    """Result of parsing a date string."""

    value: datetime | None
    original: str
    confidence: float  # 0.0 - 1.0
    format_detected: str | None = None


_COMMON_PATTERNS = [
    (re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})(?:\s+(\d{1,2})[:h](\d{2}))?"), 1.0, "swiss"),
    (re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+(\d{1,2}):(\d{2}))?"), 0.9, "dmy_slash"),
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T\s](\d{2}):(\d{2}))?"), 1.0, "iso"),
]


def parse_date(value: str | datetime | date | None) -> ParsedDate:
    """Parse a date/datetime from the portal's formats.

    Handles:
    - Swiss dates (31.12.2024, 31.12.2024 14:30)
    - Day-first slash dates (31/12/2024)
    - ISO 8601
    - Anything else dateparser understands, read day-first in French

    Seconds are dropped: the portal displays minutes only.
    """
    if value is None:
        return ParsedDate(value=None, original="", confidence=0.0)

    if isinstance(value, datetime):
        return ParsedDate(
            value=value.replace(second=0, microsecond=0),
            original=value.isoformat(),
            confidence=1.0,
            format_detected="datetime",
        )

    if isinstance(value, date):
        return ParsedDate(
            value=datetime.combine(value, time.min),
            original=value.isoformat(),
            confidence=1.0,
            format_detected="date",
        )

    original = str(value)
    text = normalize_whitespace(original)

    if not text:
        return ParsedDate(value=None, original=original, confidence=0.0)

    for pattern, confidence, name in _COMMON_PATTERNS:
        match = pattern.match(text)
        if not match:
            continue
        groups = match.groups()
        try:
            if name == "iso":
                year, month, day = int(groups[0]), int(groups[1]), int(groups[2])
            else:
                day, month, year = int(groups[0]), int(groups[1]), int(groups[2])
            hour = int(groups[3]) if groups[3] else 0
            minute = int(groups[4]) if groups[4] else 0
            return ParsedDate(
                value=datetime(year, month, day, hour, minute),
                original=original,
                confidence=confidence,
                format_detected=name,
            )
        except ValueError:
            continue

    parsed = dateparser.parse(
        text,
        languages=["fr", "de", "en"],
        settings={
            "DATE_ORDER": "DMY",
            "PREFER_DAY_OF_MONTH": "first",
            "RETURN_AS_TIMEZONE_AWARE": False,
        },
    )
    if parsed:
        return ParsedDate(
            value=parsed.replace(second=0, microsecond=0),
            original=original,
            confidence=0.7,
            format_detected="dateparser",
        )

    return ParsedDate(value=None, original=original, confidence=0.0)


def parse_datetime_value(value: Any) -> datetime | None:
    """Shortcut returning only the parsed datetime."""
    return parse_date(value).value


def parse_date_value(value: Any) -> date | None:
    """Shortcut returning only the calendar date."""
    parsed = parse_date(value).value
    return parsed.date() if parsed else None


# =============================================================================
# Number Parsing
# =============================================================================


_NUMBER_PATTERN = re.compile(r"-?[\d'’ ,.]*\d")


def parse_amount(value: str | float | int | Decimal | None) -> Decimal | None:
    """Parse an amount such as "CHF 1'234.50", "1 234,50" or "12.-".

    Returns:
        Decimal amount, or None when no number is present
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    text = normalize_whitespace(str(value)).upper().replace("CHF", "").replace(".-", "")
    match = _NUMBER_PATTERN.search(text)
    if not match:
        return None

    number = match.group().replace("'", "").replace("’", "").replace(" ", "")

    last_comma = number.rfind(",")
    last_period = number.rfind(".")
    if last_comma > last_period:
        # Decimal comma: 1.234,56
        number = number.replace(".", "").replace(",", ".")
    else:
        number = number.replace(",", "")

    try:
        return Decimal(number)
    except InvalidOperation:
        return None


def parse_int(value: Any) -> int | None:
    """Parse the leading integer of a value ("45 min" -> 45)."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = re.search(r"-?\d+", str(value))
    return int(match.group()) if match else None


def parse_duration_minutes(value: Any) -> int | None:
    """Parse a duration such as "45", "45 min", "1h30" or "01:30" into minutes."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = normalize_whitespace(str(value)).lower()
    if not text:
        return None
    match = re.match(r"^(\d{1,2})\s*(?:h|:)\s*(\d{2})?", text)
    if match:
        return int(match.group(1)) * 60 + int(match.group(2) or 0)
    return parse_int(text)


def parse_flag(value: Any) -> bool | None:
    """Parse a yes/no style value (checkbox state, Oui/Non)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = normalize_whitespace(str(value)).lower()
    if text in ("1", "true", "on", "checked", "oui", "yes", "ja", "x"):
        return True
    if text in ("0", "false", "off", "non", "no", "nein"):
        return False
    return None
