"""Validation helpers for path and query parameters."""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

from fastapi import HTTPException, status

_ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_iso_date(value: str, field: str = "date") -> date:
    """Parse ``YYYY-MM-DD`` or answer 400 before any service is called."""
    try:
        if not _ISO_DATE.fullmatch(value):
            raise ValueError(value)
        return date.fromisoformat(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {field} '{value}'. Expected YYYY-MM-DD.",
        ) from exc


def parse_optional_date(value: Optional[str], field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    return parse_iso_date(value, field)


def check_date_order(start: Optional[date], end: Optional[date]) -> None:
    if start and end and start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date_from must not be after date_to.",
        )


def parse_date_range(date_from: Optional[str], date_to: Optional[str]) -> tuple[Optional[date], Optional[date]]:
    start = parse_optional_date(date_from, "date_from")
    end = parse_optional_date(date_to, "date_to")
    check_date_order(start, end)
    return start, end
