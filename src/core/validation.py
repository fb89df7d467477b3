"""
Validation of reconciled entries before they are persisted.
"""

import math
from datetime import date

from core.config import PTO_TYPES
from models.entries import ImportedPtoEntry


def is_iso_date(value: str) -> bool:
    """Check for a real calendar date in YYYY-MM-DD form."""
    try:
        return date.fromisoformat(value).isoformat() == value
    except (TypeError, ValueError):
        return False


def validate_entries(entries: list[ImportedPtoEntry]) -> list[str]:
    """
    Validate entries against the persistence contract.

    Checks:
    1. Date is an ISO calendar date
    2. Type is one of the closed PTO types
    3. Hours are finite and non-zero
    4. At most one entry per date

    Returns:
        List of error messages (empty if all valid)
    """
    errors = []
    seen_dates = set()

    for entry in entries:
        if not is_iso_date(entry.date):
            errors.append(f"Invalid date '{entry.date}'")
        if entry.type not in PTO_TYPES:
            errors.append(f"Invalid PTO type '{entry.type}' on {entry.date}")
        if not math.isfinite(entry.hours) or entry.hours == 0:
            errors.append(f"Invalid hours {entry.hours} on {entry.date}")
        if entry.date in seen_dates:
            errors.append(f"Duplicate entry for {entry.date}")
        seen_dates.add(entry.date)

    return errors
