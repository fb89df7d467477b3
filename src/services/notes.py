"""
Cell note utilities: note text extraction and hour parsing.

Parsers return None when nothing matches. Callers must treat None
("no hours stated") differently from an explicit 0.
"""

import re

from core.config import MAX_SINGLE_ENTRY_HOURS, MAX_WORKED_HOURS

NUMBER = r"(\d+(?:\.\d+)?|\.\d+)"

STRICT_HOURS_RE = re.compile(NUMBER + r"\s*(?:hours?|hrs?|h)\b", re.IGNORECASE)
BARE_NUMBER_RE = re.compile(r"(?<![A-Za-z])" + NUMBER + r"(?![A-Za-z\d])")

# Worked-day patterns, in priority order
WORKED_PAREN_RE = re.compile(r"\(\+?\s*(\d+(?:\.\d+)?)\s*hours?\s*(?:PTO)?\s*\)", re.IGNORECASE)
WORKED_MAKE_UP_RE = re.compile(r"make\s*up\s+(\d+(?:\.\d+)?)", re.IGNORECASE)
WORKED_HOURS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:hours?|hrs?)\b", re.IGNORECASE)
WORKED_RANGE_RE = re.compile(
    r"worked\s+(?:from\s+)?"
    r"(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\s*[-–—]+\s*"
    r"(\d{1,2})(?::(\d{2}))?\s*(am|pm)?",
    re.IGNORECASE,
)


def note_text(cell) -> str:
    """Extract the plain text of an openpyxl cell comment."""
    if cell.comment is None:
        return ""
    return cell.comment.text or ""


def flatten_note(note: str) -> str:
    """Collapse a note onto one line for audit messages."""
    return note.replace("\n", " ").strip()


def _in_entry_range(value: float) -> bool:
    return 0 < value <= MAX_SINGLE_ENTRY_HOURS


def parse_hours_from_note(note: str) -> float | None:
    """
    Parse an hour count from free text.

    Tries "N hours/hrs/hr/h" first, then a bare number that is not part
    of a word. Values outside (0, 24] are ignored.
    """
    strict = STRICT_HOURS_RE.search(note)
    if strict:
        value = float(strict.group(1))
        if _in_entry_range(value):
            return value

    bare = BARE_NUMBER_RE.search(note)
    if bare:
        value = float(bare.group(1))
        if _in_entry_range(value):
            return value

    return None


def is_strict_hours_match(note: str) -> bool:
    """Check whether a note states its hours unambiguously ("4 hrs", "2.5h")."""
    strict = STRICT_HOURS_RE.search(note)
    return bool(strict) and _in_entry_range(float(strict.group(1)))


def _to_24h(hour: int, minute: int, meridiem: str | None) -> float:
    if meridiem:
        meridiem = meridiem.lower()
        if meridiem == "pm" and hour < 12:
            hour += 12
        elif meridiem == "am" and hour == 12:
            hour = 0
    return hour + minute / 60


def parse_time_range_hours(note: str) -> float | None:
    """Duration of an "HH[:MM] - HH[:MM]" range, e.g. "worked 9-1" -> 4.0."""
    match = WORKED_RANGE_RE.search(note)
    if not match:
        return None

    start_h, start_m, start_mer, end_h, end_m, end_mer = match.groups()
    start = _to_24h(int(start_h), int(start_m or 0), start_mer)
    end = _to_24h(int(end_h), int(end_m or 0), end_mer)

    # "9-1" with no am/pm means 9am to 1pm
    if end <= start and not (start_mer or end_mer):
        end += 12

    duration = round(end - start, 2)
    if 0 < duration <= MAX_WORKED_HOURS:
        return duration
    return None


def parse_worked_hours_from_note(note: str) -> float | None:
    """
    Parse the hours worked from a "worked" note.

    Patterns, in priority order:
    1. "(+4 hours)" / "(4 hours PTO)"
    2. "make up 4"
    3. "4 hours" / "4 hrs"
    4. A time range "worked 9:00 - 1:30"

    Every pattern only counts when 0 < hours <= 12; otherwise the next
    one is tried.
    """
    for pattern in (WORKED_PAREN_RE, WORKED_MAKE_UP_RE, WORKED_HOURS_RE):
        match = pattern.search(note)
        if match:
            value = float(match.group(1))
            if 0 < value <= MAX_WORKED_HOURS:
                return value

    return parse_time_range_hours(note)
