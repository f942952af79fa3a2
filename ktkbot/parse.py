"""
Parsing (listing HTML -> Event objects).

- Selects every event row of one listing page
- Reads the row id, the main info cell (title, date, time) and the
  class info cell
- Turns the Danish date/time text into a fixed-offset datetime

Important rules:
- One bad row makes the whole page fail (ExtractionError). A page the
  parser does not fully understand is never used for partial results.
- If a row has several class info cells, the LAST one wins.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Set, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from ktkbot.errors import FormatError, MissingIdentifier, ParseError
from ktkbot.model import LISTING_TZ, Event


# ---------------------------------------------------------------------------
# Selectors & lookup tables
# ---------------------------------------------------------------------------

EVENT_SELECTOR = 'tr[class="infinite-item"]'
MAIN_INFO_SELECTOR = 'td[class="liste_wide min992"]'
CLASS_INFO_SELECTOR = 'td[class="liste_wide min992 holdinfo"]'

MONTHS = ("jan", "feb", "mar", "apr", "maj", "jun", "jul", "aug", "sep", "okt", "nov", "dec")
MONTH_LOOKUP = {name: number for number, name in enumerate(MONTHS, start=1)}

# (day, month, year) slices into e.g. "ma 14. jun 2021" / "ti 5. jan 2022"
TWO_DIGIT_DAY = (slice(3, 5), slice(7, 10), slice(11, None))
ONE_DIGIT_DAY = (slice(3, 4), slice(6, 9), slice(10, None))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _tokens(cell: Tag) -> List[str]:
    """
    Return all text nodes of a cell, trimmed, with empty ones dropped.
    """
    return list(cell.stripped_strings)


def _parse_int(s: str, what: str) -> int:
    # ASCII digits only: int() would also accept " 5", "+5" and "1_0"
    if not s or not (s.isascii() and s.isdigit()):
        raise ParseError(f"Failed to parse {what} from: {s!r}")
    return int(s)


def _parse_month(s: str) -> int:
    month = MONTH_LOOKUP.get(s)
    if month is None:
        raise ParseError(f"No month matching pattern: {s!r}")
    return month


# ---------------------------------------------------------------------------
# Date/time normalization
# ---------------------------------------------------------------------------


def parse_date(date_str: str) -> Tuple[int, int, int]:
    """
    Parse the date text of a row into (year, month, day).

    The weekday is skipped. Two-digit days are tried first; if that day
    is not a number, the one-digit layout is used instead.
    """
    day_slice, month_slice, year_slice = TWO_DIGIT_DAY
    try:
        day = _parse_int(date_str[day_slice], "day")
    except ParseError:
        day_slice, month_slice, year_slice = ONE_DIGIT_DAY
        day = _parse_int(date_str[day_slice], "day")

    month = _parse_month(date_str[month_slice])
    year = _parse_int(date_str[year_slice], "year")
    return year, month, day


def parse_time(time_str: str) -> Tuple[int, int]:
    """
    Parse 'HH:MM' (anything after the minutes is ignored, e.g. '18:00 - 19:00').
    """
    hours = _parse_int(time_str[0:2], "hours")
    minutes = _parse_int(time_str[3:5], "minutes")
    return hours, minutes


def parse_timestamp(date_str: str, time_str: str) -> datetime:
    year, month, day = parse_date(date_str)
    hours, minutes = parse_time(time_str)
    try:
        return datetime(year, month, day, hours, minutes, 0, tzinfo=LISTING_TZ)
    except ValueError as exc:
        raise ParseError(f"Invalid date/time {date_str!r} {time_str!r}: {exc}") from exc


# ---------------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------------


def split_main_info(tokens: List[str]) -> Tuple[str, str, str]:
    """
    Pick (title, date, time) out of the main info tokens.

    Regular rows have 3 tokens. Rows with 5 tokens carry two extra lines
    between the title and the date, which are ignored.
    """
    if len(tokens) == 3:
        return tokens[0], tokens[1], tokens[2]
    if len(tokens) == 5:
        return tokens[0], tokens[3], tokens[4]
    raise FormatError(f"Expected event main info to have 3 or 5 lines, found {tokens!r}")


def parse_row(row: Tag) -> Event:
    """
    Parse one event row into an Event.
    """
    event_id = row.get("id")
    if event_id is None:
        raise MissingIdentifier("No 'id' attribute in event HTML.")

    main: Optional[Tuple[str, datetime]] = None
    for cell in row.select(MAIN_INFO_SELECTOR):
        title, date_str, time_str = split_main_info(_tokens(cell))
        main = (title, parse_timestamp(date_str, time_str))

    if main is None:
        raise FormatError(f"No main info cell in event {event_id!r}")

    class_info: List[str] = []
    for cell in row.select(CLASS_INFO_SELECTOR):
        class_info = _tokens(cell)

    title, timestamp = main
    return Event(id=str(event_id), title=title, timestamp=timestamp, class_info=class_info)


# ---------------------------------------------------------------------------
# Page parsing
# ---------------------------------------------------------------------------


def parse_events(html: str) -> Set[Event]:
    """
    Parse one listing page and return its events.

    Raises an ExtractionError for the first row that cannot be parsed.
    """
    soup = BeautifulSoup(html, "html.parser")
    return {parse_row(row) for row in soup.select(EVENT_SELECTOR)}
