"""
Date handling.

The portal prints dates in the account's language, e.g.

    "Do, 21. Jul. 2022 10:15"                  (appointments, exams)
    "Fr, 8. Mai 2022 14:15"                    (month without trailing dot)
    "Mon, 20 June 2022, 9 am"                  (registration periods, english)
    "Mo, 20.06.22, 09:00 Uhr"                  (registration periods, german)

strptime only knows english names, so german weekday and month abbreviations are
rewritten first. All times are Hamburg wall-clock times and are converted to UTC.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable, Tuple
from zoneinfo import ZoneInfo

from stinepy.errors import (
    DateNormalizationError,
    DateParseError,
    MissingSeparatorError,
    NonexistentTimeError,
)


BERLIN = ZoneInfo("Europe/Berlin")

WEEKDAYS = {
    # german
    "Mo": "Mon",
    "Di": "Tue",
    "Mi": "Wed",
    "Do": "Thu",
    "Fr": "Fri",
    "Sa": "Sat",
    "So": "Sun",
    # english two letter forms
    "Tu": "Tue",
    "We": "Wed",
    "Th": "Thu",
    "Su": "Sun",
}

MONTHS = {
    "Jan": "Jan",
    "Feb": "Feb",
    "Mär": "Mar",
    "MÃ¤r": "Mar",  # seen on pages served with the wrong charset
    "Apr": "Apr",
    "Mai": "May",
    "Jun": "Jun",
    "Jul": "Jul",
    "Aug": "Aug",
    "Sep": "Sep",
    "Okt": "Oct",
    "Nov": "Nov",
    "Dez": "Dec",
}

SHORT_DATETIME_FORMATS = ("%a, %d. %b. %Y %H:%M", "%a, %d. %B %Y %H:%M")
SHORT_DATE_FORMATS = ("%a, %d. %b. %Y", "%a, %d. %B %Y")
LONG_DATETIME_FORMATS = (
    "%a, %d %B %Y, %I:%M %p",
    "%a, %d %b %Y, %I:%M %p",
    "%a, %d.%m.%y, %H:%M Uhr",
    "%a, %d.%m.%y %H:%M Uhr",
)

_BARE_HOUR = re.compile(r"(?<![\d:])(\d{1,2})\s*(am|pm)\b", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def translate_weekday(text: str) -> str:
    """
    Replace a leading two letter weekday ("Do, ...") by its english abbreviation.
    """
    weekday, sep, rest = text.partition(",")
    english = WEEKDAYS.get(weekday.strip())
    if english is None:
        return text
    return english + sep + rest


def normalize_date_string(text: str) -> str:
    """
    Rewrite a short form date so strptime can read it.

    "Do, 21. Jul. 2022 10:15" -> "Thu, 21. Jul. 2022 10:15"
    "Fr, 8. Mai 2022 14:15"   -> "Fri, 8. May. 2022 14:15"

    Raises DateNormalizationError if the string does not have one or two dots.
    """
    fixed = translate_weekday(text)
    segments = fixed.split(".")

    if len(segments) == 2:
        words = segments[1].split()
        month = words[0] if words else ""
        replacement = MONTHS.get(month)
        if replacement is not None:
            segments[1] = segments[1].replace(month, replacement + ".", 1)
    elif len(segments) == 3:
        month = segments[1].strip()
        replacement = MONTHS.get(month)
        if replacement is not None:
            segments[1] = segments[1].replace(month, replacement, 1)
    else:
        raise DateNormalizationError(f"Can't find the month in date string {text!r}")

    return ".".join(segments)


# ---------------------------------------------------------------------------
# Timezone
# ---------------------------------------------------------------------------


def berlin_to_utc(naive: datetime) -> datetime:
    """
    Interpret a naive datetime as Europe/Berlin wall-clock time and return it in UTC.

    Times that fall into the spring DST gap do not exist and raise
    NonexistentTimeError. Ambiguous autumn times resolve to the earlier instant.
    """
    local = naive.replace(tzinfo=BERLIN, fold=0)
    as_utc = local.astimezone(timezone.utc)

    if as_utc.astimezone(BERLIN).replace(tzinfo=None) != naive.replace(tzinfo=None):
        raise NonexistentTimeError(f"{naive.isoformat()} does not exist in Europe/Berlin (DST gap)")

    return as_utc


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _strptime_first(text: str, formats: Iterable[str]) -> datetime:
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise DateParseError(f"Failed parsing date {text!r}")


def parse_short_datetime(text: str) -> datetime:
    """
    "Fri, 8. Apr. 2022 10:15" or "Fr, 8. Mai 2022 10:15" -> UTC datetime.
    """
    return berlin_to_utc(_strptime_first(normalize_date_string(text.strip()), SHORT_DATETIME_FORMATS))


def parse_short_date(text: str) -> datetime:
    """
    "Fri, 8. Apr. 2022" -> UTC datetime of local midnight.
    """
    return berlin_to_utc(_strptime_first(normalize_date_string(text.strip()), SHORT_DATE_FORMATS))


def parse_long_datetime(text: str) -> datetime:
    """
    "Mon, 20 June 2022, 9 am" or "Mo, 20.06.22, 09:00 Uhr" -> UTC datetime.
    """
    fixed = _BARE_HOUR.sub(r"\1:00 \2", text)
    fixed = fixed.replace(" ,", ",").strip()
    fixed = translate_weekday(fixed)

    try:
        naive = _strptime_first(fixed, LONG_DATETIME_FORMATS)
    except DateParseError:
        raise DateParseError(f"Failed parsing date {text!r} (normalized: {fixed!r})") from None

    return berlin_to_utc(naive)


def parse_dmy_time(date_text: str, time_text: str) -> datetime:
    """
    "23.08.22" + "14:46" -> UTC datetime.
    """
    joined = f"{date_text.strip()} {time_text.strip()}"
    try:
        naive = datetime.strptime(joined, "%d.%m.%y %H:%M")
    except ValueError as e:
        raise DateParseError(f"Failed parsing date {joined!r}") from e
    return berlin_to_utc(naive)


def split_period(text: str) -> Tuple[str, str]:
    """
    Split "<start> - <end>" (preferred) or "<start> to <end>" at the first separator.
    """
    for separator in (" - ", " to "):
        if separator in text:
            start, end = text.split(separator, 1)
            return start.strip(), end.strip()
    raise MissingSeparatorError(text)


def parse_period(text: str) -> Tuple[datetime, datetime]:
    start, end = split_period(text)
    return parse_long_datetime(start), parse_long_datetime(end)
