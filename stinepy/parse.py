"""
Parsing (HTML -> records).

Extractors for single pages that need no further requests:

- documents         (CREATEDOCUMENT)
- registration periods (EXTERNALPAGES "anmeldephasen")
- course info       (COURSEDETAILS, the key/value block)
- module details    (MODULEDETAILS, the key/value block and the exam table)
- appointments      (any "Appointments"/"Termine" table)

Rules:
- a missing element the page always has (table, row, anchor) raises PageStructureError
- a present element with an unexpected value is logged and left as None
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from stinepy.client import BASE_URL
from stinepy.dates import parse_dmy_time, parse_short_datetime
from stinepy.errors import DateParseError, PageStructureError
from stinepy.model import Appointment, CourseInfo, Document, EventType, Exam, Language, Module
from stinepy.periods import RegistrationPeriod

logger = logging.getLogger(__name__)

Markup = Union[str, BeautifulSoup, Tag]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def soupify(markup: Markup) -> Union[BeautifulSoup, Tag]:
    if isinstance(markup, (BeautifulSoup, Tag)):
        return markup
    return BeautifulSoup(markup, "html.parser")


def require(element: Optional[Tag], what: str) -> Tag:
    """
    Return element, or raise PageStructureError naming what was expected.
    """
    if element is None:
        raise PageStructureError(f"Missing element {what!r}, the page layout may have changed")
    return element


def require_attr(element: Tag, name: str) -> str:
    value = element.get(name)
    if not value:
        raise PageStructureError(f"<{element.name}> has no {name!r} attribute")
    return str(value)


def clean_text(text: str) -> str:
    """
    Strip whitespace and turn &nbsp; into plain spaces.
    """
    return text.replace("\xa0", " ").strip()


def element_text(element: Tag) -> str:
    return clean_text(element.get_text())


def parse_float(text: str) -> Optional[float]:
    """
    "1,7" -> 1.7, anything unparsable -> None.
    """
    try:
        return float(text.strip().replace(",", "."))
    except ValueError:
        return None


def parse_int(text: str) -> Optional[int]:
    try:
        return int(text.strip())
    except ValueError:
        return None


def parse_instructors(text: str) -> List[str]:
    """
    "Prof. A; Dr. B" -> ["Prof. A", "Dr. B"]
    """
    text = clean_text(text)
    if not text:
        return []
    if ";" in text:
        return [t.strip() for t in text.split(";") if t.strip()]
    return [text]


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def parse_documents(html: Markup) -> List[Document]:
    soup = soupify(html)
    table = require(soup.select_one("table.tb"), "table.tb")

    documents: List[Document] = []
    # first row is the header
    for row in table.find_all("tr")[1:]:
        cells = row.find_all("td")
        if len(cells) < 4:
            raise PageStructureError(f"Document row has {len(cells)} columns, expected at least 4")

        name = element_text(cells[0])
        timestamp = parse_dmy_time(element_text(cells[1]), element_text(cells[2]))
        status = element_text(cells[3]) or None

        link = require(row.select_one(".download"), ".download")
        documents.append(
            Document(
                name=name,
                timestamp=timestamp,
                status=status,
                download=BASE_URL + require_attr(link, "href"),
            )
        )

    return documents


# ---------------------------------------------------------------------------
# Registration periods
# ---------------------------------------------------------------------------


def parse_registration_periods(html: Markup) -> List[RegistrationPeriod]:
    soup = soupify(html)
    table = require(soup.select_one("#contentSpacer_IE > table"), "#contentSpacer_IE > table")

    periods: List[RegistrationPeriod] = []
    for row in table.find_all("tr"):
        cells = row.find_all("td")
        if len(cells) < 2:
            raise PageStructureError("Registration period row needs a label and a date column")

        label = element_text(cells[0])
        registration_period = RegistrationPeriod.parse(label, element_text(cells[1]))
        if registration_period is None:
            logger.warning("Skipping unknown registration period %r", label)
            continue

        periods.append(registration_period)

    return periods


# ---------------------------------------------------------------------------
# Course info
# ---------------------------------------------------------------------------

# lowercase key without trailing colon -> CourseInfo field
COURSE_INFO_KEYS: Dict[str, str] = {
    "lehrende": "instructors",
    "instructors": "instructors",
    "veranstaltungsart": "event_type",
    "event type": "event_type",
    "anzeige im stundenplan": "timetable_name",
    "displayed in timetable as": "timetable_name",
    "semesterwochenstunden": "hours_per_week",
    "hours per week": "hours_per_week",
    "credits": "credits",
    "unterrichtssprache": "language",
    "language of instruction": "language",
    "min. | max. teilnehmerzahl": "participants",
    "min. | max. participants": "participants",
}


def _apply_course_attribute(info: CourseInfo, key: str, value: str) -> None:
    key = key.strip()
    if key.endswith(":"):
        key = key[:-1].strip()

    target = COURSE_INFO_KEYS.get(key.lower())

    if target == "instructors":
        info.instructors = parse_instructors(value)
    elif target == "event_type":
        info.event_type = EventType.parse(value)
        info.event_type_raw = value
        if info.event_type is None:
            logger.debug("Unknown event type %r", value)
    elif target == "timetable_name":
        info.timetable_name = value
    elif target == "hours_per_week":
        info.hours_per_week = parse_int(value)
    elif target == "credits":
        info.credits = value
    elif target == "language":
        info.language = value
    elif target == "participants":
        if "|" not in value:
            logger.warning("Unexpected participants value %r", value)
            return
        low, high = value.split("|", 1)
        info.min_participants = parse_int(low)
        info.max_participants = parse_int(high)
    else:
        info.attributes[key] = value


def parse_course_info(html: Markup) -> CourseInfo:
    """
    Key/value block of a course page. Keys are the <b> elements, a value is every
    text node up to the next key, joined by newlines.
    """
    soup = soupify(html)
    block = require(soup.select_one(".tbdata"), ".tbdata")

    keys = {clean_text(b.get_text()) for b in block.find_all("b")}
    keys.discard("")

    info = CourseInfo()
    latest_key: Optional[str] = None
    lines: List[str] = []

    for text in block.stripped_strings:
        line = clean_text(text)
        if line in keys:
            if latest_key is not None:
                _apply_course_attribute(info, latest_key, "\n".join(lines))
            latest_key = line
            lines = []
        elif line and line != ":":
            lines.append(line)

    if latest_key is not None:
        _apply_course_attribute(info, latest_key, "\n".join(lines))

    return info


# ---------------------------------------------------------------------------
# Module details
# ---------------------------------------------------------------------------

# lowercase key with trailing colon -> Module field
MODULE_DETAIL_KEYS: Dict[str, str] = {
    "displayed in timetable as:": "timetable_name",
    "anzeige im stundenplan:": "timetable_name",
    "duration:": "duration",
    "dauer:": "duration",
    "number of electives:": "electives",
    "anzahl wahlkurse:": "electives",
    "credits:": "credits",
    "start semester:": "start_semester",
    "startsemester:": "start_semester",
}


def parse_module_details(text: List[str], module: Module) -> None:
    """
    Fill module's detail fields from the text nodes of the MODULEDETAILS block.

    Known keys go to their fields. Other keys go to module.attributes, either as
    "Key:" followed by its value or as "Key" ":" followed by any number of lines.
    """
    lines = [clean_text(t) for t in text]
    lines = [t for t in lines if t]

    current: Optional[str] = None
    i = 0
    while i < len(lines):
        entry = lines[i]
        lowered = entry.lower()
        following = lines[i + 1] if i + 1 < len(lines) else None

        target = MODULE_DETAIL_KEYS.get(lowered)
        if target is not None:
            current = None
            if following is None:
                break
            if target in ("duration", "electives"):
                number = parse_int(following)
                if number is None:
                    logger.warning("Module %s: unexpected %s %r", module.module_number, target, following)
                setattr(module, target, number)
            else:
                setattr(module, target, following)
            i += 2
            continue

        if entry == ":":
            i += 1
            continue

        if entry.endswith(":"):
            current = lowered[:-1].strip()
            module.attributes[current] = ""
            i += 1
            continue

        if following == ":" and ":" not in entry:
            current = lowered
            module.attributes[current] = ""
            i += 2
            continue

        if current is not None:
            previous = module.attributes.get(current, "")
            module.attributes[current] = f"{previous}\n{entry}" if previous else entry

        i += 1


# ---------------------------------------------------------------------------
# Exams & appointments
# ---------------------------------------------------------------------------

EXAM_TABLE_SUMMARY = {
    Language.GERMAN: "Modulabschlussprüfungen",
    Language.ENGLISH: "Final module exams",
}

MANDATORY_VALUES = {"ja": True, "yes": True, "nein": False, "no": False}


def _parse_optional_datetime(text: str, what: str) -> Optional[datetime]:
    try:
        return parse_short_datetime(text)
    except DateParseError as e:
        logger.warning("Failed parsing %s date %r: %s", what, text, e)
        return None


def parse_exams(html: Markup, language: Language) -> List[Exam]:
    """
    Rows of the module's exam table. The date column reads
    "Do, 21. Jul. 2022, 10:00 - 12:00".
    """
    soup = soupify(html)
    summary = EXAM_TABLE_SUMMARY[language]

    exams: List[Exam] = []
    for row in soup.select(f'.tb[summary="{summary}"] tr.tbdata'):
        name = element_text(require(row.select_one(".rw-detail-exam"), ".rw-detail-exam"))
        date_text = element_text(require(row.select_one(".rw-detail-date"), ".rw-detail-date"))
        instructors = element_text(require(row.select_one(".rw-detail-instructors"), ".rw-detail-instructors"))
        mandatory = element_text(require(row.select_one(".rw-detail-compulsory"), ".rw-detail-compulsory"))

        start = end = None
        parts = [p.strip() for p in date_text.split(",")]
        if len(parts) >= 3:
            times = [t.strip() for t in parts[-1].split(" - ")]
            date = ", ".join(parts[:-1])
            start = _parse_optional_datetime(f"{date} {times[0]}", "exam")
            if len(times) > 1:
                end = _parse_optional_datetime(f"{date} {times[1]}", "exam")
        elif date_text:
            logger.warning("Exam %r: unexpected date %r", name, date_text)

        raw = mandatory.lower()
        exams.append(
            Exam(
                name=name,
                start=start,
                end=end,
                instructors=parse_instructors(instructors),
                is_mandatory=MANDATORY_VALUES.get(raw),
                is_mandatory_raw=raw,
            )
        )

    return exams


def parse_appointments(table: Tag) -> List[Appointment]:
    """
    Rows with .rw-course-date/-from/-to/-room/-instruct cells, other rows are ignored.
    """
    appointments: List[Appointment] = []

    for row in table.find_all("tr"):
        date_cell = row.select_one(".rw-course-date")
        if date_cell is None:
            continue

        date = element_text(date_cell)
        start = element_text(require(row.select_one(".rw-course-from"), ".rw-course-from"))
        end = element_text(require(row.select_one(".rw-course-to"), ".rw-course-to"))

        room_cell = require(row.select_one(".rw-course-room"), ".rw-course-room")
        # the room is sometimes wrapped in a link
        room_link = room_cell.select_one('[name="appointmentRooms"]')
        room = element_text(room_link if room_link is not None else room_cell)

        instructors = element_text(require(row.select_one(".rw-course-instruct"), ".rw-course-instruct"))

        appointments.append(
            Appointment(
                start=_parse_optional_datetime(f"{date} {start}", "appointment"),
                end=_parse_optional_datetime(f"{date} {end}", "appointment"),
                room=room,
                instructors=parse_instructors(instructors),
            )
        )

    return appointments


def table_caption(table: Tag) -> Optional[str]:
    caption = table.find("caption")
    return element_text(caption).lower() if caption is not None else None


APPOINTMENT_CAPTIONS = ("appointments", "termine")


def find_appointments(html: Markup) -> Optional[List[Appointment]]:
    """
    Appointments of the first "Appointments"/"Termine" table, None if there is none.
    """
    soup = soupify(html)
    for table in soup.select(".tb"):
        if table_caption(table) in APPOINTMENT_CAPTIONS:
            return parse_appointments(table)
    return None
