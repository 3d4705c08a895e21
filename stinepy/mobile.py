"""
Screens of the STiNE mobile app API.

These are served by the ACTIONMOBILE screen and answer in XML:

    <mgns1:Message xmlns:mgns1="http://datenlotsen.de">
      <mgns1:studentEvent>
        <mgns1:courseID>379923411595682</mgns1:courseID>
        ...

The screen name and its arguments are encrypted with a key of the app. No cipher
ships with this package; pass an object implementing MobileCipher.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol, Union

from stinepy.errors import PageStructureError
from stinepy.model import EventType
from stinepy.parse import parse_float, parse_int
from stinepy.semester import Semester

if TYPE_CHECKING:
    from stinepy.client import Session

logger = logging.getLogger(__name__)


class MobileCipher(Protocol):
    def encrypt_arguments(self, screen_name: str, session_id: str, args: List[str]) -> str:
        ...


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class ActorType(str, Enum):
    APPLICANT = "ADM"
    INSTRUCTOR = "DOZ"
    EXTERNAL_STUDENT = "EXS"
    SPONSOR = "FOE"
    INTERESTED_PARTIES = "INT"
    EMPLOYEE = "MAB"
    INTERNSHIP = "PRA"
    STUDENT = "STD"


@dataclass(frozen=True)
class UnknownActorType:
    code: str


@dataclass
class StudentEvent:
    course_id: Optional[str] = None
    course_data_id: Optional[str] = None
    course_number: Optional[str] = None
    course_name: Optional[str] = None
    event_type: Optional[str] = None
    event_category: Optional[EventType] = None
    semester_id: Optional[str] = None
    semester: Optional[Semester] = None
    credits: Optional[float] = None
    hours_per_week: Optional[int] = None
    small_groups: Optional[int] = None
    language: Optional[str] = None
    faculty_name: Optional[str] = None
    max_students: Optional[int] = None
    instructors: Optional[str] = None
    module_name: Optional[str] = None
    module_number: Optional[str] = None
    is_listener: Optional[bool] = None
    accepted_status: Optional[bool] = None
    material_present: Optional[bool] = None
    info_present: Optional[bool] = None


@dataclass
class StudentExam:
    exam_id: Optional[str] = None
    name: Optional[str] = None
    context: Optional[str] = None
    # "modul" or "course"
    context_type: Optional[str] = None
    subject: Optional[str] = None
    begin_date: Optional[str] = None
    due_date: Optional[str] = None
    time_from: Optional[str] = None
    time_to: Optional[str] = None
    # "2,3", or "b" for pass/fail exams
    grade: Optional[str] = None
    grade_description: Optional[str] = None
    instructors: Optional[str] = None
    status: Optional[str] = None
    status_system: Optional[str] = None
    semester_id: Optional[str] = None
    semester: Optional[Semester] = None


# ---------------------------------------------------------------------------
# XML helpers
# ---------------------------------------------------------------------------


def local_name(tag: str) -> str:
    """'{http://datenlotsen.de}courseID' -> 'courseID'"""
    return tag.rsplit("}", 1)[-1]


def parse_xml(xml: str) -> ET.Element:
    try:
        return ET.fromstring(xml.strip())
    except ET.ParseError as e:
        raise PageStructureError(f"Invalid XML response: {e}") from e


def flatten_text_elements(element: ET.Element) -> Dict[str, str]:
    """
    Map local tag name -> trimmed text of every descendant that holds only text.
    Empty elements are left out. For repeated tags the first one is kept.
    """
    flat: Dict[str, str] = {}
    for node in element.iter():
        if node is element or len(node):
            continue
        text = (node.text or "").strip()
        if not text:
            continue
        flat.setdefault(local_name(node.tag), text)
    return flat


def find_elements(root: ET.Element, name: str) -> List[ET.Element]:
    return [node for node in root.iter() if local_name(node.tag) == name]


def bool_from_string(text: str) -> Optional[bool]:
    value = text.strip().lower()
    if value in ("true", "t", "1"):
        return True
    if value in ("false", "f", "0"):
        return False
    return None


def _optional(flat: Dict[str, str], key: str, convert):
    raw = flat.get(key)
    if raw is None:
        return None
    value = convert(raw)
    if value is None:
        logger.warning("Unexpected value for %s: %r", key, raw)
    return value


def _semester(text: str) -> Optional[Semester]:
    try:
        return Semester.parse(text)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def parse_actor_type(xml: str) -> Union[ActorType, UnknownActorType]:
    nodes = find_elements(parse_xml(xml), "actortype")
    if not nodes:
        raise PageStructureError("Missing <actortype> element")

    code = (nodes[0].text or "").strip()
    if not code:
        raise PageStructureError("Empty <actortype> element")

    try:
        return ActorType(code)
    except ValueError:
        return UnknownActorType(code)


def parse_student_events(xml: str) -> List[StudentEvent]:
    events: List[StudentEvent] = []

    for node in find_elements(parse_xml(xml), "studentEvent"):
        flat = flatten_text_elements(node)
        events.append(
            StudentEvent(
                course_id=flat.get("courseID"),
                course_data_id=flat.get("courseDataID"),
                course_number=flat.get("courseNumber"),
                course_name=flat.get("courseName"),
                event_type=flat.get("eventType"),
                event_category=_optional(flat, "eventCategory", EventType.parse),
                semester_id=flat.get("semesterID"),
                semester=_optional(flat, "semesterName", _semester),
                credits=_optional(flat, "creditPoints", parse_float),
                hours_per_week=_optional(flat, "hoursPerWeek", parse_int),
                small_groups=_optional(flat, "smallGroups", parse_int),
                language=flat.get("courseLanguage"),
                faculty_name=flat.get("facultyName"),
                max_students=_optional(flat, "maxStudents", parse_int),
                instructors=flat.get("instructorsString"),
                module_name=flat.get("moduleName"),
                module_number=flat.get("moduleNumber"),
                is_listener=_optional(flat, "listener", bool_from_string),
                accepted_status=_optional(flat, "acceptedStatus", bool_from_string),
                material_present=_optional(flat, "materialPresent", bool_from_string),
                info_present=_optional(flat, "infoPresent", bool_from_string),
            )
        )

    return events


def parse_student_exams(xml: str) -> List[StudentExam]:
    exams: List[StudentExam] = []

    for node in find_elements(parse_xml(xml), "studentExam"):
        flat = flatten_text_elements(node)
        exams.append(
            StudentExam(
                exam_id=flat.get("examID"),
                name=flat.get("examName"),
                context=flat.get("context"),
                context_type=flat.get("contextType"),
                subject=flat.get("subject"),
                begin_date=flat.get("beginDate"),
                due_date=flat.get("dueDate"),
                time_from=flat.get("timeFrom"),
                time_to=flat.get("timeTo"),
                grade=flat.get("grade"),
                grade_description=flat.get("gradeDescription"),
                instructors=flat.get("instructorString"),
                status=flat.get("status"),
                status_system=flat.get("statusSystem"),
                semester_id=flat.get("semesterID"),
                semester=_optional(flat, "semesterName", _semester),
            )
        )

    return exams


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


def fetch_actor_type(session: "Session", cipher: MobileCipher) -> Union[ActorType, UnknownActorType]:
    # "1" asks for the short code ("STD") instead of the label ("student")
    return parse_actor_type(session.invoke_mobile("GETPERSONTYPE", ["000000", "1"], cipher))


def fetch_student_events(session: "Session", cipher: MobileCipher) -> List[StudentEvent]:
    return parse_student_events(session.invoke_mobile("GETEVENTS", ["000000"], cipher))


def fetch_student_exams(session: "Session", cipher: MobileCipher) -> List[StudentExam]:
    return parse_student_exams(session.invoke_mobile("GETEXAMS", ["000000"], cipher))
