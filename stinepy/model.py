"""
Central data model definitions used across the project.

The module catalogue is a tree

    ModuleCategory -> Module -> SubModule -> {CourseInfo, Appointment, Group}

where the SubModule facets (and a Group's appointments) live on a separate page.
Such a facet is stored as Unloaded(link) until it is needed and as
Loaded(link, value) afterwards. The value is only reachable through the accessor
methods (SubModule.info(session), Group.appointments(session), ...), which fetch
the page on first use.

The catalogue records convert to and from plain dicts so they can be written to
the JSON cache files (see stinepy/storage.py).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar, Union

if TYPE_CHECKING:
    from stinepy.client import Session


T = TypeVar("T")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Language(str, Enum):
    GERMAN = "de"
    ENGLISH = "en"

    @property
    def token(self) -> str:
        """Argument token of the CHANGELANGUAGE screen."""
        return "-N001" if self is Language.GERMAN else "-N002"

    @classmethod
    def from_code(cls, code: str) -> Optional["Language"]:
        try:
            return cls(code.strip().lower())
        except ValueError:
            return None


class EventType(str, Enum):
    LECTURE = "lecture"
    EXERCISE = "exercise"
    PROJECT = "project"
    INTERNSHIP = "internship"
    SEMINAR = "seminar"
    PROSEMINAR = "proseminar"
    TUTORIAL = "tutorial"
    LECTURE_SERIES = "lecture series"
    # "ABK-Kurse" in german
    GPS_COURSE = "general professional skills course"

    @classmethod
    def parse(cls, text: str) -> Optional["EventType"]:
        return EVENT_TYPES.get(text.strip().lower())


# lowercase label (german and english) -> event type
EVENT_TYPES: Dict[str, EventType] = {
    "vorlesung": EventType.LECTURE,
    "lecture": EventType.LECTURE,
    "übung": EventType.EXERCISE,
    "Ã¼bung": EventType.EXERCISE,
    "exercise": EventType.EXERCISE,
    "practical course/lab": EventType.EXERCISE,
    "projekt": EventType.PROJECT,
    "project": EventType.PROJECT,
    "praktikum": EventType.INTERNSHIP,
    "internship": EventType.INTERNSHIP,
    "seminar": EventType.SEMINAR,
    "proseminar": EventType.PROSEMINAR,
    "introductory seminar": EventType.PROSEMINAR,
    "tutorium": EventType.TUTORIAL,
    "tutorial": EventType.TUTORIAL,
    "ringvorlesung": EventType.LECTURE_SERIES,
    "lecture series": EventType.LECTURE_SERIES,
    "abk-kurse": EventType.GPS_COURSE,
    "general professional skills courses": EventType.GPS_COURSE,
}


class LazyLevel(IntEnum):
    """
    How much of the tree the initial scrape may load.

    FULL_LAZY returns nodes with only their own fields filled in and all facets
    Unloaded. Every other level expands the whole node, children included.
    """

    FULL_LAZY = 0
    ONE_LINK = 1
    TWO_LINKS = 2
    THREE_OR_MORE_LINKS = 3
    NOT_LAZY = 10

    @property
    def is_lazy(self) -> bool:
        """Only FULL_LAZY defers requests."""
        return self is LazyLevel.FULL_LAZY


# ---------------------------------------------------------------------------
# Lazy facets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Unloaded:
    link: str


@dataclass(frozen=True)
class Loaded(Generic[T]):
    link: str
    value: T


Facet = Union[Unloaded, Loaded]


def _facet_to_dict(facet: Facet, encode: Callable[[Any], Any]) -> dict[str, Any]:
    if isinstance(facet, Loaded):
        return {"link": facet.link, "loaded": True, "value": encode(facet.value)}
    return {"link": facet.link, "loaded": False}


def _facet_from_dict(data: dict[str, Any], decode: Callable[[Any], Any]) -> Facet:
    if data.get("loaded"):
        return Loaded(data["link"], decode(data.get("value")))
    return Unloaded(data["link"])


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _optional_list(encode: Callable[[Any], Any]) -> Callable[[Optional[list]], Optional[list]]:
    def inner(items: Optional[list]) -> Optional[list]:
        return [encode(x) for x in items] if items is not None else None

    return inner


# ---------------------------------------------------------------------------
# Leaf records
# ---------------------------------------------------------------------------


@dataclass
class Appointment:
    start: Optional[datetime]
    end: Optional[datetime]
    room: str
    instructors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": _dt_to_str(self.start),
            "end": _dt_to_str(self.end),
            "room": self.room,
            "instructors": list(self.instructors),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Appointment":
        return cls(
            start=_dt_from_str(data.get("start")),
            end=_dt_from_str(data.get("end")),
            room=data.get("room", ""),
            instructors=list(data.get("instructors", [])),
        )


@dataclass
class Exam:
    name: str
    start: Optional[datetime]
    end: Optional[datetime]
    instructors: List[str] = field(default_factory=list)
    is_mandatory: Optional[bool] = None
    # lowercase text of the "compulsory" column, kept for unknown values
    is_mandatory_raw: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "start": _dt_to_str(self.start),
            "end": _dt_to_str(self.end),
            "instructors": list(self.instructors),
            "is_mandatory": self.is_mandatory,
            "is_mandatory_raw": self.is_mandatory_raw,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Exam":
        return cls(
            name=data["name"],
            start=_dt_from_str(data.get("start")),
            end=_dt_from_str(data.get("end")),
            instructors=list(data.get("instructors", [])),
            is_mandatory=data.get("is_mandatory"),
            is_mandatory_raw=data.get("is_mandatory_raw", ""),
        )


@dataclass
class CourseInfo:
    """
    Details of one course (Lehrveranstaltung).

    event_type is None when the portal's label is not in EVENT_TYPES,
    event_type_raw always holds the label as shown.
    """

    event_type: Optional[EventType] = None
    event_type_raw: Optional[str] = None
    instructors: Optional[List[str]] = None
    timetable_name: Optional[str] = None
    hours_per_week: Optional[int] = None
    credits: Optional[str] = None
    language: Optional[str] = None
    min_participants: Optional[int] = None
    max_participants: Optional[int] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type.value if self.event_type else None,
            "event_type_raw": self.event_type_raw,
            "instructors": self.instructors,
            "timetable_name": self.timetable_name,
            "hours_per_week": self.hours_per_week,
            "credits": self.credits,
            "language": self.language,
            "min_participants": self.min_participants,
            "max_participants": self.max_participants,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CourseInfo":
        event_type = data.get("event_type")
        return cls(
            event_type=EventType(event_type) if event_type else None,
            event_type_raw=data.get("event_type_raw"),
            instructors=data.get("instructors"),
            timetable_name=data.get("timetable_name"),
            hours_per_week=data.get("hours_per_week"),
            credits=data.get("credits"),
            language=data.get("language"),
            min_participants=data.get("min_participants"),
            max_participants=data.get("max_participants"),
            attributes=dict(data.get("attributes") or {}),
        )


# ---------------------------------------------------------------------------
# Lazy records
# ---------------------------------------------------------------------------


@dataclass
class Group:
    """
    A small group (Kleingruppe) of a course. Its appointments are on their own page.
    """

    name: str
    instructors: List[str]
    schedule: str
    appointments_facet: Facet

    def appointments(self, session: "Session") -> List[Appointment]:
        facet = self.appointments_facet
        if isinstance(facet, Loaded):
            return facet.value

        from stinepy.modules import parse_group_appointments

        value = parse_group_appointments(session, facet.link)
        self.appointments_facet = Loaded(facet.link, value)
        return value

    def to_dict(self) -> dict[str, Any]:
        # group appointments are never written to the cache
        return {
            "name": self.name,
            "instructors": list(self.instructors),
            "schedule": self.schedule,
            "appointments": _facet_to_dict(Unloaded(self.appointments_facet.link), list),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Group":
        return cls(
            name=data["name"],
            instructors=list(data.get("instructors", [])),
            schedule=data.get("schedule", ""),
            appointments_facet=Unloaded(data["appointments"]["link"]),
        )


@dataclass
class SubModule:
    """
    One course of a module, keyed by the id taken from its link.

    info, appointments and groups come from the same page; the first accessor
    that finds its facet Unloaded loads all three with a single request.
    """

    id: str
    # Lehrveranstaltungsnummer, e.g. "64-040"
    course_number: str
    name: str
    info_facet: Facet
    appointments_facet: Facet
    groups_facet: Facet

    @property
    def is_loaded(self) -> bool:
        return all(
            isinstance(f, Loaded) for f in (self.info_facet, self.appointments_facet, self.groups_facet)
        )

    def load(self, session: "Session") -> None:
        from stinepy.modules import load_sub_module

        load_sub_module(session, self)

    def info(self, session: "Session") -> CourseInfo:
        if not isinstance(self.info_facet, Loaded):
            self.load(session)
        assert isinstance(self.info_facet, Loaded)
        return self.info_facet.value

    def appointments(self, session: "Session") -> Optional[List[Appointment]]:
        if not isinstance(self.appointments_facet, Loaded):
            self.load(session)
        assert isinstance(self.appointments_facet, Loaded)
        return self.appointments_facet.value

    def groups(self, session: "Session") -> Optional[List[Group]]:
        if not isinstance(self.groups_facet, Loaded):
            self.load(session)
        assert isinstance(self.groups_facet, Loaded)
        return self.groups_facet.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "course_number": self.course_number,
            "name": self.name,
            "info": _facet_to_dict(self.info_facet, lambda v: v.to_dict()),
            "appointments": _facet_to_dict(
                self.appointments_facet, _optional_list(lambda a: a.to_dict())
            ),
            "groups": _facet_to_dict(self.groups_facet, _optional_list(lambda g: g.to_dict())),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubModule":
        return cls(
            id=data["id"],
            course_number=data["course_number"],
            name=data["name"],
            info_facet=_facet_from_dict(data["info"], CourseInfo.from_dict),
            appointments_facet=_facet_from_dict(
                data["appointments"], _optional_list(Appointment.from_dict)
            ),
            groups_facet=_facet_from_dict(data["groups"], _optional_list(Group.from_dict)),
        )


@dataclass
class Module:
    """
    A module, keyed by its module number (e.g. "InfB-SE1").
    """

    module_number: str
    name: str
    owner: str
    sub_modules: List[SubModule] = field(default_factory=list)
    exams: List[Exam] = field(default_factory=list)
    timetable_name: Optional[str] = None
    duration: Optional[int] = None
    electives: Optional[int] = None
    credits: Optional[str] = None
    start_semester: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "module_number": self.module_number,
            "name": self.name,
            "owner": self.owner,
            "sub_modules": [s.to_dict() for s in self.sub_modules],
            "exams": [e.to_dict() for e in self.exams],
            "timetable_name": self.timetable_name,
            "duration": self.duration,
            "electives": self.electives,
            "credits": self.credits,
            "start_semester": self.start_semester,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Module":
        return cls(
            module_number=data["module_number"],
            name=data["name"],
            owner=data.get("owner", ""),
            sub_modules=[SubModule.from_dict(s) for s in data.get("sub_modules", [])],
            exams=[Exam.from_dict(e) for e in data.get("exams", [])],
            timetable_name=data.get("timetable_name"),
            duration=data.get("duration"),
            electives=data.get("electives"),
            credits=data.get("credits"),
            start_semester=data.get("start_semester"),
            attributes=dict(data.get("attributes") or {}),
        )


@dataclass
class ModuleCategory:
    name: str
    modules: List[Module] = field(default_factory=list)
    # submodules listed directly under the category, without a parent module
    orphan_submodules: List[SubModule] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "modules": [m.to_dict() for m in self.modules],
            "orphan_submodules": [s.to_dict() for s in self.orphan_submodules],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModuleCategory":
        return cls(
            name=data["name"],
            modules=[Module.from_dict(m) for m in data.get("modules", [])],
            orphan_submodules=[SubModule.from_dict(s) for s in data.get("orphan_submodules", [])],
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class GradeStats:
    # (grade, number of students), in the order shown
    grade_map: List[Tuple[float, int]] = field(default_factory=list)
    average: Optional[float] = None
    available_results: Optional[int] = None
    # results graded on a different scale
    differing_gs_results: Optional[int] = None
    missing_canceled: Optional[int] = None
    missing_excused: Optional[int] = None
    missing_ill: Optional[int] = None
    missing_without_reason: Optional[int] = None
    # (lowercase cause, count) for causes not covered above
    missing_other: List[Tuple[str, int]] = field(default_factory=list)


@dataclass
class CourseResult:
    number: str
    name: str
    final_grade: Optional[float]
    credits: Optional[str]
    status: str
    # None when the row has no statistics link
    grade_stats_facet: Optional[Facet] = None

    def grade_stats(self, session: "Session") -> Optional[GradeStats]:
        facet = self.grade_stats_facet
        if facet is None:
            return None
        if isinstance(facet, Loaded):
            return facet.value

        from stinepy.results import fetch_grade_stats

        value = fetch_grade_stats(session, facet.link)
        self.grade_stats_facet = Loaded(facet.link, value)
        return value


# ---------------------------------------------------------------------------
# Documents & registrations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Document:
    name: str
    timestamp: datetime
    status: Optional[str]
    # links are regenerated per session, so they take no part in equality
    download: str = field(compare=False)


@dataclass
class MyRegistrations:
    pending_submodules: List[SubModule] = field(default_factory=list)
    accepted_submodules: List[SubModule] = field(default_factory=list)
    rejected_submodules: List[SubModule] = field(default_factory=list)
    accepted_modules: List[Module] = field(default_factory=list)
