"""
Semester values as shown by the portal ("SoSe 22", "WiSe 22/23").
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional, Tuple, Union

if TYPE_CHECKING:
    from stinepy.model import CourseResult, Language


SEMESTER_RE = re.compile(r"(wise|suse|sose)\s?((\d\d)(?:/(\d\d))?)")

Year = Union[int, Tuple[int, int]]


class SemesterType(str, Enum):
    SUMMER = "summer"
    WINTER = "winter"


@dataclass(frozen=True)
class Semester:
    """
    season + year, where a winter semester spans two years (22, 23) and a summer
    semester one (22). The portal's own strings are always accepted, see parse().
    """

    season: SemesterType
    year: Year

    @classmethod
    def summer(cls, year: int) -> "Semester":
        return cls(SemesterType.SUMMER, year)

    @classmethod
    def winter(cls, first: int, second: int) -> "Semester":
        return cls(SemesterType.WINTER, (first, second))

    @classmethod
    def parse(cls, text: str) -> "Semester":
        """
        Parse "wise 22/23", "WiSe22/23", "SoSe 22" or "SuSe 22" (case insensitive).

        The year shape is taken as written, so "SuSe 20/23" gives a summer
        semester with the year tuple (20, 23).
        """
        match = SEMESTER_RE.search(text.lower())
        if match is None:
            raise ValueError(
                f"{text!r} is not a valid semester string, expected e.g. 'SoSe 22' or 'WiSe 22/23'"
            )

        season = SemesterType.WINTER if match.group(1) == "wise" else SemesterType.SUMMER
        if match.group(4) is None:
            return cls(season, int(match.group(3)))
        return cls(season, (int(match.group(3)), int(match.group(4))))

    def format(self, language: Optional["Language"] = None) -> str:
        """
        Display string, "SoSe 22" in german, "SuSe 22" otherwise.
        """
        from stinepy.model import Language

        if self.season is SemesterType.WINTER:
            prefix = "WiSe"
        elif language is Language.GERMAN:
            prefix = "SoSe"
        else:
            prefix = "SuSe"

        if isinstance(self.year, tuple):
            year = f"{self.year[0]:02d}/{self.year[1]:02d}"
        else:
            year = f"{self.year:02d}"
        return f"{prefix} {year}"

    def __str__(self) -> str:
        return self.format()

    def to_dict(self) -> dict[str, Any]:
        year = list(self.year) if isinstance(self.year, tuple) else self.year
        return {"season": self.season.value, "year": year}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Semester":
        year = data["year"]
        return cls(SemesterType(data["season"]), tuple(year) if isinstance(year, list) else year)


@dataclass
class SemesterResult:
    semester: Semester
    courses: List["CourseResult"] = field(default_factory=list)
    # float when the portal's value parsed, otherwise the raw text
    gpa: Union[float, str] = ""
    credits: str = ""
