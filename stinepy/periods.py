"""
Registration periods ("Anmeldephasen").
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from stinepy.dates import parse_period


@dataclass(frozen=True)
class Period:
    start: datetime
    end: datetime

    @classmethod
    def parse(cls, text: str) -> "Period":
        start, end = parse_period(text)
        return cls(start, end)

    def __str__(self) -> str:
        return f"{self.start:%Y-%m-%d %H:%M:%S} - {self.end:%Y-%m-%d %H:%M:%S}"


class PeriodKind(str, Enum):
    EARLY = "Early registration period"
    GENERAL = "General registration period"
    LATE = "Late registration period"
    FIRST_SEMESTER = "Registration period for first-semester students"
    CHANGES_AND_CORRECTIONS = "Changes and corrections period"


# label shown by the portal -> kind, one row per language
PERIOD_LABELS = {
    "Vorgezogene Phase": PeriodKind.EARLY,
    "Early registration period": PeriodKind.EARLY,
    "Anmeldephase": PeriodKind.GENERAL,
    "General registration period": PeriodKind.GENERAL,
    "Nachmeldephase": PeriodKind.LATE,
    "Late registration period": PeriodKind.LATE,
    "Erstsemester": PeriodKind.FIRST_SEMESTER,
    "Registration period for first-semester students": PeriodKind.FIRST_SEMESTER,
    "Ummelde- und Korrektur-Phase": PeriodKind.CHANGES_AND_CORRECTIONS,
    "Changes and corrections period": PeriodKind.CHANGES_AND_CORRECTIONS,
}


@dataclass(frozen=True)
class RegistrationPeriod:
    kind: PeriodKind
    period: Period

    @property
    def name(self) -> str:
        return self.kind.value

    @classmethod
    def parse(cls, label: str, text: str) -> Optional["RegistrationPeriod"]:
        """
        None for a label not in PERIOD_LABELS. A bad date range raises DateParseError.
        """
        kind = PERIOD_LABELS.get(label.strip())
        if kind is None:
            return None
        return cls(kind, Period.parse(text))
