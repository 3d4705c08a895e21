"""
Exam results (COURSERESULTS) and grade statistics (GRADEOVERVIEW).

The results page shows one semester at a time, chosen in a <select id="semester">.
Every other semester is a separate request, so semesters the caller did not ask
for are skipped before that request is made.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional

from bs4.element import Tag

from stinepy.arguments import Screen, grade_overview_args, semester_results_args
from stinepy.client import Session
from stinepy.model import CourseResult, Facet, GradeStats, LazyLevel, Loaded, Unloaded
from stinepy.parse import Markup, clean_text, element_text, parse_float, parse_int, require_attr, soupify
from stinepy.semester import Semester, SemesterResult

logger = logging.getLogger(__name__)

GRADE_STATS_LINK_RE = re.compile(r"-AMOFF,-N(\d+),-N0")
MISSING_CAUSE_RE = re.compile(r"\((.*)\)")

# lowercase summary label -> GradeStats field
GRADE_STAT_KEYS = {
    "average": "average",
    "durchschnitt": "average",
    "available results": "available_results",
    "vorliegende ergebnisse": "available_results",
    "results with differing gs": "differing_gs_results",
    "ergebnisse mit abweichendem bws": "differing_gs_results",
}

# cause in "missing (<cause>)" -> GradeStats field
MISSING_CAUSES = {
    "ill": "missing_ill",
    "krank": "missing_ill",
    "without reason": "missing_without_reason",
    "ohne grund": "missing_without_reason",
    # not translated on the english pages
    "annulliert": "missing_canceled",
    "excused": "missing_excused",
    "entschuldigt": "missing_excused",
}


# ---------------------------------------------------------------------------
# Grade statistics
# ---------------------------------------------------------------------------


def _parse_grade_map(soup: Tag) -> list[tuple[float, int]]:
    table = soup.select_one("table.nb")
    if table is None:
        return []

    rows = table.find_all("tr")
    if len(rows) < 2:
        return []

    grades = [g for g in (parse_float(element_text(td)) for td in rows[0].find_all("td")) if g is not None]
    counts = [n for n in (parse_int(element_text(td)) for td in rows[1].find_all("td")) if n is not None]
    return list(zip(grades, counts))


def _apply_missing(stats: GradeStats, key: str, value: str, course_id: str) -> None:
    match = MISSING_CAUSE_RE.search(key)
    cause = match.group(1).strip() if match else key.partition(" ")[2].strip()
    count = parse_int(value)

    field = MISSING_CAUSES.get(cause)
    if field is not None:
        setattr(stats, field, count)
        return

    if count is None:
        logger.error("Failed parsing value of missing type %r of %s: %r", cause, course_id, value)
        return
    stats.missing_other.append((cause, count))


def parse_grade_stats(html: Markup, course_id: str = "") -> GradeStats:
    soup = soupify(html)
    stats = GradeStats(grade_map=_parse_grade_map(soup))

    for row in soup.select(".tb > .tbdata"):
        content = element_text(row).lower()
        logger.debug("Grade stat row: %s", content)

        key, sep, value = content.partition(":")
        if not sep:
            logger.error("Failed parsing grade stats %r of %s", content, course_id)
            continue
        key = key.strip()
        value = clean_text(value)

        field = GRADE_STAT_KEYS.get(key)
        if field == "average":
            stats.average = parse_float(value)
        elif field is not None:
            setattr(stats, field, parse_int(value))
        elif key.startswith(("missing", "fehlend")):
            _apply_missing(stats, key, value, course_id)
        else:
            logger.error("Failed parsing grade statistic key: %s, value: %s", key, value)

    return stats


def grade_stats_link(script: str) -> Optional[str]:
    """
    Course id in the inline script of a result row:
    "...-AMOFF,-N381865010228083,-N0..." -> "381865010228083"
    """
    match = GRADE_STATS_LINK_RE.search(script)
    if match is None:
        return None
    return match.group(1)


def fetch_grade_stats(session: Session, course_id: str, attempt: int = 0) -> GradeStats:
    """
    attempt 0 gives the statistics over all attempts.
    """
    page = session.invoke(Screen.GRADEOVERVIEW, grade_overview_args(course_id, attempt))
    return parse_grade_stats(page, course_id)


# ---------------------------------------------------------------------------
# Semester results
# ---------------------------------------------------------------------------


def parse_semester_result(
    session: Session, html: Markup, semester: Semester, lazy: LazyLevel = LazyLevel.FULL_LAZY
) -> SemesterResult:
    """
    Result table of one semester: a row per course, then a summary row of
    <th> cells holding the semester's GPA and credits.
    """
    soup = soupify(html)
    result = SemesterResult(semester=semester)

    for row in soup.select(".nb > tbody:nth-child(2) > tr"):
        cells = row.find_all("td")

        if not cells:
            heads = row.find_all("th")
            if len(heads) >= 3:
                gpa = element_text(heads[1])
                parsed = parse_float(gpa)
                result.gpa = parsed if parsed is not None else gpa
                result.credits = element_text(heads[2])
            continue

        if len(cells) < 5:
            logger.warning("Skipping result row with %d columns in %s", len(cells), semester)
            continue

        name = element_text(cells[1])
        credits = element_text(cells[3])

        facet: Optional[Facet] = None
        script = cells[6].find("script") if len(cells) > 6 else None
        if script is not None:
            course_id = grade_stats_link(script.string or "")
            if course_id is None:
                logger.error("Failed parsing grade stats link for %s (%s)", name, semester)
            elif lazy.is_lazy:
                facet = Unloaded(course_id)
            else:
                facet = Loaded(course_id, fetch_grade_stats(session, course_id))

        result.courses.append(
            CourseResult(
                number=element_text(cells[0]),
                name=name,
                final_grade=parse_float(element_text(cells[2])),
                credits=credits or None,
                status=element_text(cells[4]),
                grade_stats_facet=facet,
            )
        )

    return result


def parse_course_results(
    session: Session,
    html: Markup,
    semesters: Iterable[Semester] = (),
    all_semesters: bool = False,
    lazy: LazyLevel = LazyLevel.FULL_LAZY,
) -> List[SemesterResult]:
    """
    Results of every semester in the dropdown that is in semesters (or of all of
    them). Each selected semester costs one request.
    """
    wanted = set(semesters)
    soup = soupify(html)
    results: List[SemesterResult] = []

    for option in soup.select("#semester > option"):
        label = element_text(option)
        try:
            semester = Semester.parse(label)
        except ValueError:
            logger.error("Failed parsing semester %r, skipping", label)
            continue

        if not all_semesters and semester not in wanted:
            continue

        logger.debug("Parsing semester: %s", label)
        page = session.invoke(Screen.COURSERESULTS, semester_results_args(require_attr(option, "value")))
        results.append(parse_semester_result(session, page, semester, lazy))

    return results
