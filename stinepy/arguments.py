"""
The portal's argument protocol.

Every request goes to one endpoint and selects its page with PRGNAME. The page's
state is passed positionally in ARGUMENTS, a comma separated token list:

    -N<number>   numeric token
    -A<text>     action token

The first token is always the session id. Links scraped from a page carry the
session id of the request that produced them, so it is dropped when parsing and
re-added when building the next request.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from stinepy.model import Language


APP_NAME = "CampusNet"
ARGUMENTS_MARKER = "ARGUMENTS="

# sidebar menu token, the results and grade pages need it
RESULTS_MENU_TOKEN = "-N000460"


class Screen(str, Enum):
    """Known PRGNAME values."""

    LOGINCHECK = "LOGINCHECK"
    MLSSTART = "MLSSTART"
    EXTERNALPAGES = "EXTERNALPAGES"
    CHANGELANGUAGE = "CHANGELANGUAGE"
    CREATEDOCUMENT = "CREATEDOCUMENT"
    MYREGISTRATIONS = "MYREGISTRATIONS"
    REGISTRATION = "REGISTRATION"
    MODULEDETAILS = "MODULEDETAILS"
    COURSEDETAILS = "COURSEDETAILS"
    COURSERESULTS = "COURSERESULTS"
    GRADEOVERVIEW = "GRADEOVERVIEW"
    ACTIONMOBILE = "ACTIONMOBILE"


def parse_arg_string(href: str) -> list[str]:
    """
    Extract the argument tokens from a portal link, without the session id.

    Example:
        "...&ARGUMENTS=-N5115,-N891,-N0014" -> ["-N891", "-N0014"]

    A link without ARGUMENTS= gives an empty list.
    """
    if ARGUMENTS_MARKER not in href:
        return []

    tokens = href.rsplit(ARGUMENTS_MARKER, 1)[1].split(",")
    return tokens[1:]


def numeric(value: object) -> str:
    return f"-N{value}"


def action(value: str) -> str:
    return f"-A{value}"


def build_arguments(session_id: str, tokens: Iterable[str] = ()) -> str:
    return ",".join([numeric(session_id), *tokens])


def build_form(screen: Screen, session_id: str, tokens: Iterable[str] = ()) -> dict[str, str]:
    """
    Form body for one request: application name, screen and arguments.
    """
    return {
        "APPNAME": APP_NAME,
        "PRGNAME": Screen(screen).value,
        "ARGUMENTS": build_arguments(session_id, tokens),
    }


# ---------------------------------------------------------------------------
# Typed token lists for screens with fixed arguments
# ---------------------------------------------------------------------------


def registration_periods_args() -> list[str]:
    return [numeric("000385"), action("anmeldephasen")]


def language_args(language: "Language") -> list[str]:
    return [language.token]


def semester_results_args(option_value: str) -> list[str]:
    return [RESULTS_MENU_TOKEN, numeric(option_value)]


def grade_overview_args(course_id: str, attempt: int = 0) -> list[str]:
    """
    Tokens for the grade statistics of one exam.

    attempt 0 means all attempts, 99 is the highest the portal accepts.
    """
    if not 0 <= attempt <= 99:
        raise ValueError(f"attempt must be between 0 and 99, got {attempt}")
    return [RESULTS_MENU_TOKEN, action("MOFF"), numeric(course_id), numeric(attempt)]
