"""
CLI (Command Line Interface).

    stine semester-results [-s SEMESTER ...] [--grade-avg]
    stine registration-status [--reduce]
    stine documents
    stine periods
    stine modules [--force-reload] [--category NAME]
    stine check

Credentials come from --username/--password or from the config file
(~/.stine-env.json, see stinepy/config.py). A session stored there is reused if it
is recent, otherwise the CLI logs in again.
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime
from typing import Optional

import requests
from rich import box
from rich.console import Console
from rich.table import Table

from stinepy.client import BASE_URL
from stinepy.config import Config, load_config, save_config
from stinepy.dates import BERLIN
from stinepy.errors import StineError
from stinepy.logger import setup_logging
from stinepy.model import EventType, Language, LazyLevel, ModuleCategory
from stinepy.semester import Semester
from stinepy.stine import Stine

logger = logging.getLogger(__name__)

console = Console()

LANGUAGES = {"german": Language.GERMAN, "english": Language.ENGLISH}

# a host that is up whenever the network is
NETWORK_PROBE_URL = "https://google.com"

EVENT_TYPE_STYLES = {
    EventType.LECTURE: "blue",
    EventType.EXERCISE: "green",
    EventType.PROJECT: "red",
    EventType.INTERNSHIP: "red",
    EventType.SEMINAR: "magenta",
    EventType.PROSEMINAR: "magenta",
    EventType.GPS_COURSE: "magenta",
    EventType.TUTORIAL: "cyan",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _semester_arg(text: str) -> Semester:
    try:
        return Semester.parse(text)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid semester {text!r}, expected e.g. 'SoSe 22', 'WiSe 21/22' or 'suse22'"
        )


def _verbosity_level(verbose: int) -> int:
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def _local_time(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.astimezone(BERLIN).strftime("%d.%m.%Y %H:%M")


def network_available(url: str = NETWORK_PROBE_URL) -> bool:
    try:
        requests.get(url, timeout=10)
    except requests.RequestException:
        return False
    return True


def authenticate(config: Config, language: Optional[Language] = None) -> Stine:
    """
    Resume the stored session if possible, else log in with the credentials.
    Raises SystemExit(1) if neither works.
    """
    if config.can_resume():
        console.print("> Authenticating using session cookies")
        try:
            return Stine.from_session(config.cnsc_cookie, config.session, language=language)
        except (StineError, requests.RequestException) as e:
            logger.info("Session resume failed: %s", e)
            console.print("[red]Failed authenticating using session cookies.[/]")
            console.print("> Using credentials")

    if not config.has_credentials():
        console.print("[bold red]No credentials.[/] Pass --username and --password or use --save-config once.")
        raise SystemExit(1)

    try:
        return Stine.login(config.username, config.password, language=language)
    except (StineError, requests.RequestException) as e:
        if not network_available():
            console.print("[bold red]Can't reach the network. Is your internet working?[/]")
        else:
            console.print(f"[bold red]Failed authenticating with STINE.[/] Error: {e}")
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_semester_results(args: argparse.Namespace, stine: Stine) -> int:
    # statistics are only fetched when the averages are shown
    lazy = LazyLevel.NOT_LAZY if args.grade_avg else LazyLevel.FULL_LAZY

    with console.status("Fetching semester results"):
        if args.semesters:
            console.print(f"Selected semesters: {', '.join(str(s) for s in args.semesters)}")
            results = stine.get_semester_results(args.semesters, lazy)
        else:
            results = stine.get_all_semester_results(lazy)

    if not results:
        console.print("No results.")
        return 0

    table = Table(box=box.SIMPLE)
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Final grade", justify="right")
    table.add_column("Credits", justify="right")
    table.add_column("Status")
    if args.grade_avg:
        table.add_column("Grade avg", justify="right")

    for result in results:
        for course in result.courses:
            row = [
                course.number,
                course.name,
                "-" if course.final_grade is None else str(course.final_grade),
                course.credits or "-",
                course.status,
            ]
            if args.grade_avg:
                stats = course.grade_stats(stine.session)
                row.append("-" if stats is None or stats.average is None else str(stats.average))
            table.add_row(*row)

        summary = [
            f"Semester [red]{result.semester}[/]",
            "",
            f"[bold green]{result.gpa}[/]",
            f"[bold green]{result.credits}[/]",
            "",
        ]
        if args.grade_avg:
            summary.append("")
        table.add_row(*summary, end_section=True)

    console.print(table)
    return 0


def _cmd_registration_status(args: argparse.Namespace, stine: Stine) -> int:
    with console.status("Fetching registration status"):
        registrations = stine.get_my_registrations(LazyLevel.FULL_LAZY)

    pending = Table(title="pending", box=box.SIMPLE)
    pending.add_column("Course")
    for submodule in registrations.pending_submodules:
        # coloring by event type costs one request per course
        if args.reduce:
            pending.add_row(submodule.name)
            continue
        event_type = submodule.info(stine.session).event_type
        style = EVENT_TYPE_STYLES.get(event_type, "white") if event_type is not None else "white"
        pending.add_row(f"[{style}]{submodule.name}[/]")

    accepted = Table(title="[green]accepted[/]", box=box.SIMPLE)
    accepted.add_column("Course")
    for submodule in registrations.accepted_submodules:
        accepted.add_row(submodule.name)

    rejected = Table(title="[red]rejected[/]", box=box.SIMPLE)
    rejected.add_column("Course")
    for submodule in registrations.rejected_submodules:
        rejected.add_row(submodule.name)

    modules = Table(title="[green]accepted modules[/]", box=box.SIMPLE)
    modules.add_column("Module")
    modules.add_column("Name")
    for module in registrations.accepted_modules:
        modules.add_row(module.module_number, module.name)

    for table in (pending, accepted, rejected, modules):
        console.print(table)

    if not args.reduce:
        stine.save_caches()
    return 0


def _cmd_documents(args: argparse.Namespace, stine: Stine) -> int:
    documents = stine.get_documents()
    if not documents:
        console.print("No documents.")
        return 0

    table = Table(title="Documents", box=box.SIMPLE)
    table.add_column("Name")
    table.add_column("Created")
    table.add_column("Status")
    for document in documents:
        table.add_row(document.name, _local_time(document.timestamp), document.status or "")

    console.print(table)
    return 0


def _cmd_periods(args: argparse.Namespace, stine: Stine) -> int:
    table = Table(title="Registration periods", box=box.SIMPLE)
    table.add_column("Period")
    table.add_column("Start")
    table.add_column("End")
    for registration_period in stine.get_registration_periods():
        table.add_row(
            registration_period.name,
            _local_time(registration_period.period.start),
            _local_time(registration_period.period.end),
        )

    console.print(table)
    return 0


def _print_category(category: ModuleCategory) -> None:
    table = Table(title=category.name, box=box.SIMPLE)
    table.add_column("Module")
    table.add_column("Name")
    table.add_column("Owner")
    table.add_column("Credits", justify="right")
    table.add_column("Courses", justify="right")
    for module in category.modules:
        table.add_row(
            module.module_number,
            module.name,
            module.owner,
            module.credits or "-",
            str(len(module.sub_modules)),
        )
    for submodule in category.orphan_submodules:
        table.add_row("", f"[dim]{submodule.name}[/]", "", "", "")
    console.print(table)


def _cmd_modules(args: argparse.Namespace, stine: Stine) -> int:
    if args.category:
        category = stine.get_module_category(args.category, LazyLevel.FULL_LAZY)
        if category is None:
            console.print(f"[red]No category named {args.category!r}[/]")
            return 1
        _print_category(category)
        return 0

    categories = stine.get_registration_modules(
        force_reload=args.force_reload, show_progress=args.force_reload, lazy=LazyLevel.NOT_LAZY
    )
    for category in categories:
        _print_category(category)
    return 0


def _cmd_check(args: argparse.Namespace, stine: Stine) -> int:
    console.print(f"[underline]{BASE_URL}[/] [bright_green]is available and your credentials work[/]")
    return 0


COMMANDS = {
    "semester-results": _cmd_semester_results,
    "registration-status": _cmd_registration_status,
    "documents": _cmd_documents,
    "periods": _cmd_periods,
    "modules": _cmd_modules,
    "check": _cmd_check,
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="stine", description="Command line client for STINE (Uni Hamburg)")
    parser.add_argument("--username", type=str, help="STINE username, overrides the config file")
    parser.add_argument("--password", type=str, help="STINE password, overrides the config file")
    parser.add_argument(
        "--save-config", action="store_true", help="Save credentials and session to the config file"
    )
    parser.add_argument("--config", type=str, default=None, help="Config file (default: ~/.stine-env.json)")
    parser.add_argument(
        "-l",
        "--language",
        choices=sorted(LANGUAGES),
        help="STINE language. Changes the output and the language of your account",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More log output (-vv for debug)")

    sub = parser.add_subparsers(dest="command", required=True)

    p_results = sub.add_parser("semester-results", help="Print exam results of semesters")
    p_results.add_argument(
        "-s",
        "--semesters",
        nargs="+",
        type=_semester_arg,
        default=[],
        metavar="SEMESTER",
        help="Semesters, e.g. 'SoSe 22' 'WiSe 22/23' (default: all)",
    )
    p_results.add_argument(
        "--grade-avg", action="store_true", help="Show the average grade of every exam (one request per exam)"
    )

    p_status = sub.add_parser("registration-status", help="Print the status of your course registrations")
    p_status.add_argument(
        "-r", "--reduce", action="store_true", help="Skip coloring by event type, saves one request per course"
    )

    sub.add_parser("documents", help="List your documents")
    sub.add_parser("periods", help="Print the registration periods")

    p_modules = sub.add_parser("modules", help="Print the module catalogue")
    p_modules.add_argument(
        "--force-reload", action="store_true", help="Scrape the catalogue again (takes several minutes)"
    )
    p_modules.add_argument("--category", type=str, help="Only scrape the category with this name")

    sub.add_parser("check", help="Check that STINE is reachable and the credentials work")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, authenticates, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    log = setup_logging(_verbosity_level(args.verbose), console=console)
    log.info("Log level: %s", logging.getLevelName(_verbosity_level(args.verbose)))

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        console.print(f"[bold red]Failed reading config file:[/] {e}")
        raise SystemExit(1)

    if args.username:
        config.username = args.username
    if args.password:
        config.password = args.password

    language = LANGUAGES[args.language] if args.language else None
    stine = authenticate(config, language)
    console.print("[bold green]Successfully authenticated with STINE[/]")

    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)

    try:
        code = handler(args, stine)
    except (StineError, requests.RequestException) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        console.print(f"[bold red]Error:[/] {e}")
        code = 1

    config.session = stine.session_id
    config.cnsc_cookie = stine.cookie
    if args.save_config:
        try:
            path = save_config(config, args.config)
        except OSError as e:
            console.print(f"[bold red]Failed saving config:[/] {e}")
            raise SystemExit(1)
        console.print(f"[bright_green]> Saved credentials and session to config file[/] [underline]{path}[/]")

    raise SystemExit(code)
