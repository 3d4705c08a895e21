"""
Scraping the module catalogue (REGISTRATION screen).

    REGISTRATION                    list of categories   (#contentSpacer_IE > ul > li)
      REGISTRATION <category>       modules and their courses (.tbcoursestatus rows)
        MODULEDETAILS <module>      module details and exams
        COURSEDETAILS <submodule>   course info, appointments, small groups
          COURSEDETAILS <group>     appointments of one small group

Every level below the category list is one request per node, so a full scrape
takes several minutes. With LazyLevel.FULL_LAZY only the category pages are
requested; the rest is fetched later by the accessors on the records.

Every module and submodule found is added to the session's caches.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn, TimeRemainingColumn

from stinepy.arguments import Screen, parse_arg_string
from stinepy.client import Session
from stinepy.errors import PageStructureError
from stinepy.model import (
    Appointment,
    Group,
    Language,
    LazyLevel,
    Loaded,
    Module,
    ModuleCategory,
    SubModule,
    Unloaded,
)
from stinepy.parse import (
    APPOINTMENT_CAPTIONS,
    Markup,
    element_text,
    find_appointments,
    parse_appointments,
    parse_course_info,
    parse_exams,
    parse_instructors,
    parse_module_details,
    require,
    require_attr,
    soupify,
    table_caption,
)

logger = logging.getLogger(__name__)

console = Console()

GROUP_HEADINGS = ("kleingruppe(n)", "small group(s)")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def submodule_id_from_link(link: str) -> str:
    """
    The submodule id is the first number of the third token, "-N<id>-N<...>".
    """
    tokens = parse_arg_string(link)
    if len(tokens) < 3:
        raise PageStructureError(f"Course link has too few arguments: {link!r}")

    parts = tokens[2].split("-N")
    if len(parts) < 2 or not parts[1]:
        raise PageStructureError(f"Course link has no submodule id: {link!r}")
    return parts[1]


def page_language(page: BeautifulSoup | Tag, session: Session) -> Language:
    root = page.find("html")
    code = root.get("lang") if root is not None else None
    language = Language.from_code(str(code)) if code else None
    if language is not None:
        return language
    return session.language or Language.ENGLISH


def category_items(html: Markup) -> List[Tag]:
    return soupify(html).select("#contentSpacer_IE > ul > li")


def _category_anchor(item: Tag) -> Tag:
    return require(item.find("a"), "category link")


def _progress() -> Progress:
    return Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeRemainingColumn(),
        console=console,
    )


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def parse_modules(
    session: Session,
    html: Markup,
    show_progress: bool = False,
    lazy: LazyLevel = LazyLevel.NOT_LAZY,
) -> List[ModuleCategory]:
    """
    Scrape every category of the REGISTRATION page.
    """
    started = time.monotonic()
    items = category_items(html)
    categories: List[ModuleCategory] = []

    if not show_progress:
        for item in items:
            categories.append(parse_module_category(session, item, lazy))
        return categories

    with _progress() as progress:
        for i, item in enumerate(items, start=1):
            name = element_text(_category_anchor(item))
            task = progress.add_task(f"[{i}/{len(items)}] {name}", total=None)
            categories.append(parse_module_category(session, item, lazy, progress=progress, task=task))

    console.print(f"Finished parsing all STINE modules in {time.monotonic() - started:.0f}s")
    return categories


def find_module_category(
    session: Session, html: Markup, name: str, lazy: LazyLevel = LazyLevel.NOT_LAZY
) -> Optional[ModuleCategory]:
    """
    Scrape only the category called name. None if there is no such category.
    """
    for item in category_items(html):
        if element_text(_category_anchor(item)) == name:
            return parse_module_category(session, item, lazy)
    return None


def parse_module_category(
    session: Session,
    item: Tag,
    lazy: LazyLevel = LazyLevel.NOT_LAZY,
    progress: Optional[Progress] = None,
    task: Optional[TaskID] = None,
) -> ModuleCategory:
    anchor = _category_anchor(item)
    category = ModuleCategory(name=element_text(anchor))
    logger.debug("Parsing category %s", category.name)

    page = soupify(session.invoke(Screen.REGISTRATION, parse_arg_string(require_attr(anchor, "href"))))
    rows = page.select(".tbcoursestatus tr")

    if progress is not None and task is not None:
        progress.update(task, total=len(rows), completed=0)

    latest: Optional[Module] = None
    for row in rows:
        module_el = row.select_one(".tbsubhead.dl-inner")
        submodule_el = row.select_one(".tbdata.dl-inner")

        if module_el is not None:
            if latest is not None:
                category.modules.append(latest)
            latest = parse_module(session, module_el, lazy)
        elif submodule_el is not None:
            submodule = parse_sub_module(session, submodule_el, lazy)
            if latest is not None:
                latest.sub_modules.append(submodule)
            else:
                category.orphan_submodules.append(submodule)

        if progress is not None and task is not None:
            progress.advance(task)

    if latest is not None:
        category.modules.append(latest)

    return category


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------


def parse_module(session: Session, element: Tag, lazy: LazyLevel = LazyLevel.NOT_LAZY) -> Module:
    """
    Module row of a category page: "<number> <name>" link and the owner.
    """
    anchor = require(element.select_one("p > strong > a"), "p > strong > a")
    number, _, name = " ".join(anchor.stripped_strings).partition(" ")
    if not number:
        raise PageStructureError("Module link has no module number")

    paragraphs = element.find_all("p")
    if len(paragraphs) < 2:
        raise PageStructureError(f"Module {number}: missing owner paragraph")

    module = Module(module_number=number, name=name.strip(), owner=element_text(paragraphs[1]))

    if not lazy.is_lazy:
        page = soupify(session.invoke(Screen.MODULEDETAILS, parse_arg_string(require_attr(anchor, "href"))))
        block = require(page.select_one(".tbdata > td"), ".tbdata > td")
        parse_module_details(list(block.stripped_strings), module)
        module.exams = parse_exams(page, page_language(page, session))

    session.add_module(module)
    return module


# ---------------------------------------------------------------------------
# Submodules
# ---------------------------------------------------------------------------


def parse_sub_module(session: Session, element: Tag, lazy: LazyLevel = LazyLevel.NOT_LAZY) -> SubModule:
    """
    Course row of a category or registration page. The name starts with the
    course number, e.g. "64-040 Softwareentwicklung I".
    """
    anchor = require(element.find("a"), "course link")
    title = element.select_one(".eventTitle") or anchor
    name = element_text(title)
    link = require_attr(anchor, "href")

    words = name.split()
    submodule = SubModule(
        id=submodule_id_from_link(link),
        course_number=words[0] if words else "",
        name=name,
        info_facet=Unloaded(link),
        appointments_facet=Unloaded(link),
        groups_facet=Unloaded(link),
    )

    if lazy.is_lazy:
        session.add_submodule(submodule)
    else:
        load_sub_module(session, submodule, lazy)
    return submodule


def load_sub_module(session: Session, submodule: SubModule, lazy: LazyLevel = LazyLevel.FULL_LAZY) -> None:
    """
    Fetch the course page once and load info, appointments and groups from it.

    lazy only decides whether the groups' appointments are fetched right away.
    """
    link = submodule.info_facet.link
    page = soupify(session.invoke(Screen.COURSEDETAILS, parse_arg_string(link)))

    appointments, groups = parse_tables(session, page, lazy)

    submodule.info_facet = Loaded(link, parse_course_info(page))
    submodule.appointments_facet = Loaded(link, appointments)
    submodule.groups_facet = Loaded(link, groups)
    session.add_submodule(submodule)


def parse_tables(
    session: Session, page: BeautifulSoup | Tag, lazy: LazyLevel
) -> Tuple[Optional[List[Appointment]], Optional[List[Group]]]:
    """
    Appointments and small groups of a course page, None for a missing table.
    """
    appointments: Optional[List[Appointment]] = None
    groups: Optional[List[Group]] = None

    for table in page.select(".tb"):
        caption = table_caption(table)
        if caption is not None:
            if caption in APPOINTMENT_CAPTIONS:
                appointments = parse_appointments(table)
            continue

        head = table.select_one(".tbhead")
        if head is None or element_text(head).lower() not in GROUP_HEADINGS:
            continue

        # the page shows a single group, follow "show all groups"
        show_all = table.select_one(".tbdata > a")
        if show_all is not None:
            all_groups = soupify(
                session.invoke(Screen.COURSEDETAILS, parse_arg_string(require_attr(show_all, "href")))
            )
            table = require(all_groups.select_one(".tb"), ".tb")

        groups = parse_groups(session, table, lazy)

    return appointments, groups


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def parse_groups(session: Session, table: Tag, lazy: LazyLevel = LazyLevel.NOT_LAZY) -> List[Group]:
    groups: List[Group] = []

    for li in table.select("ul > li"):
        name = element_text(require(li.select_one(".dl-ul-li-headline > strong"), ".dl-ul-li-headline > strong"))
        link = require_attr(require(li.select_one(".dl-link > a"), ".dl-link > a"), "href")

        paragraphs = li.select(".dl-inner > p")
        if len(paragraphs) < 3:
            raise PageStructureError(f"Group {name!r}: expected 3 paragraphs, got {len(paragraphs)}")

        if lazy.is_lazy:
            facet = Unloaded(link)
        else:
            facet = Loaded(link, parse_group_appointments(session, link))

        groups.append(
            Group(
                name=name,
                instructors=parse_instructors(element_text(paragraphs[1])),
                schedule=element_text(paragraphs[2]),
                appointments_facet=facet,
            )
        )

    return groups


def parse_group_appointments(session: Session, link: str) -> List[Appointment]:
    page = session.invoke(Screen.COURSEDETAILS, parse_arg_string(link))
    return find_appointments(page) or []
