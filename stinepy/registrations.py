"""
"My registrations" page (MYREGISTRATIONS).

The page has four tables, in this order:

    0  pending course registrations
    1  accepted course registrations
    2  rejected course registrations
    3  accepted module registrations

Courses and modules already in the session's cache are reused, everything else is
scraped and added. The caches are written to disk afterwards.
"""

from __future__ import annotations

import logging
from typing import List

from bs4.element import Tag

from stinepy.client import Session
from stinepy.errors import CacheError, PageStructureError
from stinepy.model import LazyLevel, Module, MyRegistrations, SubModule
from stinepy.modules import parse_module, parse_sub_module, submodule_id_from_link
from stinepy.parse import Markup, element_text, require, require_attr, soupify

logger = logging.getLogger(__name__)


def _parse_submodules_table(session: Session, table: Tag, lazy: LazyLevel) -> List[SubModule]:
    submodules: List[SubModule] = []

    for row in table.find_all("tr"):
        anchor = row.find("a")
        if anchor is None:
            continue

        submodule_id = submodule_id_from_link(require_attr(anchor, "href"))
        cached = session.find_submodule(submodule_id)

        # a row for one small group carries the id of its course, so the name decides
        if cached is not None and cached.name == element_text(anchor):
            submodules.append(cached)
            continue

        submodule = parse_sub_module(session, require(row.select_one(".dl-inner"), ".dl-inner"), lazy)
        logger.debug("Parsed submodule: %s", submodule.name)
        if cached is not None:
            # the id belongs to the course, keep the course in the cache
            session.add_submodule(cached)
        submodules.append(submodule)

    return submodules


def _parse_modules_table(session: Session, table: Tag, lazy: LazyLevel) -> List[Module]:
    modules: List[Module] = []

    for row in table.find_all("tr"):
        anchor = row.find("a")
        if anchor is None:
            continue

        words = element_text(anchor).split()
        if not words:
            raise PageStructureError("Module registration link has no text")
        module_number = words[0]
        logger.debug("Parsing module number: %s", module_number)

        cached = session.find_module(module_number)
        if cached is not None:
            modules.append(cached)
            continue

        modules.append(parse_module(session, require(row.select_one(".dl-inner"), ".dl-inner"), lazy))

    return modules


def parse_my_registrations(
    session: Session, html: Markup, lazy: LazyLevel = LazyLevel.FULL_LAZY
) -> MyRegistrations:
    soup = soupify(html)
    tables = soup.find_all("table")
    if len(tables) < 4:
        raise PageStructureError(f"Expected 4 registration tables, found {len(tables)}")

    registrations = MyRegistrations(
        pending_submodules=_parse_submodules_table(session, tables[0], lazy),
        accepted_submodules=_parse_submodules_table(session, tables[1], lazy),
        rejected_submodules=_parse_submodules_table(session, tables[2], lazy),
        accepted_modules=_parse_modules_table(session, tables[3], lazy),
    )

    try:
        session.save_caches()
    except CacheError as e:
        logger.error("Failed saving module caches: %s", e)

    return registrations
