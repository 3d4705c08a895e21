"""
High level API.

    stine = Stine.login("BAX1234", "secret", language=Language.ENGLISH)
    for document in stine.get_documents():
        print(document.name, document.timestamp)

A Stine wraps one client.Session. Every method issues its requests right away
and in order; nothing runs in the background.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from stinepy.arguments import Screen, registration_periods_args
from stinepy.client import Session
from stinepy.errors import CacheError, NotFoundError
from stinepy.mobile import (
    ActorType,
    MobileCipher,
    StudentEvent,
    StudentExam,
    UnknownActorType,
    fetch_actor_type,
    fetch_student_events,
    fetch_student_exams,
)
from stinepy.model import (
    Document,
    GradeStats,
    Language,
    LazyLevel,
    Module,
    ModuleCategory,
    MyRegistrations,
    SubModule,
)
from stinepy.modules import find_module_category, parse_modules
from stinepy.parse import parse_documents, parse_registration_periods
from stinepy.periods import RegistrationPeriod
from stinepy.registrations import parse_my_registrations
from stinepy.results import fetch_grade_stats, parse_course_results
from stinepy.semester import Semester, SemesterResult
from stinepy.storage import CacheStore

logger = logging.getLogger(__name__)


class Stine:
    def __init__(self, session: Session) -> None:
        self.session = session

    # -----------------------------------------------------------------------
    # session
    # -----------------------------------------------------------------------

    @classmethod
    def login(
        cls,
        username: str,
        password: str,
        language: Optional[Language] = None,
        cache_dir: str | Path | None = None,
    ) -> "Stine":
        session = Session.login(username, password, cache=CacheStore(cache_dir))
        stine = cls(session)
        if language is not None:
            stine.set_language(language)
        return stine

    @classmethod
    def from_session(
        cls,
        cookie: str,
        session_id: str,
        language: Optional[Language] = None,
        cache_dir: str | Path | None = None,
    ) -> "Stine":
        """
        Resume a session from a stored (cookie, session id) pair.
        """
        session = Session.resume(cookie, session_id, cache=CacheStore(cache_dir))
        stine = cls(session)
        if language is not None:
            stine.set_language(language)
        return stine

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def cookie(self) -> str:
        return self.session.cookie

    def get_language(self) -> Language:
        language = self.session.get_language()
        self.session.language = language
        return language

    def set_language(self, language: Language) -> None:
        """
        No request is made if the account already uses language.
        """
        if self.session.language is language:
            return
        self.session.set_language(language)

    # -----------------------------------------------------------------------
    # single pages
    # -----------------------------------------------------------------------

    def get_documents(self) -> List[Document]:
        return parse_documents(self.session.invoke(Screen.CREATEDOCUMENT))

    def download_document(self, document: Document, path: str | Path) -> Path:
        return self.session.download(document.download, path)

    def get_registration_periods(self) -> List[RegistrationPeriod]:
        return parse_registration_periods(
            self.session.invoke(Screen.EXTERNALPAGES, registration_periods_args())
        )

    def get_my_registrations(self, lazy: LazyLevel = LazyLevel.FULL_LAZY) -> MyRegistrations:
        page = self.session.invoke(Screen.MYREGISTRATIONS)
        return parse_my_registrations(self.session, page, lazy)

    # -----------------------------------------------------------------------
    # module catalogue
    # -----------------------------------------------------------------------

    def get_registration_modules(
        self,
        force_reload: bool = False,
        show_progress: bool = False,
        lazy: LazyLevel = LazyLevel.NOT_LAZY,
    ) -> List[ModuleCategory]:
        """
        The whole module catalogue.

        Without force_reload the catalogue stored by the last reload is returned,
        and NotFoundError is raised if there is none. A reload takes several
        minutes unless lazy is FULL_LAZY.
        """
        language = self.session.require_language()

        if not force_reload:
            categories = self.session.cache.load_module_categories(language)
            if categories is None:
                raise NotFoundError("No module catalogue cached, consider force reloading")
            return categories

        page = self.session.invoke(Screen.REGISTRATION)
        categories = parse_modules(self.session, page, show_progress=show_progress, lazy=lazy)

        self.session.store_categories(categories)
        self.session.save_caches()
        self.session.cache.save_module_categories(categories, language)
        return categories

    def get_module_category(self, name: str, lazy: LazyLevel = LazyLevel.NOT_LAZY) -> Optional[ModuleCategory]:
        page = self.session.invoke(Screen.REGISTRATION)
        return find_module_category(self.session, page, name, lazy)

    def get_submodule_by_id(
        self, submodule_id: str, force_reload: bool = False, lazy: LazyLevel = LazyLevel.NOT_LAZY
    ) -> SubModule:
        if force_reload:
            self.get_registration_modules(force_reload=True, lazy=lazy)

        submodule = self.session.find_submodule(submodule_id)
        if submodule is None:
            raise NotFoundError(self._not_found("SubModule", submodule_id, force_reload))
        return submodule

    def get_module_by_number(
        self, module_number: str, force_reload: bool = False, lazy: LazyLevel = LazyLevel.NOT_LAZY
    ) -> Module:
        if force_reload:
            self.get_registration_modules(force_reload=True, lazy=lazy)

        module = self.session.find_module(module_number)
        if module is None:
            raise NotFoundError(self._not_found("Module", module_number, force_reload))
        return module

    @staticmethod
    def _not_found(kind: str, key: str, reloaded: bool) -> str:
        if reloaded:
            return f"{kind} {key!r} not found"
        return f"{kind} {key!r} not found, consider force reloading"

    def save_caches(self) -> None:
        """
        Flush the module caches. Failures are logged, not raised.
        """
        try:
            self.session.save_caches()
        except CacheError as e:
            logger.error("Failed saving module caches: %s", e)

    # -----------------------------------------------------------------------
    # results
    # -----------------------------------------------------------------------

    def get_semester_results(
        self, semesters: Iterable[Semester], lazy: LazyLevel = LazyLevel.FULL_LAZY
    ) -> List[SemesterResult]:
        """
        Results of the given semesters. Use FULL_LAZY unless the grade statistics
        are needed: every other level costs one extra request per course.
        """
        page = self.session.invoke(Screen.COURSERESULTS)
        return parse_course_results(self.session, page, semesters=semesters, lazy=lazy)

    def get_all_semester_results(self, lazy: LazyLevel = LazyLevel.FULL_LAZY) -> List[SemesterResult]:
        page = self.session.invoke(Screen.COURSERESULTS)
        return parse_course_results(self.session, page, all_semesters=True, lazy=lazy)

    def get_grade_stats_for_exam(self, course_id: str, attempt: int) -> GradeStats:
        return fetch_grade_stats(self.session, course_id, attempt)

    def get_grade_stats_for_course(self, course_id: str) -> GradeStats:
        """
        Statistics over all attempts.
        """
        return fetch_grade_stats(self.session, course_id, 0)

    # -----------------------------------------------------------------------
    # mobile API
    # -----------------------------------------------------------------------

    def get_actor_type(self, cipher: MobileCipher) -> Union[ActorType, UnknownActorType]:
        return fetch_actor_type(self.session, cipher)

    def get_student_events(self, cipher: MobileCipher) -> List[StudentEvent]:
        return fetch_student_events(self.session, cipher)

    def get_student_exams(self, cipher: MobileCipher) -> List[StudentExam]:
        return fetch_student_exams(self.session, cipher)
