"""
Session client.

All pages are served by one endpoint:

    POST https://stine.uni-hamburg.de/scripts/mgrqispi.dll
         APPNAME=CampusNet&PRGNAME=<screen>&ARGUMENTS=-N<session id>,<tokens...>

A session is the pair (session id, cnsc cookie). It is created by logging in, or
resumed from a stored pair, and is then passed to every scraping function. The
session also owns the in-memory module/submodule caches that the scraper fills.

Errors from requests are not wrapped, so callers can tell a dead network from a
rejected login (see stinepy/errors.py).
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

import requests
from bs4 import BeautifulSoup

from stinepy.arguments import APP_NAME, Screen, action, build_form, language_args
from stinepy.errors import (
    AccessBlockedError,
    AccessDeniedError,
    MissingHeaderError,
    PageStructureError,
    PortalError,
    SessionTimeoutError,
    TemporarilyLockedError,
    WrongCredentialsError,
)
from stinepy.model import Language, Module, ModuleCategory, SubModule
from stinepy.storage import CacheStore

if TYPE_CHECKING:
    from stinepy.mobile import MobileCipher

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

BASE_URL = "https://stine.uni-hamburg.de"
API_URL = f"{BASE_URL}/scripts/mgrqispi.dll"

# the portal stalls now and then
TIMEOUT_SECONDS = 60

LOGIN_FORM = {
    "APPNAME": APP_NAME,
    "PRGNAME": Screen.LOGINCHECK.value,
    "ARGUMENTS": "clino,usrname,pass,menuno,menu_type,browser,platform",
    "clino": "000000000000001",
    "menuno": "000000",
    "menu_type": "classic",
    "browser": "",
    "platform": "",
}

MOBILE_USER_AGENT = "STiNE/202 CFNetwork/1390 Darwin/22.0.0"

_SESSION_ID_RE = re.compile(r"-N(\d+)")
_BLOCKED_MINUTES_RE = re.compile(r"(\d+) minutes")


def _form_headers() -> dict[str, str]:
    return {
        "Content-Type": "application/x-www-form-urlencoded",
        "Referer": f"{BASE_URL}/",
        "Origin": BASE_URL,
    }


# ---------------------------------------------------------------------------
# Error pages
# ---------------------------------------------------------------------------


def check_for_error(body: str) -> None:
    """
    Raise the matching AuthError if the page is one of the portal's failure pages.
    """
    if "<h1>Kennung oder Kennwort falsch</h1>" in body:
        raise WrongCredentialsError()

    if "<h1>Kennung oder Kennwort falsch - Zugang verweigert</h1>" in body:
        match = _BLOCKED_MINUTES_RE.search(body)
        if match:
            raise AccessBlockedError(int(match.group(1)))
        raise WrongCredentialsError()

    if "<h1>Zugang verweigert</h1>" in body:
        raise AccessDeniedError()

    # second variant: utf-8 page decoded as mac-roman
    if (
        "<h1>Anmeldung zur Zeit nicht möglich</h1>" in body
        or "<h1>Anmeldung zur Zeit nicht m√∂glich</h1>" in body
    ):
        raise TemporarilyLockedError()

    if "<h1>Timeout</h1>" in body or "<h1>Timeout!</h1>" in body:
        raise SessionTimeoutError()


def language_from_html(html: str) -> Language:
    """
    Read the display language from the lang attribute of the <html> element.
    """
    soup = BeautifulSoup(html, "html.parser")
    root = soup.find("html")
    code = root.get("lang") if root is not None else None
    if not code:
        raise PageStructureError("Page has no <html lang=...> attribute")

    language = Language.from_code(str(code))
    if language is None:
        raise PageStructureError(f"Unknown page language {code!r}")
    return language


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class Session:
    def __init__(
        self,
        session_id: str,
        cookie: str,
        language: Optional[Language] = None,
        cache: Optional[CacheStore] = None,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.session_id = session_id
        self.cookie = cookie
        self.language = language
        self.cache = cache if cache is not None else CacheStore()
        self.http = http if http is not None else requests.Session()

        self.modules: dict[str, Module] = {}
        self.submodules: dict[str, SubModule] = {}
        self._caches_loaded = False

    # -----------------------------------------------------------------------
    # authentication
    # -----------------------------------------------------------------------

    @classmethod
    def login(
        cls,
        username: str,
        password: str,
        cache: Optional[CacheStore] = None,
        http: Optional[requests.Session] = None,
    ) -> "Session":
        """
        Log in with username and password.

        The session id is taken from the Refresh header
        ("1; URL=...&ARGUMENTS=-N123456789,-N000019,") and the cookie from Set-Cookie.
        """
        http = http if http is not None else requests.Session()
        form = dict(LOGIN_FORM)
        form["usrname"] = username
        form["pass"] = password

        response = http.post(API_URL, data=form, headers=_form_headers(), timeout=TIMEOUT_SECONDS)
        response.raise_for_status()

        refresh = response.headers.get("Refresh")
        set_cookie = response.headers.get("Set-Cookie")

        if refresh is None or set_cookie is None:
            # a failure page explains a missing header better than we can
            check_for_error(response.text)
            raise MissingHeaderError("Refresh" if refresh is None else "Set-Cookie")

        match = _SESSION_ID_RE.search(refresh)
        if match is None:
            check_for_error(response.text)
            raise MissingHeaderError("Refresh")

        if "=" not in set_cookie:
            raise MissingHeaderError("Set-Cookie")
        cookie = set_cookie.split("=")[1].split(";")[0]

        session = cls(match.group(1), cookie, cache=cache, http=http)
        logger.debug("Authenticated using username and password")
        session.language = session.get_language()
        return session

    @classmethod
    def resume(
        cls,
        cookie: str,
        session_id: str,
        cache: Optional[CacheStore] = None,
        http: Optional[requests.Session] = None,
    ) -> "Session":
        """
        Continue a previous session. One probe request checks it is still valid.
        """
        session = cls(session_id, cookie, cache=cache, http=http)
        session.invoke(Screen.MLSSTART)
        logger.debug("Authenticated using session and cookie")
        session.language = session.get_language()
        return session

    # -----------------------------------------------------------------------
    # requests
    # -----------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = _form_headers()
        headers["Cookie"] = f"cnsc={self.cookie}"
        return headers

    def invoke(self, screen: Screen, tokens: Iterable[str] = ()) -> str:
        """
        POST one screen with the given argument tokens and return the page.

        The session id is prepended here; tokens scraped from links must not
        contain it (see arguments.parse_arg_string).
        """
        form = build_form(screen, self.session_id, tokens)
        logger.debug("Post to: %s %s", form["PRGNAME"], form["ARGUMENTS"])

        response = self.http.post(API_URL, data=form, headers=self._headers(), timeout=TIMEOUT_SECONDS)
        response.raise_for_status()

        body = response.text
        check_for_error(body)
        return body

    def invoke_mobile(self, screen_name: str, args: Sequence[str], cipher: "MobileCipher") -> str:
        """
        GET one screen of the mobile app API. The arguments are encrypted by cipher.
        """
        encrypted = cipher.encrypt_arguments(screen_name, self.session_id, list(args))
        url = f"{API_URL}?APPNAME={APP_NAME}&PRGNAME={Screen.ACTIONMOBILE.value}&ARGUMENTS={action(encrypted)}"
        headers = {
            "Host": "www.stine.uni-hamburg.de",
            "Accept": "application/json",
            "Connection": "keep-alive",
            "Cookie": f"cnsc={self.cookie}",
            "User-Agent": MOBILE_USER_AGENT,
            "Accept-Encoding": "gzip, deflate, br",
        }
        logger.debug("GET to: %s (%s %s)", url, screen_name, ",".join(args))

        response = self.http.get(url, headers=headers, timeout=TIMEOUT_SECONDS)
        response.raise_for_status()

        body = response.text
        check_for_error(body)
        return body

    def download(self, url: str, path: str | Path) -> Path:
        """
        Stream a document download (see Document.download) into path.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        logger.debug("Download %s -> %s", url, target)
        with self.http.get(
            url, headers={"Cookie": f"cnsc={self.cookie}"}, timeout=TIMEOUT_SECONDS, stream=True
        ) as response:
            response.raise_for_status()
            with target.open("wb") as f:
                for chunk in response.iter_content(chunk_size=64 * 1024):
                    if chunk:
                        f.write(chunk)
        return target

    # -----------------------------------------------------------------------
    # language
    # -----------------------------------------------------------------------

    def get_language(self) -> Language:
        return language_from_html(self.invoke(Screen.EXTERNALPAGES))

    def set_language(self, language: Language) -> None:
        """
        Switch the account's display language. The in-memory caches hold values in
        the old language and are dropped.
        """
        self.invoke(Screen.CHANGELANGUAGE, language_args(language))

        current = self.get_language()
        if current is not language:
            raise PortalError(
                f"Failed changing STINE language to {language.value!r}, still {current.value!r}"
            )

        if self.language is not language:
            self.modules = {}
            self.submodules = {}
            self._caches_loaded = False
        self.language = language

    def require_language(self) -> Language:
        if self.language is None:
            self.language = self.get_language()
        return self.language

    # -----------------------------------------------------------------------
    # caches
    # -----------------------------------------------------------------------

    def load_caches(self) -> None:
        """
        Merge the on-disk caches of the current language into memory. Entries
        scraped in this process win over the ones from disk.
        """
        language = self.require_language()
        self.modules = {**self.cache.load_modules(language), **self.modules}
        self.submodules = {**self.cache.load_submodules(language), **self.submodules}
        self._caches_loaded = True

    def _ensure_caches(self) -> None:
        if not self._caches_loaded:
            self.load_caches()

    def add_module(self, module: Module) -> None:
        self.modules[module.module_number] = module

    def add_submodule(self, submodule: SubModule) -> None:
        self.submodules[submodule.id] = submodule

    def find_module(self, module_number: str) -> Optional[Module]:
        self._ensure_caches()
        return self.modules.get(module_number)

    def find_submodule(self, submodule_id: str) -> Optional[SubModule]:
        self._ensure_caches()
        return self.submodules.get(submodule_id)

    def store_categories(self, categories: Iterable[ModuleCategory]) -> None:
        """
        Index every module and submodule of the given categories.
        """
        for category in categories:
            for module in category.modules:
                for submodule in module.sub_modules:
                    self.add_submodule(submodule)
                self.add_module(module)
            for submodule in category.orphan_submodules:
                self.add_submodule(submodule)

    def save_caches(self) -> None:
        """
        Write both maps to the on-disk store. Raises CacheError on failure.
        """
        language = self.require_language()
        logger.debug("Saving caches (%d modules, %d submodules)", len(self.modules), len(self.submodules))
        self.cache.save_modules(self.modules, language)
        self.cache.save_submodules(self.submodules, language)
