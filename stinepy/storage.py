"""
On-disk cache of the scraped module catalogue.

Scraping every category takes minutes, so the results are kept in one JSON file
per collection and language:

    $XDG_CACHE_HOME/stinepy/modules_<lang>.json             {module number: Module}
    $XDG_CACHE_HOME/stinepy/submodules_<lang>.json          {submodule id: SubModule}
    $XDG_CACHE_HOME/stinepy/module_categories_<lang>.json   [ModuleCategory, ...]

Names and descriptions depend on the display language, the keys do not.
There is no schema version: a file that no longer matches the model raises
CacheError and has to be rebuilt with a forced reload.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence, TypeVar

from stinepy.errors import CacheError
from stinepy.model import Language, Module, ModuleCategory, SubModule

logger = logging.getLogger(__name__)

T = TypeVar("T")


def default_cache_dir() -> Path:
    """
    Return the cache directory, ~/.cache/stinepy unless XDG_CACHE_HOME is set.

    A function instead of a constant, so tests can point it somewhere else.
    """
    base = os.environ.get("XDG_CACHE_HOME")
    root = Path(base) if base else Path.home() / ".cache"
    return root / "stinepy"


class CacheStore:
    def __init__(self, directory: str | Path | None = None) -> None:
        self.directory = Path(directory) if directory is not None else default_cache_dir()

    def path_for(self, collection: str, language: Language) -> Path:
        return self.directory / f"{collection}_{language.value}.json"

    # -----------------------------------------------------------------------
    # raw json
    # -----------------------------------------------------------------------

    def _read(self, path: Path) -> Optional[Any]:
        # first run: nothing cached yet
        if not path.exists():
            return None

        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CacheError(f"Failed reading cache file {path}: {e}") from e

    def _write(self, path: Path, payload: Any) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise CacheError(f"Failed writing cache file {path}: {e}") from e
        logger.debug("Wrote %s", path)

    def _decode(self, path: Path, data: Any, decode: Callable[[Any], T]) -> T:
        try:
            return decode(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CacheError(f"Cache file {path} does not match the data model: {e!r}") from e

    # -----------------------------------------------------------------------
    # collections
    # -----------------------------------------------------------------------

    def load_modules(self, language: Language) -> dict[str, Module]:
        path = self.path_for("modules", language)
        data = self._read(path)
        if data is None:
            return {}
        return self._decode(path, data, lambda d: {k: Module.from_dict(v) for k, v in d.items()})

    def save_modules(self, modules: Mapping[str, Module], language: Language) -> None:
        self._write(
            self.path_for("modules", language), {k: m.to_dict() for k, m in modules.items()}
        )

    def load_submodules(self, language: Language) -> dict[str, SubModule]:
        path = self.path_for("submodules", language)
        data = self._read(path)
        if data is None:
            return {}
        return self._decode(path, data, lambda d: {k: SubModule.from_dict(v) for k, v in d.items()})

    def save_submodules(self, submodules: Mapping[str, SubModule], language: Language) -> None:
        self._write(
            self.path_for("submodules", language), {k: s.to_dict() for k, s in submodules.items()}
        )

    def load_module_categories(self, language: Language) -> Optional[list[ModuleCategory]]:
        """
        Returns None when the catalogue was never scraped in this language.
        """
        path = self.path_for("module_categories", language)
        data = self._read(path)
        if data is None:
            return None
        return self._decode(path, data, lambda d: [ModuleCategory.from_dict(c) for c in d])

    def save_module_categories(self, categories: Sequence[ModuleCategory], language: Language) -> None:
        self._write(self.path_for("module_categories", language), [c.to_dict() for c in categories])
