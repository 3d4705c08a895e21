"""
Unit tests for the high level Stine API: cache lookups, not-found handling and
the language switch.
"""

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from stinepy.client import Session
from stinepy.errors import NotFoundError
from stinepy.model import Language, Module, ModuleCategory
from stinepy.stine import Stine
from stinepy.storage import CacheStore


class TestStine(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.cache = CacheStore(Path(self._tmp.name))
        session = Session("777", "cookie", language=Language.GERMAN, cache=self.cache, http=mock.Mock())
        session.invoke = mock.Mock(return_value="")
        self.stine = Stine(session)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_no_cached_catalogue(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            self.stine.get_registration_modules()
        self.assertIn("force reloading", str(ctx.exception))
        self.stine.session.invoke.assert_not_called()

    def test_cached_catalogue_without_requests(self) -> None:
        module = Module(module_number="InfB-SE1", name="Softwareentwicklung I", owner="")
        self.cache.save_module_categories([ModuleCategory(name="Pflichtmodule", modules=[module])], Language.GERMAN)

        categories = self.stine.get_registration_modules()

        self.assertEqual(categories[0].modules[0].module_number, "InfB-SE1")
        self.stine.session.invoke.assert_not_called()

    def test_module_lookup_uses_disk_cache(self) -> None:
        module = Module(module_number="InfB-SE1", name="Softwareentwicklung I", owner="")
        self.cache.save_modules({"InfB-SE1": module}, Language.GERMAN)

        self.assertEqual(self.stine.get_module_by_number("InfB-SE1").name, "Softwareentwicklung I")

    def test_unknown_submodule(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            self.stine.get_submodule_by_id("1")
        self.assertIn("consider force reloading", str(ctx.exception))

    def test_same_language_is_a_noop(self) -> None:
        self.stine.set_language(Language.GERMAN)
        self.stine.session.invoke.assert_not_called()


if __name__ == "__main__":
    unittest.main()
