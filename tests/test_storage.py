"""
Unit tests for the on-disk module cache.

Storage contract:
- Missing file -> empty map (categories: None)
- One file per collection and language
- Broken file or foreign schema -> CacheError
- Group appointments are never persisted, they come back Unloaded
"""

import json
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from stinepy.errors import CacheError
from stinepy.model import (
    Appointment,
    CourseInfo,
    EventType,
    Group,
    Language,
    Loaded,
    Module,
    ModuleCategory,
    SubModule,
    Unloaded,
)
from stinepy.storage import CacheStore

LINK = "/scripts/mgrqispi.dll?APPNAME=CampusNet&PRGNAME=COURSEDETAILS&ARGUMENTS=-N1,-N000311,-N0,-N381865010228083"
GROUP_LINK = LINK + ",-N381865010299099"


def loaded_submodule() -> SubModule:
    appointment = Appointment(
        start=datetime(2022, 4, 8, 8, 15, tzinfo=timezone.utc),
        end=datetime(2022, 4, 8, 9, 45, tzinfo=timezone.utc),
        room="ESA A",
        instructors=["Prof. Dr. Anna Alpha"],
    )
    group = Group(
        name="Übungsgruppe 1",
        instructors=["Dr. Bob Beta"],
        schedule="Mo 10:00-12:00",
        appointments_facet=Loaded(GROUP_LINK, [appointment]),
    )
    return SubModule(
        id="381865010228083",
        course_number="64-040",
        name="64-040 Softwareentwicklung I",
        info_facet=Loaded(LINK, CourseInfo(event_type=EventType.LECTURE, event_type_raw="Vorlesung")),
        appointments_facet=Loaded(LINK, [appointment]),
        groups_facet=Loaded(LINK, [group]),
    )


class TestCacheStore(unittest.TestCase):
    def test_missing_files(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = CacheStore(Path(d) / "cache")
            self.assertEqual(store.load_modules(Language.GERMAN), {})
            self.assertEqual(store.load_submodules(Language.GERMAN), {})
            self.assertIsNone(store.load_module_categories(Language.GERMAN))

    def test_submodule_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = CacheStore(d)
            submodule = loaded_submodule()
            store.save_submodules({submodule.id: submodule}, Language.GERMAN)

            loaded = store.load_submodules(Language.GERMAN)[submodule.id]

            self.assertEqual(loaded.info_facet, submodule.info_facet)
            self.assertEqual(loaded.appointments_facet, submodule.appointments_facet)
            self.assertTrue(loaded.is_loaded)

    def test_group_appointments_come_back_unloaded(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = CacheStore(d)
            submodule = loaded_submodule()
            store.save_submodules({submodule.id: submodule}, Language.GERMAN)

            group = store.load_submodules(Language.GERMAN)[submodule.id].groups_facet.value[0]
            self.assertEqual(group.appointments_facet, Unloaded(GROUP_LINK))
            self.assertEqual(group.instructors, ["Dr. Bob Beta"])

    def test_languages_are_separate_files(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = CacheStore(d)
            module = Module(module_number="InfB-SE1", name="Softwareentwicklung I", owner="Prof. Dr. Anna Alpha")
            store.save_modules({module.module_number: module}, Language.ENGLISH)

            self.assertTrue((Path(d) / "modules_en.json").exists())
            self.assertEqual(store.load_modules(Language.GERMAN), {})
            self.assertEqual(store.load_modules(Language.ENGLISH)["InfB-SE1"].name, "Softwareentwicklung I")

    def test_categories_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = CacheStore(d)
            module = Module(module_number="InfB-SE1", name="Softwareentwicklung I", owner="")
            module.sub_modules.append(loaded_submodule())
            store.save_module_categories([ModuleCategory(name="Pflichtmodule", modules=[module])], Language.GERMAN)

            categories = store.load_module_categories(Language.GERMAN)

            self.assertEqual([c.name for c in categories], ["Pflichtmodule"])
            self.assertEqual(categories[0].modules[0].sub_modules[0].course_number, "64-040")

    def test_broken_file_raises(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = CacheStore(d)
            store.path_for("modules", Language.GERMAN).write_text("{not json", encoding="utf-8")
            with self.assertRaises(CacheError):
                store.load_modules(Language.GERMAN)

    def test_foreign_schema_raises(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = CacheStore(d)
            path = store.path_for("submodules", Language.GERMAN)
            path.write_text(json.dumps({"1": {"name": "no id"}}), encoding="utf-8")
            with self.assertRaises(CacheError):
                store.load_submodules(Language.GERMAN)


if __name__ == "__main__":
    unittest.main()
