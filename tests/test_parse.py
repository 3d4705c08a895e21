"""
Unit tests for the single page extractors in stinepy.parse.

The HTML fixtures are trimmed copies of real portal pages.
"""

import unittest
from datetime import datetime, timezone

from stinepy.errors import PageStructureError
from stinepy.model import EventType, Language, Module
from stinepy.parse import (
    find_appointments,
    parse_course_info,
    parse_documents,
    parse_exams,
    parse_instructors,
    parse_module_details,
    parse_registration_periods,
)
from stinepy.periods import PeriodKind, RegistrationPeriod


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


DOCUMENTS_HTML = """
<table class="tb">
  <tr>
    <td class="tbhead">Name</td><td class="tbhead">Datum</td><td class="tbhead">Uhrzeit</td>
    <td class="tbhead">Status</td><td class="tbhead"></td>
  </tr>
  <tr>
    <td class="tbdata">OnlineSemesterbescheinigung</td>
    <td class="tbdata">23.08.22</td>
    <td class="tbdata">14:46</td>
    <td class="tbdata"></td>
    <td class="tbdata"><a class="img download" href="/scripts/filetransfer.exe?LINK">Herunterladen</a></td>
  </tr>
  <tr>
    <td class="tbdata">OnlineZahlträger</td>
    <td class="tbdata">01.08.22</td>
    <td class="tbdata">18:24</td>
    <td class="tbdata">&nbsp;</td>
    <td class="tbdata"><a class="img download" href="/scripts/filetransfer.exe?OTHER">Herunterladen</a></td>
  </tr>
</table>
"""

PERIODS_HTML = """
<div id="contentSpacer_IE">
  <h1>Registration periods</h1>
  <table>
    <tr><td>Early registration period</td><td>Mon, 20 June 2022, 9 am to Thu, 30 June 2022 , 1 pm</td></tr>
    <tr><td>General registration period</td><td>Thu, 1 September 2022, 9 am to Thu, 22 September 2022, 1 pm</td></tr>
    <tr><td>Late registration period</td><td>Tue, 4 October 2022, 9 am to Thu, 6 October 2022, 1 pm</td></tr>
    <tr><td>Registration period for first-semester students</td><td>Mon, 10 October 2022, 9 am to Thu, 13 October 2022, 4 pm</td></tr>
    <tr><td>Changes and corrections period</td><td>Mon, 17 October 2022, 9 am to Thu, 27 October 2022, 1 pm</td></tr>
  </table>
</div>
"""

COURSE_INFO_HTML = """
<table class="tb">
  <tr class="tbdata"><td>
    <b>Lehrende:</b> Prof. Dr. Anna Alpha; Dr. Bob Beta<br>
    <b>Veranstaltungsart:</b> Vorlesung<br>
    <b>Anzeige im Stundenplan:</b> SE1<br>
    <b>Semesterwochenstunden:</b> 4<br>
    <b>Credits:</b> 6,0<br>
    <b>Unterrichtssprache:</b> Deutsch<br>
    <b>Min. | Max. Teilnehmerzahl:</b> 10 | 200<br>
    <b>Zielgruppe:</b> Bachelor<br>Informatik
  </td></tr>
</table>
"""

EXAMS_HTML = """
<table class="tb" summary="Modulabschlussprüfungen">
  <tr><td class="tbhead">Name</td></tr>
  <tr class="tbdata">
    <td class="rw-detail-exam">Klausur</td>
    <td class="rw-detail-date">Do, 21. Jul. 2022, 10:00 - 12:00</td>
    <td class="rw-detail-instructors">Prof. Dr. Anna Alpha</td>
    <td class="rw-detail-compulsory">Ja</td>
  </tr>
  <tr class="tbdata">
    <td class="rw-detail-exam">Nachklausur</td>
    <td class="rw-detail-date"></td>
    <td class="rw-detail-instructors"></td>
    <td class="rw-detail-compulsory">Vielleicht</td>
  </tr>
</table>
<table class="tb" summary="Something else">
  <tr class="tbdata">
    <td class="rw-detail-exam">Not an exam</td>
  </tr>
</table>
"""

APPOINTMENTS_HTML = """
<table class="tb">
  <caption>Termine</caption>
  <tr><th>Nr</th><th>Datum</th></tr>
  <tr>
    <td class="rw-course-date">Fr, 8. Apr. 2022</td>
    <td class="rw-course-from">10:15</td>
    <td class="rw-course-to">11:45</td>
    <td class="rw-course-room"><a name="appointmentRooms" href="#">ESA A</a> (Hauptgebäude)</td>
    <td class="rw-course-instruct">Prof. Dr. Anna Alpha</td>
  </tr>
  <tr>
    <td class="rw-course-date">Fr, 15. Apr. 2022</td>
    <td class="rw-course-from">10:15</td>
    <td class="rw-course-to">11:45</td>
    <td class="rw-course-room">Online</td>
    <td class="rw-course-instruct"></td>
  </tr>
</table>
"""


class TestDocuments(unittest.TestCase):
    def test_two_documents(self) -> None:
        docs = parse_documents(DOCUMENTS_HTML)

        self.assertEqual(len(docs), 2)
        self.assertEqual(docs[0].name, "OnlineSemesterbescheinigung")
        self.assertEqual(docs[0].timestamp, utc(2022, 8, 23, 12, 46))
        self.assertIsNone(docs[0].status)
        self.assertEqual(docs[0].download, "https://stine.uni-hamburg.de/scripts/filetransfer.exe?LINK")

        self.assertEqual(docs[1].name, "OnlineZahlträger")
        self.assertEqual(docs[1].timestamp, utc(2022, 8, 1, 16, 24))
        self.assertIsNone(docs[1].status)

    def test_equality_ignores_download_link(self) -> None:
        first = parse_documents(DOCUMENTS_HTML)
        second = parse_documents(DOCUMENTS_HTML.replace("?LINK", "?NEWLINK"))
        self.assertEqual(first, second)
        self.assertEqual(hash(first[0]), hash(second[0]))

    def test_missing_table(self) -> None:
        with self.assertRaises(PageStructureError):
            parse_documents("<html><body><p>nothing</p></body></html>")

    def test_bad_date_propagates(self) -> None:
        with self.assertRaises(ValueError):
            parse_documents(DOCUMENTS_HTML.replace("23.08.22", "yesterday"))

    def test_short_row(self) -> None:
        html = '<table class="tb"><tr><th>Name</th></tr><tr><td>a</td><td>23.08.22</td><td>14:46</td></tr></table>'
        with self.assertRaises(PageStructureError) as ctx:
            parse_documents(html)
        self.assertIn("has 3 columns, expected at least 4", str(ctx.exception))


class TestRegistrationPeriods(unittest.TestCase):
    def test_five_periods_in_order(self) -> None:
        periods = parse_registration_periods(PERIODS_HTML)

        self.assertEqual(
            [p.kind for p in periods],
            [
                PeriodKind.EARLY,
                PeriodKind.GENERAL,
                PeriodKind.LATE,
                PeriodKind.FIRST_SEMESTER,
                PeriodKind.CHANGES_AND_CORRECTIONS,
            ],
        )
        expected = [
            (utc(2022, 6, 20, 7), utc(2022, 6, 30, 11)),
            (utc(2022, 9, 1, 7), utc(2022, 9, 22, 11)),
            (utc(2022, 10, 4, 7), utc(2022, 10, 6, 11)),
            (utc(2022, 10, 10, 7), utc(2022, 10, 13, 14)),
            (utc(2022, 10, 17, 7), utc(2022, 10, 27, 11)),
        ]
        self.assertEqual([(p.period.start, p.period.end) for p in periods], expected)

    def test_unknown_label_is_skipped(self) -> None:
        html = PERIODS_HTML.replace("Late registration period", "Some new period")
        periods = parse_registration_periods(html)
        self.assertEqual(len(periods), 4)
        self.assertNotIn(PeriodKind.LATE, [p.kind for p in periods])

    def test_german_label_and_unknown_label(self) -> None:
        text = "Mon, 20 June 2022, 9 am to Thu, 30 June 2022 , 1 pm"
        period = RegistrationPeriod.parse(" Vorgezogene Phase ", text)
        self.assertEqual(period.kind, PeriodKind.EARLY)
        self.assertEqual(period.period.start, utc(2022, 6, 20, 7))
        self.assertIsNone(RegistrationPeriod.parse("Some new period", text))

    def test_missing_separator_propagates(self) -> None:
        html = PERIODS_HTML.replace("9 am to Thu, 30 June 2022 , 1 pm", "9 am")
        with self.assertRaises(ValueError):
            parse_registration_periods(html)


class TestCourseInfo(unittest.TestCase):
    def test_known_keys(self) -> None:
        info = parse_course_info(COURSE_INFO_HTML)

        self.assertEqual(info.instructors, ["Prof. Dr. Anna Alpha", "Dr. Bob Beta"])
        self.assertIs(info.event_type, EventType.LECTURE)
        self.assertEqual(info.event_type_raw, "Vorlesung")
        self.assertEqual(info.timetable_name, "SE1")
        self.assertEqual(info.hours_per_week, 4)
        self.assertEqual(info.credits, "6,0")
        self.assertEqual(info.language, "Deutsch")
        self.assertEqual(info.min_participants, 10)
        self.assertEqual(info.max_participants, 200)

    def test_unknown_key_goes_to_attributes(self) -> None:
        info = parse_course_info(COURSE_INFO_HTML)
        self.assertEqual(info.attributes, {"Zielgruppe": "Bachelor\nInformatik"})

    def test_unknown_event_type_keeps_raw(self) -> None:
        info = parse_course_info(COURSE_INFO_HTML.replace("Vorlesung", "Exkursion"))
        self.assertIsNone(info.event_type)
        self.assertEqual(info.event_type_raw, "Exkursion")

    def test_participants_without_bar(self) -> None:
        info = parse_course_info(COURSE_INFO_HTML.replace("10 | 200", "200"))
        self.assertIsNone(info.min_participants)
        self.assertIsNone(info.max_participants)


class TestModuleDetails(unittest.TestCase):
    def test_fields_and_attributes(self) -> None:
        module = Module(module_number="InfB-SE1", name="Softwareentwicklung I", owner="Prof. Dr. Anna Alpha")
        parse_module_details(
            [
                "Anzeige im Stundenplan:", "SE1",
                "Dauer:", "1",
                "Anzahl Wahlkurse:", "0",
                "Credits:", "9",
                "Startsemester:", "WiSe 22/23",
                "Modulverantwortliche", ":", "Prof. Dr. Anna Alpha",
                "Kommentar:", "Zeile 1", "Zeile 2",
            ],
            module,
        )

        self.assertEqual(module.timetable_name, "SE1")
        self.assertEqual(module.duration, 1)
        self.assertEqual(module.electives, 0)
        self.assertEqual(module.credits, "9")
        self.assertEqual(module.start_semester, "WiSe 22/23")
        self.assertEqual(
            module.attributes,
            {"modulverantwortliche": "Prof. Dr. Anna Alpha", "kommentar": "Zeile 1\nZeile 2"},
        )

    def test_bad_duration_is_none(self) -> None:
        module = Module(module_number="X", name="X", owner="")
        parse_module_details(["Duration:", "two semesters"], module)
        self.assertIsNone(module.duration)


class TestExams(unittest.TestCase):
    def test_exam_rows(self) -> None:
        exams = parse_exams(EXAMS_HTML, Language.GERMAN)

        self.assertEqual(len(exams), 2)
        first = exams[0]
        self.assertEqual(first.name, "Klausur")
        self.assertEqual(first.start, utc(2022, 7, 21, 8, 0))
        self.assertEqual(first.end, utc(2022, 7, 21, 10, 0))
        self.assertEqual(first.instructors, ["Prof. Dr. Anna Alpha"])
        self.assertIs(first.is_mandatory, True)

    def test_missing_date_and_unknown_mandatory(self) -> None:
        second = parse_exams(EXAMS_HTML, Language.GERMAN)[1]
        self.assertIsNone(second.start)
        self.assertIsNone(second.end)
        self.assertEqual(second.instructors, [])
        self.assertIsNone(second.is_mandatory)
        self.assertEqual(second.is_mandatory_raw, "vielleicht")

    def test_table_is_chosen_by_language(self) -> None:
        self.assertEqual(parse_exams(EXAMS_HTML, Language.ENGLISH), [])


class TestAppointments(unittest.TestCase):
    def test_rows(self) -> None:
        appointments = find_appointments(APPOINTMENTS_HTML)
        assert appointments is not None

        self.assertEqual(len(appointments), 2)
        self.assertEqual(appointments[0].start, utc(2022, 4, 8, 8, 15))
        self.assertEqual(appointments[0].end, utc(2022, 4, 8, 9, 45))
        self.assertEqual(appointments[0].room, "ESA A")
        self.assertEqual(appointments[1].room, "Online")
        self.assertEqual(appointments[1].instructors, [])

    def test_bad_date_recovers_to_none(self) -> None:
        appointments = find_appointments(APPOINTMENTS_HTML.replace("Fr, 15. Apr. 2022", "tba"))
        assert appointments is not None
        self.assertIsNone(appointments[1].start)
        self.assertIsNone(appointments[1].end)

    def test_no_table(self) -> None:
        self.assertIsNone(find_appointments("<table class='tb'><caption>Other</caption></table>"))


class TestInstructors(unittest.TestCase):
    def test_split(self) -> None:
        self.assertEqual(parse_instructors(" Prof. A;  Dr. B "), ["Prof. A", "Dr. B"])
        self.assertEqual(parse_instructors("Prof. A"), ["Prof. A"])
        self.assertEqual(parse_instructors("\xa0"), [])


if __name__ == "__main__":
    unittest.main()
