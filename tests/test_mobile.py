import unittest
from unittest import mock

from stinepy.errors import PageStructureError
from stinepy.mobile import (
    ActorType,
    UnknownActorType,
    fetch_actor_type,
    flatten_text_elements,
    parse_actor_type,
    parse_student_events,
    parse_student_exams,
    parse_xml,
)
from stinepy.model import EventType
from stinepy.semester import Semester

ACTOR_XML = """<?xml version="1.0" encoding="UTF-8" standalone="no" ?><mgns1:Message xmlns:mgns1="http://datenlotsen.de">
  <mgns1:person>
    <mgns1:actortype>{code}</mgns1:actortype>
  </mgns1:person>
</mgns1:Message>"""

EVENTS_XML = """<?xml version="1.0" encoding="UTF-8" standalone="no" ?>
<mgns1:Message xmlns:mgns1="http://datenlotsen.de">
  <mgns1:studentEvent>
    <mgns1:courseID>379923411595682</mgns1:courseID>
    <mgns1:courseDataID>379923411517683</mgns1:courseDataID>
    <mgns1:courseNumber>64-030</mgns1:courseNumber>
    <mgns1:courseName>Vorlesung Informatik im Kontext</mgns1:courseName>
    <mgns1:eventType>Lehrveranstaltung</mgns1:eventType>
    <mgns1:eventCategory>Vorlesung</mgns1:eventCategory>
    <mgns1:semesterID>99999988079072</mgns1:semesterID>
    <mgns1:semesterName>WiSe 21/22</mgns1:semesterName>
    <mgns1:creditPoints>0.0000</mgns1:creditPoints>
    <mgns1:hoursPerWeek>4</mgns1:hoursPerWeek>
    <mgns1:smallGroups>0</mgns1:smallGroups>
    <mgns1:courseLanguage>Deutsch</mgns1:courseLanguage>
    <mgns1:facultyName>Informatik (6401)</mgns1:facultyName>
    <mgns1:maxStudents>500</mgns1:maxStudents>
    <mgns1:instructorsString>Prof. Dr. Anna Alpha; Prof. Dr. Bob Beta</mgns1:instructorsString>
    <mgns1:moduleName>Informatik im Kontext</mgns1:moduleName>
    <mgns1:moduleNumber>InfB-IKON</mgns1:moduleNumber>
    <mgns1:listener>0</mgns1:listener>
    <mgns1:acceptedStatus>1</mgns1:acceptedStatus>
    <mgns1:materialPresent>0</mgns1:materialPresent>
    <mgns1:infoPresent>1</mgns1:infoPresent>
  </mgns1:studentEvent>
  <mgns1:studentEvent>
    <mgns1:courseID>384875198636845</mgns1:courseID>
    <mgns1:courseNumber>64-074</mgns1:courseNumber>
    <mgns1:eventCategory>Exkursion</mgns1:eventCategory>
    <mgns1:semesterName>SoSe 23</mgns1:semesterName>
    <mgns1:maxStudents>many</mgns1:maxStudents>
    <mgns1:listener>maybe</mgns1:listener>
  </mgns1:studentEvent>
</mgns1:Message>"""

EXAMS_XML = """<?xml version="1.0" encoding="UTF-8" standalone="no" ?><mgns1:Message xmlns:mgns1="http://datenlotsen.de">
  <mgns1:studentExam>
    <mgns1:examID>108751472457</mgns1:examID>
    <mgns1:examName>Online-Tests</mgns1:examName>
    <mgns1:context>24-300.20 Ringvorlesung zur Klimakrise</mgns1:context>
    <mgns1:contextType>course</mgns1:contextType>
    <mgns1:subject/>
    <mgns1:beginDate/>
    <mgns1:dueDate>15.02.2024</mgns1:dueDate>
    <mgns1:timeFrom>12:30</mgns1:timeFrom>
    <mgns1:timeTo>13:30</mgns1:timeTo>
    <mgns1:grade>2,3</mgns1:grade>
    <mgns1:gradeDescription>gut</mgns1:gradeDescription>
    <mgns1:instructorString>Prof. Dr. Anna Alpha</mgns1:instructorString>
    <mgns1:status>noch nicht veröffentlicht</mgns1:status>
    <mgns1:statusSystem>0</mgns1:statusSystem>
    <mgns1:semesterID>99999999254942</mgns1:semesterID>
    <mgns1:semesterName>SoSe 24</mgns1:semesterName>
  </mgns1:studentExam>
</mgns1:Message>"""


class TestActorType(unittest.TestCase):
    def test_student(self) -> None:
        self.assertIs(parse_actor_type(ACTOR_XML.format(code="STD")), ActorType.STUDENT)

    def test_unknown_code_is_not_an_error(self) -> None:
        self.assertEqual(parse_actor_type(ACTOR_XML.format(code="XYZ")), UnknownActorType("XYZ"))

    def test_missing_element(self) -> None:
        with self.assertRaises(PageStructureError):
            parse_actor_type('<mgns1:Message xmlns:mgns1="http://datenlotsen.de"/>')

    def test_invalid_xml(self) -> None:
        with self.assertRaises(PageStructureError):
            parse_actor_type("<html><body>Timeout")

    def test_fetch_uses_short_codes(self) -> None:
        session = mock.Mock()
        session.invoke_mobile.return_value = ACTOR_XML.format(code="DOZ")
        cipher = object()

        self.assertIs(fetch_actor_type(session, cipher), ActorType.INSTRUCTOR)
        session.invoke_mobile.assert_called_once_with("GETPERSONTYPE", ["000000", "1"], cipher)


class TestFlatten(unittest.TestCase):
    def test_first_occurrence_wins_and_empty_is_missing(self) -> None:
        root = parse_xml(
            '<m:a xmlns:m="http://datenlotsen.de">'
            "<m:instructor>First</m:instructor><m:instructor>Second</m:instructor>"
            "<m:empty/><m:blank>  </m:blank>"
            "</m:a>"
        )
        self.assertEqual(flatten_text_elements(root), {"instructor": "First"})


class TestStudentEvents(unittest.TestCase):
    def test_fields(self) -> None:
        events = parse_student_events(EVENTS_XML)
        self.assertEqual(len(events), 2)

        event = events[0]
        self.assertEqual(event.course_id, "379923411595682")
        self.assertEqual(event.course_number, "64-030")
        self.assertIs(event.event_category, EventType.LECTURE)
        self.assertEqual(event.semester, Semester.winter(21, 22))
        self.assertEqual(event.credits, 0.0)
        self.assertEqual(event.hours_per_week, 4)
        self.assertEqual(event.max_students, 500)
        self.assertEqual(event.module_number, "InfB-IKON")
        self.assertIs(event.is_listener, False)
        self.assertIs(event.accepted_status, True)
        self.assertIs(event.info_present, True)

    def test_missing_and_unexpected_values_are_none(self) -> None:
        event = parse_student_events(EVENTS_XML)[1]
        self.assertIsNone(event.course_data_id)
        self.assertIsNone(event.event_category)
        self.assertEqual(event.semester, Semester.summer(23))
        self.assertIsNone(event.max_students)
        self.assertIsNone(event.is_listener)


class TestStudentExams(unittest.TestCase):
    def test_fields(self) -> None:
        exams = parse_student_exams(EXAMS_XML)
        self.assertEqual(len(exams), 1)

        exam = exams[0]
        self.assertEqual(exam.exam_id, "108751472457")
        self.assertEqual(exam.name, "Online-Tests")
        self.assertIsNone(exam.subject)
        self.assertIsNone(exam.begin_date)
        self.assertEqual(exam.due_date, "15.02.2024")
        self.assertEqual(exam.grade, "2,3")
        self.assertEqual(exam.instructors, "Prof. Dr. Anna Alpha")
        self.assertEqual(exam.semester, Semester.summer(24))


if __name__ == "__main__":
    unittest.main()
