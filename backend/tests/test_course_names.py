import pytest

from timetable_engine.services.course_names import extract_course_name


@pytest.mark.parametrize(
    "raw, name",
    [
        ("CS101 - Data Structures", "Data Structures"),
        ("CS101: Data Structures", "Data Structures"),
        ("ICS221  Computer Networks", "Computer Networks"),
        ("CS101 Data Structures", "Data Structures"),
        ("  MA102-Calculus  ", "Calculus"),
        ("Seminar", "Seminar"),
        ("", ""),
    ],
)
def test_course_code_prefix_is_split_off(raw, name):
    assert extract_course_name(raw) == name
