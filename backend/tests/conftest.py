from datetime import date

import pytest
from fastapi.testclient import TestClient #fake http client that calls the FastAPI routes without running a server

from timetable_engine.main import app
from timetable_engine.schemas.attendance import RawSessionRecord


def format_session_text(day: date, start: str, end: str) -> str:
    # Same shape as the LMS export: "Thu 1 Jan 2026 11AM - 12PM"
    return f"{day:%a} {day.day} {day:%b} {day.year} {start} - {end}"


@pytest.fixture()
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def make_record():
    def factory(day: date, start: str = "9AM", end: str = "10AM", description: str = "", status: str = "Present"):
        return RawSessionRecord(
            date_text=format_session_text(day, start, end),
            description=description,
            status=status,
        )

    return factory
