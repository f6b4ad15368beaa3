from __future__ import annotations

from pydantic import AliasChoices, Field

from timetable_engine.schemas.base import CamelModel


class RawSessionRecord(CamelModel):
    """One attendance row as exported by the LMS, e.g. ``Thu 1 Jan 2026 11AM - 12PM``."""

    date_text: str = Field(
        validation_alias=AliasChoices("date", "dateText", "date_text"),
        serialization_alias="date",
    )
    description: str = ""
    status: str = ""
    points: str | None = None


class CourseAttendance(CamelModel):
    course_id: str = Field(min_length=1, max_length=64)
    course_name: str = Field(default="", max_length=200)
    records: list[RawSessionRecord] = Field(default_factory=list)
