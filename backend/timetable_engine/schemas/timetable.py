from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import Field, computed_field, field_validator, model_validator

from timetable_engine.schemas.attendance import CourseAttendance
from timetable_engine.schemas.base import TIME_PATTERN, CamelModel, SessionKind, parse_time_to_minutes
from timetable_engine.schemas.inference import ParseReport

ConflictKeep = Literal["manual", "auto"]
CandidateReviewKind = Literal["alternative", "outlier"]


class _TimedSlot(CamelModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    session_kind: SessionKind = "regular"

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_time_order(self) -> "_TimedSlot":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("End time must be after start time")
        return self

    @property
    def start_minutes(self) -> int:
        return parse_time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_time_to_minutes(self.end_time)


class ManualSlot(_TimedSlot):
    id: str = Field(min_length=1, max_length=64)


class ManualCourse(CamelModel):
    """A course as held by the manual-slot store, with its user-entered slots."""

    course_id: str = Field(min_length=1, max_length=64)
    course_name: str = Field(default="", max_length=200)
    alias: str | None = Field(default=None, max_length=200)
    is_custom_course: bool = False
    manual_slots: list[ManualSlot] = Field(default_factory=list)


class TimetableSlot(_TimedSlot):
    id: str = Field(min_length=1, max_length=128)
    course_id: str
    course_name: str
    is_manual: bool = False
    is_custom_course: bool = False

    @property
    def merge_key(self) -> tuple[int, str, str]:
        return (self.day_of_week, self.start_time, self.course_id)

    @property
    def identity(self) -> tuple[str, str, bool]:
        return (self.id, self.course_id, self.is_manual)


class ResolutionState(str, Enum):
    unresolved = "unresolved"
    resolved_keep_manual = "resolved_keep_manual"
    resolved_keep_auto = "resolved_keep_auto"


class SlotConflict(CamelModel):
    id: str
    manual_slot: TimetableSlot
    auto_slot: TimetableSlot
    resolution_state: ResolutionState = ResolutionState.unresolved

    @property
    def is_resolved(self) -> bool:
        return self.resolution_state != ResolutionState.unresolved

    @property
    def removed_slot(self) -> TimetableSlot | None:
        if self.resolution_state == ResolutionState.resolved_keep_manual:
            return self.auto_slot
        if self.resolution_state == ResolutionState.resolved_keep_auto:
            return self.manual_slot
        return None


class SlotStats(CamelModel):
    occurrence_count: int
    day_active_week_count: int
    total_week_span_count: int
    day_observation_count: int
    score: float


class CandidateReview(CamelModel):
    """An inferred candidate the user may want to look at, outside the timetable itself.

    ``alternative`` pairs an unselected candidate with the overlapping selected
    slot it competes with; ``outlier`` flags a rare candidate far from every
    selected slot, and has no ``preferred_slot``.
    """

    id: str
    kind: CandidateReviewKind
    candidate_slot: TimetableSlot
    candidate_stats: SlotStats
    preferred_slot: TimetableSlot | None = None
    preferred_stats: SlotStats | None = None


class TimetableState(CamelModel):
    slots: list[TimetableSlot] = Field(default_factory=list)
    conflicts: list[SlotConflict] = Field(default_factory=list)

    @computed_field
    @property
    def unresolved_conflict_count(self) -> int:
        return sum(1 for conflict in self.conflicts if not conflict.is_resolved)

    @computed_field
    @property
    def clean_slots(self) -> list[TimetableSlot]:
        """Slots with every side of an unresolved conflict left out."""
        contested = set()
        for conflict in self.conflicts:
            if conflict.is_resolved:
                continue
            contested.add(conflict.manual_slot.identity)
            contested.add(conflict.auto_slot.identity)
        return [slot for slot in self.slots if slot.identity not in contested]


class TimetableBuildResult(TimetableState):
    parse_reports: dict[str, ParseReport] = Field(default_factory=dict)
    candidate_reviews: list[CandidateReview] = Field(default_factory=list)
    generated_at: datetime


class BuildTimetableRequest(CamelModel):
    courses: list[CourseAttendance] = Field(default_factory=list)
    manual_courses: list[ManualCourse] = Field(default_factory=list)
    suppression_flags: dict[str, bool] = Field(default_factory=dict)
    now: datetime | None = None


class ResolveConflictRequest(CamelModel):
    state: TimetableState
    keep: ConflictKeep


class RevertResolutionRequest(CamelModel):
    state: TimetableState


class UpcomingSlotsRequest(CamelModel):
    slots: list[TimetableSlot] = Field(default_factory=list)
    now: datetime | None = None


class UpcomingSlotsResponse(CamelModel):
    current_class: TimetableSlot | None = None
    next_class: TimetableSlot | None = None
    nearby_slots: list[TimetableSlot] = Field(default_factory=list)
