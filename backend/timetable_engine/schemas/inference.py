from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from timetable_engine.schemas.attendance import RawSessionRecord
from timetable_engine.schemas.base import CamelModel, SessionKind

ParseFailureReason = Literal[
    "missing_day",
    "invalid_day",
    "missing_date",
    "invalid_month",
    "missing_time_range",
    "invalid_time_range",
    "invalid_date",
]

PARSE_FAILURE_REASONS: tuple[ParseFailureReason, ...] = (
    "missing_day",
    "invalid_day",
    "missing_date",
    "invalid_month",
    "missing_time_range",
    "invalid_time_range",
    "invalid_date",
)


def empty_failure_counts() -> dict[str, int]:
    return {reason: 0 for reason in PARSE_FAILURE_REASONS}


class ParseFailureSample(CamelModel):
    reason: ParseFailureReason
    date_text: str


class ParseReport(CamelModel):
    total_records: int = 0
    parsed_records: int = 0
    skipped_records: int = 0
    failures: dict[str, int] = Field(default_factory=empty_failure_counts)
    samples: list[ParseFailureSample] = Field(default_factory=list)


class InferredRecurringSlot(CamelModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    session_kind: SessionKind
    occurrence_count: int
    week_count: int
    day_active_week_count: int
    total_week_span_count: int
    day_observation_count: int
    score: float


class InferredRecurringSlotCandidate(InferredRecurringSlot):
    slot_key: str
    selected_by_rule: bool = False


class InferenceResult(CamelModel):
    selected_slots: list[InferredRecurringSlot] = Field(default_factory=list)
    candidates: list[InferredRecurringSlotCandidate] = Field(default_factory=list)
    parse_report: ParseReport = Field(default_factory=ParseReport)


class InferenceRequest(CamelModel):
    records: list[RawSessionRecord]
    now: datetime | None = None
    start_tolerance_minutes: int | None = Field(default=None, ge=0, le=720)
    total_week_span_override: int | None = Field(default=None, ge=1)
