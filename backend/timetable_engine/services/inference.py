from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta
import logging

from timetable_engine.core.config import Settings, get_settings
from timetable_engine.core.exceptions import InferenceInputError
from timetable_engine.schemas.attendance import CourseAttendance, RawSessionRecord
from timetable_engine.schemas.inference import (
    InferenceResult,
    InferredRecurringSlot,
    InferredRecurringSlotCandidate,
)
from timetable_engine.services.candidate_builder import build_candidate_slot
from timetable_engine.services.clustering import cluster_weekly_slots, observed_slots
from timetable_engine.services.record_parser import parse_record_date, parse_session_records
from timetable_engine.services.slot_selection import score_day_clusters, select_day_clusters

logger = logging.getLogger(__name__)


def normalize_now(now: datetime | None) -> datetime:
    """Naive local time, the frame session timestamps are parsed in."""
    if now is None:
        return datetime.now()
    if now.tzinfo is not None:
        return now.astimezone().replace(tzinfo=None)
    return now


def iso_week_start(value: date) -> date:
    return value - timedelta(days=value.weekday())


def inclusive_iso_week_span(start: datetime, end: datetime) -> int:
    if end <= start:
        return 1
    first = iso_week_start(start.date())
    last = iso_week_start(end.date())
    if last <= first:
        return 1
    return (last - first).days // 7 + 1


def global_week_span_count(courses: Iterable[CourseAttendance], now: datetime | None = None) -> int | None:
    """Week span from the oldest dated record of any course up to ``now``."""
    now = normalize_now(now)
    oldest: date | None = None
    for course in courses:
        for record in course.records:
            record_date = parse_record_date(record.date_text)
            if record_date is None:
                continue
            if oldest is None or record_date < oldest:
                oldest = record_date
    if oldest is None:
        return None
    return inclusive_iso_week_span(datetime.combine(oldest, datetime.min.time()), now)


def _slot_order(slot: InferredRecurringSlot) -> tuple[int, str]:
    return (slot.day_of_week, slot.start_time)


def infer_recurring_slots(
    records: Sequence[RawSessionRecord],
    *,
    now: datetime | None = None,
    start_tolerance_minutes: int | None = None,
    total_week_span_override: int | None = None,
    settings: Settings | None = None,
) -> InferenceResult:
    """Reconstruct a course's recurring weekly slots from its attendance rows.

    ``candidates`` holds every cluster that was considered, each tagged with
    ``selected_by_rule``; ``selected_slots`` holds only the kept ones. Both are
    ordered by weekday then start time.
    """
    if records is None:
        raise InferenceInputError("records must be a list of session records")
    settings = settings or get_settings()
    tolerance = settings.start_tolerance_minutes if start_tolerance_minutes is None else start_tolerance_minutes
    if tolerance < 0:
        raise InferenceInputError(
            "start_tolerance_minutes must be zero or greater",
            details={"start_tolerance_minutes": tolerance},
        )
    now = normalize_now(now)

    records = list(records)
    if not records:
        return InferenceResult()

    parsed, parse_report = parse_session_records(records, settings=settings)
    if not parsed:
        logger.debug(
            "No parseable timetable slots found: total_rows=%d failures=%s",
            parse_report.total_records,
            parse_report.failures,
        )
        return InferenceResult(parse_report=parse_report)

    observed = observed_slots(parsed, now)
    oldest_observed = min(slot.session_end for slot in observed)
    latest_observed = max(slot.session_end for slot in observed)
    if total_week_span_override and total_week_span_override > 0:
        total_week_span_count = total_week_span_override
    else:
        total_week_span_count = inclusive_iso_week_span(oldest_observed, max(now, latest_observed))

    weekly = cluster_weekly_slots(observed, start_tolerance_minutes=tolerance)

    selected: list[InferredRecurringSlot] = []
    candidates: list[InferredRecurringSlotCandidate] = []
    for day_of_week in weekly.days():
        day_active_week_count = weekly.day_active_week_count(day_of_week)
        day_observation_count = weekly.day_observation_count(day_of_week)
        scored = score_day_clusters(
            weekly.clusters_by_day[day_of_week],
            day_active_week_count=day_active_week_count,
            settings=settings,
        )
        select_day_clusters(
            scored,
            day_of_week=day_of_week,
            day_active_week_count=day_active_week_count,
            settings=settings,
        )

        for item in scored:
            candidate = build_candidate_slot(
                item.cluster,
                score=item.score,
                day_active_week_count=day_active_week_count,
                total_week_span_count=total_week_span_count,
                day_observation_count=day_observation_count,
                default_duration_minutes=settings.default_slot_duration_minutes,
            )
            candidate.selected_by_rule = item.selected
            candidates.append(candidate)
            if item.selected:
                selected.append(
                    InferredRecurringSlot.model_validate(
                        candidate.model_dump(exclude={"slot_key", "selected_by_rule"})
                    )
                )

    selected.sort(key=_slot_order)
    candidates.sort(key=_slot_order)
    return InferenceResult(selected_slots=selected, candidates=candidates, parse_report=parse_report)
