from __future__ import annotations

import math

from timetable_engine.schemas.base import SessionKind, minutes_to_time
from timetable_engine.schemas.inference import InferredRecurringSlot, InferredRecurringSlotCandidate
from timetable_engine.services.clustering import SlotCluster

LAST_MINUTE_OF_DAY = 23 * 60 + 59

# Ties go to the kind least likely to be voted for by accident.
SESSION_KIND_PRIORITY: dict[SessionKind, int] = {
    "regular": 1,
    "tutorial": 2,
    "lab": 3,
}


def median_minutes(values: list[int]) -> int:
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return math.floor((ordered[mid - 1] + ordered[mid]) / 2 + 0.5)
    return ordered[mid]


def majority_session_kind(votes: dict[SessionKind, int]) -> SessionKind:
    if not votes:
        return "regular"
    return max(votes, key=lambda kind: (votes[kind], SESSION_KIND_PRIORITY[kind]))


def slot_key(day_of_week: int, start_time: str, end_time: str) -> str:
    return f"{day_of_week}-{start_time}-{end_time}"


def auto_slot_id(course_id: str, slot: InferredRecurringSlot) -> str:
    return f"auto-{course_id}-{slot.day_of_week}-{slot.start_time.replace(':', '')}"


def build_candidate_slot(
    cluster: SlotCluster,
    *,
    score: float,
    day_active_week_count: int,
    total_week_span_count: int,
    day_observation_count: int,
    default_duration_minutes: int = 55,
) -> InferredRecurringSlotCandidate:
    start_minutes = median_minutes(cluster.start_samples)
    end_minutes = median_minutes(cluster.end_samples)
    if end_minutes <= start_minutes:
        end_minutes = min(LAST_MINUTE_OF_DAY, start_minutes + default_duration_minutes)

    start_time = minutes_to_time(start_minutes)
    end_time = minutes_to_time(end_minutes)
    return InferredRecurringSlotCandidate(
        slot_key=slot_key(cluster.day_of_week, start_time, end_time),
        day_of_week=cluster.day_of_week,
        start_time=start_time,
        end_time=end_time,
        session_kind=majority_session_kind(cluster.session_kind_votes),
        occurrence_count=cluster.count,
        week_count=len(cluster.week_keys),
        day_active_week_count=day_active_week_count,
        total_week_span_count=total_week_span_count,
        day_observation_count=day_observation_count,
        score=score,
    )
