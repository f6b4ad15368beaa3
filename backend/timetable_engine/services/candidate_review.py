from __future__ import annotations

from collections import defaultdict
import logging

from timetable_engine.core.config import Settings
from timetable_engine.schemas.base import parse_time_to_minutes
from timetable_engine.schemas.inference import InferredRecurringSlotCandidate
from timetable_engine.schemas.timetable import CandidateReview, SlotStats, TimetableSlot
from timetable_engine.services.candidate_builder import auto_slot_id
from timetable_engine.services.conflict_service import times_overlap
from timetable_engine.services.schedule_queries import format_time_display, get_day_name

logger = logging.getLogger(__name__)


def is_outlier_candidate(occurrence_count: int, total_week_span_count: int, *, ratio_threshold: float) -> bool:
    """Seen once, or in too small a share of the term's weeks."""
    total_weeks = max(total_week_span_count, 1)
    return occurrence_count <= 1 or occurrence_count / total_weeks < ratio_threshold


def alternative_review_id(course_id: str, day_of_week: int, slot_key_a: str, slot_key_b: str) -> str:
    first, second = sorted((slot_key_a, slot_key_b))
    return f"{course_id}-{day_of_week}-{first}__{second}"


def outlier_review_id(course_id: str, slot_key: str) -> str:
    return f"outlier-{course_id}-{slot_key}"


def candidate_stats(candidate: InferredRecurringSlotCandidate) -> SlotStats:
    return SlotStats(
        occurrence_count=candidate.occurrence_count,
        day_active_week_count=candidate.day_active_week_count,
        total_week_span_count=candidate.total_week_span_count,
        day_observation_count=candidate.day_observation_count,
        score=candidate.score,
    )


def candidate_timetable_slot(
    course_id: str,
    course_name: str,
    candidate: InferredRecurringSlotCandidate,
) -> TimetableSlot:
    return TimetableSlot(
        id=auto_slot_id(course_id, candidate),
        course_id=course_id,
        course_name=course_name,
        day_of_week=candidate.day_of_week,
        start_time=candidate.start_time,
        end_time=candidate.end_time,
        session_kind=candidate.session_kind,
    )


def _nearest_selected(
    selected: list[InferredRecurringSlotCandidate],
    alternative: InferredRecurringSlotCandidate,
) -> tuple[InferredRecurringSlotCandidate | None, float]:
    nearest = None
    min_diff = float("inf")
    alternative_start = parse_time_to_minutes(alternative.start_time)
    for candidate in selected:
        diff = abs(parse_time_to_minutes(candidate.start_time) - alternative_start)
        if diff < min_diff:
            nearest = candidate
            min_diff = diff
    return nearest, min_diff


def review_course_candidates(
    course_id: str,
    course_name: str,
    candidates: list[InferredRecurringSlotCandidate],
    *,
    settings: Settings,
) -> list[CandidateReview]:
    """Flag the unselected candidates of one course that deserve a second look.

    An unselected candidate starting within the window of its nearest selected
    candidate is an ``alternative`` when the two overlap; one further away is an
    ``outlier`` when it is rare. Reviews never change which slots are selected.
    """
    by_day: dict[int, list[InferredRecurringSlotCandidate]] = defaultdict(list)
    for candidate in candidates:
        by_day[candidate.day_of_week].append(candidate)

    reviews: list[CandidateReview] = []
    for day_of_week in sorted(by_day):
        day_candidates = by_day[day_of_week]
        selected = [candidate for candidate in day_candidates if candidate.selected_by_rule]
        for alternative in day_candidates:
            if alternative.selected_by_rule:
                continue
            preferred, min_diff = _nearest_selected(selected, alternative)

            if preferred is None or min_diff > settings.alternative_start_window_minutes:
                if not is_outlier_candidate(
                    alternative.occurrence_count,
                    alternative.total_week_span_count,
                    ratio_threshold=settings.outlier_occurrence_ratio,
                ):
                    continue
                logger.debug(
                    "Outlier candidate for %s: %s %s (%d occurrences over %d weeks)",
                    course_id,
                    get_day_name(day_of_week),
                    format_time_display(alternative.start_time),
                    alternative.occurrence_count,
                    alternative.total_week_span_count,
                )
                reviews.append(
                    CandidateReview(
                        id=outlier_review_id(course_id, alternative.slot_key),
                        kind="outlier",
                        candidate_slot=candidate_timetable_slot(course_id, course_name, alternative),
                        candidate_stats=candidate_stats(alternative),
                    )
                )
                continue

            # Back-to-back or otherwise disjoint slots can both be real classes
            if not times_overlap(
                parse_time_to_minutes(preferred.start_time),
                parse_time_to_minutes(preferred.end_time),
                parse_time_to_minutes(alternative.start_time),
                parse_time_to_minutes(alternative.end_time),
            ):
                continue

            logger.debug(
                "Alternative candidate for %s: %s %s competes with %s",
                course_id,
                get_day_name(day_of_week),
                format_time_display(alternative.start_time),
                format_time_display(preferred.start_time),
            )
            reviews.append(
                CandidateReview(
                    id=alternative_review_id(course_id, day_of_week, preferred.slot_key, alternative.slot_key),
                    kind="alternative",
                    candidate_slot=candidate_timetable_slot(course_id, course_name, alternative),
                    candidate_stats=candidate_stats(alternative),
                    preferred_slot=candidate_timetable_slot(course_id, course_name, preferred),
                    preferred_stats=candidate_stats(preferred),
                )
            )
    return reviews
