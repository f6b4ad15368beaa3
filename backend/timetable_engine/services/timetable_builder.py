from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
import logging

from timetable_engine.core.config import Settings, get_settings
from timetable_engine.core.exceptions import InferenceInputError
from timetable_engine.schemas.attendance import CourseAttendance
from timetable_engine.schemas.inference import ParseReport
from timetable_engine.schemas.timetable import CandidateReview, ManualCourse, TimetableBuildResult, TimetableSlot
from timetable_engine.services.candidate_builder import auto_slot_id
from timetable_engine.services.candidate_review import review_course_candidates
from timetable_engine.services.conflict_service import ConflictService
from timetable_engine.services.course_names import extract_course_name
from timetable_engine.services.inference import global_week_span_count, infer_recurring_slots, normalize_now

logger = logging.getLogger(__name__)


def display_name(course_id: str, course_name: str, manual_courses: Mapping[str, ManualCourse]) -> str:
    manual_course = manual_courses.get(course_id)
    if manual_course is not None and manual_course.alias and manual_course.alias.strip():
        return manual_course.alias.strip()
    return extract_course_name(course_name)


def _index_manual_courses(
    manual_courses: Mapping[str, ManualCourse] | Iterable[ManualCourse] | None,
) -> dict[str, ManualCourse]:
    if manual_courses is None:
        return {}
    if isinstance(manual_courses, Mapping):
        return dict(manual_courses)
    return {course.course_id: course for course in manual_courses}


def _sort_key(slot: TimetableSlot) -> tuple[int, str]:
    return (slot.day_of_week, slot.start_time)


def build_timetable(
    courses: Iterable[CourseAttendance],
    manual_courses: Mapping[str, ManualCourse] | Iterable[ManualCourse] | None = None,
    suppression_flags: Mapping[str, bool] | None = None,
    *,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> TimetableBuildResult:
    """Merge LMS-inferred slots with manual slots into one weekly timetable.

    Manual slots replace auto slots sharing their (day, start, course) key.
    Every other manual/auto pair overlapping on the same day is reported as an
    unresolved conflict; both slots stay in ``slots`` until the user decides.
    Unselected inference candidates worth a second look are listed in
    ``candidate_reviews`` and never enter ``slots``.
    """
    if courses is None:
        raise InferenceInputError("courses must be a list of course attendance entries")
    settings = settings or get_settings()
    now = normalize_now(now)
    courses = list(courses)
    manual_by_course = _index_manual_courses(manual_courses)
    suppression_flags = suppression_flags or {}
    week_span = global_week_span_count(courses, now)

    # step 1: auto slots from LMS attendance
    auto_slot_map: dict[tuple[int, str, str], TimetableSlot] = {}
    parse_reports: dict[str, ParseReport] = {}
    candidate_reviews: list[CandidateReview] = []
    for course in courses:
        if suppression_flags.get(course.course_id, False):
            logger.debug("LMS slots suppressed for course %s", course.course_id)
            continue
        name = display_name(course.course_id, course.course_name, manual_by_course)
        inferred = infer_recurring_slots(
            course.records,
            now=now,
            total_week_span_override=week_span,
            settings=settings,
        )
        parse_reports[course.course_id] = inferred.parse_report
        candidate_reviews.extend(
            review_course_candidates(course.course_id, name, inferred.candidates, settings=settings)
        )
        for selected in inferred.selected_slots:
            slot = TimetableSlot(
                id=auto_slot_id(course.course_id, selected),
                course_id=course.course_id,
                course_name=name,
                day_of_week=selected.day_of_week,
                start_time=selected.start_time,
                end_time=selected.end_time,
                session_kind=selected.session_kind,
                is_manual=False,
                is_custom_course=False,
            )
            auto_slot_map[slot.merge_key] = slot

    # step 2: manual slots, echoed unchanged
    manual_slots: list[TimetableSlot] = []
    for course_id, manual_course in manual_by_course.items():
        name = display_name(course_id, manual_course.course_name, manual_by_course)
        for manual in manual_course.manual_slots:
            manual_slots.append(
                TimetableSlot(
                    id=manual.id,
                    course_id=course_id,
                    course_name=name,
                    day_of_week=manual.day_of_week,
                    start_time=manual.start_time,
                    end_time=manual.end_time,
                    session_kind=manual.session_kind,
                    is_manual=True,
                    is_custom_course=manual_course.is_custom_course,
                )
            )

    # step 3: merge, manual wins on an identical key
    merged: dict[tuple[int, str, str], TimetableSlot] = dict(auto_slot_map)
    for slot in manual_slots:
        merged[slot.merge_key] = slot
    surviving_auto = [slot for key, slot in auto_slot_map.items() if not merged[key].is_manual]
    surviving_manual = [slot for slot in manual_slots if merged[slot.merge_key] is slot]

    # step 4: overlapping manual/auto pairs with different keys
    conflicts = ConflictService(surviving_auto, surviving_manual).detect_conflicts()

    slots = sorted(merged.values(), key=_sort_key)
    logger.info(
        "Built timetable: courses=%d auto_slots=%d manual_slots=%d merged_slots=%d conflicts=%d reviews=%d",
        len(courses),
        len(auto_slot_map),
        len(manual_slots),
        len(slots),
        len(conflicts),
        len(candidate_reviews),
    )
    return TimetableBuildResult(
        slots=slots,
        conflicts=conflicts,
        parse_reports=parse_reports,
        candidate_reviews=candidate_reviews,
        generated_at=now,
    )
