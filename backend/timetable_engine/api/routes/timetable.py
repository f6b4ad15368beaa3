from fastapi import APIRouter

from timetable_engine.schemas.timetable import (
    BuildTimetableRequest,
    ResolveConflictRequest,
    RevertResolutionRequest,
    TimetableBuildResult,
    TimetableState,
    UpcomingSlotsRequest,
    UpcomingSlotsResponse,
)
from timetable_engine.services.resolution import resolve_all_preferred, resolve_conflict, revert_resolution
from timetable_engine.services.schedule_queries import get_current_and_next_class, get_nearby_slots
from timetable_engine.services.timetable_builder import build_timetable

router = APIRouter()


@router.post("/build", response_model=TimetableBuildResult)
def build(request: BuildTimetableRequest) -> TimetableBuildResult:
    return build_timetable(
        request.courses,
        request.manual_courses,
        request.suppression_flags,
        now=request.now,
    )


@router.post("/conflicts/resolve-all", response_model=TimetableState)
def resolve_all(request: ResolveConflictRequest) -> TimetableState:
    return resolve_all_preferred(request.state, request.keep)


@router.post("/conflicts/{conflict_index}/resolve", response_model=TimetableState)
def resolve(conflict_index: int, request: ResolveConflictRequest) -> TimetableState:
    return resolve_conflict(request.state, conflict_index, request.keep)


@router.post("/conflicts/{conflict_index}/revert", response_model=TimetableState)
def revert(conflict_index: int, request: RevertResolutionRequest) -> TimetableState:
    return revert_resolution(request.state, conflict_index)


@router.post("/upcoming", response_model=UpcomingSlotsResponse)
def upcoming(request: UpcomingSlotsRequest) -> UpcomingSlotsResponse:
    current_class, next_class = get_current_and_next_class(request.slots, request.now)
    return UpcomingSlotsResponse(
        current_class=current_class,
        next_class=next_class,
        nearby_slots=get_nearby_slots(request.slots, request.now),
    )
