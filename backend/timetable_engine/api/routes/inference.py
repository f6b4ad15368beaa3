from fastapi import APIRouter

from timetable_engine.schemas.inference import InferenceRequest, InferenceResult
from timetable_engine.services.inference import infer_recurring_slots

router = APIRouter()


@router.post("/slots", response_model=InferenceResult)
def infer_slots(request: InferenceRequest) -> InferenceResult:
    return infer_recurring_slots(
        request.records,
        now=request.now,
        start_tolerance_minutes=request.start_tolerance_minutes,
        total_week_span_override=request.total_week_span_override,
    )
