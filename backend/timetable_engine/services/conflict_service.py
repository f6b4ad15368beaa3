from collections import defaultdict
from typing import List

from timetable_engine.schemas.timetable import SlotConflict, TimetableSlot


def times_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    # Half-open ranges: back-to-back slots do not overlap.
    return start1 < end2 and start2 < end1


def conflict_id(manual_slot: TimetableSlot, auto_slot: TimetableSlot) -> str:
    return f"{manual_slot.id}__{auto_slot.id}"


class ConflictService:
    def __init__(self, auto_slots: List[TimetableSlot], manual_slots: List[TimetableSlot]):
        self.auto_slots = auto_slots
        self.manual_slots = manual_slots

    def detect_conflicts(self) -> List[SlotConflict]:
        conflicts: List[SlotConflict] = []

        # Bucket auto slots by day so each manual slot only scans its own weekday
        auto_by_day = defaultdict(list)
        for slot in self.auto_slots:
            auto_by_day[slot.day_of_week].append(slot)

        for manual in self.manual_slots:
            manual_start, manual_end = manual.start_minutes, manual.end_minutes
            for auto in auto_by_day.get(manual.day_of_week, []):
                # Same (day, start, course) is precedence, not a conflict
                if manual.merge_key == auto.merge_key:
                    continue
                if times_overlap(manual_start, manual_end, auto.start_minutes, auto.end_minutes):
                    conflicts.append(SlotConflict(
                        id=conflict_id(manual, auto),
                        manual_slot=manual,
                        auto_slot=auto,
                    ))

        return conflicts
