"""Manual/auto conflict resolution over a working timetable.

Every function returns a new ``TimetableState``; the input is never mutated.
Resolutions only live as long as the state passed around by the caller, so a
rebuild from the same sources brings the same conflicts back unresolved.
"""

from __future__ import annotations

import logging

from timetable_engine.core.exceptions import ConflictNotFoundError
from timetable_engine.schemas.timetable import (
    ConflictKeep,
    ResolutionState,
    SlotConflict,
    TimetableSlot,
    TimetableState,
)

logger = logging.getLogger(__name__)

KEEP_TO_STATE = {
    "manual": ResolutionState.resolved_keep_manual,
    "auto": ResolutionState.resolved_keep_auto,
}


def _sort_key(slot: TimetableSlot) -> tuple[int, str]:
    return (slot.day_of_week, slot.start_time)


def _copy_state(state: TimetableState) -> tuple[list[TimetableSlot], list[SlotConflict]]:
    return list(state.slots), [conflict.model_copy() for conflict in state.conflicts]


def _still_removed_elsewhere(conflicts: list[SlotConflict], index: int, slot: TimetableSlot) -> bool:
    for other_index, other in enumerate(conflicts):
        if other_index == index:
            continue
        removed = other.removed_slot
        if removed is not None and removed.identity == slot.identity:
            return True
    return False


def _apply_revert(slots: list[TimetableSlot], conflicts: list[SlotConflict], index: int) -> list[TimetableSlot]:
    conflict = conflicts[index]
    removed = conflict.removed_slot
    conflicts[index] = conflict.model_copy(update={"resolution_state": ResolutionState.unresolved})
    if removed is None or _still_removed_elsewhere(conflicts, index, removed):
        return slots
    if any(slot.identity == removed.identity for slot in slots):
        return slots
    return sorted([*slots, removed], key=_sort_key)


def _apply_resolve(
    slots: list[TimetableSlot],
    conflicts: list[SlotConflict],
    index: int,
    keep: ConflictKeep,
) -> list[TimetableSlot]:
    target_state = KEEP_TO_STATE[keep]
    conflict = conflicts[index]
    if conflict.resolution_state == target_state:
        return slots
    if conflict.is_resolved:
        slots = _apply_revert(slots, conflicts, index)
        conflict = conflicts[index]

    losing = conflict.auto_slot if keep == "manual" else conflict.manual_slot
    conflicts[index] = conflict.model_copy(update={"resolution_state": target_state})
    return [slot for slot in slots if slot.identity != losing.identity]


def resolve_conflict(state: TimetableState, index: int, keep: ConflictKeep) -> TimetableState:
    if keep not in KEEP_TO_STATE:
        raise ValueError(f"keep must be 'manual' or 'auto', got {keep!r}")
    if index < 0 or index >= len(state.conflicts):
        raise ConflictNotFoundError(index, len(state.conflicts))

    slots, conflicts = _copy_state(state)
    slots = _apply_resolve(slots, conflicts, index, keep)
    logger.debug("Resolved conflict %s keeping %s", conflicts[index].id, keep)
    return TimetableState(slots=slots, conflicts=conflicts)


def resolve_all_preferred(state: TimetableState, keep: ConflictKeep) -> TimetableState:
    """Resolve every still-unresolved conflict with the same choice."""
    if keep not in KEEP_TO_STATE:
        raise ValueError(f"keep must be 'manual' or 'auto', got {keep!r}")

    slots, conflicts = _copy_state(state)
    resolved = 0
    for index, conflict in enumerate(conflicts):
        if conflict.is_resolved:
            continue
        slots = _apply_resolve(slots, conflicts, index, keep)
        resolved += 1
    logger.debug("Bulk-resolved %d conflict(s) keeping %s", resolved, keep)
    return TimetableState(slots=slots, conflicts=conflicts)


def revert_resolution(state: TimetableState, index: int) -> TimetableState:
    """Undo a resolution; untracked indices and unresolved conflicts are left as they are."""
    slots, conflicts = _copy_state(state)
    if index < 0 or index >= len(conflicts) or not conflicts[index].is_resolved:
        return TimetableState(slots=slots, conflicts=conflicts)

    slots = _apply_revert(slots, conflicts, index)
    logger.debug("Reverted resolution of conflict %s", conflicts[index].id)
    return TimetableState(slots=slots, conflicts=conflicts)
