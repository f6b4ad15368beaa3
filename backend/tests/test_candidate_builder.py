import pytest

from timetable_engine.services.candidate_builder import (
    build_candidate_slot,
    majority_session_kind,
    median_minutes,
    slot_key,
)
from timetable_engine.services.clustering import SlotCluster


def cluster(starts, ends, *, kinds=None, weeks=None, day_of_week=3):
    item = SlotCluster(day_of_week=day_of_week)
    item.count = len(starts)
    item.start_sum = sum(starts)
    item.start_samples = list(starts)
    item.end_samples = list(ends)
    item.week_keys = set(weeks or {f"2026-{index + 1:02d}" for index in range(len(starts))})
    for kind in kinds or ["regular"] * len(starts):
        item.session_kind_votes[kind] += 1
    return item


def build(item, **overrides):
    options = {
        "score": 0.9,
        "day_active_week_count": 4,
        "total_week_span_count": 6,
        "day_observation_count": 5,
    }
    options.update(overrides)
    return build_candidate_slot(item, **options)


@pytest.mark.parametrize(
    "values, expected",
    [
        ([600], 600),
        ([660, 540, 600], 600),
        ([540, 545], 543),
        ([540, 541], 541),
        ([540, 542, 600, 601], 571),
    ],
)
def test_median_rounds_half_up_for_even_counts(values, expected):
    assert median_minutes(values) == expected


def test_majority_kind_breaks_ties_toward_lab():
    assert majority_session_kind({"regular": 2, "lab": 1}) == "regular"
    assert majority_session_kind({"regular": 1, "tutorial": 1}) == "tutorial"
    assert majority_session_kind({"regular": 1, "tutorial": 1, "lab": 1}) == "lab"
    assert majority_session_kind({}) == "regular"


def test_candidate_uses_median_times_and_cluster_stats():
    item = cluster([600, 610, 600, 605], [660, 660, 670, 660], weeks={"2026-02", "2026-03", "2026-04"})

    candidate = build(item)

    assert candidate.start_time == "10:03"
    assert candidate.end_time == "11:00"
    assert candidate.day_of_week == 3
    assert candidate.occurrence_count == 4
    assert candidate.week_count == 3
    assert candidate.day_active_week_count == 4
    assert candidate.total_week_span_count == 6
    assert candidate.day_observation_count == 5
    assert candidate.score == pytest.approx(0.9)
    assert candidate.slot_key == "3-10:03-11:00"
    assert candidate.selected_by_rule is False


def test_degenerate_end_gets_default_duration():
    # Mixed samples whose medians cross over
    item = cluster([600, 700, 720], [650, 690, 800])

    candidate = build(item)

    assert candidate.start_time == "11:40"
    assert candidate.end_time == "12:35"


def test_default_duration_is_capped_at_end_of_day():
    item = cluster([1420, 1430, 1435], [1400, 1410, 1439])

    candidate = build(item, default_duration_minutes=55)

    assert candidate.start_time == "23:50"
    assert candidate.end_time == "23:59"


def test_candidate_end_is_always_after_start():
    for start in range(0, 24 * 60, 97):
        candidate = build(cluster([start], [max(0, start - 5)]))
        assert candidate.end_time > candidate.start_time


def test_slot_key_format():
    assert slot_key(1, "09:00", "10:00") == "1-09:00-10:00"
