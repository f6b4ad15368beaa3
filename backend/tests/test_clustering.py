import random
from datetime import datetime, timedelta

from timetable_engine.services.clustering import SlotCluster, cluster_weekly_slots, observed_slots
from timetable_engine.services.record_parser import ParsedSlot

MONDAY = datetime(2026, 1, 5)


def slot(start_minutes, end_minutes=None, *, week=0, day_of_week=1, kind="regular"):
    end_minutes = end_minutes if end_minutes is not None else start_minutes + 60
    session_day = MONDAY + timedelta(weeks=week, days=(day_of_week - 1) % 7)
    iso_year, iso_week, _ = session_day.isocalendar()
    return ParsedSlot(
        day_of_week=day_of_week,
        start_minutes=start_minutes,
        end_minutes=end_minutes,
        session_kind=kind,
        week_key=f"{iso_year}-{iso_week:02d}",
        session_end=session_day + timedelta(minutes=end_minutes),
    )


def test_observed_slots_drops_future_sessions():
    past = slot(540, week=0)
    future = slot(540, week=8)

    assert observed_slots([past, future], now=MONDAY + timedelta(weeks=2)) == [past]


def test_observed_slots_falls_back_to_everything_when_nothing_completed():
    future = [slot(540, week=4), slot(600, week=5)]

    assert observed_slots(future, now=MONDAY) == future
    assert observed_slots([], now=MONDAY) == []


def test_tolerance_is_inclusive():
    within = cluster_weekly_slots([slot(540, week=0), slot(560, week=1)], start_tolerance_minutes=20)
    outside = cluster_weekly_slots([slot(540, week=0), slot(561, week=1)], start_tolerance_minutes=20)

    assert len(within.clusters_by_day[1]) == 1
    assert len(outside.clusters_by_day[1]) == 2


def test_clusters_are_partitioned_by_weekday():
    slots = [slot(540, week=0, day_of_week=1), slot(540, week=0, day_of_week=3), slot(540, week=1, day_of_week=1)]

    weekly = cluster_weekly_slots(slots, start_tolerance_minutes=20)

    assert weekly.days() == [1, 3]
    assert weekly.clusters_by_day[1][0].count == 2
    assert weekly.clusters_by_day[3][0].count == 1
    assert weekly.day_active_week_count(1) == 2
    assert weekly.day_observation_count(1) == 2
    assert weekly.day_active_week_count(5) == 0


def test_cluster_accumulates_samples_weeks_and_votes():
    slots = [
        slot(540, 600, week=0),
        slot(545, 600, week=1, kind="tutorial"),
        slot(540, 610, week=1),
    ]

    cluster = cluster_weekly_slots(slots, start_tolerance_minutes=20).clusters_by_day[1][0]

    assert cluster.count == 3
    assert sorted(cluster.start_samples) == [540, 540, 545]
    assert sorted(cluster.end_samples) == [600, 600, 610]
    assert cluster.week_keys == {"2026-02", "2026-03"}
    assert cluster.session_kind_votes == {"regular": 2, "tutorial": 1}
    assert cluster.last_seen_at == MONDAY + timedelta(weeks=1, minutes=610)
    assert cluster.mean_start == (540 + 540 + 545) / 3


def test_cluster_boundaries_do_not_depend_on_input_order():
    slots = [slot(start, week=week) for week, start in enumerate([540, 555, 570, 600, 610, 660, 700, 545, 565])]
    baseline = cluster_weekly_slots(slots, start_tolerance_minutes=20)

    shuffled = list(slots)
    random.Random(7).shuffle(shuffled)
    reordered = cluster_weekly_slots(shuffled, start_tolerance_minutes=20)

    def shape(weekly):
        return sorted((sorted(c.start_samples), c.count) for c in weekly.clusters_by_day[1])

    assert shape(baseline) == shape(reordered)


def test_looser_tolerance_never_produces_more_clusters():
    slots = [slot(start, week=week) for week, start in enumerate([540, 555, 570, 600, 610, 660, 700])]

    counts = [
        len(cluster_weekly_slots(slots, start_tolerance_minutes=tolerance).clusters_by_day[1])
        for tolerance in (0, 5, 10, 15, 20, 30, 45, 60, 120)
    ]

    assert counts == sorted(counts, reverse=True)
    assert counts[0] == 7
    assert counts[-1] == 1


def test_empty_cluster_mean_is_zero():
    assert SlotCluster(day_of_week=2).mean_start == 0.0
