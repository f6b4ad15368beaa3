from datetime import datetime

import pytest

from timetable_engine.core.config import Settings
from timetable_engine.services.clustering import SlotCluster
from timetable_engine.services.slot_selection import score_day_clusters, select_day_clusters


def cluster(count, weeks, *, start=540, last_seen=None, day_of_week=2):
    item = SlotCluster(day_of_week=day_of_week)
    item.count = count
    item.start_sum = start * count
    item.start_samples = [start] * count
    item.end_samples = [start + 60] * count
    item.week_keys = {f"2026-{week:02d}" for week in weeks}
    item.session_kind_votes["regular"] = count
    item.last_seen_at = last_seen
    return item


def scored_and_selected(clusters, active_weeks, settings=None):
    settings = settings or Settings()
    scored = score_day_clusters(clusters, day_active_week_count=active_weeks, settings=settings)
    return select_day_clusters(scored, day_of_week=2, day_active_week_count=active_weeks, settings=settings)


def test_score_blends_week_coverage_and_occurrence_share():
    main = cluster(4, [1, 2, 3, 4])
    stray = cluster(1, [2], start=900)

    scored = score_day_clusters([stray, main], day_active_week_count=4, settings=Settings())

    assert scored[0].cluster is main
    assert scored[0].score == pytest.approx(0.95)
    assert scored[0].week_coverage == pytest.approx(1.0)
    assert scored[0].occurrence_ratio == pytest.approx(0.8)
    assert scored[1].score == pytest.approx(0.2375)


def test_scores_stay_within_unit_interval():
    clusters = [cluster(3, [1, 2, 3]), cluster(2, [1, 3], start=700), cluster(1, [2], start=900)]

    for item in score_day_clusters(clusters, day_active_week_count=3, settings=Settings()):
        assert 0.0 <= item.score <= 1.0
        assert 0.0 <= item.week_coverage <= 1.0


def test_ties_break_on_count_then_recency():
    older = cluster(2, [1, 2], start=540, last_seen=datetime(2026, 1, 13, 10))
    newer = cluster(2, [1, 2], start=840, last_seen=datetime(2026, 1, 13, 15))
    never_seen = cluster(2, [1, 2], start=1000)

    scored = score_day_clusters([older, never_seen, newer], day_active_week_count=2, settings=Settings())

    assert [item.cluster for item in scored] == [newer, older, never_seen]


def test_sparse_history_keeps_every_cluster():
    clusters = [cluster(1, [1], start=540), cluster(1, [2], start=840)]

    result = scored_and_selected(clusters, active_weeks=2)

    assert all(item.selected for item in result)


def test_strict_filter_drops_one_off_sessions():
    main = cluster(6, [1, 2, 3, 4, 5, 6], start=600)
    stray = cluster(1, [3], start=900)

    result = scored_and_selected([main, stray], active_weeks=6)

    selected = [item.cluster for item in result if item.selected]
    assert selected == [main]


def test_strict_filter_rejects_clusters_far_below_the_best():
    main = cluster(8, range(1, 9), start=600)
    # Recurs on half the weeks but scores well under best - 0.2
    partial = cluster(4, range(1, 5), start=780)

    result = scored_and_selected([main, partial], active_weeks=8)

    assert [item.selected for item in result] == [True, False]
    assert result[1].score < result[0].score - 0.2


def test_fallback_keeps_only_the_best_cluster():
    clusters = [
        cluster(1, [1], start=540, last_seen=datetime(2026, 1, 1, 10)),
        cluster(1, [2], start=720, last_seen=datetime(2026, 1, 8, 13)),
        cluster(1, [3], start=900, last_seen=datetime(2026, 1, 15, 16)),
    ]

    result = scored_and_selected(clusters, active_weeks=3)

    selected = [item for item in result if item.selected]
    assert len(selected) == 1
    assert selected[0].cluster.start_samples == [900]


def test_at_least_one_cluster_is_selected_for_every_observed_day():
    for active_weeks in range(1, 8):
        clusters = [cluster(1, [week], start=540 + week * 90) for week in range(1, active_weeks + 1)]
        result = scored_and_selected(clusters, active_weeks=active_weeks)
        assert any(item.selected for item in result)


def test_thresholds_are_configurable():
    clusters = [cluster(1, [1], start=540), cluster(1, [2], start=840)]

    result = scored_and_selected(clusters, active_weeks=2, settings=Settings(sparse_history_week_threshold=2))

    assert sum(item.selected for item in result) == 1


def test_empty_day_selects_nothing():
    assert scored_and_selected([], active_weeks=0) == []
