from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging

from timetable_engine.core.config import Settings
from timetable_engine.services.clustering import SlotCluster

logger = logging.getLogger(__name__)


@dataclass
class ScoredCluster:
    cluster: SlotCluster
    score: float
    week_coverage: float
    occurrence_ratio: float
    selected: bool = False


def score_day_clusters(
    clusters: list[SlotCluster],
    *,
    day_active_week_count: int,
    settings: Settings,
) -> list[ScoredCluster]:
    """Score one weekday's clusters by week coverage and share of that day's sessions."""
    total_observations = sum(cluster.count for cluster in clusters)
    scored: list[ScoredCluster] = []
    for cluster in clusters:
        week_coverage = len(cluster.week_keys) / day_active_week_count if day_active_week_count > 0 else 0.0
        occurrence_ratio = cluster.count / total_observations if total_observations > 0 else 0.0
        score = week_coverage * settings.week_coverage_weight + occurrence_ratio * settings.occurrence_weight
        scored.append(
            ScoredCluster(
                cluster=cluster,
                score=score,
                week_coverage=week_coverage,
                occurrence_ratio=occurrence_ratio,
            )
        )

    scored.sort(
        key=lambda item: (item.score, item.cluster.count, item.cluster.last_seen_at or datetime.min),
        reverse=True,
    )
    return scored


def select_day_clusters(
    scored: list[ScoredCluster],
    *,
    day_of_week: int,
    day_active_week_count: int,
    settings: Settings,
) -> list[ScoredCluster]:
    """Mark which clusters count as recurring classes.

    With too few active weeks every cluster is kept. Otherwise a cluster must
    recur, cover enough weeks and score close to the best cluster; if none
    qualifies the best cluster alone is kept so the day is never dropped.
    """
    if not scored:
        return scored

    if day_active_week_count < settings.sparse_history_week_threshold:
        for item in scored:
            item.selected = True
        return scored

    best_score = scored[0].score
    cutoff = max(best_score - settings.score_cutoff_margin, settings.score_cutoff_floor)
    kept = 0
    for item in scored:
        item.selected = (
            item.cluster.count >= settings.min_cluster_occurrences
            and item.week_coverage >= settings.min_week_coverage
            and item.score >= cutoff
        )
        kept += item.selected

    if kept == 0:
        logger.debug(
            "No cluster passed strict threshold; using best fallback: day=%s active_weeks=%s best_score=%.3f",
            day_of_week,
            day_active_week_count,
            best_score,
        )
        scored[0].selected = True
    return scored
