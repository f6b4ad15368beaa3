from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime
import logging

from timetable_engine.schemas.base import SessionKind
from timetable_engine.services.record_parser import ParsedSlot

logger = logging.getLogger(__name__)


@dataclass
class SlotCluster:
    day_of_week: int
    count: int = 0
    start_sum: int = 0
    start_samples: list[int] = field(default_factory=list)
    end_samples: list[int] = field(default_factory=list)
    week_keys: set[str] = field(default_factory=set)
    session_kind_votes: Counter[SessionKind] = field(default_factory=Counter)
    last_seen_at: datetime | None = None

    @property
    def mean_start(self) -> float:
        return self.start_sum / self.count if self.count else 0.0

    def add(self, slot: ParsedSlot) -> None:
        self.count += 1
        self.start_sum += slot.start_minutes
        self.start_samples.append(slot.start_minutes)
        self.end_samples.append(slot.end_minutes)
        self.week_keys.add(slot.week_key)
        self.session_kind_votes[slot.session_kind] += 1
        if self.last_seen_at is None or slot.session_end > self.last_seen_at:
            self.last_seen_at = slot.session_end


@dataclass
class WeeklyClusters:
    clusters_by_day: dict[int, list[SlotCluster]] = field(default_factory=dict)
    weeks_by_day: dict[int, set[str]] = field(default_factory=dict)

    def day_active_week_count(self, day_of_week: int) -> int:
        return len(self.weeks_by_day.get(day_of_week, ()))

    def day_observation_count(self, day_of_week: int) -> int:
        return sum(cluster.count for cluster in self.clusters_by_day.get(day_of_week, ()))

    def days(self) -> list[int]:
        return sorted(self.clusters_by_day)


def observed_slots(slots: list[ParsedSlot], now: datetime) -> list[ParsedSlot]:
    """Completed sessions only, or every slot when none has finished yet."""
    completed = [slot for slot in slots if slot.session_end <= now]
    if completed:
        return completed
    if slots:
        logger.debug("No completed sessions found; using all %d parseable rows for inference", len(slots))
    return list(slots)


def _nearest_cluster(clusters: list[SlotCluster], start_minutes: int, tolerance: int) -> SlotCluster | None:
    best: SlotCluster | None = None
    best_diff = float("inf")
    for cluster in clusters:
        diff = abs(cluster.mean_start - start_minutes)
        if diff <= tolerance and diff < best_diff:
            best = cluster
            best_diff = diff
    return best


def cluster_weekly_slots(slots: list[ParsedSlot], *, start_tolerance_minutes: int) -> WeeklyClusters:
    """Greedy single pass: each slot joins the nearest same-weekday cluster within tolerance.

    Slots are visited in start-time order so cluster boundaries do not depend on
    the order the record source returned them in.
    """
    clusters_by_day: dict[int, list[SlotCluster]] = defaultdict(list)
    weeks_by_day: dict[int, set[str]] = defaultdict(set)

    for slot in sorted(slots, key=lambda item: (item.start_minutes, item.session_end, item.end_minutes)):
        weeks_by_day[slot.day_of_week].add(slot.week_key)
        day_clusters = clusters_by_day[slot.day_of_week]
        target = _nearest_cluster(day_clusters, slot.start_minutes, start_tolerance_minutes)
        if target is None:
            target = SlotCluster(day_of_week=slot.day_of_week)
            day_clusters.append(target)
        target.add(slot)

    return WeeklyClusters(clusters_by_day=dict(clusters_by_day), weeks_by_day=dict(weeks_by_day))
