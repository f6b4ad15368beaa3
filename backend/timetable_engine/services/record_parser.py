from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time
import logging
import re

from timetable_engine.core.config import Settings, get_settings
from timetable_engine.schemas.attendance import RawSessionRecord
from timetable_engine.schemas.base import SessionKind
from timetable_engine.schemas.inference import (
    ParseFailureReason,
    ParseFailureSample,
    ParseReport,
    empty_failure_counts,
)

logger = logging.getLogger(__name__)

# Sunday-first, matching the record source's day numbering. Matched exactly as the LMS writes them.
DAY_TOKENS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

DAY_TOKEN_PATTERN = re.compile(r"^([A-Za-z]{3})\s+")
DATE_PATTERN = re.compile(r"(\d{1,2})\s+([A-Za-z]{3})\s+(\d{4})")
TIME_RANGE_PATTERN = re.compile(
    r"(\d{1,2}(?::\d{2})?\s*(?:AM|PM))\s*-\s*(\d{1,2}(?::\d{2})?\s*(?:AM|PM))",
    re.IGNORECASE,
)
CLOCK_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(AM|PM)$", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedSlot:
    day_of_week: int
    start_minutes: int
    end_minutes: int
    session_kind: SessionKind
    week_key: str
    session_end: datetime


@dataclass(frozen=True)
class ParseOutcome:
    slot: ParsedSlot | None = None
    reason: ParseFailureReason | None = None


def parse_clock_to_minutes(value: str) -> int | None:
    """``"10AM"`` / ``"10:55 am"`` to minutes since midnight, ``None`` when invalid."""
    match = CLOCK_PATTERN.match(value.strip())
    if not match:
        return None
    hours12 = int(match.group(1))
    minutes = int(match.group(2)) if match.group(2) else 0
    if hours12 < 1 or hours12 > 12 or minutes > 59:
        return None
    hours24 = hours12 % 12
    if match.group(3).upper() == "PM":
        hours24 += 12
    return hours24 * 60 + minutes


def parse_record_date(text: str) -> date | None:
    """Calendar date of a record, ignoring its weekday token and time range."""
    match = DATE_PATTERN.search(text or "")
    if not match:
        return None
    month = MONTHS.get(match.group(2).lower())
    if month is None:
        return None
    try:
        return date(int(match.group(3)), month, int(match.group(1)))
    except ValueError:
        return None


def iso_week_key(value: date) -> str:
    iso_year, iso_week, _ = value.isocalendar()
    return f"{iso_year}-{iso_week:02d}"


def classify_session_kind(
    description: str,
    start_minutes: int,
    end_minutes: int,
    *,
    lab_duration_threshold: int,
) -> SessionKind:
    lowered = (description or "").lower()
    if "lab" in lowered:
        return "lab"
    if "tutorial" in lowered:
        return "tutorial"
    # Long blocks are labs even when the LMS description does not say so.
    if end_minutes - start_minutes >= lab_duration_threshold:
        return "lab"
    return "regular"


def parse_session_record(record: RawSessionRecord, *, lab_duration_threshold: int = 110) -> ParseOutcome:
    text = record.date_text or ""

    day_match = DAY_TOKEN_PATTERN.match(text)
    if not day_match:
        return ParseOutcome(reason="missing_day")
    day_token = day_match.group(1)
    if day_token not in DAY_TOKENS:
        return ParseOutcome(reason="invalid_day")
    day_of_week = DAY_TOKENS.index(day_token)

    date_match = DATE_PATTERN.search(text)
    if not date_match:
        return ParseOutcome(reason="missing_date")
    month = MONTHS.get(date_match.group(2).lower())
    if month is None:
        return ParseOutcome(reason="invalid_month")

    range_match = TIME_RANGE_PATTERN.search(text)
    if not range_match:
        return ParseOutcome(reason="missing_time_range")
    start_minutes = parse_clock_to_minutes(range_match.group(1))
    end_minutes = parse_clock_to_minutes(range_match.group(2))
    if start_minutes is None or end_minutes is None or end_minutes <= start_minutes:
        return ParseOutcome(reason="invalid_time_range")

    try:
        session_date = date(int(date_match.group(3)), month, int(date_match.group(1)))
    except ValueError:
        return ParseOutcome(reason="invalid_date")

    session_end = datetime.combine(session_date, time(end_minutes // 60, end_minutes % 60))
    return ParseOutcome(
        slot=ParsedSlot(
            day_of_week=day_of_week,
            start_minutes=start_minutes,
            end_minutes=end_minutes,
            session_kind=classify_session_kind(
                record.description,
                start_minutes,
                end_minutes,
                lab_duration_threshold=lab_duration_threshold,
            ),
            week_key=iso_week_key(session_date),
            session_end=session_end,
        )
    )


def parse_session_records(
    records: Iterable[RawSessionRecord],
    *,
    settings: Settings | None = None,
) -> tuple[list[ParsedSlot], ParseReport]:
    """Parse every record, counting and sampling the ones that cannot be used.

    Malformed rows never raise; they are only reflected in the returned report.
    """
    settings = settings or get_settings()
    failures = empty_failure_counts()
    samples: list[ParseFailureSample] = []
    parsed: list[ParsedSlot] = []
    total = 0

    for record in records:
        total += 1
        outcome = parse_session_record(record, lab_duration_threshold=settings.lab_duration_threshold_minutes)
        if outcome.slot is not None:
            parsed.append(outcome.slot)
            continue
        failures[outcome.reason] += 1
        if len(samples) < settings.parse_failure_sample_limit:
            samples.append(ParseFailureSample(reason=outcome.reason, date_text=record.date_text))

    report = ParseReport(
        total_records=total,
        parsed_records=len(parsed),
        skipped_records=total - len(parsed),
        failures=failures,
        samples=samples,
    )
    if report.skipped_records:
        logger.debug(
            "Skipped %d of %d malformed attendance rows: failures=%s samples=%s",
            report.skipped_records,
            report.total_records,
            {reason: count for reason, count in failures.items() if count},
            [(sample.reason, sample.date_text) for sample in samples],
        )
    return parsed, report
