from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable

from lesson_planner.config import PlannerConfig
from lesson_planner.errors import (
    MissingConfigurationError,
    ScheduleSearchExhausted,
    SourceUnavailable,
    ValidationError,
)
from lesson_planner.frontmatter import parse_holiday_dates, parse_special_schedules
from lesson_planner.records import PLACEHOLDER_TIME, ClassSpec
from lesson_planner.storage import DocumentStore
from lesson_planner.times import SENTINEL_TIME, is_valid_time, parse_time

log = logging.getLogger(__name__)

WEEKDAY_TO_INT = {
    "Monday": 0,
    "Tuesday": 1,
    "Wednesday": 2,
    "Thursday": 3,
    "Friday": 4,
    "Saturday": 5,
    "Sunday": 6,
}
INT_TO_WEEKDAY = {value: key for key, value in WEEKDAY_TO_INT.items()}


class Classification(str, enum.Enum):
    REGULAR = "regular"
    EARLY_DISMISSAL = "early_dismissal"
    TESTING_DAY = "testing_day"


@dataclass(frozen=True)
class CalendarSets:
    holidays: frozenset[date] = frozenset()
    early_dismissal: frozenset[date] = frozenset()
    testing_day: frozenset[date] = frozenset()


@dataclass(frozen=True)
class EffectiveTime:
    time: str
    note: str = ""
    needs_review: bool = False


@dataclass(frozen=True)
class Occurrence:
    date: date
    index: int
    total: int
    classification: Classification
    time: str
    note: str = ""
    needs_review: bool = False


@dataclass
class ScheduleIssues:
    holiday_conflicts: list[date] = field(default_factory=list)
    special_schedule_conflicts: list[tuple[date, Classification]] = field(
        default_factory=list
    )


def weekday_index(day_name: str | None) -> int:
    key = str(day_name or "").strip().capitalize()
    if key not in WEEKDAY_TO_INT:
        raise MissingConfigurationError(f"Invalid day of week: {day_name!r}")
    return WEEKDAY_TO_INT[key]


def weekday_name(day: date) -> str:
    return INT_TO_WEEKDAY[day.weekday()]


def first_on_or_after(start: date, weekday: int) -> date:
    return start + timedelta(days=(weekday - start.weekday()) % 7)


def _override_configured(value: str | None) -> bool:
    if not value or value.strip().upper() == PLACEHOLDER_TIME:
        return False
    if not is_valid_time(value):
        log.warning("Ignoring malformed override time: %r", value)
        return False
    return True


class CalendarIndex:
    """Holiday and special-schedule dates, cached for ``cache_ttl_seconds``."""

    def __init__(
        self,
        store: DocumentStore,
        config: PlannerConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self._config = config or PlannerConfig()
        self._clock = clock
        self._sets: CalendarSets | None = None
        self._loaded_at: float | None = None

    def _read_source(self, doc_id: str) -> str | None:
        text = self._store.read(doc_id)
        if text is None:
            log.warning("%s", SourceUnavailable(f"{doc_id} not found; treating as empty"))
        return text

    def load(self, *, force: bool = False) -> CalendarSets:
        now = self._clock()
        if (
            not force
            and self._sets is not None
            and self._loaded_at is not None
            and now - self._loaded_at < self._config.cache_ttl_seconds
        ):
            return self._sets

        holidays_text = self._read_source(self._config.holidays_document)
        special_text = self._read_source(self._config.special_schedules_document)
        holidays = parse_holiday_dates(holidays_text or "")
        special = parse_special_schedules(special_text or "")
        self._sets = CalendarSets(
            holidays=frozenset(holidays),
            early_dismissal=frozenset(special["early_dismissal"]),
            testing_day=frozenset(special["testing_day"]),
        )
        # Only a load that found both sources is cached.
        if holidays_text is None or special_text is None:
            self._loaded_at = None
        else:
            self._loaded_at = now
        log.debug(
            "Loaded calendar: %d holidays, %d early dismissal, %d testing days",
            len(self._sets.holidays),
            len(self._sets.early_dismissal),
            len(self._sets.testing_day),
        )
        return self._sets

    def invalidate(self) -> None:
        self._sets = None
        self._loaded_at = None

    def force_reload(self) -> CalendarSets:
        self.invalidate()
        return self.load()

    def is_holiday(self, day: date) -> bool:
        return day in self.load().holidays

    def classify(self, day: date) -> Classification:
        sets = self.load()
        if day in sets.early_dismissal:
            return Classification.EARLY_DISMISSAL
        if day in sets.testing_day:
            return Classification.TESTING_DAY
        return Classification.REGULAR

    def recurrence_dates(self, start: date, weekday: str, count: int) -> list[date]:
        """Return ``count`` non-holiday dates on ``weekday``, one week apart.

        Holidays are skipped without reducing ``count``. More than
        ``max_lookahead_weeks`` consecutive skipped weeks raises
        :class:`ScheduleSearchExhausted`.
        """
        if count < 1:
            raise ValidationError(f"Occurrence count must be at least 1, got {count}")
        target = weekday_index(weekday)
        holidays = self.load().holidays
        limit = self._config.max_lookahead_weeks

        current = first_on_or_after(start, target)
        dates: list[date] = []
        skipped_in_a_row = 0
        while len(dates) < count:
            if current in holidays:
                skipped_in_a_row += 1
                log.debug("Skipping holiday %s", current.isoformat())
                if skipped_in_a_row > limit:
                    raise ScheduleSearchExhausted(
                        f"No non-holiday {weekday} found within {limit} weeks "
                        f"after {dates[-1].isoformat() if dates else start.isoformat()}"
                    )
            else:
                skipped_in_a_row = 0
                dates.append(current)
            current += timedelta(weeks=1)
        return dates

    def next_school_day(self, after: date, weekday: str) -> date:
        target = weekday_index(weekday)
        current = after + timedelta(days=(target - after.weekday()) % 7 or 7)
        holidays = self.load().holidays
        for _ in range(self._config.max_lookahead_weeks):
            if current not in holidays:
                return current
            current += timedelta(weeks=1)
        raise ScheduleSearchExhausted(
            f"Could not find non-holiday {weekday} after {after.isoformat()}"
        )

    def effective_time(
        self, class_spec: ClassSpec, classification: Classification
    ) -> EffectiveTime:
        regular = class_spec.regular_time
        if not regular or not is_valid_time(regular):
            log.warning(
                "Class %r has no usable regular_time (%r)", class_spec.name, regular
            )
            return EffectiveTime(
                time=SENTINEL_TIME,
                note=" (⚠️ Time not configured - check manually)",
                needs_review=True,
            )

        if classification is Classification.EARLY_DISMISSAL:
            early = class_spec.early_dismissal_time
            if _override_configured(early):
                return EffectiveTime(time=early, note=" (Early Dismissal)")
            return EffectiveTime(
                time=regular,
                note=" (⚠️ Early Dismissal - check time manually)",
                needs_review=True,
            )

        if classification is Classification.TESTING_DAY:
            testing = class_spec.testing_day_time
            if _override_configured(testing) and (
                parse_time(testing).minutes != parse_time(regular).minutes
            ):
                return EffectiveTime(time=testing, note=" (Testing Day)")
            return EffectiveTime(
                time=regular,
                note=" (⚠️ Testing Day - update testing_day_time when known)",
                needs_review=True,
            )

        return EffectiveTime(time=regular)

    def resolve(
        self, class_spec: ClassSpec, day: date, index: int, total: int
    ) -> Occurrence:
        classification = self.classify(day)
        effective = self.effective_time(class_spec, classification)
        return Occurrence(
            date=day,
            index=index,
            total=total,
            classification=classification,
            time=effective.time,
            note=effective.note,
            needs_review=effective.needs_review,
        )

    def schedule_issues(self, dates: list[date]) -> ScheduleIssues:
        sets = self.load()
        issues = ScheduleIssues()
        for day in dates:
            if day in sets.holidays:
                issues.holiday_conflicts.append(day)
            if day in sets.early_dismissal:
                issues.special_schedule_conflicts.append(
                    (day, Classification.EARLY_DISMISSAL)
                )
            if day in sets.testing_day:
                issues.special_schedule_conflicts.append(
                    (day, Classification.TESTING_DAY)
                )
        return issues
