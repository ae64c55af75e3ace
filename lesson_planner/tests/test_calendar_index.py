from __future__ import annotations

import logging
from datetime import date

import pytest

from lesson_planner.calendar_index import (
    CalendarIndex,
    Classification,
    first_on_or_after,
    weekday_name,
)
from lesson_planner.config import PlannerConfig
from lesson_planner.errors import (
    MissingConfigurationError,
    ScheduleSearchExhausted,
    ValidationError,
)
from lesson_planner.records import ClassSpec
from lesson_planner.storage import DocumentRef, DocumentStore


class MemoryStore(DocumentStore):
    def __init__(self, documents=None):
        self.documents = dict(documents or {})
        self.reads = []

    def exists(self, doc_id):
        return doc_id in self.documents

    def read(self, doc_id):
        self.reads.append(doc_id)
        return self.documents.get(doc_id)

    def write(self, doc_id, text):
        self.documents[doc_id] = text
        return True

    def create(self, doc_id, text):
        if doc_id in self.documents:
            return False
        self.documents[doc_id] = text
        return True

    def list_collection(self, name):
        prefix = name + "/"
        return [
            DocumentRef(id=doc_id, basename=doc_id[len(prefix):-3])
            for doc_id in sorted(self.documents)
            if doc_id.startswith(prefix)
        ]


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _holidays(*days: str) -> str:
    return "# School Holidays\n" + "".join(f"- {day}\n" for day in days)


def _special(early=(), testing=()) -> str:
    lines = ["## Early Dismissal"]
    lines += [f"- {day}" for day in early]
    lines += ["", "## Testing Day"]
    lines += [f"- {day}" for day in testing]
    lines += ["", "---", "Notes about the calendar."]
    return "\n".join(lines)


def _index(holidays=(), early=(), testing=(), **config_kwargs):
    store = MemoryStore(
        {
            "School Holidays.md": _holidays(*holidays),
            "Special Schedules.md": _special(early, testing),
        }
    )
    clock = FakeClock()
    index = CalendarIndex(store, PlannerConfig(**config_kwargs), clock=clock)
    return index, store, clock


def _math(**overrides) -> ClassSpec:
    values = {
        "name": "Math",
        "day_of_week": "Tuesday",
        "regular_time": "9:00",
        "early_dismissal_time": "8:15",
        "testing_day_time": "10:30",
    }
    values.update(overrides)
    return ClassSpec(**values)


def test_weekday_helpers():
    assert weekday_name(date(2026, 10, 20)) == "Tuesday"
    assert first_on_or_after(date(2026, 10, 19), 1) == date(2026, 10, 20)
    assert first_on_or_after(date(2026, 10, 20), 1) == date(2026, 10, 20)
    assert first_on_or_after(date(2026, 10, 21), 1) == date(2026, 10, 27)


def test_load_treats_missing_sources_as_empty(caplog):
    index = CalendarIndex(MemoryStore(), PlannerConfig())
    with caplog.at_level(logging.WARNING):
        sets = index.load()

    assert sets.holidays == frozenset()
    assert sets.early_dismissal == frozenset()
    assert sets.testing_day == frozenset()
    assert "School Holidays.md not found" in caplog.text
    assert "Special Schedules.md not found" in caplog.text


def test_load_with_missing_source_is_not_cached():
    store = MemoryStore()
    clock = FakeClock()
    index = CalendarIndex(store, PlannerConfig(), clock=clock)
    assert not index.is_holiday(date(2026, 10, 27))

    store.documents["School Holidays.md"] = _holidays("2026-10-27")
    store.documents["Special Schedules.md"] = _special()
    clock.now = 10.0
    assert index.is_holiday(date(2026, 10, 27))

    reads = len(store.reads)
    store.documents["School Holidays.md"] = _holidays("2026-12-25")
    clock.now = 20.0
    assert index.is_holiday(date(2026, 10, 27))
    assert len(store.reads) == reads


def test_load_is_cached_within_ttl():
    index, store, clock = _index(holidays=["2026-11-26"])
    assert index.is_holiday(date(2026, 11, 26))

    store.documents["School Holidays.md"] = _holidays("2026-12-25")
    clock.now = 299.0
    assert index.is_holiday(date(2026, 11, 26))
    assert not index.is_holiday(date(2026, 12, 25))

    clock.now = 300.0
    assert index.is_holiday(date(2026, 12, 25))
    assert not index.is_holiday(date(2026, 11, 26))


def test_invalidate_and_force_reload_reread_sources():
    index, store, _ = _index(holidays=["2026-11-26"])
    index.load()
    store.documents["School Holidays.md"] = _holidays("2026-12-25")

    index.invalidate()
    assert index.is_holiday(date(2026, 12, 25))

    store.documents["School Holidays.md"] = _holidays("2027-01-01")
    assert index.force_reload().holidays == frozenset({date(2027, 1, 1)})


def test_classify_prefers_early_dismissal_over_testing_day():
    index, _, _ = _index(
        early=["2026-10-27", "2026-11-03"], testing=["2026-11-03", "2026-11-10"]
    )

    assert index.classify(date(2026, 10, 20)) is Classification.REGULAR
    assert index.classify(date(2026, 10, 27)) is Classification.EARLY_DISMISSAL
    assert index.classify(date(2026, 11, 3)) is Classification.EARLY_DISMISSAL
    assert index.classify(date(2026, 11, 10)) is Classification.TESTING_DAY


def test_recurrence_dates_advance_to_weekday_and_step_weekly():
    index, _, _ = _index()

    dates = index.recurrence_dates(date(2026, 10, 19), "Tuesday", 3)

    assert dates == [date(2026, 10, 20), date(2026, 10, 27), date(2026, 11, 3)]


def test_recurrence_dates_include_start_when_it_matches():
    index, _, _ = _index()
    assert index.recurrence_dates(date(2026, 10, 20), "tuesday", 1) == [
        date(2026, 10, 20)
    ]


def test_recurrence_dates_skip_holidays_and_still_reach_count():
    index, _, _ = _index(holidays=["2026-10-27", "2026-11-10"])

    dates = index.recurrence_dates(date(2026, 10, 19), "Tuesday", 3)

    assert dates == [date(2026, 10, 20), date(2026, 11, 3), date(2026, 11, 17)]
    assert len(dates) == 3
    assert all(earlier < later for earlier, later in zip(dates, dates[1:]))


def test_recurrence_dates_validate_arguments():
    index, _, _ = _index()
    with pytest.raises(ValidationError):
        index.recurrence_dates(date(2026, 10, 19), "Tuesday", 0)
    with pytest.raises(MissingConfigurationError, match="Invalid day of week"):
        index.recurrence_dates(date(2026, 10, 19), "Tues", 2)


def test_recurrence_dates_give_up_after_lookahead_limit():
    index, _, _ = _index(
        holidays=["2026-10-27", "2026-11-03", "2026-11-10", "2026-11-17"],
        max_lookahead_weeks=3,
    )

    with pytest.raises(ScheduleSearchExhausted):
        index.recurrence_dates(date(2026, 10, 19), "Tuesday", 2)


def test_next_school_day_skips_holidays():
    index, _, _ = _index(holidays=["2026-10-27"])

    assert index.next_school_day(date(2026, 10, 20), "Tuesday") == date(2026, 11, 3)
    assert index.next_school_day(date(2026, 10, 19), "Tuesday") == date(2026, 10, 20)


def test_effective_time_regular():
    index, _, _ = _index()
    effective = index.effective_time(_math(), Classification.REGULAR)

    assert effective.time == "9:00"
    assert effective.note == ""
    assert effective.needs_review is False


def test_effective_time_early_dismissal_uses_override():
    index, _, _ = _index()
    effective = index.effective_time(_math(), Classification.EARLY_DISMISSAL)

    assert effective.time == "8:15"
    assert effective.note == " (Early Dismissal)"
    assert effective.needs_review is False


@pytest.mark.parametrize("early", [None, "TBD", "soon"])
def test_effective_time_early_dismissal_without_override_needs_review(early):
    index, _, _ = _index()
    effective = index.effective_time(
        _math(early_dismissal_time=early), Classification.EARLY_DISMISSAL
    )

    assert effective.time == "9:00"
    assert "check time manually" in effective.note
    assert effective.needs_review is True


def test_effective_time_testing_day_uses_distinct_override():
    index, _, _ = _index()
    effective = index.effective_time(_math(), Classification.TESTING_DAY)

    assert effective.time == "10:30"
    assert effective.note == " (Testing Day)"
    assert effective.needs_review is False


@pytest.mark.parametrize("testing", [None, "TBD", "9:00", "09:00"])
def test_effective_time_testing_day_same_or_missing_needs_review(testing):
    index, _, _ = _index()
    effective = index.effective_time(
        _math(testing_day_time=testing), Classification.TESTING_DAY
    )

    assert effective.time == "9:00"
    assert "update testing_day_time" in effective.note
    assert effective.needs_review is True


def test_effective_time_without_regular_time_uses_sentinel():
    index, _, _ = _index()
    effective = index.effective_time(_math(regular_time=None), Classification.REGULAR)

    assert effective.time == "12:00"
    assert effective.needs_review is True


def test_resolve_combines_classification_and_time():
    index, _, _ = _index(early=["2026-10-27"])
    occurrence = index.resolve(_math(), date(2026, 10, 27), 2, 3)

    assert occurrence.classification is Classification.EARLY_DISMISSAL
    assert occurrence.time == "8:15"
    assert (occurrence.index, occurrence.total) == (2, 3)


def test_schedule_issues_lists_holiday_and_special_dates():
    index, _, _ = _index(
        holidays=["2026-11-26"], early=["2026-10-27"], testing=["2026-10-27"]
    )

    issues = index.schedule_issues(
        [date(2026, 10, 20), date(2026, 10, 27), date(2026, 11, 26)]
    )

    assert issues.holiday_conflicts == [date(2026, 11, 26)]
    assert issues.special_schedule_conflicts == [
        (date(2026, 10, 27), Classification.EARLY_DISMISSAL),
        (date(2026, 10, 27), Classification.TESTING_DAY),
    ]
