from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from lesson_planner.calendar_index import CalendarIndex, Occurrence, weekday_index
from lesson_planner.config import PlannerConfig
from lesson_planner.day_plan import MergeStatus, merge_entry
from lesson_planner.errors import (
    LessonPlannerError,
    MissingConfigurationError,
    NeedsManualReview,
    ScheduleConflict,
    ValidationError,
)
from lesson_planner.frontmatter import update_list_field
from lesson_planner.records import ClassSpec, UnitSpec, parse_class, parse_unit
from lesson_planner.storage import DocumentRef, DocumentStore
from lesson_planner.times import TimeCodec

log = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass
class AssignmentResult:
    unit_name: str
    class_name: str
    created_count: int = 0
    skipped_count: int = 0
    warning_count: int = 0
    dates: list[date] = field(default_factory=list)
    failed_dates: list[date] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        message = (
            f"Created {self.created_count} daily plans, "
            f"skipped {self.skipped_count} duplicates"
        )
        if self.warning_count:
            message += f", {self.warning_count} schedule warnings"
        if self.failed_dates:
            message += f", {len(self.failed_dates)} dates failed to save"
        return message


def parse_start_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not DATE_PATTERN.match(text):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid calendar date: {text}") from exc


class UnitAssignmentService:
    """Schedules every day of a unit onto a class's weekly meeting."""

    def __init__(
        self,
        store: DocumentStore,
        config: PlannerConfig | None = None,
        *,
        calendar: CalendarIndex | None = None,
        codec: TimeCodec | None = None,
    ):
        self.store = store
        self.config = config or PlannerConfig()
        self.calendar = calendar or CalendarIndex(store, self.config)
        self.codec = codec or TimeCodec()

    def _find(self, collection: str, name: str) -> DocumentRef | None:
        return next(
            (ref for ref in self.store.list_collection(collection) if ref.basename == name),
            None,
        )

    def _validate(
        self, unit_name: str, class_name: str, start_date: str | date
    ) -> tuple[DocumentRef, DocumentRef, date]:
        unit_ref = self._find(self.config.units_folder, unit_name)
        if unit_ref is None:
            raise ValidationError(f'Unit "{unit_name}" not found')
        class_ref = self._find(self.config.classes_folder, class_name)
        if class_ref is None:
            raise ValidationError(f'Class "{class_name}" not found')
        return unit_ref, class_ref, parse_start_date(start_date)

    def load_unit(self, ref: DocumentRef) -> UnitSpec:
        unit = parse_unit(self.store.read(ref.id), ref.basename, ref.id)
        if unit.duration_days is None:
            raise MissingConfigurationError(
                f'Unit "{ref.basename}" missing duration_days in frontmatter'
            )
        if unit.duration_days < 1:
            raise MissingConfigurationError(
                f'Unit "{ref.basename}" has invalid duration_days: {unit.duration_days}'
            )
        return unit

    def load_class(self, ref: DocumentRef) -> ClassSpec:
        class_spec = parse_class(self.store.read(ref.id), ref.basename, ref.id)
        if not class_spec.day_of_week:
            raise MissingConfigurationError(
                f'Class "{ref.basename}" missing day_of_week in frontmatter'
            )
        weekday_index(class_spec.day_of_week)
        return class_spec

    def assign(
        self, unit_name: str, class_name: str, start_date: str | date
    ) -> AssignmentResult:
        """Create one day-plan entry per unit day, starting at ``start_date``.

        Validation and configuration problems raise before anything is
        written. After that each date is merged and saved on its own; a failed
        save is recorded in ``failed_dates`` and the remaining dates still run.
        Earlier dates are never rolled back.
        """
        unit_ref, class_ref, start = self._validate(unit_name, class_name, start_date)
        unit = self.load_unit(unit_ref)
        class_spec = self.load_class(class_ref)

        dates = self.calendar.recurrence_dates(
            start, class_spec.day_of_week, unit.duration_days
        )
        log.info(
            "Assigning %s to %s on %d dates: %s",
            unit_name,
            class_name,
            len(dates),
            ", ".join(d.isoformat() for d in dates),
        )

        result = AssignmentResult(unit_name=unit_name, class_name=class_name, dates=dates)
        for index, day in enumerate(dates, start=1):
            occurrence = self.calendar.resolve(class_spec, day, index, len(dates))
            self._schedule_occurrence(result, unit_name, class_name, occurrence)

        self._add_to_list(unit_ref.id, "active_classes", class_name, result)
        self._add_to_list(class_ref.id, "current_units", unit_name, result)

        log.info("%s: %s", class_name, result.message)
        return result

    def _schedule_occurrence(
        self,
        result: AssignmentResult,
        unit_name: str,
        class_name: str,
        occurrence: Occurrence,
    ) -> None:
        doc_id = self.config.daily_plan_id(occurrence.date)
        existing = None
        if self.store.exists(doc_id):
            existing = self.store.read(doc_id)
            if existing is None:
                self._record_failure(result, occurrence.date, f"could not read {doc_id}")
                return

        outcome = merge_entry(
            existing,
            occurrence.date,
            class_name,
            unit_name,
            occurrence.index,
            occurrence.total,
            occurrence.time,
            occurrence.note,
            codec=self.codec,
        )
        if outcome.status is MergeStatus.SKIPPED_DUPLICATE:
            result.skipped_count += 1
            return

        if outcome.status is MergeStatus.CREATED:
            saved = self.store.create(doc_id, outcome.text)
        else:
            saved = self.store.write(doc_id, outcome.text)
        if not saved:
            self._record_failure(result, occurrence.date, f"could not save {doc_id}")
            return
        result.created_count += 1

        warnings: list[LessonPlannerError] = []
        if outcome.conflict:
            warnings.append(
                ScheduleConflict(
                    f"{occurrence.date.isoformat()}: {class_name} at {occurrence.time} "
                    "shares its time with another class"
                )
            )
        if occurrence.needs_review or outcome.time_substituted:
            warnings.append(
                NeedsManualReview(
                    f"{occurrence.date.isoformat()}: {class_name} "
                    f"{occurrence.classification.value} time needs review"
                )
            )
        if warnings:
            result.warning_count += 1
            for warning in warnings:
                log.warning("%s", warning)
                result.warnings.append(str(warning))

    def _record_failure(self, result: AssignmentResult, day: date, reason: str) -> None:
        log.error("Daily plan for %s not updated: %s", day.isoformat(), reason)
        result.failed_dates.append(day)
        result.warnings.append(f"{day.isoformat()}: {reason}")

    def _add_to_list(
        self, doc_id: str, key: str, value: str, result: AssignmentResult
    ) -> None:
        text = self.store.read(doc_id)
        if text is None:
            result.warnings.append(f"could not read {doc_id} to update {key}")
            log.warning("Could not read %s to update %s", doc_id, key)
            return
        updated = update_list_field(text, key, value, sort=False)
        if updated == text:
            return
        if not self.store.write(doc_id, updated):
            result.warnings.append(f"could not update {key} in {doc_id}")
            log.warning("Could not update %s in %s", key, doc_id)

    def available_units(self) -> list[dict[str, Any]]:
        units = []
        for ref in self.store.list_collection(self.config.units_folder):
            text = self.store.read(ref.id)
            if text is None:
                log.warning("Error reading unit %s", ref.basename)
                continue
            unit = parse_unit(text, ref.basename, ref.id)
            units.append({"name": unit.name, "duration": unit.duration_days or 0})
        return units

    def available_classes(self) -> list[dict[str, Any]]:
        classes = []
        for ref in self.store.list_collection(self.config.classes_folder):
            text = self.store.read(ref.id)
            if text is None:
                log.warning("Error reading class %s", ref.basename)
                continue
            class_spec = parse_class(text, ref.basename, ref.id)
            classes.append(
                {
                    "name": class_spec.name,
                    "day_of_week": class_spec.day_of_week or "Unknown",
                    "time": class_spec.regular_time or "TBD",
                }
            )
        return classes
