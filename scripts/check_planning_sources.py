#!/usr/bin/env python3
"""Check the calendar, unit and class documents of a lesson planning root."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from lesson_planner.calendar_index import weekday_index
from lesson_planner.config import load_config
from lesson_planner.errors import MissingConfigurationError
from lesson_planner.frontmatter import parse_holiday_dates, parse_special_schedules
from lesson_planner.records import PLACEHOLDER_TIME, parse_class, parse_unit
from lesson_planner.storage import FileDocumentStore
from lesson_planner.times import is_valid_time


def _check_time(problems: list[str], label: str, value: str | None, *, required: bool) -> None:
    if value is None:
        if required:
            problems.append(f"{label}: missing")
        return
    if value.upper() == PLACEHOLDER_TIME and not required:
        return
    if not is_valid_time(value):
        problems.append(f"{label}: invalid time {value!r} (expected H:MM or HH:MM)")


def collect_problems(store: FileDocumentStore, config) -> list[str]:
    problems: list[str] = []

    holidays_text = store.read(config.holidays_document)
    if holidays_text is None:
        problems.append(f"{config.holidays_document}: not found")
    elif not parse_holiday_dates(holidays_text):
        problems.append(f"{config.holidays_document}: no '- YYYY-MM-DD' lines found")

    special_text = store.read(config.special_schedules_document)
    if special_text is None:
        problems.append(f"{config.special_schedules_document}: not found")
    else:
        special = parse_special_schedules(special_text)
        overlap = special["early_dismissal"] & special["testing_day"]
        for day in sorted(overlap):
            problems.append(
                f"{config.special_schedules_document}: {day.isoformat()} is listed as "
                "both early dismissal and testing day"
            )

    for ref in store.list_collection(config.units_folder):
        unit = parse_unit(store.read(ref.id), ref.basename, ref.id)
        if unit.duration_days is None or unit.duration_days < 1:
            problems.append(f"{ref.id}: duration_days must be a positive integer")

    for ref in store.list_collection(config.classes_folder):
        class_spec = parse_class(store.read(ref.id), ref.basename, ref.id)
        try:
            weekday_index(class_spec.day_of_week)
        except MissingConfigurationError as exc:
            problems.append(f"{ref.id}: {exc}")
        _check_time(problems, f"{ref.id} regular_time", class_spec.regular_time, required=True)
        _check_time(
            problems,
            f"{ref.id} early_dismissal_time",
            class_spec.early_dismissal_time,
            required=False,
        )
        _check_time(
            problems,
            f"{ref.id} testing_day_time",
            class_spec.testing_day_time,
            required=False,
        )
    return problems


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Validate holidays, special schedules, units and classes."
    )
    parser.add_argument("root", nargs="?", help="Lesson planning root folder.")
    parser.add_argument("--config", help="Path to a YAML planner config file.")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"Failed to load config: {exc}", file=sys.stderr)
        return 2
    if args.root:
        config.root = args.root
    if not Path(config.root).is_dir():
        print(f"Planning root not found: {config.root}", file=sys.stderr)
        return 2

    problems = collect_problems(FileDocumentStore(config.root), config)
    if not problems:
        print(f"VALID: {config.root}")
        return 0

    print(f"INVALID: {config.root}")
    print(f"{len(problems)} problem(s):")
    for problem in problems:
        print(f"- {problem}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
