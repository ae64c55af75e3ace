#!env python

import argparse
import logging
import sys
from datetime import date

from lesson_planner.assignment import UnitAssignmentService, parse_start_date
from lesson_planner.calendar_index import CalendarIndex
from lesson_planner.config import load_config
from lesson_planner.errors import LessonPlannerError
from lesson_planner.storage import FileDocumentStore

log = logging.getLogger(__name__)


def assign(service: UnitAssignmentService, args) -> int:
  result = service.assign(args.unit, args.class_name, args.start_date)
  print(result.message)
  for day in result.dates:
    print(f"  {day.isoformat()}")
  for warning in result.warnings:
    print(f"  warning: {warning}")
  return 1 if result.failed_dates else 0


def list_units(service: UnitAssignmentService, args) -> int:
  for unit in service.available_units():
    print(f"{unit['name']} ({unit['duration']} days)")
  return 0


def list_classes(service: UnitAssignmentService, args) -> int:
  for class_info in service.available_classes():
    print(f"{class_info['name']} ({class_info['day_of_week']} {class_info['time']})")
  return 0


def check_dates(service: UnitAssignmentService, args) -> int:
  calendar: CalendarIndex = service.calendar
  start: date = parse_start_date(args.start_date)
  dates = calendar.recurrence_dates(start, args.weekday, args.count)
  for day in dates:
    print(f"{day.isoformat()} {calendar.classify(day).value}")
  return 0


COMMANDS = {
  "assign": assign,
  "units": list_units,
  "classes": list_classes,
  "check-dates": check_dates,
}


def build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(
    prog="lesson-planner",
    description="Schedule multi-day units onto weekly class meetings"
  )
  parser.add_argument("--root", help="Lesson planning root folder (overrides config)")
  parser.add_argument("--config", help="Path to a YAML planner config file")
  parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

  subparsers = parser.add_subparsers(dest="command", required=True)

  assign_parser = subparsers.add_parser("assign", help="Assign a unit to a class")
  assign_parser.add_argument("unit", help="Unit name (file name in the Units folder)")
  assign_parser.add_argument("class_name", metavar="class", help="Class name (file name in the Classes folder)")
  assign_parser.add_argument("start_date", help="First possible date, YYYY-MM-DD")

  subparsers.add_parser("units", help="List available units")
  subparsers.add_parser("classes", help="List available classes")

  dates_parser = subparsers.add_parser("check-dates", help="Preview class dates without writing")
  dates_parser.add_argument("start_date", help="First possible date, YYYY-MM-DD")
  dates_parser.add_argument("weekday", help="Meeting day, e.g. Tuesday")
  dates_parser.add_argument("count", type=int, help="Number of meetings")

  return parser


def main(argv=None) -> int:
  parser = build_parser()
  args = parser.parse_args(argv)

  logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

  try:
    config = load_config(args.config)
  except (OSError, ValueError) as exc:
    print(f"Failed to load config: {exc}", file=sys.stderr)
    return 2
  if args.root:
    config.root = args.root

  store = FileDocumentStore(config.root)
  service = UnitAssignmentService(store, config)

  try:
    return COMMANDS[args.command](service, args)
  except LessonPlannerError as exc:
    print(f"Error: {exc}", file=sys.stderr)
    return 2


if __name__ == "__main__":
  raise SystemExit(main())
