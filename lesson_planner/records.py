from __future__ import annotations

from dataclasses import dataclass, field

from lesson_planner.frontmatter import get_int, get_list, get_string, read_frontmatter

# Override times left as this placeholder count as not configured.
PLACEHOLDER_TIME = "TBD"


@dataclass
class UnitSpec:
    name: str
    duration_days: int | None
    active_classes: list[str] = field(default_factory=list)
    document_id: str = ""


@dataclass
class ClassSpec:
    name: str
    day_of_week: str | None
    regular_time: str | None
    early_dismissal_time: str | None = None
    testing_day_time: str | None = None
    current_units: list[str] = field(default_factory=list)
    document_id: str = ""
    grade: str = ""
    teacher: str = ""


def parse_unit(text: str | None, name: str, document_id: str = "") -> UnitSpec:
    fields = read_frontmatter(text)
    return UnitSpec(
        name=name,
        duration_days=get_int(fields, "duration_days"),
        active_classes=get_list(fields, "active_classes"),
        document_id=document_id,
    )


def parse_class(text: str | None, name: str, document_id: str = "") -> ClassSpec:
    fields = read_frontmatter(text)
    return ClassSpec(
        name=name,
        day_of_week=get_string(fields, "day_of_week"),
        regular_time=get_string(fields, "regular_time"),
        early_dismissal_time=get_string(fields, "early_dismissal_time"),
        testing_day_time=get_string(fields, "testing_day_time"),
        current_units=get_list(fields, "current_units"),
        document_id=document_id,
        grade=get_string(fields, "grade") or "",
        teacher=get_string(fields, "teacher") or "",
    )
