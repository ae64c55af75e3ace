"""Day-plan documents: parsing, merging new class entries, serialization.

A day plan is a header block (``date``, ``day_of_week``, ``classes``), an
optional preamble (title, free notes), then entry blocks::

    ## 9:00 - Period 2 Science (Early Dismissal)

    **Unit:** [[Ecosystems]]
    **Day:** 1 of 3

    ---

Entry blocks are kept in ascending time order, separated by a single ``---``
line, with one ``---`` after the last block. The ``classes`` list mirrors the
class names that have a block.
"""
from __future__ import annotations

import enum
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date

from lesson_planner.calendar_index import weekday_name
from lesson_planner.frontmatter import (
    DELIMITER,
    get_list,
    get_string,
    read_frontmatter,
    set_list_field,
    split_frontmatter,
)
from lesson_planner.times import TimeCodec, TimeOfDay

log = logging.getLogger(__name__)

ENTRY_HEADER_PATTERN = re.compile(r"^## (\d{1,2}:\d{2}) - (.+?)\s*$")
SCHEDULE_NOTE_PATTERN = re.compile(
    r"^(.*?)\s+\(((?:⚠️\s*)?(?:Early Dismissal|Testing Day|Time not configured)[^()]*)\)$"
)
UNIT_LINE_PATTERN = re.compile(r"\*\*Unit:\*\*\s*\[\[([^\]]+)\]\]")
DAY_LINE_PATTERN = re.compile(r"\*\*Day:\*\*\s*(\d+)\s*of\s*(\d+)")
DAILY_PLAN_ID_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2})\.md$")


class MergeStatus(str, enum.Enum):
    CREATED = "created"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    MUTATED = "mutated"


@dataclass(frozen=True)
class MergeOutcome:
    status: MergeStatus
    text: str
    conflict: bool = False
    time_substituted: bool = False


@dataclass
class EntryBlock:
    time: TimeOfDay
    heading: str
    lines: list[str]

    @property
    def class_name(self) -> str:
        match = SCHEDULE_NOTE_PATTERN.match(self.heading)
        return match.group(1).strip() if match else self.heading

    @property
    def note(self) -> str:
        match = SCHEDULE_NOTE_PATTERN.match(self.heading)
        return match.group(2).strip() if match else ""


@dataclass
class DayPlan:
    header_lines: list[str] | None
    preamble: list[str]
    blocks: list[EntryBlock] = field(default_factory=list)

    def render(self) -> str:
        lines: list[str] = []
        if self.header_lines is not None:
            lines.extend([DELIMITER, *self.header_lines, DELIMITER])
        lines.extend(self.preamble)
        for block in self.blocks:
            if lines:
                lines.append("")
            lines.extend(block.lines)
            lines.extend(["", DELIMITER])
        return "\n".join(lines) + "\n"


@dataclass
class ClassEntry:
    class_name: str
    time: str
    unit: str = ""
    day_number: int = 0
    total_days: int = 0
    schedule_note: str = ""


@dataclass
class DailyPlanSummary:
    date: date
    day_of_week: str
    classes: list[str]
    document_id: str


def _strip_trailing(lines: list[str], *, delimiters: bool) -> list[str]:
    trimmed = list(lines)
    while trimmed and (
        not trimmed[-1].strip() or (delimiters and trimmed[-1].strip() == DELIMITER)
    ):
        trimmed.pop()
    return trimmed


def _header_lines(day: date) -> list[str]:
    return [
        f"date: {json.dumps(day.isoformat())}",
        f"day_of_week: {json.dumps(weekday_name(day))}",
        "classes: []",
    ]


def new_day_plan(day: date) -> str:
    title = f"# {weekday_name(day)}, {day.strftime('%B')} {day.day}, {day.year}"
    return DayPlan(header_lines=_header_lines(day), preamble=["", title]).render()


def parse_day_plan(text: str, codec: TimeCodec | None = None) -> DayPlan:
    codec = codec or TimeCodec()
    header_lines, body_lines = split_frontmatter(text)

    header_positions = [
        idx for idx, line in enumerate(body_lines) if ENTRY_HEADER_PATTERN.match(line)
    ]
    if not header_positions:
        return DayPlan(header_lines, _strip_trailing(body_lines, delimiters=False))

    preamble = _strip_trailing(body_lines[: header_positions[0]], delimiters=False)
    blocks: list[EntryBlock] = []
    for pos, start in enumerate(header_positions):
        end = (
            header_positions[pos + 1]
            if pos + 1 < len(header_positions)
            else len(body_lines)
        )
        match = ENTRY_HEADER_PATTERN.match(body_lines[start])
        time_value, _ = codec.normalize_or_sentinel(match.group(1))
        blocks.append(
            EntryBlock(
                time=time_value,
                heading=match.group(2),
                lines=_strip_trailing(body_lines[start:end], delimiters=True),
            )
        )
    return DayPlan(header_lines, preamble, blocks)


def render_entry(
    class_name: str,
    unit_name: str,
    index: int,
    total: int,
    time_text: str,
    note: str = "",
) -> list[str]:
    return [
        f"## {time_text} - {class_name}{note}",
        "",
        f"**Unit:** [[{unit_name}]]",
        f"**Day:** {index} of {total}",
    ]


def _resolve_names(plan: DayPlan, listed: list[str]) -> list[str]:
    """Class name of each block, preferring exact names from the ``classes`` list."""
    return [
        block.heading if block.heading in listed else block.class_name
        for block in plan.blocks
    ]


def merge_entry(
    text: str | None,
    day: date,
    class_name: str,
    unit_name: str,
    index: int,
    total: int,
    time_text: str,
    note: str = "",
    *,
    codec: TimeCodec | None = None,
) -> MergeOutcome:
    """Insert one class entry into a day plan, keeping blocks in time order.

    ``text=None`` starts from a fresh skeleton. A block already naming
    ``class_name`` leaves the text untouched (``skipped_duplicate``). An
    existing block at the same time is reported as a conflict but does not
    block the insert.
    """
    codec = codec or TimeCodec()
    created = text is None
    source = new_day_plan(day) if created else text
    plan = parse_day_plan(source, codec)
    listed = get_list(read_frontmatter(source), "classes")

    existing = _resolve_names(plan, listed)
    if class_name in existing or any(b.heading == class_name for b in plan.blocks):
        log.info("%s already scheduled on %s; skipping", class_name, day.isoformat())
        return MergeOutcome(status=MergeStatus.SKIPPED_DUPLICATE, text=source)

    new_time, valid = codec.normalize_or_sentinel(time_text)
    conflict = any(block.time.minutes == new_time.minutes for block in plan.blocks)
    if conflict:
        log.warning(
            "Schedule conflict on %s: %s at %s overlaps an existing entry",
            day.isoformat(),
            class_name,
            new_time.text,
        )

    later = [
        (block.time.minutes, pos)
        for pos, block in enumerate(plan.blocks)
        if block.time.minutes > new_time.minutes
    ]
    insert_at = min(later)[1] if later else len(plan.blocks)
    plan.blocks.insert(
        insert_at,
        EntryBlock(
            time=new_time,
            heading=f"{class_name}{note}",
            lines=render_entry(class_name, unit_name, index, total, new_time.text, note),
        ),
    )

    if plan.header_lines is None:
        plan.header_lines = _header_lines(day)
    names = sorted(set(_resolve_names(plan, [*listed, class_name])))
    rendered = set_list_field(plan.render(), "classes", names)

    return MergeOutcome(
        status=MergeStatus.CREATED if created else MergeStatus.MUTATED,
        text=rendered,
        conflict=conflict,
        time_substituted=not valid,
    )


def extract_entries(text: str) -> list[ClassEntry]:
    entries: list[ClassEntry] = []
    for block in parse_day_plan(text).blocks:
        entry = ClassEntry(
            class_name=block.class_name,
            time=block.time.text,
            schedule_note=block.note,
        )
        for line in block.lines[1:]:
            unit_match = UNIT_LINE_PATTERN.search(line)
            if unit_match:
                entry.unit = unit_match.group(1)
            day_match = DAY_LINE_PATTERN.search(line)
            if day_match:
                entry.day_number = int(day_match.group(1))
                entry.total_days = int(day_match.group(2))
        entries.append(entry)
    return entries


def summarize_day_plan(text: str, document_id: str) -> DailyPlanSummary | None:
    match = DAILY_PLAN_ID_PATTERN.search(document_id)
    if not match:
        return None
    try:
        day = date.fromisoformat(match.group(1))
    except ValueError:
        log.warning("Ignoring day plan with invalid date: %s", document_id)
        return None
    fields = read_frontmatter(text)
    return DailyPlanSummary(
        date=day,
        day_of_week=get_string(fields, "day_of_week") or "",
        classes=get_list(fields, "classes"),
        document_id=document_id,
    )
