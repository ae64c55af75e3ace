"""Field grammars for the markdown documents in a planning root.

Documents carry a YAML header between ``---`` lines. Readers here fail soft:
a malformed header or field reads as absent and logs a warning. Writers only
touch the one line they update so hand-edited headers survive.
"""
from __future__ import annotations

import json
import logging
import re
from datetime import date
from typing import Any

log = logging.getLogger(__name__)

DELIMITER = "---"
BULLETED_DATE_PATTERN = re.compile(r"^- (\d{4}-\d{2}-\d{2})")


def _load_yaml_module():
    try:
        import yaml
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "PyYAML is required to read planning documents. "
            "Install dependencies (e.g., `pip install -e .`)."
        ) from exc
    return yaml


def split_frontmatter(text: str) -> tuple[list[str] | None, list[str]]:
    """Return ``(header_lines, body_lines)``; header lines exclude the delimiters."""
    lines = text.split("\n")
    if not lines or lines[0].strip() != DELIMITER:
        return None, lines
    for idx in range(1, len(lines)):
        if lines[idx].strip() == DELIMITER:
            return lines[1:idx], lines[idx + 1:]
    return None, lines


def join_frontmatter(header_lines: list[str], body_lines: list[str]) -> str:
    return "\n".join([DELIMITER, *header_lines, DELIMITER, *body_lines])


def read_frontmatter(text: str | None) -> dict[str, Any]:
    if not text:
        return {}
    header_lines, _ = split_frontmatter(text)
    if header_lines is None:
        return {}
    yaml = _load_yaml_module()
    try:
        loaded = yaml.safe_load("\n".join(header_lines))
    except yaml.YAMLError as exc:
        log.warning("Ignoring malformed document header: %s", exc)
        return {}
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        log.warning("Ignoring document header that is not a mapping: %r", loaded)
        return {}
    return loaded


def get_string(fields: dict[str, Any], key: str) -> str | None:
    value = fields.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        # Unquoted times such as 9:00 load as integers under YAML 1.1.
        log.warning("Field `%s` must be a quoted string, got: %r", key, value)
        return None
    value = value.strip()
    return value or None


def get_int(fields: dict[str, Any], key: str) -> int | None:
    value = fields.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    if value is not None:
        log.warning("Field `%s` must be an integer, got: %r", key, value)
    return None


def get_list(fields: dict[str, Any], key: str) -> list[str]:
    value = fields.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        log.warning("Field `%s` must be a bracketed list, got: %r", key, value)
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def render_list(values: list[str]) -> str:
    return "[" + ", ".join(json.dumps(v, ensure_ascii=False) for v in values) + "]"


def _field_span(header_lines: list[str], key: str) -> tuple[int, int] | None:
    prefix = re.compile(rf"^{re.escape(key)}\s*:")
    for start, line in enumerate(header_lines):
        if not prefix.match(line):
            continue
        end = start + 1
        # Block-style sequences and wrapped flow lists continue on indented lines.
        while end < len(header_lines) and (
            header_lines[end].startswith((" ", "\t", "- "))
        ):
            end += 1
        return start, end
    return None


def set_list_field(text: str, key: str, values: list[str]) -> str:
    new_line = f"{key}: {render_list(values)}"
    header_lines, body_lines = split_frontmatter(text)
    if header_lines is None:
        return join_frontmatter([new_line], text.split("\n"))
    span = _field_span(header_lines, key)
    if span is None:
        header_lines = [*header_lines, new_line]
    else:
        start, end = span
        header_lines = [*header_lines[:start], new_line, *header_lines[end:]]
    return join_frontmatter(header_lines, body_lines)


def update_list_field(
    text: str,
    key: str,
    value: str,
    *,
    action: str = "add",
    sort: bool = True,
) -> str:
    if action not in {"add", "remove"}:
        raise ValueError("List update action must be 'add' or 'remove'.")
    current = get_list(read_frontmatter(text), key)
    if action == "add":
        if value in current:
            return text
        updated = [*current, value]
    else:
        if value not in current:
            return text
        updated = [item for item in current if item != value]
    if sort:
        updated = sorted(updated)
    return set_list_field(text, key, updated)


def parse_bulleted_dates(lines: list[str]) -> list[date]:
    dates: list[date] = []
    for line in lines:
        match = BULLETED_DATE_PATTERN.match(line)
        if not match:
            continue
        try:
            dates.append(date.fromisoformat(match.group(1)))
        except ValueError:
            log.warning("Skipping invalid calendar date: %s", match.group(1))
    return dates


def parse_holiday_dates(text: str) -> set[date]:
    return set(parse_bulleted_dates(text.split("\n")))


def parse_special_schedules(text: str) -> dict[str, set[date]]:
    schedules: dict[str, set[date]] = {"early_dismissal": set(), "testing_day": set()}
    current: str | None = None
    _, body_lines = split_frontmatter(text)
    for line in body_lines:
        if line.strip() == DELIMITER:
            break
        if line.startswith("##"):
            lowered = line.lower()
            if "early dismissal" in lowered:
                current = "early_dismissal"
            elif "testing day" in lowered:
                current = "testing_day"
            continue
        if current is not None:
            schedules[current].update(parse_bulleted_dates([line]))
    return schedules
