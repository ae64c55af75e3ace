from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from lesson_planner.errors import InvalidTimeFormat

log = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

# Substituted for malformed or unconfigured class times; always flagged for review.
SENTINEL_TIME = "12:00"


@dataclass(frozen=True, order=True)
class TimeOfDay:
    minutes: int
    text: str = field(compare=False)

    def __str__(self) -> str:
        return self.text


def parse_time(text: str) -> TimeOfDay:
    """Parse ``H:MM``/``HH:MM`` into a minute-of-day value.

    School-day rule: hours 1-7 are afternoon periods (13:00-19:59); hour 0
    and hours 8-23 are taken literally.
    """
    raw = str(text or "").strip()
    match = TIME_PATTERN.match(raw)
    if not match:
        raise InvalidTimeFormat(raw)
    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidTimeFormat(raw)
    if 1 <= hours <= 7:
        hours += 12
    return TimeOfDay(minutes=hours * 60 + minutes, text=raw)


def is_valid_time(text: str) -> bool:
    try:
        parse_time(text)
    except InvalidTimeFormat:
        return False
    return True


class TimeCodec:
    """Memoizing wrapper around :func:`parse_time`."""

    def __init__(self):
        self._cache: dict[str, TimeOfDay] = {}

    def normalize(self, text: str) -> TimeOfDay:
        key = str(text or "").strip()
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        parsed = parse_time(key)
        self._cache[key] = parsed
        return parsed

    def normalize_or_sentinel(self, text: str) -> tuple[TimeOfDay, bool]:
        try:
            return self.normalize(text), True
        except InvalidTimeFormat as exc:
            log.warning("%s Using %s instead.", exc, SENTINEL_TIME)
            return self.normalize(SENTINEL_TIME), False

    def clear_cache(self) -> None:
        self._cache.clear()
