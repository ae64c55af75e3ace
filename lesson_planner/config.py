from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from lesson_planner.frontmatter import _load_yaml_module

log = logging.getLogger(__name__)

ROOT_ENV_VAR = "LESSON_PLANNING_ROOT"


@dataclass
class PlannerConfig:
    root: str = "20 Lesson Planning"
    daily_plans_folder: str = "Daily Plans"
    units_folder: str = "Units"
    classes_folder: str = "Classes"
    holidays_document: str = "School Holidays.md"
    special_schedules_document: str = "Special Schedules.md"
    cache_ttl_seconds: float = 300.0
    max_lookahead_weeks: int = 520

    def daily_plan_id(self, day: date) -> str:
        return f"{self.daily_plans_folder}/{day.isoformat()}.md"


_FIELD_TYPES = {
    "root": (str,),
    "daily_plans_folder": (str,),
    "units_folder": (str,),
    "classes_folder": (str,),
    "holidays_document": (str,),
    "special_schedules_document": (str,),
    "cache_ttl_seconds": (int, float),
    "max_lookahead_weeks": (int,),
}


def config_from_mapping(raw: dict[str, Any]) -> PlannerConfig:
    if not isinstance(raw, dict):
        raise ValueError("Planner config must be a mapping/object at the top level.")
    unknown = sorted(set(raw) - set(_FIELD_TYPES))
    if unknown:
        raise ValueError(f"Unknown planner config keys: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, value in raw.items():
        expected = _FIELD_TYPES[key]
        # bool is an int subclass; reject it for numeric settings.
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ValueError(f"`{key}` has invalid value: {value!r}")
        values[key] = value

    config = PlannerConfig(**values)
    if config.cache_ttl_seconds < 0:
        raise ValueError("`cache_ttl_seconds` must be zero or positive.")
    if config.max_lookahead_weeks < 1:
        raise ValueError("`max_lookahead_weeks` must be at least 1.")
    return config


def load_config(path: str | Path | None = None) -> PlannerConfig:
    raw: dict[str, Any] = {}
    if path is not None:
        yaml = _load_yaml_module()
        try:
            loaded = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ValueError(f"Planner config is not valid YAML: {exc}") from exc
        if loaded is not None:
            raw = loaded
    config = config_from_mapping(raw)

    env_root = os.environ.get(ROOT_ENV_VAR)
    if env_root:
        log.debug("Using planning root from %s: %s", ROOT_ENV_VAR, env_root)
        config = dataclasses.replace(config, root=env_root)
    return config
