from __future__ import annotations

import importlib.util
from pathlib import Path

from lesson_planner.config import PlannerConfig
from lesson_planner.storage import FileDocumentStore

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "check_planning_sources.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("check_planning_sources", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _write(root: Path, rel: str, text: str) -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_clean_planning_root_has_no_problems(tmp_path):
    _write(tmp_path, "School Holidays.md", "- 2026-11-26\n")
    _write(tmp_path, "Special Schedules.md", "## Early Dismissal\n- 2026-10-27\n")
    _write(tmp_path, "Units/Fractions.md", "---\nduration_days: 3\n---\n")
    _write(
        tmp_path,
        "Classes/Math.md",
        '---\nday_of_week: "Tuesday"\nregular_time: "9:00"\n'
        'early_dismissal_time: "TBD"\n---\n',
    )

    module = _load_script()

    assert module.collect_problems(FileDocumentStore(tmp_path), PlannerConfig()) == []


def test_problems_are_reported(tmp_path):
    _write(
        tmp_path,
        "Special Schedules.md",
        "## Early Dismissal\n- 2026-10-27\n## Testing Day\n- 2026-10-27\n",
    )
    _write(tmp_path, "Units/Fractions.md", "---\nduration_days: 0\n---\n")
    _write(
        tmp_path,
        "Classes/Math.md",
        '---\nday_of_week: "Tues"\ntesting_day_time: "noonish"\n---\n',
    )

    module = _load_script()
    problems = module.collect_problems(FileDocumentStore(tmp_path), PlannerConfig())

    assert "School Holidays.md: not found" in problems
    assert any("both early dismissal and testing day" in p for p in problems)
    assert "Units/Fractions.md: duration_days must be a positive integer" in problems
    assert any(p.startswith("Classes/Math.md: Invalid day of week") for p in problems)
    assert "Classes/Math.md regular_time: missing" in problems
    assert any("testing_day_time: invalid time 'noonish'" in p for p in problems)
