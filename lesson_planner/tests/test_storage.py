from __future__ import annotations

import pytest

from lesson_planner.storage import DocumentRef, FileDocumentStore


def test_write_read_and_exists(tmp_path):
  store = FileDocumentStore(tmp_path)

  assert store.read("Daily Plans/2026-10-20.md") is None
  assert not store.exists("Daily Plans/2026-10-20.md")
  assert store.write("Daily Plans/2026-10-20.md", "hello\n")
  assert store.exists("Daily Plans/2026-10-20.md")
  assert store.read("Daily Plans/2026-10-20.md") == "hello\n"


def test_create_refuses_to_overwrite(tmp_path):
  store = FileDocumentStore(tmp_path)

  assert store.create("Units/Fractions.md", "first")
  assert store.create("Units/Fractions.md", "second") is False
  assert store.read("Units/Fractions.md") == "first"


def test_list_collection_is_sorted_and_filtered(tmp_path):
  store = FileDocumentStore(tmp_path)
  store.write("Classes/Math.md", "")
  store.write("Classes/Art.md", "")
  store.write("Classes/notes.txt", "")
  (tmp_path / "Classes" / "Archive.md").mkdir()

  assert store.list_collection("Classes") == [
    DocumentRef(id="Classes/Art.md", basename="Art"),
    DocumentRef(id="Classes/Math.md", basename="Math"),
  ]
  assert store.list_collection("Units") == []


def test_ids_cannot_escape_root(tmp_path):
  store = FileDocumentStore(tmp_path / "root")
  with pytest.raises(ValueError):
    store.read("../secrets.md")
  with pytest.raises(ValueError):
    store.write("", "x")


def test_write_failure_is_reported(tmp_path):
  store = FileDocumentStore(tmp_path)
  (tmp_path / "Daily Plans").write_text("not a folder", encoding="utf-8")

  assert store.write("Daily Plans/2026-10-20.md", "x") is False
  assert store.create("Daily Plans/2026-10-21.md", "x") is False
