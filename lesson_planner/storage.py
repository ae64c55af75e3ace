from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentRef:
  id: str
  basename: str


class DocumentStore(ABC):
  """Named text documents grouped into collections (folders).

  Ids are opaque, `/`-separated paths. Storage failures are reported as
  `None`/`False`; callers never see backend exceptions.
  """

  @abstractmethod
  def exists(self, doc_id: str) -> bool:
    ...

  @abstractmethod
  def read(self, doc_id: str) -> str | None:
    ...

  @abstractmethod
  def write(self, doc_id: str, text: str) -> bool:
    ...

  @abstractmethod
  def create(self, doc_id: str, text: str) -> bool:
    ...

  @abstractmethod
  def list_collection(self, name: str) -> list[DocumentRef]:
    ...


class FileDocumentStore(DocumentStore):
  def __init__(self, root: str | Path, *, suffix: str = ".md"):
    self.root = Path(root)
    self.suffix = suffix

  def _path(self, doc_id: str) -> Path:
    parts = [p for p in doc_id.split("/") if p not in ("", ".")]
    if not parts or ".." in parts:
      raise ValueError(f"Invalid document id: {doc_id!r}")
    return self.root.joinpath(*parts)

  def exists(self, doc_id: str) -> bool:
    return self._path(doc_id).is_file()

  def read(self, doc_id: str) -> str | None:
    path = self._path(doc_id)
    if not path.is_file():
      return None
    try:
      return path.read_text(encoding="utf-8")
    except OSError as exc:
      log.error(f"Error reading {doc_id}: {exc}")
      return None

  def write(self, doc_id: str, text: str) -> bool:
    path = self._path(doc_id)
    try:
      path.parent.mkdir(parents=True, exist_ok=True)
      path.write_text(text, encoding="utf-8")
    except OSError as exc:
      log.error(f"Error writing {doc_id}: {exc}")
      return False
    return True

  def create(self, doc_id: str, text: str) -> bool:
    path = self._path(doc_id)
    try:
      path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
      log.error(f"Error creating {doc_id}: {exc}")
      return False
    try:
      with path.open("x", encoding="utf-8") as handle:
        handle.write(text)
    except FileExistsError:
      log.error(f"Refusing to create {doc_id}: document already exists")
      return False
    except OSError as exc:
      log.error(f"Error creating {doc_id}: {exc}")
      return False
    return True

  def list_collection(self, name: str) -> list[DocumentRef]:
    folder = self._path(name)
    if not folder.is_dir():
      return []
    refs = [
      DocumentRef(id=f"{name.strip('/')}/{child.name}", basename=child.stem)
      for child in folder.iterdir()
      if child.is_file() and child.suffix == self.suffix
    ]
    return sorted(refs, key=lambda ref: ref.basename)
