"""JSON file store for persisted indexes."""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from docretriever.errors import IndexPersistenceError
from docretriever.models import RagIndex, Result

FORMAT_VERSION = 1
INDEX_FILENAME = "rag_index.json"

LOGGER = logging.getLogger(__name__)


class IndexStore:
    """Persistence layer for indexes, one JSON record per project key.

    Records live at ``<root>/indexes/<key>/rag_index.json``. Writes go to a
    temporary file that replaces the record in one step. A record that cannot
    be decoded is copied aside and reported as absent so the caller can
    rebuild it.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @property
    def indexes_dir(self) -> Path:
        return self.root / "indexes"

    def key_dir(self, key: str) -> Path:
        if not key or key in {".", ".."} or "/" in key or "\\" in key or os.sep in key:
            raise ValueError(f"Invalid index key: {key!r}")
        return self.indexes_dir / key

    def index_path(self, key: str) -> Path:
        return self.key_dir(key) / INDEX_FILENAME

    def save(self, key: str, index: RagIndex) -> Result[Path]:
        path = self.index_path(key)
        payload = {"format_version": FORMAT_VERSION, **index.to_dict()}
        tmp_name: Optional[str] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent, prefix=".rag_index.", delete=False
            ) as handle:
                tmp_name = handle.name
                json.dump(payload, handle, ensure_ascii=False, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            LOGGER.error("Error saving index for %s: %s", key, exc)
            if tmp_name is not None and Path(tmp_name).exists():
                Path(tmp_name).unlink()
            return Result.failure(IndexPersistenceError(f"Cannot save index {key}: {exc}"))

        LOGGER.info("Saved index for %s to %s", key, path)
        return Result.success(path)

    def load(self, key: str) -> Optional[RagIndex]:
        path = self.index_path(key)
        if not path.exists():
            LOGGER.info("No index found for %s", key)
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            index = RagIndex.from_dict(data)
        except (ValueError, KeyError, TypeError, AttributeError, RecursionError) as exc:
            self._quarantine(path, exc)
            return None
        except OSError as exc:
            LOGGER.error("Cannot read index %s: %s", path, exc)
            return None

        LOGGER.info(
            "Loaded index for %s: %d documents, %d embedded passages",
            key,
            len(index.documents),
            len(index.embedded_passages),
        )
        return index

    def _quarantine(self, path: Path, reason: Exception) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        backup = path.with_name(f"{path.name}.{stamp}.bak")
        try:
            shutil.copy2(path, backup)
        except OSError as exc:
            LOGGER.error("Corrupt index %s could not be backed up: %s", path, exc)
            return
        LOGGER.warning("Corrupt index %s (%s); copied to %s", path, reason, backup)

    def exists(self, key: str) -> bool:
        return self.index_path(key).exists()

    def size(self, key: str) -> int:
        path = self.index_path(key)
        return path.stat().st_size if path.exists() else 0

    def delete(self, key: str) -> Result[None]:
        directory = self.key_dir(key)
        if not directory.exists():
            return Result.success()
        try:
            shutil.rmtree(directory)
        except OSError as exc:
            LOGGER.error("Error deleting index for %s: %s", key, exc)
            return Result.failure(IndexPersistenceError(f"Cannot delete index {key}: {exc}"))
        LOGGER.info("Deleted index for %s", key)
        return Result.success()

    def list_keys(self) -> List[str]:
        if not self.indexes_dir.exists():
            return []
        return sorted(child.name for child in self.indexes_dir.iterdir() if child.is_dir())

    def clear_all(self) -> Result[None]:
        if not self.indexes_dir.exists():
            return Result.success()
        try:
            shutil.rmtree(self.indexes_dir)
        except OSError as exc:
            LOGGER.error("Error clearing cached indexes: %s", exc)
            return Result.failure(IndexPersistenceError(f"Cannot clear indexes: {exc}"))
        LOGGER.info("Cleared all cached indexes")
        return Result.success()
