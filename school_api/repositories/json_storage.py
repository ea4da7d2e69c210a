"""
JSON file backup for the in-memory store.

Only students are persisted; users and messages kept by the memory store
are lost on restart. The file always holds the full collection and is
rewritten on every save.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from school_api.db.models import Student

logger = logging.getLogger(__name__)

_students_adapter = TypeAdapter(list[Student])


class LoadStatus(enum.Enum):
    LOADED = "loaded"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class LoadResult:
    status: LoadStatus
    students: list[Student] = field(default_factory=list)
    error: Exception | None = None


class StudentBackup:
    """Keeps an in-memory copy of the student collection and mirrors it to a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._cache: list[dict] = []

    def save(self, students: list[Student]) -> bool:
        """
        Replace the cached collection and overwrite the backup file.

        Failures are logged and reported through the return value only;
        callers keep going with their in-memory state.
        """
        try:
            payload = [s.model_dump(mode="json", by_alias=True) for s in students]
            self._cache = payload
            self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        except (OSError, TypeError, ValueError):
            logger.exception("Error saving students to %s", self.path)
            return False
        logger.info("Saved %d students to permanent storage", len(students))
        return True

    def load(self) -> LoadResult:
        if self._cache:
            return LoadResult(LoadStatus.LOADED, _students_adapter.validate_python(self._cache))

        if not self.path.exists():
            return LoadResult(LoadStatus.EMPTY)
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            students = _students_adapter.validate_python(raw)
        except (OSError, ValueError, ValidationError) as exc:
            # truncated writes end up here as JSONDecodeError
            logger.warning("Could not read student backup %s: %s", self.path, exc)
            return LoadResult(LoadStatus.FAILED, error=exc)

        if not students:
            return LoadResult(LoadStatus.EMPTY)
        self._cache = [s.model_dump(mode="json", by_alias=True) for s in students]
        return LoadResult(LoadStatus.LOADED, students)
