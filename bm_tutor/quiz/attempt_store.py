"""
Attempt Store - Persists quiz attempts as JSON files.

One file per attempt (`<attempt id>.json`) under ATTEMPTS_DIR. Writes
go to a temporary file first and are then renamed over the target, so
a reader never sees a half-written attempt. Score updates are
last-write-wins.
"""

import re
import uuid
from pathlib import Path

import pydantic

from bm_tutor.config import ATTEMPTS_DIR
from bm_tutor.exceptions import InvalidAttempt, NotFound, UpstreamFailure
from bm_tutor.logging_utils import get_logger
from bm_tutor.quiz.models import QuizAttempt

logger = get_logger(__name__)

_ATTEMPT_ID = re.compile(r"^[0-9a-f]{32}$")


def new_attempt_id() -> str:
    return uuid.uuid4().hex


class JsonAttemptStore:
    """
    File-backed store for QuizAttempt records.

    Example:
        store = JsonAttemptStore()
        store.insert(attempt)
        store.update(attempt.id, score=4, total=6)
        print(store.get_by_id(attempt.id).score)  # 4
    """

    def __init__(self, directory: str | Path | None = None):
        self.directory = Path(directory or ATTEMPTS_DIR)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, attempt_id: str) -> Path | None:
        if not _ATTEMPT_ID.match(attempt_id):
            return None
        return self.directory / f"{attempt_id}.json"

    def _write(self, attempt: QuizAttempt) -> None:
        path = self._path(attempt.id)
        if path is None:
            raise ValueError(f"Malformed attempt id: {attempt.id!r}")

        # One temp file per write; concurrent writers never share an inode
        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp_path.write_text(attempt.model_dump_json(by_alias=True), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise UpstreamFailure(str(e), service="attempt store") from e

    def _read(self, path: Path) -> QuizAttempt:
        try:
            return QuizAttempt.model_validate_json(path.read_text(encoding="utf-8"))
        except pydantic.ValidationError as e:
            raise InvalidAttempt(f"Stored attempt {path.stem} is malformed: {e}") from e

    def insert(self, attempt: QuizAttempt) -> str:
        self._write(attempt)
        logger.info("Saved quiz attempt %s (%s, Tahun %d)", attempt.id, attempt.topic, attempt.year)
        return attempt.id

    def get_by_id(self, attempt_id: str) -> QuizAttempt | None:
        """
        Load an attempt.

        Returns:
            The attempt, or None if no such attempt exists

        Raises:
            InvalidAttempt: If the stored file does not hold a valid attempt
        """
        path = self._path(attempt_id)
        if path is None or not path.exists():
            return None
        return self._read(path)

    def update(self, attempt_id: str, **fields) -> None:
        """
        Overwrite fields of a stored attempt.

        Raises:
            NotFound: If no such attempt exists
        """
        attempt = self.get_by_id(attempt_id)
        if attempt is None:
            raise NotFound(attempt_id)
        self._write(attempt.model_copy(update=fields))

    def list_recent(self, limit: int = 30) -> list[QuizAttempt]:
        """Most recent attempts first; unreadable files are skipped."""
        attempts = []
        for path in self.directory.glob("*.json"):
            try:
                attempts.append(self._read(path))
            except InvalidAttempt as e:
                logger.warning("Skipping %s: %s", path.name, e)
        attempts.sort(key=lambda a: a.created_at, reverse=True)
        return attempts[:limit]
