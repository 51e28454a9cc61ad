"""Local file backend: the whole library as one JSON array."""
from typing import Any, Dict, List, Optional

from ..exceptions import BackendUnavailable
from .base import BaseRepository, GameRepository


class FileGameRepository(BaseRepository, GameRepository):
    """Persists tracked games to a single JSON file.

    Schema::

        [ {"id": "3498", "catalogId": 3498, "name": "...", ...}, ... ]

    The file is re-read on every call and rewritten in full on every
    mutation, so several processes sharing the file see each other's writes.
    A missing or corrupt file reads as an empty library.
    """

    name = 'file'

    def __init__(self, file_path: str = '.games.json') -> None:
        super().__init__(file_path)

    def _records(self) -> List[Dict[str, Any]]:
        data = self._load([])
        if not isinstance(data, list):
            self._log.warning("Ignoring %s: expected a JSON array", self._path)
            return []
        return [r for r in data if isinstance(r, dict)]

    def _write(self, records: List[Dict[str, Any]]) -> None:
        try:
            self._save(records)
        except (OSError, TypeError, ValueError) as exc:
            raise BackendUnavailable(f"cannot write {self._path}: {exc}") from exc

    # ------------------------------------------------------------------
    # GameRepository API
    # ------------------------------------------------------------------

    def list_all(self) -> List[Dict[str, Any]]:
        return self._records()

    def get(self, game_id: str) -> Optional[Dict[str, Any]]:
        gid = str(game_id)
        for record in self._records():
            if str(record.get('id')) == gid:
                return record
        return None

    def put(self, record: Dict[str, Any]) -> None:
        """Replace the record with the same id in place, else insert it first."""
        records = self._records()
        gid = str(record['id'])
        for index, existing in enumerate(records):
            if str(existing.get('id')) == gid:
                records[index] = record
                break
        else:
            records.insert(0, record)
        self._write(records)

    def delete(self, game_id: str) -> bool:
        records = self._records()
        gid = str(game_id)
        remaining = [r for r in records if str(r.get('id')) != gid]
        if len(remaining) == len(records):
            return False
        self._write(remaining)
        return True
