"""Storage backend interface and the JSON-file persistence helper."""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class GameRepository(ABC):
    """Keyed storage of TrackedGame records.

    Implementations raise :class:`~gametracker.exceptions.BackendUnavailable`
    when a call cannot be completed; the library store uses that signal to
    retry the same operation on its fallback backend.
    """

    name = 'abstract'

    @abstractmethod
    def list_all(self) -> List[Dict[str, Any]]:
        """Return every stored record (order unspecified)."""

    @abstractmethod
    def get(self, game_id: str) -> Optional[Dict[str, Any]]:
        """Return the record stored under *game_id*, or ``None``."""

    @abstractmethod
    def put(self, record: Dict[str, Any]) -> None:
        """Create or replace the record keyed by ``record['id']``."""

    @abstractmethod
    def delete(self, game_id: str) -> bool:
        """Remove *game_id*; ``False`` when it was not stored."""


class BaseRepository:
    """Provides JSON-backed persistence for a single data file.

    Sub-classes call :meth:`_load` to read data from disk and :meth:`_save`
    to atomically persist it back.  The atomic write uses a write-then-rename
    strategy so the file is never left in a partially-written state.
    """

    def __init__(self, file_path: str) -> None:
        self._path = file_path
        self._log = logging.getLogger(f'tracker.repository.{type(self).__name__}')

    def _load(self, default: Any) -> Any:
        """Load JSON from *self._path*, returning *default* on missing/corrupt file."""
        if os.path.exists(self._path):
            try:
                with open(self._path, 'r') as fh:
                    return json.load(fh)
            except (json.JSONDecodeError, IOError) as exc:
                self._log.warning("Could not load %s: %s", self._path, exc)
        return default

    def _save(self, data: Any) -> None:
        """Atomically write *data* as JSON to *self._path*."""
        dir_name = os.path.dirname(os.path.abspath(self._path))
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_path, self._path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
