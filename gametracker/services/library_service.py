"""Business logic for the tracked-games library."""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..exceptions import StorageFailure, ValidationError
from ..models import (
    MAX_SCREENSHOTS, apply_defaults, clean_updates, derive_id, from_catalog,
    name_list, now_ms, sanitize_record, validate_new,
)
from ..repositories.base import GameRepository


class LibraryStore:
    """CRUD over tracked games with per-call failover between two backends.

    Every operation runs against the *primary* backend first.  If that call
    raises, the same logical operation is retried against the *fallback* and
    its result is returned; the primary's failure is only logged.  Nothing is
    remembered between calls, so a recovered primary is used again by the
    next call.  The two backends are never synchronised.

    Rules
    -----
    * ``add`` is an upsert by derived id: re-adding a game replaces it.
    * ``update`` is a shallow merge: list and dict fields in the update
      replace the stored value whole.
    * Not-found is signalled by ``None`` / ``False``, never by an exception.
    * :class:`~gametracker.exceptions.StorageFailure` is raised only when
      both backends failed.
    """

    def __init__(self, primary: Optional[GameRepository],
                 fallback: GameRepository) -> None:
        self._primary = primary
        self._fallback = fallback
        self._log = logging.getLogger('tracker.store')

    @property
    def backends(self) -> List[str]:
        names = [self._primary.name] if self._primary is not None else []
        return names + [self._fallback.name]

    def _run(self, operation: str, action: Callable[[GameRepository], Any]) -> Any:
        if self._primary is not None:
            try:
                return action(self._primary)
            except ValidationError:
                raise
            except Exception as exc:
                self._log.warning("%s failed on %s backend (%s), falling back to %s",
                                  operation, self._primary.name, exc, self._fallback.name)
        try:
            return action(self._fallback)
        except ValidationError:
            raise
        except Exception as exc:
            self._log.error("%s failed on %s backend: %s",
                            operation, self._fallback.name, exc)
            raise StorageFailure(f"{operation} failed on every backend: {exc}") from exc

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def add(self, candidate: Dict[str, Any]) -> Dict[str, Any]:
        """Add a catalog search result (or TrackedGame-shaped dict).

        Returns:
            The stored record, with ``id`` and ``storedAt`` assigned.

        Raises:
            ValidationError: missing ``catalogId``/``name`` and friends.
            StorageFailure:  neither backend accepted the write.
        """
        if not isinstance(candidate, dict):
            raise ValidationError("game must be an object")
        record = from_catalog(candidate)
        validate_new(record)
        record['id'] = derive_id(candidate)
        record['storedAt'] = now_ms()
        apply_defaults(record)

        def _put(repo: GameRepository) -> Dict[str, Any]:
            repo.put(record)
            return record

        self._log.info("Adding game %s (%s)", record['id'], record['name'])
        return sanitize_record(self._run('add', _put))

    def list(self) -> List[Dict[str, Any]]:
        """Return every tracked game; ordering is the caller's concern."""
        raw = self._run('list', lambda repo: repo.list_all())
        return [r for r in (sanitize_record(item) for item in raw) if r is not None]

    def get_by_id(self, game_id: str) -> Optional[Dict[str, Any]]:
        """Return the record for *game_id*, or ``None`` when not tracked."""
        return sanitize_record(self._run('get', lambda repo: repo.get(str(game_id))))

    def update(self, game_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Shallow-merge *fields* into the record for *game_id*.

        ``id`` and ``storedAt`` cannot be changed.  Moving a game to
        ``completed`` stamps ``dateCompleted`` unless one is already known.
        The record is read and merged once; only the write goes through the
        primary-then-fallback path.

        Returns:
            The updated record, or ``None`` when *game_id* is not tracked.
        """
        updates = clean_updates(fields)
        current = self.get_by_id(game_id)
        if current is None:
            self._log.info("Update skipped, game %s not found", game_id)
            return None

        merged = {**current, **updates}
        if (updates.get('status') == 'completed'
                and 'dateCompleted' not in updates
                and not current.get('dateCompleted')):
            merged['dateCompleted'] = now_ms()

        # put is an upsert, so a fallback that never saw the record still takes it
        self._run('update', lambda repo: repo.put(merged))
        return sanitize_record(merged)

    def delete(self, game_id: str) -> bool:
        """Hard-delete *game_id*; ``False`` if it was not tracked."""
        return self._run('delete', lambda repo: repo.delete(str(game_id)))

    # ------------------------------------------------------------------
    # Screenshots and tags
    # ------------------------------------------------------------------

    def add_screenshots(self, game_id: str, urls: List[str]) -> Optional[Dict[str, Any]]:
        """Append screenshot *urls* to a game.

        Raises:
            ValidationError: the total would exceed ``MAX_SCREENSHOTS``; the
                stored list is left unchanged.
        """
        if not isinstance(urls, list) or not all(isinstance(u, str) and u for u in urls):
            raise ValidationError("urls must be a list of non-empty strings")
        current = self.get_by_id(game_id)
        if current is None:
            return None
        if len(current['screenshots']) + len(urls) > MAX_SCREENSHOTS:
            raise ValidationError(
                f"a game can hold at most {MAX_SCREENSHOTS} screenshots "
                f"({len(current['screenshots'])} already stored)")
        return self.update(game_id, {'screenshots': current['screenshots'] + urls})

    def remove_screenshot(self, game_id: str, url: str) -> Optional[Dict[str, Any]]:
        current = self.get_by_id(game_id)
        if current is None:
            return None
        remaining = [s for s in current['screenshots'] if s != url]
        return self.update(game_id, {'screenshots': remaining})

    def add_tag(self, game_id: str, tag: str) -> bool:
        """Add *tag* to a game; ``False`` if blank, duplicate or game missing."""
        tag = (tag or '').strip()
        current = self.get_by_id(game_id)
        if not tag or current is None or tag in current['tags']:
            return False
        return self.update(game_id, {'tags': current['tags'] + [tag]}) is not None

    def remove_tag(self, game_id: str, tag: str) -> bool:
        current = self.get_by_id(game_id)
        if current is None or tag not in current['tags']:
            return False
        remaining = [t for t in current['tags'] if t != tag]
        return self.update(game_id, {'tags': remaining}) is not None

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def bulk_update(self, game_ids: Iterable[str],
                    fields: Dict[str, Any]) -> Dict[str, bool]:
        """Apply the same partial update to several games.

        Each id is processed independently; a storage failure on one id is
        logged and reported as ``False`` for that id only.
        """
        clean_updates(fields)  # reject a bad body before touching anything
        results: Dict[str, bool] = {}
        for gid in game_ids:
            try:
                results[str(gid)] = self.update(gid, fields) is not None
            except StorageFailure as exc:
                self._log.error("Bulk update of %s failed: %s", gid, exc)
                results[str(gid)] = False
        return results

    def bulk_delete(self, game_ids: Iterable[str]) -> Dict[str, bool]:
        results: Dict[str, bool] = {}
        for gid in game_ids:
            try:
                results[str(gid)] = self.delete(gid)
            except StorageFailure as exc:
                self._log.error("Bulk delete of %s failed: %s", gid, exc)
                results[str(gid)] = False
        return results


# ----------------------------------------------------------------------
# Library views
# ----------------------------------------------------------------------

SORT_KEYS = ('recent', 'name', 'favorites')


def filter_games(games: List[Dict], status: Optional[str] = None,
                 genre: Optional[str] = None, query: Optional[str] = None,
                 min_rating: Optional[int] = None) -> List[Dict]:
    """Return the games matching every supplied criterion."""
    result = list(games)
    if status:
        result = [g for g in result if g.get('status') == status]
    if genre:
        result = [g for g in result if genre in name_list(g.get('genres'))]
    if query:
        needle = query.lower()
        result = [g for g in result if needle in str(g.get('name', '')).lower()]
    if min_rating:
        result = [g for g in result
                  if isinstance(g.get('userRating'), (int, float))
                  and g['userRating'] >= min_rating]
    return result


def sort_games(games: List[Dict], sort_by: str = 'recent') -> List[Dict]:
    """Sort by ``recent`` (default), ``name`` or ``favorites`` first."""
    def stored_at(g):
        value = g.get('storedAt')
        return value if isinstance(value, (int, float)) else 0

    if sort_by == 'name':
        return sorted(games, key=lambda g: str(g.get('name', '')).lower())
    if sort_by == 'favorites':
        return sorted(games, key=lambda g: (not g.get('isFavorite'), -stored_at(g)))
    return sorted(games, key=stored_at, reverse=True)


def all_genres(games: List[Dict]) -> List[str]:
    """Return a sorted, deduplicated list of every genre in the library."""
    names = set()
    for game in games:
        names.update(name_list(game.get('genres')))
    return sorted(names)


def all_tags(games: List[Dict]) -> List[str]:
    """Return a sorted, deduplicated list of every tag in use."""
    tags = set()
    for game in games:
        tags.update(game.get('tags', []))
    return sorted(tags)
