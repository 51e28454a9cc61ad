"""TrackedGame record helpers.

A tracked game is kept as a plain JSON-compatible ``dict`` whose keys are the
persisted field names (``id``, ``catalogId``, ``name``, ``backgroundImage``,
``released``, ``ratingExternal``, ``metacritic``, ``genres``, ``platforms``,
``storedAt``, ``status``, ``isFavorite``, ``userRating``, ``notes``, ``tags``,
``hoursPlayed``, ``dateCompleted``, ``screenshots``).  The functions below
normalise catalog payloads into that shape, validate writes and sanitise
records on every read path.
"""
import re
import time
from typing import Any, Dict, List, Optional

from .exceptions import ValidationError

STATUSES = ('playing', 'completed', 'backlog', 'dropped', 'wishlist')
MAX_SCREENSHOTS = 10

# User-owned fields carried over verbatim when present on a candidate
_USER_FIELDS = (
    'status', 'isFavorite', 'userRating', 'notes', 'tags', 'hoursPlayed',
    'dateCompleted', 'screenshots', 'storedAt',
)

_YEAR_RE = re.compile(r'\b(19|20)\d{2}\b')


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def _as_int(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _entry_name(entry) -> Optional[str]:
    """Return the display name of a genre/platform entry, or ``None``."""
    if isinstance(entry, str):
        return entry or None
    if isinstance(entry, dict):
        name = entry.get('name')
        if name is None and isinstance(entry.get('platform'), dict):
            # Catalog list results nest platforms as {"platform": {...}}
            name = entry['platform'].get('name')
        if isinstance(name, str) and name:
            return name
    return None


def name_list(items) -> List[str]:
    """Return the names of a genre/platform list, skipping malformed entries."""
    if not isinstance(items, list):
        return []
    names = []
    for entry in items:
        name = _entry_name(entry)
        if name is not None:
            names.append(name)
    return names


def _named_entries(items) -> List[Dict[str, Any]]:
    """Normalise genre/platform entries to ``{id, name}`` with unique names."""
    if not isinstance(items, list):
        return []
    seen = set()
    result = []
    for entry in items:
        name = _entry_name(entry)
        if name is None or name in seen:
            continue
        seen.add(name)
        if isinstance(entry, dict):
            source = entry.get('platform') if 'name' not in entry else entry
            entry_id = source.get('id') if isinstance(source, dict) else None
        else:
            entry_id = None
        result.append({'id': entry_id, 'name': name})
    return result


def release_year(value) -> Optional[int]:
    """Extract a 4-digit year from a release date such as ``'2020-05-01'``."""
    if _is_number(value):
        return int(value)
    if not isinstance(value, str) or not value:
        return None
    m = _YEAR_RE.search(value)
    return int(m.group(0)) if m else None


def _unique_strings(values) -> List[str]:
    if not isinstance(values, list):
        return []
    result: List[str] = []
    for value in values:
        if isinstance(value, str) and value not in result:
            result.append(value)
    return result


def catalog_id_of(game: Dict[str, Any]) -> Optional[int]:
    """Return the numeric catalog id of a TrackedGame or catalog summary."""
    if 'catalogId' in game:
        return _as_int(game.get('catalogId'))
    raw_id = game.get('id')
    # Store ids are strings; only a real int ``id`` is a catalog id
    if isinstance(raw_id, int) and not isinstance(raw_id, bool):
        return raw_id
    return None


def from_catalog(game: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise a catalog summary or a TrackedGame-shaped dict.

    Accepts both the catalog's snake_case keys (``background_image``,
    ``rating``, nested ``platforms[].platform``) and the persisted camelCase
    keys.  Keys that are not part of the TrackedGame model are dropped.
    """
    record: Dict[str, Any] = {}
    catalog_id = catalog_id_of(game)
    if catalog_id is not None:
        record['catalogId'] = catalog_id
    if isinstance(game.get('name'), str):
        record['name'] = game['name']

    image = game.get('backgroundImage', game.get('background_image'))
    if image:
        record['backgroundImage'] = image
    if game.get('released'):
        record['released'] = game['released']
    rating = game.get('ratingExternal', game.get('rating'))
    if _is_number(rating):
        record['ratingExternal'] = rating
    if _is_number(game.get('metacritic')):
        record['metacritic'] = game['metacritic']
    record['genres'] = _named_entries(game.get('genres'))
    record['platforms'] = _named_entries(game.get('platforms'))

    for key in _USER_FIELDS:
        if game.get(key) is not None:
            record[key] = game[key]
    return record


def derive_id(game: Dict[str, Any]) -> str:
    """Catalog id first, then slug, then the current epoch millis."""
    catalog_id = catalog_id_of(game)
    if catalog_id:
        return str(catalog_id)
    slug = game.get('slug')
    if isinstance(slug, str) and slug:
        return slug
    return str(now_ms())


def _check_status(status) -> None:
    if status is not None and status not in STATUSES:
        raise ValidationError(
            f"status must be one of {', '.join(STATUSES)} (got {status!r})")


def _check_screenshots(screenshots) -> None:
    if screenshots is None:
        return
    if not isinstance(screenshots, list):
        raise ValidationError("screenshots must be a list of URLs")
    if len(screenshots) > MAX_SCREENSHOTS:
        raise ValidationError(
            f"a game can hold at most {MAX_SCREENSHOTS} screenshots")


def validate_new(record: Dict[str, Any]) -> None:
    """Reject a normalised record that cannot be added to the library.

    Raises:
        ValidationError: ``catalogId`` missing, ``name`` missing/blank,
            unknown ``status`` or more than ``MAX_SCREENSHOTS`` screenshots.
    """
    if record.get('catalogId') is None:
        raise ValidationError("catalogId is required")
    name = record.get('name')
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required")
    _check_status(record.get('status'))
    _check_screenshots(record.get('screenshots'))


def _clamp_hours(value) -> float:
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return 0
    return max(0, hours)


def apply_defaults(record: Dict[str, Any]) -> Dict[str, Any]:
    record.setdefault('isFavorite', False)
    record['tags'] = _unique_strings(record.get('tags', []))
    record['hoursPlayed'] = _clamp_hours(record.get('hoursPlayed', 0))
    record['screenshots'] = [s for s in record.get('screenshots', [])
                             if isinstance(s, str)]
    return record


def clean_updates(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise a sparse update before it is merged into a record.

    ``id`` and ``storedAt`` are immutable and silently dropped;
    ``hoursPlayed`` is clamped to >= 0; tags are deduplicated strings.

    Raises:
        ValidationError: malformed update body, blank ``name``, non-integer
            ``catalogId``, unknown status or a screenshot list longer than
            ``MAX_SCREENSHOTS``.
    """
    if not isinstance(fields, dict):
        raise ValidationError("update body must be an object")
    updates = dict(fields)
    updates.pop('id', None)
    updates.pop('storedAt', None)

    if 'name' in updates:
        name = updates['name']
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name must be a non-empty string")
    if 'catalogId' in updates:
        catalog_id = _as_int(updates['catalogId'])
        if catalog_id is None:
            raise ValidationError("catalogId must be an integer")
        updates['catalogId'] = catalog_id
    if 'status' in updates:
        _check_status(updates['status'])
    if 'hoursPlayed' in updates:
        updates['hoursPlayed'] = _clamp_hours(updates['hoursPlayed'])
    if 'tags' in updates:
        if not isinstance(updates['tags'], list):
            raise ValidationError("tags must be a list of strings")
        updates['tags'] = _unique_strings(
            [t.strip() for t in updates['tags'] if isinstance(t, str) and t.strip()])
    if 'screenshots' in updates:
        _check_screenshots(updates['screenshots'])
        updates['screenshots'] = [s for s in updates['screenshots'] if isinstance(s, str)]
    return updates


def sanitize_record(raw) -> Optional[Dict[str, Any]]:
    """Read-time sanitation applied to every record leaving a backend.

    Legacy data may hold non-string tags or screenshot entries; those are
    dropped silently.  Returns ``None`` for anything that is not a dict.
    """
    if not isinstance(raw, dict):
        return None
    record = dict(raw)
    if record.get('id') is not None:
        record['id'] = str(record['id'])
    record['tags'] = _unique_strings(record.get('tags'))
    shots = record.get('screenshots')
    record['screenshots'] = ([s for s in shots if isinstance(s, str)]
                             if isinstance(shots, list) else [])
    record['isFavorite'] = bool(record.get('isFavorite', False))
    if not _is_number(record.get('hoursPlayed')):
        record['hoursPlayed'] = 0
    return record
