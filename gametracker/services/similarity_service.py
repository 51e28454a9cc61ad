"""Similar-game scoring.

Ranks a candidate pool against one reference game using four independent
signals:

* Genre overlap (ratio of shared genres, up to 50 points)
* Platform overlap (ratio of shared platforms, up to 30 points)
* External rating within 1.5 stars (flat 20 points)
* Release year within 2 years (flat 10 points)

Scoring is pure and deterministic; the only I/O lives in
:func:`build_candidate_pool`, which enriches library items with live catalog
data before they are scored.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Tuple

from ..models import catalog_id_of, from_catalog, name_list, release_year

logger = logging.getLogger('tracker.similarity')

# ---------------------------------------------------------------------------
# Scoring constants
# ---------------------------------------------------------------------------
_GENRE_WEIGHT     = 50
_PLATFORM_WEIGHT  = 30
_RATING_BONUS     = 20
_YEAR_BONUS       = 10
_MAX_RATING_DIFF  = 1.5
_MAX_YEAR_DIFF    = 2
_MAX_SCORE        = 100
_POPULAR_LIMIT    = 100   # trending titles added to the candidate pool

SOURCE_COLLECTION = 'collection'
SOURCE_POPULAR    = 'popular'


def _same_game(reference: Dict[str, Any], candidate: Dict[str, Any]) -> bool:
    """Identity by catalog id when both sides have one, else by store id."""
    ref_cat, cand_cat = catalog_id_of(reference), catalog_id_of(candidate)
    if ref_cat is not None and cand_cat is not None:
        return ref_cat == cand_cat
    ref_id, cand_id = reference.get('id'), candidate.get('id')
    return ref_id is not None and cand_id is not None and str(ref_id) == str(cand_id)


def _rating(game: Dict[str, Any]) -> Optional[float]:
    value = game.get('ratingExternal', game.get('rating'))
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value:
        return None
    return float(value)


def _overlap(ref_names: List[str], cand_names: List[str]) -> Tuple[float, List[str]]:
    """Return ``(|common| / max(len), common)``, comparing names case-insensitively.

    Both sides are deduplicated by lower-cased name before counting.  Common
    names keep the reference game's spelling and order.
    """
    ref_lower: Dict[str, str] = {}
    for name in ref_names:
        ref_lower.setdefault(name.lower(), name)
    cand_lower = {n.lower() for n in cand_names}
    common = [name for key, name in ref_lower.items() if key in cand_lower]
    if not common:
        return 0.0, []
    return len(common) / max(len(ref_lower), len(cand_lower)), common


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_similarity(reference: Dict[str, Any],
                         candidate: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Score *candidate* against *reference*.

    Returns:
        A shallow copy of *candidate* with ``matchScore`` (int, 0–100) and
        ``matchReasons`` (list of str), or ``None`` when the candidate is the
        reference itself or shares nothing with it.
    """
    if _same_game(reference, candidate):
        return None

    score = 0.0
    reasons: List[str] = []

    ratio, common = _overlap(name_list(reference.get('genres')),
                             name_list(candidate.get('genres')))
    if common:
        score += ratio * _GENRE_WEIGHT
        plural = 's' if len(common) > 1 else ''
        reasons.append(f'{len(common)} shared genre{plural}')

    ratio, common = _overlap(name_list(reference.get('platforms')),
                             name_list(candidate.get('platforms')))
    if common:
        score += ratio * _PLATFORM_WEIGHT
        reasons.append(f'Available on {common[0]}')

    ref_rating, cand_rating = _rating(reference), _rating(candidate)
    if ref_rating is not None and cand_rating is not None:
        if abs(ref_rating - cand_rating) <= _MAX_RATING_DIFF:
            score += _RATING_BONUS
            reasons.append(f'Similar rating ({cand_rating:.1f})')

    ref_year, cand_year = release_year(reference.get('released')), release_year(candidate.get('released'))
    if ref_year is not None and cand_year is not None:
        if abs(ref_year - cand_year) <= _MAX_YEAR_DIFF:
            score += _YEAR_BONUS
            reasons.append(f'Released {cand_year}')

    if score == 0 or not reasons:
        return None

    result = dict(candidate)
    result['matchScore'] = min(_MAX_SCORE, _round_half_up(score))
    result['matchReasons'] = reasons
    return result


def find_similar(reference: Dict[str, Any], candidates: List[Dict[str, Any]],
                 limit: int = 5) -> List[Dict[str, Any]]:
    """Return the *limit* candidates most similar to *reference*.

    Candidates scoring 0 never appear.  Ties keep their input order.
    """
    scored = []
    for candidate in candidates or []:
        if not isinstance(candidate, dict):
            continue
        match = calculate_similarity(reference, candidate)
        if match is not None:
            scored.append(match)
    scored.sort(key=lambda g: g['matchScore'], reverse=True)
    return scored[:max(0, limit)]


# ---------------------------------------------------------------------------
# Candidate pool
# ---------------------------------------------------------------------------

def enrich_game(game: Dict[str, Any], catalog) -> Dict[str, Any]:
    """Overlay live catalog data (genres, platforms, rating…) on a stored game.

    A failed or empty lookup leaves the stored fields untouched.
    """
    catalog_id = catalog_id_of(game)
    if catalog is None or catalog_id is None:
        return dict(game)
    live = catalog.get_game(catalog_id)
    if not live:
        return dict(game)
    fresh = from_catalog(live)
    # Only catalog facts are refreshed; the stored id and user fields win
    fresh.pop('catalogId', None)
    fresh = {k: v for k, v in fresh.items() if v not in (None, [], '')}
    merged = dict(game)
    for key in ('backgroundImage', 'released', 'ratingExternal', 'metacritic',
                'genres', 'platforms'):
        if key in fresh:
            merged[key] = fresh[key]
    return merged


def build_candidate_pool(library: List[Dict[str, Any]], catalog=None,
                         popular: Optional[List[Dict[str, Any]]] = None,
                         popular_limit: int = _POPULAR_LIMIT,
                         max_workers: int = 8) -> List[Dict[str, Any]]:
    """Combine the enriched library with up to *popular_limit* trending titles.

    Library lookups run concurrently, one per item; an exception for one item
    is logged and that item joins the pool with its stored fields.
    """
    pool: List[Optional[Dict[str, Any]]] = [None] * len(library)
    if library:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(library)))) as ex:
            futures = {ex.submit(enrich_game, game, catalog): i
                       for i, game in enumerate(library)}
            for future in as_completed(futures):
                index = futures[future]
                try:
                    pool[index] = future.result()
                except Exception as exc:
                    logger.warning("Enrichment failed for %s: %s",
                                   library[index].get('name'), exc)
                    pool[index] = dict(library[index])

    result = []
    for game in pool:
        game['source'] = SOURCE_COLLECTION
        result.append(game)
    for item in (popular or [])[:popular_limit]:
        if not isinstance(item, dict):
            continue
        game = from_catalog(item)
        game['source'] = SOURCE_POPULAR
        result.append(game)
    return result


class SimilarityService:
    """Finds games similar to one tracked game.

    Args:
        store:   :class:`~gametracker.services.library_service.LibraryStore`.
        catalog: Catalog client exposing ``get_game`` and ``get_popular``
                 (may be ``None`` to score against the stored data only).
    """

    def __init__(self, store, catalog=None) -> None:
        self._store = store
        self._catalog = catalog

    def similar_to(self, game_id: str, limit: int = 5) -> Optional[List[Dict[str, Any]]]:
        """Return the ranked similar games, or ``None`` for an unknown id."""
        reference = self._store.get_by_id(game_id)
        if reference is None:
            return None
        reference = enrich_game(reference, self._catalog)
        popular = self._catalog.get_popular() if self._catalog is not None else []
        pool = build_candidate_pool(self._store.list(), self._catalog, popular)
        return find_similar(reference, pool, limit)
