"""
catalog_client.py
=================
Thin wrapper around the RAWG games catalog used by GameTracker for search,
per-game details and the trending list that feeds similar-game suggestions.

Authentication
--------------
Every request carries the API key as the ``key`` query parameter.  Obtain a
key at https://rawg.io/apidocs.

Usage
-----
::

    from catalog_client import RAWGClient

    client = RAWGClient(api_key="abc")
    results = client.search("hades")
    # [{"catalogId": 274755, "name": "Hades", "genres": [...], ...}, ...]

    popular = client.get_popular()   # cached for 24 hours

Failures never propagate: an unreachable catalog yields ``[]`` or ``None``
and a log line.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

import requests

from gametracker.exceptions import UpstreamFailure
from gametracker.models import from_catalog

logger = logging.getLogger('tracker.catalog')

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_RAWG_BASE        = "https://api.rawg.io/api"
_DEFAULT_TIMEOUT  = 10               # seconds
_SEARCH_PAGE_SIZE = 20
_PAGE_SIZE_MAX    = 40               # RAWG rejects larger pages
_POPULAR_COUNT    = 100
_TRENDING_TTL     = 24 * 60 * 60     # seconds
_MAX_TAGS         = 15


class TrendingGamesCache:
    """Time-boxed cache for the trending-games list.

    The cached list is served while it is younger than *ttl_seconds* and
    non-empty.  When a refresh fails the previous list is served again,
    however old, so callers must tolerate stale data.
    """

    def __init__(self, ttl_seconds: float = _TRENDING_TTL,
                 clock: Callable[[], float] = time.time) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._games: List[Dict[str, Any]] = []
        self._fetched_at: float = 0.0

    def is_fresh(self) -> bool:
        return bool(self._games) and self._clock() - self._fetched_at < self._ttl

    def get(self, fetch: Callable[[], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        """Return the cached list, calling *fetch* to refresh it when stale.

        *fetch* signals failure by raising
        :class:`~gametracker.exceptions.UpstreamFailure`.
        """
        if self.is_fresh():
            return list(self._games)
        try:
            games = fetch()
        except UpstreamFailure as exc:
            logger.warning("Trending refresh failed, serving %d cached games: %s",
                           len(self._games), exc)
            return list(self._games)
        self._games = list(games)
        self._fetched_at = self._clock()
        return list(self._games)

    def clear(self) -> None:
        self._games = []
        self._fetched_at = 0.0


def _summary(item: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise one catalog list entry, keeping its slug for id derivation."""
    game = from_catalog(item)
    if item.get('slug'):
        game['slug'] = item['slug']
    return game


def _dicts(items) -> List[Dict[str, Any]]:
    """Entries of a catalog list field, skipping nulls and other junk."""
    return [i for i in items or [] if isinstance(i, dict)]


class RAWGClient:
    """Minimal RAWG catalog client."""

    def __init__(
        self,
        api_key: str,
        timeout: int = _DEFAULT_TIMEOUT,
        trending_cache: Optional[TrendingGamesCache] = None,
        base_url: str = _RAWG_BASE,
    ) -> None:
        """
        Args:
            api_key:        RAWG API key.
            timeout:        HTTP request timeout in seconds.
            trending_cache: Cache for :meth:`get_popular`; a fresh 24-hour
                            cache is created when omitted.
            base_url:       API root, overridable for tests.
        """
        self._api_key = api_key
        self._timeout = timeout
        self._base = base_url.rstrip('/')
        self.session = requests.Session()
        self.trending = trending_cache or TrendingGamesCache()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _get(self, path: str, **params) -> Dict[str, Any]:
        """GET ``<base><path>`` and return the decoded JSON body.

        Raises:
            UpstreamFailure: network error, non-2xx status or invalid JSON.
        """
        params['key'] = self._api_key
        url = f"{self._base}{path}"
        try:
            resp = self.session.get(url, params=params, timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise UpstreamFailure(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise UpstreamFailure(f"GET {path} returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise UpstreamFailure(f"GET {path} returned unexpected payload")
        return data

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def search(self, query: str) -> List[Dict[str, Any]]:
        """Search the catalog by name; blank queries return ``[]``."""
        if not query or not query.strip():
            return []
        try:
            data = self._get('/games', search=query, page_size=_SEARCH_PAGE_SIZE)
        except UpstreamFailure as e:
            logger.error("Search for %r failed: %s", query, e)
            return []
        return [_summary(item) for item in data.get('results') or []
                if isinstance(item, dict)]

    def get_game(self, catalog_id: int) -> Optional[Dict[str, Any]]:
        """Return one normalised catalog game, or ``None``."""
        if not catalog_id:
            return None
        try:
            data = self._get(f'/games/{int(catalog_id)}')
        except UpstreamFailure as e:
            logger.warning("Could not fetch game %s: %s", catalog_id, e)
            return None
        game = _summary(data)
        game['description'] = data.get('description_raw') or data.get('description') or ''
        return game

    def get_details(self, catalog_id: int) -> Optional[Dict[str, Any]]:
        """Return the full detail view of a catalog game.

        The game, its screenshots and its movies are fetched concurrently.
        Missing screenshots or movies degrade to empty lists; a failed game
        fetch returns ``None``.
        """
        if not catalog_id:
            return None
        cid = int(catalog_id)
        with ThreadPoolExecutor(max_workers=3) as ex:
            game_f = ex.submit(self._get, f'/games/{cid}')
            shots_f = ex.submit(self._get, f'/games/{cid}/screenshots', page_size=10)
            movies_f = ex.submit(self._get, f'/games/{cid}/movies')

            try:
                game = game_f.result()
            except UpstreamFailure as e:
                logger.warning("Could not fetch details for %s: %s", cid, e)
                return None
            screenshots = self._results_or_empty(shots_f, 'screenshots', cid)
            movies = self._results_or_empty(movies_f, 'movies', cid)

        return {
            'id': game.get('id'),
            'name': game.get('name'),
            'slug': game.get('slug'),
            'description': game.get('description_raw') or game.get('description') or '',
            'released': game.get('released'),
            'backgroundImage': game.get('background_image'),
            'rating': game.get('rating'),
            'metacritic': game.get('metacritic'),
            'developers': [d.get('name') for d in _dicts(game.get('developers'))],
            'publishers': [p.get('name') for p in _dicts(game.get('publishers'))],
            'platforms': [
                {
                    'name': (p.get('platform') or {}).get('name'),
                    'slug': (p.get('platform') or {}).get('slug'),
                    'released_at': p.get('released_at'),
                    'requirements': p.get('requirements'),
                }
                for p in _dicts(game.get('platforms'))
            ],
            'genres': [g.get('name') for g in _dicts(game.get('genres'))],
            'tags': [t.get('name') for t in _dicts(game.get('tags'))
                     if t.get('language') == 'eng'][:_MAX_TAGS],
            'stores': [
                {'name': (s.get('store') or {}).get('name'),
                 'slug': (s.get('store') or {}).get('slug'),
                 'url': s.get('url')}
                for s in _dicts(game.get('stores'))
            ],
            'website': game.get('website'),
            'screenshots': [s.get('image') for s in screenshots if s.get('image')],
            'movies': [
                {'id': m.get('id'), 'name': m.get('name'), 'preview': m.get('preview'),
                 'video_480': (m.get('data') or {}).get('480'),
                 'video_max': (m.get('data') or {}).get('max')}
                for m in movies
            ],
        }

    @staticmethod
    def _results_or_empty(future, label: str, cid: int) -> List[Dict[str, Any]]:
        try:
            return [r for r in future.result().get('results') or [] if isinstance(r, dict)]
        except UpstreamFailure as e:
            logger.debug("No %s for %s: %s", label, cid, e)
            return []

    def _fetch_popular(self, count: int = _POPULAR_COUNT) -> List[Dict[str, Any]]:
        games: List[Dict[str, Any]] = []
        page = 1
        while len(games) < count:
            data = self._get('/games', ordering='-rating', page=page,
                             page_size=min(_PAGE_SIZE_MAX, count - len(games)))
            results = [r for r in data.get('results') or [] if isinstance(r, dict)]
            games.extend(_summary(r) for r in results)
            if not results or not data.get('next'):
                break
            page += 1
        return games[:count]

    def get_popular(self) -> List[Dict[str, Any]]:
        """Return the top-rated catalog games through the trending cache."""
        return self.trending.get(self._fetch_popular)
