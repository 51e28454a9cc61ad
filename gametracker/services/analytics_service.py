"""Library analytics: counts, distributions and top lists.

Everything is recomputed from the full library on each call; nothing is
stored.  Missing or wrong-shaped optional fields count as absent.
"""
import math
from typing import Any, Dict, List, Optional

from ..models import STATUSES, name_list, release_year

_TOP_GENRES = 10
_TOP_GAMES = 5
_TOP_RATED_MIN = 4

_STATUS_KEYS = {
    'playing': 'playingGames',
    'completed': 'completedGames',
    'backlog': 'backlogGames',
    'dropped': 'droppedGames',
    'wishlist': 'wishlistGames',
}


def _round1(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def _number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _user_rating(game: Dict[str, Any]) -> Optional[float]:
    rating = _number(game.get('userRating'))
    return rating if rating else None


def _hours(game: Dict[str, Any]) -> float:
    return _number(game.get('hoursPlayed')) or 0


def _genre_stats(games: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    counts: Dict[str, int] = {}
    ratings: Dict[str, List[float]] = {}
    for game in games:
        rating = _user_rating(game)
        for genre in name_list(game.get('genres')):
            counts[genre] = counts.get(genre, 0) + 1
            if rating is not None:
                ratings.setdefault(genre, []).append(rating)

    stats = []
    for name, count in counts.items():
        rated = ratings.get(name, [])
        stats.append({
            'name': name,
            'count': count,
            'avgRating': sum(rated) / len(rated) if rated else 0,
        })
    # sorted() is stable, so equal counts keep first-encountered order
    return sorted(stats, key=lambda s: s['count'], reverse=True)[:_TOP_GENRES]


def _yearly_stats(games: List[Dict[str, Any]]) -> List[Dict[str, int]]:
    years: Dict[int, int] = {}
    for game in games:
        if game.get('status') != 'completed':
            continue
        year = release_year(game.get('released'))
        if year is not None:
            years[year] = years.get(year, 0) + 1
    return [{'year': y, 'completed': years[y]} for y in sorted(years)]


def compute_analytics(games: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Reduce the library to the analytics summary shown on the dashboard.

    Args:
        games: Every tracked game (``LibraryStore.list()`` output).

    Returns:
        Dict with ``totalGames``, one count per status (``playingGames``,
        ``completedGames``, ...), ``totalHoursPlayed``, ``averageRating``,
        ``favoriteCount``, ``genreStats``, ``statusDistribution``,
        ``yearlyStats``, ``topRatedGames``, ``mostPlayedGames`` and
        ``completionRate``.
    """
    games = [g for g in games or [] if isinstance(g, dict)]
    total = len(games)

    status_counts = {status: 0 for status in STATUSES}
    for game in games:
        if game.get('status') in status_counts:
            status_counts[game['status']] += 1

    rated = [r for r in (_user_rating(g) for g in games) if r is not None]
    average_rating = sum(rated) / len(rated) if rated else 0

    top_rated = sorted(
        (g for g in games if (_user_rating(g) or 0) >= _TOP_RATED_MIN),
        key=_user_rating, reverse=True)[:_TOP_GAMES]
    most_played = sorted(
        (g for g in games if _hours(g) > 0),
        key=_hours, reverse=True)[:_TOP_GAMES]

    completed = status_counts['completed']
    completion_rate = completed / total * 100 if total else 0

    analytics: Dict[str, Any] = {'totalGames': total}
    for status, key in _STATUS_KEYS.items():
        analytics[key] = status_counts[status]
    analytics.update({
        'totalHoursPlayed': sum(_hours(g) for g in games),
        'averageRating': _round1(average_rating),
        'favoriteCount': sum(1 for g in games if g.get('isFavorite') is True),
        'genreStats': _genre_stats(games),
        'statusDistribution': [
            {'status': status.capitalize(), 'count': status_counts[status]}
            for status in STATUSES if status_counts[status] > 0
        ],
        'yearlyStats': _yearly_stats(games),
        'topRatedGames': [{'name': g.get('name'), 'rating': _user_rating(g)}
                          for g in top_rated],
        'mostPlayedGames': [{'name': g.get('name'), 'hours': _hours(g)}
                            for g in most_played],
        'completionRate': _round1(completion_rate),
    })
    return analytics
