"""Library export as JSON or CSV."""
import csv
import io
import json
from typing import Dict, List

from ..models import name_list

CSV_FIELDS = ['name', 'status', 'userRating', 'hoursPlayed', 'isFavorite',
              'genres', 'platforms', 'tags', 'released', 'dateCompleted']


def export_json(games: List[Dict]) -> str:
    """Return *games* as an indented JSON array."""
    return json.dumps(games, indent=2)


def export_csv(games: List[Dict]) -> str:
    """Return one CSV row per game, sorted by name.

    Columns: ``name``, ``status``, ``userRating``, ``hoursPlayed``,
    ``isFavorite``, ``genres``, ``platforms``, ``tags``, ``released``,
    ``dateCompleted``.  List columns are joined with ``"; "``.
    """
    rows = []
    for game in sorted(games, key=lambda g: str(g.get('name', '')).lower()):
        rows.append({
            'name': game.get('name', ''),
            'status': game.get('status') or '',
            'userRating': game.get('userRating') or '',
            'hoursPlayed': game.get('hoursPlayed', 0),
            'isFavorite': 'yes' if game.get('isFavorite') else 'no',
            'genres': '; '.join(name_list(game.get('genres'))),
            'platforms': '; '.join(name_list(game.get('platforms'))),
            'tags': '; '.join(t for t in game.get('tags', []) if isinstance(t, str)),
            'released': game.get('released') or '',
            'dateCompleted': game.get('dateCompleted') or '',
        })

    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDS, extrasaction='ignore',
                            lineterminator='\n')
    writer.writeheader()
    writer.writerows(rows)
    return output.getvalue()
