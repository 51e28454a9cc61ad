#!/usr/bin/env python3
"""
GameTracker Web - JSON API for the game library tracker
Serves catalog search/details, library CRUD, analytics and similar-game
suggestions to the browser front end.
"""

import argparse
import logging
import os
import threading
from typing import Dict, List

from flask import Flask, Response, jsonify, request

import tracker as tracker_module
from gametracker.exceptions import StorageFailure, ValidationError
from gametracker.services import (
    compute_analytics, export_csv, export_json, filter_games, sort_games,
)

try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

tracker_module.setup_logging(os.getenv('TRACKER_LOG_LEVEL', 'INFO'))
web_logger = logging.getLogger('tracker.web')

app = Flask(__name__)

# Built lazily so importing the module never touches Redis or the network
tracker = None
tracker_lock = threading.Lock()

_SIMILAR_MAX = 20
_BULK_ACTIONS = ('status', 'favorite', 'tags', 'delete')


def _get_tracker():
    global tracker
    if tracker is None:
        with tracker_lock:
            if tracker is None:
                tracker = tracker_module.GameTracker(
                    config_path=os.getenv('TRACKER_CONFIG', 'config.json'))
    return tracker


@app.errorhandler(StorageFailure)
def _storage_failure(e):
    web_logger.error("Storage failure: %s", e)
    return jsonify({'error': 'Storage unavailable, please retry'}), 500


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@app.route('/api/search', methods=['GET'])
def api_search():
    """Search the catalog. Query: ``?q=<text>``; blank → ``[]``."""
    query = request.args.get('q', '')
    if not query.strip():
        return jsonify([])
    return jsonify(_get_tracker().catalog.search(query))


@app.route('/api/gameDetails/<int:catalog_id>', methods=['GET'])
def api_game_details(catalog_id: int):
    """Full catalog detail view (description, media, stores...)."""
    details = _get_tracker().catalog.get_details(catalog_id)
    if details is None:
        return jsonify({'success': False, 'error': 'Failed to fetch game details'}), 404
    return jsonify({'success': True, 'game': details})


@app.route('/api/popularGames', methods=['GET'])
def api_popular_games():
    """Trending catalog games, cached for 24 hours."""
    t = _get_tracker()
    games = t.catalog.get_popular()
    return jsonify({'success': True, 'games': games,
                    'cached': t.catalog.trending.is_fresh()})


@app.route('/api/youtube/search', methods=['GET'])
def api_trailer_search():
    """Trailer fallback. Query: ``?game=<name>``."""
    game_name = request.args.get('game', '').strip()
    if not game_name:
        return jsonify({'error': 'Game name required'}), 400
    video_url = _get_tracker().trailers.find_trailer(game_name)
    if not video_url:
        return jsonify({'success': False, 'message': 'No video found'})
    return jsonify({'success': True, 'videoUrl': video_url, 'source': 'youtube'})


# ---------------------------------------------------------------------------
# Library CRUD
# ---------------------------------------------------------------------------

@app.route('/api/addGame', methods=['POST'])
def api_add_game():
    """Add a catalog game to the library. Body: catalog game JSON."""
    data = request.get_json(silent=True)
    try:
        record = _get_tracker().store.add(data)
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify({'success': True, 'data': record})


@app.route('/api/listGames', methods=['GET'])
def api_list_games():
    """List tracked games.

    Query: ``sort`` (recent|name|favorites), ``status``, ``genre``, ``q``.
    """
    games = _get_tracker().store.list()
    games = filter_games(games,
                         status=request.args.get('status') or None,
                         genre=request.args.get('genre') or None,
                         query=request.args.get('q') or None)
    return jsonify(sort_games(games, request.args.get('sort', 'recent')))


@app.route('/api/games/<game_id>', methods=['GET'])
def api_get_game(game_id: str):
    game = _get_tracker().store.get_by_id(game_id)
    if game is None:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify(game)


@app.route('/api/updateGame/<game_id>', methods=['POST', 'PUT'])
def api_update_game(game_id: str):
    """Partial update. Body: only the changed fields."""
    updates = request.get_json(silent=True)
    try:
        updated = _get_tracker().store.update(game_id, updates)
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    if updated is None:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify({'success': True, 'data': updated})


@app.route('/api/removeGame', methods=['DELETE'])
def api_remove_game():
    """Hard-delete a game. Query: ``?id=<game id>``."""
    game_id = request.args.get('id')
    if not game_id:
        return jsonify({'error': 'Game ID required'}), 400
    if not _get_tracker().store.delete(game_id):
        return jsonify({'error': 'Game not found'}), 404
    web_logger.info("Game %s removed", game_id)
    return jsonify({'success': True, 'message': 'Game removed successfully'})


@app.route('/api/games/<game_id>/screenshots', methods=['POST'])
def api_add_screenshots(game_id: str):
    """Attach uploaded screenshot URLs. Body: ``{"urls": [...]}``."""
    data = request.get_json(silent=True) or {}
    try:
        updated = _get_tracker().store.add_screenshots(game_id, data.get('urls'))
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    if updated is None:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify({'success': True, 'screenshots': updated['screenshots']})


@app.route('/api/games/<game_id>/screenshots', methods=['DELETE'])
def api_remove_screenshot(game_id: str):
    """Detach one screenshot. Body: ``{"url": "..."}``."""
    data = request.get_json(silent=True) or {}
    updated = _get_tracker().store.remove_screenshot(game_id, data.get('url'))
    if updated is None:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify({'success': True, 'screenshots': updated['screenshots']})


@app.route('/api/bulk', methods=['POST'])
def api_bulk():
    """Apply one action to several games.

    Body JSON: ``{"ids": [...], "action": "status|favorite|tags|delete",
    "value": ...}``.  Tags are added to each game's existing tags.
    """
    data = request.get_json(silent=True) or {}
    ids = data.get('ids')
    action = data.get('action')
    if not isinstance(ids, list) or not ids:
        return jsonify({'error': 'ids must be a non-empty list'}), 400
    if action not in _BULK_ACTIONS:
        return jsonify({'error': f"action must be one of {', '.join(_BULK_ACTIONS)}"}), 400

    store = _get_tracker().store
    try:
        if action == 'delete':
            results = store.bulk_delete(ids)
        elif action == 'status':
            results = store.bulk_update(ids, {'status': data.get('value')})
        elif action == 'favorite':
            results = store.bulk_update(ids, {'isFavorite': bool(data.get('value', True))})
        else:
            new_tags = data.get('value') or []
            if not isinstance(new_tags, list):
                return jsonify({'error': 'value must be a list of tags'}), 400
            results = _bulk_add_tags(store, ids, new_tags)
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify({'success': all(results.values()), 'results': results})


def _bulk_add_tags(store, ids: List[str], new_tags: List[str]) -> Dict[str, bool]:
    results = {}
    for gid in ids:
        game = store.get_by_id(gid)
        if game is None:
            results[str(gid)] = False
            continue
        updated = store.update(gid, {'tags': game['tags'] + list(new_tags)})
        results[str(gid)] = updated is not None
    return results


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------

@app.route('/api/analytics', methods=['GET'])
def api_analytics():
    return jsonify(compute_analytics(_get_tracker().store.list()))


@app.route('/api/similar/<game_id>', methods=['GET'])
def api_similar(game_id: str):
    """Similar games for a tracked game. Query: ``?limit=N`` (1–20, default 5)."""
    try:
        limit = int(request.args.get('limit', 5))
    except ValueError:
        limit = 5
    limit = max(1, min(limit, _SIMILAR_MAX))

    similar = _get_tracker().similarity.similar_to(game_id, limit)
    if similar is None:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify({'success': True, 'games': similar})


@app.route('/api/export', methods=['GET'])
def api_export():
    """Download the library. Query: ``?format=json|csv`` (default json)."""
    fmt = request.args.get('format', 'json')
    games = sort_games(_get_tracker().store.list(), 'name')
    if fmt == 'csv':
        body, mimetype, filename = export_csv(games), 'text/csv', 'game_library.csv'
    else:
        body, mimetype, filename = export_json(games), 'application/json', 'game_library.json'
    return Response(
        body.encode('utf-8'),
        mimetype=mimetype,
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )


def main():
    parser = argparse.ArgumentParser(description='GameTracker web API')
    parser.add_argument('--host', default='127.0.0.1', help='Bind address (default: 127.0.0.1)')
    parser.add_argument('--port', type=int, default=5000, help='Port (default: 5000)')
    parser.add_argument('--debug', action='store_true', help='Enable Flask debug mode')
    args = parser.parse_args()
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
