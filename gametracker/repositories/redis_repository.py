"""Primary backend: one Redis hash mapping game id → JSON record."""
import json
import logging
from typing import Any, Dict, List, Optional

import redis

from ..exceptions import BackendUnavailable
from .base import GameRepository

logger = logging.getLogger('tracker.repository.RedisGameRepository')

GAMES_KEY = 'games:hash:v2'


class RedisGameRepository(GameRepository):
    """Stores each tracked game as one field of a Redis hash.

    Schema::

        HSET games:hash:v2 <id> '{"id": "<id>", "name": "...", ...}'

    Every ``redis.RedisError`` is re-raised as
    :class:`~gametracker.exceptions.BackendUnavailable`.
    """

    name = 'redis'

    def __init__(self, client, key: str = GAMES_KEY) -> None:
        """
        Args:
            client: A ``redis.Redis`` instance created with
                    ``decode_responses=True``.
            key:    Name of the hash holding the library.
        """
        self._client = client
        self._key = key

    @staticmethod
    def _decode(field, value) -> Optional[Dict[str, Any]]:
        if isinstance(value, bytes):
            value = value.decode('utf-8')
        try:
            return json.loads(value) if isinstance(value, str) else value
        except ValueError as exc:
            logger.error("Failed to parse stored game %s: %s", field, exc)
            return None

    # ------------------------------------------------------------------
    # GameRepository API
    # ------------------------------------------------------------------

    def list_all(self) -> List[Dict[str, Any]]:
        try:
            raw = self._client.hgetall(self._key)
        except redis.RedisError as exc:
            raise BackendUnavailable(f"hgetall failed: {exc}") from exc
        if not raw or not isinstance(raw, dict):
            return []
        games = []
        for field, value in raw.items():
            record = self._decode(field, value)
            if isinstance(record, dict):
                games.append(record)
        logger.debug("Retrieved %d games from Redis", len(games))
        return games

    def get(self, game_id: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self._client.hget(self._key, str(game_id))
        except redis.RedisError as exc:
            raise BackendUnavailable(f"hget failed: {exc}") from exc
        if not raw:
            return None
        record = self._decode(game_id, raw)
        return record if isinstance(record, dict) else None

    def put(self, record: Dict[str, Any]) -> None:
        try:
            self._client.hset(self._key, str(record['id']), json.dumps(record))
        except (redis.RedisError, TypeError, ValueError) as exc:
            raise BackendUnavailable(f"hset failed: {exc}") from exc

    def delete(self, game_id: str) -> bool:
        try:
            removed = self._client.hdel(self._key, str(game_id))
        except redis.RedisError as exc:
            raise BackendUnavailable(f"hdel failed: {exc}") from exc
        return bool(removed)


def resolve_primary(url: Optional[str], key: str = GAMES_KEY) -> Optional[RedisGameRepository]:
    """Build the Redis backend for *url* and probe it once.

    Returns ``None`` when no URL is configured or the server does not answer
    a ``PING``; the caller then runs on the file backend alone.
    """
    if not url:
        logger.info("No Redis URL configured, using file storage only")
        return None
    try:
        client = redis.from_url(url, decode_responses=True)
        client.ping()
    except (redis.RedisError, ValueError) as exc:
        logger.warning("Redis at %s unavailable (%s), using file storage", url, exc)
        return None
    logger.info("Redis backend initialized at %s", url)
    return RedisGameRepository(client, key=key)
