"""Repository package: expose all storage backends from one import."""
from .base import BaseRepository, GameRepository
from .file_repository import FileGameRepository
from .redis_repository import GAMES_KEY, RedisGameRepository, resolve_primary

__all__ = [
    'BaseRepository',
    'GameRepository',
    'FileGameRepository',
    'RedisGameRepository',
    'GAMES_KEY',
    'resolve_primary',
]
