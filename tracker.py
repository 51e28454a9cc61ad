#!/usr/bin/env python3
"""
GameTracker - personal game library tracker
Track the games you play, rate them, and find similar titles from the RAWG catalog.
"""

import argparse
import json
import logging
import os
import sys
from typing import Dict, List, Optional

from colorama import init, Fore, Style

from catalog_client import RAWGClient, TrendingGamesCache
from gametracker.exceptions import StorageFailure, ValidationError
from gametracker.repositories import FileGameRepository, resolve_primary
from gametracker.services import (
    LibraryStore, SORT_KEYS, SimilarityService, compute_analytics,
    export_csv, export_json, sort_games,
)
from trailer_client import YouTubeTrailerClient

# Initialize colorama for cross-platform colored terminal output
init(autoreset=True)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the root GameTracker logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal use is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, str(level).upper(), logging.WARNING)
    logger = logging.getLogger('tracker')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


logger = setup_logging(os.getenv('TRACKER_LOG_LEVEL', 'WARNING'))

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_CONFIG = {
    'rawg_api_key': '',
    'youtube_api_key': '',
    'redis_url': '',
    'data_file': '.games.json',
    'api_timeout_seconds': 10,
    'trending_cache_hours': 24,
    'log_level': 'WARNING',
}

# config key → environment variables that override it (first set wins)
_ENV_OVERRIDES = {
    'rawg_api_key': ('RAWG_API_KEY',),
    'youtube_api_key': ('YOUTUBE_API_KEY',),
    'redis_url': ('KV_URL', 'REDIS_URL'),
    'data_file': ('TRACKER_DATA_FILE',),
    'log_level': ('TRACKER_LOG_LEVEL',),
}


def is_placeholder_value(value) -> bool:
    """Check if a value is an unset or ``YOUR_...`` template sentinel."""
    if not value or not isinstance(value, str):
        return True
    return value.startswith('YOUR_')


def load_config(config_path: str = 'config.json') -> Dict:
    """Load configuration from JSON file with environment variable support.

    A missing file yields the defaults.  Environment variables take
    precedence over file values:
    - RAWG_API_KEY overrides rawg_api_key
    - YOUTUBE_API_KEY overrides youtube_api_key
    - KV_URL / REDIS_URL override redis_url
    - TRACKER_DATA_FILE overrides data_file
    - TRACKER_LOG_LEVEL overrides log_level

    Placeholder values (``YOUR_...``) are treated as unset.

    Raises:
        ValueError: The file exists but is not a valid JSON object.
    """
    config = dict(DEFAULT_CONFIG)
    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Error parsing config file {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a JSON object")
        config.update(data)
    else:
        logger.info("Config file %s not found, using defaults", config_path)

    for key, env_names in _ENV_OVERRIDES.items():
        for env_name in env_names:
            if os.getenv(env_name):
                config[key] = os.getenv(env_name)
                break

    for key in ('rawg_api_key', 'youtube_api_key', 'redis_url'):
        if is_placeholder_value(config.get(key)):
            config[key] = ''
    return config


# ---------------------------------------------------------------------------
# Integration
# ---------------------------------------------------------------------------

class GameTracker:
    """Wires configuration, storage, catalog clients and services together."""

    def __init__(self, config_path: str = 'config.json', config: Optional[Dict] = None):
        self._log = logging.getLogger('tracker.app')
        self.config = config if config is not None else load_config(config_path)

        # Re-apply log level from config (allows "log_level": "DEBUG" in config.json)
        setup_logging(self.config.get('log_level', 'WARNING'))

        timeout = int(self.config.get('api_timeout_seconds', 10))
        ttl_hours = float(self.config.get('trending_cache_hours', 24))

        primary = resolve_primary(self.config.get('redis_url'))
        fallback = FileGameRepository(self.config.get('data_file', '.games.json'))
        self.store = LibraryStore(primary, fallback)

        self.catalog = RAWGClient(
            self.config.get('rawg_api_key', ''),
            timeout=timeout,
            trending_cache=TrendingGamesCache(ttl_seconds=ttl_hours * 3600),
        )
        if not self.config.get('rawg_api_key'):
            self._log.warning("RAWG API key not configured; catalog lookups will fail")
        self.trailers = YouTubeTrailerClient(self.config.get('youtube_api_key', ''),
                                             timeout=timeout)
        self.similarity = SimilarityService(self.store, self.catalog)

    # ------------------------------------------------------------------
    # CLI display helpers
    # ------------------------------------------------------------------

    def list_games(self, sort_by: str = 'recent') -> List[Dict]:
        games = sort_games(self.store.list(), sort_by)
        if not games:
            print(f"{Fore.YELLOW}Your library is empty. Add a game with --search / --add.")
            return games
        print(f"\n{Fore.CYAN}{Style.BRIGHT}🎮 Library ({len(games)} games)")
        print(f"{Fore.GREEN}{'='*60}")
        for game in games:
            star = f"{Fore.YELLOW}★ " if game.get('isFavorite') else '  '
            status = game.get('status') or '-'
            rating = game.get('userRating')
            rating_str = f" {rating}/5" if rating else ''
            print(f"{star}{Fore.WHITE}{game['name']} {Fore.CYAN}[{status}]"
                  f"{Fore.MAGENTA}{rating_str} {Fore.BLUE}(id: {game['id']})")
        print(f"{Fore.GREEN}{'='*60}\n")
        return games

    def search(self, query: str) -> List[Dict]:
        results = self.catalog.search(query)
        if not results:
            print(f"{Fore.YELLOW}No catalog results for '{query}'.")
            return results
        for game in results:
            released = game.get('released') or 'unknown'
            print(f"{Fore.WHITE}{game['name']} {Fore.CYAN}({released})"
                  f" {Fore.BLUE}catalog id: {game.get('catalogId')}")
        return results

    def add_by_catalog_id(self, catalog_id: int) -> Optional[Dict]:
        game = self.catalog.get_game(catalog_id)
        if not game:
            print(f"{Fore.RED}Catalog game {catalog_id} not found.")
            return None
        record = self.store.add(game)
        print(f"{Fore.GREEN}✅ Added {record['name']} (id: {record['id']})")
        return record

    def show_stats(self) -> Dict:
        """Display library statistics"""
        stats = compute_analytics(self.store.list())
        print(f"\n{Fore.CYAN}{Style.BRIGHT}📊 Library Statistics")
        print(f"{Fore.GREEN}{'='*40}")
        print(f"{Fore.YELLOW}Total Games: {Fore.WHITE}{stats['totalGames']}")
        for entry in stats['statusDistribution']:
            print(f"{Fore.YELLOW}{entry['status']}: {Fore.WHITE}{entry['count']}")
        print(f"{Fore.YELLOW}Completion Rate: {Fore.WHITE}{stats['completionRate']:.1f}%")
        print(f"{Fore.YELLOW}Total Playtime: {Fore.WHITE}{stats['totalHoursPlayed']:.1f} hours")
        print(f"{Fore.YELLOW}Average Rating: {Fore.WHITE}{stats['averageRating']:.1f}")
        print(f"{Fore.YELLOW}Favorite Games: {Fore.WHITE}{stats['favoriteCount']}")
        if stats['genreStats']:
            top = ', '.join(f"{g['name']} ({g['count']})" for g in stats['genreStats'][:5])
            print(f"{Fore.YELLOW}Top Genres: {Fore.WHITE}{top}")
        print(f"{Fore.GREEN}{'='*40}\n")
        return stats

    def show_similar(self, game_id: str, limit: int = 5) -> Optional[List[Dict]]:
        similar = self.similarity.similar_to(game_id, limit)
        if similar is None:
            print(f"{Fore.RED}Game {game_id} is not in your library.")
            return None
        if not similar:
            print(f"{Fore.YELLOW}No similar games found.")
            return similar
        print(f"\n{Fore.CYAN}{Style.BRIGHT}🔍 Similar games")
        for game in similar:
            reasons = ', '.join(game['matchReasons'][:2])
            print(f"{Fore.WHITE}{game['name']} {Fore.GREEN}{game['matchScore']}% "
                  f"{Fore.BLUE}[{game.get('source', '')}] {Fore.CYAN}{reasons}")
        return similar

    def export(self, path: str, fmt: str = 'json') -> int:
        games = sort_games(self.store.list(), 'name')
        content = export_csv(games) if fmt == 'csv' else export_json(games)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        print(f"{Fore.GREEN}Exported {len(games)} games to {path}")
        return len(games)


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='GameTracker - personal game library tracker',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 tracker.py --search "hades"       # Search the catalog
  python3 tracker.py --add 274755           # Add a catalog game to your library
  python3 tracker.py --list --sort name     # List your library
  python3 tracker.py --stats                # Show library statistics
  python3 tracker.py --similar 274755       # Find games similar to a tracked game
        """
    )
    parser.add_argument('--config', '-c', default='config.json',
                        help='Path to config file (default: config.json)')
    parser.add_argument('--list', '-l', action='store_true',
                        help='List tracked games and exit')
    parser.add_argument('--sort', choices=SORT_KEYS, default='recent',
                        help='Sort order for --list (default: recent)')
    parser.add_argument('--search', type=str, metavar='QUERY',
                        help='Search the game catalog')
    parser.add_argument('--add', type=int, metavar='CATALOG_ID',
                        help='Add a catalog game to your library')
    parser.add_argument('--remove', type=str, metavar='ID',
                        help='Remove a game from your library')
    parser.add_argument('--stats', '-s', action='store_true',
                        help='Show library statistics and exit')
    parser.add_argument('--similar', type=str, metavar='ID',
                        help='Show games similar to a tracked game')
    parser.add_argument('--limit', type=int, default=5, metavar='N',
                        help='Number of similar games to show (default: 5)')
    parser.add_argument('--export', type=str, metavar='FILE',
                        help='Export your library to a file')
    parser.add_argument('--format', choices=('json', 'csv'), default='json',
                        help='Export format (default: json)')

    args = parser.parse_args()

    try:
        tracker = GameTracker(config_path=args.config)

        if args.search:
            tracker.search(args.search)
        elif args.add is not None:
            if not tracker.add_by_catalog_id(args.add):
                sys.exit(1)
        elif args.remove:
            if tracker.store.delete(args.remove):
                print(f"{Fore.GREEN}Removed {args.remove}")
            else:
                print(f"{Fore.RED}Game {args.remove} not found.")
                sys.exit(1)
        elif args.stats:
            tracker.show_stats()
        elif args.similar:
            if args.limit < 1:
                print(f"{Fore.RED}Error: --limit must be at least 1")
                sys.exit(1)
            if tracker.show_similar(args.similar, args.limit) is None:
                sys.exit(1)
        elif args.export:
            tracker.export(args.export, args.format)
        else:
            tracker.list_games(args.sort)
    except (ValidationError, StorageFailure, ValueError) as e:
        print(f"{Fore.RED}Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print(f"\n\n{Fore.YELLOW}Interrupted by user. Goodbye!")


if __name__ == "__main__":
    main()
