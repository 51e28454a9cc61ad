"""Services package: expose all concrete services from one import."""
from .library_service import (
    LibraryStore, SORT_KEYS, all_genres, all_tags, filter_games, sort_games,
)
from .similarity_service import (
    SimilarityService, build_candidate_pool, calculate_similarity,
    enrich_game, find_similar,
)
from .analytics_service import compute_analytics
from .export_service import export_csv, export_json

__all__ = [
    'LibraryStore',
    'SORT_KEYS',
    'all_genres',
    'all_tags',
    'filter_games',
    'sort_games',
    'SimilarityService',
    'build_candidate_pool',
    'calculate_similarity',
    'enrich_game',
    'find_similar',
    'compute_analytics',
    'export_csv',
    'export_json',
]
