#!/usr/bin/env python3
"""
Tests for gametracker/services/similarity_service.py.

Run with:
    python -m pytest tests/test_similarity.py
"""
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import MagicMock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gametracker.repositories import FileGameRepository
from gametracker.services import (
    LibraryStore, SimilarityService, build_candidate_pool, calculate_similarity,
    enrich_game, find_similar,
)


def _game(gid, genres=(), platforms=(), rating=None, released=None, **extra):
    game = {
        'id': gid,
        'catalogId': int(gid) if str(gid).isdigit() else None,
        'name': f'Game {gid}',
        'genres': [{'id': i, 'name': n} for i, n in enumerate(genres)],
        'platforms': [{'id': i, 'name': n} for i, n in enumerate(platforms)],
    }
    if rating is not None:
        game['ratingExternal'] = rating
    if released is not None:
        game['released'] = released
    game.update(extra)
    return game


GAME_A = _game('1', genres=['RPG', 'Action'], platforms=['PC'], rating=4.2, released='2020-03-01')
GAME_B = _game('2', genres=['RPG'], platforms=['PC', 'PS5'], rating=4.0, released='2021-06-15')


class TestCalculateSimilarity(unittest.TestCase):

    def test_worked_example_scores_70(self):
        result = calculate_similarity(GAME_A, GAME_B)
        self.assertEqual(result['matchScore'], 70)
        self.assertEqual(result['matchReasons'], [
            '1 shared genre', 'Available on PC', 'Similar rating (4.0)', 'Released 2021',
        ])

    def test_result_is_a_copy_of_candidate(self):
        result = calculate_similarity(GAME_A, GAME_B)
        self.assertEqual(result['name'], 'Game 2')
        self.assertNotIn('matchScore', GAME_B)

    def test_all_factors_shared_scores_exactly_100(self):
        ref = _game('1', genres=['RPG'], platforms=['PC'], rating=4.5, released='2019')
        cand = _game('2', genres=['RPG'], platforms=['PC'], rating=4.5, released='2019')
        self.assertEqual(calculate_similarity(ref, cand)['matchScore'], 100)

    def test_plural_genre_reason(self):
        ref = _game('1', genres=['RPG', 'Action'])
        cand = _game('2', genres=['action', 'rpg'])
        result = calculate_similarity(ref, cand)
        self.assertEqual(result['matchScore'], 50)
        self.assertEqual(result['matchReasons'], ['2 shared genres'])

    def test_case_variant_duplicates_count_once_on_both_sides(self):
        dup_ref = _game('1', genres=['RPG', 'rpg', 'Action'])
        plain = _game('2', genres=['RPG', 'Action'])
        forward = calculate_similarity(dup_ref, plain)
        backward = calculate_similarity(plain, _game('3', genres=['RPG', 'rpg', 'Action']))
        self.assertEqual(forward['matchScore'], 50)
        self.assertEqual(forward['matchReasons'], ['2 shared genres'])
        self.assertEqual(backward['matchScore'], 50)

    def test_platform_reason_uses_reference_spelling(self):
        ref = _game('1', platforms=['PC'])
        cand = _game('2', platforms=['pc'])
        self.assertEqual(calculate_similarity(ref, cand)['matchReasons'], ['Available on PC'])

    def test_nothing_shared_returns_none(self):
        ref = _game('1', genres=['RPG'], platforms=['PC'], rating=4.5, released='2010')
        cand = _game('2', genres=['Puzzle'], platforms=['Switch'], rating=2.0, released='2020')
        self.assertIsNone(calculate_similarity(ref, cand))

    def test_zero_ratings_are_ignored(self):
        ref = _game('1', rating=0)
        cand = _game('2', rating=0.5)
        self.assertIsNone(calculate_similarity(ref, cand))

    def test_rating_boundary_is_inclusive(self):
        ref = _game('1', rating=4.5)
        cand = _game('2', rating=3.0)
        self.assertEqual(calculate_similarity(ref, cand)['matchScore'], 20)

    def test_year_boundary(self):
        ref = _game('1', released='2018-01-01')
        self.assertEqual(calculate_similarity(ref, _game('2', released='2020-12-31'))['matchScore'], 10)
        self.assertIsNone(calculate_similarity(ref, _game('3', released='2021-01-01')))

    def test_reference_itself_returns_none(self):
        self.assertIsNone(calculate_similarity(GAME_A, dict(GAME_A)))

    def test_same_catalog_id_is_the_same_game(self):
        popular = {'catalogId': 1, 'name': 'Game 1', 'genres': GAME_A['genres']}
        self.assertIsNone(calculate_similarity(GAME_A, popular))

    def test_malformed_optional_fields_contribute_nothing(self):
        ref = _game('1', genres=['RPG'])
        cand = {'id': '2', 'name': 'Broken', 'genres': 'RPG', 'platforms': None,
                'ratingExternal': 'high', 'released': 'soon'}
        self.assertIsNone(calculate_similarity(ref, cand))

    def test_score_never_exceeds_100(self):
        ref = _game('1', genres=['A', 'B'], platforms=['PC', 'PS5'], rating=4, released='2020')
        cand = _game('2', genres=['b', 'a'], platforms=['ps5', 'pc'], rating=4, released='2020')
        score = calculate_similarity(ref, cand)['matchScore']
        self.assertGreaterEqual(score, 0)
        self.assertLessEqual(score, 100)


class TestFindSimilar(unittest.TestCase):

    def test_worked_example(self):
        result = find_similar(GAME_A, [GAME_B], 5)
        self.assertEqual([g['id'] for g in result], ['2'])
        self.assertEqual(result[0]['matchScore'], 70)

    def test_reference_never_in_output(self):
        result = find_similar(GAME_A, [GAME_A, GAME_B, dict(GAME_A)], 5)
        self.assertNotIn('1', [g['id'] for g in result])

    def test_zero_scores_are_excluded_even_below_limit(self):
        unrelated = _game('3', genres=['Puzzle'], platforms=['Switch'])
        result = find_similar(GAME_A, [unrelated, GAME_B], 10)
        self.assertEqual([g['id'] for g in result], ['2'])

    def test_sorted_by_score_descending(self):
        weak = _game('3', released='2021')
        strong = _game('4', genres=['RPG', 'Action'], platforms=['PC'])
        result = find_similar(GAME_A, [weak, GAME_B, strong], 5)
        self.assertEqual([g['id'] for g in result], ['4', '2', '3'])

    def test_ties_keep_input_order(self):
        c1 = _game('5', released='2020')
        c2 = _game('6', released='2021')
        c3 = _game('7', released='2019')
        result = find_similar(GAME_A, [c2, c3, c1], 5)
        self.assertEqual([g['id'] for g in result], ['6', '7', '5'])

    def test_limit(self):
        candidates = [_game(str(i), genres=['RPG']) for i in range(10, 20)]
        self.assertEqual(len(find_similar(GAME_A, candidates, 3)), 3)

    def test_empty_pool(self):
        self.assertEqual(find_similar(GAME_A, [], 5), [])


class TestCandidatePool(unittest.TestCase):

    def test_enrich_overlays_catalog_facts_only(self):
        stored = _game('1', genres=['RPG'], status='playing', userRating=5)
        catalog = MagicMock()
        catalog.get_game.return_value = {
            'catalogId': 1, 'name': 'Renamed', 'ratingExternal': 4.4,
            'genres': [{'id': 9, 'name': 'Strategy'}], 'platforms': [{'id': 4, 'name': 'PC'}],
        }
        merged = enrich_game(stored, catalog)
        self.assertEqual(merged['name'], 'Game 1')
        self.assertEqual(merged['status'], 'playing')
        self.assertEqual(merged['userRating'], 5)
        self.assertEqual(merged['ratingExternal'], 4.4)
        self.assertEqual(merged['genres'], [{'id': 9, 'name': 'Strategy'}])
        catalog.get_game.assert_called_once_with(1)

    def test_enrich_keeps_stored_fields_when_lookup_is_empty(self):
        stored = _game('1', genres=['RPG'])
        catalog = MagicMock()
        catalog.get_game.return_value = None
        self.assertEqual(enrich_game(stored, catalog), stored)

    def test_pool_tags_sources_and_caps_popular(self):
        popular = [{'id': 100 + i, 'name': f'Hit {i}', 'genres': [{'name': 'RPG'}]}
                   for i in range(5)]
        pool = build_candidate_pool([GAME_A, GAME_B], None, popular, popular_limit=3)
        self.assertEqual([g['source'] for g in pool],
                         ['collection', 'collection', 'popular', 'popular', 'popular'])
        self.assertEqual(pool[2]['catalogId'], 100)

    def test_failed_enrichment_keeps_stored_game(self):
        catalog = MagicMock()

        def lookup(catalog_id):
            if catalog_id == 1:
                raise RuntimeError('catalog timeout')
            return {'catalogId': 2, 'genres': [{'id': 1, 'name': 'Shooter'}]}

        catalog.get_game.side_effect = lookup
        pool = build_candidate_pool([GAME_A, GAME_B], catalog)
        self.assertEqual(pool[0]['genres'], GAME_A['genres'])
        self.assertEqual(pool[1]['genres'], [{'id': 1, 'name': 'Shooter'}])
        self.assertEqual([g['id'] for g in pool], ['1', '2'])

    def test_empty_library_and_popular(self):
        self.assertEqual(build_candidate_pool([], None, []), [])


class TestSimilarityService(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.store = LibraryStore(None, FileGameRepository(os.path.join(self.tmp, 'games.json')))
        self.store.add(dict(GAME_A, id=1))
        self.store.add(dict(GAME_B, id=2))
        self.catalog = MagicMock()
        self.catalog.get_game.return_value = None
        self.catalog.get_popular.return_value = [
            {'id': 1, 'name': 'Game 1', 'genres': [{'name': 'RPG'}]},
            {'id': 50, 'name': 'Popular RPG', 'genres': [{'name': 'RPG'}, {'name': 'Action'}],
             'platforms': [{'platform': {'id': 4, 'name': 'PC'}}]},
        ]

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_unknown_id_returns_none(self):
        self.assertIsNone(SimilarityService(self.store, self.catalog).similar_to('999'))

    def test_ranks_library_and_popular_games(self):
        result = SimilarityService(self.store, self.catalog).similar_to('1', 5)
        self.assertEqual([(g['name'], g['source']) for g in result],
                         [('Popular RPG', 'popular'), ('Game 2', 'collection')])
        self.assertEqual(result[0]['matchScore'], 80)

    def test_without_catalog_uses_stored_data(self):
        result = SimilarityService(self.store).similar_to('1', 5)
        self.assertEqual([g['id'] for g in result], ['2'])
        self.assertEqual(result[0]['matchScore'], 70)


if __name__ == '__main__':
    unittest.main()
