#!/usr/bin/env python3
"""
Tests for the TrackedGame record helpers in gametracker/models.py.

Run with:
    python -m pytest tests/test_models.py
"""
import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gametracker.exceptions import ValidationError
from gametracker.models import (
    catalog_id_of, clean_updates, derive_id, from_catalog, name_list,
    release_year, sanitize_record,
)


class TestNormalisation(unittest.TestCase):

    def test_name_list_handles_all_shapes(self):
        items = ['PC', {'name': 'PS5'}, {'platform': {'name': 'Switch'}}, {'id': 1}, 7, '']
        self.assertEqual(name_list(items), ['PC', 'PS5', 'Switch'])
        self.assertEqual(name_list('PC'), [])

    def test_release_year(self):
        self.assertEqual(release_year('2020-05-01'), 2020)
        self.assertEqual(release_year('Released in 1998'), 1998)
        self.assertEqual(release_year(2015), 2015)
        self.assertIsNone(release_year('TBA'))
        self.assertIsNone(release_year(None))

    def test_catalog_id_of(self):
        self.assertEqual(catalog_id_of({'id': 3498}), 3498)
        self.assertEqual(catalog_id_of({'id': '3498', 'catalogId': '3498'}), 3498)
        self.assertIsNone(catalog_id_of({'id': '3498'}))
        self.assertIsNone(catalog_id_of({'id': True}))

    def test_from_catalog_drops_unknown_keys(self):
        record = from_catalog({'id': 1, 'name': 'Hades', 'slug': 'hades',
                               'esrb_rating': {'name': 'Teen'}, 'genres': 'bad'})
        self.assertEqual(record, {'catalogId': 1, 'name': 'Hades',
                                  'genres': [], 'platforms': []})

    def test_from_catalog_dedupes_genres(self):
        record = from_catalog({'id': 1, 'name': 'X',
                               'genres': [{'id': 4, 'name': 'Action'}, {'id': 4, 'name': 'Action'}]})
        self.assertEqual(record['genres'], [{'id': 4, 'name': 'Action'}])

    def test_derive_id_prefers_catalog_id(self):
        self.assertEqual(derive_id({'id': 42, 'slug': 'x'}), '42')
        self.assertEqual(derive_id({'id': 0, 'slug': 'x'}), 'x')


class TestCleanUpdates(unittest.TestCase):

    def test_drops_immutable_fields(self):
        self.assertEqual(clean_updates({'id': 'x', 'storedAt': 1, 'notes': 'n'}), {'notes': 'n'})

    def test_tags_are_trimmed_and_unique(self):
        self.assertEqual(clean_updates({'tags': [' a', 'a ', 'b', 3, '']})['tags'], ['a', 'b'])

    def test_non_list_tags_rejected(self):
        with self.assertRaises(ValidationError):
            clean_updates({'tags': 'a,b'})

    def test_required_fields_stay_required(self):
        for body in ({'name': ''}, {'name': '  '}, {'name': None},
                     {'catalogId': None}, {'catalogId': True}, {'catalogId': '12a'}):
            with self.assertRaises(ValidationError):
                clean_updates(body)

    def test_valid_name_and_catalog_id_pass(self):
        self.assertEqual(clean_updates({'name': 'Hades II', 'catalogId': '42'}),
                         {'name': 'Hades II', 'catalogId': 42})

    def test_non_dict_body_rejected(self):
        with self.assertRaises(ValidationError):
            clean_updates(['notes'])


class TestSanitizeRecord(unittest.TestCase):

    def test_non_dict_is_none(self):
        self.assertIsNone(sanitize_record(None))
        self.assertIsNone(sanitize_record('game'))

    def test_legacy_fields_are_coerced(self):
        record = sanitize_record({'id': 7, 'name': 'Old', 'tags': ['a', 1, 'a'],
                                  'screenshots': 'x.png', 'isFavorite': 1,
                                  'hoursPlayed': '3'})
        self.assertEqual(record['id'], '7')
        self.assertEqual(record['tags'], ['a'])
        self.assertEqual(record['screenshots'], [])
        self.assertIs(record['isFavorite'], True)
        self.assertEqual(record['hoursPlayed'], 0)

    def test_input_is_not_mutated(self):
        raw = {'id': 7, 'tags': [1]}
        sanitize_record(raw)
        self.assertEqual(raw, {'id': 7, 'tags': [1]})


if __name__ == '__main__':
    unittest.main()
