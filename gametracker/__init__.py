"""
GameTracker application package.

Follows a layered architecture:

  gametracker/repositories/  pure I/O: the Redis hash and the JSON file
                               that hold tracked games.
  gametracker/services/      business logic: the library store with its
                               backend fallback, similarity scoring,
                               analytics and export.

``GameTracker`` (in ``tracker.py``) is the integration point: it reads the
configuration, builds the repositories, catalog clients and services, and
exposes them as public attributes (e.g. ``tracker.store``).  Route handlers in
``tracker_web.py`` call these services directly.
"""
