"""
trailer_client.py
=================
Trailer lookup through the YouTube Data API, used when the catalog has no
movie for a game.

Usage
-----
::

    from trailer_client import YouTubeTrailerClient

    client = YouTubeTrailerClient(api_key="abc")
    client.find_trailer("Hades")
    # "https://www.youtube.com/embed/<id>?autoplay=1&mute=1&controls=0&loop=1&playlist=<id>"
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

logger = logging.getLogger('tracker.trailer')

_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
_EMBED_URL = ("https://www.youtube.com/embed/{vid}"
              "?autoplay=1&mute=1&controls=0&loop=1&playlist={vid}")
_DEFAULT_TIMEOUT = 10  # seconds


class YouTubeTrailerClient:
    """Finds an embeddable trailer URL for a game name."""

    def __init__(self, api_key: str, timeout: int = _DEFAULT_TIMEOUT) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self.session = requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def find_trailer(self, game_name: str) -> Optional[str]:
        """Return an embed URL for the first matching video, or ``None``.

        ``None`` is returned when no API key is configured, the name is
        blank, the request fails or nothing matches.
        """
        if not self._api_key:
            logger.info("YouTube API key not configured")
            return None
        if not game_name or not game_name.strip():
            return None

        params = {
            'part': 'snippet',
            'q': f"{game_name.strip()} official trailer gameplay",
            'type': 'video',
            'maxResults': 1,
            'videoDuration': 'short',
            'key': self._api_key,
        }
        try:
            resp = self.session.get(_SEARCH_URL, params=params, timeout=self._timeout)
            resp.raise_for_status()
            items = resp.json().get('items') or []
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.warning("Trailer search for %r failed: %s", game_name, e)
            return None

        video_id = (items[0].get('id') or {}).get('videoId') if items else None
        if not video_id:
            return None
        return _EMBED_URL.format(vid=video_id)
