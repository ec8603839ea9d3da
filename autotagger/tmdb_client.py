"""TMDB API client for fetching TV show and episode information."""

from typing import Dict, List, Optional

import requests


class TMDBClient:
    BASE_URL = "https://api.themoviedb.org/3"

    def __init__(self, api_key: str, timeout: Optional[float] = 30.0, session: Optional[requests.Session] = None):
        """Initialize TMDB client with an API key."""
        if not api_key:
            raise ValueError("TMDB API key must be provided")
        self.api_key = api_key
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            'accept': 'application/json',
        })

    def _get(self, path: str, **params) -> Dict:
        params['api_key'] = self.api_key
        response = self.session.get(f"{self.BASE_URL}{path}", params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def search_tv_show(self, show_name: str) -> List[Dict]:
        """
        Search for a TV show and return list of matches.
        Returns list of dicts with show information.
        """
        results = self._get("/search/tv", query=show_name).get('results', [])
        return [
            {
                'id': show['id'],
                'name': show['name'],
                'first_air_date': show.get('first_air_date') or '',
                'overview': show.get('overview', '')
            }
            for show in results
        ]

    def get_show_details(self, show_id: int) -> Dict:
        """Fetch TV show details including the list of seasons."""
        return self._get(f"/tv/{show_id}")

    def get_season(self, show_id: int, season: int) -> Dict:
        """Fetch full season details (single request) including all episodes."""
        return self._get(f"/tv/{show_id}/season/{season}")
