"""OpenSubtitles REST API client."""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import requests

from autotagger.config import Settings
from autotagger.errors import NoSubtitlesFoundError, ProviderError
from autotagger.interact import ask_password, ask_text, confirm, console_session, page, select
from autotagger.models import Episode

logger = logging.getLogger(__name__)


class TokenCache:
    """
    Lazily populated, never refreshed authentication token.

    Reads are lock-free once the token is set. The first caller to find it
    empty takes the write lock and logs in; concurrent callers wait on the lock
    and then reuse that token instead of logging in again.
    """

    def __init__(self):
        self._token: Optional[str] = None
        self._write_lock = threading.Lock()

    @property
    def token(self) -> Optional[str]:
        return self._token

    def get_or_fetch(self, fetch: Callable[[], str]) -> str:
        token = self._token
        if token is not None:
            return token
        with self._write_lock:
            if self._token is None:
                self._token = fetch()
            return self._token


@dataclass(frozen=True)
class SubtitleSummary:
    """One downloadable subtitle file from a search result."""

    file_id: int
    file_name: str
    language: str
    uploader: str
    uploader_rank: str

    def describe(self) -> str:
        return (
            f"lang: {self.language}, name: {self.file_name}, "
            f"uploader: {self.uploader} ({self.uploader_rank})"
        )


def prompt_credentials() -> Tuple[str, str]:
    with console_session():
        username = ask_text("OST Username")
        password = ask_password("Password")
    return username, password


class OpenSubtitlesClient:
    BASE_URL = "https://api.opensubtitles.com/api/v1"

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        token_cache: Optional[TokenCache] = None,
        credentials: Optional[Callable[[], Tuple[str, str]]] = None
    ):
        """
        Args:
            settings: Run settings; ``ost_api_key`` is required
            session: HTTP session (default: new requests.Session)
            token_cache: Shared token cache (default: new, empty cache)
            credentials: Returns (username, password) when settings has none
                (default: prompt the user)
        """
        self.api_key = settings.require('ost_api_key')
        self.settings = settings
        self.timeout = settings.http_timeout
        self.session = session or requests.Session()
        self.token_cache = token_cache or TokenCache()
        self._credentials = credentials or prompt_credentials

    def _headers(self) -> dict:
        return {
            'User-Agent': self.settings.user_agent,
            'Api-Key': self.api_key,
        }

    def _auth_headers(self) -> dict:
        headers = self._headers()
        headers['Authorization'] = f"Bearer {self.token_cache.get_or_fetch(self.login)}"
        return headers

    def login(self) -> str:
        """Authenticate with the user's credentials and return the session token."""
        if self.settings.ost_username and self.settings.ost_password:
            username, password = self.settings.ost_username, self.settings.ost_password
        else:
            username, password = self._credentials()

        try:
            response = self.session.post(
                f"{self.BASE_URL}/login",
                headers=self._headers(),
                json={'username': username, 'password': password},
                timeout=self.timeout
            )
            response.raise_for_status()
            token = response.json()['token']
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code == 401:
                raise ProviderError("Failed to authenticate with the OST API: invalid credentials") from e
            raise ProviderError(f"Failed to authenticate with the OST API: {e}") from e
        except (requests.exceptions.RequestException, ValueError, KeyError) as e:
            raise ProviderError(f"Failed to authenticate with the OST API: {e}") from e

        logger.info("Authenticated with OpenSubtitles")
        return token

    def search_subtitles(self, tmdb_id: int) -> List[SubtitleSummary]:
        """Find subtitle files for an episode by its TMDB id."""
        try:
            response = self.session.get(
                f"{self.BASE_URL}/subtitles",
                params={'tmdb_id': str(tmdb_id)},
                headers=self._auth_headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json().get('data', [])
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Error querying subtitles: {e}") from e
        except ValueError as e:
            raise ProviderError(f"Unsupported subtitle query response: {e}") from e

        summaries = []
        for result in data:
            attributes = result.get('attributes', {})
            uploader = attributes.get('uploader') or {}
            for file in attributes.get('files', []):
                summaries.append(SubtitleSummary(
                    file_id=int(file['file_id']),
                    file_name=file.get('file_name', ''),
                    language=attributes.get('language', ''),
                    uploader=uploader.get('name', ''),
                    uploader_rank=uploader.get('rank', ''),
                ))
        return summaries

    def download(self, file_id: int) -> str:
        """Download the text of a subtitle file."""
        try:
            response = self.session.post(
                f"{self.BASE_URL}/download",
                json={'file_id': file_id},
                headers=self._auth_headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
            link = response.json()['link']

            payload = self.session.get(link, timeout=self.timeout)
            payload.raise_for_status()
            return payload.text
        except (requests.exceptions.RequestException, ValueError, KeyError) as e:
            raise ProviderError(f"An error occurred while downloading subtitles: {e}") from e


def get_subtitles(client: OpenSubtitlesClient, episode: Episode, prompt_user: bool = False) -> str:
    """
    Get the raw subtitle text for an episode.

    Without ``prompt_user`` the first search result is used. Otherwise the user
    picks a file, may preview it, and confirms before it is accepted.

    Raises:
        NoSubtitlesFoundError: If the provider has no subtitles for the episode
        ProviderError: If a request fails
    """
    files = client.search_subtitles(episode.id)
    if not files:
        raise NoSubtitlesFoundError(f"No subtitles found for {episode.code} - {episode.name}")

    if not prompt_user:
        return client.download(files[0].file_id)

    items = [file.describe() for file in files]
    with console_session():
        while True:
            selection = select(f"Select a file for {episode.code} - {episode.name}", items)
            subtitles = client.download(files[selection].file_id)
            if not confirm("Would you like to preview the file?"):
                return subtitles
            page(subtitles)
            if confirm("Use these subtitles for comparison?"):
                return subtitles
