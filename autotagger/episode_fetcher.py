"""Interactive episode selection from TMDB and subtitle retrieval per episode."""

import logging
from typing import Callable, Dict, List, TypeVar

import requests

from autotagger.errors import NoSubtitlesFoundError, ProviderError
from autotagger.interact import ask_text, console_session, multi_select, say, select
from autotagger.models import Episode
from autotagger.normalize import strip_subtitles
from autotagger.opensubtitles import OpenSubtitlesClient, get_subtitles
from autotagger.tmdb_client import TMDBClient

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _tmdb_call(description: str, func: Callable[..., T], *args) -> T:
    """Run a TMDB request, turning request failures into ProviderError."""
    try:
        return func(*args)
    except requests.exceptions.HTTPError as e:
        if e.response is not None and e.response.status_code == 401:
            raise ProviderError("Invalid TMDB API key (401 Unauthorized)") from e
        raise ProviderError(f"{description}: TMDB API error: {e}") from e
    except requests.exceptions.RequestException as e:
        raise ProviderError(f"{description}: error accessing TMDB: {e}") from e


def describe_show(show: Dict) -> str:
    if show.get('first_air_date'):
        return f"{show['id']}: {show['name']} ({show['first_air_date']})"
    return f"{show['id']}: {show['name']}"


def get_tv_show(tmdb: TMDBClient) -> Dict:
    """Ask the user for a title and which search result to use; returns the show details."""
    with console_session():
        while True:
            title = ask_text("Title")
            shows = _tmdb_call("Couldn't search TV shows", tmdb.search_tv_show, title)
            if shows:
                break
            say(f"[yellow]No TV shows found for {title!r}[/yellow]")

        index = select("Please select the desired result", [describe_show(show) for show in shows])
    return _tmdb_call("Couldn't get TV show", tmdb.get_show_details, shows[index]['id'])


def get_episodes_from_user(tmdb: TMDBClient) -> List[Episode]:
    """
    Let the user pick a show, the seasons on the disc and the episodes in each.

    Returns:
        Selected episodes, unique by TMDB episode id, in selection order
    """
    show = get_tv_show(tmdb)
    seasons = show.get('seasons', [])
    if not seasons:
        say(f"[yellow]{show.get('name', 'This show')} has no seasons listed on TMDB[/yellow]")
        return []

    with console_session():
        season_indexes = multi_select(
            "Please select the seasons included on this disc",
            [f"{season.get('name')} ({season.get('episode_count', 0)} episodes)" for season in seasons]
        )

        episodes: Dict[int, Episode] = {}
        for index in season_indexes:
            season = _tmdb_call(
                "Couldn't get season",
                tmdb.get_season, show['id'], seasons[index]['season_number']
            )
            season_episodes = season.get('episodes', [])
            if not season_episodes:
                continue
            episode_indexes = multi_select(
                f"Please select the episodes included on this disc from {season.get('name')}",
                [f"Episode {ep.get('episode_number')} - {ep.get('name')}" for ep in season_episodes]
            )
            for episode_index in episode_indexes:
                episode = Episode.from_tmdb(season_episodes[episode_index])
                episodes.setdefault(episode.id, episode)

    return list(episodes.values())


def fetch_episode_subtitles(
    client: OpenSubtitlesClient,
    episodes: List[Episode],
    prompt_user: bool = False
) -> List[Episode]:
    """
    Attach normalized subtitles to each episode.

    Episodes for which the provider has no subtitles are left out of the result
    with a notice. Request failures abort.

    Returns:
        Episodes that now have subtitles
    """
    found = []
    for episode in episodes:
        try:
            subtitles = get_subtitles(client, episode, prompt_user)
        except NoSubtitlesFoundError:
            say(f"Skipping {episode.code}. No subtitles found.")
            continue
        episode.attach_subtitles(strip_subtitles(subtitles))
        found.append(episode)

    logger.info(f"Subtitles found for {len(found)} of {len(episodes)} episodes")
    return found
