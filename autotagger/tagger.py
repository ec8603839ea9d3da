"""Tagging workflow: match extracted subtitles to episodes and rename the videos."""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from autotagger.config import Settings
from autotagger.episode_fetcher import fetch_episode_subtitles, get_episodes_from_user
from autotagger.extract import extract_subtitles
from autotagger.interact import confirm, console, console_session, say
from autotagger.matcher import Assignment, CandidateFile, match_files
from autotagger.normalize import strip_subtitles
from autotagger.opensubtitles import OpenSubtitlesClient
from autotagger.rename_executor import display_assignment, display_match_preview, execute_rename
from autotagger.tmdb_client import TMDBClient

logger = logging.getLogger(__name__)

SUBTITLE_EXTENSION = '.srt'


def get_subtitle_files(directory: Path) -> List[CandidateFile]:
    """Read every .srt file in a directory into a normalized CandidateFile."""
    files = []
    for path in sorted(Path(directory).iterdir()):
        if not path.is_file() or path.suffix.lower() != SUBTITLE_EXTENSION:
            continue
        contents = path.read_text(encoding='utf-8', errors='replace')
        files.append(CandidateFile(path=path.with_suffix(''), content=strip_subtitles(contents)))
    return files


def _offer_extraction(settings: Settings, directory: Path) -> Optional[List[CandidateFile]]:
    if not confirm("Subtitles not found. Would you like to extract them?"):
        return None
    extract_subtitles(settings, directory=directory)
    return get_subtitle_files(directory)


def review_assignments(assignments: List[Assignment]) -> List[Tuple[Assignment, Optional[Path]]]:
    """
    Ask the user to confirm each proposed rename and perform the confirmed ones.

    Files renamed before a failure stay renamed; the RenameError propagates.

    Returns:
        (assignment, new path or None) for each assignment
    """
    outcomes = []
    with console_session():
        display_match_preview(assignments, console)
        for assignment in assignments:
            display_assignment(assignment, console)
            if not assignment.matched:
                outcomes.append((assignment, None))
                continue
            if not confirm("Rename file?"):
                outcomes.append((assignment, None))
                continue
            new_path = execute_rename(assignment)
            console.print(f"[green]✓[/green] Renamed to {new_path.name}")
            outcomes.append((assignment, new_path))
    return outcomes


def tag_items(
    settings: Settings,
    directory: Path = Path('.'),
    tmdb: Optional[TMDBClient] = None,
    subtitles_client: Optional[OpenSubtitlesClient] = None
) -> List[Tuple[Assignment, Optional[Path]]]:
    """
    Run the interactive tagging workflow.

    1. The user picks the show, seasons and episodes on the disc.
    2. Reference subtitles are downloaded for each episode; episodes without
       any are skipped.
    3. The .srt files in ``directory`` (extracting them first if there are
       none and the user agrees) are matched against the episodes.
    4. Each proposed rename is confirmed by the user before it happens.

    Returns:
        (assignment, new path or None) per candidate file; empty if the run
        could not continue
    """
    directory = Path(directory)
    if tmdb is None:
        tmdb = TMDBClient(settings.require('tmdb_api_key'), timeout=settings.http_timeout)
    if subtitles_client is None:
        subtitles_client = OpenSubtitlesClient(settings)

    episodes = get_episodes_from_user(tmdb)
    if not episodes:
        say("No episodes selected.")
        return []

    manually_select_subs = confirm("Would you like to select subtitles manually?")
    episodes = fetch_episode_subtitles(subtitles_client, episodes, prompt_user=manually_select_subs)
    if not episodes:
        say("No subtitles found for any selected episode.")
        return []

    files = get_subtitle_files(directory)
    if not files:
        files = _offer_extraction(settings, directory)
        if not files:
            say("Cannot continue without subtitles.")
            return []

    say(f"Comparing {len(files)} subtitle files against {len(episodes)} episodes...")
    assignments = match_files(episodes, files, max_workers=settings.max_workers)
    return review_assignments(assignments)
