"""Episode matching using Levenshtein edit distance between subtitle texts."""

import logging
import queue
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from autotagger.models import Episode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateFile:
    """A subtitle file waiting to be matched.

    ``path`` has its extension stripped so the paired video (``.mkv``) and
    subtitle (``.srt``) paths can be derived from it.
    """

    path: Path
    content: str

    @property
    def video_path(self) -> Path:
        return self.path.with_name(self.path.name + '.mkv')

    @property
    def subtitle_path(self) -> Path:
        return self.path.with_name(self.path.name + '.srt')


class DistanceObservation(NamedTuple):
    episode_id: int
    distance: int
    file: CandidateFile


@dataclass(frozen=True)
class Assignment:
    """Outcome of matching one candidate file.

    ``episode`` is None when no episode ranked the file at all. Otherwise it is
    the closest episode; ``closest_negative`` is the distance of the runner-up,
    if there was one. The gap between the two is the caller's confidence
    signal. Nothing is rejected automatically.
    """

    file: CandidateFile
    episode: Optional[Episode] = None
    distance: Optional[int] = None
    closest_negative: Optional[int] = None

    @property
    def matched(self) -> bool:
        return self.episode is not None

    @property
    def margin(self) -> Optional[int]:
        """Distance between winner and runner-up, or None if there is no runner-up."""
        if self.distance is None or self.closest_negative is None:
            return None
        return self.closest_negative - self.distance


def levenshtein(a: str, b: str) -> int:
    """Minimum number of single-character insertions, deletions and substitutions turning a into b."""
    return Levenshtein.distance(a, b)


def _observation_key(observation: DistanceObservation) -> Tuple[int, int, str]:
    return (observation.episode_id, observation.distance, str(observation.file.path))


def _score_pair(results: "queue.Queue[DistanceObservation]", episode: Episode, candidate: CandidateFile) -> None:
    distance = levenshtein(episode.subtitles, candidate.content)
    results.put(DistanceObservation(episode.id, distance, candidate))


def compute_distances(
    episodes: Iterable[Episode],
    files: Sequence[CandidateFile],
    max_workers: Optional[int] = None
) -> List[DistanceObservation]:
    """
    Compute the edit distance of every (episode, file) pair in parallel.

    Each pair is scored independently on a worker pool and pushed onto a
    results queue, which is drained by this thread once all workers finish.
    Episodes without subtitle text are ignored.

    Args:
        episodes: Episodes with normalized subtitles attached
        files: Candidate files with normalized content
        max_workers: Worker pool size (default: ThreadPoolExecutor default)

    Returns:
        Observations sorted by episode id, then distance, then file path
    """
    episodes = [episode for episode in episodes if episode.has_subtitles]
    results: "queue.Queue[DistanceObservation]" = queue.Queue()

    if not episodes or not files:
        return []

    logger.debug(f"Scoring {len(episodes) * len(files)} episode/file pairs")
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="levenshtein") as executor:
        futures = [
            executor.submit(_score_pair, results, episode, candidate)
            for episode in episodes
            for candidate in files
        ]

    # Re-raise the first worker error, if any
    for future in futures:
        future.result()

    observations = []
    while not results.empty():
        observations.append(results.get_nowait())

    observations.sort(key=_observation_key)
    return observations


def group_by_episode(observations: Iterable[DistanceObservation]) -> Dict[int, List[Tuple[CandidateFile, int]]]:
    """Map episode id -> [(file, distance)] ranked by ascending distance."""
    by_episode: Dict[int, List[Tuple[CandidateFile, int]]] = {}
    for observation in observations:
        by_episode.setdefault(observation.episode_id, []).append((observation.file, observation.distance))
    for candidates in by_episode.values():
        candidates.sort(key=lambda item: (item[1], str(item[0].path)))
    return by_episode


def group_by_file(
    by_episode: Dict[int, List[Tuple[CandidateFile, int]]],
    episodes: Dict[int, Episode]
) -> Dict[CandidateFile, List[Tuple[int, Episode]]]:
    """Invert the per-episode ranking into file -> [(distance, episode)]."""
    by_file: Dict[CandidateFile, List[Tuple[int, Episode]]] = {}
    for episode_id, candidates in by_episode.items():
        episode = episodes[episode_id]
        for candidate, distance in candidates:
            by_file.setdefault(candidate, []).append((distance, episode))
    return by_file


def assign(
    files: Sequence[CandidateFile],
    by_file: Dict[CandidateFile, List[Tuple[int, Episode]]]
) -> List[Assignment]:
    """
    Pick the closest episode for each file.

    This is a greedy per-file choice: two files may pick the same episode.
    Every proposed rename is confirmed by the user, so duplicates are surfaced
    rather than resolved here.

    Returns:
        One Assignment per file, in the order of ``files``
    """
    assignments = []
    for candidate in files:
        ranked = sorted(by_file.get(candidate, []), key=lambda item: (item[0], item[1].id))
        if not ranked:
            assignments.append(Assignment(file=candidate))
            continue

        distance, episode = ranked[0]
        closest_negative = ranked[1][0] if len(ranked) > 1 else None
        assignments.append(Assignment(
            file=candidate,
            episode=episode,
            distance=distance,
            closest_negative=closest_negative
        ))
    return assignments


def match_files(
    episodes: Iterable[Episode],
    files: Sequence[CandidateFile],
    max_workers: Optional[int] = None
) -> List[Assignment]:
    """
    Match candidate subtitle files against episode subtitles.

    Args:
        episodes: Episodes with normalized subtitles (episodes without are ignored)
        files: Candidate files with normalized content
        max_workers: Worker pool size for distance computation

    Returns:
        One Assignment per file, in the order of ``files``
    """
    episodes_by_id = {episode.id: episode for episode in episodes if episode.has_subtitles}
    observations = compute_distances(episodes_by_id.values(), files, max_workers=max_workers)
    by_episode = group_by_episode(observations)
    by_file = group_by_file(by_episode, episodes_by_id)
    return assign(files, by_file)


def contested_episodes(assignments: Iterable[Assignment]) -> Dict[int, List[CandidateFile]]:
    """Return episode id -> files for episodes that won more than one file."""
    winners: Dict[int, List[CandidateFile]] = {}
    for assignment in assignments:
        if assignment.matched:
            winners.setdefault(assignment.episode.id, []).append(assignment.file)
    return {episode_id: files for episode_id, files in winners.items() if len(files) > 1}
