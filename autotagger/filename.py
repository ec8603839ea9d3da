"""Filename generation for matched episodes."""

import re
import unicodedata
from pathlib import Path

from autotagger.models import Episode

# Path separators and Windows reserved characters
UNSAFE_CHARS = '/\\:*?"<>|'

# Leave room for the "SxxEyy - " prefix and the extension
MAX_TITLE_LENGTH = 240


def sanitize_filename(name: str) -> str:
    """
    Sanitize a filename component so it is valid on common filesystems.

    - Path separators and Windows reserved characters become " - "
    - Control and other invisible characters (Unicode category C*) are dropped
    - Repeated spaces and dashes collapse, leading/trailing spaces, dots and
      dashes are stripped
    - Long names are truncated
    """
    for ch in UNSAFE_CHARS:
        name = name.replace(ch, ' - ')

    name = ''.join(ch for ch in name if not unicodedata.category(ch).startswith('C'))
    name = unicodedata.normalize('NFKC', name)

    name = ' '.join(name.split())
    name = re.sub(r'\s*-\s*-\s*', ' - ', name)
    name = name.strip(' .-')

    if len(name) > MAX_TITLE_LENGTH:
        name = name[:MAX_TITLE_LENGTH].rstrip(' .-')

    return name or "unnamed"


def format_episode_filename(episode: Episode, extension: str = '.mkv') -> str:
    """Return ``S01E02 - Title.mkv`` for an episode."""
    return f"{episode.code} - {sanitize_filename(episode.name)}{extension}"


def resolve_unique_path(target_path: Path) -> Path:
    """Append " (n)" to the stem until the path does not exist."""
    if not target_path.exists():
        return target_path

    counter = 1
    while True:
        candidate = target_path.with_name(f"{target_path.stem} ({counter}){target_path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1
