"""Episode data for a tagging run."""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class Episode:
    """A TV episode selected by the user.

    ``subtitles`` holds the normalized subtitle text and is attached once,
    after the subtitle provider has been queried.
    """

    id: int
    season_number: int
    episode_number: int
    name: str
    subtitles: Optional[str] = None

    @classmethod
    def from_tmdb(cls, data: Dict) -> "Episode":
        """Build an episode from a TMDB season ``episodes`` entry."""
        return cls(
            id=int(data['id']),
            season_number=int(data.get('season_number', 0)),
            episode_number=int(data.get('episode_number', 0)),
            name=data.get('name', ''),
        )

    @property
    def has_subtitles(self) -> bool:
        return self.subtitles is not None

    @property
    def code(self) -> str:
        return f"S{self.season_number:02d}E{self.episode_number:02d}"

    def attach_subtitles(self, text: str) -> None:
        if self.subtitles is not None:
            raise ValueError(f"Subtitles already attached to episode {self.id} ({self.code})")
        self.subtitles = text
