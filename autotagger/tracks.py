"""Subtitle track discovery in Matroska containers using ffprobe."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import ffmpeg

from autotagger.errors import ExternalToolError, NoSubtitleTrackError
from autotagger.interact import select

logger = logging.getLogger(__name__)

ENGLISH_TAGS = {'eng', 'en', 'en-us', 'en-gb'}

# ffprobe codec_name -> track kind. Codecs not listed (ASS, WebVTT, DVB) are not extracted.
CODEC_KINDS = {
    'dvd_subtitle': 'vobsub',
    'hdmv_pgs_subtitle': 'pgs',
    'subrip': 'text',
    'srt': 'text',
}


@dataclass(frozen=True)
class SubtitleTrack:
    """A subtitle stream inside a container.

    ``index`` is the stream index reported by ffprobe, which is also the
    track id mkvextract expects for Matroska files.
    """

    index: int
    codec: str
    language: Optional[str] = None
    default: bool = False
    title: Optional[str] = None

    @property
    def kind(self) -> str:
        return CODEC_KINDS.get(self.codec, 'unknown')

    @property
    def supported(self) -> bool:
        return self.kind != 'unknown'

    @property
    def needs_ocr(self) -> bool:
        return self.kind in ('vobsub', 'pgs')

    def describe(self) -> str:
        description = f"Track {self.index}: codec {self.codec}, language: {self.language or 'unknown'}"
        if self.title:
            description += f", title: {self.title}"
        if self.default:
            description += " (default)"
        return description

    @classmethod
    def from_stream(cls, stream: Dict) -> "SubtitleTrack":
        tags = stream.get('tags') or {}
        disposition = stream.get('disposition') or {}
        return cls(
            index=int(stream['index']),
            codec=stream.get('codec_name', ''),
            language=tags.get('language') or tags.get('LANGUAGE'),
            default=bool(disposition.get('default', 0)),
            title=tags.get('title') or tags.get('TITLE'),
        )


def _is_english(track: SubtitleTrack) -> bool:
    return bool(track.language) and track.language.lower() in ENGLISH_TAGS


def get_subtitle_tracks(media_file: Path) -> List[SubtitleTrack]:
    """
    Get the English subtitle tracks of a video file that can be turned into SRT.

    Raises:
        ExternalToolError: If ffprobe cannot read the file
    """
    try:
        probe = ffmpeg.probe(str(media_file))
    except ffmpeg.Error as e:
        stderr = (e.stderr or b'').decode('utf8', errors='ignore').strip()
        raise ExternalToolError(f"Couldn't open video file {media_file.name}: {stderr[-200:]}") from e
    except FileNotFoundError as e:
        raise ExternalToolError("ffprobe not found. Is ffmpeg installed and on PATH?") from e

    tracks = [
        SubtitleTrack.from_stream(stream)
        for stream in probe.get('streams', [])
        if stream.get('codec_type') == 'subtitle'
    ]
    english = [track for track in tracks if _is_english(track)]
    usable = [track for track in english if track.supported]
    for track in english:
        if not track.supported:
            logger.debug(f"{media_file.name}: ignoring track {track.index}, unsupported codec {track.codec}")
    logger.debug(f"{media_file.name}: {len(tracks)} subtitle tracks, {len(usable)} usable English")
    return usable


def get_default_track(tracks: List[SubtitleTrack]) -> Optional[SubtitleTrack]:
    """
    Try to narrow the tracks down to one preferable track.

    Returns the only track, or the only track flagged default. Returns None when
    the choice is ambiguous.
    """
    if len(tracks) == 1:
        return tracks[0]
    defaults = [track for track in tracks if track.default]
    if len(defaults) == 1:
        return defaults[0]
    return None


def get_comparison_track(media_file: Path) -> SubtitleTrack:
    """
    Get the track to use for comparison, prompting the user if it is ambiguous.

    Raises:
        NoSubtitleTrackError: If the file has no English subtitle track
    """
    tracks = get_subtitle_tracks(media_file)
    if not tracks:
        raise NoSubtitleTrackError(f"No valid subtitle tracks found in {media_file.name}")

    track = get_default_track(tracks)
    if track is not None:
        return track

    index = select(
        f"Select the subtitles track of {media_file.name} to use for comparison",
        [track.describe() for track in tracks]
    )
    return tracks[index]
