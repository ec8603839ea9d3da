"""Subtitle extraction pipeline: mkvextract on the caller's thread, OCR on a task queue."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from autotagger.config import Settings
from autotagger.errors import AutotaggerError, NoSubtitleTrackError
from autotagger.interact import ask_text, say
from autotagger.task_queue import TaskQueue
from autotagger.tools import convert_pgs, extract_track, run_vobsubocr
from autotagger.tracks import SubtitleTrack, get_comparison_track

logger = logging.getLogger(__name__)

VIDEO_EXTENSION = '.mkv'


@dataclass
class ExtractionSummary:
    """Files handled by one extraction run."""

    extracted: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    ocr_queued: List[Path] = field(default_factory=list)


def list_video_files(directory: Path) -> List[Path]:
    """List the Matroska files directly inside a directory, sorted by name."""
    return sorted(
        path for path in directory.iterdir()
        if path.is_file() and path.suffix.lower() == VIDEO_EXTENSION
    )


def sibling_path(media_file: Path, extension: str) -> Path:
    """Swap only the final extension, so ``Show.Disc1.t00.mkv`` gives ``Show.Disc1.t00.srt``."""
    return media_file.with_name(media_file.stem + extension)


def _extraction_target(media_file: Path, track: SubtitleTrack) -> Path:
    if track.kind == 'pgs':
        return sibling_path(media_file, '.sup')
    if track.kind == 'text':
        return sibling_path(media_file, '.srt')
    # VobSub: mkvextract replaces the extension and writes both .idx and .sub
    return sibling_path(media_file, '.idx')


def _remove_intermediate(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        say(f"[yellow]Could not delete {path.name}. Error:[/yellow] {e}")


def ocr_track(media_file: Path, track: SubtitleTrack, language: str = "eng", bdsup2sub_path: Optional[str] = None) -> bool:
    """
    Convert an extracted bitmap subtitle track into an SRT file.

    Runs on the OCR task queue. The intermediate bitmap files are removed only
    if OCR succeeds. Failures are reported to the user here because the queue
    has no way to pass them back.

    Returns:
        True if the SRT file was produced
    """
    idx_file = sibling_path(media_file, '.idx')
    sub_file = sibling_path(media_file, '.sub')
    sup_file = sibling_path(media_file, '.sup')
    srt_file = sibling_path(media_file, '.srt')

    try:
        if track.kind == 'pgs':
            if not bdsup2sub_path:
                raise AutotaggerError("BDSup2Sub path is required to convert PGS subtitles")
            convert_pgs(sup_file, idx_file, bdsup2sub_path)
        run_vobsubocr(idx_file, srt_file, language)
    except AutotaggerError as e:
        logger.error(f"OCR failed for {media_file.name}: {e}")
        say(f"[red]OCR failed for {media_file.name}:[/red] {e}")
        return False

    # Remove raster subtitle files
    for path in (idx_file, sub_file):
        _remove_intermediate(path)
    if track.kind == 'pgs':
        _remove_intermediate(sup_file)

    logger.info(f"Created {srt_file.name}")
    return True


def resolve_bdsup2sub_path(settings: Settings) -> str:
    """Return the BDSup2Sub jar path, asking the user once if it is not configured."""
    if not settings.bdsup2sub_path:
        settings.bdsup2sub_path = ask_text("Path to BDSup2Sub.jar (set BDSUP2SUB_PATH to skip this prompt)")
    return settings.bdsup2sub_path


def extract_subtitles(
    settings: Settings,
    files: Optional[Sequence[Path]] = None,
    skip_ocr: bool = False,
    directory: Path = Path('.')
) -> ExtractionSummary:
    """
    Extract a comparison subtitle track from each video file.

    Extraction runs file by file on this thread. OCR for a bitmap track is
    queued and runs while the next file is extracted; OCR jobs run one at a
    time in file order. Files without an English subtitle track are skipped.

    Args:
        settings: Run settings (OCR language, BDSup2Sub path)
        files: Video files to process (default: every .mkv in ``directory``)
        skip_ocr: Leave bitmap tracks as .idx/.sub (or .sup) without running OCR
        directory: Directory searched when ``files`` is None

    Returns:
        ExtractionSummary of extracted and skipped files

    Raises:
        ExternalToolError: If mkvextract fails. Files already extracted keep
            their output and their queued OCR still completes.
    """
    if files is None:
        files = list_video_files(Path(directory))
    files = [Path(f) for f in files]

    summary = ExtractionSummary()
    if not files:
        say("[yellow]No mkv files found[/yellow]")
        return summary

    ocr_queue = None if skip_ocr else TaskQueue(name="ocr")
    try:
        for media_file in files:
            try:
                track = get_comparison_track(media_file)
            except NoSubtitleTrackError as e:
                say(f"[yellow]Skipping {media_file.name}.[/yellow] {e}")
                summary.skipped.append(media_file)
                continue

            say(f"Extracting {track.describe()} from [bold]{media_file.name}[/bold]")
            extract_track(media_file, track.index, _extraction_target(media_file, track))
            summary.extracted.append(media_file)

            if ocr_queue is not None and track.needs_ocr:
                bdsup2sub_path = resolve_bdsup2sub_path(settings) if track.kind == 'pgs' else None
                ocr_queue.add_task(ocr_track, media_file, track, settings.ocr_language, bdsup2sub_path)
                summary.ocr_queued.append(media_file)
    finally:
        if ocr_queue is not None:
            ocr_queue.wait_for_queued_tasks()
            ocr_queue.close()

    return summary
