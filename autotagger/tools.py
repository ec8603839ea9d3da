"""Invocation of the external extraction and OCR programs."""

import logging
import subprocess
from pathlib import Path
from typing import List, Sequence

from autotagger.errors import ExternalToolError

logger = logging.getLogger(__name__)

# Characters tesseract tends to hallucinate on DVD subtitles
OCR_CHAR_BLACKLIST = "|\\/`_~"


def run_tool(args: Sequence[str], description: str) -> None:
    """
    Run an external program and wait for it to exit.

    Output is captured and logged at debug level so that tools running on a
    background thread never write over an interactive prompt. There is no
    timeout: a hung tool stalls its caller.

    Raises:
        ExternalToolError: If the program is missing or exits with a non-zero status
    """
    command: List[str] = [str(arg) for arg in args]
    logger.debug(f"Running {description}: {' '.join(command)}")
    try:
        result = subprocess.run(command, capture_output=True, text=True, errors='replace')
    except FileNotFoundError as e:
        raise ExternalToolError(
            f"{description} failed: {command[0]} not found. Is it installed and on PATH?",
            command=command
        ) from e
    except OSError as e:
        raise ExternalToolError(f"{description} failed: {e}", command=command) from e

    if result.stdout:
        logger.debug(f"{command[0]} output:\n{result.stdout.rstrip()}")

    if result.returncode != 0:
        stderr = (result.stderr or '').strip()
        detail = f": {stderr[-300:]}" if stderr else ""
        raise ExternalToolError(
            f"{description} failed with exit code {result.returncode}{detail}",
            command=command,
            returncode=result.returncode
        )


def extract_track(media_file: Path, track_index: int, destination: Path) -> None:
    """Extract one track of a Matroska file with mkvextract.

    For VobSub tracks ``destination`` is the ``.idx`` path; mkvextract writes
    the matching ``.sub`` file next to it.
    """
    run_tool(
        ['mkvextract', 'tracks', media_file, f"{track_index}:{destination}"],
        f"Extracting subtitles from {media_file.name}"
    )


def convert_pgs(sup_file: Path, idx_file: Path, bdsup2sub_path: str) -> None:
    """Convert a PGS (.sup) subtitle stream to VobSub (.idx/.sub) with BDSup2Sub."""
    run_tool(
        ['java', '-jar', bdsup2sub_path, '-o', idx_file, sup_file],
        f"Converting {sup_file.name} to VobSub"
    )


def run_vobsubocr(idx_file: Path, srt_file: Path, language: str = "eng") -> None:
    """OCR a VobSub (.idx/.sub) pair into an SRT file."""
    run_tool(
        [
            'vobsubocr',
            '-c', f"tessedit_char_blacklist={OCR_CHAR_BLACKLIST}",
            '-l', language,
            '-o', srt_file,
            idx_file,
        ],
        f"Running OCR on {idx_file.name}"
    )
