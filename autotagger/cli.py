#!/usr/bin/env python3
"""Command-line interface for autotagger."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from autotagger.config import Settings
from autotagger.errors import AutotaggerError
from autotagger.extract import extract_subtitles
from autotagger.tagger import tag_items

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    """Route package logging through rich when verbose, otherwise silence it so it doesn't break up prompts."""
    package_logger = logging.getLogger('autotagger')
    if verbose:
        package_logger.setLevel(logging.DEBUG)
        package_logger.handlers = [RichHandler(console=Console(stderr=True), show_path=False)]
    else:
        package_logger.setLevel(logging.CRITICAL)
        package_logger.handlers = [logging.NullHandler()]
    package_logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autotagger",
        description="Identify TV episodes on a ripped disc by comparing subtitles, and rename the files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract subtitles (with OCR for DVD/Blu-ray bitmap tracks):
  autotagger extract-subtitles title_t00.mkv title_t01.mkv

  # Extract without OCR, leaving .idx/.sub files:
  autotagger extract-subtitles --skip-ocr *.mkv

  # Match the .srt files in the current directory and rename the videos:
  autotagger tag

Environment:
  TMDB_API_KEY      TMDB API key (required for tag)
  OST_API_KEY       OpenSubtitles API key (required for tag)
  OST_USERNAME      OpenSubtitles username (prompted if unset)
  OST_PASSWORD      OpenSubtitles password (prompted if unset)
  BDSUP2SUB_PATH    Path to BDSup2Sub.jar for Blu-ray (PGS) subtitles (prompted if needed)
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    extract_parser = subparsers.add_parser(
        "extract-subtitles",
        help="Extract subtitles from a set of mkv files, generating srt files"
    )
    extract_parser.add_argument(
        "-s", "--skip-ocr",
        action="store_true",
        help="Skip running OCR on bitmap-style subtitles, leaving them in sub/idx format"
    )
    extract_parser.add_argument("files", nargs="+", type=Path, help="mkv files to extract subtitles from")

    tag_parser = subparsers.add_parser(
        "tag",
        help="Match extracted subtitles against episodes and rename the video files"
    )
    tag_parser.add_argument(
        "--directory",
        type=Path,
        default=Path('.'),
        help="Directory containing the mkv/srt files (default: current directory)"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    error_console = Console(stderr=True)
    try:
        settings = Settings.from_env()
        if args.command == "extract-subtitles":
            missing = [path for path in args.files if not path.is_file()]
            if missing:
                error_console.print(f"[red]Error:[/red] File not found: {missing[0]}")
                return 1
            extract_subtitles(settings, files=args.files, skip_ocr=args.skip_ocr)
        elif args.command == "tag":
            directory = args.directory.expanduser()
            if not directory.is_dir():
                error_console.print(f"[red]Error:[/red] Directory not found: {directory}")
                return 1
            tag_items(settings, directory=directory)
    except AutotaggerError as e:
        logger.debug("Command failed", exc_info=True)
        error_console.print(f"[red]Error:[/red] {e}")
        return 1
    except KeyboardInterrupt:
        error_console.print("[yellow]Interrupted[/yellow]")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
