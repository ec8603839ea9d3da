"""Rename preview and execution."""

import logging
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from autotagger.errors import RenameError
from autotagger.filename import format_episode_filename, resolve_unique_path
from autotagger.matcher import Assignment, contested_episodes

logger = logging.getLogger(__name__)


def proposed_path(assignment: Assignment) -> Optional[Path]:
    """Where the assignment's video would be renamed to, or None without a match."""
    if not assignment.matched:
        return None
    return assignment.file.video_path.with_name(format_episode_filename(assignment.episode))


def _format_distance(value: Optional[int]) -> str:
    return "n/a" if value is None else str(value)


def display_match_preview(assignments: List[Assignment], console: Console) -> None:
    """Show all proposed renames in a table, flagging episodes claimed by several files."""
    matched_count = sum(1 for a in assignments if a.matched)
    console.print()
    console.print(Panel(
        f"[green]{matched_count}[/green] of [yellow]{len(assignments)}[/yellow] files matched",
        title="[bold]Match Preview[/bold]",
        border_style="cyan"
    ))

    table = Table(show_header=True, header_style="bold cyan", border_style="dim")
    table.add_column("File", style="yellow", overflow="fold")
    table.add_column("New Filename", style="green", overflow="fold")
    table.add_column("Distance", justify="right")
    table.add_column("Closest Negative", justify="right", style="dim")

    for assignment in assignments:
        target = proposed_path(assignment)
        if target is None:
            table.add_row(assignment.file.video_path.name, "[red][No match found][/red]", "", "")
        else:
            table.add_row(
                assignment.file.video_path.name,
                target.name,
                _format_distance(assignment.distance),
                _format_distance(assignment.closest_negative)
            )
    console.print(table)

    episodes = {a.episode.id: a.episode for a in assignments if a.matched}
    for episode_id, files in contested_episodes(assignments).items():
        names = ", ".join(f.video_path.name for f in files)
        console.print(
            f"[yellow]Warning:[/yellow] {episodes[episode_id].code} is the best match for several files: {names}"
        )
    console.print()


def display_assignment(assignment: Assignment, console: Console) -> None:
    """Print a single proposed rename with its confidence signal."""
    target = proposed_path(assignment)
    if target is None:
        console.print(f"{assignment.file.video_path} => ??? (No match found)")
        return
    console.print(
        f"{assignment.file.video_path} => [green]{target.name}[/green]\n"
        f"    distance:         {_format_distance(assignment.distance)}\n"
        f"    closest negative: {_format_distance(assignment.closest_negative)}"
    )


def execute_rename(assignment: Assignment) -> Path:
    """
    Rename the matched video file and remove its subtitle sidecar.

    An existing file is never overwritten; a " (n)" suffix is added instead.

    Returns:
        The new video path

    Raises:
        RenameError: If the file has no match, the rename fails, or the
            sidecar cannot be removed
    """
    target = proposed_path(assignment)
    if target is None:
        raise RenameError(f"No match for {assignment.file.video_path.name}")

    video = assignment.file.video_path
    if video == target:
        final_path = video
    else:
        final_path = resolve_unique_path(target)
        try:
            video.rename(final_path)
        except OSError as e:
            raise RenameError(f"Couldn't rename mkv file {video.name}: {e}") from e

    if final_path != target:
        logger.warning(f"Conflict resolved: {target.name} -> {final_path.name}")

    try:
        assignment.file.subtitle_path.unlink()
    except OSError as e:
        raise RenameError(f"Failed to remove srt file {assignment.file.subtitle_path.name}: {e}") from e

    logger.info(f"Renamed {video.name} -> {final_path.name}")
    return final_path
