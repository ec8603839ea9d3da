"""Autotagger - identify TV episodes from subtitles and rename ripped video files."""

__version__ = "1.0.0"

from autotagger.matcher import Assignment, CandidateFile, match_files
from autotagger.models import Episode
from autotagger.normalize import strip_subtitles
from autotagger.task_queue import TaskQueue

__all__ = [
    'Assignment',
    'CandidateFile',
    'Episode',
    'TaskQueue',
    'match_files',
    'strip_subtitles',
]
