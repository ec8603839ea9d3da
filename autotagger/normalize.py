"""Subtitle text normalization for lexical comparison."""

import re

_MARKUP_RE = re.compile(r'<\s*[^>]*>|<\s*/\s*a>')
_TIMING_LINE_RE = re.compile(r'^.*-->.*$', re.MULTILINE)
_DISALLOWED_CHARS_RE = re.compile(r'[^a-zA-Z0-9 ?.,!\n]')
# Index lines ("12") and leading list-dash/whitespace noise
_LINE_NOISE_RE = re.compile(r'^\s*[0-9]+\s*$|^[ \-]+', re.MULTILINE)
_WHITESPACE_RE = re.compile(r'\s+')


def strip_subtitles(subs: str) -> str:
    """
    Strip symbols from subtitles that may cause issues during comparison.

    Removes markup tags, timing cue lines, subtitle index lines and any
    character outside letters, digits, space and ``?.,!``, then collapses
    whitespace into single spaces. Two tracks with the same dialogue but
    different formatting normalize to the same string.

    The function is idempotent: running it on its own output is a no-op.

    Args:
        subs: Raw subtitle text (SRT or similar)

    Returns:
        Normalized text on a single line
    """
    text = _MARKUP_RE.sub('', subs)
    text = _TIMING_LINE_RE.sub('', text)
    text = _DISALLOWED_CHARS_RE.sub('', text)
    text = _LINE_NOISE_RE.sub('', text)
    return _WHITESPACE_RE.sub(' ', text).strip()
