"""Serialized console interaction.

Background threads (OCR tasks, provider calls) may need to talk to the user
while the main thread is also prompting. All prompts go through a single
process-wide console lock so that two prompts never render at the same time.
The lock is re-entrant: a flow that holds it via console_session() can call
the prompt helpers freely.
"""

import re
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Sequence, TypeVar

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

T = TypeVar('T')

console = Console()

CONSOLE_LOCK = threading.RLock()

_RANGE_RE = re.compile(r'^(\d+)\s*-\s*(\d+)$')


@contextmanager
def console_session() -> Iterator[Console]:
    """Hold the console for a multi-prompt flow."""
    with CONSOLE_LOCK:
        yield console


def interact(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a console interaction while holding the console lock."""
    with CONSOLE_LOCK:
        return func(*args, **kwargs)


def say(*objects: Any, **kwargs: Any) -> None:
    """Print to the console without interleaving with a prompt in progress."""
    interact(console.print, *objects, **kwargs)


def ask_text(prompt: str, allow_empty: bool = False) -> str:
    with CONSOLE_LOCK:
        while True:
            value = Prompt.ask(prompt, console=console).strip()
            if value or allow_empty:
                return value
            console.print("[red]A value is required[/red]")


def ask_password(prompt: str) -> str:
    with CONSOLE_LOCK:
        while True:
            value = Prompt.ask(prompt, console=console, password=True)
            if value:
                return value
            console.print("[red]A value is required[/red]")


def confirm(prompt: str, default: bool = False) -> bool:
    with CONSOLE_LOCK:
        return Confirm.ask(prompt, console=console, default=default)


def _print_items(items: Sequence[str], title: str) -> None:
    table = Table(title=title, show_header=False, border_style="dim", title_justify="left")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Item", overflow="fold")
    for index, item in enumerate(items, start=1):
        table.add_row(str(index), item)
    console.print(table)


def select(prompt: str, items: Sequence[str], default: Optional[int] = 0) -> int:
    """
    Let the user pick one item from a numbered list.

    Args:
        prompt: Prompt shown above the list
        items: Item descriptions
        default: Zero-based index selected when the user just presses Enter

    Returns:
        Zero-based index of the selected item
    """
    if not items:
        raise ValueError("Cannot select from an empty list")

    with CONSOLE_LOCK:
        _print_items(items, prompt)
        choices = [str(i) for i in range(1, len(items) + 1)]
        kwargs = {}
        if default is not None:
            kwargs['default'] = default + 1
        choice = IntPrompt.ask("Selection", console=console, choices=choices, show_choices=False, **kwargs)
        return choice - 1


def parse_selection(text: str, count: int) -> List[int]:
    """
    Parse a multi-selection like ``1,3-5`` into sorted zero-based indexes.

    ``all`` selects everything; an empty string selects nothing.

    Raises:
        ValueError: If a number or range is malformed or out of bounds
    """
    text = text.strip().lower()
    if not text:
        return []
    if text in ('all', '*'):
        return list(range(count))

    selected = set()
    for part in text.split(','):
        part = part.strip()
        if not part:
            continue
        range_match = _RANGE_RE.match(part)
        if range_match:
            start, end = int(range_match.group(1)), int(range_match.group(2))
        elif part.isdigit():
            start = end = int(part)
        else:
            raise ValueError(f"Not a number or range: {part!r}")
        if start < 1 or end > count or start > end:
            raise ValueError(f"Out of range: {part!r} (choose between 1 and {count})")
        selected.update(range(start - 1, end))
    return sorted(selected)


def multi_select(prompt: str, items: Sequence[str]) -> List[int]:
    """Let the user pick any number of items; returns zero-based indexes in list order."""
    with CONSOLE_LOCK:
        _print_items(items, prompt)
        while True:
            answer = Prompt.ask(
                "Selection [dim](e.g. 1,3-5 or all)[/dim]",
                console=console,
                default="",
                show_default=False
            )
            try:
                return parse_selection(answer, len(items))
            except ValueError as e:
                console.print(f"[red]{e}[/red]")


def page(text: str) -> None:
    """Show a long text in the system pager."""
    with CONSOLE_LOCK:
        with console.pager():
            console.print(text, markup=False, highlight=False)
