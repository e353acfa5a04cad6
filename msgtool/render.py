"""
Terminal rendering of the final entry list.

:class:`RichRenderer` prints one colour-coded panel per entry.  When
rich is not installed :func:`build_renderer` returns None and the
caller falls back to :func:`render_raw`, which dumps the entries'
validated JSON records unchanged.
"""

from __future__ import annotations

import json
import sys
from typing import Optional, Sequence, TextIO

from loguru import logger

from .errors import RendererUnavailable
from .models import Entry, LinkContent

try:
    from rich.console import Console, Group
    from rich.panel import Panel
    from rich.style import Style
    from rich.text import Text
except ImportError:
    Console = None  # type: ignore

NO_MATCHES = "No matches found."


class RichRenderer:
    def __init__(self, console: Optional["Console"] = None) -> None:
        if Console is None:
            raise RendererUnavailable("rich is not installed")
        self.console = console or Console()

    def _panel(self, entry: Entry) -> "Panel":
        spec = entry.category.spec
        title = Text.assemble((entry.id, f"bold {spec.colour}"), (f"  {spec.label}", "dim"))
        parts = []
        if entry.description:
            parts.append(Text(entry.description, style="italic"))
        if isinstance(entry.content, LinkContent):
            parts.append(Text(entry.content.url, style=Style(underline=True, link=entry.content.url)))
        else:
            parts.append(Text(entry.content.text))
        parts.append(Text("tags: " + ", ".join(entry.tags), style="dim"))
        return Panel(Group(*parts), title=title, title_align="left", border_style=spec.colour)

    def render(self, entries: Sequence[Entry]) -> None:
        if not entries:
            self.console.print(NO_MATCHES, style="dim")
            return
        for entry in entries:
            self.console.print(self._panel(entry))


def build_renderer() -> Optional[RichRenderer]:
    """Return the rich renderer, or None when rich is unavailable."""
    if Console is None:
        return None
    return RichRenderer()


def render_raw(entries: Sequence[Entry], stream: Optional[TextIO] = None) -> None:
    """Write the entries' JSON records as an indented array."""
    stream = stream if stream is not None else sys.stdout
    logger.debug("Writing {} entr(ies) as raw JSON", len(entries))
    payload = json.dumps([e.to_record() for e in entries], indent=2, ensure_ascii=False)
    try:
        stream.write(payload + "\n")
        stream.flush()
    except OSError as e:
        raise RendererUnavailable(f"cannot write raw output: {e}") from e
