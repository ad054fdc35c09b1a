"""ANSI colors, output helpers, markdown rendering, timestamps."""

from __future__ import annotations

import sys
from datetime import datetime, timezone

from rich.console import Console
from rich.markdown import Markdown
from rich.padding import Padding
from rich.theme import Theme

from repomirror.state import config


# ── Rich console ────────────────────────────────────────────────────────────

_theme = Theme({"markdown.heading": "bold cyan"})


def render_markdown(text: str, width: int = 100) -> str:
    """Render markdown text to an ANSI string."""
    console = Console(theme=_theme, highlight=False, force_terminal=True, width=width)
    with console.capture() as capture:
        console.print(Padding(Markdown(text), (0, 0, 0, 2)))
    return capture.get()


# ── ANSI Colors ─────────────────────────────────────────────────────────────

class C:
    RED     = "\033[31m"
    GREEN   = "\033[32m"
    YELLOW  = "\033[33m"
    BLUE    = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN    = "\033[36m"
    BOLD    = "\033[1m"
    DIM     = "\033[2m"
    RESET   = "\033[0m"


# ── Output helpers ──────────────────────────────────────────────────────────

def error(msg: str):
    print(f"  {C.RED}[Error] {msg}{C.RESET}", file=sys.stderr, flush=True)


def dbg(msg: str):
    if config.verbose:
        print(f"{C.YELLOW}[DEBUG] {msg}{C.RESET}", file=sys.stderr, flush=True)


def timestamp(now: datetime | None = None) -> str:
    """2023-12-01T10:30:45.123Z"""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
