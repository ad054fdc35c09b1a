"""Global configuration and per-session render state."""

from __future__ import annotations

import sys


DEBUG_FLAGS = ("--debug",)


class Config:
    debug: bool = False       # timestamp every rendered block
    verbose: bool = False     # diagnostics on stderr
    markdown: bool = False    # render the final result as markdown


config = Config()


def debug_requested(argv: list[str] | None = None) -> bool:
    """True if a recognized debug flag is on the command line."""
    if argv is None:
        argv = sys.argv[1:]
    return any(arg in DEBUG_FLAGS for arg in argv)


class RenderState:
    """What was written last. Lives for one session only."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.last_kind: str = ""
        self.pending_call: bool = False
        self.last_assistant_text: str | None = None

    def record(self, kind: str, pending_call: bool = False,
               assistant_text: str | None = None):
        self.last_kind = kind
        self.pending_call = pending_call
        self.last_assistant_text = assistant_text
