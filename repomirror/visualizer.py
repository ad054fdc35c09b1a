"""Live rendering of an agent's stream-json output."""

from __future__ import annotations

import sys
from datetime import datetime
from typing import Callable, Iterable, TextIO

from repomirror.correlation import DUPLICATE, PAIRED, CorrelationStore
from repomirror.events import (
    FinalResult, GenericEvent, MessageEvent, ParseError, ToolCall,
    ToolCallEvent, ToolResult, ToolResultEvent, parse_line,
)
from repomirror.render import Renderer
from repomirror.state import config, debug_requested
from repomirror.summarizer import SessionSummarizer
from repomirror.ui import dbg


class VisualizerSession:
    """
    One visualize invocation: correlation maps, render state and sink.

    Feed it raw lines with feed_line() in arrival order and call close()
    once the stream ends. Each rendered block is a single write to the sink.
    """

    def __init__(self, out: TextIO | None = None, debug: bool | None = None,
                 markdown: bool | None = None,
                 clock: Callable[[], datetime] | None = None):
        self.out = out if out is not None else sys.stdout
        if debug is None:
            debug = config.debug or debug_requested()
        if markdown is None:
            markdown = config.markdown
        self.renderer = Renderer(debug=debug, markdown=markdown, clock=clock)
        self.store = CorrelationStore()
        self.summarizer = SessionSummarizer()
        self.line_count: int = 0
        self.parse_errors: int = 0

    # ── Output ──

    def _emit(self, block: str, kind: str, pending_call: bool = False,
              assistant_text: str | None = None):
        self.out.write(self.renderer.stamp(block) + "\n")
        self.out.flush()
        self.summarizer.observe(kind, pending_call=pending_call, assistant_text=assistant_text)

    # ── Event handling ──

    def feed_line(self, raw_line: str):
        event = parse_line(raw_line)
        if event is None:
            return
        self.line_count += 1

        if isinstance(event, ParseError):
            self.parse_errors += 1
            dbg(f"[line {self.line_count}] {event.reason}")
            self._emit(self.renderer.parse_error(event), event.kind)
        elif isinstance(event, FinalResult):
            self._emit(self.renderer.final_result(event), event.kind)
        elif isinstance(event, MessageEvent):
            self._on_message(event)
        elif isinstance(event, ToolCallEvent):
            self._on_call(event.call)
        elif isinstance(event, ToolResultEvent):
            self._on_result(event.result)
        elif isinstance(event, GenericEvent):
            self._emit(self.renderer.generic(event), event.kind)

    def _on_message(self, event: MessageEvent):
        block = self.renderer.message(event)
        if block is not None:
            text = event.text if event.kind == "assistant" and event.texts else None
            self._emit(block, event.kind, assistant_text=text)
        for call in event.calls:
            self._on_call(call)
        for result in event.results:
            self._on_result(result)

    def _on_call(self, call: ToolCall):
        if not call.id:
            # Nothing can ever pair with it
            self._emit(self.renderer.tool_call(call, waiting=False), "tool_use")
            return
        pairing = self.store.register_call(call)
        if pairing.status == PAIRED:
            self._emit(self.renderer.tool_pair(pairing.call, pairing.result), "tool_use")
        elif pairing.status == DUPLICATE:
            dbg(f"[dup] tool_use {call.id}")
        else:
            self._emit(self.renderer.tool_call(call), "tool_use", pending_call=True)

    def _on_result(self, result: ToolResult):
        pairing = self.store.register_result(result)
        if pairing.status == PAIRED:
            self._emit(self.renderer.tool_pair(pairing.call, pairing.result), "tool_use")
        elif pairing.status == DUPLICATE:
            dbg(f"[dup] tool_result {result.id}")

    # ── Close ──

    def close(self):
        """End of stream: show the last assistant message in full, once."""
        text = self.summarizer.close()
        if text is not None:
            self.out.write(self.renderer.stamp(self.renderer.final_assistant_message(text)) + "\n")
            self.out.flush()
        calls, results = self.store.unpaired()
        if calls or results:
            dbg(f"unpaired at close: {calls} calls, {results} results (discarded)")


def visualize(lines: Iterable[str] | None = None, out: TextIO | None = None,
              debug: bool | None = None, markdown: bool | None = None,
              clock: Callable[[], datetime] | None = None) -> VisualizerSession:
    """Render every line of a stream-json source (stdin by default), then close."""
    session = VisualizerSession(out=out, debug=debug, markdown=markdown, clock=clock)
    source = sys.stdin if lines is None else lines
    try:
        for line in source:
            session.feed_line(line)
    finally:
        session.close()
    return session
