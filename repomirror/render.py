"""Formatting of decoded events into bounded, colorized text blocks."""

from __future__ import annotations

import json
import math
from datetime import datetime
from typing import Any, Callable

from repomirror.events import (
    FinalResult, GenericEvent, MessageEvent, ParseError, ToolCall, ToolResult,
    Usage, capitalize,
)
from repomirror.ui import C, render_markdown, timestamp


KIND_COLORS = {
    "system":      C.MAGENTA,
    "user":        C.BLUE,
    "assistant":   C.GREEN,
    "tool_use":    C.CYAN,
    "tool_result": C.YELLOW,
}

TOOL_ICONS = {
    "Bash":      "⚡",
    "Read":      "📄",
    "Edit":      "✏️ ",
    "MultiEdit": "✏️ ",
    "Write":     "📝",
    "Glob":      "🔍",
    "Grep":      "🔎",
    "Task":      "🔀",
    "WebFetch":  "🌐",
    "WebSearch": "🌐",
    "NotebookEdit": "📓",
    "TodoWrite": "📋",
}

# First key present wins.
PRIMARY_ARGS = ("file_path", "path", "pattern", "command", "query", "prompt", "url")
SECONDARY_ARGS = ("limit", "offset", "timeout", "cwd")

TODO_GLYPHS = {
    "completed":   "✅",
    "in_progress": "🔄",
    "pending":     "⏸️",
}

ELLIPSIS = "..."


def inline(value: Any, max_len: int) -> str:
    """Single-line, length-capped rendition of a value."""
    if isinstance(value, str):
        text = value
    elif value is None:
        text = "null"
    elif isinstance(value, (dict, list, bool, int, float)):
        text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    else:
        text = str(value)
    text = text.replace("\r", "").replace("\n", "\\n").strip()
    if len(text) > max_len:
        return text[:max_len] + ELLIPSIS
    return text


def plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def is_todo_call(call: ToolCall) -> bool:
    return call.name == "TodoWrite" or isinstance(call.input.get("todos"), list)


def todo_percent(done: int, total: int) -> int:
    """Round half up, 1/3 → 33, 1/8 → 13."""
    if total <= 0:
        return 0
    return math.floor(done * 100 / total + 0.5)


class Renderer:
    """
    Turns events into text blocks. Pure formatting: the caller writes the
    returned strings to its sink.

    Example blocks:
        Assistant · 150/75 tokens
          I'll start by reading the config.

        Tool_use 📄 Read /src/app.ts
           limit: 100 · offset: 50
           ✅ Tool Result (4 lines)
             import x from "y";
             ...
    """

    MAX_TEXT_LINES = 3
    MAX_LINE_CHARS = 80
    MAX_RESULT_LINES = 3
    MAX_PRIMARY_CHARS = 100
    MAX_ANNOTATION_CHARS = 60
    MAX_REPLACE_CHARS = 30
    MAX_SUMMARY_ITEMS = 6

    def __init__(self, debug: bool = False, markdown: bool = False,
                 clock: Callable[[], datetime] | None = None):
        self.debug = debug
        self.markdown = markdown
        self.clock = clock

    # ── Block framing ──

    def stamp(self, block: str) -> str:
        """Prefix a block with a render-time timestamp in debug mode."""
        if not self.debug:
            return block
        now = self.clock() if self.clock else None
        return f"[{timestamp(now)}] {block}"

    @staticmethod
    def color(kind: str) -> str:
        return KIND_COLORS.get(kind, C.BOLD)

    def header(self, kind: str, label: str | None = None, meta: list[str] | None = None) -> str:
        label = label or capitalize(kind)
        line = f"{self.color(kind)}{label}{C.RESET}"
        if meta:
            line += f" {C.DIM}· {' · '.join(meta)}{C.RESET}"
        return line

    # ── Text ──

    def truncate(self, text: str, max_lines: int | None = None) -> list[str]:
        """Cap text to a few short lines; truncated output ends in '...'."""
        max_lines = max_lines or self.MAX_TEXT_LINES
        lines = text.splitlines() or [""]
        shown = []
        for line in lines[:max_lines]:
            if len(line) > self.MAX_LINE_CHARS:
                line = line[:self.MAX_LINE_CHARS] + ELLIPSIS
            shown.append(line)
        hidden = len(lines) - max_lines
        if hidden > 0:
            shown.append(f"{C.DIM}{ELLIPSIS} (+{plural(hidden, 'more line')}){C.RESET}")
        return shown

    @staticmethod
    def usage(usage: Usage) -> str:
        return f"{usage.input_tokens}/{usage.output_tokens} tokens"

    def message(self, event: MessageEvent) -> str | None:
        """
        Block for the text (or non-text) part of an assistant/user message.
        Returns None when the message only carries tool calls/results, which
        render themselves, and has no usage counters to show.
        """
        meta = []
        if event.usage is not None:
            meta.append(self.usage(event.usage))
        if event.item_count > 1:
            meta.append(f"{event.item_count} content items")

        if event.texts:
            body = self.truncate(event.text)
        elif event.calls or event.results:
            if event.others:
                body = [f"{C.DIM}{', '.join(o.type for o in event.others)}{C.RESET}"]
            elif event.usage is not None:
                # header line only, carrying the token counters
                body = []
            else:
                return None
        elif event.others:
            if event.item_count == 1:
                body = [f"{C.DIM}[{event.others[0].type}] content{C.RESET}"]
            else:
                body = [f"{C.DIM}{', '.join(o.type for o in event.others)}{C.RESET}"]
        else:
            body = [f"{C.DIM}(empty message){C.RESET}"]

        lines = [self.header(event.kind, meta=meta)]
        lines.extend(f"  {line}" for line in body)
        return "\n".join(lines)

    # ── Tool calls ──

    def _call_header(self, call: ToolCall) -> str:
        icon = TOOL_ICONS.get(call.name, "🔧")
        head = f"{self.color('tool_use')}Tool_use{C.RESET} {icon} {C.BOLD}{call.name}{C.RESET}"
        primary = self.primary_arg(call.input)
        if primary is not None:
            head += f" {inline(call.input[primary], self.MAX_PRIMARY_CHARS)}"
        elif call.input:
            head += f" {C.DIM}{self.summarize_input(call.input)}{C.RESET}"
        return head

    @staticmethod
    def primary_arg(tool_input: dict) -> str | None:
        for key in PRIMARY_ARGS:
            if tool_input.get(key) is not None:
                return key
        return None

    def annotations(self, tool_input: dict) -> list[str]:
        """Secondary 'key: value' notes shown under the call line."""
        notes = []
        for key in SECONDARY_ARGS:
            value = tool_input.get(key)
            if value is None:
                continue
            if key == "timeout":
                notes.append(f"timeout: {inline(value, self.MAX_ANNOTATION_CHARS)}ms")
            else:
                notes.append(f"{key}: {inline(value, self.MAX_ANNOTATION_CHARS)}")

        primary = self.primary_arg(tool_input)
        for key in PRIMARY_ARGS:
            if key != primary and tool_input.get(key) is not None:
                notes.append(f"{key}: {inline(tool_input[key], self.MAX_ANNOTATION_CHARS)}")

        old_s = tool_input.get("old_string")
        new_s = tool_input.get("new_string")
        if old_s is not None and new_s is not None:
            old_short = inline(old_s, self.MAX_REPLACE_CHARS)
            new_short = inline(new_s, self.MAX_REPLACE_CHARS)
            notes.append(f'replace: "{old_short}" → "{new_short}"')

        content = tool_input.get("content")
        if isinstance(content, str):
            notes.append(f"content: {plural(len(content.splitlines()), 'line')}")
        return notes

    def summarize_input(self, tool_input: dict) -> str:
        parts = []
        for idx, (key, value) in enumerate(tool_input.items()):
            if idx >= self.MAX_SUMMARY_ITEMS:
                parts.append(ELLIPSIS)
                break
            parts.append(f"{key}={inline(value, self.MAX_ANNOTATION_CHARS)}")
        return " ".join(parts)

    def todo_lines(self, call: ToolCall) -> list[str]:
        todos = call.input.get("todos")
        items = [t for t in todos if isinstance(t, dict)] if isinstance(todos, list) else []
        done = sum(1 for t in items if t.get("status") == "completed")
        pct = todo_percent(done, len(items))

        lines = [
            f"{self.color('tool_use')}📋 Todo List Update{C.RESET} "
            f"{C.DIM}({done}/{len(items)} · {pct}% done){C.RESET}"
        ]
        if not items:
            lines.append(f"   {C.DIM}(no items){C.RESET}")
        for item in items:
            status = item.get("status")
            glyph = TODO_GLYPHS.get(status, "•")
            text = inline(item.get("content", item.get("activeForm", "")), self.MAX_LINE_CHARS)
            if status == "completed":
                lines.append(f"   {glyph} {C.DIM}{text}{C.RESET}")
            elif status == "in_progress":
                lines.append(f"   {glyph} {C.BOLD}{text}{C.RESET} {C.YELLOW}← ACTIVE{C.RESET}")
            else:
                lines.append(f"   {glyph} {text}")
        return lines

    def _call_lines(self, call: ToolCall) -> list[str]:
        if is_todo_call(call):
            return self.todo_lines(call)
        lines = [self._call_header(call)]
        notes = self.annotations(call.input)
        if notes:
            lines.append(f"   {C.DIM}{' · '.join(notes)}{C.RESET}")
        return lines

    def tool_call(self, call: ToolCall, waiting: bool = True) -> str:
        """Interim block for a call whose result has not arrived yet."""
        lines = self._call_lines(call)
        if waiting:
            lines[0] += f" {C.DIM}⏳ Waiting for result...{C.RESET}"
        return "\n".join(lines)

    def _result_lines(self, result: ToolResult) -> list[str]:
        if result.is_error:
            head = f"   {C.RED}❌ Tool Result (error){C.RESET}"
        else:
            head = f"   {self.color('tool_result')}✅ Tool Result{C.RESET}"
        if not result.content.strip():
            return [f"{head} {C.DIM}(empty){C.RESET}"]

        count = len(result.content.splitlines())
        lines = [f"{head} {C.DIM}({plural(count, 'line')}){C.RESET}"]
        body = self.truncate(result.content, self.MAX_RESULT_LINES)
        if result.is_error:
            body = [f"{C.RED}{line}{C.RESET}" for line in body]
        lines.extend(f"     {line}" for line in body)
        return lines

    def tool_pair(self, call: ToolCall, result: ToolResult) -> str:
        """Completed call and its result as one block."""
        return "\n".join(self._call_lines(call) + self._result_lines(result))

    # ── Other blocks ──

    def generic(self, event: GenericEvent) -> str:
        meta = [event.subtype] if event.subtype else None
        lines = [self.header(event.kind, label=event.label, meta=meta)]
        if event.message:
            lines.extend(f"  {line}" for line in self.truncate(event.message))
        fields = [
            f"{key}: {inline(value, self.MAX_ANNOTATION_CHARS)}"
            for key, value in list(event.fields.items())[:self.MAX_SUMMARY_ITEMS]
        ]
        if len(event.fields) > self.MAX_SUMMARY_ITEMS:
            fields.append(ELLIPSIS)
        if fields:
            lines.append(f"  {C.DIM}{' · '.join(fields)}{C.RESET}")
        return "\n".join(lines)

    def parse_error(self, event: ParseError) -> str:
        head = f"{C.RED}Parse Error{C.RESET}"
        if event.reason:
            head += f" {C.DIM}({event.reason}){C.RESET}"
        return f"{head}\n  {C.DIM}{event.preview}{C.RESET}"

    def final_result(self, event: FinalResult) -> str:
        color = C.RED if event.is_error else C.GREEN
        lines = [f"{color}=== Final Result ==={C.RESET}"]
        if not event.text:
            lines.append(f"{C.DIM}(no result text){C.RESET}")
        elif self.markdown:
            lines.append(render_markdown(event.text).rstrip("\n"))
        else:
            lines.append(event.text)

        meta = []
        if event.subtype:
            meta.append(event.subtype)
        if event.num_turns is not None:
            meta.append(plural(event.num_turns, "turn"))
        if event.duration_ms is not None:
            meta.append(f"{event.duration_ms / 1000:.1f}s")
        if event.cost_usd is not None:
            meta.append(f"${event.cost_usd:.4f}")
        if event.usage is not None:
            meta.append(self.usage(event.usage))
        if meta:
            lines.append(f"{C.DIM}{' · '.join(meta)}{C.RESET}")
        return "\n".join(lines)

    def final_assistant_message(self, text: str) -> str:
        return f"{C.GREEN}=== Final Assistant Message ==={C.RESET}\n{text}"
