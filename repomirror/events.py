"""Decoder for agent stream-json lines.

Each non-blank line is one JSON object. The payloads are loosely typed, so
classification goes by field shape: content items are tried against an
ordered list of shape predicates, and anything unmatched falls through to a
generic event that keeps the raw payload for best-effort display.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Union


PARSE_ERROR_PREVIEW = 200

MESSAGE_KINDS = ("assistant", "user")


# ── Payload types ───────────────────────────────────────────────────────────

@dataclass
class ToolCall:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    id: str
    content: str = ""
    is_error: bool = False


@dataclass
class TextFragment:
    text: str


@dataclass
class OpaqueItem:
    type: str
    raw: Any = None


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


# ── Events ──────────────────────────────────────────────────────────────────

@dataclass
class ParseError:
    preview: str
    reason: str = ""
    kind: str = "parse_error"


@dataclass
class FinalResult:
    text: str
    subtype: str = ""
    is_error: bool = False
    usage: Usage | None = None
    cost_usd: float | None = None
    duration_ms: float | None = None
    num_turns: int | None = None
    raw: Any = None
    kind: str = "result"


@dataclass
class MessageEvent:
    kind: str                      # "assistant" or "user"
    texts: list[str] = field(default_factory=list)
    calls: list[ToolCall] = field(default_factory=list)
    results: list[ToolResult] = field(default_factory=list)
    others: list[OpaqueItem] = field(default_factory=list)
    item_count: int = 0
    usage: Usage | None = None
    raw: Any = None

    @property
    def text(self) -> str:
        return "\n".join(self.texts)


@dataclass
class ToolCallEvent:
    call: ToolCall
    raw: Any = None
    kind: str = "tool_use"


@dataclass
class ToolResultEvent:
    result: ToolResult
    raw: Any = None
    kind: str = "tool_result"


@dataclass
class GenericEvent:
    kind: str
    label: str
    subtype: str = ""
    message: str = ""
    fields: dict[str, Any] = field(default_factory=dict)
    raw: Any = None


Event = Union[ParseError, FinalResult, MessageEvent, ToolCallEvent,
              ToolResultEvent, GenericEvent]


# ── Value helpers ───────────────────────────────────────────────────────────

def capitalize(word: str) -> str:
    """custom_type → Custom_type (only the first letter changes)."""
    return word[:1].upper() + word[1:]


def stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def _number(value: Any) -> float | None:
    """Finite JSON number, or None. json.loads accepts NaN, Infinity and 1e400."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _count(value: Any) -> int:
    number = _number(value)
    return 0 if number is None else int(number)


def _as_id(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return ""


def decode_usage(usage: Any) -> Usage | None:
    if not isinstance(usage, dict):
        return None
    return Usage(
        input_tokens=_count(usage.get("input_tokens")),
        output_tokens=_count(usage.get("output_tokens")),
    )


def result_text(content: Any) -> str:
    """Flatten tool_result content (string or list of blocks) to text."""
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, dict):
                if "text" in block:
                    parts.append(stringify(block["text"]))
                elif block.get("type") == "image":
                    parts.append("[image]")
                else:
                    parts.append(stringify(block))
            else:
                parts.append(stringify(block))
        return "\n".join(parts)
    return stringify(content)


# ── Content item shapes (tried in order) ────────────────────────────────────

def tool_result_shape(item: dict) -> ToolResult | None:
    if item.get("type") != "tool_result":
        return None
    return ToolResult(
        id=_as_id(item.get("tool_use_id")),
        content=result_text(item.get("content")),
        is_error=item.get("is_error") is True,
    )


def tool_call_shape(item: dict) -> ToolCall | None:
    name = item.get("name")
    if name is None:
        return None
    tool_input = item.get("input")
    return ToolCall(
        id=_as_id(item.get("id")),
        name=stringify(name),
        input=tool_input if isinstance(tool_input, dict) else {},
    )


def text_shape(item: dict) -> TextFragment | None:
    if "text" not in item:
        return None
    return TextFragment(stringify(item["text"]))


CONTENT_SHAPES: tuple[Callable[[dict], Any], ...] = (
    tool_result_shape,
    tool_call_shape,
    text_shape,
)


def decode_item(item: Any) -> ToolCall | ToolResult | TextFragment | OpaqueItem:
    if not isinstance(item, dict):
        return OpaqueItem(type=type(item).__name__, raw=item)
    for shape in CONTENT_SHAPES:
        decoded = shape(item)
        if decoded is not None:
            return decoded
    item_type = item.get("type")
    return OpaqueItem(type=item_type if isinstance(item_type, str) else "unknown", raw=item)


# ── Event decoders ──────────────────────────────────────────────────────────

def _decode_message(kind: str, data: dict) -> MessageEvent:
    event = MessageEvent(kind=kind, raw=data)
    message = data.get("message")
    if isinstance(message, str):
        event.texts.append(message)
        event.item_count = 1
        return event
    if not isinstance(message, dict):
        return event

    event.usage = decode_usage(message.get("usage"))
    content = message.get("content")
    if isinstance(content, str):
        event.texts.append(content)
        event.item_count = 1
        return event
    if not isinstance(content, list):
        return event

    event.item_count = len(content)
    for item in content:
        decoded = decode_item(item)
        if isinstance(decoded, ToolResult):
            event.results.append(decoded)
        elif isinstance(decoded, ToolCall):
            event.calls.append(decoded)
        elif isinstance(decoded, TextFragment):
            event.texts.append(decoded.text)
        else:
            event.others.append(decoded)
    return event


def _decode_result(data: dict) -> FinalResult:
    num_turns = data.get("num_turns")
    return FinalResult(
        text=stringify(data.get("result")),
        subtype=stringify(data.get("subtype")),
        is_error=data.get("is_error") is True,
        usage=decode_usage(data.get("usage")),
        cost_usd=_number(data.get("total_cost_usd")),
        duration_ms=_number(data.get("duration_ms")),
        num_turns=num_turns if isinstance(num_turns, int) and not isinstance(num_turns, bool) else None,
        raw=data,
    )


def _decode_generic(kind: str, data: dict) -> GenericEvent:
    return GenericEvent(
        kind=kind,
        label=capitalize(kind),
        subtype=stringify(data.get("subtype")),
        message=stringify(data.get("message")),
        fields={k: v for k, v in data.items() if k not in ("type", "subtype", "message")},
        raw=data,
    )


def decode(data: Any, source: str = "") -> Event:
    """Classify one decoded JSON value."""
    if not isinstance(data, dict):
        return ParseError(_preview(source), f"expected a JSON object, got {type(data).__name__}")

    etype = data.get("type")
    if etype is not None and not isinstance(etype, str):
        return ParseError(_preview(source), "'type' must be a string")

    if etype == "result":
        return _decode_result(data)
    if etype in MESSAGE_KINDS:
        return _decode_message(etype, data)
    if etype == "tool_use" and data.get("name") is not None:
        call = tool_call_shape(data)
        return ToolCallEvent(call=call, raw=data)
    if etype == "tool_result" and data.get("tool_use_id") is not None:
        result = tool_result_shape(data)
        return ToolResultEvent(result=result, raw=data)
    return _decode_generic(etype or "unknown", data)


def _preview(source: str) -> str:
    if len(source) > PARSE_ERROR_PREVIEW:
        return source[:PARSE_ERROR_PREVIEW] + "..."
    return source


def parse_line(line: str) -> Event | None:
    """Decode one raw line. Blank lines give None; nothing raises."""
    stripped = line.strip()
    if not stripped:
        return None
    try:
        data = json.loads(stripped)
    except json.JSONDecodeError as exc:
        return ParseError(_preview(stripped), exc.msg)
    except (ValueError, RecursionError) as exc:
        # int digit limits, pathological nesting
        return ParseError(_preview(stripped), type(exc).__name__)
    return decode(data, stripped)
