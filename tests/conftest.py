"""Shared fixtures for visualizer tests."""

import json
import re
from datetime import datetime, timezone

import pytest

from repomirror.state import config
from repomirror.visualizer import VisualizerSession


ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")
FIXED_NOW = datetime(2023, 12, 1, 10, 30, 45, 123000, tzinfo=timezone.utc)


def strip_ansi(text: str) -> str:
    return ANSI_RE.sub("", text)


class RecordingSink:
    """Output sink that keeps each write() as one block."""

    def __init__(self):
        self.blocks: list[str] = []
        self.flushes: int = 0

    def write(self, text: str):
        self.blocks.append(text)

    def flush(self):
        self.flushes += 1

    @property
    def text(self) -> str:
        return "".join(self.blocks)

    @property
    def plain(self) -> str:
        return strip_ansi(self.text)

    def clear(self):
        self.blocks.clear()


def line(payload) -> str:
    return json.dumps(payload)


def tool_call_line(tool_id, name, tool_input):
    return line({
        "type": "assistant",
        "message": {"content": [{"id": tool_id, "name": name, "input": tool_input}]},
    })


def tool_result_line(tool_id, content, is_error=False):
    return line({
        "type": "user",
        "message": {"content": [{
            "type": "tool_result", "tool_use_id": tool_id,
            "content": content, "is_error": is_error,
        }]},
    })


def assistant_text_line(text, usage=None):
    message = {"content": [{"type": "text", "text": text}]}
    if usage is not None:
        message["usage"] = usage
    return line({"type": "assistant", "message": message})


@pytest.fixture(autouse=True)
def reset_config():
    """Keep the module-level config from leaking between tests."""
    saved = (config.debug, config.verbose, config.markdown)
    config.debug = config.verbose = config.markdown = False
    yield
    config.debug, config.verbose, config.markdown = saved


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def session(sink):
    return VisualizerSession(out=sink, debug=False)


@pytest.fixture
def debug_session(sink):
    return VisualizerSession(out=sink, debug=True, clock=lambda: FIXED_NOW)
