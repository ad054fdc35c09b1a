"""Pairing of tool calls with their results by correlation id."""

from __future__ import annotations

from dataclasses import dataclass

from repomirror.events import ToolCall, ToolResult


PAIRED = "paired"
PENDING = "pending"
DUPLICATE = "duplicate"


@dataclass
class Pairing:
    status: str
    call: ToolCall | None = None
    result: ToolResult | None = None


class CorrelationStore:
    """
    Holds whichever half of a call/result pair arrived first.

    Both arrival orders are supported: the second half pops the first and
    the pair is returned for rendering. An id is never in both maps at once.
    Ids that were already paired are remembered, since verbose mode resends
    message content and the same half can arrive more than once.
    """

    def __init__(self):
        self.pending_calls: dict[str, ToolCall] = {}
        self.pending_results: dict[str, ToolResult] = {}
        self.completed: set[str] = set()

    def register_call(self, call: ToolCall) -> Pairing:
        cid = call.id
        if cid in self.completed or cid in self.pending_calls:
            return Pairing(DUPLICATE, call=call)
        result = self.pending_results.pop(cid, None)
        if result is not None:
            self.completed.add(cid)
            return Pairing(PAIRED, call=call, result=result)
        self.pending_calls[cid] = call
        return Pairing(PENDING, call=call)

    def register_result(self, result: ToolResult) -> Pairing:
        rid = result.id
        if rid in self.completed or rid in self.pending_results:
            return Pairing(DUPLICATE, result=result)
        call = self.pending_calls.pop(rid, None)
        if call is not None:
            self.completed.add(rid)
            return Pairing(PAIRED, call=call, result=result)
        self.pending_results[rid] = result
        return Pairing(PENDING, result=result)

    def unpaired(self) -> tuple[int, int]:
        """(pending calls, pending results)"""
        return len(self.pending_calls), len(self.pending_results)
