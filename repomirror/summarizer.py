"""Close-time re-emission of the last assistant message."""

from __future__ import annotations

from repomirror.state import RenderState


class SessionSummarizer:
    """
    Watches every block written by a session. On close, if the last block
    was plain assistant text, hands that text back in full so it can be
    shown untruncated. Fires at most once.
    """

    def __init__(self, state: RenderState | None = None):
        self.state = state if state is not None else RenderState()
        self.closed: bool = False

    def observe(self, kind: str, pending_call: bool = False,
                assistant_text: str | None = None):
        if self.closed:
            return
        self.state.record(kind, pending_call=pending_call, assistant_text=assistant_text)

    def close(self) -> str | None:
        if self.closed:
            return None
        self.closed = True
        state = self.state
        if state.last_kind != "assistant" or state.pending_call:
            return None
        if not state.last_assistant_text or not state.last_assistant_text.strip():
            return None
        return state.last_assistant_text
