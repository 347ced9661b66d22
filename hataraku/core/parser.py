"""
Response Parser — extracts tool calls and the completion result from model text.

Wire format (text the model writes in its own response):

    <thinking>free-form reasoning</thinking>
    <read_file>
    <path>src/main.py</path>
    </read_file>
    <tool_call name="list_files"><path>.</path></tool_call>
    <attempt_completion>final answer, verbatim</attempt_completion>

A tool block is a tag named after a registered tool with one inner tag per
parameter. ``<tool_call name="...">`` is the generic form and is accepted for
any name, registered or not; the agent decides what to do with unknown names.

The parser is a restartable scanner: ``feed()`` is called with each new chunk
during streaming and only reports structures completed since the last call.
Nothing here raises on malformed input. An unterminated block is held back
until more text arrives, and dropped when ``finish()`` is called. For an
unterminated completion only the opening tag is dropped; tool calls written
after it are still found by ``finish()``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from .models import ToolCall

COMPLETION_TAG = "attempt_completion"
THINKING_TAG = "thinking"
GENERIC_TOOL_TAG = "tool_call"
RESERVED_TAGS = frozenset({COMPLETION_TAG, THINKING_TAG, GENERIC_TOOL_TAG})

_TAG_HEAD_RE = re.compile(r"<([A-Za-z_][\w\-]*)((?:\s[^<>]*?)?)\s*(/?)>")
_TAG_NAME_PREFIX_RE = re.compile(r"<([A-Za-z_][\w\-]*)?")
_NAME_ATTR_RE = re.compile(r"""\bname\s*=\s*(?:"([^"]*)"|'([^']*)')""")
_PARAM_RE = re.compile(r"<([A-Za-z_][\w\-]*)>(.*?)</\1>", re.DOTALL)


@dataclass
class ParsedResponse:
    """Everything recognized in one model turn."""
    completion: Optional[str] = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    thinking: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.completion is not None

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0

    @property
    def is_empty(self) -> bool:
        return not self.is_complete and not self.has_tool_calls


@dataclass
class ParseUpdate:
    """What a single ``feed()`` call newly discovered."""
    tool_calls: list[ToolCall] = field(default_factory=list)
    thinking: list[str] = field(default_factory=list)
    completion_delta: str = ""
    completed: bool = False


class _ScanState(Enum):
    SCANNING = "scanning"
    IN_COMPLETION = "in_completion"
    DONE = "done"


def parse_params(body: str) -> dict[str, str]:
    """Flat ``<name>value</name>`` pairs inside a tool block."""
    params: dict[str, str] = {}
    for match in _PARAM_RE.finditer(body):
        params[match.group(1)] = match.group(2).strip()
    return params


def _partial_suffix_len(text: str, token: str, start: int) -> int:
    """Length of the longest tail of ``text[start:]`` that is a prefix of ``token``."""
    max_len = min(len(token) - 1, len(text) - start)
    for n in range(max_len, 0, -1):
        if text.endswith(token[:n]):
            return n
    return 0


class ResponseParser:
    """
    Incremental parser for one model turn.

    Usage::

        parser = ResponseParser(tool_names=["read_file"])
        for chunk in chunks:
            update = parser.feed(chunk)
            ...                       # update.completion_delta, update.tool_calls
        parser.finish()
        response = parser.result
    """

    def __init__(self, tool_names: Iterable[str] = ()):
        self.tool_names = frozenset(n for n in tool_names if n not in RESERVED_TAGS)
        self.reset()

    def reset(self) -> None:
        self._buffer = ""
        self._pos = 0
        self._state = _ScanState.SCANNING
        self._completion_start = 0
        self._emitted = 0
        self._completion: Optional[str] = None
        self._tool_calls: list[ToolCall] = []
        self._thinking: list[str] = []

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def result(self) -> ParsedResponse:
        return ParsedResponse(
            completion=self._completion,
            tool_calls=list(self._tool_calls),
            thinking=list(self._thinking),
        )

    def feed(self, chunk: str) -> ParseUpdate:
        self._buffer += chunk
        return self._scan(final=False)

    def finish(self) -> ParseUpdate:
        """Scan the remaining buffer, skipping anything left unterminated."""
        return self._scan(final=True)

    def parse(self, text: str) -> ParsedResponse:
        """One-shot parse of a complete response."""
        self.reset()
        self.feed(text)
        self.finish()
        return self.result

    # ── Scanner ─────────────────────────────────────────────────────

    def _scan(self, final: bool) -> ParseUpdate:
        update = ParseUpdate()
        while self._state is not _ScanState.DONE:
            if self._state is _ScanState.IN_COMPLETION:
                if not self._scan_completion(update, final):
                    break
                continue

            idx = self._buffer.find("<", self._pos)
            if idx < 0:
                self._pos = len(self._buffer)
                break

            next_pos = self._match_at(idx, final, update)
            if next_pos is None:
                # Possibly the start of a block whose text has not arrived yet
                self._pos = idx
                break
            self._pos = next_pos
        return update

    def _scan_completion(self, update: ParseUpdate, final: bool) -> bool:
        """Returns True when scanning should resume in SCANNING state."""
        close_tag = f"</{COMPLETION_TAG}>"
        close = self._buffer.find(close_tag, self._completion_start)
        if close >= 0:
            update.completion_delta += self._buffer[self._emitted:close]
            self._emitted = close
            self._completion = self._buffer[self._completion_start:close]
            self._pos = close + len(close_tag)
            self._state = _ScanState.DONE
            update.completed = True
            return False

        if final:
            # Unterminated completion counts as absent: its opening tag is
            # skipped and the text after it is scanned like any other
            self._state = _ScanState.SCANNING
            self._pos = self._completion_start
            return True

        # Hold back a tail that might be the beginning of the closing tag
        held = _partial_suffix_len(self._buffer, close_tag, self._emitted)
        safe_end = len(self._buffer) - held
        if safe_end > self._emitted:
            update.completion_delta += self._buffer[self._emitted:safe_end]
            self._emitted = safe_end
        return False

    def _match_at(self, idx: int, final: bool, update: ParseUpdate) -> Optional[int]:
        """
        Try to consume a recognized block starting at ``idx``.

        Returns the position to resume scanning from, or None when more text
        is needed before a decision can be made.
        """
        buf = self._buffer
        head = _TAG_HEAD_RE.match(buf, idx)
        if head is None:
            if not final and self._could_become_tag(idx):
                return None
            return idx + 1

        name, attrs, self_closing = head.group(1), head.group(2), head.group(3) == "/"

        if name == COMPLETION_TAG and not self_closing:
            self._state = _ScanState.IN_COMPLETION
            self._completion_start = self._emitted = head.end()
            return head.end()

        if name == THINKING_TAG and not self_closing:
            body = self._block_body(name, head.end())
            if body is None:
                return idx + 1 if final else None
            text, end = body
            self._thinking.append(text.strip())
            update.thinking.append(text.strip())
            return end

        if name == GENERIC_TOOL_TAG:
            attr = _NAME_ATTR_RE.search(attrs or "")
            if attr is None:
                return head.end()
            tool_name = attr.group(1) if attr.group(1) is not None else attr.group(2)
            if self_closing:
                self._add_call(ToolCall(name=tool_name), update)
                return head.end()
            body = self._block_body(name, head.end())
            if body is None:
                return idx + 1 if final else None
            text, end = body
            self._add_call(ToolCall(name=tool_name, params=parse_params(text)), update)
            return end

        if name in self.tool_names:
            if self_closing:
                self._add_call(ToolCall(name=name), update)
                return head.end()
            body = self._block_body(name, head.end())
            if body is None:
                return idx + 1 if final else None
            text, end = body
            self._add_call(ToolCall(name=name, params=parse_params(text)), update)
            return end

        return head.end()

    def _block_body(self, name: str, start: int) -> Optional[tuple[str, int]]:
        close_tag = f"</{name}>"
        close = self._buffer.find(close_tag, start)
        if close < 0:
            return None
        return self._buffer[start:close], close + len(close_tag)

    def _could_become_tag(self, idx: int) -> bool:
        """True if the unfinished tag at ``idx`` may still turn into a recognized one."""
        partial = self._buffer[idx:]
        if ">" in partial:
            return False
        match = _TAG_NAME_PREFIX_RE.match(partial)
        tag_name = match.group(1) or ""
        known = RESERVED_TAGS | self.tool_names
        if match.end() == len(partial):
            return any(k.startswith(tag_name) for k in known)
        return tag_name in known

    def _add_call(self, call: ToolCall, update: ParseUpdate) -> None:
        self._tool_calls.append(call)
        update.tool_calls.append(call)
