"""
Thread — ordered conversation log plus a keyed store of contextual facts.

A thread is a plain data container: it never calls the model or runs tools.
The agent appends the task message, tool-call/tool-result pairs and the final
assistant message; callers own the context entries. A thread may be reused
across sequential tasks, but the agent does not lock it: concurrent tasks
sharing one thread must be serialized by the caller.
"""

from __future__ import annotations

import copy
import json
import uuid
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from .models import Message, MessageRole


@dataclass
class ContextEntry:
    """One keyed context value with optional metadata."""
    key: str
    value: Any
    metadata: Optional[dict] = None

    def to_dict(self) -> dict:
        return {"key": self.key, "value": self.value, "metadata": self.metadata}


class Thread:
    def __init__(self, thread_id: Optional[str] = None):
        self.thread_id = thread_id or uuid.uuid4().hex[:12]
        self._messages: list[Message] = []
        self._contexts: dict[str, ContextEntry] = {}

    def __repr__(self) -> str:
        return (
            f"Thread(thread_id={self.thread_id!r}, messages={len(self._messages)}, "
            f"contexts={list(self._contexts)})"
        )

    # ── Context ─────────────────────────────────────────────────────

    def add_context(self, key: str, value: Any, metadata: Optional[dict] = None) -> None:
        """Insert or overwrite the entry for ``key`` (most recent write wins)."""
        # Re-inserting moves the key to the end so the prompt preamble
        # reflects write order.
        self._contexts.pop(key, None)
        self._contexts[key] = ContextEntry(
            key=key,
            value=copy.deepcopy(value),
            metadata=copy.deepcopy(metadata),
        )

    def get_context(self, key: str) -> Optional[ContextEntry]:
        entry = self._contexts.get(key)
        return copy.deepcopy(entry) if entry is not None else None

    def has_context(self, key: str) -> bool:
        return key in self._contexts

    def remove_context(self, key: str) -> bool:
        return self._contexts.pop(key, None) is not None

    def get_all_contexts(self) -> dict[str, ContextEntry]:
        """Snapshot of every context entry; mutating it does not touch the thread."""
        return copy.deepcopy(self._contexts)

    def clear_contexts(self) -> None:
        self._contexts.clear()

    def render_context(self) -> str:
        """Render context entries as a preamble block for the system prompt."""
        if not self._contexts:
            return ""
        blocks = []
        for entry in self._contexts.values():
            if isinstance(entry.value, str):
                value = entry.value
            else:
                value = json.dumps(entry.value, indent=2, default=str)
            lines = [f'<context key="{entry.key}">', value]
            if entry.metadata:
                lines.append(
                    f"<metadata>{json.dumps(entry.metadata, default=str)}</metadata>"
                )
            lines.append("</context>")
            blocks.append("\n".join(lines))
        return "\n".join(blocks)

    # ── Messages ────────────────────────────────────────────────────

    def append_message(self, message: Message) -> None:
        self._messages.append(message)

    def add_message(self, role: MessageRole, content: str) -> Message:
        message = Message(role=role, content=content)
        self._messages.append(message)
        return message

    def get_messages(self) -> list[Message]:
        """Ordered snapshot of the conversation."""
        return [copy.copy(m) for m in self._messages]

    def clear_messages(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.get_messages())

    # ── Persistence ─────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "thread_id": self.thread_id,
            "messages": [
                {**m.to_dict(), "timestamp": m.timestamp} for m in self._messages
            ],
            "contexts": [entry.to_dict() for entry in self._contexts.values()],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Thread":
        thread = cls(thread_id=data.get("thread_id"))
        for raw in data.get("messages", []):
            thread.append_message(Message.from_dict(raw))
        for raw in data.get("contexts", []):
            thread.add_context(raw["key"], raw.get("value"), raw.get("metadata"))
        return thread
