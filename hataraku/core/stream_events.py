"""
Stream Events — typed events emitted by model providers.

A provider turns (system prompt, message history) into an ordered sequence
of these events. Concatenating the ``text`` of every TextEvent in order
reconstructs the full response text.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional, Union


# ── Event types ──────────────────────────────────────────────────

@dataclass
class TextEvent:
    """A chunk of streamed text from the model."""
    text: str
    timestamp: float = field(default_factory=time.time, compare=False)

    type = "text"

    def to_dict(self) -> dict:
        return {"type": self.type, "text": self.text}


@dataclass
class UsageEvent:
    """Token accounting for (part of) one provider call."""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_reads: int = 0
    cache_writes: int = 0
    cost: Optional[float] = None
    timestamp: float = field(default_factory=time.time, compare=False)

    type = "usage"

    def to_dict(self) -> dict:
        data = {
            "type": self.type,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cache_reads": self.cache_reads,
            "cache_writes": self.cache_writes,
        }
        if self.cost is not None:
            data["cost"] = self.cost
        return data


# ── Union type ───────────────────────────────────────────────────

ProviderEvent = Union[TextEvent, UsageEvent]


# ── Serialization helpers ────────────────────────────────────────

def event_from_dict(data: dict) -> ProviderEvent:
    """Deserialize a dict with a ``type`` key into a ProviderEvent."""
    event_type = data.get("type", "")

    if event_type == "text":
        return TextEvent(text=data.get("text", ""))

    elif event_type == "usage":
        return UsageEvent(
            input_tokens=data.get("input_tokens", 0),
            output_tokens=data.get("output_tokens", 0),
            cache_reads=data.get("cache_reads", 0),
            cache_writes=data.get("cache_writes", 0),
            cost=data.get("cost"),
        )

    raise ValueError(f"Unknown event type: {event_type}")
