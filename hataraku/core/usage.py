"""
Usage accounting — per-task token and cost totals.

Every UsageEvent a provider emits during a task is folded into one TaskUsage.
Providers that know the exact price report ``cost`` themselves; otherwise the
cost is estimated from MODEL_COSTS.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from .stream_events import UsageEvent

logger = logging.getLogger(__name__)


# ── Cost-per-million-token rates (USD) ──
# Add new models here as needed. Cache reads bill at 0.1x input,
# cache writes at 1.25x input.
MODEL_COSTS: dict[str, dict[str, float]] = {
    # Anthropic
    "claude-3-5-sonnet-20241022":   {"input": 3.0,   "output": 15.0},
    "claude-3-5-haiku-20241022":    {"input": 0.80,  "output": 4.0},
    "claude-3-7-sonnet-20250219":   {"input": 3.0,   "output": 15.0},
    "claude-sonnet-4-5-20250929":   {"input": 3.0,   "output": 15.0},
    "claude-haiku-4-5-20251001":    {"input": 0.80,  "output": 4.0},
    "claude-opus-4-5-20251101":     {"input": 15.0,  "output": 75.0},
    # OpenAI
    "gpt-4o":                       {"input": 2.50,  "output": 10.0},
    "gpt-4o-mini":                  {"input": 0.15,  "output": 0.60},
    "gpt-4.1-mini":                 {"input": 0.40,  "output": 1.60},
    "gpt-4-turbo":                  {"input": 10.0,  "output": 30.0},
}


def lookup_rates(model: str) -> Optional[dict[str, float]]:
    """Exact match first, then prefix match ("gpt-4o-2024-..." → "gpt-4o")."""
    if not model:
        return None
    # OpenRouter ids look like "anthropic/claude-..."
    bare = model.split("/", 1)[-1]
    rates = MODEL_COSTS.get(bare)
    if rates:
        return rates
    for key in sorted(MODEL_COSTS, key=len, reverse=True):
        if bare.startswith(key):
            return MODEL_COSTS[key]
    return None


def estimate_cost(event: UsageEvent, model: str) -> float:
    """Estimate USD cost of one usage event. Unknown models (and local ones) cost 0."""
    rates = lookup_rates(model)
    if not rates:
        return 0.0
    per_token_in = rates["input"] / 1_000_000
    per_token_out = rates["output"] / 1_000_000
    return (
        event.input_tokens * per_token_in
        + event.output_tokens * per_token_out
        + event.cache_reads * per_token_in * 0.1
        + event.cache_writes * per_token_in * 1.25
    )


@dataclass
class TaskUsage:
    """Token counts and cost accumulated over every turn of one task."""
    tokens_in: int = 0
    tokens_out: int = 0
    cache_reads: int = 0
    cache_writes: int = 0
    cost: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.tokens_in + self.tokens_out

    def record(self, event: UsageEvent, model: str = "") -> None:
        self.tokens_in += event.input_tokens
        self.tokens_out += event.output_tokens
        self.cache_reads += event.cache_reads
        self.cache_writes += event.cache_writes
        if event.cost is not None:
            self.cost += event.cost
        else:
            self.cost += estimate_cost(event, model)
        logger.debug(
            f"Token usage: in={event.input_tokens} out={event.output_tokens} "
            f"(task total: {self.total_tokens})"
        )

    def to_dict(self) -> dict:
        return {
            "tokens_in": self.tokens_in,
            "tokens_out": self.tokens_out,
            "cache_reads": self.cache_reads,
            "cache_writes": self.cache_writes,
            "cost": round(self.cost, 6),
        }
