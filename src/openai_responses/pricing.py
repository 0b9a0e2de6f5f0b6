"""Per-model token pricing and cost estimation.

Prices are USD per one million tokens. Dated snapshots such as
``gpt-4o-2024-08-06`` resolve to their base model.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from openai_responses.types import Cost, Usage

_PER_TOKENS = Decimal(1_000_000)
_DATE_SUFFIX = re.compile(r"-\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True, slots=True)
class Pricing:
    input: Decimal
    output: Decimal
    cached_input: Decimal | None = None

    @classmethod
    def per_million(cls, input: str, output: str, cached_input: str | None = None) -> Pricing:
        return cls(
            input=Decimal(input),
            output=Decimal(output),
            cached_input=Decimal(cached_input) if cached_input is not None else None,
        )


MODEL_PRICING: Mapping[str, Pricing] = {
    "gpt-5": Pricing.per_million("1.25", "10.00", "0.125"),
    "gpt-5-mini": Pricing.per_million("0.25", "2.00", "0.025"),
    "gpt-5-nano": Pricing.per_million("0.05", "0.40", "0.005"),
    "gpt-4.1": Pricing.per_million("2.00", "8.00", "0.50"),
    "gpt-4.1-mini": Pricing.per_million("0.40", "1.60", "0.10"),
    "gpt-4.1-nano": Pricing.per_million("0.10", "0.40", "0.025"),
    "gpt-4o": Pricing.per_million("2.50", "10.00", "1.25"),
    "gpt-4o-mini": Pricing.per_million("0.15", "0.60", "0.075"),
    "o1": Pricing.per_million("15.00", "60.00", "7.50"),
    "o3": Pricing.per_million("2.00", "8.00", "0.50"),
    "o3-mini": Pricing.per_million("1.10", "4.40", "0.55"),
    "o4-mini": Pricing.per_million("1.10", "4.40", "0.275"),
}


def get_pricing(model: str | None, table: Mapping[str, Pricing] | None = None) -> Pricing | None:
    """Look up pricing for a model id, ignoring a trailing snapshot date."""

    if not model:
        return None
    prices = MODEL_PRICING if table is None else table
    if model in prices:
        return prices[model]
    return prices.get(_DATE_SUFFIX.sub("", model))


def calculate_cost(usage: Usage, pricing: Pricing) -> Cost:
    """Estimate cost; cached input tokens use the cached rate when one is known."""

    cached = min(usage.cached_input_tokens, usage.input_tokens)
    cached_rate = pricing.cached_input if pricing.cached_input is not None else pricing.input
    input_cost = (Decimal(usage.input_tokens - cached) * pricing.input + Decimal(cached) * cached_rate) / _PER_TOKENS
    output_cost = Decimal(usage.output_tokens) * pricing.output / _PER_TOKENS
    return Cost(input_cost=input_cost, output_cost=output_cost, total_cost=input_cost + output_cost)


__all__ = ["MODEL_PRICING", "Pricing", "calculate_cost", "get_pricing"]
