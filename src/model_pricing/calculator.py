"""Token cost calculation."""

from __future__ import annotations

from .rates import DEFAULT_PRICING_TABLE, PricingTable

TOKENS_PER_MILLION = 1_000_000
_COST_SCALE = 1_000_000


def calculate_cost(
    model: str | None,
    input_tokens: int,
    output_tokens: int,
    cache_read_tokens: int = 0,
    cache_write_tokens: int = 0,
    pricing_table: PricingTable = DEFAULT_PRICING_TABLE,
) -> float:
    """Estimate USD cost for token counts, truncated to 6 decimal places."""
    pricing = pricing_table.resolve(model)

    input_cost = (input_tokens / TOKENS_PER_MILLION) * pricing.input_per_million
    output_cost = (output_tokens / TOKENS_PER_MILLION) * pricing.output_per_million
    cache_read_cost = (cache_read_tokens / TOKENS_PER_MILLION) * pricing.cache_read_per_million
    cache_write_cost = (cache_write_tokens / TOKENS_PER_MILLION) * pricing.cache_write_per_million

    total = input_cost + output_cost + cache_read_cost + cache_write_cost
    return int(total * _COST_SCALE) / _COST_SCALE
