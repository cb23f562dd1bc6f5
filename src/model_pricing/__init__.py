"""Shared model pricing utilities."""

from .calculator import calculate_cost
from .errors import PricingConfigError
from .rates import (
    DEFAULT_MODEL,
    DEFAULT_PRICING_TABLE,
    PRICING_PATH_ENV_VAR,
    ModelPricing,
    PricingTable,
    get_pricing_table,
    load_pricing_table,
)

__all__ = [
    "DEFAULT_MODEL",
    "DEFAULT_PRICING_TABLE",
    "PRICING_PATH_ENV_VAR",
    "ModelPricing",
    "PricingConfigError",
    "PricingTable",
    "calculate_cost",
    "get_pricing_table",
    "load_pricing_table",
]
