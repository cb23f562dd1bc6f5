"""Per-model token rate tables and override loading."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import orjson

from token_monitor_internal.paths import get_default_pricing_path

from .errors import PricingConfigError

LOGGER = logging.getLogger(__name__)
PRICING_PATH_ENV_VAR = "TOKEN_PRICING_PATH"
DEFAULT_MODEL = "claude-opus-4-5"
_RATE_FIELDS: tuple[str, ...] = ("input", "output", "cache_read", "cache_write")
_PRICING_PATH_UNSET = object()


@dataclass(frozen=True)
class ModelPricing:
    """USD rates per million tokens for one model."""

    input_per_million: float
    output_per_million: float
    cache_read_per_million: float
    cache_write_per_million: float


@dataclass(frozen=True)
class PricingTable:
    """Immutable model rate table with a designated default model.

    Attributes:
        rates: Model key to rates. Keys should not be substrings of one another,
            otherwise the fuzzy lookup prefers the longest matching key.
        default_model: Key whose rates are used when nothing matches.
    """

    rates: Mapping[str, ModelPricing]
    default_model: str = DEFAULT_MODEL
    _fuzzy_keys: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.default_model not in self.rates:
            raise PricingConfigError(f"Default model {self.default_model!r} is missing from the rate table.")
        object.__setattr__(self, "rates", MappingProxyType(dict(self.rates)))
        object.__setattr__(self, "_fuzzy_keys", tuple(sorted(self.rates, key=lambda key: (-len(key), key))))

    @property
    def default_pricing(self) -> ModelPricing:
        """Return the rates of the default model."""
        return self.rates[self.default_model]

    def resolve(self, model: str | None) -> ModelPricing:
        """Return rates by exact key, then prefix/substring match, then the default."""
        if not model:
            return self.default_pricing

        exact = self.rates.get(model)
        if exact is not None:
            return exact

        # e.g. "claude-opus-4-20250514" -> "claude-opus-4"
        for key in self._fuzzy_keys:
            if model.startswith(key) or key in model:
                return self.rates[key]

        return self.default_pricing

    def with_overrides(self, overrides: Mapping[str, ModelPricing]) -> PricingTable:
        """Return a new table with the given models added or replaced."""
        merged = dict(self.rates)
        merged.update(overrides)
        return PricingTable(rates=merged, default_model=self.default_model)


DEFAULT_PRICING_TABLE = PricingTable(
    rates={
        "claude-opus-4-5": ModelPricing(5.00, 25.00, 0.50, 6.25),
        "claude-sonnet-4-5": ModelPricing(3.00, 15.00, 0.30, 3.75),
        "claude-haiku-4-5": ModelPricing(1.00, 5.00, 0.10, 1.25),
        # Legacy models
        "claude-opus-4-1": ModelPricing(15.00, 75.00, 1.50, 18.75),
        "claude-sonnet-4": ModelPricing(3.00, 15.00, 0.30, 3.75),
        "claude-opus-4": ModelPricing(15.00, 75.00, 1.50, 18.75),
        "claude-3-5-sonnet": ModelPricing(3.00, 15.00, 0.30, 3.75),
        "claude-3-5-haiku": ModelPricing(0.80, 4.00, 0.08, 1.00),
        "claude-3-haiku": ModelPricing(0.25, 1.25, 0.03, 0.30),
    },
    default_model=DEFAULT_MODEL,
)


def load_pricing_table(path: Path, base: PricingTable = DEFAULT_PRICING_TABLE) -> PricingTable:
    """Load per-model rate overrides from a JSON file and merge them over `base`.

    The file maps model keys to objects with `input`, `output`, `cache_read`
    and `cache_write` rates in USD per million tokens.

    Raises:
        PricingConfigError: If the file cannot be read or has an invalid shape.
    """
    try:
        with path.open("rb") as handle:
            payload = orjson.loads(handle.read())
    except OSError as exc:
        raise PricingConfigError(f"Failed to read pricing overrides at {path}.") from exc
    except orjson.JSONDecodeError as exc:
        raise PricingConfigError(f"Malformed JSON in pricing overrides at {path}: {exc}.") from exc

    if not isinstance(payload, dict):
        raise PricingConfigError(f"Expected JSON object in {path}, got {type(payload).__name__}.")

    overrides = {model: _parse_model_rates(model, raw, path) for model, raw in payload.items()}
    LOGGER.debug("Loaded %d pricing overrides from %s", len(overrides), path)
    return base.with_overrides(overrides)


def get_pricing_table(pricing_path: Path | str | None | object = _PRICING_PATH_UNSET) -> PricingTable:
    """Return the effective pricing table.

    Args:
        pricing_path: Override file configuration.
            - Omitted: use `TOKEN_PRICING_PATH` env var if set, else the default
              path when that file exists.
            - `None`: built-in rates only.
            - `Path` or `str`: explicit override file, which must exist.
    """
    if pricing_path is None:
        return DEFAULT_PRICING_TABLE

    if pricing_path is _PRICING_PATH_UNSET:
        env_path = os.environ.get(PRICING_PATH_ENV_VAR)
        if env_path:
            return load_pricing_table(Path(env_path).expanduser())
        default_path = get_default_pricing_path()
        if default_path.exists():
            return load_pricing_table(default_path)
        return DEFAULT_PRICING_TABLE

    assert isinstance(pricing_path, (Path, str)), f"Invalid pricing_path: {pricing_path}"
    return load_pricing_table(Path(pricing_path).expanduser())


def _parse_model_rates(model: str, raw: Any, path: Path) -> ModelPricing:
    if not isinstance(raw, dict):
        raise PricingConfigError(f"Invalid rates for {model!r} in {path}: expected object, got {type(raw).__name__}.")
    values: dict[str, float] = {}
    for field_name in _RATE_FIELDS:
        value = raw.get(field_name, 0)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise PricingConfigError(
                f"Invalid {model}.{field_name} in {path}: expected number, got {type(value).__name__}."
            )
        if value < 0:
            raise PricingConfigError(f"Invalid {model}.{field_name} in {path}: rates must not be negative.")
        values[field_name] = float(value)
    return ModelPricing(
        input_per_million=values["input"],
        output_per_million=values["output"],
        cache_read_per_million=values["cache_read"],
        cache_write_per_million=values["cache_write"],
    )
