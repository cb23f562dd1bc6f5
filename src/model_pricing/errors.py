"""Custom exceptions for model pricing configuration."""


class PricingConfigError(Exception):
    """Raised when a pricing table or override file is invalid."""
