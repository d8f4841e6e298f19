"""Generation configuration and limits.

Configuration
-------------
Six boolean switches control skeleton building, hydration and example
generation. They are resolved per call from layers of increasing precedence:

    DEFAULT_CONFIG < factory options < call-site options

Resolution is a per-key override. A key missing from (or None in) a higher
layer never clears the value of a lower one.

Limits
------
LIMITS bounds generation where the schema does not, e.g. the length of a string
with no length rules or the width of a number range with only one bound.
"""
from __future__ import annotations

from datetime import timedelta
from logging import DEBUG, Logger, NullHandler, getLogger
from typing import Any, Mapping, TypedDict

from .errors import ConfigurationError


_logger: Logger = getLogger(__name__)
_logger.addHandler(NullHandler())
_LOG_DEBUG: bool = _logger.isEnabledFor(DEBUG)


class GenerationConfig(TypedDict, total=False):
    """Resolved switches. See DEFAULT_CONFIG."""

    ignore_defaults: bool
    ignore_valids: bool
    include_optional: bool
    strict_example: bool
    strict_input: bool
    validate_input: bool


DEFAULT_CONFIG: GenerationConfig = {
    "ignore_defaults": False,
    "ignore_valids": False,
    "include_optional": False,
    "strict_example": False,
    "strict_input": False,
    "validate_input": False,
}


class GeneralLimits(TypedDict):
    """General limits for generation of data."""

    random_length_stddev: float
    invalid_redraws: int


class SequenceLimits(TypedDict):
    """Restrictions on sequence generation if not specified in the schema."""

    minlength: int
    maxlength: int


class NumberLimits(TypedDict):
    """Range used when a number has no bounds, and the width added to a single bound."""

    min: float
    max: float
    span: float


class DateLimits(TypedDict):
    """Window used when a date has zero or one bound."""

    span: timedelta


class Limits(TypedDict):
    """Limits for generation of data."""

    general: GeneralLimits
    string: SequenceLimits
    binary: SequenceLimits
    array: SequenceLimits
    object: SequenceLimits
    number: NumberLimits
    date: DateLimits


# 'random_length_stddev': Spread of the length distribution as a fraction of the allowed range.
# 'invalid_redraws': How many times a value matching a 'forbidden' literal is redrawn.
LIMITS: Limits = {
    "general": {"random_length_stddev": 0.25, "invalid_redraws": 16},
    "string": {"minlength": 8, "maxlength": 16},
    "binary": {"minlength": 1, "maxlength": 16},
    "array": {"minlength": 1, "maxlength": 5},
    "object": {"minlength": 1, "maxlength": 5},
    "number": {"min": 1, "max": 100, "span": 100},
    "date": {"span": timedelta(days=3650)},
}


def resolve_config(*layers: Mapping[str, Any] | None) -> GenerationConfig:
    """Merge configuration layers over DEFAULT_CONFIG.

    Args
    ----
    layers: Option mappings in increasing order of precedence. None layers are skipped.

    Returns
    -------
    A new, fully populated configuration.
    """
    resolved: dict[str, Any] = dict(DEFAULT_CONFIG)
    for layer in layers:
        if layer is None:
            continue
        if not isinstance(layer, Mapping):
            raise ConfigurationError(f"Configuration must be a mapping not {type(layer).__name__}.")
        for key, value in layer.items():
            if key not in DEFAULT_CONFIG:
                raise ConfigurationError(f"Unknown configuration key '{key}'.")
            if value is not None:
                resolved[key] = bool(value)
    if _LOG_DEBUG:
        _logger.debug(f"Resolved configuration: {resolved}")
    return resolved  # type: ignore
