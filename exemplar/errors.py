"""Exceptions raised by exemplar.

Unsatisfiable numeric constraints are not errors: the generator returns
float("nan") for them and the caller decides what to do.
"""
from __future__ import annotations

from typing import Any


class ConfigurationError(ValueError):
    """The schema, configuration or call is unusable."""


class ValidationFailure(ValueError):
    """Cerberus rejected a document where a strict mode asked for escalation.

    Attributes
    ----------
    errors: The Cerberus error mapping (validator.errors).
    """

    def __init__(self, message: str, errors: Any = None) -> None:
        super().__init__(message)
        self.errors: Any = errors
