"""Entity types bound to a Cerberus schema.

entity_factory() returns a class whose instances are documents of the schema:

    Person = entity_factory({"name": {"type": "string", "required": True}}, name="Person")
    person = Person({"name": "Ada"})
    person.name               # 'Ada'
    person.validate()         # ValidationResult(success=True, errors=None, value={'name': 'Ada'})
    Person.example()          # {'name': 'x3kd9...'}

Instances are built from the schema's skeleton with the input merged over it.
Their attributes (vars()) are exactly the document's fields.
"""
from __future__ import annotations

from copy import deepcopy
from logging import DEBUG, Logger, NullHandler, getLogger
from random import Random
from types import MappingProxyType, MethodType
from typing import Any, Callable, Mapping, NamedTuple

from .config import GenerationConfig, resolve_config
from .description import Description, describe
from .errors import ConfigurationError
from .generator import build_example
from .skeleton import build_skeleton, hydrate
from .validator import validate


_logger: Logger = getLogger(__name__)
_logger.addHandler(NullHandler())
_LOG_DEBUG: bool = _logger.isEnabledFor(DEBUG)


class ValidationResult(NamedTuple):
    """Result of validating a document: errors and value follow Cerberus."""

    success: bool
    errors: Any
    value: Any


class dualmethod:
    """A method bound to the instance when called on one, else to the class."""

    def __init__(self, func: Callable[..., Any]) -> None:
        self.__func__ = func
        self.__doc__ = func.__doc__

    def __get__(self, instance: Any, owner: type | None = None) -> MethodType:
        return MethodType(self.__func__, owner if instance is None else instance)


class Entity:
    """Base of the classes created by entity_factory(). Not instantiable itself."""

    __slots__ = ("_config", "__dict__")

    schema: Any = None
    description: Description | None = None
    options: Mapping[str, Any] = MappingProxyType({})

    def __init__(self, data: Mapping[str, Any] | None = None, config: Mapping[str, Any] | None = None) -> None:
        cls = type(self)
        description = cls._bound()
        self._config: GenerationConfig = resolve_config(cls.options, config)
        document: dict[str, Any] = build_skeleton(description, self._config)
        if data is not None:
            document = hydrate(document, data, description, self._config)
        vars(self).update(document)

    @classmethod
    def _bound(cls) -> Description:
        if cls.description is None:
            raise ConfigurationError("Entity types must be created with entity_factory().")
        return cls.description

    @classmethod
    def _check(
        cls,
        value: Any,
        callback: Callable[[Any, ValidationResult | None], Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> ValidationResult | None:
        description = cls._bound()
        if isinstance(callback, Mapping):
            callback, options = options, callback
        if callback is not None and not callable(callback):
            raise ConfigurationError("The validation callback must be callable.")
        outcome = validate(value, description.source, options, description.validator, not description.document)
        result = ValidationResult(outcome.error is None, outcome.error, outcome.value)
        if _LOG_DEBUG:
            _logger.debug(f"{cls.__name__} validation: {result.success}")
        if callback is None:
            return result
        if result.success:
            callback(None, result)
        else:
            callback(result.errors, None)
        return None

    @dualmethod
    def validate(target: Any, *args: Any, **kwargs: Any) -> ValidationResult | None:
        """Validate the instance, or a value against the entity schema if called on the class.

        instance.validate(callback=None, options=None)
        EntityType.validate(value, callback=None, options=None)

        A mapping in the callback position swaps the two: EntityType.validate(value, options, callback=None).

        With a callback the result is passed to callback(errors, result) and None is returned:
        (None, result) on success and (errors, None) on failure.
        """
        if isinstance(target, type):
            return target._check(*args, **kwargs)
        return type(target)._check(target.to_dict(), *args, **kwargs)

    @dualmethod
    def example(target: Any, config: Mapping[str, Any] | None = None, rng: Random | None = None) -> Any:
        """Generate an example document of the entity schema.

        Called on an instance the instance's 'strict_example' applies as well.
        """
        cls: type[Entity] = target if isinstance(target, type) else type(target)
        resolved: GenerationConfig = resolve_config(cls.options, config)
        if not isinstance(target, type):
            resolved["strict_example"] = resolved["strict_example"] or target._config["strict_example"]
        return build_example(cls._bound(), resolved, rng)

    def to_dict(self) -> dict[str, Any]:
        """A deep copy of the document."""
        return deepcopy(vars(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({vars(self)!r})"


def entity_factory(schema: Any, config: Mapping[str, Any] | None = None, name: str = "Entity") -> type[Entity]:
    """Create an entity type bound to schema.

    Args
    ----
    schema: A cerberus.Validator, a document schema or the rules of a 'dict' field.
    config: Default configuration of the type. Overridden per call.
    name: The class name.

    Returns
    -------
    A subclass of Entity.
    """
    if schema is None:
        raise ConfigurationError("A Cerberus schema or Validator is required to create an entity type.")
    resolve_config(config)
    description: Description = describe(schema)
    if description.type != "object" or description.flags.get("instance") is not None:
        raise ConfigurationError(f"An entity schema must describe an object not '{description.type}'.")
    if _LOG_DEBUG:
        _logger.debug(f"Creating entity type '{name}' with configuration {config}.")
    return type(
        name,
        (Entity,),
        {
            "schema": schema,
            "description": description,
            "options": MappingProxyType(dict(config or {})),
        },
    )
