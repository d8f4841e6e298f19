"""Build default valued documents from a schema and merge input into them.

A skeleton has every materialized field of the schema set to its default, or
to the empty value of its type:

    string, date, binary, function, any, alternatives: None
    boolean: False
    number: 0 (0.0 for 'float')
    array: [] (set() for 'set')
    object: {} then its children
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from copy import deepcopy
from logging import DEBUG, Logger, NullHandler, getLogger
from pprint import pformat
from typing import Any

from .config import GenerationConfig, resolve_config
from .description import Description, describe, is_included, pattern_matches, select_branch
from .errors import ConfigurationError, ValidationFailure
from .validator import validate


_logger: Logger = getLogger(__name__)
_logger.addHandler(NullHandler())
_LOG_DEBUG: bool = _logger.isEnabledFor(DEBUG)

EMPTY_VALUES: dict[str, Any] = {
    "string": None,
    "boolean": False,
    "date": None,
    "binary": None,
    "function": None,
    "number": 0,
    "array": [],
    "object": {},
    "alternatives": None,
    "any": None,
}


def _empty(description: Description) -> Any:
    kind: Any = description.flags.get("kind")
    if kind == "float":
        return 0.0
    if kind == "set":
        return set()
    if description.type == "object" and description.flags.get("instance") is not None:
        return None
    return deepcopy(EMPTY_VALUES.get(description.type, EMPTY_VALUES.get(description.flags.get("base", "string"))))


def _value(description: Description, config: GenerationConfig, siblings: dict[str, Any], root: dict[str, Any]) -> Any:
    if not config["ignore_defaults"]:
        if "default_setter" in description.flags:
            return description.flags["default_setter"](dict(siblings))
        if "default" in description.flags:
            return deepcopy(description.flags["default"])
    if description.type == "object" and description.flags.get("instance") is None:
        return _fill({}, description, config, root)
    if description.type == "alternatives" and description.matches:
        match = description.matches[0]
        branch: Description | None = (
            match.then if match.ref is None else select_branch(match, siblings, root) or description.base
        )
        if branch is not None:
            return _value(branch, config, siblings, root)
    return _empty(description)


def _fill(document: dict[str, Any], description: Description, config: GenerationConfig, root: dict[str, Any]) -> dict[str, Any]:
    for key, child in (description.children or {}).items():
        if is_included(child, description, config["include_optional"]):
            document[key] = _value(child, config, document, root)
    return document


def build_skeleton(schema: Any, config: Mapping[str, Any] | None = None) -> Any:
    """Build the default valued document of schema.

    Args
    ----
    schema: Anything describe() accepts.
    config: Configuration overrides. 'ignore_defaults' and 'include_optional' apply.

    Returns
    -------
    A new document. A schema whose root is not an object gives that type's empty (or default) value.
    """
    description: Description = describe(schema)
    resolved: GenerationConfig = resolve_config(config)
    if description.type == "object" and description.flags.get("instance") is None:
        root: dict[str, Any] = {}
        skeleton: Any = _fill(root, description, resolved, root)
    else:
        skeleton = _value(description, resolved, {}, {})
    if _LOG_DEBUG:
        _logger.debug(f"Skeleton:\n{pformat(skeleton)}")
    return skeleton


def error_paths(errors: Any, data: Any) -> Iterator[tuple[Any, ...]]:
    """Yield the paths of the fields Cerberus rejected in data.

    Errors of nested mappings are followed into the mapping. Any other rejected
    field (including lists) yields the path of the whole field.
    """
    if isinstance(errors, (list, tuple)):
        for entry in errors:
            if isinstance(entry, Mapping):
                yield from error_paths(entry, data)
            else:
                yield ()
        return
    for key, messages in errors.items():
        value: Any = data.get(key) if isinstance(data, Mapping) else None
        nested: list[Any] = [message for message in messages if isinstance(message, Mapping)]
        if isinstance(value, Mapping) and nested and len(nested) == len(messages):
            for entry in nested:
                for path in error_paths(entry, value):
                    yield (key, *path)
        else:
            yield (key,)


def _remove(document: dict[str, Any], path: tuple[Any, ...]) -> None:
    *parents, last = path
    for key in parents:
        document = document[key]
    if _LOG_DEBUG:
        _logger.debug(f"Removing invalid input at {path}.")
    document.pop(last, None)


def _keeps(description: Description, key: Any) -> bool:
    if description.children is None or key in description.children or description.flags.get("unknown"):
        return True
    return any(pattern_matches(pattern, key) for pattern in description.patterns)


def _merge(target: dict[str, Any], data: Mapping[str, Any], description: Description) -> dict[str, Any]:
    for key, value in data.items():
        if not _keeps(description, key):
            if _LOG_DEBUG:
                _logger.debug(f"Dropping unknown key '{key}'.")
            continue
        child: Description | None = (description.children or {}).get(key)
        if child is not None and (child.presence == "forbidden" or child.flags.get("strip")):
            continue
        if child is not None and child.type == "object" and child.children is not None and isinstance(value, Mapping):
            existing: Any = target.get(key)
            target[key] = _merge(existing if isinstance(existing, dict) else {}, value, child)
        else:
            target[key] = value
    return target


def hydrate(skeleton: Any, data: Any, schema: Any, config: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Merge input data into a skeleton.

    Args
    ----
    skeleton: The document from build_skeleton(). Not modified.
    data: Input mapping. Not modified.
    schema: Anything describe() accepts.
    config: 'validate_input' rejects invalid input. 'strict_input' drops the invalid fields.
        Under either the Cerberus normalized input is merged.

    Returns
    -------
    A new document.
    """
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Input data must be a mapping not {type(data).__name__}.")
    description: Description = describe(schema)
    resolved: GenerationConfig = resolve_config(config)
    data = deepcopy(dict(data))
    if resolved["validate_input"] or resolved["strict_input"]:
        outcome = validate(data, description.source, None, description.validator, not description.document)
        if outcome.error is not None and resolved["validate_input"]:
            raise ValidationFailure(f"Input failed validation: {outcome.error}", outcome.error)
        normalized: dict[str, Any] = dict(outcome.value) if isinstance(outcome.value, Mapping) else data
        for path in error_paths(outcome.error or {}, normalized):
            if not path:
                _logger.debug("Input rejected as a whole.")
                normalized = {}
                break
            _remove(normalized, path)
        data = normalized
    return _merge(deepcopy(skeleton), data, description)
