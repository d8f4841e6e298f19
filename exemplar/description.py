"""Normalize Cerberus schemas into a read-only description tree.

Skeleton building, hydration and example generation all walk a Description
rather than the Cerberus schema. describe() resolves the registry references,
shorthands and aliases of the schema once, so those walkers only deal with a
small fixed set of node types:

    string, number, boolean, date, binary, array, object, alternatives, function, any

plus any custom type name known to the validator class.
"""
from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from logging import DEBUG, Logger, NullHandler, getLogger
from pprint import pformat
from re import fullmatch
from types import MappingProxyType
from typing import Any, NamedTuple

from cerberus import Validator, rules_set_registry, schema_registry

from .errors import ConfigurationError
from .validator import EntityValidator, build_validator, is_rules_set, reach, satisfies


_logger: Logger = getLogger(__name__)
_logger.addHandler(NullHandler())
_LOG_DEBUG: bool = _logger.isEnabledFor(DEBUG)

# Cerberus type name to description type.
TYPE_NAMES: dict[str, str] = {
    "string": "string",
    "integer": "number",
    "float": "number",
    "number": "number",
    "boolean": "boolean",
    "date": "date",
    "datetime": "date",
    "binary": "binary",
    "list": "array",
    "set": "array",
    "dict": "object",
    "function": "function",
}

# Types whose 'minlength' and 'maxlength' become 'min' and 'max'. Other types take 'min' and 'max'.
LENGTH_TYPES: frozenset[str] = frozenset(("string", "binary", "array", "object"))
RULE_NAMES: dict[str, str] = {
    "regex": "pattern",
    "greater": "greater",
    "less": "less",
    "multiple": "multiple",
    "precision": "precision",
    "length": "length",
    "arity": "arity",
    "minarity": "min_arity",
    "maxarity": "max_arity",
}
FLAG_NAMES: dict[str, str] = {
    "nullable": "nullable",
    "single": "single",
    "encoding": "encoding",
    "timestamp": "timestamp",
    "truthy": "truthy",
    "falsy": "falsy",
    "dependencies": "dependencies",
    "excludes": "excludes",
    "instance_of": "instance",
    "allow_unknown": "unknown",
}
META_FLAGS: tuple[str, ...] = ("strip", "base", "examples")
ALTERNATIVE_RULES: tuple[str, ...] = ("anyof", "oneof")


class Rule(NamedTuple):
    """A named constraint and its argument."""

    name: str
    arg: Any = None


class Match(NamedTuple):
    """A branch of an alternatives node.

    A 'try' branch only has then. A conditional branch applies then if the value
    at ref satisfies condition, else otherwise.
    """

    ref: str | None
    condition: Description | None
    then: Description | None
    otherwise: Description | None


class Pattern(NamedTuple):
    """Keys matching regex (any key if None) and valid against key (any key if None) take values described by rule."""

    regex: str | None
    rule: Description
    key: Description | None = None


def _frozen(mapping: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class Description:
    """A node of the normalized schema tree."""

    type: str
    rules: tuple[Rule, ...] = ()
    flags: Mapping[str, Any] = field(default_factory=_frozen)
    valids: tuple[Any, ...] = ()
    invalids: tuple[Any, ...] = ()
    children: Mapping[str, Description] | None = None
    items: tuple[Description, ...] = ()
    ordered: tuple[Description, ...] = ()
    matches: tuple[Match, ...] = ()
    patterns: tuple[Pattern, ...] = ()
    base: Description | None = None
    document: bool = False
    source: Any = field(default=None, compare=False, repr=False)
    validator: type[Validator] = field(default=EntityValidator, compare=False, repr=False)

    def constraints(self) -> dict[str, Any]:
        """The rules as a name: argument dictionary."""
        return dict(self.rules)

    def has_rule(self, name: str) -> bool:
        return any(rule.name == name for rule in self.rules)

    def rule(self, name: str, default: Any = None) -> Any:
        for rule in self.rules:
            if rule.name == name:
                return rule.arg
        return default

    @property
    def presence(self) -> str | None:
        return self.flags.get("presence")


def is_included(child: Description, parent: Description, include_optional: bool) -> bool:
    """True if child is materialized in an object built from parent.

    Forbidden and stripped children never are. Required children always are.
    Optional children only are if include_optional is set. Children with no
    presence take the parent's 'presence_default' and are otherwise included.
    """
    presence = child.presence
    if presence == "forbidden" or child.flags.get("strip"):
        return False
    if presence == "required":
        return True
    if presence == "optional" or parent.flags.get("presence_default") == "optional":
        return include_optional
    return True


def select_branch(match: Match, siblings: Any, root: Any) -> Description | None:
    """Resolve a conditional match against already built values.

    Args
    ----
    match: The conditional branch.
    siblings: The document containing the value being built.
    root: The root document. Used for references starting with '^'.

    Returns
    -------
    then if the referenced value exists and satisfies the condition else otherwise.
    """
    ref: str = match.ref or ""
    found, driver = reach(root if ref.startswith("^") else siblings, ref.lstrip("^"))
    satisfied: bool = found and match.condition is not None and satisfies(
        driver, match.condition.source, match.condition.validator
    )
    if _LOG_DEBUG:
        _logger.debug(f"Condition on '{ref}' (found={found}, value={driver!r}) satisfied: {satisfied}")
    return match.then if satisfied else match.otherwise


def pattern_matches(pattern: Pattern, key: Any) -> bool:
    if pattern.regex is not None and not (isinstance(key, str) and fullmatch(pattern.regex, key) is not None):
        return False
    return pattern.key is None or satisfies(key, pattern.key.source, pattern.key.validator)


class _Describer:
    """Builds a Description tree for one schema with one validator class."""

    def __init__(self, validator_class: type[Validator], rules_registry: Any, document_registry: Any) -> None:
        self.validator_class = validator_class
        self.rules_registry = rules_registry
        self.document_registry = document_registry
        self._active: list[Any] = []

    @contextmanager
    def _visiting(self, definition: Any, name: str | None = None) -> Iterator[None]:
        key: Any = name if name is not None else id(definition)
        if key in self._active:
            raise ConfigurationError(f"Cyclic schema reference at '{name or type(definition).__name__}'.")
        self._active.append(key)
        try:
            yield
        finally:
            self._active.pop()

    def _rules(self, definition: Any) -> Mapping[str, Any]:
        if isinstance(definition, str):
            rules = self.rules_registry.get(definition)
            if rules is None:
                raise ConfigurationError(f"No rules set named '{definition}' is registered.")
            return rules
        if not isinstance(definition, Mapping):
            raise ConfigurationError(f"Field rules must be a mapping not {type(definition).__name__}.")
        return definition

    def _schema(self, definition: Any) -> Mapping[str, Any]:
        if isinstance(definition, str):
            schema = self.document_registry.get(definition)
            if schema is None:
                raise ConfigurationError(f"No schema named '{definition}' is registered.")
            return schema
        if not isinstance(definition, Mapping):
            raise ConfigurationError(f"A schema must be a mapping not {type(definition).__name__}.")
        return definition

    def document(
        self,
        schema: Any,
        source: Any,
        presence_default: str | None = None,
        unknown: Any = None,
    ) -> Description:
        """Describe a document schema as the root object."""
        flags: dict[str, Any] = {"kind": "dict"}
        if presence_default is not None:
            flags["presence_default"] = presence_default
        if unknown:
            flags["unknown"] = unknown
        return Description(
            "object",
            flags=_frozen(flags),
            children=self._children(schema),
            document=True,
            source=source,
            validator=self.validator_class,
        )

    def _children(self, definition: Any, valuesrules: Any = None) -> Mapping[str, Description]:
        name = definition if isinstance(definition, str) else None
        schema = self._schema(definition)
        shared = self._rules(valuesrules) if valuesrules is not None else None
        with self._visiting(schema, name):
            return _frozen(
                {
                    key: self.field({**shared, **self._rules(rules)} if shared else rules)
                    for key, rules in schema.items()
                }
            )

    def field(self, definition: Any) -> Description:
        """Describe the rules of a single field."""
        name = definition if isinstance(definition, str) else None
        rules = self._rules(definition)
        with self._visiting(rules, name):
            return self._field(rules)

    def _field(self, rules: Mapping[str, Any]) -> Description:
        if "when" in rules:
            return self._conditional(rules)
        if any(key in ALTERNATIVE_RULES or key.startswith(("anyof_", "oneof_")) for key in rules):
            return self._alternatives(rules)
        kind = rules.get("type")
        if isinstance(kind, (list, tuple)):
            if len(kind) != 1:
                return self._alternatives(rules)
            rules = {**rules, "type": kind[0]}
            kind = kind[0]
        if kind is None:
            if "instance_of" in rules:
                kind = "dict"
            elif "truthy" in rules or "falsy" in rules:
                kind = "boolean"
        if kind is None:
            node_type = "any"
        elif kind in TYPE_NAMES:
            node_type = TYPE_NAMES[kind]
        elif kind in self.validator_class.types_mapping or hasattr(self.validator_class, f"_validate_type_{kind}"):
            node_type = kind
        else:
            raise ConfigurationError(f"Unknown type '{kind}' for {self.validator_class.__name__}.")

        children: Mapping[str, Description] | None = None
        patterns: tuple[Pattern, ...] = ()
        items: tuple[Description, ...] = ()
        ordered: tuple[Description, ...] = ()
        valids: tuple[Any, ...] = tuple(rules.get("allowed", ()))
        if node_type == "object":
            if rules.get("schema") is not None:
                children = self._children(rules["schema"], rules.get("valuesrules"))
            patterns = self._patterns(rules)
        elif node_type == "array":
            items, ordered = self._array(rules)
            valids = ()
        return Description(
            node_type,
            rules=self._constraints(rules, node_type),
            flags=_frozen(self._flags(rules, kind)),
            valids=valids,
            invalids=tuple(rules.get("forbidden", ())),
            children=children,
            items=items,
            ordered=ordered,
            patterns=patterns,
            source=rules,
            validator=self.validator_class,
        )

    def _constraints(self, rules: Mapping[str, Any], node_type: str) -> tuple[Rule, ...]:
        constraints: list[Rule] = []
        if rules.get("type") == "integer":
            constraints.append(Rule("integer"))
        bounds = ("minlength", "maxlength") if node_type in LENGTH_TYPES else ("min", "max")
        for key, arg in rules.items():
            if key == bounds[0]:
                constraints.append(Rule("min", arg))
            elif key == bounds[1]:
                constraints.append(Rule("max", arg))
            elif key in RULE_NAMES:
                constraints.append(Rule(RULE_NAMES[key], arg))
            elif key in ("format", "sign"):
                constraints.append(Rule(arg))
            elif key == "case":
                constraints.append(Rule(f"{arg}case"))
        return tuple(constraints)

    def _flags(self, rules: Mapping[str, Any], kind: Any) -> dict[str, Any]:
        flags: dict[str, Any] = {}
        if kind is not None:
            flags["kind"] = kind
        if rules.get("readonly"):
            flags["presence"] = "forbidden"
        elif rules.get("required") is True:
            flags["presence"] = "required"
        elif rules.get("required") is False:
            flags["presence"] = "optional"
        if "require_all" in rules:
            flags["presence_default"] = "required" if rules["require_all"] else "optional"
        if "default" in rules:
            flags["default"] = rules["default"]
        if "default_setter" in rules:
            flags["default_setter"] = self._setter(rules["default_setter"])
        if rules.get("empty") is True and kind in ("list", "set"):
            flags["sparse"] = True
        for key, name in FLAG_NAMES.items():
            if key in rules:
                flags[name] = rules[key]
        if "date_format" in rules:
            if rules["date_format"] == "iso":
                flags["iso"] = True
            else:
                flags["format"] = rules["date_format"]
        meta = rules.get("meta")
        if isinstance(meta, Mapping):
            flags.update((key, meta[key]) for key in META_FLAGS if key in meta)
        return flags

    def _setter(self, setter: Any) -> Callable[[Mapping[str, Any]], Any]:
        if callable(setter):
            return setter
        method = getattr(self.validator_class(), f"_normalize_default_setter_{setter}", None)
        if method is None:
            raise ConfigurationError(f"{self.validator_class.__name__} has no default setter '{setter}'.")
        return method

    def _alternatives(self, rules: Mapping[str, Any]) -> Description:
        rest: dict[str, Any] = {}
        options: list[Mapping[str, Any]] = []
        for key, value in rules.items():
            if key in ALTERNATIVE_RULES:
                options.extend(self._rules(option) for option in value)
            elif key.startswith(("anyof_", "oneof_")):
                rule_name = key.split("_", 1)[1]
                options.extend({rule_name: option} for option in value)
            else:
                rest[key] = value
        if not options and isinstance(rest.get("type"), (list, tuple)):
            options.extend({"type": kind} for kind in rest.pop("type"))
        matches = tuple(Match(None, None, self.field({**rest, **option}), None) for option in options)
        if _LOG_DEBUG:
            _logger.debug(f"Alternatives with {len(matches)} branches from {pformat(rules)}")
        return Description(
            "alternatives",
            flags=_frozen(self._flags(rest, None)),
            matches=matches,
            source=rules,
            validator=self.validator_class,
        )

    def _conditional(self, rules: Mapping[str, Any]) -> Description:
        when = rules["when"]
        if not isinstance(when, Mapping) or "ref" not in when or "is" not in when:
            raise ConfigurationError("A 'when' rule needs 'ref' and 'is'.")
        rest: dict[str, Any] = {key: value for key, value in rules.items() if key != "when"}
        base = self.field(rest)
        match = Match(
            when["ref"],
            self.field(when["is"]),
            self.field({**rest, **self._rules(when["then"])}) if when.get("then") is not None else None,
            self.field({**rest, **self._rules(when["otherwise"])}) if when.get("otherwise") is not None else None,
        )
        return Description(
            "alternatives",
            flags=base.flags,
            matches=(match,),
            base=base,
            source=rules,
            validator=self.validator_class,
        )

    def _array(self, rules: Mapping[str, Any]) -> tuple[tuple[Description, ...], tuple[Description, ...]]:
        ordered = tuple(self.field(item) for item in rules.get("items", ()))
        element = rules.get("schema")
        if element is None:
            if "allowed" not in rules:
                return ((), ordered)
            element = {}
        element = dict(self._rules(element))
        if "allowed" in rules:
            element.setdefault("allowed", rules["allowed"])
        excluded = [self._rules(option) for option in element.pop("noneof", ())]
        shape = self.field(element)
        if shape.type == "alternatives" and shape.base is None:
            items = [match.then for match in shape.matches]
        else:
            items = [shape]
        for option in excluded:
            forbidden = self.field(option)
            items.append(replace(forbidden, flags=_frozen({**forbidden.flags, "presence": "forbidden"})))
        return (tuple(items), ordered)

    def _patterns(self, rules: Mapping[str, Any]) -> tuple[Pattern, ...]:
        if rules.get("schema") is not None or not ("keysrules" in rules or "valuesrules" in rules):
            return ()
        values = self.field(rules.get("valuesrules", {}))
        if rules.get("keysrules") is None:
            return (Pattern(None, values),)
        keysrules = self._rules(rules["keysrules"])
        # Document keys are strings unless the key rules say otherwise.
        key = self.field(keysrules if "type" in keysrules else {"type": "string", **keysrules})
        return (Pattern(keysrules.get("regex"), values, key),)


def describe(schema: Any, validator_class: type[Validator] | None = None) -> Description:
    """Describe a Cerberus schema.

    Args
    ----
    schema: A cerberus.Validator, a document schema, the rules of a single field or a Description.
    validator_class: Validator class for mapping schemas. Defaults to EntityValidator.

    Returns
    -------
    The root of the description tree.
    """
    if isinstance(schema, Description):
        return schema
    if schema is None:
        raise ConfigurationError("A Cerberus schema or Validator is required.")
    if isinstance(schema, Validator):
        if schema.schema is None:
            raise ConfigurationError("The Validator has no schema.")
        describer = _Describer(type(schema), schema.rules_set_registry, schema.schema_registry)
        description = describer.document(
            schema.schema,
            schema,
            "required" if schema.require_all else None,
            schema.allow_unknown,
        )
    elif isinstance(schema, Mapping):
        validator_class = validator_class or EntityValidator
        rules_set = is_rules_set(schema, validator_class)
        describer = _Describer(validator_class, rules_set_registry, schema_registry)
        description = describer.field(schema) if rules_set else describer.document(schema, schema)
        # Cerberus checks the schema. Cycles were rejected above.
        build_validator(schema, validator_class, rules_set)
    else:
        raise ConfigurationError(f"Cannot describe a {type(schema).__name__}.")
    if _LOG_DEBUG:
        _logger.debug(f"Description:\n{pformat(description)}")
    return description
