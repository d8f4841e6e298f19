"""Test the generator module."""
from base64 import b64decode
from datetime import date, datetime
from logging import Logger, NullHandler, getLogger
from math import isnan
from pprint import pformat
from random import Random
from typing import Any

import pytest
from cerberus import Validator

from exemplar.description import describe
from exemplar.errors import ConfigurationError, ValidationFailure
from exemplar.generator import build_example, generate, strip_assertions
from exemplar.validator import EntityValidator, arity_of, validate

_logger: Logger = getLogger(__name__)
_logger.addHandler(NullHandler())


# Number of batches of test cases to run.
# Some tests generate 10 samples per batch others generate 1.
NUM_TEST_BATCHES: int = 10

PERSON_SCHEMA: dict[str, Any] = {
    "id": {"type": "string", "format": "uuid", "required": True},
    "name": {"type": "string", "minlength": 3, "maxlength": 12, "required": True},
    "email": {"type": "string", "format": "email"},
    "age": {"type": "integer", "min": 0, "max": 120},
    "score": {"type": "float", "greater": 0, "less": 1, "precision": 2},
    "tags": {"type": "list", "schema": {"type": "string", "allowed": ["a", "b", "c"]}, "maxlength": 3},
    "active": {"type": "boolean"},
    "joined": {"type": "date", "min": date(2000, 1, 1), "max": date(2020, 1, 1)},
    "address": {
        "type": "dict",
        "schema": {
            "city": {"type": "string", "required": True},
            "zip": {"type": "string", "regex": r"[0-9]{5}"},
        },
    },
    "nickname": {"type": "string", "required": False},
}

PAYMENT_SCHEMA: dict[str, Any] = {
    "kind": {"type": "string", "allowed": ["card", "cash"], "required": True},
    "number": {
        "type": "string",
        "when": {
            "ref": "kind",
            "is": {"allowed": ["card"]},
            "then": {"format": "creditcard"},
            "otherwise": {"allowed": ["n/a"]},
        },
    },
}

# Only native Cerberus rules: used with a plain Validator.
NATIVE_VALIDATOR: Validator = Validator(
    {
        "count": {"type": "integer", "min": -5, "max": 5},
        "ratio": {"type": "float", "min": 0.0, "max": 1.0},
        "code": {"type": "string", "regex": "[A-Z]{2}-[0-9]{3}"},
        "values": {"type": "list", "schema": {"type": "integer", "min": 0, "max": 9}, "minlength": 1, "maxlength": 4},
        "flags": {"type": "dict", "keysrules": {"type": "string", "regex": "[a-z]{4}"}, "valuesrules": {"type": "boolean"}},
        "optional": {"type": "string", "required": False},
    },
    require_all=True,
)


class Point:
    """A prototype for instance_of."""


class CodeValidator(EntityValidator):
    """A validator with a custom type."""

    def _validate_type_code(self, value):
        return isinstance(value, str)


def _assert_valid(value: Any, schema: Any) -> None:
    description = describe(schema)
    outcome = validate(value, description.source, None, description.validator, not description.document)
    if outcome.error is not None:
        _logger.debug(f"Invalid example:\n{pformat(value, indent=4)}\n{outcome.error}")
    assert outcome.error is None


@pytest.mark.parametrize("_", range(NUM_TEST_BATCHES))
def test_person(_) -> None:
    """Examples of a mixed document validate."""
    for _ in range(10):
        example = build_example(PERSON_SCHEMA, {"strict_example": True})
        _assert_valid(example, PERSON_SCHEMA)
        assert "nickname" not in example
        assert len(example["address"]["zip"]) == 5


@pytest.mark.parametrize("_", range(NUM_TEST_BATCHES))
def test_person_optional(_) -> None:
    """include_optional materializes optional fields."""
    example = build_example(PERSON_SCHEMA, {"include_optional": True, "strict_example": True})
    assert "nickname" in example


@pytest.mark.parametrize("_", range(NUM_TEST_BATCHES))
def test_native_validator(_) -> None:
    """A plain Cerberus Validator with require_all."""
    for example in generate(NATIVE_VALIDATOR, 10, validate=True):
        assert "optional" not in example
        assert 1 <= len(example["values"]) <= 4


@pytest.mark.parametrize("_", range(NUM_TEST_BATCHES))
def test_when(_) -> None:
    """Conditional fields follow the generated sibling."""
    for example in generate(PAYMENT_SCHEMA, 10, validate=True):
        if example["kind"] == "card":
            assert len(example["number"]) == 16
        else:
            assert example["number"] == "n/a"


@pytest.mark.parametrize(
    "rules",
    [
        {"type": "string", "length": 7},
        {"type": "string", "minlength": 20},
        {"type": "string", "maxlength": 2},
        {"type": "string", "minlength": 4, "maxlength": 6, "case": "upper"},
        {"type": "string", "format": "hex", "length": 10},
        {"type": "string", "format": "alphanum", "case": "lower"},
        {"type": "string", "format": "token"},
        {"type": "string", "format": "uuid", "case": "upper"},
        {"type": "string", "format": "email"},
        {"type": "string", "format": "isodate"},
        {"type": "string", "format": "hostname"},
        {"type": "string", "format": "uri"},
        {"type": "string", "format": "creditcard"},
        {"type": "string", "format": "ip"},
        {"type": "string", "format": "ipv4"},
        {"type": "string", "format": "ipv6"},
        {"type": "string", "regex": r"[a-f]{2}\d{3}"},
        {"type": "integer"},
        {"type": "integer", "min": 10},
        {"type": "integer", "max": -10},
        {"type": "integer", "multiple": 7, "min": 10, "max": 50},
        {"type": "integer", "sign": "negative"},
        {"type": "integer", "greater": 3, "less": 5},
        {"type": "float", "min": 1.5, "max": 1.6},
        {"type": "float", "sign": "positive", "precision": 1, "max": 2},
        {"type": "float", "multiple": 0.25, "min": -1, "max": 1},
        {"type": "float", "multiple": 0.1, "min": 0.3, "max": 0.3},
        {"type": "float", "multiple": 0.1, "greater": 0.2, "less": 0.4},
        {"type": "number", "greater": -1, "less": 0},
        {"type": "boolean"},
        {"type": "boolean", "truthy": ["Y"], "falsy": ["N"]},
        {"type": "binary"},
        {"type": "binary", "minlength": 4, "maxlength": 8},
        {"type": "binary", "encoding": "hex", "minlength": 4, "maxlength": 8},
        {"type": "binary", "encoding": "base64", "maxlength": 12},
        {"type": "binary", "encoding": "utf8", "length": 5},
        {"type": "date"},
        {"type": "datetime", "min": datetime(2001, 1, 1), "max": datetime(2001, 2, 1)},
        {"type": "datetime", "min": "now"},
        {"type": "datetime", "max": "now"},
        {"type": "date", "timestamp": "unix", "min": datetime(2001, 1, 1), "max": datetime(2002, 1, 1)},
        {"type": "date", "timestamp": "javascript"},
        {"type": "date", "date_format": "iso"},
        {"type": "date", "date_format": "%Y-%m-%d", "min": date(2001, 1, 1), "max": date(2001, 12, 31)},
        {"type": "date", "date_format": ["%d/%m/%Y", "iso"]},
        {"type": "datetime", "date_format": "%Y-%m-%d", "min": datetime(2001, 1, 1, 12), "max": datetime(2001, 1, 3)},
        {"type": "datetime", "date_format": "%Y-%m-%d %H", "min": datetime(2001, 1, 1, 12, 30), "max": datetime(2001, 1, 1, 14)},
        {"type": "function"},
        {"type": "function", "arity": 2},
        {"type": "function", "minarity": 1, "maxarity": 3},
        {"type": "list"},
        {"type": "list", "empty": True},
        {"type": "list", "length": 3, "schema": {"type": "integer"}},
        {"type": "list", "items": [{"type": "string"}, {"type": "integer"}]},
        {"type": "list", "schema": {"anyof": [{"type": "string"}, {"type": "integer"}]}, "minlength": 2},
        {"type": "list", "schema": {"type": "string", "noneof": [{"type": "integer"}]}},
        {"type": "list", "allowed": ["x", "y"], "minlength": 1},
        {"type": "list", "single": True, "schema": {"type": "integer"}},
        {"type": "set", "schema": {"type": "integer"}},
        {"type": "dict"},
        {"type": "dict", "minlength": 3},
        {"type": "dict", "keysrules": {"type": "string", "regex": "[a-z]{4}"}, "valuesrules": {"type": "integer"}, "minlength": 2},
        {"type": "dict", "keysrules": {"type": "string", "maxlength": 3}, "valuesrules": {"type": "integer"}, "minlength": 1},
        {"type": "dict", "keysrules": {"type": "integer", "min": 0, "max": 9}, "valuesrules": {"type": "string"}, "minlength": 2},
        {"type": "dict", "keysrules": {"allowed": ["x", "y"]}, "minlength": 1},
        {"type": "dict", "instance_of": Point},
        {"type": ["string", "integer"]},
        {"anyof": [{"type": "string"}, {"type": "boolean"}]},
        {"anyof_type": ["integer", "float"], "min": 0},
        {"type": "string", "allowed": ["a", "b"]},
        {"type": "string", "default": "fixed"},
        {"type": "string", "meta": {"examples": ["hello"]}},
        {"type": "integer", "min": 1, "max": 2, "forbidden": [1]},
    ],
)
def test_rules(rules) -> None:
    """Every example satisfies its rules."""
    for _ in range(10):
        example = build_example(rules, {"strict_example": True})
        _assert_valid(example, rules)


def test_representations() -> None:
    """Checks beyond validity."""
    assert isinstance(build_example({"type": "float", "min": 1, "max": 2}), float)
    assert isinstance(build_example({"type": "integer", "min": 1, "max": 2}), int)
    assert isinstance(build_example({"type": "date"}), date)
    assert isinstance(build_example({"type": "datetime"}), datetime)
    assert isinstance(build_example({"type": "date", "timestamp": "unix"}), float)
    assert isinstance(build_example({"type": "binary"}), bytes)
    assert len(b64decode(build_example({"type": "binary", "encoding": "base64", "length": 8}))) == 6
    assert arity_of(build_example({"type": "function", "arity": 3})) == 3
    assert isinstance(build_example({"type": "set"}), set)
    assert isinstance(build_example({"type": "list", "single": True, "schema": {"type": "integer"}}), int)
    assert isinstance(build_example({"instance_of": Point}), Point)
    assert build_example({"type": "list", "empty": True}) == []
    assert build_example({"type": "string", "meta": {"examples": ["hello"]}}) == "hello"
    assert build_example({"type": "integer", "min": 1, "max": 2, "forbidden": [1]}) == 2
    assert build_example({"type": "boolean", "truthy": ["Y"], "falsy": ["N"]}) in ("Y", "N")
    ordered = build_example({"type": "list", "items": [{"type": "string"}, {"type": "integer"}]})
    assert isinstance(ordered[0], str) and isinstance(ordered[1], int)


def test_truncating_date_format() -> None:
    """Formats that drop the time never render below a minimum with a time part."""
    rules = {"type": "datetime", "date_format": "%Y-%m-%d", "min": datetime(2001, 1, 1, 12), "max": datetime(2001, 1, 3)}
    examples = {build_example(rules) for _ in range(100)}
    assert examples <= {"2001-01-02", "2001-01-03"}


def test_multiple_at_bounds() -> None:
    """Multiples that only exist at the bounds are found."""
    assert build_example({"type": "float", "multiple": 0.1, "min": 0.3, "max": 0.3}) == 0.3
    assert build_example({"type": "float", "multiple": 0.1, "greater": 0.2, "less": 0.4}) == 0.3
    assert isnan(build_example({"type": "float", "multiple": 0.1, "greater": 0.3, "less": 0.4}))


def test_key_rules() -> None:
    """Generated keys satisfy every key rule, not only the regex."""
    rules = {"type": "dict", "keysrules": {"type": "string", "maxlength": 3}, "valuesrules": {"type": "integer"}, "minlength": 1}
    for _ in range(NUM_TEST_BATCHES):
        example = build_example(rules)
        assert example
        assert all(len(key) <= 3 for key in example)
        _assert_valid(example, rules)


def test_schema_values_not_shared() -> None:
    """Mutating an example never changes the schema or later examples."""
    schema = {
        "tags": {"type": "list", "default": ["a"]},
        "point": {"type": "dict", "schema": {"x": {"type": "integer"}}, "meta": {"examples": [{"x": 1}]}},
        "sizes": {"type": "list", "meta": {"examples": [[1, 2]]}},
        "origin": {"type": "dict", "allowed": [{"x": 0}]},
    }
    example = build_example(schema)
    example["tags"].append("x")
    example["point"]["x"] = 2
    example["sizes"].append(3)
    example["origin"]["x"] = 5
    assert schema["tags"]["default"] == ["a"]
    assert schema["point"]["meta"]["examples"] == [{"x": 1}]
    assert schema["sizes"]["meta"]["examples"] == [[1, 2]]
    assert schema["origin"]["allowed"] == [{"x": 0}]
    assert build_example(schema) == {"tags": ["a"], "point": {"x": 1}, "sizes": [1, 2], "origin": {"x": 0}}


@pytest.mark.parametrize(
    "rules",
    [
        {"type": "integer", "min": 5, "max": 1},
        {"type": "integer", "greater": 3, "less": 4},
        {"type": "number", "sign": "negative", "min": 1},
        {"type": "integer", "multiple": 10, "min": 1, "max": 9},
        {"type": "float", "greater": 1.0, "less": 1.0},
        {"type": "float", "precision": 0, "greater": 1, "less": 2},
    ],
)
def test_unsatisfiable(rules) -> None:
    """Numeric constraints that cannot be met generate NaN."""
    assert isnan(build_example(rules))


def test_ignore_valids_and_defaults() -> None:
    """Allowed values and defaults can be ignored."""
    rules = {"type": "string", "allowed": ["only"], "default": "fallback", "minlength": 20}
    assert build_example(rules) == "only"
    assert build_example(rules, {"ignore_valids": True}) == "fallback"
    assert len(build_example(rules, {"ignore_valids": True, "ignore_defaults": True})) >= 20


def test_default_setter() -> None:
    """Default setters see the generated siblings."""
    schema = {
        "first": {"type": "string", "allowed": ["Ada"]},
        "greeting": {"type": "string", "default_setter": lambda document: f"Hello {document['first']}"},
    }
    assert build_example(schema)["greeting"] == "Hello Ada"


def test_dependencies() -> None:
    """A child whose dependencies were not generated is dropped."""
    schema = {
        "a": {"type": "string", "required": False},
        "b": {"type": "string", "dependencies": "a"},
        "c": {"type": "integer", "excludes": "d"},
        "d": {"type": "integer", "excludes": "c"},
    }
    example = build_example(schema, {"strict_example": True})
    assert "b" not in example
    assert ("c" in example) != ("d" in example)
    example = build_example(schema, {"include_optional": True, "strict_example": True})
    assert "a" in example and "b" in example


def test_custom_type() -> None:
    """Custom types are generated as their base."""
    description = describe({"type": "code", "meta": {"base": "string"}}, CodeValidator)
    example = build_example(description, {"strict_example": True})
    assert isinstance(example, str)
    description = describe({"type": "code", "meta": {"base": "spaceship"}}, CodeValidator)
    with pytest.raises(ConfigurationError):
        build_example(description)


def test_lookahead_pattern() -> None:
    """Patterns are generated up to the first lookaround assertion."""
    rules = {"type": "string", "regex": r"[a-z]{3}(?=\d)"}
    example = build_example(rules)
    assert len(example) == 3 and example.isalpha()
    with pytest.raises(ValidationFailure):
        build_example(rules, {"strict_example": True})


@pytest.mark.parametrize(
    "pattern, expected",
    [
        (r"^(?=.*\d)[a-z]+$", ("^", True)),
        (r"(ab(?!c)d)", ("(ab)", True)),
        (r"x(?<=x)y", ("x", True)),
        (r"[(?=]x", (r"[(?=]x", False)),
        (r"\(?=x", (r"\(?=x", False)),
        (r"a(b)c", (r"a(b)c", False)),
    ],
)
def test_strip_assertions(pattern, expected) -> None:
    assert strip_assertions(pattern) == expected


def test_strict_example_failure() -> None:
    """strict_example raises on an invalid example."""
    with pytest.raises(ValidationFailure) as excinfo:
        build_example({"type": "integer", "min": 5, "max": 1}, {"strict_example": True})
    assert excinfo.value.errors


def test_injected_rng() -> None:
    """A seeded rng reproduces examples."""
    schema = {key: PERSON_SCHEMA[key] for key in ("id", "name", "age", "score", "tags", "active", "joined")}
    assert build_example(schema, rng=Random(42)) == build_example(schema, rng=Random(42))


def test_bad_schema() -> None:
    with pytest.raises(ConfigurationError):
        build_example(None)


def test_random_seed_1() -> None:
    """Test that the random seed works as expected."""
    a: list[Any] = generate(PERSON_SCHEMA, 10, 7)
    b: list[Any] = generate(PERSON_SCHEMA, 10, 7)
    if a != b:
        for num, (_a, _b) in enumerate(zip(a, b)):
            _logger.debug(
                f"Element {num} does not match:\n"
                f"a:\n{pformat(_a, sort_dicts=True, indent=4)}"
                f"b:\n{pformat(_b, sort_dicts=True, indent=4)}"
            )
            assert _a == _b


def test_random_seed_2() -> None:
    """Test that the random seed works as expected in the offset case."""
    a: list[Any] = generate(PERSON_SCHEMA, 10, 7)
    b: list[Any] = generate(PERSON_SCHEMA, 10, 10)
    if a[3:] != b[:-3]:
        for num, (_a, _b) in enumerate(zip(a[3:], b)):
            _logger.debug(
                f"Element {num} does not match:\n"
                f"a:\n{pformat(_a, sort_dicts=True, indent=4)}"
                f"b:\n{pformat(_b, sort_dicts=True, indent=4)}"
            )
            assert _a == _b
