"""Randomly generate values that satisfy a described Cerberus schema.

Generation walks the Description tree. Each description type has a
_generate_<type>() function in the TYPE_GENERATION dispatch table.

Before the type function runs every node goes through _generate_base():
    1. An allowed value is chosen (unless 'ignore_valids').
    2. The default (or default setter result) is used (unless 'ignore_defaults').
    3. A value is chosen from meta 'examples'.

Limitations
-----------
    1. Generating from regular expressions with lookaround assertions is tricky: only the
       part of the expression before the first assertion is used.
    2. Regular expression output draws from the global random module, not the injected rng.
    3. Numeric constraints that cannot be satisfied generate NaN.
    4. 'check_with', 'coerce', 'allof' and 'noneof' (outside list element schemas) are ignored.
"""
from __future__ import annotations

from base64 import b64encode
from copy import deepcopy
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from inspect import Parameter, Signature
from ipaddress import IPv4Address, IPv6Address
from logging import DEBUG, Logger, NullHandler, getLogger
from math import ceil, floor, isclose, nan
from pprint import pformat
from random import Random, randint
from random import seed as random_seed
from re import fullmatch
from string import ascii_letters, ascii_lowercase, digits
from typing import Any, Callable, Hashable, Mapping
from uuid import UUID

from exrex import getone
from numpy.random import Generator, default_rng

from .config import LIMITS, GenerationConfig, resolve_config
from .description import Description, Pattern, describe, is_included, pattern_matches, select_branch
from .errors import ConfigurationError, ValidationFailure
from .validator import as_datetime, reach
from .validator import validate as validate_value


_logger: Logger = getLogger(__name__)
_logger.addHandler(NullHandler())
_LOG_DEBUG: bool = _logger.isEnabledFor(DEBUG)

# The process wide source of randomness when none is injected.
_RANDOM: Random = Random()

SEED_ALPHABET: str = ascii_lowercase + digits
ALPHABETS: dict[str, str] = {
    "hex": digits + "abcdef",
    "alphanum": ascii_letters + digits,
    "token": ascii_letters + digits + "_",
}
EMAIL_DOMAINS: tuple[str, ...] = ("email.com", "gmail.com", "example.com", "domain.io", "email.net")
URI_SCHEMES: tuple[str, ...] = ("http", "https", "ftp")
TOP_LEVEL_DOMAINS: tuple[str, ...] = ("com", "net", "org", "io")
ASSERTIONS: tuple[str, ...] = ("(?=", "(?!", "(?<=", "(?<!")

# Encoded characters per group and bytes per group.
ENCODED_UNITS: dict[str, tuple[int, int]] = {"hex": (2, 1), "base64": (4, 3)}

# Offsets tried when a date representation truncates an instant out of range.
ROUNDING_STEPS: tuple[timedelta, ...] = (
    timedelta(0),
    timedelta(seconds=1),
    timedelta(minutes=1),
    timedelta(hours=1),
    timedelta(days=1),
    timedelta(days=31),
    timedelta(days=366),
)

DEFAULT_ITEMS: tuple[Description, ...] = (
    Description("string", flags={"kind": "string"}, source={"type": "string"}),
    Description("number", flags={"kind": "number"}, source={"type": "number"}),
)


class _Context:
    """State of a single example generation."""

    def __init__(self, config: GenerationConfig, rng: Random) -> None:
        self.config: GenerationConfig = config
        self.rng: Random = rng
        self.np_rng: Generator = default_rng(rng.getrandbits(64))
        self.root: dict[str, Any] | None = None


def _get_length(ctx: _Context, minlength: int, maxlength: int) -> int:
    """Return a random length between minlength and maxlength (inclusive) with a gaussian distribution."""
    if maxlength <= minlength:
        return minlength
    delta: int = maxlength - minlength
    stddev: float = delta * LIMITS["general"]["random_length_stddev"]
    return (abs(int(ctx.np_rng.normal(0, stddev))) % (delta + 1)) + minlength


def _chars(ctx: _Context, length: int, alphabet: str = SEED_ALPHABET) -> str:
    return "".join(ctx.rng.choices(alphabet, k=length))


def _word(ctx: _Context) -> str:
    return _chars(ctx, _get_length(ctx, LIMITS["string"]["minlength"], LIMITS["string"]["maxlength"]))


def _generate_base(description: Description, ctx: _Context, siblings: Mapping[str, Any] | None) -> tuple[bool, Any]:
    """Common generation operations for every type.

    Args
    ----
    description: The node being generated.
    ctx: The generation context.
    siblings: The object the value is generated into (if any).

    Returns
    -------
    (value_set: bool, value: Any) If value_set is True value represents the value generated.
    """
    if description.valids and not ctx.config["ignore_valids"]:
        _logger.debug("Value chosen from allowed values.")
        return (True, deepcopy(ctx.rng.choice(description.valids)))
    if not ctx.config["ignore_defaults"]:
        if "default_setter" in description.flags:
            _logger.debug("Value set by the default setter.")
            return (True, description.flags["default_setter"](dict(siblings or {})))
        if "default" in description.flags:
            _logger.debug("Value set to the default.")
            return (True, deepcopy(description.flags["default"]))
    if description.flags.get("examples"):
        _logger.debug("Value chosen from the examples.")
        return (True, deepcopy(ctx.rng.choice(description.flags["examples"])))
    return (False, None)


def _generate(description: Description, ctx: _Context, siblings: Mapping[str, Any] | None = None) -> Any:
    common_tuple: tuple[bool, Any] = _generate_base(description, ctx, siblings)
    if common_tuple[0]:
        return common_tuple[1]
    generator = TYPE_GENERATION.get(description.type)
    if generator is None:
        base: str = description.flags.get("base", "string")
        if base not in TYPE_GENERATION:
            raise ConfigurationError(f"Cannot generate type '{description.type}' from base '{base}'.")
        if _LOG_DEBUG:
            _logger.debug(f"Generating custom type '{description.type}' as '{base}'.")
        generator = TYPE_GENERATION[base]
    value: Any = generator(description, ctx, siblings)
    for _ in range(LIMITS["general"]["invalid_redraws"]):
        if not description.invalids or value not in description.invalids:
            break
        _logger.debug("Redrawing a forbidden value.")
        value = generator(description, ctx, siblings)
    return value


def _luhn(ctx: _Context) -> str:
    numbers: list[int] = [ctx.rng.randint(0, 9) for _ in range(15)]
    total: int = 0
    for index, digit in enumerate(reversed(numbers)):
        if not index % 2:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return "".join(map(str, numbers)) + str((10 - total % 10) % 10)


def _ipv4(ctx: _Context) -> str:
    return str(IPv4Address(ctx.rng.getrandbits(32)))


def _ipv6(ctx: _Context) -> str:
    return str(IPv6Address(ctx.rng.getrandbits(128)))


def _hostname(ctx: _Context) -> str:
    labels: list[str] = [_chars(ctx, ctx.rng.randint(3, 10), ALPHABETS["alphanum"]) for _ in range(ctx.rng.randint(1, 3))]
    return ".".join(labels + [ctx.rng.choice(TOP_LEVEL_DOMAINS)])


# Named string formats that generate a complete value.
STRING_FORMATS: dict[str, Callable[[_Context], str]] = {
    "uuid": lambda ctx: str(UUID(int=ctx.rng.getrandbits(128), version=4)),
    "email": lambda ctx: f"{_word(ctx)}@{ctx.rng.choice(EMAIL_DOMAINS)}",
    "isodate": lambda ctx: datetime.now().isoformat(),
    "hostname": _hostname,
    "uri": lambda ctx: f"{ctx.rng.choice(URI_SCHEMES)}://www.{_word(ctx)}.{ctx.rng.choice(TOP_LEVEL_DOMAINS)}",
    "creditcard": _luhn,
    "ip": lambda ctx: ctx.rng.choice((_ipv4, _ipv6))(ctx),
    "ipv4": _ipv4,
    "ipv6": _ipv6,
}


def strip_assertions(pattern: str) -> tuple[str, bool]:
    """Cut a regular expression at its first lookaround assertion.

    Open groups are closed so the prefix remains a valid expression.

    Returns
    -------
    (prefix, truncated)
    """
    depth: int = 0
    escaped: bool = False
    in_class: bool = False
    for index, char in enumerate(pattern):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif in_class:
            in_class = char != "]"
        elif char == "[":
            in_class = True
        elif char == "(":
            if pattern.startswith(ASSERTIONS, index):
                return (pattern[:index] + ")" * depth, True)
            depth += 1
        elif char == ")":
            depth -= 1
    return (pattern, False)


def _generate_pattern(pattern: str, ctx: _Context) -> str:
    prefix, truncated = strip_assertions(pattern)
    value: str = getone(prefix)
    if _LOG_DEBUG:
        _logger.debug(f"Generated '{value}' from regex '{prefix}'.")
    if truncated and fullmatch(pattern, value) is None:
        message: str = f"Could not generate a value matching '{pattern}': '{value}' does not match."
        if ctx.config["strict_example"]:
            raise ValidationFailure(message, {"regex": [message]})
        _logger.debug(message)
    return value


def _generate_string(description: Description, ctx: _Context, _: Any = None) -> str:
    rules: dict[str, Any] = description.constraints()
    special: str | None = next((name for name in STRING_FORMATS if name in rules), None)
    if special is not None:
        if _LOG_DEBUG:
            _logger.debug(f"Generating '{special}' string.")
        value: str = STRING_FORMATS[special](ctx)
        if special == "isodate":
            return value
    elif "pattern" in rules:
        return _generate_pattern(rules["pattern"], ctx)
    else:
        alphabet: str = next((ALPHABETS[name] for name in ("hex", "alphanum", "token") if name in rules), SEED_ALPHABET)
        if "length" in rules:
            length: int = rules["length"]
        elif "min" in rules and "max" in rules:
            length = _get_length(ctx, rules["min"], rules["max"])
        elif "max" in rules:
            length = _get_length(ctx, min(1, rules["max"]), rules["max"])
        elif "min" in rules:
            length = _get_length(ctx, rules["min"], rules["min"] + LIMITS["string"]["maxlength"])
        else:
            length = _get_length(ctx, LIMITS["string"]["minlength"], LIMITS["string"]["maxlength"])
        value = _chars(ctx, length, alphabet)
    if "uppercase" in rules:
        return value.upper()
    if "lowercase" in rules:
        return value.lower()
    return value


def _snap(quotient: float) -> float:
    """The nearest integer if quotient is one up to float error."""
    nearest: int = round(quotient)
    return nearest if isclose(quotient, nearest, rel_tol=1e-9, abs_tol=1e-9) else quotient


def _pick_multiple(ctx: _Context, low: float, low_open: bool, high: float, high_open: bool, step: float) -> int | float:
    """A random multiple of step in the range or NaN if there is none."""
    step = abs(step)
    if not step:
        return nan
    low_quotient: float = _snap(low / step)
    high_quotient: float = _snap(high / step)
    first: int = ceil(low_quotient)
    last: int = floor(high_quotient)
    if low_open and first <= low_quotient:
        first += 1
    if high_open and last >= high_quotient:
        last -= 1
    if first > last:
        return nan
    value: int | float = ctx.rng.randint(first, last) * step
    places: int = -int(Decimal(repr(step)).normalize().as_tuple().exponent)
    return round(value, places) if isinstance(value, float) and places > 0 else value


def _generate_number(description: Description, ctx: _Context, _: Any = None) -> int | float:
    rules: dict[str, Any] = description.constraints()
    kind: str = description.flags.get("kind", "number")
    integral: bool = "integer" in rules
    low: float | None = rules.get("min")
    high: float | None = rules.get("max")
    low_open: bool = False
    high_open: bool = False
    if "greater" in rules and (low is None or rules["greater"] >= low):
        low, low_open = rules["greater"], True
    if "less" in rules and (high is None or rules["less"] <= high):
        high, high_open = rules["less"], True
    if "positive" in rules and (low is None or low < 0 or (low == 0 and not low_open)):
        low, low_open = 0, True
    if "negative" in rules and (high is None or high > 0 or (high == 0 and not high_open)):
        high, high_open = 0, True
    if low is None and high is None:
        low, high = LIMITS["number"]["min"], LIMITS["number"]["max"]
    elif low is None:
        low = high - LIMITS["number"]["span"]
    elif high is None:
        high = low + LIMITS["number"]["span"]
    if _LOG_DEBUG:
        _logger.debug(f"Number range {'(' if low_open else '['}{low}, {high}{')' if high_open else ']'}.")

    step: float | None = rules.get("multiple", 1 if integral else None)
    precision: int | None = rules.get("precision")
    if step is None and precision is not None:
        step = 10**-precision
    if step is not None:
        value: int | float = _pick_multiple(ctx, low, low_open, high, high_open, step)
    elif low > high or (low == high and (low_open or high_open)):
        value = nan
    else:
        value = ctx.rng.uniform(low, high)
        if (low_open and value <= low) or (high_open and value >= high):
            value = (low + high) / 2
    if value != value:
        _logger.debug("Numeric constraints cannot be satisfied.")
        return nan
    if precision is not None:
        value = round(value, precision)
    if kind == "float":
        return float(value)
    if integral and isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _generate_boolean(description: Description, ctx: _Context, _: Any = None) -> Any:
    literals: list[Any] = [*description.flags.get("truthy", ()), *description.flags.get("falsy", ())]
    if literals:
        return ctx.rng.choice(literals)
    return bool(ctx.rng.getrandbits(1))


def _generate_binary(description: Description, ctx: _Context, _: Any = None) -> bytes | str:
    rules: dict[str, Any] = description.constraints()
    encoding: str | None = description.flags.get("encoding")
    if "length" in rules:
        minlength: int = rules["length"]
        maxlength: int = rules["length"]
    else:
        maxlength = rules.get("max", LIMITS["binary"]["maxlength"])
        minlength = rules.get("min", min(LIMITS["binary"]["minlength"], maxlength))
        if "min" in rules and "max" not in rules:
            maxlength = minlength + LIMITS["binary"]["maxlength"]
    characters, size = ENCODED_UNITS.get(encoding, (1, 1))
    groups: int = _get_length(ctx, ceil(minlength / characters), max(ceil(minlength / characters), maxlength // characters))
    if encoding is None:
        return bytes(ctx.rng.getrandbits(8) for _ in range(groups * size))
    data: bytes = _chars(ctx, groups * size, ALPHABETS["alphanum"]).encode("ascii")
    if encoding == "hex":
        return data.hex()
    if encoding == "base64":
        return b64encode(data).decode("ascii")
    return data.decode(encoding)


def _represent(value: datetime, description: Description, ctx: _Context) -> Any:
    timestamp: str | None = description.flags.get("timestamp")
    if timestamp is not None:
        seconds: float = value.timestamp()
        return seconds * 1000 if timestamp == "javascript" else seconds
    fmt: Any = "iso" if description.flags.get("iso") else description.flags.get("format")
    if isinstance(fmt, (list, tuple)):
        fmt = ctx.rng.choice(fmt)
    if fmt == "iso":
        return value.isoformat()
    if fmt is not None:
        return value.strftime(fmt)
    if description.flags.get("kind") == "date":
        return value.date()
    return value


def _draw_instant(ctx: _Context, low: datetime, high: datetime) -> datetime:
    return low if high <= low else low + (high - low) * ctx.rng.random()


def _generate_date(description: Description, ctx: _Context, _: Any = None) -> Any:
    rules: dict[str, Any] = description.constraints()
    span: timedelta = LIMITS["date"]["span"]
    low: datetime | None = as_datetime(rules["min"]) if "min" in rules else None
    high: datetime | None = as_datetime(rules["max"]) if "max" in rules else None
    if low is None and high is None:
        high = datetime.now()
        low = high - span
    elif low is None:
        low = high - span
    elif high is None:
        high = low + span
    value: datetime = _draw_instant(ctx, low, high)
    if not {"timestamp", "iso", "format"} & set(description.flags):
        if description.flags.get("kind") != "date":
            return value
        day: date = value.date()
        if datetime.combine(day, time()) < low:
            day += timedelta(days=1)
        return day

    # Representations can truncate the instant below low: move up to the next representable instant or redraw.
    source: Mapping[str, Any] = description.source if isinstance(description.source, Mapping) else {}
    represented: Any = None
    for _ in range(LIMITS["general"]["invalid_redraws"]):
        for step in ROUNDING_STEPS:
            represented = _represent(value + step, description, ctx)
            instant: datetime | None = as_datetime(represented, source)
            if instant is not None and low <= instant <= high:
                return represented
        value = _draw_instant(ctx, low, high)
    _logger.debug(f"No representable date in [{low}, {high}].")
    return represented


def function_of_arity(count: int) -> Callable[..., Any]:
    """A function with count required positional parameters."""

    def example(*args: Any) -> None:
        return None

    example.__signature__ = Signature(  # type: ignore
        [Parameter(f"param{index}", Parameter.POSITIONAL_OR_KEYWORD) for index in range(count)]
    )
    return example


def _generate_function(description: Description, ctx: _Context, _: Any = None) -> Callable[..., Any]:
    rules: dict[str, Any] = description.constraints()
    if "arity" in rules:
        count: int = rules["arity"]
    elif "min_arity" in rules and "max_arity" in rules:
        count = ctx.rng.randint(rules["min_arity"], rules["max_arity"])
    else:
        count = rules.get("min_arity", rules.get("max_arity", 0))
    return function_of_arity(count)


def _generate_array(description: Description, ctx: _Context, _: Any = None) -> list | set | Any:
    rules: dict[str, Any] = description.constraints()
    sparse: bool = description.flags.get("sparse", False)
    shapes: list[Description] = [item for item in description.items if item.presence != "forbidden"]
    if not description.items and not description.ordered:
        shapes = list(DEFAULT_ITEMS)
    if description.flags.get("single") and len(shapes) == 1 and not description.ordered:
        _logger.debug("Generating a single item in place of a list.")
        return _generate(shapes[0], ctx)
    elements: list[Any] = [_generate(item, ctx) for item in description.ordered]
    if "length" in rules:
        length: int = rules["length"]
    elif "min" in rules or "max" in rules:
        maxlength: int = rules.get("max", rules.get("min", 0) + LIMITS["array"]["maxlength"])
        minlength: int = rules.get("min", min(0 if sparse else 1, maxlength))
        length = _get_length(ctx, minlength, maxlength)
    elif sparse:
        length = 0
    else:
        length = _get_length(ctx, LIMITS["array"]["minlength"], LIMITS["array"]["maxlength"])
    unique: bool = description.flags.get("kind") == "set"
    index: int = 0
    attempts: int = LIMITS["general"]["invalid_redraws"] * max(length, 1)
    while len(elements) < length and shapes and attempts:
        attempts -= 1
        element: Any = _generate(shapes[index % len(shapes)], ctx)
        index += 1
        if unique and element in elements:
            continue
        elements.append(element)
    if _LOG_DEBUG:
        _logger.debug(f"Generated {len(elements)} elements.")
    return set(elements) if unique else elements


def _met(dependencies: Any, document: Mapping[str, Any], root: Any) -> bool:
    if dependencies is None:
        return True
    if isinstance(dependencies, str):
        dependencies = [dependencies]
    if isinstance(dependencies, Mapping):
        for path, allowed in dependencies.items():
            found, value = reach(root if path.startswith("^") else document, path.lstrip("^"))
            if not found or value not in (allowed if isinstance(allowed, (list, tuple, set)) else [allowed]):
                return False
        return True
    return all(reach(root if path.startswith("^") else document, path.lstrip("^"))[0] for path in dependencies)


def _excluded(excludes: Any, document: Mapping[str, Any]) -> bool:
    if excludes is None:
        return False
    return any(key in document for key in ([excludes] if isinstance(excludes, str) else excludes))


def _prune(description: Description, document: dict[str, Any], root: Any) -> None:
    """Drop generated children whose 'dependencies' are unmet or whose 'excludes' are present."""
    pruning: bool = True
    while pruning:
        pruning = False
        for key in list(document):
            child = description.children[key]
            if child.presence == "required":
                continue
            if not _met(child.flags.get("dependencies"), document, root) or _excluded(child.flags.get("excludes"), document):
                if _LOG_DEBUG:
                    _logger.debug(f"Dropping '{key}': dependencies or exclusions not satisfied.")
                del document[key]
                pruning = True


def _generate_key(pattern: Pattern, ctx: _Context) -> Any:
    if pattern.key is not None:
        return _generate(pattern.key, ctx)
    return getone(pattern.regex) if pattern.regex is not None else _word(ctx)


def _generate_object(description: Description, ctx: _Context, _: Any = None) -> Any:
    instance: type | None = description.flags.get("instance")
    if instance is not None:
        _logger.debug("Generating a prototype instance.")
        return instance.__new__(instance)
    rules: dict[str, Any] = description.constraints()
    document: dict[str, Any] = {}
    if ctx.root is None:
        ctx.root = document
    for key, child in (description.children or {}).items():
        if is_included(child, description, ctx.config["include_optional"]):
            document[key] = _generate(child, ctx, document)
            if _LOG_DEBUG:
                _logger.debug(f"Generated value for field '{key}':\n{pformat(document[key])}.")
    if description.children:
        _prune(description, document, ctx.root)

    if "length" in rules:
        count: int = rules["length"]
    elif "min" in rules:
        count = rules["min"]
    elif "max" in rules and not document:
        count = _get_length(ctx, 0, rules["max"])
    else:
        count = 0
    if description.children is not None and not (description.patterns or description.flags.get("unknown")):
        return document
    attempts: int = LIMITS["general"]["invalid_redraws"] * max(count, 1)
    while len(document) < count and attempts:
        attempts -= 1
        if description.patterns:
            pattern = ctx.rng.choice(description.patterns)
            key: Any = _generate_key(pattern, ctx)
            if isinstance(key, Hashable) and key not in document and pattern_matches(pattern, key):
                document[key] = _generate(pattern.rule, ctx, document)
        else:
            document.setdefault(_word(ctx), _word(ctx))
    return document


def _generate_alternatives(description: Description, ctx: _Context, siblings: Mapping[str, Any] | None = None) -> Any:
    if not description.matches:
        return _generate_any(description, ctx)
    match = description.matches[0]
    if match.ref is None:
        return _generate(ctx.rng.choice(description.matches).then, ctx, siblings)
    branch: Description | None = select_branch(match, siblings, ctx.root)
    return _generate(branch if branch is not None else description.base, ctx, siblings)


def _generate_any(description: Description, ctx: _Context, _: Any = None) -> str:
    return _word(ctx)


TYPE_GENERATION: dict[str, Callable[..., Any]] = {
    "alternatives": _generate_alternatives,
    "any": _generate_any,
    "array": _generate_array,
    "binary": _generate_binary,
    "boolean": _generate_boolean,
    "date": _generate_date,
    "function": _generate_function,
    "number": _generate_number,
    "object": _generate_object,
    "string": _generate_string,
}


def _check(value: Any, description: Description) -> None:
    """Raise ValidationFailure if value is not valid against description."""
    outcome = validate_value(value, description.source, None, description.validator, not description.document)
    if outcome.error is not None:
        message: str = f"Generated data failed validation! {outcome.error}."
        _logger.error(message)
        _logger.error(f"Generated data:\n{pformat(value, indent=4, sort_dicts=True)}.")
        raise ValidationFailure(message, outcome.error)


def build_example(schema: Any, config: Mapping[str, Any] | None = None, rng: Random | None = None) -> Any:
    """Generate a random value that conforms to schema.

    Args
    ----
    schema: Anything describe() accepts.
    config: Configuration overrides. See exemplar.config.
    rng: The source of randomness. A process wide instance is used if None.

    Returns
    -------
    The example. If 'strict_example' is set it has been validated.
    """
    description: Description = describe(schema)
    resolved: GenerationConfig = resolve_config(config)
    value: Any = _generate(description, _Context(resolved, rng or _RANDOM))
    if resolved["strict_example"]:
        _check(value, description)
    return value


def generate(
    schema: Any,
    num: int = 1000,
    seed: int | None = None,
    validate: bool = False,
    config: Mapping[str, Any] | None = None,
) -> list[Any]:
    """Generate a reproducible batch of examples.

    Args
    ----
    schema: Anything describe() accepts.
    num: The number of examples to return
    seed: Random number generator seed for reproducability. Example i uses seed + i.
    validate: Validate every example against schema.
    config: Configuration overrides. See exemplar.config.

    Returns
    -------
    list of examples.
    """
    start: int = randint(0, 2**31 - 1) if seed is None else abs(seed)
    _logger.info(f"Generating {num} examples with seed = {start}.")
    description: Description = describe(schema)
    resolved: GenerationConfig = resolve_config(config)
    data: list[Any] = []
    for index in range(num):
        # exrex draws from the global random module.
        random_seed(start + index)
        data.append(_generate(description, _Context(resolved, Random(start + index))))
        if validate or resolved["strict_example"]:
            _check(data[-1], description)
    return data
