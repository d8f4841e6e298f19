"""The validation engine: Cerberus, extended with the rules exemplar generates for.

EntityValidator is a cerberus.Validator subclass. It adds these rules:

    length       Exact length of a sized value.
    greater      Exclusive lower bound of a number.
    less         Exclusive upper bound of a number.
    sign         'positive' or 'negative'.
    multiple     A number must be a multiple of the constraint.
    precision    Maximum number of decimal places.
    format       A named string format, see FORMATS.
    case         'upper' or 'lower'.
    truthy       Literals accepted (and generated) in place of True.
    falsy        Literals accepted (and generated) in place of False.
    encoding     Binary carried as a string in this encoding.
    timestamp    Date carried as a 'javascript' (ms) or 'unix' (s) number.
    date_format  Date carried as a string: 'iso', a strftime format or a list of them.
    arity        Exact number of required positional parameters of a function.
    minarity     Minimum arity.
    maxarity     Maximum arity.
    single       A list field may carry a single element instead of a list.
    instance_of  The value must be an instance of this class.
    when         Conditional rules: {'ref': field, 'is': rules, 'then': rules, 'otherwise': rules}.

It also adds the 'function' type and lets 'min' and 'max' take 'now' for dates.

Rules that change how a value is represented (e.g. a date carried as a number)
replace the Cerberus type check for the field. The rule itself checks the
representation.
"""
from __future__ import annotations

from base64 import b64decode
from binascii import Error as BinasciiError
from collections.abc import Callable, Mapping, Sequence, Set, Sized
from copy import deepcopy
from datetime import date, datetime, time
from inspect import Parameter, signature
from ipaddress import ip_address, ip_network
from logging import DEBUG, Logger, NullHandler, getLogger
from math import isclose
from re import fullmatch
from typing import Any, NamedTuple
from urllib.parse import urlparse
from uuid import UUID

from cerberus import SchemaError, TypeDefinition, Validator
from cerberus import errors as cerberus_errors

from .errors import ConfigurationError


_logger: Logger = getLogger(__name__)
_logger.addHandler(NullHandler())
_LOG_DEBUG: bool = _logger.isEnabledFor(DEBUG)

# A single rules set is validated as the only field of a document.
WRAPPED_FIELD: str = "value"

EMAIL_REGEX: str = r"[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)+"
HOSTNAME_REGEX: str = (
    r"(([a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9\-]*[a-zA-Z0-9])\.)*"
    r"([A-Za-z0-9]|[A-Za-z0-9][A-Za-z0-9\-]*[A-Za-z0-9])"
)
REPRESENTATION_RULES: frozenset[str] = frozenset(
    ("truthy", "falsy", "encoding", "timestamp", "date_format", "single", "instance_of")
)
VALIDATION_OPTIONS: frozenset[str] = frozenset(("abort_early", "strip_unknown"))


class Outcome(NamedTuple):
    """Result of a validation: error is None on success."""

    error: Any
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_uuid(text: str) -> bool:
    try:
        UUID(text)
    except ValueError:
        return False
    return True


def _is_isodate(text: str) -> bool:
    try:
        datetime.fromisoformat(text)
    except ValueError:
        return False
    return True


def _is_uri(text: str) -> bool:
    parts = urlparse(text)
    return bool(parts.scheme and parts.netloc)


def _is_luhn(text: str) -> bool:
    if not text.isdigit():
        return False
    total: int = 0
    for index, char in enumerate(reversed(text)):
        digit: int = int(char)
        if index % 2:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return not total % 10


def _ip_version(text: str) -> int | None:
    try:
        return (ip_network(text, strict=False) if "/" in text else ip_address(text)).version
    except ValueError:
        return None


FORMATS: dict[str, Callable[[str], bool]] = {
    "uuid": _is_uuid,
    "email": lambda text: fullmatch(EMAIL_REGEX, text) is not None,
    "isodate": _is_isodate,
    "hostname": lambda text: len(text) <= 255 and fullmatch(HOSTNAME_REGEX, text) is not None,
    "uri": _is_uri,
    "hex": lambda text: fullmatch(r"[a-fA-F0-9]+", text) is not None,
    "token": lambda text: fullmatch(r"[a-zA-Z0-9_]+", text) is not None,
    "alphanum": lambda text: fullmatch(r"[a-zA-Z0-9]+", text) is not None,
    "creditcard": _is_luhn,
    "ip": lambda text: _ip_version(text) is not None,
    "ipv4": lambda text: _ip_version(text) == 4,
    "ipv6": lambda text: _ip_version(text) == 6,
}


def decode_binary(text: str, encoding: str) -> bytes | None:
    """Decode binary carried as a string. None if text is not valid in the encoding."""
    try:
        if encoding == "hex":
            return bytes.fromhex(text)
        if encoding == "base64":
            return b64decode(text, validate=True)
        return text.encode(encoding)
    except (BinasciiError, UnicodeError, ValueError):
        return None


def parse_date(text: str, formats: str | Sequence[str]) -> datetime | None:
    """Parse text with the first matching format. 'iso' means ISO-8601."""
    for fmt in [formats] if isinstance(formats, str) else formats:
        try:
            return datetime.fromisoformat(text) if fmt == "iso" else datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def as_datetime(value: Any, rules: Mapping[str, Any] | None = None) -> datetime | None:
    """Interpret value as an instant, honouring the field's representation rules.

    Args
    ----
    value: A date, datetime, the token 'now', or a represented date (number or string).
    rules: The field's Cerberus rules. Used to read 'timestamp' and 'date_format'.

    Returns
    -------
    The instant or None if value cannot be interpreted.
    """
    rules = rules or {}
    if isinstance(value, str) and value == "now":
        return datetime.now()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if _is_number(value) and "timestamp" in rules:
        seconds: float = value / 1000 if rules["timestamp"] == "javascript" else value
        try:
            return datetime.fromtimestamp(seconds)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and "date_format" in rules:
        return parse_date(value, rules["date_format"])
    return None


def arity_of(function: Any) -> int | None:
    """Number of required positional parameters or None if there is no signature."""
    try:
        parameters = signature(function).parameters.values()
    except (TypeError, ValueError):
        return None
    return sum(
        1
        for parameter in parameters
        if parameter.kind in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)
        and parameter.default is Parameter.empty
    )


def reach(document: Any, path: str) -> tuple[bool, Any]:
    """Follow a dotted path through nested mappings.

    Returns
    -------
    (found, value) where value is None if not found.
    """
    current: Any = document
    for step in path.split("."):
        if not isinstance(current, Mapping) or step not in current:
            return (False, None)
        current = current[step]
    return (True, current)


def _is_temporal(bound: Any) -> bool:
    return isinstance(bound, date) or (isinstance(bound, str) and bound == "now")


def _is_multiple(value: int | float, base: int | float) -> bool:
    if isinstance(value, int) and isinstance(base, int):
        return not value % base
    quotient: float = value / base
    return isclose(quotient, round(quotient), rel_tol=1e-9, abs_tol=1e-9)


class EntityValidator(Validator):
    """Cerberus Validator with exemplar's additional rules and types."""

    types_mapping = Validator.types_mapping.copy()
    types_mapping["function"] = TypeDefinition("function", (Callable,), ())

    def _rules(self, field: Any) -> Mapping[str, Any]:
        rules = self.schema.get(field) if self.schema is not None else None
        return rules if isinstance(rules, Mapping) else {}

    def _sub_validator(self, rules: Mapping[str, Any] | str) -> Validator:
        return type(self)(
            {WRAPPED_FIELD: rules},
            rules_set_registry=self.rules_set_registry,
            schema_registry=self.schema_registry,
        )

    def _validate_type(self, data_type, field, value):
        if not REPRESENTATION_RULES.isdisjoint(self._rules(field)):
            return
        super()._validate_type(data_type, field, value)

    _validate_type.__doc__ = Validator._validate_type.__doc__

    def _validate_min(self, min_value, field, value):
        if _is_temporal(min_value):
            current = as_datetime(value, self._rules(field))
            bound = as_datetime(min_value)
            try:
                if current is not None and bound is not None and current < bound:
                    self._error(field, cerberus_errors.MIN_VALUE)
            except TypeError:
                pass
            return
        super()._validate_min(min_value, field, value)

    _validate_min.__doc__ = Validator._validate_min.__doc__

    def _validate_max(self, max_value, field, value):
        if _is_temporal(max_value):
            current = as_datetime(value, self._rules(field))
            bound = as_datetime(max_value)
            try:
                if current is not None and bound is not None and current > bound:
                    self._error(field, cerberus_errors.MAX_VALUE)
            except TypeError:
                pass
            return
        super()._validate_max(max_value, field, value)

    _validate_max.__doc__ = Validator._validate_max.__doc__

    def _validate_length(self, length, field, value):
        """{'type': 'integer', 'min': 0}"""
        if isinstance(value, Sized) and len(value) != length:
            self._error(field, f"length must be {length}")

    def _validate_greater(self, limit, field, value):
        """{'type': 'number'}"""
        if _is_number(value) and not value > limit:
            self._error(field, f"must be greater than {limit}")

    def _validate_less(self, limit, field, value):
        """{'type': 'number'}"""
        if _is_number(value) and not value < limit:
            self._error(field, f"must be less than {limit}")

    def _validate_sign(self, sign, field, value):
        """{'type': 'string', 'allowed': ['positive', 'negative']}"""
        if _is_number(value) and not (value > 0 if sign == "positive" else value < 0):
            self._error(field, f"must be a {sign} number")

    def _validate_multiple(self, base, field, value):
        """{'type': 'number'}"""
        if _is_number(value) and (not base or not _is_multiple(value, base)):
            self._error(field, f"must be a multiple of {base}")

    def _validate_precision(self, places, field, value):
        """{'type': 'integer', 'min': 0}"""
        if _is_number(value) and round(value, places) != value:
            self._error(field, f"must have no more than {places} decimal places")

    def _validate_format(self, fmt, field, value):
        """Check a named string format.

        The rule's arguments are validated against this schema:
        {'type': 'string', 'allowed': ['uuid', 'email', 'isodate', 'hostname', 'uri', 'hex',
                                       'token', 'alphanum', 'creditcard', 'ip', 'ipv4', 'ipv6']}
        """
        if isinstance(value, str) and not FORMATS[fmt](value):
            self._error(field, f"value is not a valid '{fmt}'")

    def _validate_case(self, case, field, value):
        """{'type': 'string', 'allowed': ['upper', 'lower']}"""
        if isinstance(value, str) and value != (value.upper() if case == "upper" else value.lower()):
            self._error(field, f"must be {case} case")

    def _check_boolean_literal(self, field: Any, value: Any) -> None:
        rules = self._rules(field)
        literals: list[Any] = [*rules.get("truthy", ()), *rules.get("falsy", ())]
        if not isinstance(value, bool) and value not in literals:
            self._error(field, f"must be a boolean or one of {literals}")

    def _validate_truthy(self, truthy, field, value):
        """{'type': 'list'}"""
        self._check_boolean_literal(field, value)

    def _validate_falsy(self, falsy, field, value):
        """{'type': 'list'}"""
        if "truthy" not in self._rules(field):
            self._check_boolean_literal(field, value)

    def _validate_encoding(self, encoding, field, value):
        """{'type': 'string', 'allowed': ['utf8', 'ascii', 'latin1', 'hex', 'base64']}"""
        if isinstance(value, (bytes, bytearray)):
            return
        if not isinstance(value, str) or decode_binary(value, encoding) is None:
            self._error(field, f"must be binary encoded as '{encoding}'")

    def _validate_timestamp(self, kind, field, value):
        """{'type': 'string', 'allowed': ['javascript', 'unix']}"""
        if not (_is_number(value) or isinstance(value, date)):
            self._error(field, f"must be a {kind} timestamp")

    def _validate_date_format(self, formats, field, value):
        """{'type': ['string', 'list']}"""
        if isinstance(value, date):
            return
        if not isinstance(value, str) or parse_date(value, formats) is None:
            self._error(field, f"must be a date formatted as {formats}")

    def _validate_arity(self, arity, field, value):
        """{'type': 'integer', 'min': 0}"""
        count = arity_of(value)
        if count is not None and count != arity:
            self._error(field, f"must have an arity of {arity}")

    def _validate_minarity(self, minarity, field, value):
        """{'type': 'integer', 'min': 0}"""
        count = arity_of(value)
        if count is not None and count < minarity:
            self._error(field, f"must have an arity of at least {minarity}")

    def _validate_maxarity(self, maxarity, field, value):
        """{'type': 'integer', 'min': 0}"""
        count = arity_of(value)
        if count is not None and count > maxarity:
            self._error(field, f"must have an arity of at most {maxarity}")

    def _validate_single(self, single, field, value):
        """{'type': 'boolean'}"""
        if isinstance(value, (Sequence, Set)) and not isinstance(value, (str, bytes, bytearray)):
            return
        rules = self._rules(field)
        if not single:
            if "type" in rules:
                self._error(field, cerberus_errors.BAD_TYPE)
            else:
                self._error(field, "must be a list")
            return
        item_rules = rules.get("schema")
        if item_rules is not None:
            checker = self._sub_validator(item_rules)
            if not checker.validate({WRAPPED_FIELD: value}):
                self._error(field, f"single item is invalid: {checker.errors[WRAPPED_FIELD]}")

    def _validate_instance_of(self, cls, field, value):
        """{'nullable': False}"""
        if not isinstance(value, cls):
            self._error(field, f"must be an instance of {getattr(cls, '__name__', cls)}")

    def _validate_when(self, when, field, value):
        """Apply 'then' rules if the referenced field satisfies 'is', else 'otherwise' rules.

        A 'ref' starting with '^' is looked up from the root document.

        The rule's arguments are validated against this schema:
        {'type': 'dict'}
        """
        ref: str = when.get("ref", "")
        document = self.root_document if ref.startswith("^") else self.document
        found, driver = reach(document, ref.lstrip("^"))
        satisfied: bool = found and satisfies(driver, when.get("is", {}), type(self))
        branch = when.get("then") if satisfied else when.get("otherwise")
        if branch is None:
            return
        checker = self._sub_validator(branch)
        if not checker.validate({WRAPPED_FIELD: value}):
            self._error(
                field,
                f"does not satisfy the '{'then' if satisfied else 'otherwise'}' rules of '{ref}': "
                f"{checker.errors[WRAPPED_FIELD]}",
            )


def _is_rule(key: Any, validator_class: type[Validator]) -> bool:
    if key in validator_class.rules:
        return True
    operator, _, rule = str(key).partition("_")
    return operator in ("allof", "anyof", "noneof", "oneof") and rule in validator_class.rules


def is_rules_set(schema: Mapping[str, Any], validator_class: type[Validator] = EntityValidator) -> bool:
    """True if schema is the rules of a single field rather than a document schema.

    A 'type' key with a string or list value marks a rules set. Otherwise every key must
    be a rule of validator_class and not every value may be a mapping.
    """
    if isinstance(schema.get("type"), (str, list, tuple)):
        return True
    return (
        bool(schema)
        and all(_is_rule(key, validator_class) for key in schema)
        and not all(isinstance(value, Mapping) for value in schema.values())
    )


def build_validator(
    schema: Validator | Mapping[str, Any],
    validator_class: type[Validator] | None = None,
    rules_set: bool | None = None,
) -> tuple[Validator, bool]:
    """Create a validator for schema.

    Args
    ----
    schema: A Cerberus Validator (copied, never mutated), a document schema or a rules set.
    validator_class: Class used for mappings. Defaults to EntityValidator.
    rules_set: True if schema is a rules set, None to detect.

    Returns
    -------
    (validator, wrapped) wrapped is True if documents must be wrapped as {WRAPPED_FIELD: value}.
    """
    if isinstance(schema, Validator):
        return (deepcopy(schema), False)
    if not isinstance(schema, Mapping):
        raise ConfigurationError(f"A Cerberus schema must be a mapping not {type(schema).__name__}.")
    validator_class = validator_class or EntityValidator
    if rules_set is None:
        rules_set = is_rules_set(schema, validator_class)
    try:
        validator = validator_class({WRAPPED_FIELD: schema} if rules_set else schema)
    except SchemaError as exc:
        raise ConfigurationError(f"Invalid Cerberus schema: {exc}") from exc
    return (validator, rules_set)


def satisfies(value: Any, rules: Mapping[str, Any] | str, validator_class: type[Validator] | None = None) -> bool:
    """True if value is valid against the rules of a single field."""
    validator, _ = build_validator({WRAPPED_FIELD: rules}, validator_class, False)
    return validator.validate({WRAPPED_FIELD: value})


def validate(
    value: Any,
    schema: Validator | Mapping[str, Any],
    options: Mapping[str, Any] | None = None,
    validator_class: type[Validator] | None = None,
    rules_set: bool | None = None,
) -> Outcome:
    """Validate value against schema with Cerberus.

    Args
    ----
    value: The document (or single value if schema is a rules set).
    schema: See build_validator().
    options: 'abort_early' keeps only the first failing field. 'strip_unknown' purges unknown fields.
    validator_class: See build_validator().
    rules_set: See build_validator().

    Returns
    -------
    Outcome(error, value): error is the Cerberus error mapping (None on success) and value the
    normalized document.
    """
    options = dict(options or {})
    if not VALIDATION_OPTIONS.issuperset(options):
        raise ConfigurationError(f"Unknown validation options {sorted(set(options) - VALIDATION_OPTIONS)}.")
    validator, wrapped = build_validator(schema, validator_class, rules_set)
    if options.get("strip_unknown"):
        validator.purge_unknown = True
    document = {WRAPPED_FIELD: value} if wrapped else value
    if not isinstance(document, Mapping):
        return Outcome({"document": ["must be of dict type"]}, value)
    valid: bool = validator.validate(document)
    normalized: Any = validator.document
    error: Any = validator.errors
    if wrapped:
        normalized = normalized.get(WRAPPED_FIELD) if normalized is not None else None
        error = error.get(WRAPPED_FIELD)
    if valid:
        return Outcome(None, normalized)
    if options.get("abort_early") and isinstance(error, Mapping) and error:
        first = next(iter(error))
        error = {first: error[first]}
    if _LOG_DEBUG:
        _logger.debug(f"Validation failed: {error}")
    return Outcome(error, normalized)
