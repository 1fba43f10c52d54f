"""Parameter binding for prepared statements.

This module turns caller supplied parameters into the payload handed to the
native statement.

Components:
- ParameterStyle enum: Placeholder styles understood by SQLite
- ParameterInfo: One placeholder detected in SQL text
- ParameterProfile: Bind slots of a compiled statement
- ParameterValidator: Extracts placeholders from SQL text
- PositionalParameters / NamedParameters: Tagged parameter shapes
- bind_parameters: Validates, coerces and builds the native payload

Binding never touches the native statement, so every error raised here leaves
the statement untouched and the call can be retried with corrected values.
"""

import re
import threading
from collections import OrderedDict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from functools import singledispatch
from typing import TYPE_CHECKING, Any, Final, Optional, Union

from mypy_extensions import mypyc_attr

from sqlstep.exceptions import (
    ArityMismatchError,
    DuplicateParameterError,
    MissingParameterError,
    ParameterStyleMismatchError,
    UnknownParameterError,
    UnsupportedParameterTypeError,
)

if TYPE_CHECKING:
    from sqlstep.config import StatementConfig
    from sqlstep.typing import BindValue, NativePayload

__all__ = (
    "BindParameters",
    "NamedParameters",
    "ParameterInfo",
    "ParameterProfile",
    "ParameterStyle",
    "ParameterValidator",
    "PositionalParameters",
    "as_named",
    "as_positional",
    "bind_parameters",
    "coerce_parameter",
    "get_parameter_validator",
    "is_parameter_sequence",
    "normalize_parameters",
    "strip_marker",
)

NAMED_MARKERS: Final = (":", "@", "$")
SQLITE_MAX_INTEGER: Final = 2**63 - 1
SQLITE_MIN_INTEGER: Final = -(2**63)

_PARAMETER_REGEX = re.compile(
    r"""
    (?P<dquote>"(?:[^"]|"")*") |
    (?P<squote>'(?:[^']|'')*') |
    (?P<bracket>\[[^\]]*\]) |
    (?P<backtick>`(?:[^`]|``)*`) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*[\s\S]*?(?:\*/|\Z)) |
    (?P<numbered_qmark>\?(?P<qmark_num>\d+)) |
    (?P<qmark>\?) |
    (?P<named_colon>:(?P<colon_name>\w+)) |
    (?P<named_at>@(?P<at_name>\w+)) |
    (?P<named_dollar>\$(?P<dollar_name>\w+))
    """,
    re.VERBOSE | re.MULTILINE,
)

_SKIP_GROUPS: Final = ("dquote", "squote", "bracket", "backtick", "line_comment", "block_comment")


class ParameterStyle(str, Enum):
    """Parameter style enumeration.

    Supported parameter styles:
    - QMARK: ? placeholders
    - NUMBERED_QMARK: ?1, ?2 placeholders
    - NAMED_COLON: :name placeholders
    - NAMED_AT: @name placeholders
    - NAMED_DOLLAR: $name placeholders
    """

    QMARK = "qmark"
    NUMBERED_QMARK = "numbered_qmark"
    NAMED_COLON = "named_colon"
    NAMED_AT = "named_at"
    NAMED_DOLLAR = "named_dollar"

    def __str__(self) -> str:
        return self.value

    @property
    def is_named(self) -> bool:
        return self in {ParameterStyle.NAMED_COLON, ParameterStyle.NAMED_AT, ParameterStyle.NAMED_DOLLAR}


@mypyc_attr(allow_interpreted_subclasses=False)
class ParameterInfo:
    """Information about a detected parameter in SQL.

    Attributes:
        name: Placeholder name without its marker, or the index for ``?NNN``
        style: The parameter style
        position: Character offset in the SQL string
        ordinal: Order of appearance (0-indexed)
        placeholder_text: The original placeholder text
    """

    __slots__ = ("name", "ordinal", "placeholder_text", "position", "style")

    def __init__(
        self, name: Optional[str], style: ParameterStyle, position: int, ordinal: int, placeholder_text: str
    ) -> None:
        self.name = name
        self.style = style
        self.position = position
        self.ordinal = ordinal
        self.placeholder_text = placeholder_text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterInfo):
            return NotImplemented
        return (
            self.name == other.name
            and self.style == other.style
            and self.position == other.position
            and self.ordinal == other.ordinal
            and self.placeholder_text == other.placeholder_text
        )

    def __hash__(self) -> int:
        return hash((self.name, self.style, self.position, self.ordinal, self.placeholder_text))

    def __repr__(self) -> str:
        return (
            f"ParameterInfo(name={self.name!r}, style={self.style!r}, "
            f"position={self.position}, ordinal={self.ordinal}, placeholder_text={self.placeholder_text!r})"
        )


@dataclass(frozen=True)
class ParameterProfile:
    """Bind slots of one compiled statement.

    ``slot_count`` follows SQLite numbering: ``?`` takes the next free index,
    ``?NNN`` takes index ``NNN`` and every distinct name takes one slot.
    ``names`` lists distinct placeholder names in order of first appearance and
    is empty for statements that only use anonymous placeholders.
    """

    sql: str
    parameters: "tuple[ParameterInfo, ...]" = ()
    slot_count: int = 0
    names: "tuple[str, ...]" = ()

    @property
    def is_named(self) -> bool:
        return bool(self.names)

    @property
    def styles(self) -> "frozenset[ParameterStyle]":
        return frozenset(param.style for param in self.parameters)

    def null_payload(self) -> "NativePayload":
        """Payload binding NULL to every slot."""
        if self.is_named:
            return dict.fromkeys(self.names)
        return (None,) * self.slot_count


@mypyc_attr(allow_interpreted_subclasses=False)
class ParameterValidator:
    """Extracts placeholders from SQL text with a bounded LRU cache."""

    __slots__ = ("_cache_lock", "_cache_max_size", "_parameter_cache")

    def __init__(self, cache_max_size: int = 5000) -> None:
        self._parameter_cache: OrderedDict[str, tuple[ParameterInfo, ...]] = OrderedDict()
        self._cache_lock = threading.Lock()
        self._cache_max_size = cache_max_size

    def _extract_parameter_style(self, match: "re.Match[str]") -> "tuple[Optional[ParameterStyle], Optional[str]]":
        if match.group("qmark"):
            return ParameterStyle.QMARK, None
        if match.group("numbered_qmark"):
            return ParameterStyle.NUMBERED_QMARK, match.group("qmark_num")
        if match.group("named_colon"):
            return ParameterStyle.NAMED_COLON, match.group("colon_name")
        if match.group("named_at"):
            return ParameterStyle.NAMED_AT, match.group("at_name")
        if match.group("named_dollar"):
            return ParameterStyle.NAMED_DOLLAR, match.group("dollar_name")
        return None, None

    def extract_parameters(self, sql: str) -> "tuple[ParameterInfo, ...]":
        """Extract all parameters from SQL.

        Args:
            sql: SQL string to analyze

        Returns:
            ParameterInfo objects in order of appearance
        """
        with self._cache_lock:
            cached_result = self._parameter_cache.get(sql)
            if cached_result is not None:
                self._parameter_cache.move_to_end(sql)
                return cached_result

        parameters: list[ParameterInfo] = []
        if any(c in sql for c in ("?", ":", "@", "$")):
            ordinal = 0
            for match in _PARAMETER_REGEX.finditer(sql):
                if any(match.group(g) for g in _SKIP_GROUPS):
                    continue
                style, name = self._extract_parameter_style(match)
                if style is None:
                    continue
                parameters.append(
                    ParameterInfo(
                        name=name, style=style, position=match.start(), ordinal=ordinal, placeholder_text=match.group(0)
                    )
                )
                ordinal += 1

        result = tuple(parameters)
        with self._cache_lock:
            if sql not in self._parameter_cache and len(self._parameter_cache) >= self._cache_max_size:
                self._parameter_cache.popitem(last=False)
            self._parameter_cache[sql] = result
        return result

    def profile(self, sql: str) -> ParameterProfile:
        """Build the bind-slot profile for ``sql``.

        Raises:
            ParameterStyleMismatchError: The statement mixes anonymous and named placeholders.
        """
        parameters = self.extract_parameters(sql)
        named = [param for param in parameters if param.style.is_named]
        if named and len(named) != len(parameters):
            msg = "Statement mixes anonymous (?) and named placeholders"
            raise ParameterStyleMismatchError(msg, sql)

        if named:
            names = tuple(dict.fromkeys(param.name for param in named if param.name is not None))
            return ParameterProfile(sql=sql, parameters=parameters, slot_count=len(names), names=names)

        slot_count = 0
        for param in parameters:
            if param.style is ParameterStyle.NUMBERED_QMARK and param.name is not None:
                slot_count = max(slot_count, int(param.name))
            else:
                slot_count += 1
        return ParameterProfile(sql=sql, parameters=parameters, slot_count=slot_count)


_validator = ParameterValidator()


def get_parameter_validator() -> ParameterValidator:
    """Return the shared validator instance."""
    return _validator


# -- Tagged parameter shapes --
@dataclass(frozen=True)
class PositionalParameters:
    """Ordered values bound to slots 1..N."""

    values: "tuple[BindValue, ...]" = ()

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class NamedParameters:
    """Values bound by placeholder name."""

    values: "Mapping[str, BindValue]" = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.values)


BindParameters = Union[PositionalParameters, NamedParameters]


def is_parameter_sequence(obj: Any) -> bool:
    """Check whether ``obj`` is a sequence of parameters rather than a scalar."""
    return isinstance(obj, Sequence) and not isinstance(obj, (str, bytes, bytearray))


def normalize_parameters(*parameters: Any) -> BindParameters:
    """Build a tagged parameter shape from call arguments.

    Accepted forms: no arguments, variadic scalars, one sequence, one mapping,
    or one already built ``PositionalParameters``/``NamedParameters``.

    Raises:
        ParameterStyleMismatchError: A mapping is mixed with other arguments.
    """
    if len(parameters) == 1:
        only = parameters[0]
        if isinstance(only, (PositionalParameters, NamedParameters)):
            return only
        if isinstance(only, Mapping):
            return NamedParameters(dict(only))
        if is_parameter_sequence(only):
            return PositionalParameters(tuple(only))
    if any(isinstance(value, (Mapping, PositionalParameters, NamedParameters)) for value in parameters):
        msg = "Positional and named parameters cannot be mixed in one call"
        raise ParameterStyleMismatchError(msg)
    return PositionalParameters(tuple(parameters))


def as_positional(parameters: Any) -> PositionalParameters:
    """Accept positional input for array entry points."""
    if isinstance(parameters, PositionalParameters):
        return parameters
    if isinstance(parameters, (NamedParameters, Mapping)):
        msg = "Named parameters were passed to a positional entry point"
        raise ParameterStyleMismatchError(msg)
    if parameters is None:
        return PositionalParameters()
    if is_parameter_sequence(parameters):
        return PositionalParameters(tuple(parameters))
    msg = f"Positional parameters must be a sequence, got {type(parameters).__name__}"
    raise ParameterStyleMismatchError(msg)


def as_named(parameters: Any) -> NamedParameters:
    """Accept named input for object entry points."""
    if isinstance(parameters, NamedParameters):
        return parameters
    if isinstance(parameters, Mapping):
        return NamedParameters(dict(parameters))
    if parameters is None:
        return NamedParameters()
    msg = f"Named parameters must be a mapping, got {type(parameters).__name__}"
    raise ParameterStyleMismatchError(msg)


# -- Type coercion --
@singledispatch
def coerce_parameter(value: Any, key: "Union[int, str]" = 0) -> Any:
    """Coerce one value to a type the native binding API accepts.

    Args:
        value: Parameter value
        key: Slot ordinal or mapping key, used in error messages

    Raises:
        UnsupportedParameterTypeError: The value is not text, number, boolean or null.
    """
    msg = f"Unsupported type {type(value).__name__!r} for parameter {key!r}"
    raise UnsupportedParameterTypeError(msg)


@coerce_parameter.register(type(None))
def _(value: None, key: "Union[int, str]" = 0) -> None:
    return None


@coerce_parameter.register
def _(value: bool, key: "Union[int, str]" = 0) -> int:
    return int(value)


@coerce_parameter.register
def _(value: int, key: "Union[int, str]" = 0) -> int:
    if not SQLITE_MIN_INTEGER <= value <= SQLITE_MAX_INTEGER:
        msg = f"Integer {value} for parameter {key!r} does not fit in a signed 64-bit column"
        raise UnsupportedParameterTypeError(msg)
    return value


@coerce_parameter.register
def _(value: float, key: "Union[int, str]" = 0) -> float:
    return value


@coerce_parameter.register
def _(value: str, key: "Union[int, str]" = 0) -> str:
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        msg = f"Text for parameter {key!r} is not valid UTF-8: {exc.reason} at index {exc.start}"
        raise UnsupportedParameterTypeError(msg) from exc
    return value


def strip_marker(key: str) -> "tuple[str, bool]":
    """Split a mapping key into its bare name and whether it carried a marker."""
    if key and key[0] in NAMED_MARKERS:
        return key[1:], True
    return key, False


def _bind_positional(profile: ParameterProfile, values: "tuple[BindValue, ...]") -> "NativePayload":
    if len(values) != profile.slot_count:
        raise ArityMismatchError(profile.slot_count, len(values), profile.sql)
    coerced = tuple(coerce_parameter(value, index) for index, value in enumerate(values))
    if profile.is_named:
        return dict(zip(profile.names, coerced))
    return coerced


def _bind_named(
    profile: ParameterProfile, values: "Mapping[str, BindValue]", config: "StatementConfig"
) -> "NativePayload":
    payload: dict[str, Any] = dict.fromkeys(profile.names)
    seen: dict[str, str] = {}
    for key, value in values.items():
        if not isinstance(key, str):
            raise UnknownParameterError(repr(key), profile.sql)
        name, marked = strip_marker(key)
        if not name or (not marked and not config.allow_unmarked_names) or name not in payload:
            raise UnknownParameterError(key, profile.sql)
        if name in seen:
            msg = f"Parameter {key!r} resolves to the same placeholder as {seen[name]!r}"
            raise DuplicateParameterError(msg, profile.sql)
        seen[name] = key
        payload[name] = coerce_parameter(value, key)

    if config.strict_named_parameters:
        missing = [name for name in profile.names if name not in seen]
        if missing:
            msg = f"Missing value(s) for named parameter(s): {', '.join(missing)}"
            raise MissingParameterError(msg, profile.sql)

    if not profile.is_named:
        return profile.null_payload()
    return payload


def bind_parameters(
    profile: ParameterProfile, parameters: BindParameters, config: "StatementConfig"
) -> "NativePayload":
    """Validate and coerce parameters into the native binding payload.

    Positional values bind by ordinal. Named values bind by the name left after
    stripping one ``:``, ``@`` or ``$`` marker, so ``{"$v": 1}`` and ``{":v": 1}`` both
    bind ``$v``. A bare ``{"v": 1}`` is unknown unless ``config.allow_unmarked_names``
    is set. Declared names missing from the mapping bind NULL unless
    ``config.strict_named_parameters`` is set.

    Args:
        profile: Bind slots of the target statement
        parameters: Tagged parameter shape
        config: Statement configuration

    Returns:
        A tuple for anonymous placeholders or a name-keyed dict for named ones.
    """
    if isinstance(parameters, PositionalParameters):
        return _bind_positional(profile, parameters.values)
    return _bind_named(profile, parameters.values, config)
