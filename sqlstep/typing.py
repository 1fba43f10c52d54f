from collections.abc import Mapping, Sequence
from typing import Any, Union

from typing_extensions import TypeAlias

__all__ = (
    "ArrayRow",
    "BindValue",
    "NamedBindInput",
    "NativePayload",
    "ObjectRow",
    "PositionalBindInput",
    "Row",
    "SQLValue",
)

BindValue: TypeAlias = Union[str, int, float, bool, None]
"""Scalar accepted by the parameter binder."""

SQLValue: TypeAlias = Union[int, float, str, bytes, None]
"""Scalar produced by the native engine, one per SQLite storage class."""

PositionalBindInput: TypeAlias = Sequence[BindValue]
NamedBindInput: TypeAlias = Mapping[str, BindValue]

NativePayload: TypeAlias = Union[tuple[Any, ...], dict[str, Any]]
"""Binding payload handed to the native statement."""

ArrayRow: TypeAlias = tuple[SQLValue, ...]
ObjectRow: TypeAlias = dict[str, SQLValue]
Row: TypeAlias = Union[ArrayRow, ObjectRow]
