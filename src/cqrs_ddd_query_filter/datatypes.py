"""
Filterable data types and safe value coercion.

Every filterable field resolves to a :class:`DataType`. Raw client
arguments are strings; :func:`coerce` turns them into bound-parameter
values for a given type, or reports failure so the owning clause can be
dropped.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from sqlalchemy import types as sqltypes


class DataType(str, Enum):
    """Supported data types. Array variants carry a ``[]`` suffix."""

    TEXT = "text"
    TEXT_ARRAY = "text[]"

    ENUM = "enum"
    ENUM_ARRAY = "enum[]"

    BOOL = "bool"
    BOOL_ARRAY = "bool[]"

    INT8 = "int8"
    INT8_ARRAY = "int8[]"
    INT16 = "int16"
    INT16_ARRAY = "int16[]"
    INT32 = "int32"
    INT32_ARRAY = "int32[]"
    INT64 = "int64"
    INT64_ARRAY = "int64[]"

    UINT8 = "uint8"
    UINT8_ARRAY = "uint8[]"
    UINT16 = "uint16"
    UINT16_ARRAY = "uint16[]"
    UINT32 = "uint32"
    UINT32_ARRAY = "uint32[]"
    UINT64 = "uint64"
    UINT64_ARRAY = "uint64[]"

    FLOAT32 = "float32"
    FLOAT32_ARRAY = "float32[]"
    FLOAT64 = "float64"
    FLOAT64_ARRAY = "float64[]"

    TIME = "time"
    TIME_ARRAY = "time[]"

    UNSUPPORTED = "-"

    @property
    def is_array(self) -> bool:
        return self.value.endswith("[]")

    @property
    def element(self) -> DataType:
        """Scalar variant of an array type (identity for scalars)."""
        if self.is_array:
            return DataType(self.value[:-2])
        return self

    @property
    def array(self) -> DataType:
        """Array variant of a scalar type."""
        if self.is_array or self is DataType.UNSUPPORTED:
            return self
        return DataType(self.value + "[]")

    @property
    def is_text(self) -> bool:
        return self.element is DataType.TEXT

    @property
    def is_text_like(self) -> bool:
        """Text or enum labels; both support substring matching."""
        return self.element in (DataType.TEXT, DataType.ENUM)

    @property
    def is_numeric(self) -> bool:
        kind = self.element
        return kind in _INT_BITS or kind in _UINT_BITS or kind in _FLOAT_BITS

    @property
    def is_time(self) -> bool:
        return self.element is DataType.TIME

    @property
    def is_orderable(self) -> bool:
        """Scalar types with a meaningful ``<`` / ``>``."""
        return not self.is_array and (self.is_numeric or self.is_time or self.is_text)


_INT_BITS: dict[DataType, int] = {
    DataType.INT8: 8,
    DataType.INT16: 16,
    DataType.INT32: 32,
    DataType.INT64: 64,
}
_UINT_BITS: dict[DataType, int] = {
    DataType.UINT8: 8,
    DataType.UINT16: 16,
    DataType.UINT32: 32,
    DataType.UINT64: 64,
}
_FLOAT_BITS: dict[DataType, int] = {
    DataType.FLOAT32: 32,
    DataType.FLOAT64: 64,
}

_TRUE_LITERALS = frozenset({"1", "on", "true", "yes"})
_FALSE_LITERALS = frozenset({"0", "off", "false", "no"})

_INT_RE = re.compile(r"^[+-]?\d+$")
_UINT_RE = re.compile(r"^\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_FLOAT_SPECIAL_RE = re.compile(r"^[+-]?(?:inf|infinity|nan)$", re.IGNORECASE)
_FLOAT32_MAX = 3.4028234663852886e38

_RFC3339_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(Z|[+-]\d{2}:\d{2})$"
)
_RFC3339_NANO_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})\.(\d{1,9})"
    r"(Z|[+-]\d{2}:\d{2})$"
)
_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def coerce(
    value: str,
    data_type: DataType,
    choices: Iterable[str] | None = None,
) -> tuple[Any, bool]:
    """
    Convert a raw string argument to a value safe to bind for *data_type*.

    Array types coerce like their element type. ``choices`` restricts
    enum values to known labels. Time values are validated against
    :data:`TIME_FORMATS` and returned unchanged; see :func:`adapt_time`.

    Returns:
        ``(value, True)`` on success, ``(None, False)`` otherwise.
    """
    kind = data_type.element
    if kind is DataType.TEXT:
        return value, True
    if kind is DataType.ENUM:
        if choices is not None and value not in choices:
            return None, False
        return value, True
    if kind is DataType.BOOL:
        if value in _TRUE_LITERALS:
            return True, True
        if value in _FALSE_LITERALS:
            return False, True
        return None, False
    if kind in _INT_BITS:
        return _parse_int(value, _INT_BITS[kind])
    if kind in _UINT_BITS:
        return _parse_uint(value, _UINT_BITS[kind])
    if kind in _FLOAT_BITS:
        return _parse_float(value, _FLOAT_BITS[kind])
    if kind is DataType.TIME:
        if parse_time(value) is None:
            return None, False
        return value, True
    return None, False


def coerce_all(
    values: Iterable[str],
    data_type: DataType,
    choices: Iterable[str] | None = None,
) -> tuple[list[Any], bool]:
    """Coerce every value; fail as a whole if any single value fails."""
    allowed = frozenset(choices) if choices is not None else None
    result: list[Any] = []
    for raw in values:
        typed, ok = coerce(raw, data_type, allowed)
        if not ok:
            return [], False
        result.append(typed)
    return result, True


def _parse_int(value: str, bits: int) -> tuple[int | None, bool]:
    if not _INT_RE.match(value):
        return None, False
    number = int(value)
    limit = 1 << (bits - 1)
    if not -limit <= number < limit:
        return None, False
    return number, True


def _parse_uint(value: str, bits: int) -> tuple[int | None, bool]:
    if not _UINT_RE.match(value):
        return None, False
    number = int(value)
    if number >= 1 << bits:
        return None, False
    return number, True


def _parse_float(value: str, bits: int) -> tuple[float | None, bool]:
    special = bool(_FLOAT_SPECIAL_RE.match(value))
    if not special and not _FLOAT_RE.match(value):
        return None, False
    number = float(value)
    if math.isinf(number) and not special:
        return None, False
    if bits == 32 and math.isfinite(number) and abs(number) > _FLOAT32_MAX:
        return None, False
    return number, True


def _offset(token: str) -> timezone:
    if token == "Z":
        return timezone.utc
    sign = -1 if token[0] == "-" else 1
    hours, minutes = int(token[1:3]), int(token[4:6])
    if minutes >= 60:
        raise ValueError("offset minutes out of range")
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def _parse_rfc3339(value: str) -> datetime | None:
    match = _RFC3339_RE.match(value)
    if match is None:
        return None
    y, mo, d, h, mi, s, tz = match.groups()
    return datetime(
        int(y), int(mo), int(d), int(h), int(mi), int(s), tzinfo=_offset(tz)
    )


def _parse_rfc3339_nano(value: str) -> datetime | None:
    match = _RFC3339_NANO_RE.match(value)
    if match is None:
        return None
    y, mo, d, h, mi, s, frac, tz = match.groups()
    micro = int(frac[:6].ljust(6, "0"))
    return datetime(
        int(y), int(mo), int(d), int(h), int(mi), int(s), micro, tzinfo=_offset(tz)
    )


def _parse_datetime(value: str) -> datetime | None:
    if not _DATETIME_RE.match(value):
        return None
    return datetime.strptime(value, "%Y-%m-%d %H:%M:%S")


def _parse_date(value: str) -> datetime | None:
    if not _DATE_RE.match(value):
        return None
    return datetime.strptime(value, "%Y-%m-%d")


# Tried in order; the first format that parses wins.
TIME_FORMATS = (
    ("RFC3339", _parse_rfc3339),
    ("RFC3339Nano", _parse_rfc3339_nano),
    ("YYYY-MM-DD HH:MM:SS", _parse_datetime),
    ("YYYY-MM-DD", _parse_date),
)


def parse_time(value: str) -> datetime | None:
    """Validate *value* against :data:`TIME_FORMATS`; ``None`` if none match."""
    for _name, parser in TIME_FORMATS:
        try:
            parsed = parser(value)
        except ValueError:
            continue
        if parsed is not None:
            return parsed
    return None


def adapt_time(value: str, type_: sqltypes.TypeEngine[Any] | None) -> Any:
    """
    Bind form of a validated time string for a column of *type_*.

    ``DateTime`` and ``Date`` storage receives the parsed value; any other
    storage (text columns typed as time) compares against the string as
    sent.
    """
    if type_ is None:
        return value
    type_ = _unwrap(type_)
    if isinstance(type_, sqltypes.ARRAY):
        type_ = _unwrap(type_.item_type)
    if isinstance(type_, sqltypes.DateTime):
        return parse_time(value)
    if isinstance(type_, sqltypes.Date):
        parsed = parse_time(value)
        return parsed.date() if parsed is not None else None
    return value


# ---------------------------------------------------------------------------
# Inference from SQLAlchemy column types
# ---------------------------------------------------------------------------


def infer_data_type(column: Any) -> DataType:
    """
    Resolve the data type of a mapped column.

    ``column.info["filter_type"]`` wins when present; an unknown value
    there makes the field unsupported. Otherwise the type is inferred
    from the column's SQLAlchemy type.
    """
    info = getattr(column, "info", None) or {}
    override = info.get("filter_type")
    if override is not None:
        try:
            return DataType(str(override).lower())
        except ValueError:
            return DataType.UNSUPPORTED
    return data_type_for(column.type)


def data_type_for(type_: sqltypes.TypeEngine[Any]) -> DataType:
    type_ = _unwrap(type_)
    if isinstance(type_, sqltypes.ARRAY):
        item = _scalar_data_type(_unwrap(type_.item_type))
        return item.array
    return _scalar_data_type(type_)


def _unwrap(type_: sqltypes.TypeEngine[Any]) -> sqltypes.TypeEngine[Any]:
    while isinstance(type_, sqltypes.TypeDecorator):
        impl = type_.impl
        type_ = impl() if isinstance(impl, type) else impl
    return type_


def _scalar_data_type(type_: sqltypes.TypeEngine[Any]) -> DataType:
    # Enum subclasses String and must be checked first.
    if isinstance(type_, sqltypes.Enum):
        return DataType.ENUM
    if isinstance(type_, sqltypes.Boolean):
        return DataType.BOOL
    if isinstance(type_, sqltypes.Integer):
        bits = _integer_bits(type_)
        table = _UINT_BITS if getattr(type_, "unsigned", False) else _INT_BITS
        return next(dt for dt, size in table.items() if size == bits)
    if isinstance(type_, sqltypes.Float):
        precision = type_.precision
        if isinstance(type_, sqltypes.REAL) or (
            precision is not None and precision <= 24
        ):
            return DataType.FLOAT32
        return DataType.FLOAT64
    if isinstance(type_, sqltypes.Numeric):
        return DataType.FLOAT64
    if isinstance(type_, (sqltypes.DateTime, sqltypes.Date)):
        return DataType.TIME
    if isinstance(type_, sqltypes.String):
        return DataType.TEXT
    return DataType.UNSUPPORTED


def _integer_bits(type_: sqltypes.Integer) -> int:
    if isinstance(type_, sqltypes.BigInteger):
        return 64
    if isinstance(type_, sqltypes.SmallInteger):
        return 16
    if getattr(type_, "__visit_name__", "").upper() == "TINYINT":
        return 8
    return 32


def sqlalchemy_type(data_type: DataType) -> sqltypes.TypeEngine[Any]:
    """SQLAlchemy type used to bind values against a computed expression."""
    if data_type is DataType.UNSUPPORTED:
        return sqltypes.NullType()
    if data_type.is_array:
        return sqltypes.ARRAY(sqlalchemy_type(data_type.element))
    if data_type in (DataType.TEXT, DataType.ENUM):
        return sqltypes.String()
    if data_type is DataType.BOOL:
        return sqltypes.Boolean()
    if data_type in (DataType.INT64, DataType.UINT32, DataType.UINT64):
        return sqltypes.BigInteger()
    if data_type in _INT_BITS or data_type in _UINT_BITS:
        return sqltypes.Integer()
    if data_type in _FLOAT_BITS:
        return sqltypes.Float()
    return sqltypes.DateTime()
