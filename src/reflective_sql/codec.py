"""Value codec: native field values <-> values the store can represent.

Outbound conversion is thin; the store performs the final representation.
Inbound conversion is a typed coercion table keyed by target category. Each entry is a pure
function that either returns a value of the target type or raises; unknown targets fail
closed with ``TypeCoercionError``.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Final
from uuid import UUID

from reflective_sql.errors import TypeCoercionError

if TYPE_CHECKING:
    from reflective_sql.metadata.descriptors import ColumnDescriptor

Coercer = Callable[[object], object]

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final[_Unset] = _Unset()
"""Returned by :func:`decode_column` when the field should keep its default."""


def encode_value(value: object) -> object:
    """Convert a native value into a bindable parameter value."""

    if value is None:
        return None
    if isinstance(value, Enum):
        return encode_value(value.value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    return value


def decode_column(raw: object, column: ColumnDescriptor) -> object:
    """Convert a stored value for ``column``; ``UNSET`` means leave the field alone.

    A null marker becomes ``None`` for natively nullable fields. For non-nullable fields
    with a declared default the field is skipped so the default survives.
    """

    if raw is None:
        if column.native_nullable or not column.has_default:
            return None
        return UNSET
    return coerce_value(raw, column.value_type, field_name=column.field_name)


def coerce_value(raw: object, target_type: object, *, field_name: str) -> object:
    """Coerce a non-null stored value to ``target_type``."""

    if target_type is Any or target_type is object:
        return raw
    if isinstance(target_type, type) and issubclass(target_type, Enum):
        return _coerce_enum(raw, target_type, field_name=field_name)

    coercer, wrap = _lookup_coercer(target_type)
    if coercer is None:
        raise TypeCoercionError(
            field_name, raw, target_type, "no coercion is defined for this target type"
        )
    try:
        coerced = coercer(raw)
        if wrap:
            coerced = target_type(coerced)  # type: ignore[operator]
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise TypeCoercionError(field_name, raw, target_type, str(exc)) from exc
    return coerced


def _lookup_coercer(target_type: object) -> tuple[Coercer | None, bool]:
    exact = _COERCERS.get(target_type)  # type: ignore[call-overload]
    if exact is not None:
        return exact, False
    if not isinstance(target_type, type):
        return None, False
    for base, coercer in _COERCERS.items():
        if issubclass(target_type, base):
            return coercer, True
    return None, False


def _coerce_enum(raw: object, enum_type: type[Enum], *, field_name: str) -> Enum:
    # Relaxed policy: values outside the declared members are kept as pseudo-members.
    member_type = getattr(enum_type, "_member_type_", object)
    value = raw
    if member_type is not object and not isinstance(raw, member_type):
        value = coerce_value(raw, member_type, field_name=field_name)
    try:
        return enum_type(value)
    except ValueError:
        return _pseudo_member(enum_type, value, member_type)


def _pseudo_member(enum_type: type[Enum], value: object, member_type: type) -> Enum:
    # Same construction enum.Flag uses for undeclared bit combinations; registered
    # so every read of a value yields one member.
    if member_type is object:
        pseudo = object.__new__(enum_type)
    else:
        pseudo = member_type.__new__(enum_type, value)  # type: ignore[call-overload]
    pseudo._name_ = None
    pseudo._value_ = value
    return enum_type._value2member_map_.setdefault(value, pseudo)


def _unsupported(raw: object, expected: str) -> TypeError:
    return TypeError(f"{type(raw).__name__} is not convertible to {expected}")


def _to_int(raw: object) -> int:
    if isinstance(raw, int):
        return int(raw)
    if isinstance(raw, float):
        if not raw.is_integer():
            raise ValueError("float value has a fractional part")
        return int(raw)
    if isinstance(raw, Decimal):
        if raw != raw.to_integral_value():
            raise ValueError("decimal value has a fractional part")
        return int(raw)
    if isinstance(raw, str):
        return int(raw.strip())
    raise _unsupported(raw, "int")


def _to_float(raw: object) -> float:
    if isinstance(raw, (int, float, Decimal)):
        return float(raw)
    if isinstance(raw, str):
        return float(raw.strip())
    raise _unsupported(raw, "float")


def _to_str(raw: object) -> str:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (int, float, Decimal)):
        return str(raw)
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw).decode("utf-8")
    raise _unsupported(raw, "str")


def _to_bool(raw: object) -> bool:
    if isinstance(raw, (bool, int, float)):
        return bool(raw)
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in _BOOLEAN_TRUE:
            return True
        if lowered in _BOOLEAN_FALSE:
            return False
        raise ValueError(f"unrecognized boolean text {raw!r}")
    raise _unsupported(raw, "bool")


def _to_bytes(raw: object) -> bytes:
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw)
    if isinstance(raw, str):
        return raw.encode("utf-8")
    raise _unsupported(raw, "bytes")


def _to_decimal(raw: object) -> Decimal:
    if isinstance(raw, Decimal):
        return raw
    if isinstance(raw, bool):
        raise _unsupported(raw, "Decimal")
    if isinstance(raw, int):
        return Decimal(raw)
    if isinstance(raw, (float, str)):
        return Decimal(str(raw).strip())
    raise _unsupported(raw, "Decimal")


def _to_datetime(raw: object) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str):
        return datetime.fromisoformat(raw.strip())
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return datetime.fromtimestamp(raw, tz=UTC)
    raise _unsupported(raw, "datetime")


def _to_date(raw: object) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str):
        return date.fromisoformat(raw.strip())
    raise _unsupported(raw, "date")


def _to_time(raw: object) -> time:
    if isinstance(raw, time):
        return raw
    if isinstance(raw, str):
        return time.fromisoformat(raw.strip())
    raise _unsupported(raw, "time")


def _to_uuid(raw: object) -> UUID:
    if isinstance(raw, UUID):
        return raw
    if isinstance(raw, str):
        return UUID(raw.strip())
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return UUID(bytes=bytes(raw))
    raise _unsupported(raw, "UUID")


# Order matters for subclass lookups: bool before int, datetime before date.
_COERCERS: Final[dict[type, Coercer]] = {
    bool: _to_bool,
    int: _to_int,
    float: _to_float,
    str: _to_str,
    bytes: _to_bytes,
    Decimal: _to_decimal,
    datetime: _to_datetime,
    date: _to_date,
    time: _to_time,
    UUID: _to_uuid,
}


__all__ = [
    "UNSET",
    "coerce_value",
    "decode_column",
    "encode_value",
]
