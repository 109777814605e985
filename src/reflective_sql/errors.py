"""Mapping error taxonomy shared by metadata extraction, SQL generation, and the engine."""

from __future__ import annotations


def _type_label(target: object) -> str:
    if isinstance(target, type):
        return target.__qualname__
    return type(target).__qualname__


class MappingError(RuntimeError):
    """Base class for reflective mapping failures."""


class MissingTableMetadata(MappingError):
    """Raised when a type carries no table designation."""

    def __init__(self, entity_type: object) -> None:
        self.entity_type = entity_type
        super().__init__(
            f"missing table designation on {_type_label(entity_type)}; decorate it with @table(...)"
        )


class NoPrimaryKeyDefined(MappingError):
    """Raised when a key-based operation targets a type without a primary key column."""

    def __init__(self, entity_type: object) -> None:
        self.entity_type = entity_type
        super().__init__(f"no primary key defined on {_type_label(entity_type)}")


class MissingKeyValue(MappingError):
    """Raised when a key-bearing operation is invoked with an unset key value."""

    def __init__(self, entity_type: object, field_name: str) -> None:
        self.entity_type = entity_type
        self.field_name = field_name
        super().__init__(
            f"primary key value is None for {_type_label(entity_type)}.{field_name}"
        )


class InvalidAutoIncrementSpec(MappingError):
    """Raised when AUTOINCREMENT is declared on anything but an INTEGER primary key."""

    def __init__(self, entity_type: object, field_name: str) -> None:
        self.entity_type = entity_type
        self.field_name = field_name
        super().__init__(
            "AUTOINCREMENT requires INTEGER PRIMARY KEY on "
            f"{_type_label(entity_type)}.{field_name}"
        )


class MultiplePrimaryKeysDefined(MappingError):
    """Raised when a type marks more than one column as primary key."""

    def __init__(self, entity_type: object, field_names: tuple[str, ...]) -> None:
        self.entity_type = entity_type
        self.field_names = field_names
        rendered = ", ".join(field_names)
        super().__init__(
            f"{_type_label(entity_type)} declares multiple primary key columns ({rendered}); "
            "only single-column keys are supported"
        )


class InvalidEntityDefinition(MappingError):
    """Raised when entity metadata cannot be mapped as declared."""


class TypeCoercionError(MappingError):
    """Raised when a stored value cannot be converted to its field's declared type."""

    def __init__(
        self,
        field_name: str,
        value: object,
        target_type: object,
        reason: str | None = None,
    ) -> None:
        self.field_name = field_name
        self.value = value
        self.target_type = target_type
        self.reason = reason
        target_label = getattr(target_type, "__qualname__", None) or repr(target_type)
        message = f"cannot coerce {value!r} to {target_label} for field {field_name!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


__all__ = [
    "InvalidAutoIncrementSpec",
    "InvalidEntityDefinition",
    "MappingError",
    "MissingKeyValue",
    "MissingTableMetadata",
    "MultiplePrimaryKeysDefined",
    "NoPrimaryKeyDefined",
    "TypeCoercionError",
]
