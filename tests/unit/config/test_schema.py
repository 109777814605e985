"""Config schema validation and merge semantics."""

from __future__ import annotations

import pytest

from reflective_sql.config import (
    CONFIG_FIELDS,
    DEFAULT_CONFIG,
    ConfigValidationError,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)


def test_defaults_are_valid_and_copied() -> None:
    config = default_config()

    assert validate_config(config).is_valid
    config["store"]["path"] = "elsewhere.sqlite3"
    assert DEFAULT_CONFIG["store"]["path"] == "state/reflective.sqlite3"


def test_merge_is_deep_and_leaves_inputs_untouched() -> None:
    base = default_config()
    overlay = {"store": {"journal_mode": "delete"}}

    merged = merge_config(base, overlay)

    assert merged["store"]["journal_mode"] == "delete"
    assert merged["store"]["busy_timeout_ms"] == 5_000
    assert base["store"]["journal_mode"] == "wal"


def test_values_are_normalized() -> None:
    config = merge_config(
        default_config(),
        {"store": {"journal_mode": " WAL "}, "observability": {"log_level": "warning"}},
    )

    validated = assert_valid_config(config)

    assert validated["store"]["journal_mode"] == "wal"
    assert validated["observability"]["log_level"] == "WARNING"


@pytest.mark.parametrize(
    ("overlay", "path", "message"),
    [
        ({"store": {"busy_timeout_ms": "fast"}}, "store.busy_timeout_ms", "expected integer"),
        ({"store": {"busy_timeout_ms": True}}, "store.busy_timeout_ms", "expected integer"),
        ({"store": {"busy_retry_backoff_ms": -1}}, "store.busy_retry_backoff_ms", "must be >= 0"),
        ({"store": {"foreign_keys": "yes"}}, "store.foreign_keys", "expected boolean"),
        ({"store": {"path": "   "}}, "store.path", "must not be empty"),
        ({"observability": {"log_level": "LOUD"}}, "observability.log_level", "invalid value"),
        ({"cache": {}}, "cache", "unknown field"),
    ],
)
def test_invalid_fields_are_reported_by_path(
    overlay: dict[str, object], path: str, message: str
) -> None:
    result = validate_config(merge_config(default_config(), overlay))

    assert result.config is None
    assert [(issue.path, issue.message.startswith(message)) for issue in result.issues] == [
        (path, True)
    ]


def test_missing_sections_and_fields_are_required() -> None:
    result = validate_config({"store": {"path": ":memory:"}})

    reported = {issue.path: issue.message for issue in result.issues}
    assert reported["observability"] == "missing required field"
    assert reported["store.journal_mode"] == "missing required field"


def test_non_mapping_root_is_rejected() -> None:
    with pytest.raises(ConfigValidationError, match="expected object"):
        assert_valid_config(["store"])


def test_field_table_follows_section_declarations() -> None:
    kinds = {field.dotted: (field.kind, field.choices) for field in CONFIG_FIELDS}

    assert list(kinds) == [f"store.{key}" for key in DEFAULT_CONFIG["store"]] + [
        f"observability.{key}" for key in DEFAULT_CONFIG["observability"]
    ]
    assert kinds["store.path"] == ("path", ())
    assert kinds["store.foreign_keys"] == ("bool", ())
    assert kinds["store.busy_retry_limit"] == ("int", ())
    assert kinds["store.journal_mode"] == ("choice", ("wal", "delete", "truncate", "memory"))
    assert kinds["observability.log_level"][0] == "choice"


def test_section_must_be_a_mapping() -> None:
    result = validate_config(merge_config(default_config(), {"store": "memory"}))

    assert [(issue.path, issue.message) for issue in result.issues] == [
        ("store", "expected object, got str")
    ]
