"""Tests for dialect lookup, quoting and placeholder numbering."""

from __future__ import annotations

import pytest

from relmap.exceptions import DialectNotFoundError
from relmap.query import MYSQL, POSTGRES, SQLITE, Dialect, expr, get_dialect
from relmap.query.dialects import register_dialect


@pytest.mark.parametrize(
    ("name", "dialect"),
    [("mysql", MYSQL), ("postgres", POSTGRES), ("sqlite", SQLITE), ("MySQL", MYSQL)],
)
def test_lookup_by_name(name: str, dialect: Dialect):
    assert get_dialect(name) is dialect


def test_instances_pass_through():
    assert get_dialect(POSTGRES) is POSTGRES


def test_unknown_dialect_suggests_close_match():
    with pytest.raises(DialectNotFoundError) as exc_info:
        get_dialect("postgress")
    err = exc_info.value
    assert "postgres" in err.suggestions
    d = err.to_dict()
    assert d["error"] == "DIALECT_NOT_FOUND"
    assert d["dialect"] == "postgress"


@pytest.mark.parametrize("value", [None, 3, b"mysql"])
def test_non_string_dialect_is_not_found(value: object):
    with pytest.raises(DialectNotFoundError) as exc_info:
        get_dialect(value)  # type: ignore[arg-type]
    assert exc_info.value.name == repr(value)
    with pytest.raises(DialectNotFoundError):
        expr("`a`=?", 1).expand(value)  # type: ignore[arg-type]


def test_quote_identifier_doubles_quote_char():
    assert MYSQL.quote_identifier("a`b") == "`a``b`"
    assert POSTGRES.quote_identifier('a"b') == '"a""b"'
    assert SQLITE.quote_identifier("plain") == '"plain"'


def test_starter_numbers_placeholders():
    starter = POSTGRES.start()
    assert [starter.next_marker() for _ in range(3)] == ["$1", "$2", "$3"]
    assert starter.position == 3
    assert starter.driver_name == "postgres"


def test_each_starter_counts_from_one():
    first = POSTGRES.start()
    first.next_marker()
    second = POSTGRES.start()
    assert second.next_marker() == "$1"


def test_fixed_marker_dialects():
    starter = MYSQL.start()
    assert starter.next_marker() == "?"
    assert starter.next_marker() == "?"
    assert starter.position == 2


def test_dialects_are_immutable():
    with pytest.raises(AttributeError):
        MYSQL.quote_char = '"'  # type: ignore[misc]


def test_register_custom_dialect():
    oracle = Dialect(name="oracle", quote_char='"', marker=":", numbered=True)
    register_dialect(oracle)
    assert get_dialect("oracle") is oracle
    sql, args = expr("`a`=? AND `b`=?", 1, 2).expand("oracle")
    assert sql == '"a"=:1 AND "b"=:2'
    assert args == [1, 2]
