"""Tests for expression template compilation and expansion."""

from __future__ import annotations

import pytest

from relmap.exceptions import ArgumentCountError, TemplateSyntaxError
from relmap.query import Expression, expr, split_identifier
from relmap.query.expression import SlotKind

# -- Identifiers -------------------------------------------------------------


@pytest.mark.parametrize(
    ("dialect", "expected"),
    [
        ("mysql", "`t1`.`c1`=?"),
        ("postgres", '"t1"."c1"=$1'),
        ("sqlite", '"t1"."c1"=?'),
    ],
)
def test_qualified_identifier_per_dialect(dialect: str, expected: str):
    sql, args = expr("`t1.c1`=?", 1).expand(dialect)
    assert sql == expected
    assert args == [1]


def test_double_dot_is_literal_dot():
    sql, _ = expr("`t2..c2`").expand("mysql")
    assert sql == "`t2.c2`"


def test_doubled_back_quote_inside_identifier():
    assert expr("`a``b`").expand("mysql")[0] == "`a``b`"
    assert expr("`a``b`").expand("postgres")[0] == '"a`b"'


def test_double_quote_inside_identifier_is_escaped_for_postgres():
    assert expr('`say"hi`').expand("postgres")[0] == '"say""hi"'


def test_split_identifier():
    assert split_identifier("t1.c1") == ("t1", "c1")
    assert split_identifier("t2..c2") == ("t2.c2",)
    assert split_identifier("a.b.c") == ("a", "b", "c")
    assert split_identifier("a.") == ("a",)


# -- Literals ----------------------------------------------------------------


def test_doubled_marker_is_literal_question_mark():
    sql, args = expr("`a` = ?? OR `b` = ?", 2).expand("postgres")
    assert sql == '"a" = ? OR "b" = $1'
    assert args == [2]


def test_doubled_back_quote_outside_identifier_is_literal():
    sql, _ = expr("SELECT '``'").expand("mysql")
    assert sql == "SELECT '`'"


def test_percent_sign_passes_through():
    sql, args = expr("`name` LIKE 'a%' AND `x`=?", 1).expand("mysql")
    assert sql == "`name` LIKE 'a%' AND `x`=?"
    assert args == [1]


def test_plain_text_without_slots():
    assert expr("COUNT(*)").expand("sqlite") == ("COUNT(*)", [])


# -- Markers and nesting -------------------------------------------------------


@pytest.mark.parametrize("n", [0, 1, 2, 5])
def test_exact_argument_count_succeeds(n: int):
    template = "SELECT " + ",".join(["?"] * n) if n else "SELECT 1"
    e = Expression(template, *range(n))
    assert e.error is None
    sql, args = e.expand("postgres")
    assert args == list(range(n))
    assert sql.count("$") == n


def test_nested_expression_is_spliced_in_place():
    inner = expr("SELECT `b` FROM `t` WHERE `c`=?", 5)
    sql, args = expr("`a` IN (?) AND `d`=?", inner, 6).expand("postgres")
    assert sql == '"a" IN (SELECT "b" FROM "t" WHERE "c"=$1) AND "d"=$2'
    assert args == [5, 6]


def test_numbering_continues_across_nesting():
    sql, args = expr("? + ?", 1, expr("? * ?", 2, 3)).expand("postgres")
    assert sql == "$1 + $2 * $3"
    assert args == [1, 2, 3]


def test_slots_are_classified_at_parse_time():
    e = expr("`a`=? AND ?", 1, expr("TRUE"))
    assert [s.kind for s in e.slots] == [
        SlotKind.IDENTIFIER,
        SlotKind.MARKER,
        SlotKind.EXPRESSION,
    ]


def test_expansion_does_not_mutate_expression():
    e = expr("`a`=? AND `b`=?", 1, 2)
    first = e.expand("postgres")
    second = e.expand("postgres")
    assert first == second == ('"a"=$1 AND "b"=$2', [1, 2])
    assert e.expand("mysql") == ("`a`=? AND `b`=?", [1, 2])


def test_none_argument_is_a_value():
    sql, args = expr("`a`=?", None).expand("mysql")
    assert sql == "`a`=?"
    assert args == [None]


# -- Deferred errors -----------------------------------------------------------


def test_too_few_arguments_is_deferred():
    e = expr("`a`=? AND `b`=?", 1)
    assert isinstance(e.error, ArgumentCountError)
    assert "not enough" in str(e.error)
    with pytest.raises(ArgumentCountError):
        e.expand("mysql")


def test_too_many_arguments_is_deferred():
    e = expr("`a`=?", 1, 2)
    assert isinstance(e.error, ArgumentCountError)
    assert "too many" in str(e.error)
    with pytest.raises(ArgumentCountError):
        e.expand("postgres")


def test_unclosed_identifier():
    e = expr("`a = ?", 1)
    assert isinstance(e.error, TemplateSyntaxError)
    assert "back quote not closed" in str(e.error)


def test_empty_template():
    e = Expression("")
    assert isinstance(e.error, TemplateSyntaxError)
    with pytest.raises(TemplateSyntaxError, match="empty expression"):
        e.expand("sqlite")


def test_nested_error_surfaces_from_parent():
    parent = expr("`a` IN (?)", expr("SELECT ?"))
    assert isinstance(parent.error, ArgumentCountError)
    with pytest.raises(ArgumentCountError):
        parent.expand("mysql")
