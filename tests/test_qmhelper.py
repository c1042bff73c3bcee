import pytest

from boilquery.builders import where_clause
from boilquery.qmhelper import (
    Operator,
    WhereQueryMod,
    where,
    where_is_not_null,
    where_is_null,
    where_null_eq,
)
from boilquery.query import Dialect, Query


class _Nullable:
    def __init__(self, zero):
        self.zero = zero

    def is_zero(self):
        return self.zero


def _query():
    return Query(dialect=Dialect(use_index_placeholders=True))


def test_where_is_null_pins_format():
    assert where_is_null("deleted_at").clause == "deleted_at is null"
    assert where_is_null("deleted_at").args == []


def test_where_null_eq_with_none_matches_is_null():
    assert where_null_eq("col", False, None) == where_is_null("col")
    assert where_null_eq("col", True, None) == where_is_not_null("col")


def test_where_null_eq_with_zero_nullable():
    assert where_null_eq("col", False, _Nullable(True)) == where_is_null("col")
    assert where_null_eq("col", True, _Nullable(True)) == where_is_not_null("col")


def test_where_null_eq_with_value_matches_where():
    value = _Nullable(False)
    mod = where_null_eq("col", False, value)
    assert mod == where("col", Operator.EQ, value)
    assert mod.args == [value]


def test_where_null_eq_negated_with_value():
    mod = where_null_eq("col", True, 7)
    assert mod == where("col", Operator.NEQ, 7)
    assert mod.args == [7]


def test_where_is_not_null_contains_not():
    assert where_is_not_null("x").clause == "x is not null"


@pytest.mark.parametrize("op", list(Operator))
def test_where_operators(op):
    mod = where("col", op, 3)
    assert mod.clause == f"col {op.value} ?"
    assert mod.args == [3]


def test_where_accepts_string_operator():
    assert where("col", ">=", 1) == where("col", Operator.GTE, 1)


def test_where_rejects_unknown_operator():
    with pytest.raises(ValueError):
        where("col", "~~", 1)


def test_where_query_mod_apply():
    q = _query()
    WhereQueryMod("a=?", [1]).apply(q)
    WhereQueryMod("b=?", [2]).apply(q)
    assert where_clause(q, 1) == (" WHERE (a=$1) AND (b=$2)", [1, 2])