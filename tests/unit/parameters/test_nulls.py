"""Tests for the None-to-NULL rewriting mode."""

from sqlfacade.parameters import nullify_parameters


def test_no_none_values_is_a_no_op() -> None:
    result = nullify_parameters("select * from t where a = ?", [1])

    assert result.sql == "select * from t where a = ?"
    assert result.params == [1]


def test_equality_becomes_is_null() -> None:
    result = nullify_parameters("SELECT * FROM t WHERE a = ? AND b = ?", [None, 2])

    assert result.params == [2]
    assert "A IS NULL" in result.sql.upper()
    assert "= NULL" not in result.sql.upper()
    assert result.sql.count("?") == 1


def test_inequality_becomes_not_is_null() -> None:
    result = nullify_parameters("SELECT * FROM t WHERE a <> ?", [None])

    assert result.params == []
    assert "NOT A IS NULL" in result.sql.upper()


def test_assignments_receive_null_literal() -> None:
    result = nullify_parameters("UPDATE t SET a = ? WHERE id = ?", [None, 5])

    assert result.params == [5]
    assert "SET A = NULL" in result.sql.upper()


def test_marker_count_mismatch_leaves_input_untouched() -> None:
    result = nullify_parameters("select * from t where a = ?", [None, None])

    assert result.sql == "select * from t where a = ?"
    assert result.params == [None, None]
