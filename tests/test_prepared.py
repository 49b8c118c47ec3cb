"""
Tests for placeholder rewriting.
"""

import pytest

from sql_compat.prepared import count_placeholders, replace_named_placeholders, to_prepared_sql


class TestReplaceNamedPlaceholders:
    def test_replaces_in_order(self):
        sql = "SELECT * FROM t WHERE a = #{a} AND b = #{b,jdbcType=INTEGER}"
        assert replace_named_placeholders(sql) == "SELECT * FROM t WHERE a = ? AND b = ?"

    @pytest.mark.parametrize("sql", [None, ""])
    def test_empty(self, sql):
        assert replace_named_placeholders(sql) == ""


class TestCountPlaceholders:
    @pytest.mark.parametrize("sql,count", [
        ("SELECT 1", 0),
        ("SELECT * FROM t WHERE a = ? AND b = ?", 2),
        ("SELECT * FROM t WHERE a = #{a}", 1),
        ("SELECT '?' FROM t WHERE a = ?", 1),
        ("SELECT 1 -- why?\nFROM t WHERE a = ?", 1),
    ])
    def test_count(self, sql, count):
        assert count_placeholders(sql) == count


class TestToPreparedSql:
    def test_markers_become_driver_markers(self):
        assert to_prepared_sql("UPDATE t SET a = ? WHERE id = ?") == "UPDATE t SET a = %s WHERE id = %s"

    def test_percent_is_escaped(self):
        sql = "SELECT * FROM t WHERE title LIKE concat('%', ?, '%') AND rate % 2 = 0"
        assert to_prepared_sql(sql) == (
            "SELECT * FROM t WHERE title LIKE concat('%%', %s, '%%') AND rate %% 2 = 0"
        )

    def test_question_mark_in_literal_is_kept(self):
        assert to_prepared_sql("SELECT 'why?' WHERE a = ?") == "SELECT 'why?' WHERE a = %s"
