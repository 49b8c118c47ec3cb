"""
Tests for statement value objects.
"""

from pathlib import Path

import pytest

from sql_compat.statements import (
    ParameterSpec,
    StatementKind,
    StatementRecord,
    normalize_whitespace,
)
from sql_compat.template import Binding


class TestStatementKind:
    """Test tag classification."""

    @pytest.mark.parametrize("tag,kind", [
        ("select", StatementKind.SELECT),
        ("INSERT", StatementKind.INSERT),
        (" update ", StatementKind.UPDATE),
        ("delete", StatementKind.DELETE),
        ("unknown", StatementKind.UNKNOWN),
        ("sql", StatementKind.UNKNOWN),
        (None, StatementKind.UNKNOWN),
        ("", StatementKind.UNKNOWN),
    ])
    def test_from_tag(self, tag, kind):
        assert StatementKind.from_tag(tag) is kind


class TestParameterSpec:
    """Test ParameterSpec parsing."""

    def test_declared_type_is_upper_cased(self):
        assert ParameterSpec("id", "integer").declared_type == "INTEGER"

    def test_name_required(self):
        with pytest.raises(ValueError):
            ParameterSpec(None)

    def test_from_token_with_jdbc_type(self):
        spec = ParameterSpec.from_token("id, javaType=int, jdbcType=integer")
        assert spec == ParameterSpec("id", "INTEGER")

    @pytest.mark.parametrize("token,expected", [
        ("id:integer", ParameterSpec("id", "INTEGER")),
        (" id : VARCHAR ", ParameterSpec("id", "VARCHAR")),
        ("id:", ParameterSpec("id")),
        ("id:INTEGER,jdbcType=BIGINT", ParameterSpec("id", "BIGINT")),
    ])
    def test_from_token_legacy_type(self, token, expected):
        assert ParameterSpec.from_token(token) == expected

    def test_from_token_without_type(self):
        spec = ParameterSpec.from_token("customer.name")
        assert spec.name == "customer.name"
        assert spec.declared_type is None

    @pytest.mark.parametrize("token", [None, "", "   ", ",jdbcType=VARCHAR"])
    def test_from_token_blank_name(self, token):
        assert ParameterSpec.from_token(token).name == "param"

    def test_from_binding(self):
        assert ParameterSpec.from_binding(Binding("id", "bigint")) == ParameterSpec("id", "BIGINT")
        assert ParameterSpec.from_binding({"name": "title"}) == ParameterSpec("title")

    def test_str(self):
        assert str(ParameterSpec("id", "INTEGER")) == "id:INTEGER"
        assert str(ParameterSpec("title")) == "title"


class TestNormalizeWhitespace:
    def test_collapses_newlines_tabs_and_spaces(self):
        sql = "SELECT id,\n\t  title\r\n FROM   books  "
        assert normalize_whitespace(sql) == "SELECT id, title FROM books"

    def test_none(self):
        assert normalize_whitespace(None) == ""


class TestStatementRecord:
    """Test StatementRecord identity."""

    def _record(self, **kwargs):
        values = dict(
            local_id="findBook",
            namespace="demo.mapper",
            kind=StatementKind.SELECT,
            source_file="mappers/BookMapper.xml",
            resolved_sql="SELECT 1",
            parameters=[ParameterSpec("id", "INTEGER")],
        )
        values.update(kwargs)
        return StatementRecord(**values)

    def test_full_id(self):
        assert self._record().full_id == "demo.mapper.findBook"

    @pytest.mark.parametrize("namespace", ["", "  ", None])
    def test_full_id_without_namespace(self, namespace):
        record = self._record(namespace=namespace)
        assert record.full_id == "findBook"
        assert record.namespace is not None

    def test_coerces_path_and_parameters(self):
        record = self._record()
        assert isinstance(record.source_file, Path)
        assert record.parameters == (ParameterSpec("id", "INTEGER"),)

    def test_dedupe_key_uses_absolute_path(self):
        record = self._record()
        assert record.dedupe_key == (
            "demo.mapper.findBook", StatementKind.SELECT, Path("mappers/BookMapper.xml").absolute()
        )

    def test_records_are_hashable(self):
        assert len({self._record(), self._record()}) == 1

    @pytest.mark.parametrize("field", ["local_id", "kind", "source_file", "resolved_sql"])
    def test_required_fields(self, field):
        with pytest.raises(ValueError):
            self._record(**{field: None})

    def test_str(self):
        assert str(self._record()) == "demo.mapper.findBook (SELECT) from mappers/BookMapper.xml"
