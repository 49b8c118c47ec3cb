"""
Tests for sample parameter values.
"""

import uuid
from datetime import date, datetime, time
from decimal import Decimal

import pytest

from sql_compat.params import SAMPLE_TEXT, SampleValueGenerator
from sql_compat.statements import ParameterSpec


@pytest.fixture
def generator():
    return SampleValueGenerator()


class TestSampleValueGenerator:
    """Test declared type to sample value mapping."""

    @pytest.mark.parametrize("declared,expected", [
        (None, SAMPLE_TEXT),
        ("VARCHAR", SAMPLE_TEXT),
        ("char", SAMPLE_TEXT),
        ("INTEGER", 1),
        ("SMALLINT", 1),
        ("BIGINT", 1),
        ("NUMERIC", Decimal(1)),
        ("DECIMAL", Decimal(1)),
        ("BOOLEAN", True),
        ("BIT", True),
        ("TIME", time(0, 0, 1)),
        ("BLOB", SAMPLE_TEXT),
    ])
    def test_fixed_values(self, generator, declared, expected):
        assert generator.generate(ParameterSpec("p", declared)) == expected

    def test_integer_is_not_boolean(self, generator):
        value = generator.generate(ParameterSpec("id", "INTEGER"))
        assert type(value) is int

    def test_uuid_is_fresh(self, generator):
        spec = ParameterSpec("id", "UUID")
        first, second = generator.generate(spec), generator.generate(spec)
        assert isinstance(first, uuid.UUID)
        assert first != second

    def test_date_and_timestamp(self, generator):
        assert generator.generate(ParameterSpec("d", "DATE")) == date.today()
        stamp = generator.generate(ParameterSpec("t", "TIMESTAMP"))
        assert isinstance(stamp, datetime)
        assert stamp.tzinfo is not None

    def test_deterministic_except_uuid(self, generator):
        specs = [ParameterSpec(name, t) for name, t in
                 [("a", "INTEGER"), ("b", "VARCHAR"), ("c", "NUMERIC"), ("d", "BOOLEAN"), ("e", "DATE"), ("f", None)]]
        assert generator.generate_values(specs) == generator.generate_values(specs)

    def test_bind_preserves_order(self, generator):
        specs = [ParameterSpec("id", "INTEGER"), ParameterSpec("title", "VARCHAR"), ParameterSpec("ok", "BOOLEAN")]
        assert generator.bind(specs) == (1, SAMPLE_TEXT, True)

    def test_bind_empty(self, generator):
        assert generator.bind([]) == ()
