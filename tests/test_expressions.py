"""
Tests for mapper test-expression evaluation.
"""

import pytest

from sql_compat.errors import TemplateError
from sql_compat.expressions import (
    evaluate,
    evaluate_boolean,
    evaluate_iterable,
    get_property,
    tokenize,
    truthy,
)


class Scope:
    """Minimal scope resolving names from a dict."""

    def __init__(self, **names):
        self.names = names

    def resolve(self, name):
        return self.names.get(name)


class Customer:
    def __init__(self, id=None, active=False):
        self.id = id
        self.active = active


class TestTokenize:
    def test_word_operators(self):
        assert tokenize("a != null and b eq 'x'") == [
            ("name", "a"), ("op", "!="), ("name", "null"), ("op", "&&"),
            ("name", "b"), ("op", "=="), ("string", "'x'"),
        ]

    def test_unexpected_character(self):
        with pytest.raises(TemplateError):
            tokenize("a # b")


class TestEvaluate:
    """Test expression evaluation."""

    @pytest.mark.parametrize("expression,expected", [
        ("id != null", True),
        ("missing != null", False),
        ("id == 5 and name == 'book'", True),
        ("id == 5 && name == \"other\"", False),
        ("id > 3 or missing == null", True),
        ("!(id < 3)", True),
        ("not flag", True),
        ("id gte 5", True),
        ("id + 1 == 6", True),
        ("name + '-x' == 'book-x'", True),
        ("items.size() > 1", True),
        ("name.isEmpty()", False),
        ("name.length() == 4", True),
        ("name.startsWith('bo')", True),
        ("name.equalsIgnoreCase('BOOK')", True),
        ("id == '5'", True),
        ("-id < 0", True),
    ])
    def test_boolean(self, expression, expected):
        scope = Scope(id=5, name="book", items=[1, 2], flag=False)
        assert evaluate_boolean(expression, scope) is expected

    def test_property_path(self):
        scope = Scope(customer={"id": 7, "active": True})
        assert evaluate("customer.id", scope) == 7
        assert evaluate_boolean("customer.id != null and customer.active == true", scope)

    def test_attribute_access(self):
        scope = Scope(customer=Customer(id=3, active=True))
        assert evaluate("customer.id", scope) == 3

    def test_property_of_null_is_null(self):
        assert evaluate("customer.id", Scope()) is None

    def test_property_of_scalar_fails(self):
        with pytest.raises(TemplateError):
            evaluate("customer.id", Scope(customer=1))

    def test_ordering_against_null_fails(self):
        with pytest.raises(TemplateError):
            evaluate("missing > 1", Scope())

    @pytest.mark.parametrize("expression", ["", "a ==", "(a", "a b", "a.", "x.unknownMethod()"])
    def test_invalid_expressions(self, expression):
        with pytest.raises(TemplateError):
            evaluate(expression, Scope(a=1, x="s"))


class TestTruthy:
    @pytest.mark.parametrize("value,expected", [
        (None, False), (False, False), (0, False), ("", False),
        (True, True), (1, True), ("x", True), ([1], True), ([], False),
    ])
    def test_truthy(self, value, expected):
        assert truthy(value) is expected


class TestEvaluateIterable:
    def test_list(self):
        assert evaluate_iterable("ids", Scope(ids=[1, 2])) == [1, 2]

    def test_mapping_values(self):
        assert evaluate_iterable("m", Scope(m={"a": 1, "b": 2})) == [1, 2]

    def test_scalar_iterates_once(self):
        assert evaluate_iterable("ids", Scope(ids=1)) == [1]

    def test_null_fails(self):
        with pytest.raises(TemplateError):
            evaluate_iterable("ids", Scope())


class TestGetProperty:
    def test_mapping(self):
        assert get_property({"a": 1}, "a") == 1

    def test_missing_attribute(self):
        with pytest.raises(TemplateError):
            get_property(Customer(), "name")


class TestStaticCalls:
    """commons-lang predicates called as @class@method(arg)."""

    @pytest.mark.parametrize("expression,expected", [
        ("@org.apache.commons.lang3.StringUtils@isNotBlank(name)", True),
        ("@org.apache.commons.lang3.StringUtils@isNotBlank(blank)", False),
        ("@org.apache.commons.lang3.StringUtils@isBlank(missing)", True),
        ("@org.apache.commons.lang3.StringUtils@isEmpty(blank)", False),
        ("@org.apache.commons.lang.StringUtils@isNotEmpty(name)", True),
        ("@org.apache.commons.lang3.ObjectUtils@isEmpty(items)", False),
        ("@org.apache.commons.lang3.ObjectUtils@isNotEmpty(empty)", False),
        ("@org.apache.commons.lang3.ObjectUtils@isNotEmpty(id)", True),
        ("id != null and @org.apache.commons.lang3.StringUtils@isNotBlank(name)", True),
        ("!@org.apache.commons.lang3.StringUtils@isBlank(name)", True),
    ])
    def test_predicates(self, expression, expected):
        scope = Scope(id=5, name="book", blank="  ", items=[1], empty=[])
        assert evaluate_boolean(expression, scope) is expected

    def test_tokenized_as_one_reference(self):
        assert tokenize("@org.apache.commons.lang3.StringUtils@isBlank(a)") == [
            ("static", "@org.apache.commons.lang3.StringUtils@isBlank"),
            ("op", "("), ("name", "a"), ("op", ")"),
        ]

    @pytest.mark.parametrize("expression", [
        "@com.example.Checks@valid(a)",
        "@org.apache.commons.lang3.StringUtils@capitalize(a)",
        "@org.apache.commons.lang3.StringUtils@isBlank",
        "@org.apache.commons.lang3.StringUtils@isBlank(a, a)",
    ])
    def test_unsupported_references(self, expression):
        with pytest.raises(TemplateError):
            evaluate(expression, Scope(a="x"))
