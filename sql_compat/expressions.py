"""
Evaluator for the OGNL subset used in mapper test expressions.

Supports what mapper files use in practice:

- literals: null, true, false, numbers, 'single' and "double" quoted strings
- property paths: customer.address.city
- boolean operators: and, or, not, &&, ||, !
- comparisons: ==, !=, <, <=, >, >= and eq, neq, lt, lte, gt, gte
- arithmetic/concatenation: +, -
- parentheses and method calls such as list.size(), name.isEmpty(),
  type.equals('A')
- commons-lang static predicates such as
  @org.apache.commons.lang3.StringUtils@isNotBlank(name)

Name resolution is delegated to a scope object exposing ``resolve(name)``,
so the template engine decides what a bare identifier means.
"""

from functools import lru_cache
from typing import Any, List, Optional, Tuple
import re

from .errors import TemplateError


_TOKEN = re.compile(
    r"""
    \s*(?:
        (?P<number>\d+(?:\.\d+)?)
      | (?P<static>@[A-Za-z_$][\w$.]*@[A-Za-z_$][\w$]*)
      | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
      | (?P<op>==|!=|<=|>=|&&|\|\||[<>!()+\-.,])
      | (?P<name>[A-Za-z_$][\w$]*)
    )
    """,
    re.VERBOSE,
)

_WORD_OPERATORS = {
    "and": "&&",
    "or": "||",
    "not": "!",
    "eq": "==",
    "neq": "!=",
    "lt": "<",
    "lte": "<=",
    "gt": ">",
    "gte": ">=",
}

_LITERALS = {"null": None, "true": True, "false": False}

_COMPARISONS = ("==", "!=", "<", "<=", ">", ">=")


def _is_empty_string(value: Any) -> bool:
    return value is None or str(value) == ""


def _is_blank_string(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def _is_empty_object(value: Any) -> bool:
    if value is None:
        return True
    if hasattr(value, "__len__"):
        return len(value) == 0
    return False


_STRING_UTILS = {
    "isEmpty": _is_empty_string,
    "isNotEmpty": lambda value: not _is_empty_string(value),
    "isBlank": _is_blank_string,
    "isNotBlank": lambda value: not _is_blank_string(value),
}

_OBJECT_UTILS = {
    "isEmpty": _is_empty_object,
    "isNotEmpty": lambda value: not _is_empty_object(value),
}

# Static classes callable as @class@method(arg), by fully-qualified name
STATIC_METHODS = {
    "org.apache.commons.lang3.StringUtils": _STRING_UTILS,
    "org.apache.commons.lang.StringUtils": _STRING_UTILS,
    "org.apache.commons.lang3.ObjectUtils": _OBJECT_UTILS,
}


def tokenize(expression: str) -> List[Tuple[str, str]]:
    """Split an expression into (kind, text) tokens."""
    tokens = []
    pos = 0
    text = expression.rstrip()
    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if not match or match.end() == pos:
            raise TemplateError(f"Unexpected character {text[pos:].strip()[:1]!r} in expression: {expression}")
        pos = match.end()
        kind = match.lastgroup
        value = match.group(kind)
        if kind == "name" and value in _WORD_OPERATORS:
            tokens.append(("op", _WORD_OPERATORS[value]))
        else:
            tokens.append((kind, value))
    return tokens


class _Parser:
    """Recursive-descent parser producing a tuple-based syntax tree."""

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = tokenize(expression)
        self.pos = 0

    def parse(self):
        if not self.tokens:
            raise TemplateError("Empty expression")
        node = self._or()
        if self.pos != len(self.tokens):
            raise TemplateError(f"Unexpected token {self.tokens[self.pos][1]!r} in expression: {self.expression}")
        return node

    def _peek(self) -> Optional[Tuple[str, str]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _accept(self, *ops: str) -> Optional[str]:
        token = self._peek()
        if token and token[0] == "op" and token[1] in ops:
            self.pos += 1
            return token[1]
        return None

    def _expect(self, op: str):
        if not self._accept(op):
            raise TemplateError(f"Expected {op!r} in expression: {self.expression}")

    def _or(self):
        node = self._and()
        while self._accept("||"):
            node = ("or", node, self._and())
        return node

    def _and(self):
        node = self._not()
        while self._accept("&&"):
            node = ("and", node, self._not())
        return node

    def _not(self):
        if self._accept("!"):
            return ("not", self._not())
        return self._comparison()

    def _comparison(self):
        node = self._additive()
        op = self._accept(*_COMPARISONS)
        if op:
            node = ("cmp", op, node, self._additive())
        return node

    def _additive(self):
        node = self._unary()
        while True:
            op = self._accept("+", "-")
            if not op:
                return node
            node = ("arith", op, node, self._unary())

    def _unary(self):
        if self._accept("-"):
            return ("neg", self._unary())
        return self._postfix(self._primary())

    def _primary(self):
        token = self._peek()
        if token is None:
            raise TemplateError(f"Unexpected end of expression: {self.expression}")
        kind, value = token
        self.pos += 1
        if kind == "number":
            return ("lit", float(value) if "." in value else int(value))
        if kind == "string":
            return ("lit", _unquote(value))
        if kind == "name":
            if value in _LITERALS:
                return ("lit", _LITERALS[value])
            return ("name", value)
        if kind == "static":
            return self._static_call(value)
        if kind == "op" and value == "(":
            node = self._or()
            self._expect(")")
            return node
        raise TemplateError(f"Unexpected token {value!r} in expression: {self.expression}")

    def _static_call(self, reference: str):
        class_name, _, method = reference[1:].partition("@")
        methods = STATIC_METHODS.get(class_name)
        if methods is None or method not in methods:
            raise TemplateError(f"Unsupported static reference {reference} in expression: {self.expression}")
        if not self._accept("("):
            raise TemplateError(f"Expected '(' after {reference} in expression: {self.expression}")
        args = self._arguments()
        if len(args) != 1:
            raise TemplateError(f"{reference} takes one argument in expression: {self.expression}")
        return ("static", class_name, method, args[0])

    def _postfix(self, node):
        while self._accept("."):
            token = self._peek()
            if token is None or token[0] != "name":
                raise TemplateError(f"Expected property name after '.' in expression: {self.expression}")
            self.pos += 1
            if self._accept("("):
                node = ("call", node, token[1], self._arguments())
            else:
                node = ("attr", node, token[1])
        return node

    def _arguments(self):
        args = []
        if self._accept(")"):
            return args
        while True:
            args.append(self._or())
            if self._accept(")"):
                return args
            self._expect(",")


def _unquote(literal: str) -> str:
    body = literal[1:-1]
    return re.sub(r"\\(.)", r"\1", body)


@lru_cache(maxsize=1024)
def parse(expression: str):
    """Parse an expression into a syntax tree (cached)."""
    return _Parser(expression).parse()


def truthy(value: Any) -> bool:
    """OGNL truthiness: null, false, zero and empty string are false."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value != ""
    return bool(value)


def get_property(target: Any, name: str) -> Any:
    """
    Read ``name`` from ``target``.

    Mapping-like objects (anything with a ``get`` method) are read by key,
    other objects by attribute. Reading a property of null yields null;
    reading one of a scalar is an error, as it would be in OGNL.
    """
    if target is None:
        return None
    if isinstance(target, (str, int, float, bool)):
        raise TemplateError(f"No property '{name}' on value {target!r}")
    getter = getattr(target, "get", None)
    if callable(getter):
        return getter(name)
    if hasattr(target, name):
        return getattr(target, name)
    raise TemplateError(f"No property '{name}' on {type(target).__name__}")


def _call(target: Any, method: str, args: List[Any]) -> Any:
    if method in ("size", "length") and not args:
        try:
            return len(target)
        except TypeError:
            raise TemplateError(f"Cannot call {method}() on {target!r}")
    if method == "isEmpty" and not args:
        if target is None or isinstance(target, (int, float, bool)):
            raise TemplateError(f"Cannot call isEmpty() on {target!r}")
        return not truthy(target) if isinstance(target, str) else len(target) == 0
    if method == "toString" and not args:
        return "" if target is None else str(target)
    if method == "trim" and not args and isinstance(target, str):
        return target.strip()
    if method == "equals" and len(args) == 1:
        return _equals(target, args[0])
    if method == "equalsIgnoreCase" and len(args) == 1:
        return str(target).lower() == str(args[0]).lower()
    if method in ("contains", "startsWith", "endsWith") and len(args) == 1:
        if isinstance(target, str):
            arg = str(args[0])
            return {
                "contains": arg in target,
                "startsWith": target.startswith(arg),
                "endsWith": target.endswith(arg),
            }[method]
        if method == "contains" and hasattr(target, "__contains__"):
            return args[0] in target
    raise TemplateError(f"Unsupported method {method}() on {type(target).__name__}")


def _equals(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, (int, float)) and isinstance(right, str) or isinstance(right, (int, float)) and isinstance(left, str):
        try:
            return float(left) == float(right)
        except ValueError:
            return False
    return left == right


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == "==":
        return _equals(left, right)
    if op == "!=":
        return not _equals(left, right)
    if left is None or right is None:
        raise TemplateError(f"Cannot compare null with '{op}'")
    try:
        if op == "<":
            return left < right
        if op == "<=":
            return left <= right
        if op == ">":
            return left > right
        return left >= right
    except TypeError:
        try:
            return _compare(op, float(left), float(right))
        except (TypeError, ValueError):
            raise TemplateError(f"Cannot compare {left!r} {op} {right!r}")


def _arith(op: str, left: Any, right: Any) -> Any:
    if op == "+" and (isinstance(left, str) or isinstance(right, str)):
        return f"{'' if left is None else left}{'' if right is None else right}"
    try:
        return left + right if op == "+" else left - right
    except TypeError:
        raise TemplateError(f"Cannot apply {op!r} to {left!r} and {right!r}")


def _eval(node, scope) -> Any:
    tag = node[0]
    if tag == "lit":
        return node[1]
    if tag == "name":
        return scope.resolve(node[1])
    if tag == "attr":
        return get_property(_eval(node[1], scope), node[2])
    if tag == "call":
        return _call(_eval(node[1], scope), node[2], [_eval(arg, scope) for arg in node[3]])
    if tag == "static":
        return STATIC_METHODS[node[1]][node[2]](_eval(node[3], scope))
    if tag == "not":
        return not truthy(_eval(node[1], scope))
    if tag == "and":
        return truthy(_eval(node[1], scope)) and truthy(_eval(node[2], scope))
    if tag == "or":
        return truthy(_eval(node[1], scope)) or truthy(_eval(node[2], scope))
    if tag == "cmp":
        return _compare(node[1], _eval(node[2], scope), _eval(node[3], scope))
    if tag == "arith":
        return _arith(node[1], _eval(node[2], scope), _eval(node[3], scope))
    if tag == "neg":
        value = _eval(node[1], scope)
        try:
            return -value
        except TypeError:
            raise TemplateError(f"Cannot negate {value!r}")
    raise TemplateError(f"Unknown expression node {tag}")


def evaluate(expression: str, scope) -> Any:
    """Evaluate ``expression`` against ``scope`` and return its value."""
    return _eval(parse(expression.strip()), scope)


def evaluate_boolean(expression: str, scope) -> bool:
    return truthy(evaluate(expression, scope))


def evaluate_iterable(expression: str, scope) -> List[Any]:
    """
    Evaluate a foreach collection expression.

    Lists, tuples and sets iterate as-is, mappings iterate their values and
    a scalar iterates once.
    """
    value = evaluate(expression, scope)
    if value is None:
        raise TemplateError(f"The expression '{expression}' evaluated to a null value")
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    if isinstance(value, dict):
        return list(value.values())
    return [value]
