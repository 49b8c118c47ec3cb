"""
MyBatis dynamic SQL resolution.

Turns one mapped-statement element of a mapper document into a BoundSql:
SQL text with ``?`` markers and the ordered list of parameter bindings the
markers stand for. Dynamic tags are evaluated against a caller-supplied
parameter object, the same way MyBatis does it when a statement is invoked.

Supported tags: include/sql (with property substitution), if, choose/when/
otherwise, where, set, trim, foreach, bind. selectKey children are exposed as
separate ``<id>!selectKey`` statements and skipped when rendering the parent.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple
import logging
import re

from .errors import TemplateError
from .expressions import evaluate, evaluate_boolean, evaluate_iterable, get_property
from .statements import ParameterSpec


logger = logging.getLogger(__name__)

COMMAND_TAGS = ("select", "insert", "update", "delete")
SELECT_KEY_SUFFIX = "!selectKey"
FOREACH_PREFIX = "__frch_"

_PLACEHOLDER = re.compile(r"#\{([^}]*)\}")
_SUBSTITUTION = re.compile(r"\$\{([^}]*)\}")

_WHERE_PREFIX_OVERRIDES = ["AND ", "OR ", "AND\n", "OR\n", "AND\r", "OR\r", "AND\t", "OR\t"]
_IGNORED_TAGS = {"cache", "cache-ref", "resultMap", "parameterMap"}


@dataclass(frozen=True)
class Binding:
    """One ``#{...}`` placeholder after resolution."""
    name: str
    jdbc_type: Optional[str] = None


@dataclass(frozen=True)
class BoundSql:
    """Resolved SQL text and the bindings for its ``?`` markers, in order."""
    sql: str
    bindings: Tuple[Binding, ...] = field(default_factory=tuple)


@dataclass
class MappedElement:
    """
    A statement declared in a mapper document.

    Attributes:
        id: Id as written in the mapper (or ``<id>!selectKey``)
        full_id: Namespace-qualified id
        command: select, insert, update, delete, or "unknown"
        element: lxml element holding the statement body
    """
    id: str
    full_id: str
    command: str
    element: Any


def parse_placeholder(body: str) -> Binding:
    """Parse the inside of ``#{...}`` into a binding."""
    spec = ParameterSpec.from_token(body)
    return Binding(spec.name, spec.declared_type)


def qualify(namespace: str, base: str, is_reference: bool = False) -> str:
    """Apply the document namespace to an id the way MyBatis does."""
    if not namespace:
        return base
    if base.startswith(namespace + "."):
        return base
    if is_reference and "." in base:
        return base
    return f"{namespace}.{base}"


class DynamicContext:
    """
    Accumulates rendered SQL and the names visible to expressions.

    Names resolve first against bindings (bind/foreach variables,
    ``_parameter``, ``_databaseId``), then as properties of the parameter
    object.
    """

    def __init__(self, parameter_object: Any):
        self.parameter_object = parameter_object
        self.bindings: Dict[str, Any] = {"_parameter": parameter_object, "_databaseId": None}
        self.parts: List[str] = []
        self.unique_number = 0

    def resolve(self, name: str) -> Any:
        if name in self.bindings:
            return self.bindings[name]
        if self.parameter_object is None:
            return None
        return get_property(self.parameter_object, name)

    def append(self, sql: str):
        self.parts.append(sql)

    def sql(self) -> str:
        return " ".join(self.parts)

    def next_number(self) -> int:
        number = self.unique_number
        self.unique_number += 1
        return number


class _ChildContext(DynamicContext):
    """Context that buffers output locally but shares names with its parent."""

    def __init__(self, parent: DynamicContext):
        self.parent = parent
        self.parameter_object = parent.parameter_object
        self.bindings = parent.bindings
        self.parts = []

    def next_number(self) -> int:
        return self.parent.next_number()


class MapperDocument:
    """A parsed mapper: namespace, reusable fragments and statements."""

    def __init__(self, namespace: str, source: str = "<mapper>"):
        self.namespace = namespace
        self.source = source
        self.fragments: Dict[str, Any] = {}
        self.statements: List[MappedElement] = []

    @classmethod
    def parse(cls, root, source: str = "<mapper>") -> "MapperDocument":
        """Index the statements and ``<sql>`` fragments under ``root``."""
        document = cls((root.get("namespace") or "").strip(), source)
        for child in _elements(root):
            tag = child.tag
            if tag == "sql":
                fragment_id = child.get("id")
                if not fragment_id:
                    raise TemplateError(f"<sql> element without id in {source}")
                document.fragments[qualify(document.namespace, fragment_id)] = child
            elif tag in COMMAND_TAGS:
                document._add_statement(child)
            elif tag not in _IGNORED_TAGS:
                logger.debug(f"Ignoring <{tag}> in {source}")
        return document

    def _add_statement(self, element):
        statement_id = element.get("id")
        if not statement_id:
            raise TemplateError(f"<{element.tag}> element without id in {self.source}")
        command = element.tag
        if (element.get("statementType") or "").upper() == "CALLABLE":
            command = "unknown"
        self.statements.append(
            MappedElement(statement_id, qualify(self.namespace, statement_id), command, element)
        )
        for key in _elements(element):
            if key.tag == "selectKey":
                key_id = statement_id + SELECT_KEY_SUFFIX
                self.statements.append(
                    MappedElement(key_id, qualify(self.namespace, key_id), "select", key)
                )

    def bind(self, statement: MappedElement, parameter_object: Any) -> BoundSql:
        """Render ``statement`` for ``parameter_object``."""
        context = DynamicContext(parameter_object)
        self._render_children(statement.element, context, {}, ())
        return build_bound_sql(context.sql())

    # Rendering

    def _render_children(self, element, context: DynamicContext, properties: Dict[str, str], including: Tuple[str, ...]):
        self._render_text(element.text, context, properties)
        for child in element:
            if isinstance(child.tag, str):
                self._render_element(child, context, properties, including)
            self._render_text(child.tail, context, properties)

    def _render_text(self, text: Optional[str], context: DynamicContext, properties: Dict[str, str]):
        if text is None:
            return
        text = substitute_properties(text, properties)

        def replace(match):
            value = evaluate(match.group(1), context)
            return "" if value is None else str(value)

        context.append(_SUBSTITUTION.sub(replace, text))

    def _render_element(self, element, context, properties, including):
        tag = element.tag
        attr = lambda name: _attribute(element, name, properties)

        if tag == "selectKey":
            return
        if tag == "include":
            self._render_include(element, context, properties, including)
        elif tag == "if":
            if evaluate_boolean(_required(element, "test", attr), context):
                self._render_children(element, context, properties, including)
        elif tag == "choose":
            self._render_choose(element, context, properties, including)
        elif tag == "where":
            self._render_trim(element, context, properties, including,
                              prefix="WHERE", prefix_overrides=_WHERE_PREFIX_OVERRIDES)
        elif tag == "set":
            self._render_trim(element, context, properties, including,
                              prefix="SET", prefix_overrides=[","], suffix_overrides=[","])
        elif tag == "trim":
            self._render_trim(element, context, properties, including,
                              prefix=attr("prefix"), suffix=attr("suffix"),
                              prefix_overrides=_overrides(attr("prefixOverrides")),
                              suffix_overrides=_overrides(attr("suffixOverrides")))
        elif tag == "foreach":
            self._render_foreach(element, context, properties, including)
        elif tag == "bind":
            context.bindings[_required(element, "name", attr)] = evaluate(_required(element, "value", attr), context)
        else:
            raise TemplateError(f"Unknown element <{tag}> in SQL statement in {self.source}")

    def _render_include(self, element, context, properties, including):
        refid = _required(element, "refid", lambda name: _attribute(element, name, properties))
        fragment_id = qualify(self.namespace, refid, is_reference=True)
        fragment = self.fragments.get(fragment_id)
        if fragment is None:
            raise TemplateError(f"Could not find SQL statement to include with refid '{fragment_id}'")
        if fragment_id in including:
            raise TemplateError(f"Recursive include of '{fragment_id}'")

        merged = dict(properties)
        for prop in _elements(element):
            if prop.tag != "property":
                continue
            name = prop.get("name")
            if not name:
                raise TemplateError(f"<property> without name in include '{refid}'")
            merged[name] = substitute_properties(prop.get("value") or "", properties)
        self._render_children(fragment, context, merged, including + (fragment_id,))

    def _render_choose(self, element, context, properties, including):
        otherwise = None
        for child in _elements(element):
            if child.tag == "when":
                test = _required(child, "test", lambda name: _attribute(child, name, properties))
                if evaluate_boolean(test, context):
                    self._render_children(child, context, properties, including)
                    return
            elif child.tag == "otherwise":
                if otherwise is not None:
                    raise TemplateError("Too many default (otherwise) elements in choose statement")
                otherwise = child
        if otherwise is not None:
            self._render_children(otherwise, context, properties, including)

    def _render_trim(self, element, context, properties, including, prefix=None, suffix=None,
                     prefix_overrides=(), suffix_overrides=()):
        inner = _ChildContext(context)
        self._render_children(element, inner, properties, including)
        trimmed = apply_trim(inner.sql(), prefix, suffix, prefix_overrides, suffix_overrides)
        if trimmed:
            context.append(trimmed)

    def _render_foreach(self, element, context, properties, including):
        attr = lambda name: _attribute(element, name, properties)
        collection = _required(element, "collection", attr)
        item = attr("item")
        index = attr("index")
        separator = attr("separator")
        values = evaluate_iterable(collection, context)
        if not values:
            return

        saved = {name: context.bindings.get(name, _MISSING) for name in (item, index) if name}
        pieces = []
        for position, value in enumerate(values):
            number = context.next_number()
            if index:
                context.bindings[index] = position
                context.bindings[_itemize(index, number)] = position
            if item:
                context.bindings[item] = value
                context.bindings[_itemize(item, number)] = value
            inner = _ChildContext(context)
            self._render_children(element, inner, properties, including)
            pieces.append(_rename_foreach_placeholders(inner.sql(), item, index, number))

        for name, previous in saved.items():
            if previous is _MISSING:
                context.bindings.pop(name, None)
            else:
                context.bindings[name] = previous

        body = f" {separator} ".join(pieces) if separator is not None else " ".join(pieces)
        context.append(f"{attr('open') or ''} {body} {attr('close') or ''}")


_MISSING = object()


def _elements(element) -> Iterator[Any]:
    return (child for child in element if isinstance(child.tag, str))


def _attribute(element, name: str, properties: Dict[str, str]) -> Optional[str]:
    value = element.get(name)
    if value is None:
        return None
    return substitute_properties(value, properties)


def _required(element, name: str, attr) -> str:
    value = attr(name)
    if value is None or not value.strip():
        raise TemplateError(f"<{element.tag}> requires a '{name}' attribute")
    return value


def _overrides(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [token.upper() for token in value.split("|")]


def _itemize(name: str, number: int) -> str:
    return f"{FOREACH_PREFIX}{name}_{number}"


def _rename_foreach_placeholders(sql: str, item: Optional[str], index: Optional[str], number: int) -> str:
    """Point ``#{item...}``/``#{index...}`` placeholders at per-iteration names."""
    for name in (item, index):
        if not name:
            continue
        pattern = re.compile(r"#\{\s*" + re.escape(name) + r"(?=[.,:}\s])")
        sql = pattern.sub("#{" + _itemize(name, number), sql)
    return sql


def substitute_properties(text: str, properties: Dict[str, str]) -> str:
    """Replace ``${name}`` for include properties, leaving other ``${}`` intact."""
    if not properties or "${" not in text:
        return text

    def replace(match):
        key = match.group(1).strip()
        return properties[key] if key in properties else match.group(0)

    return _SUBSTITUTION.sub(replace, text)


def apply_trim(sql: str, prefix: Optional[str], suffix: Optional[str],
               prefix_overrides=(), suffix_overrides=()) -> str:
    """
    Trim rendered SQL the way <trim>/<where>/<set> do.

    Overrides are compared case-insensitively against the trimmed text; at
    most one prefix and one suffix override is removed.
    """
    body = sql.strip()
    if not body:
        return ""
    upper = body.upper()
    for token in prefix_overrides:
        if upper.startswith(token):
            body = body[len(token.strip()):]
            break
    for token in suffix_overrides:
        if upper.endswith(token) or upper.endswith(token.strip()):
            body = body[:len(body) - len(token.strip())]
            break
    if prefix:
        body = f"{prefix} {body}"
    if suffix:
        body = f"{body} {suffix}"
    return body


def build_bound_sql(sql: str) -> BoundSql:
    """Replace ``#{...}`` placeholders with ``?`` and collect their bindings."""
    bindings = []

    def replace(match):
        bindings.append(parse_placeholder(match.group(1)))
        return "?"

    return BoundSql(_PLACEHOLDER.sub(replace, sql), tuple(bindings))
