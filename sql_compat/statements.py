"""
Value objects for mapped SQL statements.

ParameterSpec describes one bound parameter, StatementRecord one resolved
mapped statement extracted from a mapper file. Both are immutable once built
by the scanner and are shared read-only by the validation engine and the
report writer.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple
import re


DEFAULT_PARAMETER_NAME = "param"

_WHITESPACE = re.compile(r"[\n\r\t]")
_SPACES = re.compile(r" +")


class StatementKind(Enum):
    """Operation kind of a mapped statement."""
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> "StatementKind":
        """Classify a mapper element tag (select/insert/update/delete)."""
        if not tag:
            return cls.UNKNOWN
        try:
            kind = cls(tag.strip().upper())
        except ValueError:
            return cls.UNKNOWN
        return kind


@dataclass(frozen=True)
class ParameterSpec:
    """
    One bound SQL parameter.

    Attributes:
        name: Logical parameter name (property path)
        declared_type: Declared storage type, upper-cased (e.g. "INTEGER")
    """
    name: str
    declared_type: Optional[str] = None

    def __post_init__(self):
        if self.name is None:
            raise ValueError("name is required")
        if self.declared_type is not None:
            object.__setattr__(self, "declared_type", self.declared_type.upper())

    @classmethod
    def from_token(cls, token: Optional[str]) -> "ParameterSpec":
        """
        Parse a placeholder body such as ``id,jdbcType=INTEGER``.

        The legacy ``id:INTEGER`` form is accepted too. Only the declared
        type is kept; other modifiers (javaType, mode, typeHandler, ...)
        are ignored.
        """
        if token is None or not token.strip():
            return cls(DEFAULT_PARAMETER_NAME)

        name, _, modifiers = token.strip().partition(",")
        declared_type = None
        if ":" in name:
            name, _, declared_type = name.partition(":")
            declared_type = declared_type.strip() or None
        for part in modifiers.split(","):
            key, sep, value = part.partition("=")
            if sep and key.strip().lower() == "jdbctype" and value.strip():
                declared_type = value.strip()

        return cls(name.strip() or DEFAULT_PARAMETER_NAME, declared_type)

    @classmethod
    def from_binding(cls, binding: Any) -> "ParameterSpec":
        """Build from a binding produced by the template engine."""
        if isinstance(binding, Mapping):
            return cls(binding["name"], binding.get("jdbc_type"))
        return cls(binding.name, binding.jdbc_type)

    def __str__(self) -> str:
        if self.declared_type is None:
            return self.name
        return f"{self.name}:{self.declared_type}"


def normalize_whitespace(sql: Optional[str]) -> str:
    """Collapse newlines, tabs and runs of spaces to single spaces."""
    if sql is None:
        return ""
    return _SPACES.sub(" ", _WHITESPACE.sub(" ", sql)).strip()


@dataclass(frozen=True)
class StatementRecord:
    """
    A resolved mapped statement.

    Attributes:
        local_id: Statement id inside its mapper (e.g. "findBook")
        namespace: Mapper namespace, "" when absent
        kind: SELECT, INSERT, UPDATE or DELETE
        source_file: Mapper file the statement came from
        resolved_sql: Whitespace-normalized SQL with one ``?`` per parameter
        parameters: Parameters in the order they bind
    """
    local_id: str
    namespace: str
    kind: StatementKind
    source_file: Path
    resolved_sql: str
    parameters: Tuple[ParameterSpec, ...] = field(default_factory=tuple)

    def __post_init__(self):
        for attr in ("local_id", "kind", "source_file", "resolved_sql"):
            if getattr(self, attr) is None:
                raise ValueError(f"{attr} is required")
        if self.namespace is None:
            object.__setattr__(self, "namespace", "")
        object.__setattr__(self, "source_file", Path(self.source_file))
        object.__setattr__(self, "parameters", tuple(self.parameters or ()))

    @property
    def full_id(self) -> str:
        if not self.namespace.strip():
            return self.local_id
        return f"{self.namespace}.{self.local_id}"

    @property
    def dedupe_key(self) -> Tuple[str, StatementKind, Path]:
        return (self.full_id, self.kind, self.source_file.absolute())

    def __str__(self) -> str:
        return f"{self.full_id} ({self.kind.value}) from {self.source_file}"
