"""
Placeholder rewriting for the database driver.

Resolved statements carry JDBC-style ``?`` markers (and, in raw templates,
named ``#{...}`` tokens). psycopg2 binds positional parameters with ``%s``
and treats every other ``%`` as a format character, so both need rewriting
before a statement can be prepared. The sqlparse lexer is used so markers
inside string literals, quoted identifiers and comments are left alone.
"""

import re

from sqlparse import lexer
from sqlparse import tokens as T


NAMED_PLACEHOLDER = re.compile(r"#\{[^}]+\}")
POSITIONAL_MARKER = "?"
DRIVER_MARKER = "%s"


def replace_named_placeholders(sql: str) -> str:
    """Replace ``#{...}`` tokens with ``?``, keeping their order."""
    if not sql:
        return ""
    return NAMED_PLACEHOLDER.sub(POSITIONAL_MARKER, sql)


def _is_marker(ttype, value: str) -> bool:
    return ttype in T.Name.Placeholder and value == POSITIONAL_MARKER


def count_placeholders(sql: str) -> int:
    """Number of ``?`` markers outside literals and comments."""
    sql = replace_named_placeholders(sql)
    return sum(1 for ttype, value in lexer.tokenize(sql) if _is_marker(ttype, value))


def to_prepared_sql(sql: str) -> str:
    """
    Rewrite a resolved statement into psycopg2's paramstyle.

    Every ``?`` marker becomes ``%s`` and every literal ``%`` becomes ``%%``.
    Only use the result together with a parameter sequence; without
    parameters psycopg2 does not unescape ``%%``.
    """
    sql = replace_named_placeholders(sql)
    parts = []
    for ttype, value in lexer.tokenize(sql):
        if _is_marker(ttype, value):
            parts.append(DRIVER_MARKER)
        else:
            parts.append(value.replace("%", "%%"))
    return "".join(parts)
