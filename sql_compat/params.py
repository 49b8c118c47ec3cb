"""
Sample parameter values for mapped statements.

Maps a parameter's declared jdbcType to a deterministic placeholder value so
statements can be prepared and executed without real application data.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Tuple
import uuid

from .statements import ParameterSpec


SAMPLE_TEXT = "sample"
SAMPLE_TIME = time(0, 0, 1)

STRING_TYPES = {"VARCHAR", "CHAR", "TEXT", "NVARCHAR", "NCHAR", "LONGVARCHAR", "CLOB"}
INTEGER_TYPES = {"INTEGER", "INT", "SMALLINT", "TINYINT"}
DECIMAL_TYPES = {"NUMERIC", "DECIMAL"}
BOOLEAN_TYPES = {"BOOLEAN", "BIT"}
TIMESTAMP_TYPES = {"TIMESTAMP", "TIMESTAMPTZ", "TIMESTAMP_WITH_TIMEZONE"}


class SampleValueGenerator:
    """
    Produces sample values for parameters based on their declared type.

    Every type maps to a fixed value except UUID, which yields a fresh
    identifier on each call. Unknown types fall back to the sample string
    and let the database report any mismatch.
    """

    def generate(self, spec: ParameterSpec) -> Any:
        declared = spec.declared_type
        if declared is None or declared in STRING_TYPES:
            return SAMPLE_TEXT
        if declared == "UUID":
            return uuid.uuid4()
        if declared in INTEGER_TYPES or declared == "BIGINT":
            return 1
        if declared in DECIMAL_TYPES:
            return Decimal(1)
        if declared in BOOLEAN_TYPES:
            return True
        if declared == "DATE":
            return date.today()
        if declared in TIMESTAMP_TYPES:
            return datetime.now(timezone.utc)
        if declared == "TIME":
            return SAMPLE_TIME
        return SAMPLE_TEXT

    def generate_values(self, specs: Iterable[ParameterSpec]) -> List[Any]:
        return [self.generate(spec) for spec in specs]

    def bind(self, specs: Iterable[ParameterSpec]) -> Tuple[Any, ...]:
        """
        Values for positional binding, in declaration order.

        Position ``i`` (1-based) in the prepared statement receives element
        ``i - 1``. No per-value validation happens here; a value the driver
        or database rejects surfaces as an execution failure.
        """
        return tuple(self.generate_values(specs))
