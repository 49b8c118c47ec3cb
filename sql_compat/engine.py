"""
Validation Engine

Runs every mapped statement against one database with synthesized
parameters and records whether the database accepted it.

Each statement gets its own pooled connection checkout and its own savepoint:

1. The session is set to autocommit off (and read-only unless statements are
   executed for real)
2. SAVEPOINT sql_valid
3. The statement is rewritten to the driver's paramstyle and, in
   analyze-only mode, wrapped in EXPLAIN (FORMAT JSON)
4. SET LOCAL statement_timeout bounds the execution
5. Sample values are bound and the statement executed
6. ROLLBACK TO SAVEPOINT sql_valid, then ROLLBACK, whatever happened

Nothing a statement does is ever committed, so statements can run
concurrently and in any order.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlparse, urlunparse
import logging

import psycopg2
import psycopg2.extras
from psycopg2.extensions import make_dsn, parse_dsn
from psycopg2.pool import ThreadedConnectionPool

from .errors import PoolCreationError, ValidationInterrupted
from .params import SampleValueGenerator
from .prepared import replace_named_placeholders, to_prepared_sql
from .statements import StatementRecord


logger = logging.getLogger(__name__)

# uuid.UUID sample values bind as PostgreSQL uuid
psycopg2.extras.register_uuid()

SAVEPOINT_NAME = "sql_valid"
EXPLAIN_PREFIX = "EXPLAIN (FORMAT JSON) "
DEFAULT_STATEMENT_TIMEOUT_SECONDS = 8
DEFAULT_THREAD_COUNT = 4

MASKED_PASSWORD = "****"


@dataclass(frozen=True)
class DatabaseTarget:
    """
    A database to validate against.

    Attributes:
        label: Name used in logs and the report ("origin", "target")
        dsn: libpq connection string or postgresql:// URI
        user: Optional user, overrides the DSN
        password: Optional password, overrides the DSN
    """
    label: str
    dsn: str
    user: Optional[str] = None
    password: Optional[str] = None

    def connect_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"dsn": self.dsn}
        if self.user is not None:
            kwargs["user"] = self.user
        if self.password is not None:
            kwargs["password"] = self.password
        return kwargs

    def describe(self) -> str:
        """The DSN with any password masked, for logging."""
        if "://" not in self.dsn:
            try:
                params = parse_dsn(self.dsn)
            except psycopg2.ProgrammingError:
                return "<unparseable connection string>"
            if "password" not in params:
                return self.dsn
            params["password"] = MASKED_PASSWORD
            return make_dsn(**params)
        parsed = urlparse(self.dsn)
        if parsed.password is None:
            return self.dsn
        netloc = parsed.netloc.replace(f":{parsed.password}@", f":{MASKED_PASSWORD}@", 1)
        return urlunparse(parsed._replace(netloc=netloc))


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one statement against one database."""
    statement: StatementRecord
    database_label: str
    success: bool
    error_message: Optional[str] = None

    @classmethod
    def passed(cls, statement: StatementRecord, database_label: str) -> "ValidationResult":
        return cls(statement, database_label, True)

    @classmethod
    def failed(cls, statement: StatementRecord, database_label: str, error: str) -> "ValidationResult":
        return cls(statement, database_label, False, f"{database_label}: {error}")

    def to_dict(self) -> Dict[str, Any]:
        """Report entry for this result."""
        return {
            "id": self.statement.full_id,
            "kind": self.statement.kind.value,
            "file": str(self.statement.source_file),
            "database": self.database_label,
            "success": self.success,
            "error": self.error_message,
        }


@dataclass(frozen=True)
class ValidationSummary:
    """Failure count for one database pass."""
    label: str
    total: int
    failures: int

    @property
    def passed(self) -> bool:
        return self.failures == 0

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "total": self.total, "failures": self.failures}


@dataclass
class PassResult:
    """Results of one pass, in statement submission order."""
    results: List[ValidationResult] = field(default_factory=list)
    summary: Optional[ValidationSummary] = None


def create_pool(target: DatabaseTarget, size: int) -> ThreadedConnectionPool:
    """
    Open a connection pool sized for ``size`` workers.

    One connection is opened eagerly so an unreachable database fails the
    pass here rather than once per statement.
    """
    return ThreadedConnectionPool(1, max(1, size), **target.connect_kwargs())


class ValidationEngine:
    """
    Validate statements against a database using a bounded worker pool.

    Example:
        engine = ValidationEngine(statement_timeout_seconds=8, thread_count=4)
        outcome = engine.validate(DatabaseTarget("origin", dsn), statements)
        if not outcome.summary.passed:
            ...
    """

    def __init__(
        self,
        pool_factory: Callable[[DatabaseTarget, int], Any] = create_pool,
        statement_timeout_seconds: int = DEFAULT_STATEMENT_TIMEOUT_SECONDS,
        execute_statements: bool = False,
        thread_count: int = DEFAULT_THREAD_COUNT,
        generator: Optional[SampleValueGenerator] = None,
    ):
        """
        Args:
            pool_factory: Builds a connection pool (getconn/putconn/closeall)
            statement_timeout_seconds: Per-statement execution timeout
            execute_statements: Run statements for real instead of EXPLAIN
            thread_count: Worker count per pass, clamped to at least 1
            generator: Sample value generator (default: SampleValueGenerator)
        """
        self.pool_factory = pool_factory
        self.statement_timeout_seconds = statement_timeout_seconds
        self.execute_statements = execute_statements
        self.thread_count = max(1, thread_count)
        self.generator = generator or SampleValueGenerator()

    def validate(self, target: DatabaseTarget, statements: Sequence[StatementRecord]) -> PassResult:
        """
        Run one pass over ``statements``.

        Results are collected in submission order regardless of completion
        order.

        Raises:
            PoolCreationError: The connection pool could not be opened
            ValidationInterrupted: Interrupted while waiting for results
        """
        label = target.label
        logger.info(
            f"Validating against {label} database: {target.describe()} "
            f"with {self.thread_count} thread(s)"
        )
        try:
            pool = self.pool_factory(target, self.thread_count)
        except Exception as e:
            raise PoolCreationError(label, str(e).strip()) from e

        executor = ThreadPoolExecutor(max_workers=self.thread_count, thread_name_prefix=f"sql-valid-{label}")
        interrupted = False
        outcome = PassResult()
        try:
            futures = [
                (statement, executor.submit(self.validate_statement, pool, statement, label))
                for statement in statements
            ]
            for statement, future in futures:
                try:
                    outcome.results.append(future.result())
                except KeyboardInterrupt as e:
                    interrupted = True
                    raise ValidationInterrupted(label) from e
                except Exception as e:
                    logger.error(f"Worker failed for {statement.full_id}: {e}")
                    outcome.results.append(ValidationResult.failed(statement, label, str(e)))
        finally:
            executor.shutdown(wait=not interrupted, cancel_futures=True)
            try:
                pool.closeall()
            except Exception as e:
                logger.debug(f"Failed to close {label} connection pool: {e}")

        failures = sum(1 for result in outcome.results if not result.success)
        outcome.summary = ValidationSummary(label, len(statements), failures)
        return outcome

    def validate_statement(self, pool, statement: StatementRecord, label: str) -> ValidationResult:
        """Validate one statement on its own connection checkout."""
        try:
            conn = pool.getconn()
        except Exception as e:
            return ValidationResult.failed(statement, label, str(e).strip())

        discard = False
        try:
            conn.set_session(readonly=not self.execute_statements, autocommit=False)
            result = self._validate_in_savepoint(conn, statement, label)
            try:
                conn.rollback()
            except psycopg2.Error as e:
                logger.debug(f"[{label}] Rollback failed after {statement.full_id}: {e}")
                discard = True
            return result
        except Exception as e:
            discard = True
            return ValidationResult.failed(statement, label, str(e).strip())
        finally:
            pool.putconn(conn, close=discard)

    def _validate_in_savepoint(self, conn, statement: StatementRecord, label: str) -> ValidationResult:
        savepoint_set = False
        try:
            with conn.cursor() as cur:
                cur.execute(f"SAVEPOINT {SAVEPOINT_NAME}")
                savepoint_set = True

                sql = self.prepare(statement)
                cur.execute(f"SET LOCAL statement_timeout = {int(self.statement_timeout_seconds * 1000)}")
                values = self.generator.bind(statement.parameters)
                cur.execute(sql, values if values else None)

            logger.debug(f"[{label}] OK {statement.full_id}")
            result = ValidationResult.passed(statement, label)
        except Exception as e:
            logger.debug(f"[{label}] FAIL {statement.full_id}: {type(e).__name__}: {e}")
            result = ValidationResult.failed(statement, label, str(e).strip())

        if savepoint_set:
            try:
                with conn.cursor() as cur:
                    cur.execute(f"ROLLBACK TO SAVEPOINT {SAVEPOINT_NAME}")
            except psycopg2.Error as e:
                logger.debug(f"[{label}] Could not roll back to savepoint for {statement.full_id}: {e}")
        return result

    def prepare(self, statement: StatementRecord) -> str:
        """SQL text as sent to the driver for ``statement``."""
        if statement.parameters:
            sql = to_prepared_sql(statement.resolved_sql)
        else:
            sql = replace_named_placeholders(statement.resolved_sql)
        if not self.execute_statements:
            sql = EXPLAIN_PREFIX + sql
        return sql
