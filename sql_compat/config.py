"""
Run configuration.

Defaults mirror the usual layout of a Java project keeping its MyBatis
mappers under src/main/resources. Connection settings can come from the
environment (or a .env file) so credentials stay off the command line:

    ORIGIN_DB_CONNECTION, ORIGIN_DB_USER, ORIGIN_DB_PASSWORD
    TARGET_DB_CONNECTION, TARGET_DB_USER, TARGET_DB_PASSWORD
"""

from dataclasses import dataclass, field
from typing import List, Mapping, Optional
import os

from dotenv import load_dotenv

from .engine import DEFAULT_STATEMENT_TIMEOUT_SECONDS, DEFAULT_THREAD_COUNT, DatabaseTarget
from .errors import ConfigurationError


ORIGIN_LABEL = "origin"
TARGET_LABEL = "target"

DEFAULT_MAPPER_DIRECTORIES = ["src/main/resources"]
DEFAULT_INCLUDES = ["**/*Mapper.xml"]
DEFAULT_REPORT_PATH = "target/sql-valid-report.json"


def _env_target(label: str, env: Mapping[str, str]) -> Optional[DatabaseTarget]:
    prefix = label.upper()
    dsn = env.get(f"{prefix}_DB_CONNECTION")
    if not dsn:
        return None
    return DatabaseTarget(
        label=label,
        dsn=dsn,
        user=env.get(f"{prefix}_DB_USER"),
        password=env.get(f"{prefix}_DB_PASSWORD"),
    )


@dataclass
class RunConfig:
    """
    Settings for one validation run.

    Attributes:
        origin: Database the mappers currently run on (validated first)
        target: Database being migrated to (validated only if origin passes)
        mapper_directories: Root directories to scan
        includes: Include patterns, relative to each directory
        excludes: Exclude patterns
        statement_timeout_seconds: Per-statement execution timeout
        execute_statements: Execute statements instead of EXPLAIN
        thread_count: Workers per database pass
        report_path: JSON report location; empty disables the report
    """
    origin: Optional[DatabaseTarget] = None
    target: Optional[DatabaseTarget] = None
    mapper_directories: List[str] = field(default_factory=lambda: list(DEFAULT_MAPPER_DIRECTORIES))
    includes: List[str] = field(default_factory=lambda: list(DEFAULT_INCLUDES))
    excludes: List[str] = field(default_factory=list)
    statement_timeout_seconds: int = DEFAULT_STATEMENT_TIMEOUT_SECONDS
    execute_statements: bool = False
    thread_count: int = DEFAULT_THREAD_COUNT
    report_path: Optional[str] = DEFAULT_REPORT_PATH

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "RunConfig":
        """
        Build a config with database targets taken from the environment.

        When ``env`` is omitted, a .env file in the working directory is
        loaded first and os.environ is used.
        """
        if env is None:
            load_dotenv()
            env = os.environ
        config = cls(origin=_env_target(ORIGIN_LABEL, env), target=_env_target(TARGET_LABEL, env))
        for name, value in overrides.items():
            if value is not None:
                setattr(config, name, value)
        return config

    def validate(self) -> "RunConfig":
        """
        Check required settings and clamp the thread count.

        Raises:
            ConfigurationError: A database connection is missing or the
                timeout is not positive
        """
        if self.origin is None or not self.origin.dsn:
            raise ConfigurationError(
                "Origin database connection not specified "
                "(use --origin-db or ORIGIN_DB_CONNECTION)"
            )
        if self.target is None or not self.target.dsn:
            raise ConfigurationError(
                "Target database connection not specified "
                "(use --target-db or TARGET_DB_CONNECTION)"
            )
        if self.statement_timeout_seconds <= 0:
            raise ConfigurationError(
                f"Statement timeout must be positive, got {self.statement_timeout_seconds}"
            )
        self.thread_count = max(1, self.thread_count)
        return self
