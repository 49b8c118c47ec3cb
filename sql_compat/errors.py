"""
Exception taxonomy for sql_compat.

Only run-aborting conditions are exceptions. Per-statement validation
failures are captured as ValidationResult values and never raised past the
validation engine; missing mapper directories are logged and recorded on the
scanner instead of raised.
"""

from pathlib import Path
from typing import Optional, Union


class SqlCompatError(Exception):
    """Base class for all sql_compat errors."""


class ConfigurationError(SqlCompatError):
    """Run configuration is incomplete or invalid."""


class TemplateError(SqlCompatError):
    """A mapper template could not be resolved into SQL."""


class MapperScanError(SqlCompatError):
    """
    A mapper file could not be parsed or resolved.

    Fatal to the whole scan: a malformed mapper is treated as a broken build,
    not as a file to skip.

    Attributes:
        path: Mapper file that failed
    """

    def __init__(self, path: Union[str, Path], reason: Optional[str] = None):
        self.path = Path(path)
        message = f"Failed to parse mapper file {self.path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PoolCreationError(SqlCompatError):
    """The connection pool for a database pass could not be created."""

    def __init__(self, label: str, reason: str):
        self.label = label
        super().__init__(f"Could not open connection pool for {label} database: {reason}")


class ValidationInterrupted(SqlCompatError):
    """A validation pass was interrupted while waiting for results."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Validation interrupted for {label}")
