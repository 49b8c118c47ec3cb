"""
sql_compat: MyBatis mapper SQL compatibility checker

Scans mapper XML files, resolves every mapped statement into concrete SQL,
and checks that each one runs (or plans) on an origin PostgreSQL database
and, if the origin is clean, on the target database being migrated to.
"""

__version__ = "0.1.0"

from .config import RunConfig
from .engine import (
    DatabaseTarget,
    PassResult,
    ValidationEngine,
    ValidationResult,
    ValidationSummary,
)
from .error_classifier import ErrorCategory, ErrorClassifier
from .errors import (
    ConfigurationError,
    MapperScanError,
    PoolCreationError,
    SqlCompatError,
    TemplateError,
    ValidationInterrupted,
)
from .params import SampleValueGenerator
from .report import ReportWriter, build_report
from .runner import RunOutcome, run
from .scanner import MapperScanner, SampleParamMap
from .statements import ParameterSpec, StatementKind, StatementRecord

__all__ = [
    "ParameterSpec",
    "StatementKind",
    "StatementRecord",
    "SampleValueGenerator",
    "MapperScanner",
    "SampleParamMap",
    "DatabaseTarget",
    "ValidationEngine",
    "ValidationResult",
    "ValidationSummary",
    "PassResult",
    "ReportWriter",
    "build_report",
    "ErrorClassifier",
    "ErrorCategory",
    "RunConfig",
    "RunOutcome",
    "run",
    "SqlCompatError",
    "ConfigurationError",
    "MapperScanError",
    "TemplateError",
    "PoolCreationError",
    "ValidationInterrupted",
    "__version__",
]
