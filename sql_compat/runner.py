"""
Run driver: scan, validate origin, validate target if origin passed, report.

The two database passes are independent engine runs invoked one after the
other, so the gate between them is a plain branch on the origin summary.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import logging

from .config import RunConfig
from .engine import ValidationEngine, ValidationResult, ValidationSummary
from .error_classifier import ErrorClassifier
from .report import ReportWriter
from .scanner import MapperScanner
from .statements import StatementRecord


logger = logging.getLogger(__name__)


@dataclass
class RunOutcome:
    """
    Everything a run produced.

    Attributes:
        statements: Statements found by the scan
        results: Per-statement results, origin pass first
        origin: Origin pass summary (None when nothing was scanned)
        target: Target pass summary (None when skipped)
        report_path: Report written, if any
    """
    statements: List[StatementRecord] = field(default_factory=list)
    results: List[ValidationResult] = field(default_factory=list)
    origin: Optional[ValidationSummary] = None
    target: Optional[ValidationSummary] = None
    report_path: Optional[Path] = None

    @property
    def failures(self) -> int:
        return sum(1 for result in self.results if not result.success)

    @property
    def target_skipped(self) -> bool:
        return self.origin is not None and self.target is None

    @property
    def passed(self) -> bool:
        return self.failures == 0


def build_engine(config: RunConfig) -> ValidationEngine:
    return ValidationEngine(
        statement_timeout_seconds=config.statement_timeout_seconds,
        execute_statements=config.execute_statements,
        thread_count=config.thread_count,
    )


def run(
    config: RunConfig,
    engine: Optional[ValidationEngine] = None,
    scanner: Optional[MapperScanner] = None,
) -> RunOutcome:
    """
    Execute a full validation run.

    Raises:
        MapperScanError: A mapper file could not be parsed (no validation runs)
        PoolCreationError: A database could not be reached at all
        ValidationInterrupted: The run was interrupted
    """
    engine = engine or build_engine(config)
    scanner = scanner or MapperScanner(config.mapper_directories, config.includes, config.excludes)

    outcome = RunOutcome(statements=scanner.scan())
    if not outcome.statements:
        logger.warning("No mapper statements found. Check mapper directories/includes/excludes.")
        return outcome

    logger.info(f"Found {len(outcome.statements)} mapped statements. Validating...")
    origin_pass = engine.validate(config.origin, outcome.statements)
    outcome.results.extend(origin_pass.results)
    outcome.origin = origin_pass.summary

    if outcome.origin.passed:
        target_pass = engine.validate(config.target, outcome.statements)
        outcome.results.extend(target_pass.results)
        outcome.target = target_pass.summary
    else:
        logger.warning("Skipping target database validation because origin database had failures.")

    outcome.report_path = ReportWriter(config.report_path).write(
        outcome.results, [outcome.origin, outcome.target]
    )
    log_summary(outcome)
    return outcome


def log_summary(outcome: RunOutcome, classifier: Optional[ErrorClassifier] = None):
    """Log per-database totals, one line per result and a failure breakdown."""
    classifier = classifier or ErrorClassifier()

    logger.info("Validation summary:")
    for label, summary in (("origin", outcome.origin), ("target", outcome.target)):
        if summary is None:
            logger.info(f" - {label}: skipped")
        else:
            logger.info(f" - {label}: {summary.failures} failure(s) out of {summary.total}")

    for result in outcome.results:
        statement = result.statement
        line = f"{statement.full_id} ({statement.kind.value}) [{result.database_label}]"
        if result.success:
            logger.info(f"OK   {line}")
        else:
            category = classifier.classify(result.error_message).category
            logger.error(f"FAIL {line} {category.value} {result.error_message}")

    if outcome.failures:
        counts = classifier.breakdown(r.error_message for r in outcome.results if not r.success)
        logger.info(f"Failures by category: {', '.join(classifier.format_breakdown(counts))}")
