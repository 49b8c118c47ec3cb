"""
JSON report for a validation run.

Layout:
    {
      "total": 3,
      "failures": 1,
      "databases": [{"label": "origin", "total": 3, "failures": 1}],
      "entriesByDatabase": {
        "origin": [{"id": ..., "kind": ..., "file": ..., "database": ...,
                    "success": ..., "error": ...}]
      }
    }
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union
import json
import logging

from .engine import ValidationResult, ValidationSummary


logger = logging.getLogger(__name__)


def group_by_database(results: Iterable[ValidationResult]) -> Dict[str, List[ValidationResult]]:
    """Group results by database label, keeping first-seen label order."""
    grouped: Dict[str, List[ValidationResult]] = {}
    for result in results:
        grouped.setdefault(result.database_label, []).append(result)
    return grouped


def build_report(
    results: Sequence[ValidationResult],
    summaries: Iterable[Optional[ValidationSummary]],
) -> Dict[str, Any]:
    """Build the report document; ``None`` summaries (skipped passes) are left out."""
    return {
        "total": len(results),
        "failures": sum(1 for result in results if not result.success),
        "databases": [summary.to_dict() for summary in summaries if summary is not None],
        "entriesByDatabase": {
            label: [result.to_dict() for result in entries]
            for label, entries in group_by_database(results).items()
        },
    }


class ReportWriter:
    """Writes the JSON report; failures to write are logged, never raised."""

    def __init__(self, path: Optional[Union[str, Path]]):
        self.path = Path(path) if path and str(path).strip() else None

    def write(
        self,
        results: Sequence[ValidationResult],
        summaries: Iterable[Optional[ValidationSummary]],
    ) -> Optional[Path]:
        """
        Write the report.

        Returns:
            Absolute path written, or None when no path is configured or the
            write failed
        """
        if self.path is None:
            return None
        try:
            report = build_report(results, summaries)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(report, indent=2), encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to write report: {e}")
            return None

        written = self.path.absolute()
        logger.info(f"Wrote validation report to {written}")
        return written
