"""
Error Classification for Statement Failures

Categorizes the PostgreSQL error text recorded for a failed statement so the
run summary can show what kind of incompatibility each failure is, e.g. a
function the target engine lacks versus a type mismatch.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
import re


class ErrorCategory(Enum):
    """Statement failure categories."""
    SYNTAX_ERROR = "SYNTAX_ERROR"
    UNDEFINED_FUNCTION = "UNDEFINED_FUNCTION"
    RELATION_NOT_FOUND = "RELATION_NOT_FOUND"
    COLUMN_NOT_FOUND = "COLUMN_NOT_FOUND"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    READ_ONLY_VIOLATION = "READ_ONLY_VIOLATION"
    TIMEOUT = "TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorClassification:
    """
    Result of classifying a statement failure.

    Attributes:
        category: The error category
        message: Human-readable explanation of the category
    """
    category: ErrorCategory
    message: str


class ErrorClassifier:
    """
    Classifies PostgreSQL error text by pattern matching.

    Patterns are tried in priority order (lower first); the first match wins.
    """

    ERROR_PATTERNS = [
        # Priority 1: errors whose text also matches broader patterns below
        {
            "priority": 1,
            "patterns": [r"canceling statement due to statement timeout", r"statement timeout"],
            "category": ErrorCategory.TIMEOUT,
            "message": "Statement exceeded the per-statement timeout",
        },
        {
            "priority": 1,
            "patterns": [r"read-only transaction"],
            "category": ErrorCategory.READ_ONLY_VIOLATION,
            "message": "Statement tried to write inside a read-only transaction",
        },
        {
            "priority": 1,
            "patterns": [r"function .* does not exist", r"operator does not exist"],
            "category": ErrorCategory.UNDEFINED_FUNCTION,
            "message": "Function or operator is not available on this database",
        },

        # Priority 2: common incompatibilities
        {
            "priority": 2,
            "patterns": [r"syntax error"],
            "category": ErrorCategory.SYNTAX_ERROR,
            "message": "SQL syntax is not accepted by this database",
        },
        {
            "priority": 2,
            "patterns": [r"column .* does not exist"],
            "category": ErrorCategory.COLUMN_NOT_FOUND,
            "message": "Referenced column does not exist",
        },
        {
            "priority": 2,
            "patterns": [r"relation .* does not exist", r"table .* does not exist"],
            "category": ErrorCategory.RELATION_NOT_FOUND,
            "message": "Referenced table or view does not exist",
        },
        {
            "priority": 2,
            "patterns": [
                r"invalid input syntax for",
                r"is of type .* but expression is of type",
                r"cannot cast",
                r"could not determine data type",
            ],
            "category": ErrorCategory.TYPE_MISMATCH,
            "message": "Parameter or expression type does not match the column type",
        },
        {
            "priority": 2,
            "patterns": [r"permission denied"],
            "category": ErrorCategory.PERMISSION_DENIED,
            "message": "Insufficient privileges for this statement",
        },

        # Priority 3: infrastructure
        {
            "priority": 3,
            "patterns": [
                r"connection.*refused",
                r"could not connect",
                r"server closed the connection",
                r"connection already closed",
                r"connection pool exhausted",
            ],
            "category": ErrorCategory.CONNECTION_ERROR,
            "message": "Database connection error",
        },
    ]

    def __init__(self):
        self.patterns = sorted(self.ERROR_PATTERNS, key=lambda p: p["priority"])

    def classify(self, error: Optional[str]) -> ErrorClassification:
        """
        Classify a recorded error message.

        Args:
            error: Error text, possibly prefixed with the database label

        Returns:
            ErrorClassification; UNKNOWN when nothing matches
        """
        error_lower = (error or "").lower()
        for pattern_def in self.patterns:
            for pattern in pattern_def["patterns"]:
                if re.search(pattern, error_lower):
                    return ErrorClassification(
                        category=pattern_def["category"],
                        message=pattern_def["message"],
                    )

        return ErrorClassification(
            category=ErrorCategory.UNKNOWN,
            message="Unexpected database error",
        )

    def breakdown(self, errors: Iterable[Optional[str]]) -> Dict[ErrorCategory, int]:
        """Count errors per category, in first-seen order."""
        counts: Dict[ErrorCategory, int] = {}
        for error in errors:
            category = self.classify(error).category
            counts[category] = counts.get(category, 0) + 1
        return counts

    def format_breakdown(self, counts: Dict[ErrorCategory, int]) -> List[str]:
        return [f"{category.value}: {count}" for category, count in counts.items()]
