"""
errors/aggregator.py - Aggregate and report build errors
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List
import uuid

from .taxonomy import BuildError, ErrorCategory, RenderFailure


@dataclass
class ErrorReport:
    """Aggregated error report."""

    report_id: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Counts
    total_errors: int = 0
    by_category: Dict[str, int] = field(default_factory=dict)

    # Render failures per unit handle
    failed_units: Dict[str, int] = field(default_factory=dict)

    # Summary
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "created_at": self.created_at.isoformat(),
            "total_errors": self.total_errors,
            "by_category": self.by_category,
            "failed_units": self.failed_units,
            "summary": self.summary,
        }


class ErrorAggregator:
    """
    Aggregates errors across the batches of one build session.
    """

    def __init__(self, max_errors: int = 1000):
        self._errors: List[BuildError] = []
        self._max_errors = max_errors

    def add(self, error: BuildError) -> None:
        """Add an error."""
        self._errors.append(error)
        if len(self._errors) > self._max_errors:
            self._errors = self._errors[-self._max_errors:]

    def add_all(self, errors: List[BuildError]) -> None:
        """Add multiple errors."""
        for error in errors:
            self.add(error)

    def get_by_category(self, category: ErrorCategory) -> List[BuildError]:
        """Get errors by category."""
        return [e for e in self._errors if e.category == category]

    def has_errors(self) -> bool:
        return bool(self._errors)

    def clear(self) -> None:
        self._errors.clear()

    def generate_report(self) -> ErrorReport:
        """Generate aggregated report."""
        report = ErrorReport(
            report_id=str(uuid.uuid4())[:8],
            total_errors=len(self._errors),
        )

        for category in ErrorCategory:
            count = sum(1 for e in self._errors if e.category == category)
            if count > 0:
                report.by_category[category.value] = count

        for error in self._errors:
            if isinstance(error, RenderFailure):
                handle = error.unit.handle
                report.failed_units[handle] = report.failed_units.get(handle, 0) + 1

        if not self._errors:
            report.summary = "No errors"
        elif report.failed_units:
            report.summary = (
                f"{report.total_errors} error(s), "
                f"{len(report.failed_units)} unit(s) failed to render"
            )
        else:
            report.summary = f"{report.total_errors} error(s)"

        return report

    def __len__(self) -> int:
        return len(self._errors)
