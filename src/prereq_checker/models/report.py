"""
Report assembled from all check results.
"""
from typing import Any, Dict, List

from pydantic import BaseModel, Field, PrivateAttr

from src.prereq_checker.models.verdicts import CheckResult, Verdict, fold_verdicts


class ReportFrozenError(RuntimeError):
    """Raised when a result is recorded after the report was rendered."""


class Report(BaseModel):
    """Check name to result mapping, in execution order."""

    results: Dict[str, CheckResult] = Field(default_factory=dict)

    _rendered: bool = PrivateAttr(default=False)

    def record(self, result: CheckResult) -> None:
        if self._rendered:
            raise ReportFrozenError(f"Cannot record '{result.name}': report already rendered")
        self.results[result.name] = result

    @property
    def verdicts(self) -> Dict[str, Verdict]:
        return {name: result.verdict for name, result in self.results.items()}

    @property
    def overall(self) -> Verdict:
        return fold_verdicts(self.verdicts.values())

    @property
    def failed(self) -> bool:
        return self.overall is Verdict.FAIL

    @property
    def exit_code(self) -> int:
        """1 if any check failed. Warnings and skips do not change the exit status."""
        return 1 if self.failed else 0

    def render(self) -> str:
        """
        Render the summary table. The report cannot be changed afterwards.

        Returns:
            Human-readable summary, one line per check
        """
        self._rendered = True

        lines: List[str] = ["Prerequisite Checker Tool Summary", ""]
        for name, result in self.results.items():
            lines.append(f"      [ {result.verdict.value:^7} ] {name}")

        problems = [r for r in self.results.values() if r.verdict in (Verdict.FAIL, Verdict.WARN)]
        if problems:
            lines.append("")
            for result in problems:
                marker = "✗" if result.verdict is Verdict.FAIL else "⚠"
                lines.append(f"  {marker} {result.name}: {result.message}")

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly form of the report."""
        return {
            "overall": self.overall.value,
            "exit_code": self.exit_code,
            "checks": [result.model_dump(mode="json") for result in self.results.values()],
        }
