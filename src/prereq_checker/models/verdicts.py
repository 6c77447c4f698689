"""
Verdicts and check results.
"""
from enum import Enum
from functools import reduce
from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


class Verdict(str, Enum):
    """Outcome of one check. Aggregation order: FAIL > WARN > PASS > SKIP."""

    PASS = "PASS"
    WARN = "WARNING"
    FAIL = "FAIL"
    SKIP = "SKIP"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def worst(self, other: "Verdict") -> "Verdict":
        """Return whichever of the two verdicts ranks higher."""
        return self if self.severity >= other.severity else other


_SEVERITY = {
    Verdict.SKIP: 0,
    Verdict.PASS: 1,
    Verdict.WARN: 2,
    Verdict.FAIL: 3,
}


def fold_verdicts(verdicts: Iterable[Verdict]) -> Verdict:
    """
    Worst-wins fold over a sequence of verdicts.

    Examples:
        >>> fold_verdicts([Verdict.PASS, Verdict.WARN])
        <Verdict.WARN: 'WARNING'>
        >>> fold_verdicts([])
        <Verdict.SKIP: 'SKIP'>
    """
    return reduce(Verdict.worst, verdicts, Verdict.SKIP)


class FailureKind(str, Enum):
    """Why a check did not pass."""

    STRUCTURAL_FAILURE = "structural_failure"
    DEGRADED_CONDITION = "degraded_condition"
    UNSUPPORTED_INPUT = "unsupported_input"
    PROBE_TIMEOUT = "probe_timeout"


class CheckResult(BaseModel):
    """Verdict recorded by one check."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Check title shown in the summary")
    verdict: Verdict
    message: str = ""
    failure_kind: Optional[FailureKind] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def passed(cls, name: str, message: str = "", /, **details: Any) -> "CheckResult":
        return cls(name=name, verdict=Verdict.PASS, message=message, details=details)

    @classmethod
    def warned(
        cls,
        name: str,
        message: str,
        /,
        kind: FailureKind = FailureKind.DEGRADED_CONDITION,
        **details: Any,
    ) -> "CheckResult":
        return cls(name=name, verdict=Verdict.WARN, message=message, failure_kind=kind, details=details)

    @classmethod
    def failed(
        cls,
        name: str,
        message: str,
        /,
        kind: FailureKind = FailureKind.STRUCTURAL_FAILURE,
        **details: Any,
    ) -> "CheckResult":
        return cls(name=name, verdict=Verdict.FAIL, message=message, failure_kind=kind, details=details)

    @classmethod
    def skipped(cls, name: str, message: str = "") -> "CheckResult":
        return cls(name=name, verdict=Verdict.SKIP, message=message)
