"""
Structured schemas for analyzer outputs and the final report.

These Pydantic models are the contract between the analyzers, the
aggregator, and the renderers. All of them are immutable.
"""

from enum import Enum
from functools import total_ordering
from typing import Annotated, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


@total_ordering
class RiskLevel(Enum):
    """
    Risk severity levels, totally ordered LOW < MEDIUM < HIGH.

    Comparison goes by rank, not by the string value.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANKS[self]

    def __lt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank < other.rank

    def __str__(self) -> str:
        return self.value.upper()

    @classmethod
    def from_findings(cls, findings: Iterable["Finding"]) -> "RiskLevel":
        """
        Derive a risk level from a set of findings.

        HIGH if any finding is HIGH, MEDIUM if any is MEDIUM, LOW otherwise
        (including when there are no findings).
        """
        return max((finding.severity for finding in findings), default=cls.LOW)


_RISK_RANKS = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}


class Finding(BaseModel):
    """A single observation emitted by an analyzer."""

    model_config = ConfigDict(frozen=True)

    message: str = Field(..., min_length=1)
    severity: RiskLevel
    file: Optional[str] = None
    line: Optional[int] = Field(None, ge=0)
    rule_id: Optional[str] = None

    @property
    def location(self) -> str:
        """Human-readable location, e.g. 'src/db.rs:42'."""
        if self.file and self.line is not None:
            return f"{self.file}:{self.line}"
        return self.file or ""


class AnalysisResult(BaseModel):
    """Result from a single analyzer run."""

    model_config = ConfigDict(frozen=True)

    status: Literal["ok"] = "ok"
    analyzer_name: str
    title: str
    risk_level: RiskLevel
    findings: List[Finding] = Field(default_factory=list)

    @classmethod
    def from_findings(cls, analyzer_name: str, title: str, findings: List[Finding]) -> "AnalysisResult":
        """Build a result whose risk level is derived from its findings."""
        return cls(
            analyzer_name=analyzer_name,
            title=title,
            risk_level=RiskLevel.from_findings(findings),
            findings=findings,
        )


class DegradedResult(BaseModel):
    """Marker for an analyzer that failed to produce a result."""

    model_config = ConfigDict(frozen=True)

    status: Literal["degraded"] = "degraded"
    analyzer_name: str
    title: str
    error_type: str
    reason: str


AnalyzerOutcome = Annotated[
    Union[AnalysisResult, DegradedResult],
    Field(discriminator="status"),
]


class Report(BaseModel):
    """Complete report combining all analyzer outcomes."""

    model_config = ConfigDict(frozen=True)

    pr_number: int
    pr_title: str
    author: str
    files_changed: int
    additions: int
    deletions: int

    # Analyzer name -> outcome, in the caller-defined analyzer order
    outcomes: Dict[str, AnalyzerOutcome] = Field(default_factory=dict)

    # Highest risk across available results; None when no analyzer completed
    overall_risk: Optional[RiskLevel] = None

    @property
    def results(self) -> List[AnalysisResult]:
        return [o for o in self.outcomes.values() if isinstance(o, AnalysisResult)]

    @property
    def degraded(self) -> List[DegradedResult]:
        return [o for o in self.outcomes.values() if isinstance(o, DegradedResult)]

    @property
    def is_complete(self) -> bool:
        """True when every analyzer produced a result."""
        return not self.degraded

    @property
    def total_findings(self) -> int:
        return sum(len(r.findings) for r in self.results)
