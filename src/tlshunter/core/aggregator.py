"""Cross-file grouping of risks for summary reporting."""

import threading
from dataclasses import dataclass, field

from tlshunter.models.risk import Analysis, RiskType


@dataclass
class ReasonGroup:
    reason: str
    analyses: list[Analysis] = field(default_factory=list)


@dataclass
class RiskGroup:
    type: RiskType
    reasons: list[ReasonGroup]

    @property
    def count(self) -> int:
        """Number of (file, reason) contributions to this risk type."""
        return sum(len(group.analyses) for group in self.reasons)


class RiskAggregator:
    """Group analyses by risk type and reason.

    ``add`` may be called from several worker threads; inserts are
    serialized with a lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._groups: dict[RiskType, dict[str, list[Analysis]]] = {}

    def add(self, analysis: Analysis) -> None:
        """Record every risk of an analysis."""
        with self._lock:
            for risk in analysis.risks:
                reasons = self._groups.setdefault(risk.type, {})
                reasons.setdefault(risk.reason, []).append(analysis)

    def groups(self) -> list[RiskGroup]:
        """Snapshot of the groups in risk type declaration order.

        Reasons keep the order in which they were first seen.
        """
        with self._lock:
            return [
                RiskGroup(
                    type=risk_type,
                    reasons=[
                        ReasonGroup(reason=reason, analyses=list(analyses))
                        for reason, analyses in self._groups[risk_type].items()
                    ],
                )
                for risk_type in RiskType
                if risk_type in self._groups
            ]
