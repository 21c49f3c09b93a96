"""Explicit orchestrator state: sequence counter, in-flight handle, statuses."""

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from tactiq.analyzers.errors import AnalysisFailedError
from tactiq.merge.merger import TacticalRecommendation
from tactiq.routing.types import ANALYZERS, AnalyzerName, RouterDecision

TACTICAL_FALLBACK_REASON = "skipped due to tactical fallback"
NOT_ROUTED_REASON = "not selected by router"


class AgentStatus(StrEnum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"


@dataclass
class AgentRunResult:
    analyzer: AnalyzerName
    status: AgentStatus = AgentStatus.IDLE
    payload: dict[str, Any] | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "analyzer": self.analyzer,
            "status": self.status.value,
            "reason": self.reason,
            "hasPayload": self.payload is not None,
        }


def _idle_agents() -> dict[AnalyzerName, AgentRunResult]:
    return {name: AgentRunResult(analyzer=name) for name in ANALYZERS}


@dataclass
class OrchestratorState:
    """Mutable state owned by one AgentOrchestrator.

    Only results whose sequence equals `sequence` at completion time may be
    applied here; anything older is discarded without touching this object.
    """

    sequence: int = 0
    in_flight: asyncio.Task | None = None
    agents: dict[AnalyzerName, AgentRunResult] = field(default_factory=_idle_agents)
    router_decision: RouterDecision | None = None
    recommendation: TacticalRecommendation | None = None
    last_failure: AnalysisFailedError | None = None
    attempts: list[dict[str, Any]] = field(default_factory=list)

    def next_sequence(self) -> int:
        self.sequence += 1
        return self.sequence

    def is_current(self, sequence: int) -> bool:
        return sequence == self.sequence

    def set_status(
        self,
        analyzer: AnalyzerName,
        status: AgentStatus,
        reason: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        self.agents[analyzer] = AgentRunResult(analyzer=analyzer, status=status, payload=payload, reason=reason)

    def fail_running(self, reason: str) -> None:
        for name, result in self.agents.items():
            if result.status == AgentStatus.RUNNING:
                self.set_status(name, AgentStatus.ERROR, reason=reason)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "running": self.in_flight is not None and not self.in_flight.done(),
            "agents": {name: result.to_dict() for name, result in self.agents.items()},
            "routerDecision": self.router_decision.to_payload() if self.router_decision else None,
            "recommendation": self.recommendation.to_dict() if self.recommendation else None,
            "failure": self.last_failure.to_dict() if self.last_failure else None,
            "attempts": list(self.attempts),
        }
