"""Routing types: which specialist analyzers run for one analysis cycle."""

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field

AnalyzerName = Literal["fatigue", "risk", "tactical"]
AnalysisMode = Literal["auto", "full"]

ANALYZERS: tuple[AnalyzerName, ...] = ("fatigue", "risk", "tactical")


class RouterIntent(StrEnum):
    FULL_COVERAGE = "FullCoverage"
    INJURY_PREVENTION = "InjuryPrevention"
    NO_BALL_CONTROL = "NoBallControl"
    PRESSURE_CONTROL = "PressureControl"
    TACTICAL_ATTACK = "TacticalAttack"


class RouterDecision(BaseModel):
    """Ephemeral routing decision, produced fresh per analysis request.

    The tactical analyzer is always selected. The intent label is for
    operator-facing explanation only and never changes which analyzers run.
    """

    intent: RouterIntent
    selected_analyzers: list[AnalyzerName]
    rationale: str
    signals_used: dict[str, Any] = Field(default_factory=dict)
    rules_fired: list[str] = Field(default_factory=list)

    def runs(self, analyzer: AnalyzerName) -> bool:
        return analyzer in self.selected_analyzers

    def to_payload(self) -> dict[str, Any]:
        return {
            "intent": self.intent.value,
            "selectedAgents": list(self.selected_analyzers),
            "run": {name: name in self.selected_analyzers for name in ANALYZERS},
            "reason": self.rationale,
            "rulesFired": list(self.rules_fired),
            "signals": dict(self.signals_used),
        }
