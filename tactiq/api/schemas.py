"""Request schemas for the tactIQ HTTP API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tactiq.routing.types import AnalysisMode
from tactiq.scoring.actions import BowlerWorkload, SavedWorkload, WorkloadAction
from tactiq.scoring.workload import InjuryRisk


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WorkloadScoreRequest(_ApiModel):
    """Raw workload inputs; values are clamped by the scorer, not rejected."""

    overs_bowled: Any = 0
    max_overs: Any = None
    match_format: str | None = None
    fatigue: Any = None
    fatigue_limit: Any = 6
    sleep_hours: Any = 7
    recovery_minutes: Any = 45
    phase: Any = "Middle"
    role: Any = "All-rounder"
    spell_overs: Any = 0
    recovery: Any = None
    is_unfit: bool = False


class SavedWorkloadBody(_ApiModel):
    overs: int = 0
    last_rest_overs: int = 0
    fatigue: float = 0.0
    strain: float = 0.0
    is_resting: bool = False
    rest_elapsed_seconds: float = 0.0


class BowlerWorkloadBody(_ApiModel):
    player_id: str
    match_format: str = "T20"
    overs: int = 0
    last_rest_overs: int = 0
    fatigue: float = 2.5
    strain: float = 0.0
    is_resting: bool = False
    rest_elapsed_seconds: float = 0.0
    is_unfit: bool = False
    injury_risk: InjuryRisk = InjuryRisk.LOW
    saved: SavedWorkloadBody | None = None

    def to_workload(self) -> BowlerWorkload:
        data = self.model_dump(exclude={"saved"})
        saved = SavedWorkload(**self.saved.model_dump()) if self.saved is not None else None
        return BowlerWorkload(**data, saved=saved)


class WorkloadBaselineBody(_ApiModel):
    """Baseline profile used when re-scoring after an action."""

    fatigue_limit: Any = 6
    sleep_hours: Any = 7
    recovery_minutes: Any = 45
    phase: Any = "Middle"
    role: Any = "All-rounder"
    recovery: Any = None


class WorkloadActionRequest(_ApiModel):
    workload: BowlerWorkloadBody
    action: WorkloadAction
    intensity: str | None = None
    seconds: float = 0.0
    recovery: str | None = None
    delta: float = 0.0
    baseline: WorkloadBaselineBody = Field(default_factory=WorkloadBaselineBody)


class ContextRequest(_ApiModel):
    context: dict[str, Any] = Field(default_factory=dict)


class RouteRequest(ContextRequest):
    mode: AnalysisMode = "auto"


class AnalysisRequest(ContextRequest):
    mode: AnalysisMode = "auto"
