"""Workload-affecting actions for a single bowler.

Each action takes a BowlerWorkload and returns a new one; records are never
mutated in place. Callers re-derive the WorkloadSnapshot and risk state
after every action with rederive().
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Literal

from loguru import logger

from tactiq.scoring.workload import (
    FATIGUE_RANGE,
    DerivedRiskState,
    InjuryRisk,
    RecoveryLevel,
    WorkloadSnapshot,
    clamp,
    clamp_overs_bowled,
    max_overs_for_format,
    normalize_recovery,
    round1,
    score_workload,
)

STRAIN_RANGE = (0.0, 10.0)
OVER_FATIGUE_STEP = 0.9


def intensity_multiplier(intensity: str | None) -> float:
    normalized = str(intensity or "").strip().upper()
    if normalized in {"COOL", "LOW"}:
        return 0.85
    if normalized in {"POWERPLAY", "HIGH"}:
        return 1.15
    return 1.0


def recovery_delta_per_minute(recovery: RecoveryLevel | None) -> float:
    """Fatigue shed per minute of rest for a heart-rate recovery level."""
    if recovery == RecoveryLevel.GOOD:
        return 0.2
    if recovery == RecoveryLevel.POOR:
        return 0.0
    return 0.1


@dataclass(frozen=True)
class SavedWorkload:
    """Pre-unfit values restored by clear_unfit."""

    overs: int
    last_rest_overs: int
    fatigue: float
    strain: float
    is_resting: bool
    rest_elapsed_seconds: float


@dataclass(frozen=True)
class BowlerWorkload:
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
    saved: SavedWorkload | None = None

    @property
    def max_overs(self) -> int:
        return max_overs_for_format(self.match_format)

    @property
    def spell_overs(self) -> int:
        return max(0, self.overs - self.last_rest_overs)

    def to_snapshot(self, **baseline: Any) -> WorkloadSnapshot:
        """Build the scoring snapshot; baseline supplies limit, sleep, recovery, phase, role."""
        return WorkloadSnapshot.from_raw(
            overs_bowled=self.overs,
            max_overs=self.max_overs,
            fatigue=self.fatigue,
            spell_overs=self.spell_overs,
            is_unfit=self.is_unfit,
            **baseline,
        )


def add_over(workload: BowlerWorkload, intensity: str | None = None) -> BowlerWorkload:
    """Record one more over bowled.

    Refused (record returned unchanged) when the bowler is unfit, at High or
    Critical injury risk, or the format quota is already reached.
    """
    if workload.is_unfit or workload.injury_risk in (InjuryRisk.HIGH, InjuryRisk.CRITICAL):
        logger.info("Add over refused for unavailable bowler", player_id=workload.player_id)
        return workload
    overs = clamp_overs_bowled(workload.overs, workload.max_overs)
    if overs >= workload.max_overs:
        logger.info("Add over refused: quota complete", player_id=workload.player_id, overs=overs)
        return workload
    return replace(
        workload,
        overs=overs + 1,
        fatigue=clamp(round1(workload.fatigue + OVER_FATIGUE_STEP * intensity_multiplier(intensity)), *FATIGUE_RANGE),
        is_resting=False,
    )


def remove_over(workload: BowlerWorkload, intensity: str | None = None) -> BowlerWorkload:
    overs = max(0, workload.overs - 1)
    return replace(
        workload,
        overs=overs,
        last_rest_overs=min(workload.last_rest_overs, overs),
        fatigue=clamp(round1(workload.fatigue - OVER_FATIGUE_STEP * intensity_multiplier(intensity)), *FATIGUE_RANGE),
    )


def start_new_spell(workload: BowlerWorkload) -> BowlerWorkload:
    if workload.is_unfit:
        return workload
    return replace(workload, last_rest_overs=workload.overs, is_resting=False, rest_elapsed_seconds=0.0)


def toggle_rest(workload: BowlerWorkload) -> BowlerWorkload:
    """Start or stop timer-driven recovery, snapshotting overs when rest starts."""
    if workload.is_unfit:
        return workload
    resting = not workload.is_resting
    return replace(
        workload,
        is_resting=resting,
        last_rest_overs=workload.overs if resting else workload.last_rest_overs,
    )


def rest_tick(workload: BowlerWorkload, seconds: float, recovery: RecoveryLevel | None = None) -> BowlerWorkload:
    """Advance the rest clock and shed fatigue for a resting bowler."""
    if not workload.is_resting or workload.is_unfit or seconds <= 0:
        return workload
    recovered = recovery_delta_per_minute(recovery) * (seconds / 60.0)
    return replace(
        workload,
        rest_elapsed_seconds=workload.rest_elapsed_seconds + seconds,
        fatigue=clamp(workload.fatigue - recovered, *FATIGUE_RANGE),
    )


def adjust_strain(workload: BowlerWorkload, delta: float) -> BowlerWorkload:
    return replace(workload, strain=clamp(workload.strain + delta, *STRAIN_RANGE))


def mark_unfit(workload: BowlerWorkload) -> BowlerWorkload:
    """Force the unfit override, saving the current state for clear_unfit."""
    if workload.is_unfit:
        return workload
    saved = SavedWorkload(
        overs=workload.overs,
        last_rest_overs=workload.last_rest_overs,
        fatigue=workload.fatigue,
        strain=workload.strain,
        is_resting=workload.is_resting,
        rest_elapsed_seconds=workload.rest_elapsed_seconds,
    )
    logger.warning("Bowler marked unfit", player_id=workload.player_id)
    return replace(
        workload,
        is_unfit=True,
        fatigue=FATIGUE_RANGE[1],
        injury_risk=InjuryRisk.CRITICAL,
        is_resting=False,
        saved=saved,
    )


def clear_unfit(workload: BowlerWorkload) -> BowlerWorkload:
    if not workload.is_unfit:
        return workload
    saved = workload.saved
    if saved is None:
        return replace(workload, is_unfit=False, injury_risk=InjuryRisk.LOW)
    overs = clamp_overs_bowled(saved.overs, workload.max_overs)
    return replace(
        workload,
        is_unfit=False,
        injury_risk=InjuryRisk.LOW,
        overs=overs,
        last_rest_overs=min(saved.last_rest_overs, overs),
        fatigue=clamp(saved.fatigue, *FATIGUE_RANGE),
        strain=saved.strain,
        is_resting=saved.is_resting,
        rest_elapsed_seconds=saved.rest_elapsed_seconds,
        saved=None,
    )


def apply_derived_risk(workload: BowlerWorkload, derived: DerivedRiskState) -> BowlerWorkload:
    """Carry the re-derived injury risk back onto the record (gates add_over)."""
    return replace(workload, injury_risk=derived.injury_risk)


WorkloadAction = Literal[
    "add_over",
    "remove_over",
    "start_new_spell",
    "toggle_rest",
    "rest_tick",
    "adjust_strain",
    "mark_unfit",
    "clear_unfit",
]


def apply_action(
    workload: BowlerWorkload,
    action: WorkloadAction,
    *,
    intensity: str | None = None,
    seconds: float = 0.0,
    recovery: Any = None,
    delta: float = 0.0,
) -> BowlerWorkload:
    """Dispatch one named action. Unknown names raise ValueError."""
    if action == "add_over":
        return add_over(workload, intensity)
    if action == "remove_over":
        return remove_over(workload, intensity)
    if action == "start_new_spell":
        return start_new_spell(workload)
    if action == "toggle_rest":
        return toggle_rest(workload)
    if action == "rest_tick":
        return rest_tick(workload, seconds, normalize_recovery(recovery))
    if action == "adjust_strain":
        return adjust_strain(workload, delta)
    if action == "mark_unfit":
        return mark_unfit(workload)
    if action == "clear_unfit":
        return clear_unfit(workload)
    raise ValueError(f"Unknown workload action: {action}")


def rederive(
    workload: BowlerWorkload, **baseline: Any
) -> tuple[BowlerWorkload, WorkloadSnapshot, DerivedRiskState]:
    """Re-score a record after an action and carry the new injury risk back onto it."""
    snapshot = workload.to_snapshot(**baseline)
    derived = score_workload(snapshot)
    return apply_derived_risk(workload, derived), snapshot, derived


def workload_to_dict(workload: BowlerWorkload) -> dict[str, Any]:
    saved = workload.saved
    return {
        "playerId": workload.player_id,
        "matchFormat": workload.match_format,
        "overs": workload.overs,
        "lastRestOvers": workload.last_rest_overs,
        "spellOvers": workload.spell_overs,
        "maxOvers": workload.max_overs,
        "fatigue": workload.fatigue,
        "strain": workload.strain,
        "isResting": workload.is_resting,
        "restElapsedSeconds": workload.rest_elapsed_seconds,
        "isUnfit": workload.is_unfit,
        "injuryRisk": workload.injury_risk.value,
        "saved": None
        if saved is None
        else {
            "overs": saved.overs,
            "lastRestOvers": saved.last_rest_overs,
            "fatigue": saved.fatigue,
            "strain": saved.strain,
            "isResting": saved.is_resting,
            "restElapsedSeconds": saved.rest_elapsed_seconds,
        },
    }
