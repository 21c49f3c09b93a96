"""Bowler workload scoring.

Deterministic, side-effect free conversion of a bowler's workload snapshot
into fatigue, load ratio, status, injury risk and no-ball risk.

Properties:
- Pure: same snapshot always produces the same DerivedRiskState
- Bounded: every numeric input is clamped at the boundary, so NaN or
  out-of-range telemetry never propagates downstream
- Recomputed: derived state is never stored, it is re-derived after every
  workload-affecting action
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

UNCAPPED_OVERS = 999

SLEEP_RANGE = (0.0, 12.0)
RECOVERY_MINUTES_RANGE = (0.0, 240.0)
FATIGUE_RANGE = (0.0, 10.0)
ATTRIBUTE_RANGE = (0.0, 100.0)

APPROACHING_LIMIT_RATIO = 0.85
EXCEEDED_LIMIT_RATIO = 1.0


class WorkloadStatus(StrEnum):
    WITHIN_SAFE_RANGE = "WITHIN_SAFE_RANGE"
    APPROACHING_LIMIT = "APPROACHING_LIMIT"
    EXCEEDED_LIMIT = "EXCEEDED_LIMIT"


class InjuryRisk(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class NoBallRisk(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class RecoveryLevel(StrEnum):
    GOOD = "Good"
    MODERATE = "Moderate"
    POOR = "Poor"


class Phase(StrEnum):
    POWERPLAY = "Powerplay"
    MIDDLE = "Middle"
    DEATH = "Death"


class BowlerRole(StrEnum):
    FAST_BOWLER = "Fast Bowler"
    SPINNER = "Spinner"
    ALL_ROUNDER = "All-rounder"


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return min(upper, max(lower, value))


def round1(value: float) -> float:
    return round(value * 10) / 10


def safe_float(value: Any, default: float = 0.0) -> float:
    """Coerce value to a finite float, falling back to default.

    None, non-numeric strings, NaN and infinities all map to default.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def clamped(value: Any, bounds: tuple[float, float], default: float) -> float:
    """safe_float followed by clamp into bounds."""
    return clamp(safe_float(value, default), bounds[0], bounds[1])


def normalize_phase(value: Any) -> Phase:
    token = str(value or "").strip().lower()
    if token in {"powerplay", "pp"}:
        return Phase.POWERPLAY
    if token == "death":
        return Phase.DEATH
    return Phase.MIDDLE


def normalize_role(value: Any) -> BowlerRole:
    token = str(value or "").strip().lower().replace("_", " ").replace("-", " ")
    if token in {"fast bowler", "fast", "pace", "pacer", "seam"}:
        return BowlerRole.FAST_BOWLER
    if token in {"spinner", "spin"}:
        return BowlerRole.SPINNER
    return BowlerRole.ALL_ROUNDER


def normalize_recovery(value: Any) -> RecoveryLevel | None:
    token = str(value or "").strip().lower()
    if token == "good":
        return RecoveryLevel.GOOD
    if token in {"moderate", "ok"}:
        return RecoveryLevel.MODERATE
    if token == "poor":
        return RecoveryLevel.POOR
    return None


def max_overs_for_format(match_format: str | None) -> int:
    """Per-bowler over cap for a match format (T20=4, ODI=10, uncapped otherwise)."""
    normalized = str(match_format or "").strip().upper()
    if normalized == "T20":
        return 4
    if normalized == "ODI":
        return 10
    return UNCAPPED_OVERS


def clamp_overs_bowled(overs: Any, max_overs: Any) -> int:
    safe_max = max(1, math.floor(safe_float(max_overs, 1)))
    return int(max(0, min(safe_max, math.floor(safe_float(overs, 0)))))


def overs_remaining(overs_bowled: int, max_overs: int) -> int:
    return max(0, int(max_overs) - int(overs_bowled))


def is_quota_complete(overs_bowled: int, max_overs: int) -> bool:
    """Quota is complete only for capped formats once the cap is reached."""
    return max_overs < UNCAPPED_OVERS and overs_bowled >= max_overs


def role_multiplier(role: BowlerRole) -> float:
    if role == BowlerRole.FAST_BOWLER:
        return 1.1
    if role == BowlerRole.SPINNER:
        return 0.95
    return 1.0


def phase_multiplier(phase: Phase) -> float:
    if phase == Phase.POWERPLAY:
        return 1.1
    if phase == Phase.DEATH:
        return 1.15
    return 1.0


def baseline_recovery_score(sleep_hours: float, recovery_minutes: float) -> float:
    """Weighted baseline readiness (0-1) from sleep and recovery profile."""
    sleep_score = clamp((sleep_hours - 5) / 3, 0, 1)
    recovery_score = clamp((recovery_minutes - 20) / 40, 0, 1)
    return (0.6 * sleep_score) + (0.4 * recovery_score)


def compute_fatigue(
    overs_bowled: float,
    spell_overs: float,
    phase: Phase,
    role: BowlerRole,
    recovery_score: float,
) -> float:
    """Match load scaled by phase and role, reduced by baseline recovery ability."""
    base_load = (overs_bowled * 0.55) + (spell_overs * 0.9)
    raw = base_load * phase_multiplier(phase) * role_multiplier(role)
    raw *= 1 - (0.25 * clamp(recovery_score, 0, 1))
    return clamp(round1(raw), *FATIGUE_RANGE)


def compute_load_ratio(fatigue: float, fatigue_limit: float) -> float:
    return fatigue / max(1.0, fatigue_limit)


def compute_status(load_ratio: float) -> WorkloadStatus:
    if load_ratio > EXCEEDED_LIMIT_RATIO:
        return WorkloadStatus.EXCEEDED_LIMIT
    if load_ratio > APPROACHING_LIMIT_RATIO:
        return WorkloadStatus.APPROACHING_LIMIT
    return WorkloadStatus.WITHIN_SAFE_RANGE


def compute_recovery_level(recovery_score: float, load_ratio: float) -> RecoveryLevel:
    """Baseline recovery, penalised as load approaches or exceeds tolerance."""
    penalty = 0.0
    if load_ratio > EXCEEDED_LIMIT_RATIO:
        penalty = 0.2
    elif load_ratio > APPROACHING_LIMIT_RATIO:
        penalty = 0.1

    effective = clamp(recovery_score - penalty, 0, 1)
    if effective >= 0.66:
        return RecoveryLevel.GOOD
    if effective >= 0.4:
        return RecoveryLevel.MODERATE
    return RecoveryLevel.POOR


def compute_injury_risk(
    load_ratio: float,
    spell_overs: float,
    role: BowlerRole,
    recovery: RecoveryLevel,
) -> InjuryRisk:
    score = 1
    if load_ratio > EXCEEDED_LIMIT_RATIO:
        score = 3
    elif load_ratio > 0.7:
        score = 2

    if spell_overs >= 3:
        score += 1
    if role == BowlerRole.FAST_BOWLER:
        score += 1

    if recovery == RecoveryLevel.POOR:
        score += 1
    elif recovery == RecoveryLevel.GOOD:
        score -= 1

    bounded = int(clamp(score, 1, 3))
    return (InjuryRisk.LOW, InjuryRisk.MEDIUM, InjuryRisk.HIGH)[bounded - 1]


def compute_no_ball_risk(fatigue: float, spell_overs: float, phase: Phase) -> NoBallRisk:
    score = 1
    if fatigue > 7:
        score = 3
    elif fatigue >= 5:
        score = 2

    if spell_overs >= 3:
        score += 1
    if phase in (Phase.POWERPLAY, Phase.DEATH):
        score += 1

    bounded = int(clamp(score, 1, 3))
    return (NoBallRisk.LOW, NoBallRisk.MEDIUM, NoBallRisk.HIGH)[bounded - 1]


@dataclass(frozen=True)
class WorkloadSnapshot:
    """Normalized view of a bowler's workload used as scoring input.

    Invariants (enforced by from_raw): 0 <= overs_bowled <= max_overs,
    fatigue in [0, 10], fatigue_limit in [0, 10].
    """

    overs_bowled: int
    max_overs: int
    fatigue: float
    fatigue_limit: float
    sleep_hours: float
    recovery_minutes: float
    phase: Phase
    role: BowlerRole
    spell_overs: int = 0
    recovery: RecoveryLevel | None = None
    is_unfit: bool = False

    @classmethod
    def from_raw(
        cls,
        *,
        overs_bowled: Any = 0,
        max_overs: Any = None,
        match_format: str | None = None,
        fatigue: Any = None,
        fatigue_limit: Any = 6,
        sleep_hours: Any = 7,
        recovery_minutes: Any = 45,
        phase: Any = Phase.MIDDLE,
        role: Any = BowlerRole.ALL_ROUNDER,
        spell_overs: Any = 0,
        recovery: Any = None,
        is_unfit: Any = False,
    ) -> WorkloadSnapshot:
        """Clamp raw inputs into a snapshot.

        When fatigue is not supplied it is derived from overs, spell, phase,
        role and baseline recovery via compute_fatigue.
        """
        cap = max_overs_for_format(match_format) if max_overs is None else max(1, int(safe_float(max_overs, 1)))
        overs = clamp_overs_bowled(overs_bowled, cap)
        spell = int(clamp(math.floor(safe_float(spell_overs, 0)), 0, overs))
        sleep = clamped(sleep_hours, SLEEP_RANGE, 7.0)
        minutes = clamped(recovery_minutes, RECOVERY_MINUTES_RANGE, 45.0)
        phase_value = normalize_phase(phase)
        role_value = normalize_role(role)
        if fatigue is None:
            fatigue_value = compute_fatigue(
                overs, spell, phase_value, role_value, baseline_recovery_score(sleep, minutes)
            )
        else:
            fatigue_value = clamped(fatigue, FATIGUE_RANGE, 0.0)
        return cls(
            overs_bowled=overs,
            max_overs=cap,
            fatigue=fatigue_value,
            fatigue_limit=clamped(fatigue_limit, FATIGUE_RANGE, 6.0),
            sleep_hours=sleep,
            recovery_minutes=minutes,
            phase=phase_value,
            role=role_value,
            spell_overs=spell,
            recovery=normalize_recovery(recovery),
            is_unfit=bool(is_unfit),
        )

    @property
    def overs_remaining(self) -> int:
        return overs_remaining(self.overs_bowled, self.max_overs)

    @property
    def quota_complete(self) -> bool:
        return is_quota_complete(self.overs_bowled, self.max_overs)

    @property
    def recovery_score(self) -> float:
        return baseline_recovery_score(self.sleep_hours, self.recovery_minutes)


@dataclass(frozen=True)
class DerivedRiskState:
    fatigue: float
    load_ratio: float
    status: WorkloadStatus
    injury_risk: InjuryRisk
    no_ball_risk: NoBallRisk
    recovery: RecoveryLevel

    def to_dict(self) -> dict[str, Any]:
        return {
            "fatigue": self.fatigue,
            "loadRatio": round(self.load_ratio, 2),
            "status": self.status.value,
            "injuryRisk": self.injury_risk.value,
            "noBallRisk": self.no_ball_risk.value,
            "recovery": self.recovery.value,
        }


def score_workload(snapshot: WorkloadSnapshot) -> DerivedRiskState:
    """Derive the risk state for a workload snapshot.

    A manual unfit override bypasses the formula entirely: fatigue 10,
    injury Critical, no-ball High, recovery Poor. Quota completion alone
    never forces EXCEEDED_LIMIT, only the load ratio does.
    """
    if snapshot.is_unfit:
        fatigue = FATIGUE_RANGE[1]
        load_ratio = compute_load_ratio(fatigue, snapshot.fatigue_limit)
        return DerivedRiskState(
            fatigue=fatigue,
            load_ratio=load_ratio,
            status=compute_status(load_ratio),
            injury_risk=InjuryRisk.CRITICAL,
            no_ball_risk=NoBallRisk.HIGH,
            recovery=RecoveryLevel.POOR,
        )

    fatigue = clamp(snapshot.fatigue, *FATIGUE_RANGE)
    load_ratio = compute_load_ratio(fatigue, snapshot.fatigue_limit)
    recovery = snapshot.recovery or compute_recovery_level(snapshot.recovery_score, load_ratio)

    return DerivedRiskState(
        fatigue=fatigue,
        load_ratio=load_ratio,
        status=compute_status(load_ratio),
        injury_risk=compute_injury_risk(load_ratio, snapshot.spell_overs, snapshot.role, recovery),
        no_ball_risk=compute_no_ball_risk(fatigue, snapshot.spell_overs, snapshot.phase),
        recovery=recovery,
    )
