"""Deterministic signal routing: current scores -> analyzers to run.

This module is the single source of truth for which specialist analyzers a
cycle needs. It performs no I/O and keeps no memory across calls; every
analysis cycle re-evaluates from scratch.
"""

from dataclasses import dataclass, field

from loguru import logger

from tactiq.context.models import AnalysisContext
from tactiq.routing.types import AnalysisMode, AnalyzerName, RouterDecision, RouterIntent
from tactiq.scoring.workload import DerivedRiskState, clamp

PRESSURE_TRIGGER = 6.5
FATIGUE_TRIGGER = 6.0
STRAIN_TRIGGER = 5.5
OVERS_TRIGGER = 3

CONTROL_EVENTS = frozenset({"no_ball", "noball", "wide"})


@dataclass(frozen=True)
class RouterScores:
    """Current scores for the focus player (labels upper-case)."""

    fatigue: float = 0.0
    strain: float = 0.0
    overs_bowled: int = 0
    injury_risk: str = "LOW"
    no_ball_risk: str = "LOW"
    pressure: float = 0.0


@dataclass(frozen=True)
class MatchSignals:
    no_ball_trend: str = "flat"
    recent_events: tuple[str, ...] = field(default_factory=tuple)
    phase: str = "Middle"
    team_mode: str = "BOWLING"


def scores_from_context(
    context: AnalysisContext,
    derived: DerivedRiskState | None = None,
    pressure: float | None = None,
) -> tuple[RouterScores, MatchSignals]:
    """Collect router inputs from a normalized context and local scores.

    Locally derived risk labels win over telemetry labels when supplied,
    taking the higher of the two so a stale label never masks a fresh one.
    """
    telemetry = context.telemetry
    injury = telemetry.injury_risk
    no_ball = telemetry.no_ball_risk
    fatigue = telemetry.fatigue_index
    if derived is not None:
        injury = _max_label(injury, derived.injury_risk.value.upper())
        no_ball = _max_label(no_ball, derived.no_ball_risk.value.upper())
        fatigue = max(fatigue, derived.fatigue)

    resolved_pressure = pressure if pressure is not None else context.pressure
    scores = RouterScores(
        fatigue=fatigue,
        strain=telemetry.strain_index,
        overs_bowled=telemetry.overs_bowled,
        injury_risk=injury,
        no_ball_risk=no_ball,
        pressure=resolved_pressure or 0.0,
    )
    signals = MatchSignals(
        no_ball_trend=telemetry.no_ball_trend,
        recent_events=tuple(telemetry.recent_events),
        phase=context.match.phase.value,
        team_mode=context.team_mode,
    )
    return scores, signals


_LABEL_ORDER = {"LOW": 0, "MEDIUM": 1, "HIGH": 2, "CRITICAL": 3}


def _max_label(a: str, b: str) -> str:
    return a if _LABEL_ORDER.get(a, 0) >= _LABEL_ORDER.get(b, 0) else b


def _signals_used(scores: RouterScores, signals: MatchSignals) -> dict[str, object]:
    return {
        "fatigue": round(clamp(scores.fatigue, 0, 10), 2),
        "strain": round(scores.strain, 2),
        "oversBowled": scores.overs_bowled,
        "injuryRisk": scores.injury_risk,
        "noBallRisk": scores.no_ball_risk,
        "pressure": round(clamp(scores.pressure, 0, 10), 2),
        "noBallTrend": signals.no_ball_trend,
        "recentEvents": list(signals.recent_events),
        "phase": signals.phase,
        "teamMode": signals.team_mode,
    }


def route(scores: RouterScores, signals: MatchSignals, mode: AnalysisMode = "auto") -> RouterDecision:
    """Decide analysis intent and the analyzers required this cycle.

    Args:
        scores: Current fatigue/strain/overs/risk/pressure scores
        signals: Match signals (no-ball trend, recent events, phase, team mode)
        mode: "full" forces all three analyzers; "auto" routes on triggers

    Returns:
        RouterDecision with tactical always selected
    """
    used = _signals_used(scores, signals)

    if mode == "full":
        return RouterDecision(
            intent=RouterIntent.FULL_COVERAGE,
            selected_analyzers=["fatigue", "risk", "tactical"],
            rationale="Full combined analysis requested; running all analyzers.",
            signals_used=used,
            rules_fired=["mode_full"],
        )

    rules: list[str] = []

    injury_elevated = scores.injury_risk in {"HIGH", "CRITICAL"}
    if injury_elevated:
        rules.append("injury_risk_high")

    no_ball_label = scores.no_ball_risk in {"HIGH", "MEDIUM"}
    no_ball_trend_up = signals.no_ball_trend == "up"
    recent_control_event = any(event in CONTROL_EVENTS for event in signals.recent_events)
    if no_ball_label:
        rules.append("no_ball_label_elevated")
    if no_ball_trend_up:
        rules.append("no_ball_trend_up")
    if recent_control_event:
        rules.append("recent_no_ball_or_wide")
    control_elevated = no_ball_label or no_ball_trend_up or recent_control_event

    pressure_elevated = scores.pressure >= PRESSURE_TRIGGER
    if pressure_elevated:
        rules.append("pressure_high")

    fatigue_triggers = {
        "fatigue_high": scores.fatigue >= FATIGUE_TRIGGER,
        "strain_high": scores.strain >= STRAIN_TRIGGER,
        "overs_load": scores.overs_bowled >= OVERS_TRIGGER,
    }
    rules.extend(name for name, fired in fatigue_triggers.items() if fired)
    workload_elevated = any(fatigue_triggers.values())

    selected: list[AnalyzerName] = []
    if workload_elevated:
        selected.append("fatigue")
    if control_elevated or injury_elevated or pressure_elevated:
        selected.append("risk")
    selected.append("tactical")

    if injury_elevated or workload_elevated:
        intent = RouterIntent.INJURY_PREVENTION
        rationale = "Workload or injury signals elevated; prioritising player protection."
    elif control_elevated:
        intent = RouterIntent.NO_BALL_CONTROL
        rationale = "Line-and-length control signals elevated; routing to risk analysis."
    elif pressure_elevated:
        intent = RouterIntent.PRESSURE_CONTROL
        rationale = f"Pressure {scores.pressure:.1f} at or above {PRESSURE_TRIGGER}; routing to risk analysis."
    else:
        intent = RouterIntent.TACTICAL_ATTACK
        rationale = "No immediate red flags; tactical next-step recommendation only."

    decision = RouterDecision(
        intent=intent,
        selected_analyzers=selected,
        rationale=rationale,
        signals_used=used,
        rules_fired=rules,
    )
    logger.debug(
        "Router decision",
        intent=decision.intent.value,
        selected=decision.selected_analyzers,
        rules=rules,
    )
    return decision
