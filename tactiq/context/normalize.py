"""Single normalization boundary for inbound analysis payloads.

normalize_context() is called once per inbound payload. Everything after it
(scoring, pressure, routing, request building, merging) consumes the
resulting AnalysisContext or the value objects derived from it here.
"""

from typing import Any

from loguru import logger
from pydantic import ValidationError

from tactiq.context.models import AnalysisContext
from tactiq.scoring.pressure import BatterSnapshot, PressureInputs
from tactiq.scoring.workload import WorkloadSnapshot


class InvalidContextError(ValueError):
    """Raised when a payload cannot be coerced into an AnalysisContext."""


def _legacy_to_current(payload: dict[str, Any]) -> dict[str, Any]:
    """Map the older {player, match} payload shape onto {telemetry, match}."""
    if "telemetry" in payload or "player" not in payload:
        return payload
    mapped = dict(payload)
    mapped["telemetry"] = payload.get("player") or {}
    legacy_match = payload.get("match") or {}
    if isinstance(legacy_match, dict):
        tactical = legacy_match.get("tactical")
        mapped["match"] = {**legacy_match, **tactical} if isinstance(tactical, dict) else dict(legacy_match)
    return mapped


def normalize_context(payload: dict[str, Any] | AnalysisContext | None) -> AnalysisContext:
    """Validate and clamp a raw payload into an AnalysisContext.

    Accepts camelCase or snake_case keys, the `matchContext` alias for
    `match`, and the legacy {player, match} shape.

    Raises:
        InvalidContextError: If the payload is not a mapping or fails validation
    """
    if isinstance(payload, AnalysisContext):
        return payload
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidContextError(f"Analysis payload must be an object, got {type(payload).__name__}")

    data = _legacy_to_current(payload)
    if "matchContext" in data and "match" not in data:
        data = {**data, "match": data["matchContext"]}

    try:
        context = AnalysisContext.model_validate(data)
    except ValidationError as e:
        logger.warning("Analysis payload failed validation", errors=e.error_count())
        raise InvalidContextError(str(e)) from e

    logger.debug(
        "Normalized analysis context",
        active_player_id=context.active_player_id,
        team_mode=context.team_mode,
        roster_size=len(context.roster),
    )
    return context


def build_workload_snapshot(context: AnalysisContext) -> WorkloadSnapshot:
    telemetry = context.telemetry
    baseline = context.baseline
    return WorkloadSnapshot.from_raw(
        overs_bowled=telemetry.overs_bowled,
        max_overs=telemetry.max_overs,
        fatigue=telemetry.fatigue_index,
        fatigue_limit=baseline.fatigue_limit if baseline else 6.0,
        sleep_hours=baseline.sleep_hours if baseline else 7.0,
        recovery_minutes=baseline.recovery_minutes if baseline else 45.0,
        phase=context.match.phase,
        role=telemetry.role or (baseline.role if baseline else ""),
        spell_overs=telemetry.spell_overs,
        recovery=telemetry.heart_rate_recovery or None,
        is_unfit=telemetry.is_unfit,
    )


def build_pressure_inputs(context: AnalysisContext) -> PressureInputs:
    match = context.match
    batter = context.batter
    return PressureInputs(
        required_run_rate=match.required_run_rate or 0.0,
        current_run_rate=match.current_run_rate or 0.0,
        wickets_down=match.wickets,
        phase=match.phase,
        balls_remaining=match.balls_remaining,
        total_balls=match.total_balls,
        target=match.target,
        score=match.score,
        batter=BatterSnapshot(
            runs=batter.runs,
            balls_faced=batter.balls_faced,
            fours=batter.fours,
            sixes=batter.sixes,
        ),
        allocation_exhausted=match.innings_complete,
    )
