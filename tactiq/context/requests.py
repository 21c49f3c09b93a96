"""Request bodies for the remote analyzers, built from a normalized context."""

from typing import Any

from tactiq.context.models import AnalysisContext, RosterPlayer
from tactiq.routing.types import AnalysisMode, RouterDecision


def _telemetry_body(context: AnalysisContext) -> dict[str, Any]:
    telemetry = context.telemetry
    return {
        "playerId": telemetry.player_id,
        "playerName": telemetry.player_name,
        "role": telemetry.role,
        "fatigueIndex": telemetry.fatigue_index,
        "strainIndex": telemetry.strain_index,
        "injuryRisk": telemetry.injury_risk,
        "noBallRisk": telemetry.no_ball_risk,
        "heartRateRecovery": telemetry.heart_rate_recovery or None,
        "oversBowled": telemetry.overs_bowled,
        "spellOvers": telemetry.spell_overs,
        "maxOvers": telemetry.max_overs,
        "noBallTrend": telemetry.no_ball_trend,
        "recentEvents": list(telemetry.recent_events),
        "isUnfit": telemetry.is_unfit,
    }


def _match_body(context: AnalysisContext) -> dict[str, Any]:
    match = context.match
    return {
        "matchMode": context.team_mode,
        "format": match.format,
        "phase": match.phase.value,
        "intensity": match.intensity,
        "conditions": match.conditions,
        "score": match.score,
        "wickets": match.wickets,
        "overs": match.over_label,
        "balls": match.balls_bowled,
        "ballsRemaining": match.balls_remaining,
        "target": match.target,
        "requiredRunRate": match.required_run_rate,
        "currentRunRate": match.current_run_rate,
    }


def _player_body(player: RosterPlayer) -> dict[str, Any]:
    body: dict[str, Any] = {
        "playerId": player.player_id,
        "name": player.name,
        "role": player.role,
        "canBowl": player.can_bowl,
        "canBat": player.can_bat,
        "fatigueIndex": player.fatigue_index,
        "injuryRisk": player.injury_risk,
        "oversBowled": player.overs_bowled,
    }
    if player.baseline is not None:
        body["baseline"] = player.baseline.model_dump(by_alias=True)
    return body


def bench_players(context: AnalysisContext) -> list[RosterPlayer]:
    """Roster minus the active player, and minus bowlers out of overs when bowling."""
    cap = context.telemetry.max_overs
    bench = []
    for player in context.roster:
        if player.player_id == context.active_player_id:
            continue
        if player.is_dismissed and context.team_mode == "BATTING":
            continue
        if context.team_mode == "BOWLING" and player.overs_bowled >= cap:
            continue
        bench.append(player)
    return bench


def context_summary(context: AnalysisContext) -> str:
    telemetry = context.telemetry
    match = context.match
    name = telemetry.player_name or telemetry.player_id or "Active player"
    parts = [
        f"{context.team_mode.title()} | {match.format} {match.phase.value} over {match.over_label}",
        f"score {match.score}/{match.wickets}",
    ]
    if match.target is not None:
        parts.append(f"target {match.target} (RRR {match.required_run_rate:.2f})")
    parts.append(
        f"{name}: fatigue {telemetry.fatigue_index:.1f}/10, injury {telemetry.injury_risk}, "
        f"no-ball {telemetry.no_ball_risk}, overs {telemetry.overs_bowled}/{telemetry.max_overs}"
    )
    return ", ".join(parts)


def build_analyzer_request(
    context: AnalysisContext,
    mode: AnalysisMode = "auto",
    router_decision: RouterDecision | None = None,
) -> dict[str, Any]:
    """Body for POST /orchestrate (auto) and POST /analysis/full (full)."""
    body: dict[str, Any] = {
        "mode": mode,
        "context": {
            "summary": context_summary(context),
            "activePlayerId": context.active_player_id,
            "bench": [player.player_id for player in bench_players(context)],
            "pressure": context.pressure,
        },
        "teamMode": context.team_mode,
        "focusRole": context.focus_role,
        "telemetry": _telemetry_body(context),
        "matchContext": _match_body(context),
        "players": [_player_body(player) for player in context.roster],
    }
    if context.baseline is not None:
        body["baseline"] = context.baseline.model_dump(by_alias=True)
    if router_decision is not None:
        body["routerDecision"] = router_decision.to_payload()
    return body


def build_tactical_request(context: AnalysisContext, request_id: str) -> dict[str, Any]:
    """Narrow body for POST /agents/tactical, the last-resort fallback."""
    return {
        "requestId": request_id,
        "teamMode": context.team_mode,
        "focusRole": context.focus_role,
        "telemetry": _telemetry_body(context),
        "matchContext": _match_body(context),
        "players": [_player_body(player) for player in bench_players(context)],
    }
