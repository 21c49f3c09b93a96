"""Safety ranking of bench players and team-mode eligibility.

Scores are relative: higher means fresher and safer to bring on next. They
are used for substitution hints, never as a medical judgement.
"""

import re
from dataclasses import dataclass, field

from tactiq.context.models import RosterPlayer, TeamMode
from tactiq.scoring.workload import clamp

BOWLING_ROLE_HINTS = ("BOWL", "FAST", "PACE", "PACER", "SEAM", "SPIN", "AR", "ALLROUNDER")
BATTING_ROLE_HINTS = ("BAT", "BATSMAN", "WK", "KEEPER", "AR", "ALLROUNDER")

INJURY_BONUS = {"LOW": 2.0, "MEDIUM": 0.8, "HIGH": -2.2, "CRITICAL": -2.2}


@dataclass(frozen=True)
class SafetyCandidate:
    player_id: str
    name: str
    role: str
    score: float
    reason: str


@dataclass(frozen=True)
class SafetyRankResult:
    next_safe_bowler: SafetyCandidate | None = None
    next_safe_batter: SafetyCandidate | None = None
    bowler_candidates: list[SafetyCandidate] = field(default_factory=list)
    batter_candidates: list[SafetyCandidate] = field(default_factory=list)


def _role_tokens(role: str) -> list[str]:
    return [re.sub(r"[^A-Z]", "", token) for token in re.split(r"[\s/_-]+", role.upper()) if token]


def _has_hint(role: str, hints: tuple[str, ...]) -> bool:
    tokens = _role_tokens(role)
    joined = "".join(tokens)
    for hint in hints:
        # Two-letter hints (AR, WK) must match a whole token
        if len(hint) <= 2:
            if hint in tokens:
                return True
        elif hint in joined:
            return True
    return False


def is_bowling_capable(role: str) -> bool:
    return _has_hint(role, BOWLING_ROLE_HINTS)


def is_batting_capable(role: str) -> bool:
    return _has_hint(role, BATTING_ROLE_HINTS)


def is_eligible_for_mode(player: RosterPlayer, mode: TeamMode) -> bool:
    """Bowling-eligible when flagged can_bowl or the role implies bowling; same for batting."""
    if mode == "BOWLING":
        return player.can_bowl or is_bowling_capable(player.role)
    if player.is_dismissed:
        return False
    return player.can_bat or is_batting_capable(player.role)


def _baseline_values(player: RosterPlayer) -> tuple[float, float, float, float]:
    baseline = player.baseline
    if baseline is None:
        return 6.0, 45.0, 0.0, 0.0
    return baseline.sleep_hours, baseline.recovery_score, baseline.workload_7d, baseline.workload_28d


def _reason(player: RosterPlayer) -> str:
    _, recovery, _, _ = _baseline_values(player)
    return f"Fatigue {player.fatigue_index:.1f}/10, injury {player.injury_risk}, recovery {recovery:.0f}."


def score_bowler(player: RosterPlayer, intensity: str) -> float:
    sleep, recovery, workload_7d, workload_28d = _baseline_values(player)
    intensity_factor = 1.2 if intensity.strip().lower() == "high" else 1.0
    fatigue_score = 10 - clamp(player.fatigue_index, 0, 10)
    sleep_bonus = (clamp(sleep, 0, 12) - 6) * 0.6
    recovery_bonus = (clamp(recovery, 0, 100) - 40) / 20
    workload_penalty = (workload_7d / 12 + workload_28d / 28 + player.overs_bowled * 0.45) * intensity_factor
    score = fatigue_score + INJURY_BONUS.get(player.injury_risk, 0.0) + sleep_bonus + recovery_bonus - workload_penalty
    return round(score, 2)


def score_batter(player: RosterPlayer, intensity: str) -> float:
    sleep, recovery, workload_7d, workload_28d = _baseline_values(player)
    recovery_scale = 1.15 if intensity.strip().lower() == "high" else 1.0
    fatigue_score = (10 - clamp(player.fatigue_index, 0, 10)) * 0.95
    sleep_bonus = (clamp(sleep, 0, 12) - 6) * 0.55
    recovery_bonus = ((clamp(recovery, 0, 100) - 40) / 18) * recovery_scale
    workload_penalty = workload_7d / 14 + workload_28d / 35
    score = fatigue_score + INJURY_BONUS.get(player.injury_risk, 0.0) + sleep_bonus + recovery_bonus - workload_penalty
    return round(score, 2)


def _candidates(players: list[RosterPlayer], scorer, intensity: str) -> list[SafetyCandidate]:
    ranked = [
        SafetyCandidate(
            player_id=player.player_id,
            name=player.name,
            role=player.role or "Unknown",
            score=scorer(player, intensity),
            reason=_reason(player),
        )
        for player in players
    ]
    ranked.sort(key=lambda c: c.score, reverse=True)
    return ranked


def rank_safety_candidates(
    roster: list[RosterPlayer],
    active_player_id: str = "",
    intensity: str = "Medium",
    limit: int = 3,
) -> SafetyRankResult:
    """Rank bench players by freshness for bowling and batting.

    The active player is excluded; if nobody else is on the roster the whole
    roster is ranked instead.
    """
    limit = max(1, limit)
    pool = [player for player in roster if player.player_id != active_player_id] or list(roster)
    bowlers = _candidates([p for p in pool if is_eligible_for_mode(p, "BOWLING")], score_bowler, intensity)[:limit]
    batters = _candidates([p for p in pool if is_eligible_for_mode(p, "BATTING")], score_batter, intensity)[:limit]
    return SafetyRankResult(
        next_safe_bowler=bowlers[0] if bowlers else None,
        next_safe_batter=batters[0] if batters else None,
        bowler_candidates=bowlers,
        batter_candidates=batters,
    )
