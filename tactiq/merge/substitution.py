"""Substitution suggestion resolution.

Structured fields from the analyzers are tried first, in a fixed order. The
last stage scans free text for a roster player's name; it is a heuristic
bounded to roster names and the same eligibility filter, not a contract the
analyzers promise to honour.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from tactiq.context.models import RosterPlayer, TeamMode
from tactiq.merge.safety import is_eligible_for_mode


@dataclass(frozen=True)
class SubstitutionSuggestion:
    player_id: str
    name: str
    source: str
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"playerId": self.player_id, "name": self.name, "source": self.source, "reason": self.reason}


@dataclass(frozen=True)
class _Candidate:
    source: str
    player_id: str | None
    name: str | None
    reason: str | None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _structured_candidates(
    payload: Mapping[str, Any],
    tactical: Mapping[str, Any],
    team_mode: TeamMode,
) -> list[_Candidate]:
    candidates: list[_Candidate] = []

    recommendation = _mapping(payload.get("recommendation"))
    if recommendation:
        candidates.append(
            _Candidate(
                "recommendation",
                _text(recommendation.get("bowlerId")),
                _text(recommendation.get("bowlerName")),
                _text(recommendation.get("reason")),
            )
        )

    rotation = _mapping(payload.get("suggestedRotation"))
    if rotation:
        candidates.append(
            _Candidate(
                "suggestedRotation",
                _text(rotation.get("playerId")),
                _text(rotation.get("name")),
                _text(rotation.get("rationale")),
            )
        )

    final = _mapping(payload.get("finalRecommendation"))
    role_key = "nextSafeBatter" if team_mode == "BATTING" else "nextSafeBowler"
    next_safe = _mapping(final.get(role_key))
    if next_safe:
        candidates.append(
            _Candidate(
                f"finalRecommendation.{role_key}",
                _text(next_safe.get("playerId")),
                _text(next_safe.get("name")),
                _text(next_safe.get("reason")),
            )
        )

    for key in ("substitutionAdvice", "swap"):
        advice = _mapping(tactical.get(key))
        incoming = _text(advice.get("in"))
        if incoming:
            candidates.append(_Candidate(f"tactical.{key}", incoming, incoming, _text(advice.get("reason"))))

    return candidates


def _lookup(candidate: _Candidate, roster: Iterable[RosterPlayer]) -> RosterPlayer | None:
    players = list(roster)
    if candidate.player_id:
        for player in players:
            if player.player_id == candidate.player_id:
                return player
    for token in (candidate.name, candidate.player_id):
        if not token:
            continue
        lowered = token.casefold()
        for player in players:
            if player.name and player.name.casefold() == lowered:
                return player
    return None


def _acceptable(player: RosterPlayer | None, team_mode: TeamMode, active_player_id: str) -> bool:
    if player is None or player.player_id == active_player_id:
        return False
    return is_eligible_for_mode(player, team_mode)


def scan_text_for_player(
    texts: Iterable[str],
    roster: Iterable[RosterPlayer],
    team_mode: TeamMode,
    active_player_id: str = "",
) -> RosterPlayer | None:
    """Find the first eligible roster player named in free text.

    Names are tried longest first so "Ravi Kumar" wins over "Ravi" when both
    are on the roster.
    """
    corpus = " ".join(t for t in texts if t)
    if not corpus:
        return None
    players = sorted((p for p in roster if p.name), key=lambda p: len(p.name), reverse=True)
    for player in players:
        pattern = rf"(?<!\w){re.escape(player.name)}(?!\w)"
        if re.search(pattern, corpus, flags=re.IGNORECASE) and _acceptable(player, team_mode, active_player_id):
            return player
    return None


def resolve_substitution(
    payload: Mapping[str, Any],
    tactical: Mapping[str, Any],
    roster: Iterable[RosterPlayer],
    team_mode: TeamMode,
    active_player_id: str = "",
    free_text: Iterable[str] = (),
) -> SubstitutionSuggestion | None:
    """Resolve the suggested substitute, or None when no candidate qualifies.

    Order: recommendation -> suggestedRotation -> role-appropriate
    finalRecommendation -> tactical substitution advice -> free-text scan.
    Every candidate must be a roster player eligible for team_mode and not
    the active player.
    """
    players = list(roster)
    if not players:
        return None

    for candidate in _structured_candidates(payload, tactical, team_mode):
        player = _lookup(candidate, players)
        if _acceptable(player, team_mode, active_player_id):
            return SubstitutionSuggestion(player.player_id, player.name, candidate.source, candidate.reason)
        logger.debug("Substitution candidate discarded", source=candidate.source, name=candidate.name)

    player = scan_text_for_player(free_text, players, team_mode, active_player_id)
    if player is not None:
        return SubstitutionSuggestion(player.player_id, player.name, "text")
    return None
