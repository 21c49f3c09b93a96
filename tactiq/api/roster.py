from fastapi import APIRouter, HTTPException, Query

from tactiq.api.schemas import ContextRequest
from tactiq.context.normalize import InvalidContextError, normalize_context
from tactiq.merge.safety import SafetyCandidate, rank_safety_candidates

router = APIRouter(prefix="/api/roster", tags=["roster"])


def _candidate(candidate: SafetyCandidate | None) -> dict | None:
    if candidate is None:
        return None
    return {
        "playerId": candidate.player_id,
        "name": candidate.name,
        "role": candidate.role,
        "score": candidate.score,
        "reason": candidate.reason,
    }


@router.post("/safety")
def rank_bench(request: ContextRequest, limit: int = Query(default=3, ge=1, le=11)):
    """Rank bench players by freshness for the next bowling and batting slot."""
    try:
        context = normalize_context(request.context)
    except InvalidContextError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    result = rank_safety_candidates(
        context.roster,
        active_player_id=context.active_player_id,
        intensity=context.match.intensity,
        limit=limit,
    )
    return {
        "nextSafeBowler": _candidate(result.next_safe_bowler),
        "nextSafeBatter": _candidate(result.next_safe_batter),
        "bowlerCandidates": [_candidate(c) for c in result.bowler_candidates],
        "batterCandidates": [_candidate(c) for c in result.batter_candidates],
    }
