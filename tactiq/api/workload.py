from fastapi import APIRouter
from loguru import logger

from tactiq.api.schemas import WorkloadActionRequest, WorkloadScoreRequest
from tactiq.scoring.actions import apply_action, rederive, workload_to_dict
from tactiq.scoring.workload import WorkloadSnapshot, score_workload

router = APIRouter(prefix="/api/workload", tags=["workload"])


@router.post("/score")
def score(request: WorkloadScoreRequest):
    """Score one bowler workload snapshot.

    Inputs are clamped at the boundary, so malformed numbers degrade to
    defaults instead of failing the request.
    """
    snapshot = WorkloadSnapshot.from_raw(**request.model_dump())
    derived = score_workload(snapshot)
    logger.debug(
        "Scored workload",
        overs=snapshot.overs_bowled,
        fatigue=derived.fatigue,
        status=derived.status.value,
    )
    return {"snapshot": _snapshot_dict(snapshot), "risk": derived.to_dict()}


@router.post("/actions")
def act(request: WorkloadActionRequest):
    """Apply one workload action and return the re-scored record."""
    workload = apply_action(
        request.workload.to_workload(),
        request.action,
        intensity=request.intensity,
        seconds=request.seconds,
        recovery=request.recovery,
        delta=request.delta,
    )
    workload, snapshot, derived = rederive(workload, **request.baseline.model_dump())
    logger.info(
        "Applied workload action",
        player_id=workload.player_id,
        action=request.action,
        overs=workload.overs,
        injury_risk=workload.injury_risk.value,
    )
    return {
        "workload": workload_to_dict(workload),
        "snapshot": _snapshot_dict(snapshot),
        "risk": derived.to_dict(),
    }


def _snapshot_dict(snapshot: WorkloadSnapshot) -> dict:
    return {
        "oversBowled": snapshot.overs_bowled,
        "maxOvers": snapshot.max_overs,
        "oversRemaining": snapshot.overs_remaining,
        "quotaComplete": snapshot.quota_complete,
        "fatigueLimit": snapshot.fatigue_limit,
        "phase": snapshot.phase.value,
        "role": snapshot.role.value,
    }
