from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from tactiq.api.dependencies import get_pressure_engine
from tactiq.api.schemas import ContextRequest
from tactiq.context.normalize import InvalidContextError, build_pressure_inputs, normalize_context
from tactiq.scoring.pressure import PressureEngine, pressure_drivers

router = APIRouter(prefix="/api/pressure", tags=["pressure"])


@router.post("/{player_id}")
def update_pressure(player_id: str, request: ContextRequest, engine: PressureEngine = Depends(get_pressure_engine)):
    """Apply one scoring event or clock tick for a batter and return the new pressure."""
    try:
        context = normalize_context(request.context)
    except InvalidContextError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    inputs = build_pressure_inputs(context)
    if context.roster:
        engine.retain({player.player_id for player in context.roster} | {player_id})
    engine.set_active(player_id)
    state = engine.update(player_id, inputs)
    logger.debug("Pressure updated", player_id=player_id, pressure=state.displayed, frozen=state.frozen)
    return {
        "playerId": player_id,
        "pressure": round(state.displayed, 2),
        "baseLevel": round(state.base_level, 3),
        "eventDelta": round(state.event_delta, 3),
        "target": round(state.target, 2),
        "frozen": state.frozen,
        "drivers": [{"key": d.key, "score": d.score, "cue": d.cue} for d in pressure_drivers(inputs)],
    }


@router.delete("/{player_id}")
def reset_pressure(player_id: str, engine: PressureEngine = Depends(get_pressure_engine)):
    engine.reset(player_id)
    return {"playerId": player_id, "reset": True}
