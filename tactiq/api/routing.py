from fastapi import APIRouter, Depends, HTTPException

from tactiq.api.dependencies import get_pressure_engine
from tactiq.api.schemas import RouteRequest
from tactiq.context.normalize import InvalidContextError, normalize_context
from tactiq.orchestrator.orchestrator import plan_route
from tactiq.scoring.pressure import PressureEngine

router = APIRouter(prefix="/api/router", tags=["router"])


@router.post("")
def route_analysis(request: RouteRequest, engine: PressureEngine = Depends(get_pressure_engine)):
    """Preview which analyzers an analysis cycle would run for this context."""
    try:
        context = normalize_context(request.context)
    except InvalidContextError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return plan_route(context, request.mode, engine).to_payload()
