from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from loguru import logger

from tactiq.analyzers.errors import AnalysisFailedError, AnalyzerError
from tactiq.api.dependencies import get_orchestrator
from tactiq.api.schemas import AnalysisRequest
from tactiq.context.normalize import InvalidContextError
from tactiq.orchestrator.orchestrator import AgentOrchestrator

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analysis")
async def run_analysis(request: AnalysisRequest, orchestrator: AgentOrchestrator = Depends(get_orchestrator)):
    """Run one analysis cycle.

    Returns 200 with the recommendation, 207 when it is partial, 409 when a
    newer request superseded this one and 502 when every analyzer path failed.
    """
    try:
        recommendation = await orchestrator.run_analysis(request.mode, request.context)
    except InvalidContextError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except AnalysisFailedError as e:
        logger.error("Analysis request failed", error=e.message)
        raise HTTPException(status_code=502, detail=e.to_dict()) from e

    if recommendation is None:
        raise HTTPException(status_code=409, detail="Analysis superseded by a newer request")

    state = orchestrator.state
    body = {
        "recommendation": recommendation.to_dict(),
        "agents": {name: result.to_dict() for name, result in state.agents.items()},
        "routerDecision": state.router_decision.to_payload() if state.router_decision else None,
        "sequence": state.sequence,
    }
    return JSONResponse(status_code=207 if recommendation.partial else 200, content=body)


@router.get("/analysis/state")
def analysis_state(orchestrator: AgentOrchestrator = Depends(get_orchestrator)):
    return orchestrator.state.to_dict()


@router.get("/health")
async def health(orchestrator: AgentOrchestrator = Depends(get_orchestrator)):
    """Service liveness plus a non-blocking check of the analyzer host."""
    try:
        analyzers = await orchestrator.client.check_health()
        reachable = True
    except AnalyzerError as e:
        logger.warning("Analyzer health check failed", kind=e.kind.value, url=e.url)
        analyzers = e.to_dict()
        reachable = False
    return {"status": "ok", "analyzersReachable": reachable, "analyzers": analyzers}
