"""FastAPI dependencies resolving per-app engine instances from app.state."""

from fastapi import Request

from tactiq.orchestrator.orchestrator import AgentOrchestrator
from tactiq.scoring.pressure import PressureEngine


def get_pressure_engine(request: Request) -> PressureEngine:
    return request.app.state.pressure_engine


def get_orchestrator(request: Request) -> AgentOrchestrator:
    return request.app.state.orchestrator
