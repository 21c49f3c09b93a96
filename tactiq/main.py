import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from tactiq.analyzers.client import AnalyzerClient
from tactiq.api.analysis import router as analysis_router
from tactiq.api.pressure import router as pressure_router
from tactiq.api.roster import router as roster_router
from tactiq.api.routing import router as routing_router
from tactiq.api.workload import router as workload_router
from tactiq.config.settings import Settings, settings
from tactiq.core.logger import setup_logger
from tactiq.orchestrator.orchestrator import AgentOrchestrator


def create_app(config: Settings | None = None, orchestrator: AgentOrchestrator | None = None) -> FastAPI:
    """Build the FastAPI app with its own PressureEngine and AgentOrchestrator.

    Args:
        config: Settings to use (defaults to the module singleton)
        orchestrator: Pre-built orchestrator, e.g. one wrapping a mocked AnalyzerClient
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logger(level=config.log_level, log_file=config.log_file)
        logger.info("tactIQ engine starting", analyzer_base_url=config.analyzer_base_url)
        await asyncio.sleep(0)
        yield
        app.state.orchestrator.cancel_in_flight()
        await app.state.orchestrator.client.aclose()
        logger.info("tactIQ engine stopped")

    app = FastAPI(title="tactIQ Engine", lifespan=lifespan)
    app.state.orchestrator = orchestrator or AgentOrchestrator(AnalyzerClient(config), config=config)
    # Pressure updates and routing share one per-player state map
    app.state.pressure_engine = app.state.orchestrator.pressure_engine

    if config.cors_origin_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origin_list,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(workload_router)
    app.include_router(pressure_router)
    app.include_router(routing_router)
    app.include_router(roster_router)
    app.include_router(analysis_router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests."""
        logger.debug(f"Request: {request.method} {request.url.path}")
        response = await call_next(request)
        logger.debug(f"Response: {response.status_code} for {request.method} {request.url.path}")
        return response

    return app


app = create_app()
