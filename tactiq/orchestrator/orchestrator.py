"""Agent orchestrator: one analysis cycle from context to recommendation.

Per run_analysis() call:
1. Cancel any in-flight run and take a new sequence number
2. Route (auto mode) and mark selected analyzers RUNNING
3. Check /health opportunistically (never blocking)
4. Walk the fallback cascade until a strategy returns Ok
5. Merge, then apply statuses and the recommendation only if still current

A run superseded by a newer one returns None and leaves state untouched.
"""

import asyncio
import uuid
from typing import Any

from loguru import logger

from tactiq.analyzers.client import AnalyzerClient
from tactiq.analyzers.errors import AnalysisFailedError, AnalyzerError
from tactiq.config.settings import Settings, settings
from tactiq.context.models import AnalysisContext
from tactiq.context.normalize import build_pressure_inputs, build_workload_snapshot, normalize_context
from tactiq.merge.merger import RawResults, TacticalRecommendation, analyzer_slot, is_usable_output, merge
from tactiq.orchestrator.state import (
    NOT_ROUTED_REASON,
    TACTICAL_FALLBACK_REASON,
    AgentStatus,
    OrchestratorState,
)
from tactiq.orchestrator.strategies import (
    AnalysisStrategy,
    Fatal,
    Ok,
    Retryable,
    StrategyRequest,
    cascade_for,
)
from tactiq.routing.router import route, scores_from_context
from tactiq.routing.types import ANALYZERS, AnalysisMode, RouterDecision
from tactiq.scoring.pressure import PressureEngine
from tactiq.scoring.workload import score_workload


def resolve_pressure(context: AnalysisContext, pressure_engine: PressureEngine | None = None) -> float:
    """Pressure fed to the router.

    A pressure value supplied with the context wins. Otherwise the engine's
    smoothed value for the active player is used, falling back to the fresh
    target pressure for a player without history.
    """
    if context.pressure is not None:
        return context.pressure
    engine = pressure_engine or PressureEngine()
    return engine.display(context.active_player_id, build_pressure_inputs(context))


def plan_route(
    context: AnalysisContext,
    mode: AnalysisMode,
    pressure_engine: PressureEngine | None = None,
) -> RouterDecision:
    """Route from locally derived workload risk and batting pressure."""
    derived = score_workload(build_workload_snapshot(context))
    scores, signals = scores_from_context(context, derived, resolve_pressure(context, pressure_engine))
    return route(scores, signals, mode)


class AgentOrchestrator:
    """Runs analysis cycles against the remote analyzers.

    All mutable data lives in `state` (an OrchestratorState), so a fresh
    orchestrator can be built around existing state in tests.
    """

    def __init__(
        self,
        client: AnalyzerClient | None = None,
        state: OrchestratorState | None = None,
        config: Settings | None = None,
        pressure_engine: PressureEngine | None = None,
    ):
        self.config = config or settings
        self.client = client or AnalyzerClient(self.config)
        self.state = state or OrchestratorState()
        self.pressure_engine = pressure_engine or PressureEngine()

    def cancel_in_flight(self) -> bool:
        task = self.state.in_flight
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Cancelled in-flight analysis", sequence=self.state.sequence)
            return True
        return False

    async def _preflight(self, sequence: int) -> None:
        if not self.config.health_preflight_enabled:
            return
        try:
            await self.client.check_health()
        except AnalyzerError as e:
            logger.warning(
                "Analyzer health preflight failed, continuing with analysis",
                sequence=sequence,
                kind=e.kind.value,
                url=e.url,
            )

    async def _run_cascade(
        self,
        strategies: list[AnalysisStrategy],
        request: StrategyRequest,
        sequence: int,
    ) -> tuple[Ok | None, AnalyzerError | None, list[dict[str, Any]]]:
        attempts: list[dict[str, Any]] = []
        last_error: AnalyzerError | None = None
        for strategy in strategies:
            logger.info("Attempting analysis strategy", strategy=strategy.name, sequence=sequence)
            result = await strategy.attempt(self.client, request)
            if isinstance(result, Ok):
                attempts.append({"strategy": strategy.name, "outcome": "ok"})
                logger.info("Analysis strategy succeeded", strategy=strategy.name, sequence=sequence)
                return result, last_error, attempts

            last_error = result.error or last_error
            outcome = "fatal" if isinstance(result, Fatal) else "retryable"
            attempts.append({"strategy": strategy.name, "outcome": outcome, "reason": result.reason})
            if isinstance(result, Fatal):
                logger.error("Analysis strategy failed fatally", strategy=strategy.name, reason=result.reason)
                break
            if isinstance(result, Retryable):
                logger.warning("Analysis strategy failed, falling back", strategy=strategy.name, reason=result.reason)
        return None, last_error, attempts

    def _apply_statuses(self, raw: RawResults, mode: AnalysisMode) -> None:
        state = self.state
        if raw.source == "tactical_fallback":
            state.set_status("fatigue", AgentStatus.SKIPPED, reason=TACTICAL_FALLBACK_REASON)
            state.set_status("risk", AgentStatus.SKIPPED, reason=TACTICAL_FALLBACK_REASON)
            state.set_status("tactical", AgentStatus.SUCCESS, payload=dict(raw.tactical or {}))
            return

        meta = raw.payload.get("meta")
        executed = set((meta.get("executedAgents") if isinstance(meta, dict) else None) or [])
        for name in ANALYZERS:
            slot = analyzer_slot(raw, name)
            if is_usable_output(slot):
                state.set_status(name, AgentStatus.SUCCESS, payload=dict(slot))
            elif state.agents[name].status == AgentStatus.SKIPPED:
                continue
            elif mode != "full" and executed and name not in executed:
                state.set_status(name, AgentStatus.SKIPPED, reason="not executed by orchestrator")
            elif state.agents[name].status == AgentStatus.RUNNING:
                state.set_status(name, AgentStatus.ERROR, reason="no usable output")

    async def run_analysis(
        self,
        mode: AnalysisMode,
        context: AnalysisContext | dict[str, Any],
        router_decision: RouterDecision | None = None,
    ) -> TacticalRecommendation | None:
        """Run one analysis cycle.

        Args:
            mode: "auto" (routed cascade) or "full" (combined endpoint only)
            context: Normalized context or a raw inbound payload
            router_decision: Precomputed routing; computed here when omitted

        Returns:
            The merged recommendation, or None when a newer run superseded this one

        Raises:
            AnalysisFailedError: When every fallback strategy failed
            InvalidContextError: When the payload cannot be normalized
        """
        context = normalize_context(context)
        self.cancel_in_flight()
        state = self.state
        sequence = state.next_sequence()
        request_id = f"req-{sequence}-{uuid.uuid4().hex[:8]}"

        if context.roster:
            self.pressure_engine.retain({player.player_id for player in context.roster} | {context.active_player_id})
        decision = router_decision or plan_route(context, mode, self.pressure_engine)
        state.router_decision = decision
        state.last_failure = None
        for name in ANALYZERS:
            if mode == "full" or decision.runs(name):
                state.set_status(name, AgentStatus.RUNNING)
            else:
                state.set_status(name, AgentStatus.SKIPPED, reason=NOT_ROUTED_REASON)

        logger.info(
            "Starting analysis",
            mode=mode,
            sequence=sequence,
            request_id=request_id,
            intent=decision.intent.value,
            selected=decision.selected_analyzers,
        )

        request = StrategyRequest(context=context, mode=mode, request_id=request_id, router_decision=decision)

        async def cycle() -> tuple[Ok | None, AnalyzerError | None, list[dict[str, Any]]]:
            await self._preflight(sequence)
            return await self._run_cascade(cascade_for(mode), request, sequence)

        task = asyncio.create_task(cycle())
        state.in_flight = task
        try:
            ok, last_error, attempts = await task
        except asyncio.CancelledError:
            if not state.is_current(sequence):
                logger.debug("Superseded analysis cancelled", sequence=sequence, latest=state.sequence)
                return None
            state.fail_running("cancelled")
            raise
        finally:
            if state.in_flight is task:
                state.in_flight = None

        if not state.is_current(sequence):
            logger.debug("Discarding stale analysis result", sequence=sequence, latest=state.sequence)
            return None

        state.attempts = attempts
        if ok is None:
            reason = last_error.message if last_error else "All analysis strategies failed"
            state.fail_running(reason)
            failure = AnalysisFailedError("Analyzers unreachable or returned no usable output", last_error)
            state.last_failure = failure
            state.recommendation = None
            logger.error(
                "Analysis failed after fallback cascade",
                sequence=sequence,
                status=last_error.status_code if last_error else None,
                url=last_error.url if last_error else None,
            )
            raise failure

        recommendation = merge(ok.raw)
        self._apply_statuses(ok.raw, mode)
        state.recommendation = recommendation
        logger.info(
            "Analysis complete",
            sequence=sequence,
            source=ok.raw.source,
            partial=recommendation.partial,
        )
        return recommendation
