"""Fallback cascade strategies.

Each strategy makes one attempt and returns a tagged result:

- Ok: usable analyzer output, ready to merge
- Retryable: this path failed, the next strategy may still succeed
- Fatal: stop the cascade (the request itself was rejected)

The orchestrator walks an ordered list of strategies until Ok or the list is
exhausted. Strategies never raise AnalyzerError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from loguru import logger

from tactiq.analyzers.client import AnalyzerClient
from tactiq.analyzers.errors import AnalyzerError, AnalyzerErrorKind
from tactiq.context.models import AnalysisContext
from tactiq.context.requests import build_analyzer_request, build_tactical_request
from tactiq.merge.merger import RawResults, ResultSource, has_tactical_signal, has_usable_output, is_usable_output
from tactiq.routing.types import AnalysisMode, RouterDecision


@dataclass(frozen=True)
class StrategyRequest:
    context: AnalysisContext
    mode: AnalysisMode
    request_id: str
    router_decision: RouterDecision | None = None

    def analyzer_body(self) -> dict[str, Any]:
        return build_analyzer_request(self.context, self.mode, self.router_decision)

    def tactical_body(self) -> dict[str, Any]:
        return build_tactical_request(self.context, self.request_id)

    def raw(
        self,
        payload: dict[str, Any],
        source: ResultSource,
        status_code: int = 200,
        tactical: dict[str, Any] | None = None,
        errors: tuple[str, ...] = (),
    ) -> RawResults:
        return RawResults(
            payload=payload,
            tactical=tactical,
            status_code=status_code,
            source=source,
            errors=errors,
            roster=tuple(self.context.roster),
            team_mode=self.context.team_mode,
            active_player_id=self.context.active_player_id,
        )


@dataclass(frozen=True)
class Ok:
    raw: RawResults


@dataclass(frozen=True)
class Retryable:
    reason: str
    error: AnalyzerError | None = None


@dataclass(frozen=True)
class Fatal:
    reason: str
    error: AnalyzerError | None = None


StrategyResult = Ok | Retryable | Fatal


def from_error(e: AnalyzerError) -> Retryable | Fatal:
    if e.retryable:
        return Retryable(reason=f"{e.kind.value}: {e.message}", error=e)
    return Fatal(reason=f"{e.kind.value}: {e.message}", error=e)


def empty_output(url: str, message: str) -> Retryable:
    return Retryable(reason=message, error=AnalyzerError(AnalyzerErrorKind.EMPTY_OUTPUT, message, url=url))


class AnalysisStrategy(ABC):
    """One path through the remote analyzers."""

    name: str

    @abstractmethod
    async def attempt(self, client: AnalyzerClient, request: StrategyRequest) -> StrategyResult:
        raise NotImplementedError


class RoutedStrategy(AnalysisStrategy):
    """POST /orchestrate; re-attempts the tactical analyzer when it did not run."""

    name = "routed"

    async def attempt(self, client: AnalyzerClient, request: StrategyRequest) -> StrategyResult:
        try:
            response = await client.orchestrate(request.analyzer_body())
        except AnalyzerError as e:
            return from_error(e)

        raw = request.raw(response.data, "routed", response.status_code)
        meta = response.data.get("meta")
        executed = (meta.get("executedAgents") if isinstance(meta, dict) else None) or []
        tactical_ran = "tactical" in executed or is_usable_output(response.data.get("tactical") or {})
        if tactical_ran and has_tactical_signal(raw):
            return Ok(raw)

        logger.info(
            "Routed analysis lacks a tactical result, re-attempting tactical analyzer",
            request_id=request.request_id,
            executed=executed,
        )
        try:
            tactical = await client.tactical(request.tactical_body())
        except AnalyzerError as e:
            if has_usable_output(raw):
                logger.warning("Tactical re-attempt failed, keeping routed output", error=e.message)
                return Ok(request.raw(response.data, "routed", response.status_code, errors=(f"tactical: {e.message}",)))
            return from_error(e)

        merged = request.raw(response.data, "routed", response.status_code, tactical=tactical.data)
        if not is_usable_output(tactical.data):
            if has_usable_output(raw):
                return Ok(
                    request.raw(response.data, "routed", response.status_code, errors=("tactical: no usable output",))
                )
            return empty_output(response.url, "Routed analysis and tactical re-attempt returned no usable output")
        return Ok(merged)


class CombinedStrategy(AnalysisStrategy):
    """POST /analysis/full: all three analyzers in one call."""

    name = "combined"

    async def attempt(self, client: AnalyzerClient, request: StrategyRequest) -> StrategyResult:
        try:
            response = await client.analysis_full(request.analyzer_body())
        except AnalyzerError as e:
            return from_error(e)

        raw = request.raw(response.data, "full", response.status_code)
        if not has_tactical_signal(raw):
            return empty_output(response.url, "Combined analysis returned no usable tactical signal")
        return Ok(raw)


class TacticalFallbackStrategy(AnalysisStrategy):
    """POST /agents/tactical alone; the degraded last resort."""

    name = "tactical_fallback"

    async def attempt(self, client: AnalyzerClient, request: StrategyRequest) -> StrategyResult:
        try:
            response = await client.tactical(request.tactical_body())
        except AnalyzerError as e:
            return from_error(e)

        if not is_usable_output(response.data):
            return empty_output(response.url, "Tactical analyzer returned no usable output")
        return Ok(request.raw({}, "tactical_fallback", response.status_code, tactical=response.data))


def cascade_for(mode: AnalysisMode) -> list[AnalysisStrategy]:
    """Ordered strategies for a mode: full calls the combined endpoint only."""
    if mode == "full":
        return [CombinedStrategy()]
    return [RoutedStrategy(), CombinedStrategy(), TacticalFallbackStrategy()]
