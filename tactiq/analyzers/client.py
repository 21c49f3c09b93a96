"""HTTP client for the remote specialist analyzers.

Handles all communication with the fatigue/risk/tactical analyzers. Transport
failures are translated into AnalyzerError at this boundary so callers only
ever see one exception type.
"""

import json
from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger

from tactiq.analyzers.errors import AnalyzerError, AnalyzerErrorKind, summarize_body
from tactiq.config.settings import Settings, settings

CORS_MARKERS = ("cors", "origin", "blocked by")
NORMALIZED_FALLBACK_TAG = "normalized-simple-orchestrate-response"


@dataclass(frozen=True)
class AnalyzerResponse:
    """Parsed JSON body plus the HTTP status it arrived with."""

    url: str
    status_code: int
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def multi_status(self) -> bool:
        return self.status_code == 207


def looks_like_html(text: str) -> bool:
    trimmed = text.lstrip().lower()
    return trimmed.startswith("<!doctype html") or trimmed.startswith("<html")


def _classify_request_error(e: httpx.RequestError) -> AnalyzerErrorKind:
    if isinstance(e, httpx.TimeoutException):
        return AnalyzerErrorKind.TIMEOUT
    message = str(e).lower()
    if any(marker in message for marker in CORS_MARKERS):
        return AnalyzerErrorKind.CORS
    return AnalyzerErrorKind.NETWORK


def parse_json_body(text: str, url: str, status_code: int) -> dict[str, Any]:
    """Parse an analyzer body, rejecting HTML (SPA fallback) and non-objects.

    Raises:
        AnalyzerError: malformed_response for HTML, invalid JSON or non-object bodies
    """
    if looks_like_html(text):
        raise AnalyzerError(
            AnalyzerErrorKind.MALFORMED_RESPONSE,
            f"Analyzer returned HTML instead of JSON at {url}. Check API routing and SPA fallback.",
            url=url,
            status_code=status_code,
            body=text,
        )
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalyzerError(
            AnalyzerErrorKind.MALFORMED_RESPONSE,
            "Invalid JSON response from analyzer.",
            url=url,
            status_code=status_code,
            body=text,
        ) from e
    if not isinstance(parsed, dict):
        raise AnalyzerError(
            AnalyzerErrorKind.MALFORMED_RESPONSE,
            f"Expected a JSON object from analyzer, got {type(parsed).__name__}.",
            url=url,
            status_code=status_code,
            body=text,
        )
    return parsed


def normalize_orchestrate_response(raw: dict[str, Any]) -> dict[str, Any]:
    """Fill the full orchestrate shape for simplified payloads.

    Payloads that already carry meta, errors and combinedDecision pass through
    untouched. Otherwise the missing envelope keys are added; a conservative
    combinedDecision is attached only for bodies without any analyzer slot and
    meta.normalized marks it as not coming from an analyzer.
    """
    if all(key in raw for key in ("meta", "errors", "combinedDecision")):
        return raw

    mode = "full" if raw.get("mode") == "full" else "auto"
    normalized = dict(raw)
    normalized.setdefault("errors", [])

    meta = dict(raw.get("meta") or {})
    meta.setdefault("mode", mode)
    meta.setdefault("executedAgents", [])
    meta.setdefault("usedFallbackAgents", [])
    fallbacks = list(meta.get("fallbacksUsed") or [])

    has_decision = any(
        isinstance(raw.get(key), dict)
        for key in ("combinedDecision", "finalDecision", "strategicAnalysis", "tactical", "fatigue", "risk")
    )
    if not has_decision:
        message = raw.get("message") if isinstance(raw.get("message"), str) else None
        normalized["combinedDecision"] = {
            "immediateAction": "Continue with monitored plan",
            "suggestedAdjustments": [message or "Orchestrator fallback response received."],
            "confidence": 0.55,
            "rationale": "Normalized from simplified orchestrator payload.",
        }
        meta["normalized"] = True
        fallbacks.append(NORMALIZED_FALLBACK_TAG)

    meta["fallbacksUsed"] = fallbacks
    normalized["meta"] = meta
    logger.debug("Normalized simplified orchestrate response", keys=sorted(raw.keys()))
    return normalized


class AnalyzerClient:
    """Async client for /orchestrate, /analysis/full, /agents/tactical and /health.

    An httpx.AsyncClient can be injected (tests pass one built on
    httpx.MockTransport); otherwise one is created lazily and owned here.
    """

    def __init__(self, config: Settings | None = None, http_client: httpx.AsyncClient | None = None):
        self.config = config or settings
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.config.analyzer_timeout_seconds)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "AnalyzerClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        payload: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        client = self._get_client()
        request_timeout = timeout or self.config.analyzer_timeout_seconds
        logger.debug("Analyzer request", method=method, url=url, timeout=request_timeout)
        try:
            response = await client.request(method, url, json=payload, timeout=request_timeout)
        except httpx.RequestError as e:
            kind = _classify_request_error(e)
            logger.warning("Analyzer request failed", url=url, kind=kind.value, error=str(e))
            message = (
                "Request blocked (CORS). Check analyzer CORS settings or ANALYZER_BASE_URL."
                if kind == AnalyzerErrorKind.CORS
                else "Analyzer not reachable. Start the analyzer host or set ANALYZER_BASE_URL."
            )
            raise AnalyzerError(kind, message, url=url, body=str(e)) from e

        if not response.is_success:
            status = response.status_code
            kind = AnalyzerErrorKind.HTTP_5XX if status >= 500 else AnalyzerErrorKind.HTTP_4XX
            logger.warning("Analyzer returned non-2xx", url=url, status=status)
            raise AnalyzerError(
                kind,
                summarize_body(response.text) or f"Request failed with status {status}.",
                url=url,
                status_code=status,
                body=response.text,
            )
        return response

    async def _post(self, url: str, payload: dict[str, Any]) -> AnalyzerResponse:
        response = await self._request("POST", url, payload)
        data = parse_json_body(response.text, url, response.status_code)
        return AnalyzerResponse(url=url, status_code=response.status_code, data=data)

    async def orchestrate(self, payload: dict[str, Any]) -> AnalyzerResponse:
        """POST the routed multi-agent request."""
        response = await self._post(self.config.orchestrate_url, payload)
        return AnalyzerResponse(
            url=response.url,
            status_code=response.status_code,
            data=normalize_orchestrate_response(response.data),
        )

    async def analysis_full(self, payload: dict[str, Any]) -> AnalyzerResponse:
        """POST the combined analysis request (all three analyzers)."""
        body = {**payload, "mode": "full"}
        response = await self._post(self.config.analysis_full_url, body)
        return AnalyzerResponse(
            url=response.url,
            status_code=response.status_code,
            data=normalize_orchestrate_response(response.data),
        )

    async def tactical(self, payload: dict[str, Any]) -> AnalyzerResponse:
        """POST the narrow tactical-only request."""
        return await self._post(self.config.tactical_url, payload)

    async def check_health(self) -> dict[str, Any]:
        """Liveness check; reachability is what matters, the body is best-effort.

        Raises:
            AnalyzerError: If the host is unreachable or answers non-2xx
        """
        url = self.config.health_url
        response = await self._request("GET", url, timeout=self.config.health_timeout_seconds)
        text = response.text
        if not text.strip():
            return {"status": "ok"}
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            return {"status": "ok", "raw": text}
        if isinstance(parsed, dict):
            return parsed
        return {"status": "ok", "raw": text}
