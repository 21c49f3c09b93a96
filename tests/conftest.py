"""Root conftest for all tests.

Shared payload fixtures and an AnalyzerClient factory backed by
httpx.MockTransport, so no test ever reaches a real analyzer host.
"""

from collections.abc import Callable
from typing import Any

import httpx
import pytest
from loguru import logger

from tactiq.analyzers.client import AnalyzerClient
from tactiq.config.settings import Settings

ANALYZER_BASE_URL = "http://analyzers.test/api"


@pytest.fixture(autouse=True)
def _quiet_logger():
    """Keep loguru output out of the test report."""
    logger.remove()
    yield


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        analyzer_base_url=ANALYZER_BASE_URL,
        analyzer_timeout_seconds=5.0,
        health_timeout_seconds=1.0,
        health_preflight_enabled=False,
        log_level="WARNING",
    )


@pytest.fixture
def make_client(test_settings: Settings) -> Callable[[Callable[[httpx.Request], Any]], AnalyzerClient]:
    """Build an AnalyzerClient whose transport is the given handler."""

    def _make(handler: Callable[[httpx.Request], Any], config: Settings | None = None) -> AnalyzerClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return AnalyzerClient(config or test_settings, http_client=http_client)

    return _make


@pytest.fixture
def roster() -> list[dict[str, Any]]:
    return [
        {"playerId": "p1", "name": "Jasprit Rao", "role": "Fast Bowler", "fatigueIndex": 3, "injuryRisk": "LOW"},
        {"playerId": "p2", "name": "Ravi Kumar", "role": "Spinner", "fatigueIndex": 2, "injuryRisk": "LOW"},
        {"playerId": "p3", "name": "Ravi", "role": "Batter", "fatigueIndex": 1, "injuryRisk": "LOW"},
        {"playerId": "p4", "name": "Arjun Nair", "role": "All-rounder", "fatigueIndex": 6, "injuryRisk": "MEDIUM"},
        {"playerId": "p5", "name": "Dev Shah", "role": "Fast Bowler", "fatigueIndex": 4, "oversBowled": 4},
    ]


@pytest.fixture
def base_payload(roster: list[dict[str, Any]]) -> dict[str, Any]:
    """Calm bowling context: only the tactical analyzer is routed."""
    return {
        "teamMode": "BOWLING",
        "focusRole": "BOWLER",
        "telemetry": {
            "playerId": "p1",
            "playerName": "Jasprit Rao",
            "role": "Fast Bowler",
            "fatigueIndex": 3,
            "strainIndex": 2,
            "injuryRisk": "LOW",
            "noBallRisk": "LOW",
            "oversBowled": 1,
        },
        "match": {
            "format": "T20",
            "phase": "Middle",
            "intensity": "Medium",
            "score": 80,
            "wickets": 2,
            "ballsBowled": 60,
            "totalOvers": 20,
        },
        "roster": roster,
    }


@pytest.fixture
def chase_payload(roster: list[dict[str, Any]]) -> dict[str, Any]:
    """Tight batting chase with no pressure value supplied: 9 needed, 6 scored, 6 down, 18 balls left."""
    return {
        "teamMode": "BATTING",
        "focusRole": "BATTER",
        "telemetry": {"playerId": "p3", "playerName": "Ravi", "role": "Batter", "fatigueIndex": 1},
        "match": {
            "format": "T20",
            "phase": "Middle",
            "requiredRunRate": 9.0,
            "currentRunRate": 6.0,
            "wickets": 6,
            "ballsBowled": 102,
            "totalOvers": 20,
        },
        "roster": roster,
    }


@pytest.fixture
def tactical_body() -> dict[str, Any]:
    return {
        "immediateAction": "Hold the length",
        "rationale": "Batter is struggling against good-length deliveries.",
        "suggestedAdjustments": ["Bring fine leg up", "Keep slip in place"],
        "confidence": 0.62,
        "keySignalsUsed": ["fatigueIndex", "phase"],
    }
