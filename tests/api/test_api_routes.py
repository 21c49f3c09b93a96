"""Tests for the HTTP API using FastAPI's TestClient."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from tactiq.main import create_app
from tactiq.orchestrator.orchestrator import AgentOrchestrator

ROUTED_BODY = {
    "tactical": {"immediateAction": "Bowl into the pitch", "rationale": "Surface is two-paced."},
    "combinedDecision": {"immediateAction": "Bowl into the pitch"},
    "errors": [],
    "meta": {"executedAgents": ["tactical"]},
}


def _handler(routes: dict[str, httpx.Response]):
    def handler(request: httpx.Request) -> httpx.Response:
        return routes.get(request.url.path.removeprefix("/api")) or httpx.Response(500, text="boom")

    return handler


@pytest.fixture
def build_client(make_client, test_settings):
    def _build(routes: dict[str, httpx.Response] | None = None) -> TestClient:
        orchestrator = AgentOrchestrator(make_client(_handler(routes or {})), config=test_settings)
        return TestClient(create_app(test_settings, orchestrator))

    return _build


class TestWorkloadRoutes:
    def test_score(self, build_client):
        response = build_client().post(
            "/api/workload/score",
            json={"oversBowled": 2, "fatigue": 7, "fatigueLimit": 6, "role": "Fast Bowler", "matchFormat": "T20"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["snapshot"]["maxOvers"] == 4
        assert data["snapshot"]["oversRemaining"] == 2
        assert data["risk"]["status"] == "EXCEEDED_LIMIT"

    def test_malformed_numbers_degrade_to_defaults(self, build_client):
        response = build_client().post("/api/workload/score", json={"fatigue": "abc", "oversBowled": -3})
        assert response.status_code == 200
        assert response.json()["risk"]["fatigue"] == 0.0
        assert response.json()["snapshot"]["oversBowled"] == 0

    def test_fatigue_derived_from_load_when_omitted(self, build_client):
        response = build_client().post(
            "/api/workload/score",
            json={"oversBowled": 3, "spellOvers": 3, "role": "Fast Bowler", "phase": "Death", "matchFormat": "T20"},
        )
        assert response.status_code == 200
        assert response.json()["risk"]["fatigue"] == 4.6

    def test_add_over_action_rescores_record(self, build_client):
        response = build_client().post(
            "/api/workload/actions",
            json={
                "workload": {"playerId": "p1", "overs": 1, "fatigue": 2.0},
                "action": "add_over",
                "baseline": {"role": "Spinner"},
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["workload"]["overs"] == 2
        assert data["workload"]["fatigue"] == 2.9
        assert data["workload"]["spellOvers"] == 2
        assert data["snapshot"]["oversBowled"] == 2
        assert data["risk"]["fatigue"] == 2.9

    def test_mark_then_clear_unfit_restores_saved_values(self, build_client):
        client = build_client()
        marked = client.post(
            "/api/workload/actions",
            json={"workload": {"playerId": "p5", "overs": 2, "fatigue": 3.0}, "action": "mark_unfit"},
        ).json()
        assert marked["workload"]["isUnfit"] is True
        assert marked["workload"]["injuryRisk"] == "Critical"
        assert marked["risk"]["noBallRisk"] == "High"
        assert marked["workload"]["saved"]["fatigue"] == 3.0

        cleared = client.post(
            "/api/workload/actions",
            json={"workload": marked["workload"], "action": "clear_unfit"},
        ).json()
        assert cleared["workload"]["isUnfit"] is False
        assert cleared["workload"]["fatigue"] == 3.0
        assert cleared["workload"]["overs"] == 2
        assert cleared["workload"]["saved"] is None
        assert cleared["workload"]["injuryRisk"] == cleared["risk"]["injuryRisk"]

    def test_derived_high_risk_blocks_next_over(self, build_client):
        client = build_client()
        body = {
            "workload": {"playerId": "p1", "overs": 3, "fatigue": 6.5},
            "action": "start_new_spell",
            "baseline": {"role": "Fast Bowler", "sleepHours": 4, "recoveryMinutes": 10},
        }
        first = client.post("/api/workload/actions", json=body).json()
        assert first["workload"]["injuryRisk"] == "High"

        second = client.post(
            "/api/workload/actions",
            json={"workload": first["workload"], "action": "add_over", "baseline": body["baseline"]},
        ).json()
        assert second["workload"]["overs"] == 3

    def test_unknown_action_rejected(self, build_client):
        response = build_client().post(
            "/api/workload/actions",
            json={"workload": {"playerId": "p1"}, "action": "teleport"},
        )
        assert response.status_code == 422


class TestPressureRoutes:
    """Tests for per-batter pressure updates."""

    def test_update_and_reset(self, build_client):
        client = build_client()
        context = {
            "match": {"score": 120, "wickets": 6, "ballsBowled": 96, "target": 170, "phase": "Death"},
            "batter": {"runs": 8, "ballsFaced": 10},
        }

        response = client.post("/api/pressure/b1", json={"context": context})
        assert response.status_code == 200
        data = response.json()
        assert 0.0 <= data["pressure"] <= 10.0
        assert data["frozen"] is False
        assert data["drivers"]
        assert client.app.state.pressure_engine.get("b1") is not None

        reset = client.delete("/api/pressure/b1")
        assert reset.json() == {"playerId": "b1", "reset": True}
        assert client.app.state.pressure_engine.get("b1") is None

    def test_invalid_context(self, build_client):
        response = build_client().post("/api/pressure/b1", json={"context": {"roster": [{"role": "Batter"}]}})
        assert response.status_code == 422


class TestRouterRoute:
    def test_preview(self, build_client, base_payload):
        response = build_client().post("/api/router", json={"context": base_payload})
        assert response.status_code == 200
        assert response.json()["selectedAgents"] == ["tactical"]

    def test_full_mode(self, build_client, base_payload):
        response = build_client().post("/api/router", json={"context": base_payload, "mode": "full"})
        assert response.json()["intent"] == "FullCoverage"

    def test_pressure_computed_when_not_supplied(self, build_client, chase_payload):
        response = build_client().post("/api/router", json={"context": chase_payload})
        assert response.json()["selectedAgents"] == ["risk", "tactical"]
        assert response.json()["intent"] == "PressureControl"

    def test_shares_pressure_state_with_pressure_route(self, build_client, chase_payload):
        client = build_client()
        calm = {"match": {"requiredRunRate": 4, "currentRunRate": 8, "ballsBowled": 12}}
        client.post("/api/pressure/p3", json={"context": calm})

        response = client.post("/api/router", json={"context": chase_payload})
        assert response.json()["selectedAgents"] == ["tactical"]
        assert response.json()["signals"]["pressure"] < 6.5

    def test_unknown_mode_rejected(self, build_client, base_payload):
        response = build_client().post("/api/router", json={"context": base_payload, "mode": "turbo"})
        assert response.status_code == 422


class TestRosterRoute:
    def test_safety_ranking(self, build_client, base_payload):
        response = build_client().post("/api/roster/safety?limit=2", json={"context": base_payload})
        assert response.status_code == 200
        data = response.json()
        assert data["nextSafeBowler"]["playerId"] == "p2"
        assert data["nextSafeBatter"]["playerId"] == "p3"
        assert len(data["bowlerCandidates"]) == 2


class TestAnalysisRoutes:
    """Tests for POST /api/analysis status mapping."""

    def test_success(self, build_client, base_payload):
        client = build_client({"/orchestrate": httpx.Response(200, json=ROUTED_BODY)})
        response = client.post("/api/analysis", json={"context": base_payload})

        assert response.status_code == 200
        data = response.json()
        assert data["recommendation"]["nextAction"] == "Bowl into the pitch"
        assert data["agents"]["tactical"]["status"] == "SUCCESS"
        assert data["routerDecision"]["intent"] == "TacticalAttack"
        assert data["sequence"] == 1

        state = client.get("/api/analysis/state").json()
        assert state["sequence"] == 1
        assert state["running"] is False
        assert state["recommendation"]["nextAction"] == "Bowl into the pitch"

    def test_tight_chase_routes_risk_analyzer(self, build_client, chase_payload):
        client = build_client({"/orchestrate": httpx.Response(200, json=ROUTED_BODY)})
        response = client.post("/api/analysis", json={"context": chase_payload})

        decision = response.json()["routerDecision"]
        assert decision["intent"] == "PressureControl"
        assert decision["run"]["risk"] is True

    def test_partial_returns_207(self, build_client, base_payload, tactical_body):
        client = build_client({"/agents/tactical": httpx.Response(200, json=tactical_body)})
        response = client.post("/api/analysis", json={"context": base_payload})

        assert response.status_code == 207
        assert response.json()["recommendation"]["partial"] is True
        assert response.json()["agents"]["risk"]["status"] == "SKIPPED"

    def test_failure_returns_502(self, build_client, base_payload):
        client = build_client()
        response = client.post("/api/analysis", json={"context": base_payload})

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["error"]["status"] == 500
        assert detail["error"]["url"].endswith("/agents/tactical")

        state = client.get("/api/analysis/state").json()
        assert state["recommendation"] is None
        assert state["failure"]["error"]["status"] == 500

    def test_invalid_context_returns_422(self, build_client):
        response = build_client().post("/api/analysis", json={"context": {"roster": [{"role": "Batter"}]}})
        assert response.status_code == 422

    def test_superseded_returns_409(self, build_client, base_payload):
        client = build_client()
        orchestrator = client.app.state.orchestrator
        with patch.object(orchestrator, "run_analysis", AsyncMock(return_value=None)):
            response = client.post("/api/analysis", json={"context": base_payload})
        assert response.status_code == 409


class TestHealthRoute:
    def test_reachable(self, build_client):
        client = build_client({"/health": httpx.Response(200, json={"status": "ok"})})
        data = client.get("/api/health").json()
        assert data["status"] == "ok"
        assert data["analyzersReachable"] is True

    def test_unreachable_is_still_ok(self, build_client):
        response = build_client().get("/api/health")
        assert response.status_code == 200
        assert response.json()["analyzersReachable"] is False
        assert response.json()["analyzers"]["kind"] == "http_5xx"
