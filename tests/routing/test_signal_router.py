"""Tests for deterministic signal routing."""

import pytest

from tactiq.context.normalize import build_workload_snapshot, normalize_context
from tactiq.routing.router import MatchSignals, RouterScores, route, scores_from_context
from tactiq.routing.types import RouterIntent
from tactiq.scoring.workload import score_workload


def _scores(**overrides) -> RouterScores:
    values = {"fatigue": 2.0, "strain": 1.0, "overs_bowled": 1, "pressure": 3.0}
    values.update(overrides)
    return RouterScores(**values)


class TestAutoRouting:
    """Tests for trigger-based selection in auto mode."""

    def test_no_ball_risk_routes_to_risk_and_tactical(self):
        """High no-ball risk with low injury risk and pressure 3 selects risk + tactical."""
        decision = route(_scores(no_ball_risk="HIGH", injury_risk="LOW"), MatchSignals())

        assert decision.selected_analyzers == ["risk", "tactical"]
        assert decision.intent == RouterIntent.NO_BALL_CONTROL
        assert "no_ball_label_elevated" in decision.rules_fired

    def test_calm_signals_route_tactical_only(self):
        decision = route(_scores(), MatchSignals())
        assert decision.selected_analyzers == ["tactical"]
        assert decision.intent == RouterIntent.TACTICAL_ATTACK
        assert decision.rules_fired == []

    @pytest.mark.parametrize(
        ("overrides", "rule"),
        [
            ({"fatigue": 6.0}, "fatigue_high"),
            ({"strain": 5.5}, "strain_high"),
            ({"overs_bowled": 3}, "overs_load"),
        ],
    )
    def test_workload_triggers_select_fatigue(self, overrides, rule):
        decision = route(_scores(**overrides), MatchSignals())
        assert decision.selected_analyzers == ["fatigue", "tactical"]
        assert decision.intent == RouterIntent.INJURY_PREVENTION
        assert rule in decision.rules_fired

    def test_just_below_triggers(self):
        decision = route(_scores(fatigue=5.9, strain=5.4, overs_bowled=2, pressure=6.4), MatchSignals())
        assert decision.selected_analyzers == ["tactical"]

    def test_pressure_trigger(self):
        decision = route(_scores(pressure=6.5), MatchSignals())
        assert decision.selected_analyzers == ["risk", "tactical"]
        assert decision.intent == RouterIntent.PRESSURE_CONTROL

    def test_injury_risk_selects_risk(self):
        decision = route(_scores(injury_risk="CRITICAL"), MatchSignals())
        assert decision.selected_analyzers == ["risk", "tactical"]
        assert decision.intent == RouterIntent.INJURY_PREVENTION

    def test_no_ball_trend_up(self):
        decision = route(_scores(), MatchSignals(no_ball_trend="up"))
        assert decision.selected_analyzers == ["risk", "tactical"]
        assert "no_ball_trend_up" in decision.rules_fired

    def test_recent_wide(self):
        decision = route(_scores(), MatchSignals(recent_events=("dot", "wide")))
        assert decision.runs("risk")
        assert "recent_no_ball_or_wide" in decision.rules_fired

    def test_workload_outranks_control_for_intent(self):
        decision = route(_scores(fatigue=7.0, no_ball_risk="HIGH", pressure=8.0), MatchSignals())
        assert decision.selected_analyzers == ["fatigue", "risk", "tactical"]
        assert decision.intent == RouterIntent.INJURY_PREVENTION

    def test_control_outranks_pressure_for_intent(self):
        decision = route(_scores(no_ball_risk="MEDIUM", pressure=8.0), MatchSignals())
        assert decision.intent == RouterIntent.NO_BALL_CONTROL

    def test_tactical_always_selected(self):
        for scores in (_scores(), _scores(fatigue=9, injury_risk="HIGH"), _scores(pressure=10)):
            assert route(scores, MatchSignals()).runs("tactical")


class TestFullMode:
    def test_full_mode_selects_all(self):
        decision = route(_scores(), MatchSignals(), mode="full")
        assert decision.selected_analyzers == ["fatigue", "risk", "tactical"]
        assert decision.intent == RouterIntent.FULL_COVERAGE
        assert decision.rules_fired == ["mode_full"]


class TestDecisionPayload:
    def test_payload_shape(self):
        decision = route(_scores(pressure=7.0), MatchSignals(phase="Death"))
        payload = decision.to_payload()

        assert payload["intent"] == "PressureControl"
        assert payload["selectedAgents"] == ["risk", "tactical"]
        assert payload["run"] == {"fatigue": False, "risk": True, "tactical": True}
        assert payload["signals"]["pressure"] == 7.0
        assert payload["signals"]["phase"] == "Death"


class TestScoresFromContext:
    """Tests for collecting router inputs from a normalized context."""

    def test_derived_label_wins_when_higher(self, base_payload):
        context = normalize_context(base_payload)
        derived = score_workload(build_workload_snapshot(context))
        scores, signals = scores_from_context(context, derived)

        assert context.telemetry.injury_risk == "LOW"
        assert scores.injury_risk == "MEDIUM"
        assert scores.fatigue == 3.0
        assert signals.team_mode == "BOWLING"

    def test_telemetry_label_kept_when_higher(self, base_payload):
        base_payload["telemetry"]["noBallRisk"] = "HIGH"
        context = normalize_context(base_payload)
        derived = score_workload(build_workload_snapshot(context))
        scores, _ = scores_from_context(context, derived)
        assert scores.no_ball_risk == "HIGH"

    def test_explicit_pressure_overrides_context(self, base_payload):
        context = normalize_context({**base_payload, "pressure": 2})
        scores, _ = scores_from_context(context, pressure=7.2)
        assert scores.pressure == 7.2
        assert route(scores, MatchSignals()).intent == RouterIntent.PRESSURE_CONTROL
