"""Tests for merging analyzer outputs, substitution resolution and safety ranking."""

import copy

import pytest

from tactiq.analyzers.errors import MergeError
from tactiq.context.models import RosterPlayer
from tactiq.merge.merger import (
    DEFAULT_IF_IGNORED,
    DEFAULT_NEXT_ACTION,
    DEFAULT_RATIONALE,
    FALLBACK_WARNING,
    PARTIAL_WARNING,
    RawResults,
    reported_errors,
    merge,
)
from tactiq.merge.safety import is_eligible_for_mode, rank_safety_candidates
from tactiq.merge.substitution import resolve_substitution, scan_text_for_player


@pytest.fixture
def players(roster) -> tuple[RosterPlayer, ...]:
    return tuple(RosterPlayer.model_validate(entry) for entry in roster)


def _raw(payload=None, players=(), **kwargs) -> RawResults:
    return RawResults(payload=payload or {}, roster=tuple(players), active_player_id="p1", **kwargs)


STRATEGIC = {
    "strategicAnalysis": {
        "tacticalRecommendation": {
            "nextAction": "Switch to the spinner from the pavilion end",
            "why": "Batter is set against pace.",
            "ifIgnored": "Boundary rate keeps climbing.",
            "alternatives": ["Slower balls into the pitch", "Slower balls into the pitch", "Deep point back"],
        }
    },
    "combinedDecision": {"immediateAction": "Bowl wide yorkers", "confidence": 0.8},
    "tactical": {"immediateAction": "Attack the stumps", "rationale": "Tactical view."},
}


class TestMerge:
    """Tests for merge() field preference, defaults and partial handling."""

    def test_merge_is_idempotent_and_pure(self, players):
        raw = _raw(copy.deepcopy(STRATEGIC), players)
        before = copy.deepcopy(raw.payload)

        assert merge(raw) == merge(raw)
        assert raw.payload == before

    def test_strategic_analysis_preferred(self):
        recommendation = merge(_raw(copy.deepcopy(STRATEGIC)))

        assert recommendation.next_action == "Switch to the spinner from the pavilion end"
        assert recommendation.rationale == "Batter is set against pace."
        assert recommendation.if_ignored == "Boundary rate keeps climbing."
        assert recommendation.alternatives == ("Slower balls into the pitch", "Deep point back")
        assert recommendation.confidence == 0.8
        assert recommendation.sources[0] == "combined"

    def test_combined_decision_before_tactical(self):
        payload = {k: v for k, v in STRATEGIC.items() if k != "strategicAnalysis"}
        recommendation = merge(_raw(payload))
        assert recommendation.next_action == "Bowl wide yorkers"
        assert recommendation.rationale == "Tactical view."

    def test_normalized_decision_is_not_analyzer_output(self):
        payload = {
            "combinedDecision": {"immediateAction": "Continue with monitored plan"},
            "tactical": {"immediateAction": "Attack the stumps"},
            "meta": {"normalized": True},
        }
        assert merge(_raw(payload)).next_action == "Attack the stumps"

    def test_normalized_decision_alone_is_unusable(self):
        payload = {"combinedDecision": {"immediateAction": "Continue with monitored plan"}, "meta": {"normalized": True}}
        with pytest.raises(MergeError):
            merge(_raw(payload))

    def test_defaults_fill_missing_fields(self):
        recommendation = merge(_raw({"fatigue": {"headline": "Fatigue high"}}))

        assert recommendation.next_action == DEFAULT_NEXT_ACTION
        assert recommendation.rationale == DEFAULT_RATIONALE
        assert recommendation.if_ignored == DEFAULT_IF_IGNORED
        assert recommendation.sources == ("fatigue",)
        assert recommendation.partial is False

    def test_nothing_usable_raises(self):
        with pytest.raises(MergeError):
            merge(_raw({"tactical": {"status": "error", "immediateAction": "x"}}))

    def test_nested_agent_outputs(self):
        payload = {
            "agentOutputs": {"tactical": {"immediateAction": "Bowl into the wicket"}},
            "agentResults": {"risk": {"status": "error", "error": "timeout"}},
        }
        recommendation = merge(_raw(payload))
        assert recommendation.next_action == "Bowl into the wicket"
        assert recommendation.partial is True
        assert recommendation.warning == PARTIAL_WARNING

    def test_reported_errors_mark_partial(self, tactical_body):
        payload = {"tactical": tactical_body, "errors": [{"agent": "fatigue", "message": "timed out"}]}
        recommendation = merge(_raw(payload))
        assert recommendation.partial is True
        assert recommendation.warning == PARTIAL_WARNING

    def test_string_errors_count_as_one_message(self, tactical_body):
        payload = {"tactical": tactical_body, "errors": "risk analyzer timed out"}
        assert reported_errors(_raw(payload)) == ["risk analyzer timed out"]

    def test_mapping_errors_count_as_one_entry(self, tactical_body):
        payload = {"tactical": tactical_body, "errors": {"agent": "risk", "message": "timed out"}}
        assert reported_errors(_raw(payload)) == ["risk: timed out"]

    def test_non_list_errors_ignored(self, tactical_body):
        recommendation = merge(_raw({"tactical": tactical_body, "errors": 42}))
        assert recommendation.partial is False

    def test_multi_status_marks_partial(self, tactical_body):
        recommendation = merge(_raw({"tactical": tactical_body}, status_code=207))
        assert recommendation.partial is True

    def test_tactical_fallback_warning(self, tactical_body):
        recommendation = merge(_raw({}, tactical=tactical_body, source="tactical_fallback"))
        assert recommendation.partial is True
        assert recommendation.warning == FALLBACK_WARNING
        assert recommendation.alternatives == ("Bring fine leg up", "Keep slip in place")
        assert recommendation.confidence == 0.62

    def test_to_dict(self, tactical_body, players):
        payload = {"tactical": tactical_body, "suggestedRotation": {"playerId": "p2"}}
        data = merge(_raw(payload, players)).to_dict()
        assert data["nextAction"] == "Hold the length"
        assert data["suggestedSubstitution"]["playerId"] == "p2"
        assert data["suggestedSubstitution"]["source"] == "suggestedRotation"


class TestSubstitution:
    """Tests for structured substitution candidates and the free-text scan."""

    def test_recommendation_comes_first(self, players):
        payload = {"recommendation": {"bowlerId": "p2"}, "suggestedRotation": {"playerId": "p4"}}
        suggestion = resolve_substitution(payload, {}, players, "BOWLING", "p1")
        assert suggestion.player_id == "p2"
        assert suggestion.source == "recommendation"

    def test_active_player_is_discarded(self, players):
        payload = {"recommendation": {"bowlerId": "p1"}, "suggestedRotation": {"playerId": "p4"}}
        suggestion = resolve_substitution(payload, {}, players, "BOWLING", "p1")
        assert suggestion.player_id == "p4"

    def test_ineligible_candidate_is_discarded(self, players):
        payload = {"recommendation": {"bowlerName": "Ravi"}}
        assert resolve_substitution(payload, {}, players, "BOWLING", "p1") is None

    def test_unknown_player_is_discarded(self, players):
        payload = {"recommendation": {"bowlerId": "x9", "bowlerName": "Someone Else"}}
        assert resolve_substitution(payload, {}, players, "BOWLING", "p1") is None

    def test_final_recommendation_follows_team_mode(self, players):
        payload = {
            "finalRecommendation": {
                "nextSafeBowler": {"playerId": "p2"},
                "nextSafeBatter": {"playerId": "p3", "reason": "Fresh legs"},
            }
        }
        batting = resolve_substitution(payload, {}, players, "BATTING", "p1")
        bowling = resolve_substitution(payload, {}, players, "BOWLING", "p1")
        assert batting.player_id == "p3"
        assert batting.reason == "Fresh legs"
        assert bowling.player_id == "p2"

    def test_tactical_advice_matches_name_case_insensitively(self, players):
        tactical = {"substitutionAdvice": {"in": "arjun nair", "reason": "Needs a change"}}
        suggestion = resolve_substitution({}, tactical, players, "BOWLING", "p1")
        assert suggestion.player_id == "p4"
        assert suggestion.source == "tactical.substitutionAdvice"

    def test_free_text_is_last_resort(self, players):
        suggestion = resolve_substitution({}, {}, players, "BOWLING", "p1", free_text=("Bring Dev Shah back",))
        assert suggestion.player_id == "p5"
        assert suggestion.source == "text"

    def test_longest_name_wins(self):
        roster = [
            RosterPlayer(player_id="b1", name="Ravi", role="Batter"),
            RosterPlayer(player_id="b2", name="Ravi Kumar", role="Batter"),
        ]
        assert scan_text_for_player(["Send Ravi Kumar in next"], roster, "BATTING").player_id == "b2"
        assert scan_text_for_player(["Send Ravi in next"], roster, "BATTING").player_id == "b1"

    def test_name_must_match_whole_words(self):
        roster = [RosterPlayer(player_id="b1", name="Ravi", role="Batter")]
        assert scan_text_for_player(["Ravindra to face"], roster, "BATTING") is None


class TestSafety:
    """Tests for eligibility and bench safety ranking."""

    def test_eligibility(self, players):
        by_id = {p.player_id: p for p in players}
        assert is_eligible_for_mode(by_id["p2"], "BOWLING")
        assert not is_eligible_for_mode(by_id["p3"], "BOWLING")
        assert is_eligible_for_mode(by_id["p3"], "BATTING")
        assert is_eligible_for_mode(by_id["p4"], "BATTING")
        assert not is_eligible_for_mode(by_id["p2"], "BATTING")

    def test_flags_override_role(self):
        player = RosterPlayer(player_id="x", name="X", role="Batter", can_bowl=True)
        assert is_eligible_for_mode(player, "BOWLING")

    def test_dismissed_cannot_bat(self):
        player = RosterPlayer(player_id="x", name="X", role="Batter", is_dismissed=True)
        assert not is_eligible_for_mode(player, "BATTING")

    def test_two_letter_hints_match_whole_tokens(self):
        assert not is_eligible_for_mode(RosterPlayer(player_id="x", name="X", role="Guard"), "BOWLING")
        assert is_eligible_for_mode(RosterPlayer(player_id="x", name="X", role="AR"), "BOWLING")

    def test_rank_excludes_active_player(self, players):
        result = rank_safety_candidates(list(players), active_player_id="p1")

        assert [c.player_id for c in result.bowler_candidates] == ["p2", "p4", "p5"]
        assert [c.player_id for c in result.batter_candidates] == ["p3", "p4"]
        assert result.next_safe_bowler.player_id == "p2"
        assert result.next_safe_batter.player_id == "p3"

    def test_rank_limit(self, players):
        result = rank_safety_candidates(list(players), active_player_id="p1", limit=1)
        assert len(result.bowler_candidates) == 1
