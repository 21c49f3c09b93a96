"""Merge raw analyzer outputs into one TacticalRecommendation.

merge() is pure: it reads the raw results, never mutates them and keeps no
counters, so merging the same input twice yields equal recommendations.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from tactiq.analyzers.errors import MergeError
from tactiq.context.models import RosterPlayer, TeamMode
from tactiq.merge.substitution import SubstitutionSuggestion, resolve_substitution
from tactiq.routing.types import ANALYZERS, AnalyzerName

ResultSource = Literal["routed", "full", "tactical_fallback"]

DEFAULT_NEXT_ACTION = "Hold the current plan and monitor workload each over."
DEFAULT_RATIONALE = "Limited analyzer output available; keeping a conservative plan."
DEFAULT_IF_IGNORED = "Risk signals may escalate without intervention."

PARTIAL_WARNING = "Some signals unavailable. Showing best available guidance."
FALLBACK_WARNING = "Tactical fallback in use; fatigue and risk analysis skipped. Showing best available guidance."

OUTPUT_TEXT_KEYS = ("immediateAction", "nextAction", "recommendation", "headline", "explanation", "summary")


@dataclass(frozen=True)
class RawResults:
    """Everything one analysis cycle collected, as handed to merge()."""

    payload: Mapping[str, Any] = field(default_factory=dict)
    tactical: Mapping[str, Any] | None = None
    status_code: int = 200
    source: ResultSource = "routed"
    errors: tuple[str, ...] = ()
    roster: tuple[RosterPlayer, ...] = ()
    team_mode: TeamMode = "BOWLING"
    active_player_id: str = ""


@dataclass(frozen=True)
class TacticalRecommendation:
    next_action: str
    rationale: str
    if_ignored: str
    alternatives: tuple[str, ...] = ()
    suggested_substitution: SubstitutionSuggestion | None = None
    warning: str | None = None
    partial: bool = False
    confidence: float | None = None
    sources: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "nextAction": self.next_action,
            "rationale": self.rationale,
            "ifIgnored": self.if_ignored,
            "alternatives": list(self.alternatives),
            "suggestedSubstitution": self.suggested_substitution.to_dict() if self.suggested_substitution else None,
            "warning": self.warning,
            "partial": self.partial,
            "confidence": self.confidence,
            "sources": list(self.sources),
        }


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, list):
        joined = " ".join(str(v).strip() for v in value if isinstance(v, str) and v.strip())
        return joined or None
    return None


def _first_text(*values: Any) -> str | None:
    for value in values:
        text = _text(value)
        if text:
            return text
    return None


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def analyzer_slot(raw: RawResults, name: AnalyzerName) -> Mapping[str, Any]:
    """Output of one analyzer, wherever the response placed it."""
    payload = raw.payload
    if name == "tactical" and raw.tactical:
        return raw.tactical
    direct = _mapping(payload.get(name))
    if direct:
        return direct
    nested = _mapping(_mapping(payload.get("agentOutputs")).get(name))
    if nested:
        return nested
    result = _mapping(_mapping(payload.get("agentResults")).get(name))
    if result.get("status") != "error":
        return _mapping(result.get("output"))
    return {}


def is_usable_output(slot: Mapping[str, Any]) -> bool:
    if not slot or slot.get("status") == "error":
        return False
    return any(_text(slot.get(key)) for key in OUTPUT_TEXT_KEYS)


def _strategic(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    return _mapping(_mapping(payload.get("strategicAnalysis")).get("tacticalRecommendation"))


def _combined(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    # A decision synthesized while normalizing a simplified payload is not analyzer output
    if _mapping(payload.get("meta")).get("normalized"):
        return {}
    return _mapping(payload.get("combinedDecision"))


def _decision_usable(payload: Mapping[str, Any]) -> bool:
    return bool(
        _text(_strategic(payload).get("nextAction"))
        or _text(_combined(payload).get("immediateAction"))
        or _text(_mapping(payload.get("finalDecision")).get("immediateAction"))
    )


def usable_analyzers(raw: RawResults) -> list[AnalyzerName]:
    return [name for name in ANALYZERS if is_usable_output(analyzer_slot(raw, name))]


def has_tactical_signal(raw: RawResults) -> bool:
    """True when a next action can be taken from analyzer output."""
    return _decision_usable(raw.payload) or is_usable_output(analyzer_slot(raw, "tactical"))


def has_usable_output(raw: RawResults) -> bool:
    return has_tactical_signal(raw) or bool(usable_analyzers(raw))


def reported_errors(raw: RawResults) -> list[str]:
    errors = list(raw.errors)
    reported = raw.payload.get("errors") or []
    if isinstance(reported, (str, Mapping)):
        reported = [reported]
    elif not isinstance(reported, list):
        reported = []
    for entry in reported:
        if isinstance(entry, Mapping):
            agent = entry.get("agent") or "analyzer"
            errors.append(f"{agent}: {entry.get('message') or 'failed'}")
        elif isinstance(entry, str):
            errors.append(entry)
    for name in ANALYZERS:
        result = _mapping(_mapping(raw.payload.get("agentResults")).get(name))
        if result.get("status") == "error":
            errors.append(f"{name}: {result.get('error') or result.get('reason') or 'failed'}")
    return errors


def merge(raw: RawResults) -> TacticalRecommendation:
    """Combine (possibly partial) analyzer outputs into one recommendation.

    Field preference: combined-analysis payload (strategicAnalysis, then
    combinedDecision/finalDecision), then the tactical analyzer's own fields,
    then a safe default.

    Raises:
        MergeError: If no analyzer produced usable output
    """
    if not has_usable_output(raw):
        raise MergeError()

    payload = raw.payload
    strategic = _strategic(payload)
    combined = _combined(payload)
    final_decision = _mapping(payload.get("finalDecision"))
    tactical = analyzer_slot(raw, "tactical")
    final_recommendation = _mapping(payload.get("finalRecommendation"))

    next_action = (
        _first_text(
            strategic.get("nextAction"),
            combined.get("immediateAction"),
            final_decision.get("immediateAction"),
            tactical.get("nextAction"),
            tactical.get("immediateAction"),
        )
        or DEFAULT_NEXT_ACTION
    )
    rationale = (
        _first_text(
            strategic.get("why"),
            combined.get("rationale"),
            final_decision.get("rationale"),
            tactical.get("rationale"),
            tactical.get("why"),
        )
        or DEFAULT_RATIONALE
    )
    if_ignored = (
        _first_text(
            strategic.get("ifIgnored"),
            tactical.get("ifIgnored"),
            _mapping(final_recommendation.get("ifContinues")).get("riskSummary"),
        )
        or DEFAULT_IF_IGNORED
    )

    alternatives: list[str] = []
    for source in (
        strategic.get("alternatives"),
        combined.get("suggestedAdjustments"),
        final_decision.get("suggestedAdjustments"),
        tactical.get("suggestedAdjustments"),
    ):
        values = _string_list(source)
        if values:
            alternatives = values
            break
    alternatives = [a for a in dict.fromkeys(alternatives) if a != next_action]

    confidence = None
    for source in (combined, final_decision, tactical):
        value = source.get("confidence")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            confidence = float(value)
            break

    substitution = resolve_substitution(
        payload,
        tactical,
        raw.roster,
        raw.team_mode,
        raw.active_player_id,
        free_text=(next_action, rationale, if_ignored, _text(tactical.get("immediateAction")) or ""),
    )

    errors = reported_errors(raw)
    is_fallback = raw.source == "tactical_fallback"
    partial = bool(errors) or raw.status_code == 207 or is_fallback
    warning = None
    if is_fallback:
        warning = FALLBACK_WARNING
    elif partial:
        warning = PARTIAL_WARNING

    sources = list(usable_analyzers(raw))
    if _decision_usable(payload):
        sources.insert(0, "combined")

    return TacticalRecommendation(
        next_action=next_action,
        rationale=rationale,
        if_ignored=if_ignored,
        alternatives=tuple(alternatives),
        suggested_substitution=substitution,
        warning=warning,
        partial=partial,
        confidence=confidence,
        sources=tuple(sources),
    )
