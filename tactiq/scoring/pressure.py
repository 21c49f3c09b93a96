"""Batting pressure index (0-10) for the active batter.

The pressure shown to operators is built from two parts:

- base_level: exponentially smoothed toward a target pressure computed from
  match-situation stressors (run-rate gap, chase difficulty, wickets, ...)
- event_delta: short-term adjustment from ball-by-ball events (boundary
  relief, dot-ball penalty), decaying as balls are consumed

Displayed pressure is clamp(base_level + event_delta, 0, 10) and may move at
most +0.35 / -0.8 per update. Once the innings or over allocation is
exhausted the last valid value is held instead of being recomputed.

Algorithm (per update):
    target   = clamp(2.0 + sum(weight * coef(endgame) * stress), 0, 10)
    base     = base + 0.18 * (target - base)
    delta    = delta * 0.85^balls - relief + dot_penalty, clamped [-3.5, 2.5]
    shown    = clamp(prev + clamp(clamp(base + delta) - prev, -0.8, 0.35), 0, 10)
    delta    = back-derived from shown so state stays consistent
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from loguru import logger

from tactiq.scoring.workload import Phase, clamp

PRESSURE_RANGE = (0.0, 10.0)
PRESSURE_FLOOR = 2.0
SMOOTHING_ALPHA = 0.18
EVENT_DECAY = 0.85
EVENT_DELTA_RANGE = (-3.5, 2.5)
MAX_RISE_PER_UPDATE = 0.35
MAX_FALL_PER_UPDATE = 0.8
FOUR_RELIEF = 0.5
SIX_RELIEF = 0.8
DOT_BALL_PENALTY = 0.1
ENDGAME_BALLS = 30

TERM_WEIGHTS: dict[str, float] = {
    "run_rate_gap": 4.0,
    "chase_difficulty": 2.5,
    "wickets_down": 1.5,
    "strike_rate_gap": 1.1,
    "behind_projection": 1.0,
    "balls_consumed": 0.7,
    "phase": 0.4,
}

# Coefficient sets blended by the endgame factor (0 = early innings, 1 = last balls)
EARLY_COEFFICIENTS: dict[str, float] = {
    "run_rate_gap": 1.0,
    "chase_difficulty": 1.0,
    "wickets_down": 1.0,
    "strike_rate_gap": 1.0,
    "behind_projection": 0.8,
    "balls_consumed": 0.8,
    "phase": 1.0,
}
ENDGAME_COEFFICIENTS: dict[str, float] = {
    "run_rate_gap": 1.15,
    "chase_difficulty": 1.2,
    "wickets_down": 1.1,
    "strike_rate_gap": 1.2,
    "behind_projection": 1.3,
    "balls_consumed": 1.3,
    "phase": 1.25,
}

PHASE_STRESS: dict[Phase, float] = {
    Phase.POWERPLAY: 0.25,
    Phase.MIDDLE: 0.55,
    Phase.DEATH: 1.0,
}

DRIVER_CUES: dict[str, str] = {
    "run_rate_gap": "Rotate strike early in the over and avoid back-to-back dot balls.",
    "chase_difficulty": "Pick the bowler to target this over and pre-plan the boundary option.",
    "wickets_down": "Reduce aerial risk and preserve wicket value for the back end.",
    "strike_rate_gap": "Work singles into gaps to lift tempo without gifting chances.",
    "behind_projection": "Convert ones into twos and target the weakest field zone.",
    "balls_consumed": "Pre-plan two scoring zones and commit to high-percentage placement.",
    "phase": "Target straighter boundary options against yorker-heavy plans.",
}


@dataclass(frozen=True)
class BatterSnapshot:
    runs: int = 0
    balls_faced: int = 0
    fours: int = 0
    sixes: int = 0

    @property
    def strike_rate(self) -> float:
        if self.balls_faced <= 0:
            return 0.0
        return (self.runs / self.balls_faced) * 100


@dataclass(frozen=True)
class PressureInputs:
    """Match situation and batter counters for one pressure update."""

    required_run_rate: float = 0.0
    current_run_rate: float = 0.0
    wickets_down: int = 0
    phase: Phase = Phase.MIDDLE
    balls_remaining: int | None = None
    total_balls: int | None = None
    target: int | None = None
    score: int | None = None
    batter: BatterSnapshot = field(default_factory=BatterSnapshot)
    allocation_exhausted: bool = False

    @property
    def run_rate_gap(self) -> float:
        return max(0.0, self.required_run_rate - self.current_run_rate)

    @property
    def endgame_factor(self) -> float:
        if self.balls_remaining is None:
            return 0.0
        return clamp((ENDGAME_BALLS - self.balls_remaining) / ENDGAME_BALLS, 0, 1)


@dataclass(frozen=True)
class PressureState:
    """Per-player smoothing state, owned by PressureEngine."""

    player_id: str
    base_level: float
    event_delta: float
    last_event_snapshot: BatterSnapshot
    target: float
    frozen: bool = False

    @property
    def displayed(self) -> float:
        return clamp(self.base_level + self.event_delta, *PRESSURE_RANGE)


@dataclass(frozen=True)
class PressureDriver:
    key: str
    score: float
    cue: str


def stress_terms(inputs: PressureInputs) -> dict[str, float]:
    """Independent stressors, each normalized to [0, 1]."""
    rrr = max(0.0, inputs.required_run_rate)

    strike_rate_gap = 0.0
    if inputs.batter.balls_faced > 0 and rrr > 0:
        required_strike_rate = rrr / 6 * 100
        strike_rate_gap = clamp((required_strike_rate - inputs.batter.strike_rate) / 60, 0, 1)

    behind_projection = 0.0
    if inputs.target is not None and inputs.score is not None and inputs.balls_remaining is not None:
        projected = inputs.score + inputs.current_run_rate * (inputs.balls_remaining / 6)
        behind_projection = clamp((inputs.target - projected) / 30, 0, 1)

    balls_consumed = 0.0
    if inputs.total_balls and inputs.balls_remaining is not None:
        balls_consumed = clamp(1 - inputs.balls_remaining / inputs.total_balls, 0, 1)

    return {
        "run_rate_gap": clamp(inputs.run_rate_gap / 4, 0, 1),
        "chase_difficulty": clamp((rrr - 8) / 2, 0, 1),
        "wickets_down": clamp(inputs.wickets_down / 6, 0, 1),
        "strike_rate_gap": strike_rate_gap,
        "behind_projection": behind_projection,
        "balls_consumed": balls_consumed,
        "phase": PHASE_STRESS.get(inputs.phase, PHASE_STRESS[Phase.MIDDLE]),
    }


def _weighted_terms(inputs: PressureInputs) -> dict[str, float]:
    endgame = inputs.endgame_factor
    weighted: dict[str, float] = {}
    for key, stress in stress_terms(inputs).items():
        early = EARLY_COEFFICIENTS[key]
        coefficient = early + (ENDGAME_COEFFICIENTS[key] - early) * endgame
        weighted[key] = TERM_WEIGHTS[key] * coefficient * stress
    return weighted


def target_pressure(inputs: PressureInputs) -> float:
    """Unsmoothed pressure for the current match situation."""
    return clamp(PRESSURE_FLOOR + sum(_weighted_terms(inputs).values()), *PRESSURE_RANGE)


def pressure_drivers(inputs: PressureInputs, limit: int = 3) -> list[PressureDriver]:
    """Dominant weighted terms, strongest first, each with a coaching cue."""
    drivers = [
        PressureDriver(key=key, score=round(score, 2), cue=DRIVER_CUES[key])
        for key, score in _weighted_terms(inputs).items()
        if score > 0.35
    ]
    drivers.sort(key=lambda d: d.score, reverse=True)
    return drivers[:limit]


def _apply_events(state: PressureState, inputs: PressureInputs) -> float:
    previous = state.last_event_snapshot
    current = inputs.batter
    new_balls = max(0, current.balls_faced - previous.balls_faced)
    runs_added = max(0, current.runs - previous.runs)
    new_fours = max(0, current.fours - previous.fours)
    new_sixes = max(0, current.sixes - previous.sixes)

    delta = state.event_delta
    if new_balls:
        delta *= EVENT_DECAY**new_balls

    relief_scale = 1 + 0.5 * clamp(inputs.run_rate_gap / 6, 0, 1)
    delta -= FOUR_RELIEF * relief_scale * new_fours
    delta -= SIX_RELIEF * relief_scale * new_sixes

    if new_balls and runs_added == 0:
        delta += DOT_BALL_PENALTY * new_balls

    return clamp(delta, *EVENT_DELTA_RANGE)


def update_pressure(state: PressureState | None, inputs: PressureInputs, player_id: str) -> PressureState:
    """Advance one player's pressure state by one scoring event or clock tick.

    Args:
        state: Previous state for this player, or None for a player without history
        inputs: Current match situation and batter counters
        player_id: Player the state belongs to

    Returns:
        New PressureState. A player without history starts at the fresh target.
        A frozen state (allocation exhausted) is returned unchanged.
    """
    target = target_pressure(inputs)

    if state is None:
        return PressureState(
            player_id=player_id,
            base_level=target,
            event_delta=0.0,
            last_event_snapshot=inputs.batter,
            target=target,
            frozen=inputs.allocation_exhausted,
        )

    if inputs.allocation_exhausted:
        if not state.frozen:
            logger.debug("Pressure frozen at last valid value", player_id=player_id, pressure=state.displayed)
            return replace(state, frozen=True)
        return state

    event_delta = _apply_events(state, inputs)
    base_level = state.base_level + SMOOTHING_ALPHA * (target - state.base_level)

    previous_displayed = state.displayed
    raw_next = clamp(base_level + event_delta, *PRESSURE_RANGE)
    step = clamp(raw_next - previous_displayed, -MAX_FALL_PER_UPDATE, MAX_RISE_PER_UPDATE)
    displayed = clamp(previous_displayed + step, *PRESSURE_RANGE)

    # Back-derive so that clamp(base + delta) == displayed with delta in range
    event_delta = clamp(displayed - base_level, *EVENT_DELTA_RANGE)
    base_level = displayed - event_delta

    return PressureState(
        player_id=player_id,
        base_level=base_level,
        event_delta=event_delta,
        last_event_snapshot=inputs.batter,
        target=target,
        frozen=False,
    )


class PressureEngine:
    """Owner of the per-player PressureState map.

    Switching the active player never mutates another player's stored state.
    Players without state display the freshly computed target pressure.
    """

    def __init__(self) -> None:
        self._states: dict[str, PressureState] = {}
        self.active_player_id: str | None = None

    def get(self, player_id: str) -> PressureState | None:
        return self._states.get(player_id)

    def set_active(self, player_id: str | None) -> None:
        if player_id != self.active_player_id:
            logger.debug("Active batter changed", previous=self.active_player_id, current=player_id)
        self.active_player_id = player_id

    def update(self, player_id: str, inputs: PressureInputs) -> PressureState:
        """Apply a scoring event or clock tick for player_id."""
        state = update_pressure(self._states.get(player_id), inputs, player_id)
        self._states[player_id] = state
        return state

    def display(self, player_id: str, inputs: PressureInputs | None = None) -> float:
        state = self._states.get(player_id)
        if state is not None:
            return state.displayed
        if inputs is None:
            return PRESSURE_FLOOR
        return target_pressure(inputs)

    def reset(self, player_id: str) -> None:
        self._states.pop(player_id, None)

    def retain(self, roster_ids: set[str] | list[str]) -> None:
        """Drop state for players who left the roster."""
        keep = set(roster_ids)
        for player_id in list(self._states):
            if player_id not in keep:
                del self._states[player_id]
        if self.active_player_id is not None and self.active_player_id not in keep:
            self.active_player_id = None
