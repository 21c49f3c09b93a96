"""Normalized analysis context models.

Inbound payloads (camelCase from the UI or analyzers, snake_case from Python
callers) are validated once at this boundary. Every numeric field is clamped
to its documented range and every label is normalized, so downstream scoring,
routing and merging never see missing, NaN or out-of-range values.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from tactiq.scoring.workload import (
    ATTRIBUTE_RANGE,
    FATIGUE_RANGE,
    RECOVERY_MINUTES_RANGE,
    SLEEP_RANGE,
    UNCAPPED_OVERS,
    Phase,
    clamped,
    max_overs_for_format,
    normalize_phase,
    safe_float,
)

TeamMode = Literal["BOWLING", "BATTING"]
RiskLabel = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]


def normalize_risk_label(value: Any, default: str = "LOW") -> str:
    token = str(value or "").strip().upper()
    if token in {"MED", "MEDIUM"}:
        return "MEDIUM"
    if token in {"LOW", "HIGH", "CRITICAL"}:
        return token
    return default


def normalize_team_mode(value: Any) -> str:
    token = str(value or "").strip().upper()
    return "BATTING" if token in {"BAT", "BATTING"} else "BOWLING"


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in {"true", "1", "yes"}


class _ContextModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PlayerBaseline(_ContextModel):
    """Stored baseline profile for one player."""

    player_id: str = ""
    name: str = ""
    role: str = "AR"
    sleep_hours: float = 7.0
    recovery_minutes: float = 45.0
    fatigue_limit: float = 6.0
    control: float = 70.0
    speed: float = 70.0
    power: float = 70.0
    recovery_score: float = 45.0
    workload_7d: float = 0.0
    workload_28d: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_aliases(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        legacy = {
            "id": "playerId",
            "sleep": "sleepHours",
            "sleepHoursToday": "sleepHours",
            "recovery": "recoveryMinutes",
            "controlBaseline": "control",
        }
        for old, new in legacy.items():
            if old in data and new not in data:
                data[new] = data[old]
        return data

    @field_validator("player_id", "name", "role", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("sleep_hours", mode="before")
    @classmethod
    def clamp_sleep(cls, v: Any) -> float:
        return clamped(v, SLEEP_RANGE, 7.0)

    @field_validator("recovery_minutes", mode="before")
    @classmethod
    def clamp_recovery_minutes(cls, v: Any) -> float:
        return clamped(v, RECOVERY_MINUTES_RANGE, 45.0)

    @field_validator("fatigue_limit", mode="before")
    @classmethod
    def clamp_fatigue_limit(cls, v: Any) -> float:
        return clamped(v, FATIGUE_RANGE, 6.0)

    @field_validator("control", "speed", "power", mode="before")
    @classmethod
    def clamp_attribute(cls, v: Any) -> float:
        return clamped(v, ATTRIBUTE_RANGE, 70.0)

    @field_validator("recovery_score", mode="before")
    @classmethod
    def clamp_recovery_score(cls, v: Any) -> float:
        return clamped(v, ATTRIBUTE_RANGE, 45.0)

    @field_validator("workload_7d", "workload_28d", mode="before")
    @classmethod
    def non_negative(cls, v: Any) -> float:
        return max(0.0, safe_float(v, 0.0))


class LiveTelemetry(_ContextModel):
    """Live workload telemetry for the focus player."""

    player_id: str = ""
    player_name: str = ""
    role: str = ""
    fatigue_index: float = 0.0
    strain_index: float = 0.0
    injury_risk: str = "LOW"
    no_ball_risk: str = "LOW"
    heart_rate_recovery: str = ""
    overs_bowled: int = 0
    spell_overs: int = 0
    max_overs: int = UNCAPPED_OVERS
    no_ball_trend: Literal["up", "flat", "down"] = "flat"
    recent_events: list[str] = Field(default_factory=list)
    is_unfit: bool = False

    @field_validator("player_id", "player_name", "role", "heart_rate_recovery", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("fatigue_index", mode="before")
    @classmethod
    def clamp_fatigue(cls, v: Any) -> float:
        return clamped(v, FATIGUE_RANGE, 0.0)

    @field_validator("strain_index", mode="before")
    @classmethod
    def clamp_strain(cls, v: Any) -> float:
        return clamped(v, FATIGUE_RANGE, 0.0)

    @field_validator("injury_risk", "no_ball_risk", mode="before")
    @classmethod
    def normalize_label(cls, v: Any) -> str:
        return normalize_risk_label(v)

    @field_validator("overs_bowled", "spell_overs", mode="before")
    @classmethod
    def non_negative_overs(cls, v: Any) -> int:
        return int(max(0.0, safe_float(v, 0.0)))

    @field_validator("max_overs", mode="before")
    @classmethod
    def positive_cap(cls, v: Any) -> int:
        return int(max(1.0, safe_float(v, UNCAPPED_OVERS)))

    @field_validator("no_ball_trend", mode="before")
    @classmethod
    def normalize_trend(cls, v: Any) -> str:
        token = str(v or "").strip().lower()
        if token in {"up", "rising", "increasing"}:
            return "up"
        if token in {"down", "falling", "decreasing"}:
            return "down"
        return "flat"

    @field_validator("recent_events", mode="before")
    @classmethod
    def normalize_events(cls, v: Any) -> list[str]:
        if not isinstance(v, (list, tuple)):
            return []
        return [str(e).strip().lower().replace("-", "_").replace(" ", "_") for e in v if e]

    @field_validator("is_unfit", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        return _to_bool(v)

    @model_validator(mode="after")
    def cap_overs(self) -> "LiveTelemetry":
        self.overs_bowled = min(self.overs_bowled, self.max_overs)
        self.spell_overs = min(self.spell_overs, self.overs_bowled)
        return self


class MatchSituation(_ContextModel):
    """Innings state; run rates are derived when not supplied."""

    format: str = "T20"
    phase: Phase = Phase.MIDDLE
    intensity: str = "Medium"
    conditions: str | None = None
    score: int = 0
    wickets: int = 0
    balls_bowled: int = 0
    total_overs: int = 20
    target: int | None = None
    required_run_rate: float | None = None
    current_run_rate: float | None = None

    @field_validator("phase", mode="before")
    @classmethod
    def coerce_phase(cls, v: Any) -> Phase:
        return normalize_phase(v)

    @field_validator("score", "balls_bowled", mode="before")
    @classmethod
    def non_negative(cls, v: Any) -> int:
        return int(max(0.0, safe_float(v, 0.0)))

    @field_validator("wickets", mode="before")
    @classmethod
    def clamp_wickets(cls, v: Any) -> int:
        return int(clamped(v, (0.0, 10.0), 0.0))

    @field_validator("total_overs", mode="before")
    @classmethod
    def positive_overs(cls, v: Any) -> int:
        return int(max(1.0, safe_float(v, 20.0)))

    @field_validator("target", mode="before")
    @classmethod
    def optional_target(cls, v: Any) -> int | None:
        number = safe_float(v, -1.0)
        return int(number) if number > 0 else None

    @field_validator("required_run_rate", "current_run_rate", mode="before")
    @classmethod
    def optional_rate(cls, v: Any) -> float | None:
        if v is None:
            return None
        number = safe_float(v, -1.0)
        return number if number >= 0 else None

    @model_validator(mode="after")
    def derive_rates(self) -> "MatchSituation":
        self.balls_bowled = min(self.balls_bowled, self.total_balls)
        if self.current_run_rate is None:
            overs_faced = self.balls_bowled / 6
            self.current_run_rate = round(self.score / overs_faced, 2) if overs_faced > 0 else 0.0
        if self.required_run_rate is None:
            if self.target is not None and self.balls_remaining > 0:
                runs_needed = max(0, self.target - self.score)
                self.required_run_rate = round(runs_needed / (self.balls_remaining / 6), 2)
            else:
                self.required_run_rate = self.current_run_rate
        return self

    @property
    def total_balls(self) -> int:
        return self.total_overs * 6

    @property
    def balls_remaining(self) -> int:
        return max(0, self.total_balls - self.balls_bowled)

    @property
    def wickets_in_hand(self) -> int:
        return max(0, 10 - self.wickets)

    @property
    def innings_complete(self) -> bool:
        return self.balls_remaining == 0 or self.wickets >= 10

    @property
    def over_label(self) -> str:
        return f"{self.balls_bowled // 6}.{self.balls_bowled % 6}"


class BatterCounters(_ContextModel):
    runs: int = 0
    balls_faced: int = 0
    fours: int = 0
    sixes: int = 0

    @field_validator("runs", "balls_faced", "fours", "sixes", mode="before")
    @classmethod
    def non_negative(cls, v: Any) -> int:
        return int(max(0.0, safe_float(v, 0.0)))


class RosterPlayer(_ContextModel):
    """A selectable squad member with its latest live signals."""

    player_id: str
    name: str
    role: str = ""
    can_bowl: bool = False
    can_bat: bool = False
    fatigue_index: float = 5.0
    injury_risk: str = "UNKNOWN"
    overs_bowled: int = 0
    is_dismissed: bool = False
    baseline: PlayerBaseline | None = None

    @field_validator("player_id", "name", "role", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("can_bowl", "can_bat", "is_dismissed", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        return _to_bool(v)

    @field_validator("fatigue_index", mode="before")
    @classmethod
    def clamp_fatigue(cls, v: Any) -> float:
        return clamped(v, FATIGUE_RANGE, 5.0)

    @field_validator("injury_risk", mode="before")
    @classmethod
    def normalize_label(cls, v: Any) -> str:
        return normalize_risk_label(v, default="UNKNOWN")

    @field_validator("overs_bowled", mode="before")
    @classmethod
    def non_negative(cls, v: Any) -> int:
        return int(max(0.0, safe_float(v, 0.0)))


class AnalysisContext(_ContextModel):
    """Fully populated, range-checked input for one analysis cycle."""

    team_mode: TeamMode = "BOWLING"
    focus_role: str = "BOWLER"
    active_player_id: str = ""
    telemetry: LiveTelemetry = Field(default_factory=LiveTelemetry)
    match: MatchSituation = Field(default_factory=MatchSituation)
    baseline: PlayerBaseline | None = None
    batter: BatterCounters = Field(default_factory=BatterCounters)
    roster: list[RosterPlayer] = Field(default_factory=list)
    pressure: float | None = None

    @field_validator("team_mode", mode="before")
    @classmethod
    def coerce_team_mode(cls, v: Any) -> str:
        return normalize_team_mode(v)

    @field_validator("focus_role", mode="before")
    @classmethod
    def coerce_focus_role(cls, v: Any) -> str:
        return str(v or "BOWLER").strip().upper()

    @field_validator("pressure", mode="before")
    @classmethod
    def clamp_pressure(cls, v: Any) -> float | None:
        if v is None:
            return None
        return clamped(v, (0.0, 10.0), 0.0)

    @model_validator(mode="after")
    def fill_defaults(self) -> "AnalysisContext":
        if not self.active_player_id:
            self.active_player_id = self.telemetry.player_id
        if self.telemetry.max_overs == UNCAPPED_OVERS:
            self.telemetry.max_overs = max_overs_for_format(self.match.format)
            self.telemetry.overs_bowled = min(self.telemetry.overs_bowled, self.telemetry.max_overs)
            self.telemetry.spell_overs = min(self.telemetry.spell_overs, self.telemetry.overs_bowled)
        return self

    def roster_player(self, player_id: str) -> RosterPlayer | None:
        for player in self.roster:
            if player.player_id == player_id:
                return player
        return None
