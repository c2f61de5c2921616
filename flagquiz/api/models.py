from __future__ import annotations

from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Country(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=2, max_length=3)
    # Plain string, or language code -> text.
    name: str | dict[str, str]
    continent: str
    subregion: str | None = None
    capital: str | None = None
    # Dataset files spell it capitalCoords; (lat, lon) either way.
    capital_coords: tuple[float, float] | None = Field(
        default=None, validation_alias=AliasChoices("capital_coords", "capitalCoords")
    )
    # Visual centre (lat, lon) used for map framing.
    center: tuple[float, float] | None = None
    difficulty: int = Field(default=3, ge=1, le=3)
    # Clue shown to the player (emoji, URL, asset key...). Opaque to the engine.
    flag: str | None = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def _default_difficulty(cls, v: object) -> object:
        return 3 if v is None else v

    def display_name(self, lang: str = "en") -> str:
        if isinstance(self.name, str):
            return self.name
        if lang in self.name:
            return self.name[lang]
        return next(iter(self.name.values()), self.code)


class GameMode(StrEnum):
    free = "free"
    daily = "daily"
    challenge = "challenge"


class SessionPhase(StrEnum):
    idle = "idle"
    round_active = "round_active"
    round_result = "round_result"
    session_end = "session_end"


class HintStage(StrEnum):
    none = "none"
    continent = "continent"
    candidates = "candidates"
    eliminating = "eliminating"
    exhausted = "exhausted"


class RoundTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    continent: str


class RoundOutcome(BaseModel):
    is_correct: bool
    time_elapsed_ms: float = Field(..., ge=0)
    hint_progress: float = Field(default=0.0, ge=0, le=1)
    # None when there is no click point or no capital; never earns the capital bonus.
    distance_to_capital_m: float | None = None
    used_shortlist_panel: bool = False


class ScoreBreakdown(BaseModel):
    time_bonus: int = 0
    hint_bonus: int = 0
    capital_bonus: int = 0
    panel_penalty: int = 0
    total: int = 0


class RoundRecord(BaseModel):
    round_number: int
    target_code: str
    target_name: str
    target_flag: str | None = None
    guessed_code: str | None = None
    guessed_name: str | None = None
    is_correct: bool
    timed_out: bool = False
    used_shortlist_panel: bool = False
    time_elapsed_ms: float = 0.0
    hint_progress: float = 0.0
    score: ScoreBreakdown = Field(default_factory=ScoreBreakdown)


class DailyResult(BaseModel):
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    completed: bool = True
    score: int = 0
    correct_count: int = 0
    round_history: list[RoundRecord] = Field(default_factory=list)


class DailyPuzzleResponse(BaseModel):
    date: str
    seed: int
    region: str | None = None
    codes: list[str]


class ChallengeResponse(BaseModel):
    challenge_id: str
    seed: int
    region: str | None = None
    query: str
    codes: list[str]


class DailyResultListResponse(BaseModel):
    last_played: str | None = None
    results: list[DailyResult]
