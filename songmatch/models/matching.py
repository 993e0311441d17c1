"""Models for the song matching operation and its signal extractors."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from songmatch.models.ranking import RankingCandidate

MOOD_NAMES = ("joy", "anger", "sadness", "confidence", "chill")


class RoomPolicy(BaseModel):
    """Explicit-content policy of the room the message was sent in.

    ``allow_explicit`` of None defers to the content filter's configuration.
    """

    model_config = ConfigDict(frozen=True)

    room_id: str | None = None
    allow_explicit: bool | None = None


class MoodAnalysis(BaseModel):
    """Lexicon-based mood scores for one message."""

    model_config = ConfigDict(frozen=True)

    dominant: str = "chill"
    confidence: float = 0.0
    scores: dict[str, float] = Field(default_factory=lambda: dict.fromkeys(MOOD_NAMES, 0.0))


class ExtractedEntities(BaseModel):
    """Contextual entities found in one message."""

    model_config = ConfigDict(frozen=True)

    cities: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list)
    temporal: list[str] = Field(default_factory=list)
    weather: list[str] = Field(default_factory=list)
    relationships: list[str] = Field(default_factory=list)
    activities: list[str] = Field(default_factory=list)
    emotions: list[str] = Field(default_factory=list)
    colors: list[str] = Field(default_factory=list)
    numbers: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(len(v) for v in self.model_dump().values())


class MatchResponse(BaseModel):
    """Result of matching one chat message to songs.

    ``matches[0]`` is the primary song.  ``alternates`` are picked from the
    rest of the ranking for artist/decade diversity.
    """

    model_config = ConfigDict(frozen=True)

    matches: list[RankingCandidate] = Field(default_factory=list)
    alternates: list[RankingCandidate] = Field(default_factory=list)
    confidence: float = 0.0
    mood: MoodAnalysis = Field(default_factory=MoodAnalysis)
    why: str | None = None
    three_signal: bool = False

    @property
    def primary(self) -> RankingCandidate | None:
        return self.matches[0] if self.matches else None
