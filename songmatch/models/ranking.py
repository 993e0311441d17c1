"""Ranking models shared by the reranker, retrieval, and matching service.

A :class:`RankingCandidate` is transient: it is created per query, carries
the raw per-signal scores and match reasons, and is discarded once the
response is built.  :class:`ScoringWeights` is long-lived configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from songmatch.models.song import AboutnessConfidence, Song


# ---------------------------------------------------------------------------
# Configuration models
# ---------------------------------------------------------------------------
class ScoringWeights(BaseModel):
    """Weights of the reranking formula.

    Weights are non-negative but are not required to sum to 1; the final
    score is clamped to [0, 1] instead.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    semantic: float = Field(default=0.45, ge=0.0)
    keyword: float = Field(default=0.30, ge=0.0)
    popularity: float = Field(default=0.15, ge=0.0)
    clarity: float = Field(default=0.10, ge=0.0)
    repetition_penalty: float = Field(
        default=0.2,
        ge=0.0,
        description="Base multiplier split 0.8 (recent song) / 0.2 (avoided decade).",
    )


class ThreeSignalWeights(BaseModel):
    """Non-normalized weights folding the three similarities into ``about_score``."""

    model_config = ConfigDict(frozen=True)

    meta: float = Field(default=0.2, ge=0.0)
    emotion: float = Field(default=0.5, ge=0.0)
    moment: float = Field(default=0.3, ge=0.0)


class ThreeSignalConfig(BaseModel):
    """Per-leg candidate sizes and weights for three-signal retrieval."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    top_n_meta: int = Field(default=50, ge=1)
    top_n_emotion: int = Field(default=50, ge=1)
    weights: ThreeSignalWeights = Field(default_factory=ThreeSignalWeights)


# ---------------------------------------------------------------------------
# Per-query models
# ---------------------------------------------------------------------------
class RankingContext(BaseModel):
    """Per-query context used for repetition penalties and diversity."""

    model_config = ConfigDict(frozen=True)

    recent_songs: list[str] = Field(default_factory=list)
    avoid_decades: list[int] = Field(default_factory=list)
    user_id: str | None = None
    time_of_day: str | None = None


class CandidateScores(BaseModel):
    """Normalized components and the final score assigned by the reranker."""

    model_config = ConfigDict(frozen=True)

    popularity: float = 0.0
    clarity: float = 0.5
    repetition_penalty: float = 0.0
    final: float = 0.0


class RankingCandidate(BaseModel):
    """A song under consideration for one query.

    Raw signals are stored exactly as produced by each matcher; the
    reranker normalizes them.  ``reasons`` records which signals fired,
    in the order they fired.
    """

    model_config = ConfigDict(frozen=True)

    song_id: str
    title: str
    artist: str
    tags: list[str] = Field(default_factory=list)
    year: int | None = None
    decade: int | None = None
    popularity: float = 0.0

    # Raw signals
    keyword: float = 0.0
    semantic: float = 0.0
    mood: float = 0.0
    entity: float = 0.0
    meta_sim: float | None = None
    emotion_sim: float | None = None
    moment_sim: float | None = None
    about_score: float | None = None
    clarity: float | None = Field(
        default=None,
        description="Clarity prior re-based to [0, 1]; None means no prior (0.5).",
    )

    reasons: list[str] = Field(default_factory=list)
    matched_phrase: str | None = None
    radio_edit_id: str | None = Field(
        default=None,
        description="Id of the clean edit to play instead; ``song_id`` stays the catalog id.",
    )

    # Aboutness provenance for "why this song" explanations
    emotions_text: str | None = None
    emotions_confidence: AboutnessConfidence | None = None
    moments_text: str | None = None
    moments_confidence: AboutnessConfidence | None = None

    scores: CandidateScores | None = None

    @classmethod
    def from_song(cls, song: Song, **signals: object) -> RankingCandidate:
        """Build a candidate from catalog data plus any signal fields."""
        about = song.aboutness
        fields: dict = {
            "song_id": song.id,
            "title": song.title,
            "artist": song.artist,
            "tags": song.tags,
            "year": song.year,
            "decade": song.decade,
            "popularity": song.popularity,
        }
        if about is not None:
            fields.update(
                emotions_text=about.emotions_text,
                emotions_confidence=about.emotions_confidence,
                moments_text=about.moments_text,
                moments_confidence=about.moments_confidence,
            )
        fields.update(signals)
        return cls(**fields)

    def with_reason(self, reason: str) -> RankingCandidate:
        """Return a copy with *reason* appended (no-op when already present)."""
        if reason in self.reasons:
            return self
        return self.model_copy(update={"reasons": [*self.reasons, reason]})


class ScoreBreakdown(BaseModel):
    """Every term of the reranking formula for one candidate."""

    model_config = ConfigDict(frozen=True)

    semantic: float
    keyword: float
    popularity: float
    clarity: float
    repetition_penalty: float
    final: float
    weights: ScoringWeights
