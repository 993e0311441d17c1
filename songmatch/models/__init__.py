"""Pydantic v2 models for songmatch.  All models use frozen config."""

from songmatch.models.aboutness import (
    AxisResult,
    BackfillOptions,
    BackfillReport,
    GeneratedAboutness,
    ValidationResult,
)
from songmatch.models.content import (
    ClarityAssessment,
    ContentFilterConfig,
    FilterResult,
    Severity,
    TextAnalysis,
)
from songmatch.models.embedding import EmbeddingStatus
from songmatch.models.matching import (
    ExtractedEntities,
    MatchResponse,
    MoodAnalysis,
    RoomPolicy,
)
from songmatch.models.ranking import (
    CandidateScores,
    RankingCandidate,
    RankingContext,
    ScoreBreakdown,
    ScoringWeights,
    ThreeSignalConfig,
    ThreeSignalWeights,
)
from songmatch.models.song import AboutnessConfidence, AboutnessProfile, Song

__all__ = [
    "AboutnessConfidence",
    "AboutnessProfile",
    "AxisResult",
    "BackfillOptions",
    "BackfillReport",
    "CandidateScores",
    "ClarityAssessment",
    "ContentFilterConfig",
    "EmbeddingStatus",
    "ExtractedEntities",
    "FilterResult",
    "GeneratedAboutness",
    "MatchResponse",
    "MoodAnalysis",
    "RankingCandidate",
    "RankingContext",
    "RoomPolicy",
    "ScoreBreakdown",
    "ScoringWeights",
    "Severity",
    "Song",
    "TextAnalysis",
    "ThreeSignalConfig",
    "ThreeSignalWeights",
    "ValidationResult",
]
