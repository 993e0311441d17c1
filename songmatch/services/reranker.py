"""Weighted multi-signal reranker.

Scoring is split into three composable, pure stages:

1. **normalize** -- map each raw signal onto [0, 1]
   (``semantic``/``keyword`` clamped, ``popularity / 100``, clarity
   defaulting to 0.5).
2. **combine** -- weighted sum minus the repetition penalty
   (``base * 0.8`` for a recently played song, ``base * 0.2`` for an
   avoided decade; the two add up when both apply).
3. **present** -- clamp to [0, 1], stable sort descending, keep the top 20.

The weights do not need to sum to 1.  ``rank_candidates`` never raises:
on an internal error it returns the input order, truncated.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from pydantic import ValidationError

from songmatch.models.ranking import (
    CandidateScores,
    RankingCandidate,
    RankingContext,
    ScoreBreakdown,
    ScoringWeights,
)
from songmatch.utils.errors import ConfigurationError
from songmatch.utils.logging import get_logger

logger = get_logger(__name__)

MAX_RESULTS = 20
DEFAULT_CLARITY = 0.5
RECENT_SONG_PENALTY_SHARE = 0.8
AVOIDED_DECADE_PENALTY_SHARE = 0.2


@dataclass(frozen=True)
class NormalizedSignals:
    semantic: float
    keyword: float
    popularity: float
    clarity: float


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Stage 1: normalize
# ---------------------------------------------------------------------------

def normalize_signals(candidate: RankingCandidate) -> NormalizedSignals:
    clarity = DEFAULT_CLARITY if candidate.clarity is None else candidate.clarity
    return NormalizedSignals(
        semantic=clamp(candidate.semantic),
        keyword=clamp(candidate.keyword),
        popularity=clamp(candidate.popularity / 100.0),
        clarity=clamp(clarity),
    )


def repetition_penalty(
    candidate: RankingCandidate,
    context: RankingContext | None,
    base: float,
) -> float:
    if context is None:
        return 0.0
    penalty = 0.0
    if candidate.song_id in context.recent_songs:
        penalty += base * RECENT_SONG_PENALTY_SHARE
    if candidate.decade is not None and candidate.decade in context.avoid_decades:
        penalty += base * AVOIDED_DECADE_PENALTY_SHARE
    return penalty


# ---------------------------------------------------------------------------
# Stage 2: combine
# ---------------------------------------------------------------------------

def combine(signals: NormalizedSignals, weights: ScoringWeights, penalty: float) -> float:
    return (
        signals.semantic * weights.semantic
        + signals.keyword * weights.keyword
        + signals.popularity * weights.popularity
        + signals.clarity * weights.clarity
        - penalty
    )


# ---------------------------------------------------------------------------
# Stage 3: present
# ---------------------------------------------------------------------------

def present(candidates: list[RankingCandidate], limit: int = MAX_RESULTS) -> list[RankingCandidate]:
    """Sort by final score (stable for ties) and keep the first *limit*."""
    ordered = sorted(
        candidates,
        key=lambda c: c.scores.final if c.scores else 0.0,
        reverse=True,
    )
    return ordered[:limit]


class Reranker:
    """Applies the weighted scoring formula to a candidate list."""

    def __init__(self, weights: ScoringWeights | None = None, max_results: int = MAX_RESULTS) -> None:
        self._weights = weights or ScoringWeights()
        self._max_results = max_results

    def get_score_breakdown(
        self,
        candidate: RankingCandidate,
        context: RankingContext | None = None,
    ) -> ScoreBreakdown:
        """Return every term of the formula for *candidate*."""
        signals = normalize_signals(candidate)
        penalty = repetition_penalty(candidate, context, self._weights.repetition_penalty)
        final = clamp(combine(signals, self._weights, penalty))
        return ScoreBreakdown(
            semantic=signals.semantic,
            keyword=signals.keyword,
            popularity=signals.popularity,
            clarity=signals.clarity,
            repetition_penalty=penalty,
            final=final,
            weights=self._weights,
        )

    def rank_candidates(
        self,
        candidates: list[RankingCandidate],
        query_text: str = "",
        context: RankingContext | None = None,
    ) -> list[RankingCandidate]:
        """Score, sort, and truncate *candidates*.

        Returns at most ``max_results`` candidates, each carrying its
        :class:`CandidateScores`.  Never raises.
        """
        if not candidates:
            return []
        try:
            scored = []
            for candidate in candidates:
                breakdown = self.get_score_breakdown(candidate, context)
                scored.append(
                    candidate.model_copy(
                        update={
                            "scores": CandidateScores(
                                popularity=breakdown.popularity,
                                clarity=breakdown.clarity,
                                repetition_penalty=breakdown.repetition_penalty,
                                final=breakdown.final,
                            )
                        }
                    )
                )
            ranked = present(scored, self._max_results)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "rerank_failed",
                error=str(exc),
                candidates=len(candidates),
                query=query_text[:100],
            )
            return list(candidates[: self._max_results])

        logger.debug(
            "rerank_completed",
            candidates=len(candidates),
            returned=len(ranked),
            top_score=ranked[0].scores.final if ranked and ranked[0].scores else None,
        )
        return ranked

    def update_weights(self, **changes: float) -> None:
        """Merge *changes* into the current weights; unspecified fields are kept.

        Raises
        ------
        ConfigurationError
            On an unknown weight name or a negative value.  The current
            weights are left untouched.
        """
        try:
            self._weights = ScoringWeights.model_validate({**self._weights.model_dump(), **changes})
        except ValidationError as exc:
            raise ConfigurationError(message=f"Invalid ranking weights: {exc}") from exc
        logger.info("reranker_weights_updated", **self._weights.model_dump())

    def get_weights(self) -> ScoringWeights:
        return self._weights.model_copy()
