"""Song matching: the single operation the engine exposes to its callers.

``SongMatchingService.match`` turns one chat message into an ordered list
of scored songs:

1. keyword matching and semantic retrieval (two-signal, or three-signal
   when enabled); semantic failures degrade to keyword-only
2. merge by song id, attach mood/entity signals and reasons
3. content policy per room, with radio-edit substitution
4. drop recently played songs when enough candidates remain, rerank
5. popular-song fallback when nothing survives
6. alternates, confidence, and a short "why" explanation

Only a Song Store failure (or a vector dimension mismatch) is surfaced to
the caller; every scoring signal degrades instead of failing the request.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field

from songmatch.interfaces.song_store import ISongStore
from songmatch.models.matching import ExtractedEntities, MatchResponse, MoodAnalysis, RoomPolicy
from songmatch.models.ranking import RankingCandidate, RankingContext
from songmatch.services.content_filter import ContentFilter
from songmatch.services.matchers.entities import EntityExtractor
from songmatch.services.matchers.keyword import KeywordMatcher
from songmatch.services.matchers.mood import MoodClassifier
from songmatch.services.reranker import Reranker
from songmatch.services.semantic_retrieval import SemanticRetriever
from songmatch.services.three_signal_retrieval import ThreeSignalRetriever
from songmatch.utils.errors import DimensionMismatchError, SongStoreError
from songmatch.utils.logging import get_logger
from songmatch.utils.text_normalizer import clean_text

logger = get_logger(__name__)

POPULAR_FALLBACK_SEMANTIC = 0.3
SINGLE_MATCH_CONFIDENCE = 0.95
_DIVERSE_DECADES_RELAX_THRESHOLD = 3
_WHY_TEXT_LIMIT = 140


class MatchingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    alternates: int = Field(default=2, ge=0)
    min_candidates_after_recent: int = Field(default=5, ge=0)
    popular_fallback: int = Field(default=3, ge=1)
    three_signal_enabled: bool = False


def match_confidence(ranked: list[RankingCandidate]) -> float:
    """Sigmoid of the gap between the top two final scores, clamped to [0.1, 0.99]."""
    if not ranked:
        return 0.0
    if len(ranked) == 1:
        return SINGLE_MATCH_CONFIDENCE
    top = ranked[0].scores.final if ranked[0].scores else 0.0
    second = ranked[1].scores.final if ranked[1].scores else 0.0
    sigmoid = 1.0 / (1.0 + math.exp(-5.0 * (top - second)))
    return max(0.1, min(0.99, sigmoid))


def pick_alternates(
    ranked: list[RankingCandidate],
    count: int,
    context: RankingContext | None = None,
) -> list[RankingCandidate]:
    """Choose *count* songs after the primary that differ in artist and decade.

    The decade constraint is dropped when the context already avoids several
    decades.  Remaining slots are filled by rank order.
    """
    if count <= 0 or len(ranked) < 2:
        return []

    relax_decades = (
        context is not None
        and len(set(context.avoid_decades)) >= _DIVERSE_DECADES_RELAX_THRESHOLD
    )
    chosen: list[RankingCandidate] = []
    artists = {ranked[0].artist.lower()}
    decades = {ranked[0].decade}

    for candidate in ranked[1:]:
        if len(chosen) >= count:
            break
        if candidate.artist.lower() in artists:
            continue
        if not relax_decades and candidate.decade is not None and candidate.decade in decades:
            continue
        chosen.append(candidate)
        artists.add(candidate.artist.lower())
        decades.add(candidate.decade)

    for candidate in ranked[1:]:
        if len(chosen) >= count:
            break
        if candidate not in chosen:
            chosen.append(candidate)
    return chosen


def explain(candidate: RankingCandidate | None, mood: MoodAnalysis) -> str | None:
    """Build a one-line "why this song" explanation from recorded reasons."""
    if candidate is None:
        return None
    parts: list[str] = []
    if candidate.matched_phrase:
        parts.append(f'matched "{candidate.matched_phrase}"')
    if "semantic" in candidate.reasons:
        parts.append("similar in meaning")
    if candidate.emotions_text and "aboutness" in candidate.reasons:
        text = candidate.emotions_text
        if len(text) > _WHY_TEXT_LIMIT:
            text = text[: _WHY_TEXT_LIMIT - 3].rstrip() + "..."
        parts.append(f"feels like: {text}")
    if candidate.mood > 0:
        parts.append(f"{mood.dominant} mood")
    entity_reasons = [r.split(":", 1)[1] for r in candidate.reasons if r.startswith("entity:")]
    if entity_reasons:
        parts.append("mentions " + ", ".join(entity_reasons))
    if "radio edit substitution" in candidate.reasons:
        parts.append("radio edit")
    if "popular fallback" in candidate.reasons:
        parts.append("popular pick")
    return "; ".join(parts) if parts else None


class SongMatchingService:
    """Orchestrates matchers, retrieval, content policy and reranking."""

    def __init__(
        self,
        song_store: ISongStore,
        keyword_matcher: KeywordMatcher,
        semantic_retriever: SemanticRetriever,
        content_filter: ContentFilter,
        reranker: Reranker,
        mood_classifier: MoodClassifier,
        entity_extractor: EntityExtractor,
        three_signal_retriever: ThreeSignalRetriever | None = None,
        config: MatchingConfig | None = None,
    ) -> None:
        self._store = song_store
        self._keyword = keyword_matcher
        self._semantic = semantic_retriever
        self._three_signal = three_signal_retriever
        self._filter = content_filter
        self._reranker = reranker
        self._mood = mood_classifier
        self._entities = entity_extractor
        self._config = config or MatchingConfig()

    @property
    def three_signal_active(self) -> bool:
        return self._config.three_signal_enabled and self._three_signal is not None

    async def match(
        self,
        message: str,
        policy: RoomPolicy | None = None,
        context: RankingContext | None = None,
    ) -> MatchResponse:
        policy = policy or RoomPolicy()
        context = context or RankingContext()
        text = clean_text(message)
        three_signal = self.three_signal_active

        if not text:
            logger.debug("match_empty_message")
            mood = MoodAnalysis()
            ranked = await self._popular_fallback(policy, context)
            return self._build_response(ranked, mood, context, three_signal)

        keyword_candidates = await self._keyword_candidates(message)
        semantic_candidates = await self._semantic_candidates(text, three_signal)
        candidates = self._merge(keyword_candidates, semantic_candidates)

        mood = self._classify_mood(message)
        entities = self._extract_entities(message)
        candidates = [self._attach_context_signals(c, mood, entities) for c in candidates]

        candidates = self._apply_content_policy(candidates, policy)
        candidates = self._drop_recent(candidates, context)
        ranked = self._reranker.rank_candidates(candidates, query_text=message, context=context)

        if not ranked:
            logger.info("match_popular_fallback", room_id=policy.room_id)
            ranked = await self._popular_fallback(policy, context)

        response = self._build_response(ranked, mood, context, three_signal)
        logger.info(
            "match_completed",
            room_id=policy.room_id,
            keyword_hits=len(keyword_candidates),
            semantic_hits=len(semantic_candidates),
            returned=len(response.matches),
            confidence=round(response.confidence, 3),
            three_signal=three_signal,
        )
        return response

    # ------------------------------------------------------------------
    # Candidate generation
    # ------------------------------------------------------------------

    async def _keyword_candidates(self, message: str) -> list[RankingCandidate]:
        try:
            hits = await self._keyword.match(message)
        except SongStoreError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("keyword_matching_failed", error=str(exc))
            return []
        return [
            RankingCandidate.from_song(
                hit.song,
                keyword=hit.score,
                clarity=hit.clarity.prior,
                matched_phrase=hit.phrase,
                reasons=["keyword"],
            )
            for hit in hits
        ]

    async def _semantic_candidates(self, text: str, three_signal: bool) -> list[RankingCandidate]:
        try:
            if three_signal and self._three_signal is not None:
                return await self._three_signal.retrieve(text)
            return await self._semantic.retrieve(text)
        except (DimensionMismatchError, SongStoreError):
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "semantic_retrieval_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                three_signal=three_signal,
            )
            return []

    @staticmethod
    def _merge(
        keyword: list[RankingCandidate],
        semantic: list[RankingCandidate],
    ) -> list[RankingCandidate]:
        """Union by song id; keyword candidates first, semantic signals folded in."""
        merged: dict[str, RankingCandidate] = {c.song_id: c for c in keyword}
        for candidate in semantic:
            existing = merged.get(candidate.song_id)
            if existing is None:
                merged[candidate.song_id] = candidate
                continue
            merged[candidate.song_id] = existing.model_copy(
                update={
                    "semantic": candidate.semantic,
                    "meta_sim": candidate.meta_sim,
                    "emotion_sim": candidate.emotion_sim,
                    "moment_sim": candidate.moment_sim,
                    "about_score": candidate.about_score,
                    "reasons": list(dict.fromkeys([*existing.reasons, *candidate.reasons])),
                }
            )
        return list(merged.values())

    def _classify_mood(self, message: str) -> MoodAnalysis:
        try:
            return self._mood.classify_message(message)
        except Exception as exc:  # noqa: BLE001
            logger.warning("mood_classification_failed", error=str(exc))
            return MoodAnalysis()

    def _extract_entities(self, message: str) -> ExtractedEntities:
        try:
            return self._entities.extract_entities(message)
        except Exception as exc:  # noqa: BLE001
            logger.warning("entity_extraction_failed", error=str(exc))
            return ExtractedEntities()

    def _attach_context_signals(
        self,
        candidate: RankingCandidate,
        mood: MoodAnalysis,
        entities: ExtractedEntities,
    ) -> RankingCandidate:
        mood_score = self._mood.mood_score(candidate.tags, mood)
        entity_score = self._entities.entity_boost(candidate.tags, entities)
        reasons = list(candidate.reasons)
        if mood_score > 0:
            reasons.append(f"mood:{mood.dominant}")
        reasons.extend(
            f"entity:{term}" for term in self._entities.matched_terms(candidate.tags, entities)
        )
        return candidate.model_copy(
            update={
                "mood": mood_score,
                "entity": entity_score,
                "reasons": list(dict.fromkeys(reasons)),
            }
        )

    # ------------------------------------------------------------------
    # Policy and filtering
    # ------------------------------------------------------------------

    def _apply_content_policy(
        self,
        candidates: list[RankingCandidate],
        policy: RoomPolicy,
    ) -> list[RankingCandidate]:
        """Withhold songs the room disallows, substituting radio edits where known."""
        kept: list[RankingCandidate] = []
        for candidate in candidates:
            try:
                result = self._filter.filter_song(
                    candidate.song_id, candidate.title, candidate.artist
                )
                blocked = self._filter.should_filter_for_room(result, policy.allow_explicit)
            except Exception as exc:  # noqa: BLE001
                logger.error("content_policy_failed", song_id=candidate.song_id, error=str(exc))
                kept.append(candidate)
                continue

            if not blocked:
                kept.append(candidate)
            elif result.has_radio_edit and result.alternative_id and result.radio_edit_title:
                kept.append(
                    candidate.model_copy(
                        update={
                            "radio_edit_id": result.alternative_id,
                            "title": result.radio_edit_title,
                            "artist": result.radio_edit_artist or candidate.artist,
                        }
                    ).with_reason("radio edit substitution")
                )
        return kept

    def _drop_recent(
        self,
        candidates: list[RankingCandidate],
        context: RankingContext,
    ) -> list[RankingCandidate]:
        if not context.recent_songs:
            return candidates
        recent = set(context.recent_songs)
        fresh = [c for c in candidates if c.song_id not in recent]
        if len(fresh) >= self._config.min_candidates_after_recent:
            return fresh
        return candidates

    async def _popular_fallback(
        self,
        policy: RoomPolicy,
        context: RankingContext,
    ) -> list[RankingCandidate]:
        songs = await self._store.get_popular(self._config.popular_fallback)
        candidates = [
            RankingCandidate.from_song(
                song,
                semantic=POPULAR_FALLBACK_SEMANTIC,
                reasons=["popular fallback"],
            )
            for song in songs
        ]
        candidates = self._apply_content_policy(candidates, policy)
        return self._reranker.rank_candidates(candidates, context=context)

    def _build_response(
        self,
        ranked: list[RankingCandidate],
        mood: MoodAnalysis,
        context: RankingContext,
        three_signal: bool,
    ) -> MatchResponse:
        return MatchResponse(
            matches=ranked,
            alternates=pick_alternates(ranked, self._config.alternates, context),
            confidence=match_confidence(ranked),
            mood=mood,
            why=explain(ranked[0] if ranked else None, mood),
            three_signal=three_signal,
        )
