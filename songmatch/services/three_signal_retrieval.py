"""Three-signal "aboutness" retrieval.

Per query:

1. Embed the query once.
2. Run two independent KNN lookups -- song metadata vectors (``top_n_meta``)
   and aboutness "emotions" vectors (``top_n_emotion``).
3. Union the candidate ids.  A song found by only one leg stays eligible;
   the other leg's similarity counts as 0.
4. Fetch "moments" distances for exactly that candidate set, so the
   unindexed moments comparison is O(candidates) rather than O(catalog).
5. ``about_score = w_meta*meta + w_emotion*emotion + w_moment*moment``,
   folded into the reranker's ``semantic`` signal.

Songs without an aboutness profile score 0 on the emotion and moment legs
and are still returned.  A failing leg is logged and treated as empty; a
dimension mismatch is always raised.
"""

from __future__ import annotations

import asyncio

from songmatch.interfaces.song_store import ISongStore, Neighbor
from songmatch.models.ranking import RankingCandidate, ThreeSignalConfig
from songmatch.services.embedding_service import EmbeddingService
from songmatch.utils.errors import DimensionMismatchError
from songmatch.utils.logging import get_logger

logger = get_logger(__name__)


def _leg_result(name: str, result: list[Neighbor] | BaseException) -> list[Neighbor]:
    if isinstance(result, DimensionMismatchError):
        raise result
    if isinstance(result, BaseException):
        logger.warning("three_signal_leg_failed", leg=name, error=str(result))
        return []
    return result


class ThreeSignalRetriever:
    """Metadata + emotions KNN union, reranked with moments similarity."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        song_store: ISongStore,
        config: ThreeSignalConfig | None = None,
    ) -> None:
        self._embeddings = embedding_service
        self._store = song_store
        self._config = config or ThreeSignalConfig()

    async def retrieve(self, query_text: str, limit: int | None = None) -> list[RankingCandidate]:
        """Return candidates sorted by ``about_score`` (descending, stable)."""
        vector = await self._embeddings.embed_single(query_text)
        self._embeddings.assert_dimensions(vector, "query_embedding")

        meta_raw, emotion_raw = await asyncio.gather(
            self._store.knn_metadata(vector, self._config.top_n_meta),
            self._store.knn_emotions(vector, self._config.top_n_emotion),
            return_exceptions=True,
        )
        meta_hits = _leg_result("metadata", meta_raw)
        emotion_hits = _leg_result("emotions", emotion_raw)

        meta_sims = {n.song_id: 1.0 - n.distance for n in meta_hits}
        emotion_sims = {n.song_id: 1.0 - n.distance for n in emotion_hits}
        candidate_ids = list(dict.fromkeys([*meta_sims, *emotion_sims]))
        if not candidate_ids:
            return []

        try:
            moment_distances = await self._store.moment_distances(vector, candidate_ids)
        except DimensionMismatchError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("three_signal_moments_failed", error=str(exc))
            moment_distances = {}
        moment_sims = {sid: 1.0 - d for sid, d in moment_distances.items()}

        songs = {s.id: s for s in await self._store.get_songs(candidate_ids)}
        weights = self._config.weights
        candidates: list[RankingCandidate] = []
        for song_id in candidate_ids:
            song = songs.get(song_id)
            if song is None:
                continue
            meta = meta_sims.get(song_id, 0.0)
            emotion = emotion_sims.get(song_id, 0.0)
            moment = moment_sims.get(song_id, 0.0)
            about_score = weights.meta * meta + weights.emotion * emotion + weights.moment * moment

            reasons = ["semantic"]
            if emotion > 0 or moment > 0:
                reasons.append("aboutness")
            candidates.append(
                RankingCandidate.from_song(
                    song,
                    semantic=about_score,
                    meta_sim=meta,
                    emotion_sim=emotion,
                    moment_sim=moment,
                    about_score=about_score,
                    reasons=reasons,
                )
            )

        candidates.sort(key=lambda c: c.about_score or 0.0, reverse=True)
        logger.debug(
            "three_signal_retrieval",
            meta_hits=len(meta_hits),
            emotion_hits=len(emotion_hits),
            union=len(candidate_ids),
            with_moments=len(moment_sims),
        )
        return candidates[:limit] if limit is not None else candidates
