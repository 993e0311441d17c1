"""Two-signal semantic retrieval: one KNN lookup over song metadata vectors."""

from __future__ import annotations

from songmatch.interfaces.song_store import ISongStore
from songmatch.models.ranking import RankingCandidate
from songmatch.services.embedding_service import EmbeddingService
from songmatch.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_KNN_SIZE = 50


class SemanticRetriever:
    """Embeds the query and returns its nearest songs by metadata vector.

    ``semantic`` on each candidate is the cosine similarity (``1 - distance``).
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        song_store: ISongStore,
        knn_size: int = DEFAULT_KNN_SIZE,
    ) -> None:
        self._embeddings = embedding_service
        self._store = song_store
        self._knn_size = knn_size

    async def retrieve(self, query_text: str) -> list[RankingCandidate]:
        vector = await self._embeddings.embed_single(query_text)
        self._embeddings.assert_dimensions(vector, "query_embedding")

        neighbors = await self._store.knn_metadata(vector, self._knn_size)
        songs = {s.id: s for s in await self._store.get_songs([n.song_id for n in neighbors])}

        candidates = [
            RankingCandidate.from_song(
                songs[n.song_id],
                semantic=1.0 - n.distance,
                meta_sim=1.0 - n.distance,
                reasons=["semantic"],
            )
            for n in neighbors
            if n.song_id in songs
        ]
        logger.debug("semantic_retrieval", candidates=len(candidates))
        return candidates
