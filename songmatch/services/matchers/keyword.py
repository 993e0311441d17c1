"""Keyword phrase matcher.

Breaks a chat message into n-grams and looks them up in the song store's
phrase index in three tiers, best first:

    exact  -- the n-gram is an indexed phrase
    lemma  -- suffix-stripped n-gram equals a suffix-stripped phrase
    fuzzy  -- rapidfuzz token_sort_ratio above the threshold (multi-word only)

Each hit is scored ``tier_weight * clarity`` where clarity rewards longer,
wordier phrases on popular songs and folds in the title clarity prior.
Only the best hit per song is kept.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from songmatch.interfaces.song_store import ISongStore
from songmatch.models.content import ClarityAssessment
from songmatch.models.song import Song
from songmatch.services.content_filter import ContentFilter
from songmatch.utils.logging import get_logger
from songmatch.utils.text_normalizer import fuzzy_match, tokenize

logger = get_logger(__name__)

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "is", "are", "was", "were", "be", "been", "being", "have",
    "has", "had", "do", "does", "did", "will", "would", "could", "should",
})

_SUFFIXES = ("ing", "ed", "er", "est", "ly", "s", "es", "ies", "ied", "ier", "iest")


class KeywordConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    exact_weight: float = Field(default=1.0, ge=0.0)
    lemma_weight: float = Field(default=0.8, ge=0.0)
    fuzzy_weight: float = Field(default=0.6, ge=0.0)
    fuzzy_threshold: float = Field(default=90, ge=0, le=100)
    min_phrase_length: int = Field(default=2, ge=1)


@dataclass(frozen=True)
class KeywordHit:
    """Best phrase hit for one song."""

    song: Song
    phrase: str
    match_type: str
    score: float
    clarity: ClarityAssessment


def lemmatize(phrase: str) -> str:
    """Strip one common English suffix from each word longer than three letters."""
    words = []
    for word in phrase.split(" "):
        if len(word) > 3:
            for suffix in _SUFFIXES:
                if word.endswith(suffix) and len(word) > len(suffix) + 2:
                    word = word[: -len(suffix)]
                    break
        words.append(word)
    return " ".join(words)


def extract_ngrams(message: str, min_phrase_length: int = 2) -> list[str]:
    """Return 1- to 3-grams (4-grams for messages over six words), longest first."""
    words = [w for w in tokenize(message) if w not in STOPWORDS and len(w) > 1]
    max_n = 4 if len(words) > 6 else 3
    ngrams: list[str] = []
    for n in range(max_n, 0, -1):
        for i in range(len(words) - n + 1):
            phrase = " ".join(words[i : i + n])
            if len(phrase) >= min_phrase_length and phrase not in ngrams:
                ngrams.append(phrase)
    return ngrams


def clarity_score(phrase: str, popularity: float, bonus: float) -> float:
    """Phrase-length/word-count/popularity blend plus the title clarity bonus.

    Clamped to [0.1, 1.2].
    """
    length_score = min(len(phrase) / 50.0, 1.0)
    word_score = min(len(phrase.split()) / 10.0, 1.0)
    popularity_score = min(popularity / 100.0, 1.0)
    raw = 0.4 * length_score + 0.4 * word_score + 0.2 * popularity_score + bonus
    return max(0.1, min(1.2, raw))


class KeywordMatcher:
    """Matches message n-grams against the song store's phrase index."""

    def __init__(
        self,
        song_store: ISongStore,
        content_filter: ContentFilter,
        config: KeywordConfig | None = None,
    ) -> None:
        self._store = song_store
        self._filter = content_filter
        self._config = config or KeywordConfig()
        self._index: dict[str, list[str]] | None = None
        self._lemma_index: dict[str, list[str]] = {}
        self._token_index: dict[str, list[str]] = {}

    async def _load_index(self) -> dict[str, list[str]]:
        if self._index is None:
            self._index = await self._store.phrase_index()
            self._lemma_index = {}
            self._token_index = {}
            for phrase in self._index:
                self._lemma_index.setdefault(lemmatize(phrase), []).append(phrase)
                for word in set(phrase.split()) | set(lemmatize(phrase).split()):
                    self._token_index.setdefault(word, []).append(phrase)
            logger.info("phrase_index_loaded", phrases=len(self._index))
        return self._index

    def invalidate(self) -> None:
        """Drop the cached phrase index (call after the catalog changes)."""
        self._index = None

    def _fuzzy_candidates(self, ngram: str) -> list[str]:
        """Indexed phrases sharing at least one word (or word stem) with *ngram*."""
        words = set(ngram.split()) | set(lemmatize(ngram).split())
        candidates = (phrase for word in words for phrase in self._token_index.get(word, ()))
        return list(dict.fromkeys(candidates))

    def _lookup(self, ngram: str, index: dict[str, list[str]]) -> tuple[str, str, float] | None:
        """Return ``(indexed_phrase, match_type, tier_weight)`` for *ngram*."""
        if ngram in index:
            return ngram, "exact", self._config.exact_weight
        lemma_hits = self._lemma_index.get(lemmatize(ngram))
        if lemma_hits:
            return lemma_hits[0], "lemma", self._config.lemma_weight
        if " " in ngram:
            candidates = self._fuzzy_candidates(ngram)
            fuzzy = fuzzy_match(ngram, candidates, self._config.fuzzy_threshold / 100.0)
            if fuzzy is not None:
                return fuzzy[0], "fuzzy", self._config.fuzzy_weight
        return None

    async def match(self, message: str) -> list[KeywordHit]:
        """Return the best hit per song, highest score first."""
        index = await self._load_index()
        ngrams = extract_ngrams(message, self._config.min_phrase_length)

        found: list[tuple[str, str, float]] = []
        for ngram in ngrams:
            lookup = self._lookup(ngram, index)
            if lookup is not None:
                found.append(lookup)
        if not found:
            return []

        song_ids = list(dict.fromkeys(sid for phrase, _, _ in found for sid in index[phrase]))
        songs = {song.id: song for song in await self._store.get_songs(song_ids)}

        best: dict[str, KeywordHit] = {}
        for phrase, match_type, weight in found:
            for song_id in index[phrase]:
                song = songs.get(song_id)
                if song is None:
                    continue
                clarity = self._filter.assess_clarity(message, song.title)
                score = weight * clarity_score(phrase, song.popularity, clarity.bonus)
                current = best.get(song_id)
                if current is None or score > current.score:
                    best[song_id] = KeywordHit(
                        song=song,
                        phrase=phrase,
                        match_type=match_type,
                        score=score,
                        clarity=clarity,
                    )

        hits = sorted(best.values(), key=lambda h: h.score, reverse=True)
        logger.debug("keyword_matches", ngrams=len(ngrams), hits=len(hits))
        return hits
