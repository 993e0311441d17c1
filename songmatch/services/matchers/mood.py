"""Lexicon-based mood classifier.

Scores a message against five mood lexicons.  A whole-word hit counts 1.0
and a substring hit 0.5; the sum is normalized by
``max(len(lexicon) * 0.1, 1)`` and capped at 1.  Ties resolve to "chill".
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from songmatch.models.matching import MOOD_NAMES, MoodAnalysis
from songmatch.utils.logging import get_logger
from songmatch.utils.text_normalizer import tokenize

logger = get_logger(__name__)

MOOD_KEYWORDS: dict[str, tuple[str, ...]] = {
    "joy": (
        "happy", "excited", "amazing", "awesome", "great", "fantastic", "wonderful",
        "love", "enjoy", "fun", "celebrate", "party", "dance", "laugh", "smile",
        "upbeat", "energetic", "cheerful", "positive", "bright", "sunny",
    ),
    "anger": (
        "angry", "mad", "furious", "rage", "hate", "annoyed", "frustrated",
        "irritated", "pissed", "livid", "outraged", "fierce", "aggressive",
        "fight", "battle", "rebel", "protest", "scream", "yell",
    ),
    "sadness": (
        "sad", "depressed", "blue", "down", "melancholy", "lonely", "heartbroken",
        "cry", "tears", "grief", "sorrow", "mourn", "miss", "lost", "empty",
        "dark", "gloomy", "dreary", "hopeless", "despair",
    ),
    "confidence": (
        "confident", "strong", "powerful", "bold", "fierce", "determined",
        "unstoppable", "winning", "champion", "boss", "leader", "dominate",
        "conquer", "achieve", "succeed", "triumph", "victory", "overcome",
    ),
    "chill": (
        "chill", "relax", "calm", "peaceful", "serene", "mellow", "smooth",
        "easy", "laid-back", "casual", "cool", "zen", "tranquil", "quiet",
        "soft", "gentle", "slow", "lazy", "comfortable", "cozy",
    ),
}


class MoodConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    boost_factor: float = Field(default=1.2, ge=0.0)
    tags: list[str] = Field(default_factory=lambda: list(MOOD_NAMES))


class MoodClassifier:
    """Classifies message mood and boosts songs tagged with it."""

    def __init__(self, config: MoodConfig | None = None) -> None:
        self._config = config or MoodConfig()

    def classify_message(self, message: str) -> MoodAnalysis:
        if not self._config.enabled:
            return MoodAnalysis()

        lowered = message.lower()
        words = set(tokenize(message))
        scores: dict[str, float] = {}
        for mood, keywords in MOOD_KEYWORDS.items():
            raw = 0.0
            for keyword in keywords:
                if keyword in words:
                    raw += 1.0
                elif keyword in lowered:
                    raw += 0.5
            scores[mood] = min(1.0, raw / max(len(keywords) * 0.1, 1.0))

        dominant = "chill"
        for mood, score in scores.items():
            if score > scores[dominant]:
                dominant = mood

        analysis = MoodAnalysis(dominant=dominant, confidence=scores[dominant], scores=scores)
        logger.debug("mood_classified", dominant=dominant, confidence=analysis.confidence)
        return analysis

    def mood_score(self, song_tags: list[str], analysis: MoodAnalysis) -> float:
        """``boost_factor`` if the song carries the detected mood tag, else 0."""
        if analysis.confidence <= 0 or analysis.dominant not in self._config.tags:
            return 0.0
        tags = {t.lower() for t in song_tags}
        return self._config.boost_factor if analysis.dominant in tags else 0.0
