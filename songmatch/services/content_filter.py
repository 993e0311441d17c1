"""Content filter and clarity prior.

Two independent jobs live here:

**Severity classification** -- four category scans (explicit language,
sexual content, drug references, violent content) over lowercased text.
A song's severity is the maximum across categories and across its title,
artist, and lyrics; reasons are accumulated and de-duplicated.  Explicit
titles that map onto a censored "radio edit" are reported with a cleaned
title and an alternative id.

**Clarity prior** -- how literally a song title matches the user's phrasing.
Exact containment or a common idiom earns +0.2, a metaphorical or
structurally obscure title costs -0.2, anything else is 0.

Neither job may block a chat reply: internal errors degrade to a clean
classification / neutral prior and are logged.
"""

from __future__ import annotations

import re

from pydantic import ValidationError

from songmatch.models.content import (
    ClarityAssessment,
    ContentFilterConfig,
    FilterResult,
    Severity,
    TextAnalysis,
)
from songmatch.utils.errors import ConfigurationError, ContentAnalysisError
from songmatch.utils.logging import get_logger
from songmatch.utils.text_normalizer import tokenize

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Lexicons
# ---------------------------------------------------------------------------

_EXPLICIT_WORDS: dict[str, Severity] = {
    **dict.fromkeys(
        ["fuck", "fucking", "fucked", "motherfucker", "cunt", "nigga", "nigger"],
        Severity.EXPLICIT,
    ),
    **dict.fromkeys(["shit", "bitch", "bastard", "piss"], Severity.MODERATE),
    **dict.fromkeys(
        ["damn", "hell", "crap", "ass", "whore", "slut", "cock", "dick", "pussy"],
        Severity.MILD,
    ),
}

_SEXUAL_PHRASES = (
    "sex", "sexy", "horny", "naked", "strip", "porn", "orgasm", "masturbate",
    "erotic", "climax", "penetrate", "thrust", "blow job", "oral sex",
    "threesome", "bondage", "kinky",
)

_DRUG_PHRASES = (
    "cocaine", "heroin", "meth", "crack", "weed", "marijuana", "cannabis",
    "molly", "ecstasy", "acid", "lsd", "shrooms", "xanax", "adderall", "oxy",
    "opioid", "fentanyl",
)

_VIOLENT_PHRASES = (
    "kill", "murder", "suicide", "rape", "abuse", "torture", "genocide",
    "terrorist", "bomb", "gun", "weapon", "violence",
)

# (reason label, phrases); every hit in these categories is MODERATE.
_PHRASE_CATEGORIES = (
    ("sexual content", _SEXUAL_PHRASES),
    ("drug reference", _DRUG_PHRASES),
    ("violent content", _VIOLENT_PHRASES),
)

# Multi-word overrides are applied before single words.
_RADIO_EDIT_PHRASES: tuple[tuple[str, str], ...] = (
    ("what the fuck", "what the heck"),
    ("holy shit", "holy crap"),
    ("son of a bitch", "son of a gun"),
    ("damn it", "darn it"),
    ("piss off", "buzz off"),
)

_RADIO_EDIT_WORDS: tuple[tuple[str, str], ...] = (
    ("motherfucker", "mother***er"),
    ("fucking", "f***ing"),
    ("fuck", "f***"),
    ("shit", "s***"),
    ("bitch", "b****"),
    ("nigga", "n***a"),
    ("ass", "a**"),
)

_COMMON_IDIOMS = frozenset({
    # love & relationships
    "break my heart", "falling in love", "love me tender", "crazy in love",
    "head over heels", "match made in heaven", "better half", "soulmate",
    # life & motivation
    "live your life", "follow your dreams", "time heals", "new beginning",
    "turn the page", "start over", "moving on", "let it go", "hold on",
    # party & celebration
    "party all night", "dance floor", "good times", "celebrate tonight",
    "turn up", "let loose", "have a ball", "living it up",
    # moods
    "feeling blue", "on cloud nine", "walking on air", "down in the dumps",
    "over the moon", "through the roof", "hit rock bottom", "on top of the world",
    # time & season
    "summertime", "winter wonderland", "spring fever", "autumn leaves",
    "monday morning", "friday night", "weekend warrior", "late night",
    # music
    "turn it up", "pump up the volume", "drop the beat", "feel the rhythm",
    "sing along", "dance all night", "music to my ears", "sound of music",
})

_METAPHORICAL_CONCEPTS = frozenset({
    "shadows of tomorrow", "echoes of yesterday", "whispers in the wind",
    "fragments of time", "rivers of memory", "valleys of sorrow",
    "crimson sky", "silver moonlight", "golden dawn", "velvet night",
    "crystal tears", "paper hearts", "plastic dreams", "neon lights",
    "meaning of life", "purpose of existence", "soul searching", "inner peace",
    "spiritual journey", "cosmic connection", "universal truth", "eternal love",
    "nowhere land", "wonderland", "paradise lost", "seventh heaven",
    "twilight zone", "no mans land", "promised land", "never never land",
})

_SPECIAL_CHARS_RE = re.compile(r"[()\[\]{}<>|@#$%^&*+=]")
_OBSCURE_MAX_LENGTH = 100
_OBSCURE_MAX_SPECIAL_CHARS = 3
_OBSCURE_MAX_WORD_LENGTH = 15
_CLARITY_BONUS = 0.2


def _phrase_pattern(phrase: str) -> re.Pattern[str]:
    # Common inflections count: "kill" also catches "kills" and "killing".
    return re.compile(rf"\b{re.escape(phrase)}(?:s|es|ed|ing|er|ers)?\b")


_PHRASE_PATTERNS = {
    phrase: _phrase_pattern(phrase)
    for _, phrases in _PHRASE_CATEGORIES
    for phrase in phrases
}


def _match_word_case(source: str, word: str) -> str:
    if len(source) > 1 and source.isupper():
        return word.upper()
    if source[:1].isupper():
        return word[:1].upper() + word[1:]
    return word


def _match_case(source: str, replacement: str) -> str:
    """Give *replacement* the casing of the matched *source* text, word by word."""
    source_words = source.split()
    replacement_words = replacement.split()
    if len(source_words) != len(replacement_words):
        return _match_word_case(source, replacement)
    return " ".join(
        _match_word_case(src, rep) for src, rep in zip(source_words, replacement_words)
    )


class ContentFilter:
    """Severity classifier, room policy check, radio-edit lookup, clarity prior."""

    def __init__(self, config: ContentFilterConfig | None = None) -> None:
        self._config = config or ContentFilterConfig()

    # ------------------------------------------------------------------
    # Severity
    # ------------------------------------------------------------------

    def analyze_text(self, text: str) -> TextAnalysis:
        """Classify one piece of text.

        Raises
        ------
        ContentAnalysisError
            If *text* is not a string.
        """
        if not isinstance(text, str):
            raise ContentAnalysisError(message=f"Cannot analyse {type(text).__name__}")

        severity = Severity.CLEAN
        reasons: list[str] = []

        for word in tokenize(text):
            word_severity = _EXPLICIT_WORDS.get(word)
            if word_severity is not None:
                severity = Severity.max(severity, word_severity)
                reasons.append(f"explicit language: {word}")

        lowered = text.lower()
        for label, phrases in _PHRASE_CATEGORIES:
            for phrase in phrases:
                if _PHRASE_PATTERNS[phrase].search(lowered):
                    severity = Severity.max(severity, Severity.MODERATE)
                    reasons.append(f"{label}: {phrase}")

        return TextAnalysis(severity=severity, reasons=list(dict.fromkeys(reasons)))

    def filter_song(
        self,
        song_id: str,
        title: str,
        artist: str,
        lyrics: str | None = None,
    ) -> FilterResult:
        """Classify a song from its title, artist, and (optionally) lyrics.

        Never raises: failures produce a clean result with reason
        ``"Error during analysis"``.
        """
        try:
            return self._classify_song(song_id, title, artist, lyrics)
        except Exception as exc:  # noqa: BLE001
            error = ContentAnalysisError(message=f"Failed to analyse song {song_id}: {exc}")
            logger.error("content_filter_error", song_id=song_id, error=str(error))
            return FilterResult(reasons=["Error during analysis"])

    def _classify_song(
        self,
        song_id: str,
        title: str,
        artist: str,
        lyrics: str | None,
    ) -> FilterResult:
        texts = [title, artist] + ([lyrics] if lyrics else [])
        analyses = [self.analyze_text(t) for t in texts]
        severity = Severity.max(*(a.severity for a in analyses))
        reasons = list(dict.fromkeys(r for a in analyses for r in a.reasons))

        radio_edit_title = self.find_radio_edit(title)
        has_radio_edit = radio_edit_title is not None

        return FilterResult(
            is_explicit=severity in (Severity.MODERATE, Severity.EXPLICIT),
            has_radio_edit=has_radio_edit,
            radio_edit_title=radio_edit_title,
            radio_edit_artist=artist if has_radio_edit else None,
            alternative_id=f"{song_id}_radio_edit" if has_radio_edit else None,
            severity=severity,
            reasons=reasons,
        )

    @staticmethod
    def find_radio_edit(title: str) -> str | None:
        """Return the censored form of *title*, or None if nothing needed censoring."""
        cleaned = title
        for explicit, clean in (*_RADIO_EDIT_PHRASES, *_RADIO_EDIT_WORDS):
            cleaned = re.sub(
                rf"\b{re.escape(explicit)}\b",
                lambda m, clean=clean: _match_case(m.group(0), clean),
                cleaned,
                flags=re.IGNORECASE,
            )
        return cleaned if cleaned != title else None

    def should_filter_for_room(
        self,
        result: FilterResult,
        room_allow_explicit: bool | None = None,
    ) -> bool:
        """Decide whether a classified song must be withheld from a room.

        Rooms that disallow explicit content filter moderate and explicit
        songs.  Rooms that allow it filter explicit songs only under strict
        filtering.  Family-friendly mode always disallows.
        """
        allow = self._config.allow_explicit if room_allow_explicit is None else room_allow_explicit
        if self._config.family_friendly_mode:
            allow = False

        if not allow:
            should_filter = result.severity in (Severity.MODERATE, Severity.EXPLICIT)
        else:
            should_filter = result.severity is Severity.EXPLICIT and self._config.strict_filtering

        if should_filter and self._config.log_filtered_content:
            logger.info(
                "content_filtered",
                severity=result.severity.value,
                reasons=result.reasons,
                allow_explicit=allow,
            )
        return should_filter

    # ------------------------------------------------------------------
    # Clarity prior
    # ------------------------------------------------------------------

    def assess_clarity(self, message: str, song_title: str) -> ClarityAssessment:
        """Score how literally *song_title* matches *message*."""
        try:
            return self._assess(message, song_title)
        except Exception as exc:  # noqa: BLE001
            logger.warning("clarity_assessment_failed", title=song_title, error=str(exc))
            return ClarityAssessment()

    @staticmethod
    def _assess(message: str, song_title: str) -> ClarityAssessment:
        msg = message.lower().strip()
        title = song_title.lower().strip()

        is_exact = bool(msg and title) and (title in msg or msg in title)
        is_idiom = any(idiom in title or idiom in msg for idiom in _COMMON_IDIOMS)
        is_metaphor = any(concept in title for concept in _METAPHORICAL_CONCEPTS)
        is_obscure = (
            len(song_title) > _OBSCURE_MAX_LENGTH
            or len(_SPECIAL_CHARS_RE.findall(song_title)) > _OBSCURE_MAX_SPECIAL_CHARS
            or any(len(word) > _OBSCURE_MAX_WORD_LENGTH for word in title.split())
        )

        bonus = 0.0
        reason = None
        if is_exact or is_idiom:
            bonus = _CLARITY_BONUS
            reason = "exact phrase match" if is_exact else "common idiom"
        elif is_metaphor or is_obscure:
            bonus = -_CLARITY_BONUS
            reason = "metaphorical title" if is_metaphor else "obscure title"

        return ClarityAssessment(
            is_exact_match=is_exact,
            is_common_idiom=is_idiom,
            is_metaphorical=is_metaphor,
            is_obscure=is_obscure,
            bonus=bonus,
            reason=reason,
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def update_config(self, **changes: bool) -> None:
        """Merge *changes* into the current configuration.

        Unknown flags raise :class:`ConfigurationError` and leave the
        configuration as it was.
        """
        try:
            self._config = ContentFilterConfig.model_validate(
                {**self._config.model_dump(), **changes}
            )
        except ValidationError as exc:
            raise ConfigurationError(message=f"Invalid content filter config: {exc}") from exc
        logger.info("content_filter_config_updated", **changes)

    def get_config(self) -> ContentFilterConfig:
        return self._config
