"""Offline aboutness generator.

Produces two independent natural-language profiles for a song from its
title and artist alone:

- **emotions** -- mood, energy, arc, texture
- **moments**  -- scene, activity, time of day, social setting

Every response must satisfy the same output contract: 220-420 characters
(hard cap 500), a single paragraph, and exactly one trailing
``[confidence: low|medium|high]`` tag.  Generation is a pure
validate -> retry once -> force pipeline: an output that is still invalid
after one retry is coerced to a low-confidence, hard-truncated result and
logged as ``aboutness_forced_low_confidence``.  The confidence tag is
stripped from the stored text.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Sequence

from songmatch.interfaces.llm_provider import ILLMProvider
from songmatch.models.aboutness import AxisResult, GeneratedAboutness, ValidationResult
from songmatch.models.song import AboutnessConfidence, Song
from songmatch.utils.errors import InvalidGenerationOutputError, RateLimitError
from songmatch.utils.logging import get_logger

logger = get_logger(__name__)

MIN_TARGET_CHARS = 220
MAX_TARGET_CHARS = 420
HARD_CAP_CHARS = 500
BATCH_SONGS_PER_CALL = 10

_RATE_LIMIT_DELAYS = (15.0, 30.0)
_CONFIDENCE_TAG_RE = re.compile(r"\[confidence:\s*(low|medium|high)\]\s*$", re.IGNORECASE)
_ANY_TAG_RE = re.compile(r"\s*\[confidence:[^\]]*\]?\s*", re.IGNORECASE)
_BARE_PREFIX_RE = re.compile(r"^\s*confidence:", re.IGNORECASE)
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

_LOW_TAG = "[confidence: low]"

_CONTRACT = f"""Requirements:
- {MIN_TARGET_CHARS} to {MAX_TARGET_CHARS} characters, never more than {HARD_CAP_CHARS} including the tag
- One paragraph of plain English. No lists, no headings, no quotes from the lyrics
- Do not invent facts (release dates, chart positions, samples) beyond what your confidence supports
- End with exactly one tag: [confidence: low] or [confidence: medium] or [confidence: high]
- confidence = how sure you are that the description fits THIS specific song
- If unsure, use [confidence: low]"""

EMOTIONS_SYSTEM_PROMPT = f"""You write compact "aboutness" profiles describing what a song feels like.

Given only the song title and artist name, describe its mood, energy, emotional arc, \
and sonic texture. Be vivid and specific. Avoid "haunting", "beautiful" or \
"heartfelt" without context.

{_CONTRACT}"""

MOMENTS_SYSTEM_PROMPT = f"""You write compact "aboutness" profiles describing when and where a song fits.

Given only the song title and artist name, describe the scenes, activities, time \
of day, and social settings it belongs to. Prefer concrete scene cues. Avoid \
"perfect for", "ideal for" and "great for" constructions.

{_CONTRACT}"""

BATCH_SYSTEM_PROMPT = f"""You write compact "aboutness" profiles for songs. For each song \
provided, output a JSON array where each element has:
- "song_id": the provided id (copy exactly)
- "emotions": mood, energy, emotional arc and texture, ending with a confidence tag
- "moments": scenes, activities, time of day and social setting, ending with a confidence tag

Each profile follows these rules:
{_CONTRACT}

Output ONLY the JSON array, no markdown, no prose."""


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def parse_confidence(text: str) -> AboutnessConfidence | None:
    match = _CONFIDENCE_TAG_RE.search(text)
    return AboutnessConfidence(match.group(1).lower()) if match else None


def strip_confidence_tag(text: str) -> str:
    return _CONFIDENCE_TAG_RE.sub("", text).strip()


def validate_output(text: str | None) -> ValidationResult:
    """Check *text* against the output contract."""
    if not text or not text.strip():
        return ValidationResult(valid=False, reason="empty response")
    if len(text) > HARD_CAP_CHARS:
        return ValidationResult(valid=False, reason=f"too long: {len(text)} chars")
    if _BARE_PREFIX_RE.match(text):
        return ValidationResult(valid=False, reason='starts with "Confidence:"')
    confidence = parse_confidence(text)
    if confidence is None or len(_ANY_TAG_RE.findall(text)) != 1:
        return ValidationResult(valid=False, reason="missing or malformed confidence tag")
    return ValidationResult(valid=True, confidence=confidence)


def force_low_confidence(text: str | None) -> str:
    """Coerce *text* into a valid low-confidence output.

    Existing tags and a bare "Confidence:" prefix are removed, the body is
    hard-truncated so that body plus tag fits the cap, and a low tag is
    appended.

    Raises
    ------
    InvalidGenerationOutputError
        If nothing usable remains.
    """
    body = _ANY_TAG_RE.sub(" ", text or "")
    body = _BARE_PREFIX_RE.sub("", body)
    body = " ".join(body.split())
    if not body:
        raise InvalidGenerationOutputError(reason="empty response")
    max_body = HARD_CAP_CHARS - len(_LOW_TAG) - 1
    if len(body) > max_body:
        body = body[:max_body].rstrip()
    return f"{body} {_LOW_TAG}"


def to_axis_result(text: str, forced: bool = False) -> AxisResult:
    return AxisResult(
        text=strip_confidence_tag(text),
        confidence=parse_confidence(text) or AboutnessConfidence.LOW,
        forced=forced,
    )


def _user_prompt(title: str, artist: str) -> str:
    return f'"{title}" by {artist}'


class AboutnessGenerator:
    """Generates emotions/moments profiles through an injected LLM provider."""

    def __init__(
        self,
        llm_provider: ILLMProvider,
        temperature: float = 0.7,
        rate_limit_delays: Sequence[float] = _RATE_LIMIT_DELAYS,
    ) -> None:
        self._llm = llm_provider
        self._temperature = temperature
        self._rate_limit_delays = tuple(rate_limit_delays)

    def is_available(self) -> bool:
        return self._llm.is_available()

    async def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int) -> str:
        """Call the LLM, waiting out rate limits with the configured delays."""
        for attempt in range(len(self._rate_limit_delays) + 1):
            try:
                text = await self._llm.complete(
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    temperature=self._temperature,
                    max_tokens=max_tokens,
                )
                return text.strip()
            except RateLimitError:
                if attempt >= len(self._rate_limit_delays):
                    raise
                delay = self._rate_limit_delays[attempt]
                logger.warning("aboutness_rate_limited", wait_seconds=delay, attempt=attempt + 1)
                await asyncio.sleep(delay)
        raise RateLimitError(provider_name=self._llm.get_provider_name())

    async def generate_axis(self, axis: str, title: str, artist: str) -> AxisResult:
        """Generate one axis ("emotions" or "moments") for a song."""
        system_prompt = EMOTIONS_SYSTEM_PROMPT if axis == "emotions" else MOMENTS_SYSTEM_PROMPT
        user_prompt = _user_prompt(title, artist)

        text = await self._complete(system_prompt, user_prompt, max_tokens=200)
        check = validate_output(text)
        if check.valid:
            return to_axis_result(text)

        logger.info("aboutness_retry", axis=axis, title=title, reason=check.reason)
        text = await self._complete(system_prompt, user_prompt, max_tokens=200)
        check = validate_output(text)
        if check.valid:
            return to_axis_result(text)

        logger.warning(
            "aboutness_forced_low_confidence",
            axis=axis,
            title=title,
            artist=artist,
            reason=check.reason,
        )
        return to_axis_result(force_low_confidence(text), forced=True)

    async def generate(self, title: str, artist: str) -> GeneratedAboutness:
        """Generate both axes for one song concurrently."""
        emotions, moments = await asyncio.gather(
            self.generate_axis("emotions", title, artist),
            self.generate_axis("moments", title, artist),
        )
        return GeneratedAboutness(
            emotions=emotions,
            moments=moments,
            model=self._llm.get_model(),
            provider=self._llm.get_provider_name(),
        )

    async def generate_batch(self, songs: list[Song]) -> dict[str, GeneratedAboutness]:
        """Generate profiles for up to ``BATCH_SONGS_PER_CALL`` songs in one call.

        Songs missing from the JSON reply, or whose entries fail validation,
        fall back to :meth:`generate`.  Songs that still fail are logged and
        left out of the result.
        """
        results: dict[str, GeneratedAboutness] = {}
        entries = await self._batch_entries(songs[:BATCH_SONGS_PER_CALL])

        fallback: list[Song] = []
        for song in songs:
            entry = entries.get(song.id)
            if entry is None:
                fallback.append(song)
                continue
            emotions, moments = entry.get("emotions"), entry.get("moments")
            if not (
                isinstance(emotions, str)
                and isinstance(moments, str)
                and validate_output(emotions).valid
                and validate_output(moments).valid
            ):
                fallback.append(song)
                continue
            results[song.id] = GeneratedAboutness(
                emotions=to_axis_result(emotions),
                moments=to_axis_result(moments),
                model=self._llm.get_model(),
                provider=self._llm.get_provider_name(),
            )

        if fallback:
            logger.info("aboutness_batch_fallback", songs=len(fallback), batch=len(songs))
        for song in fallback:
            try:
                results[song.id] = await self.generate(song.title, song.artist)
            except Exception as exc:  # noqa: BLE001
                logger.error("aboutness_generation_failed", song_id=song.id, error=str(exc))
        return results

    async def _batch_entries(self, songs: list[Song]) -> dict[str, dict]:
        """One LLM call for *songs*; returns entries keyed by song id ({} on failure)."""
        if not songs:
            return {}
        user_prompt = "\n".join(
            json.dumps({"song_id": s.id, "title": s.title, "artist": s.artist}) for s in songs
        )
        try:
            raw = await self._complete(BATCH_SYSTEM_PROMPT, user_prompt, max_tokens=len(songs) * 250)
            fenced = _JSON_FENCE_RE.search(raw)
            parsed = json.loads(fenced.group(1) if fenced else raw)
        except Exception as exc:  # noqa: BLE001
            logger.warning("aboutness_batch_failed", songs=len(songs), error=str(exc))
            return {}
        if not isinstance(parsed, list):
            logger.warning("aboutness_batch_not_a_list", songs=len(songs))
            return {}
        return {
            entry["song_id"]: entry
            for entry in parsed
            if isinstance(entry, dict) and isinstance(entry.get("song_id"), str)
        }
