"""Content-policy models: severity taxonomy, filter results, clarity prior."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):  # noqa: UP042
    """Ordered severity taxonomy: clean < mild < moderate < explicit."""

    CLEAN = "clean"
    MILD = "mild"
    MODERATE = "moderate"
    EXPLICIT = "explicit"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER[self]

    @classmethod
    def max(cls, *levels: Severity) -> Severity:
        """Return the most severe of *levels* (CLEAN when empty)."""
        return max(levels, key=lambda s: s.rank, default=cls.CLEAN)


_SEVERITY_ORDER = {
    Severity.CLEAN: 0,
    Severity.MILD: 1,
    Severity.MODERATE: 2,
    Severity.EXPLICIT: 3,
}


class ContentFilterConfig(BaseModel):
    """Filter behaviour; partially updatable at runtime."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    allow_explicit: bool = False
    family_friendly_mode: bool = False
    strict_filtering: bool = False
    log_filtered_content: bool = True


class TextAnalysis(BaseModel):
    """Severity and reasons for one piece of text."""

    model_config = ConfigDict(frozen=True)

    severity: Severity = Severity.CLEAN
    reasons: list[str] = Field(default_factory=list)


class FilterResult(BaseModel):
    """Content classification of one song, with its radio edit if any."""

    model_config = ConfigDict(frozen=True)

    is_explicit: bool = False
    has_radio_edit: bool = False
    radio_edit_title: str | None = None
    radio_edit_artist: str | None = None
    alternative_id: str | None = None
    severity: Severity = Severity.CLEAN
    reasons: list[str] = Field(default_factory=list)


class ClarityAssessment(BaseModel):
    """How literally a song title matches the user's phrasing.

    ``bonus`` is +0.2 (exact/idiomatic), -0.2 (metaphorical/obscure) or 0.
    """

    model_config = ConfigDict(frozen=True)

    is_exact_match: bool = False
    is_common_idiom: bool = False
    is_metaphorical: bool = False
    is_obscure: bool = False
    bonus: float = 0.0
    reason: str | None = None

    @property
    def prior(self) -> float:
        """The bonus re-based to [0, 1] for the reranker's clarity signal."""
        return 0.5 + self.bonus
