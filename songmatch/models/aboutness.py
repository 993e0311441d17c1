"""Models for offline aboutness generation and the backfill job."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from songmatch.models.song import AboutnessConfidence


class ValidationResult(BaseModel):
    """Outcome of checking one generated text against the output contract."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    reason: str | None = None
    confidence: AboutnessConfidence | None = None


class AxisResult(BaseModel):
    """Final text for one axis ("emotions" or "moments").

    ``text`` has the confidence tag stripped.  ``forced`` is True when the
    output never validated and was coerced to a low-confidence result.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    confidence: AboutnessConfidence
    forced: bool = False


class GeneratedAboutness(BaseModel):
    """Both axes for one song plus provenance."""

    model_config = ConfigDict(frozen=True)

    emotions: AxisResult
    moments: AxisResult
    model: str
    provider: str


class BackfillOptions(BaseModel):
    """Parameters of one backfill run."""

    model_config = ConfigDict(frozen=True)

    ids: list[str] | None = None
    limit: int | None = Field(default=None, ge=1)
    batch_size: int = Field(default=10, ge=1)
    concurrency: int = Field(default=3, ge=1)
    version: int = Field(default=2, ge=1)
    dry_run: bool = False
    batch_prompts: bool = Field(
        default=False,
        description="Generate up to 10 songs per LLM call instead of one call per axis.",
    )


class BackfillReport(BaseModel):
    """Counters summarising a backfill run."""

    scanned: int = 0
    skipped: int = 0
    generated: int = 0
    written: int = 0
    failed: int = 0
    forced_low_confidence: int = 0
    failed_ids: list[str] = Field(default_factory=list)
    dry_run: bool = False
