"""Unit tests for the aboutness backfill job."""

from __future__ import annotations

import json

import pytest

from songmatch.models.aboutness import BackfillOptions
from songmatch.models.song import AboutnessConfidence
from songmatch.services.aboutness_backfill import AboutnessBackfillJob
from songmatch.services.aboutness_generator import BATCH_SYSTEM_PROMPT, AboutnessGenerator
from songmatch.services.embedding_service import EmbeddingService
from songmatch.utils.errors import LLMError
from tests.conftest import FakeEmbeddingProvider

BODY = (
    "A slow-burning, rain-soaked ballad that builds from a lonely guitar figure into a "
    "towering, cathartic gospel swell. Grief and grace sit side by side; the mood is "
    "vast, bruised and devotional, and the final minutes stretch out into a long, "
    "aching release that feels almost spiritual."
)
VALID = f"{BODY} [confidence: medium]"


def _job(store, llm, embedder: FakeEmbeddingProvider | None = None) -> AboutnessBackfillJob:
    generator = AboutnessGenerator(llm, rate_limit_delays=(0, 0))
    return AboutnessBackfillJob(store, generator, EmbeddingService(embedder or FakeEmbeddingProvider()))


class TestBackfillRun:
    @pytest.mark.asyncio
    async def test_fills_missing_profiles(self, seeded_store, mock_llm_provider) -> None:
        mock_llm_provider.complete.return_value = VALID

        report = await _job(seeded_store, mock_llm_provider).run()

        # s1 and s2 already carry version 2.
        assert report.scanned == 4
        assert report.skipped == 2
        assert report.generated == 2
        assert report.written == 2
        assert report.failed == 0

        profile = await seeded_store.get_aboutness("s3")
        assert profile is not None
        assert profile.emotions_text == BODY
        assert profile.emotions_confidence is AboutnessConfidence.MEDIUM
        assert len(profile.emotions_vector) == 4
        assert profile.provider == "mock-llm"
        assert profile.generation_model == "mock-model"
        assert profile.version == 2
        assert profile.updated_at is not None

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, seeded_store, mock_llm_provider) -> None:
        mock_llm_provider.complete.return_value = VALID
        job = _job(seeded_store, mock_llm_provider)

        await job.run()
        calls_after_first_run = mock_llm_provider.complete.await_count
        report = await job.run()

        assert report.written == 0
        assert report.skipped == 4
        assert mock_llm_provider.complete.await_count == calls_after_first_run

    @pytest.mark.asyncio
    async def test_new_version_regenerates_everything(self, seeded_store, mock_llm_provider) -> None:
        mock_llm_provider.complete.return_value = VALID

        report = await _job(seeded_store, mock_llm_provider).run(BackfillOptions(version=3, batch_size=3))

        assert report.written == 4
        assert (await seeded_store.aboutness_versions(["s1", "s4"])) == {"s1": 3, "s4": 3}

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_run(self, seeded_store, mock_llm_provider) -> None:
        def reply(user_prompt, **_kwargs):
            if "Purple Rain" in user_prompt:
                raise LLMError(provider_name="mock-llm")
            return VALID

        mock_llm_provider.complete.side_effect = reply

        report = await _job(seeded_store, mock_llm_provider).run(BackfillOptions(version=3))

        assert report.failed == 1
        assert report.failed_ids == ["s2"]
        assert report.written == 3

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, seeded_store, mock_llm_provider) -> None:
        mock_llm_provider.complete.return_value = VALID

        report = await _job(seeded_store, mock_llm_provider).run(BackfillOptions(dry_run=True))

        assert report.dry_run
        assert report.generated == 2
        assert report.written == 0
        assert await seeded_store.get_aboutness("s3") is None

    @pytest.mark.asyncio
    async def test_limit(self, seeded_store, mock_llm_provider) -> None:
        mock_llm_provider.complete.return_value = VALID

        report = await _job(seeded_store, mock_llm_provider).run(
            BackfillOptions(version=3, limit=2, batch_size=10)
        )

        assert report.scanned == 2
        assert report.written == 2
        assert (await seeded_store.aboutness_versions(["s1", "s2", "s3"])) == {"s1": 3, "s2": 3}

    @pytest.mark.asyncio
    async def test_explicit_ids_with_unknown_song(self, seeded_store, mock_llm_provider) -> None:
        mock_llm_provider.complete.return_value = VALID

        report = await _job(seeded_store, mock_llm_provider).run(BackfillOptions(ids=["s4", "ghost"]))

        assert report.scanned == 2
        assert report.written == 1
        assert report.failed_ids == ["ghost"]
        assert await seeded_store.get_aboutness("s3") is None

    @pytest.mark.asyncio
    async def test_forced_outputs_are_counted(self, seeded_store, mock_llm_provider) -> None:
        mock_llm_provider.complete.return_value = BODY

        report = await _job(seeded_store, mock_llm_provider).run()

        assert report.written == 2
        assert report.forced_low_confidence == 4
        profile = await seeded_store.get_aboutness("s4")
        assert profile.moments_confidence is AboutnessConfidence.LOW

    @pytest.mark.asyncio
    async def test_dimension_mismatch_fails_the_song(self, seeded_store, mock_llm_provider) -> None:
        mock_llm_provider.complete.return_value = VALID
        embedder = FakeEmbeddingProvider(dimension=4, vectors={BODY: [0.1] * 8})

        report = await _job(seeded_store, mock_llm_provider, embedder).run()

        assert report.failed == 2
        assert report.written == 0
        assert sorted(report.failed_ids) == ["s3", "s4"]

    @pytest.mark.asyncio
    async def test_fallback_of_other_dimension_never_reaches_the_catalog(
        self, seeded_store, mock_llm_provider
    ) -> None:
        mock_llm_provider.complete.return_value = VALID
        service = EmbeddingService(
            FakeEmbeddingProvider("primary", dimension=4, available=False),
            FakeEmbeddingProvider("fallback", dimension=8),
        )
        generator = AboutnessGenerator(mock_llm_provider, rate_limit_delays=(0, 0))
        job = AboutnessBackfillJob(seeded_store, generator, service)

        report = await job.run()

        assert service.get_active_dimensions() == 8
        assert report.written == 0
        assert sorted(report.failed_ids) == ["s3", "s4"]
        assert await seeded_store.vector_dimensions() == {4}

    @pytest.mark.asyncio
    async def test_batch_prompts(self, seeded_store, mock_llm_provider) -> None:
        batch_reply = json.dumps([{"song_id": "s3", "emotions": VALID, "moments": VALID}])

        def reply(system_prompt, **_kwargs):
            return batch_reply if system_prompt == BATCH_SYSTEM_PROMPT else VALID

        mock_llm_provider.complete.side_effect = reply

        report = await _job(seeded_store, mock_llm_provider).run(BackfillOptions(batch_prompts=True))

        assert report.written == 2
        # One batch call, then both axes for s4, which the reply left out.
        assert mock_llm_provider.complete.await_count == 3
