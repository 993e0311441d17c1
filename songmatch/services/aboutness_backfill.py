"""Offline backfill of aboutness profiles.

Walks the catalog in ascending id order with a cursor, skips songs whose
stored aboutness version is already at (or above) the requested version,
generates both axes, embeds them in one call and upserts the row.  The job
is idempotent: a second run with the same version writes nothing.

A failure on one song is logged and counted; the run carries on with the
next song.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from songmatch.interfaces.song_store import ISongStore
from songmatch.models.aboutness import BackfillOptions, BackfillReport, GeneratedAboutness
from songmatch.models.song import AboutnessProfile, Song
from songmatch.services.aboutness_generator import BATCH_SONGS_PER_CALL, AboutnessGenerator
from songmatch.services.embedding_service import EmbeddingService
from songmatch.utils.concurrency import chunked, throttled_gather
from songmatch.utils.errors import InvalidGenerationOutputError
from songmatch.utils.logging import get_logger

logger = get_logger(__name__)


class AboutnessBackfillJob:
    """Fills ``song_aboutness`` rows for songs that lack the current version."""

    def __init__(
        self,
        song_store: ISongStore,
        generator: AboutnessGenerator,
        embedding_service: EmbeddingService,
    ) -> None:
        self._store = song_store
        self._generator = generator
        self._embedding = embedding_service

    async def run(self, options: BackfillOptions | None = None) -> BackfillReport:
        options = options or BackfillOptions()
        report = BackfillReport(dry_run=options.dry_run)
        semaphore = asyncio.Semaphore(options.concurrency)
        cursor: str | None = None

        logger.info(
            "backfill_started",
            version=options.version,
            limit=options.limit,
            batch_size=options.batch_size,
            concurrency=options.concurrency,
            dry_run=options.dry_run,
            explicit_ids=len(options.ids) if options.ids else None,
        )

        while True:
            page_size = options.batch_size
            if options.limit is not None:
                page_size = min(page_size, options.limit - report.scanned)
                if page_size <= 0:
                    break

            page = await self._store.list_song_ids(after=cursor, limit=page_size, ids=options.ids)
            if not page:
                break
            cursor = page[-1]
            report.scanned += len(page)

            versions = await self._store.aboutness_versions(page)
            pending = [sid for sid in page if versions.get(sid, 0) < options.version]
            report.skipped += len(page) - len(pending)
            if not pending:
                continue

            songs = await self._store.get_songs(pending)
            found = {song.id for song in songs}
            for missing in (sid for sid in pending if sid not in found):
                logger.warning("backfill_song_not_found", song_id=missing)
                self._record_failure(report, missing)

            await self._process_page(songs, options, semaphore, report)

        logger.info(
            "backfill_complete",
            scanned=report.scanned,
            skipped=report.skipped,
            generated=report.generated,
            written=report.written,
            failed=report.failed,
            forced_low_confidence=report.forced_low_confidence,
            dry_run=report.dry_run,
        )
        return report

    async def _process_page(
        self,
        songs: list[Song],
        options: BackfillOptions,
        semaphore: asyncio.Semaphore,
        report: BackfillReport,
    ) -> None:
        pregenerated: dict[str, GeneratedAboutness] = {}
        if options.batch_prompts:
            for chunk_result in await throttled_gather(
                [
                    self._generator.generate_batch(chunk)
                    for chunk in chunked(songs, BATCH_SONGS_PER_CALL)
                ],
                semaphore=semaphore,
            ):
                if isinstance(chunk_result, BaseException):
                    logger.error("backfill_batch_failed", error=str(chunk_result))
                    continue
                pregenerated.update(chunk_result)

        outcomes = await throttled_gather(
            [
                self._process_song(song, options, pregenerated.get(song.id))
                for song in songs
            ],
            semaphore=semaphore,
        )

        for song, outcome in zip(songs, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "backfill_song_failed",
                    song_id=song.id,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                self._record_failure(report, song.id)
                continue
            generated, wrote = outcome
            report.generated += 1
            report.forced_low_confidence += int(generated.emotions.forced) + int(
                generated.moments.forced
            )
            if wrote:
                report.written += 1

    async def _process_song(
        self,
        song: Song,
        options: BackfillOptions,
        generated: GeneratedAboutness | None,
    ) -> tuple[GeneratedAboutness, bool]:
        """Generate, embed and store one song.  Returns (generated, written)."""
        if generated is None:
            if options.batch_prompts:
                raise InvalidGenerationOutputError(reason="no result from batch generation")
            generated = await self._generator.generate(song.title, song.artist)

        emotions_vector, moments_vector = await self._embedding.embed(
            [generated.emotions.text, generated.moments.text]
        )
        self._embedding.assert_dimensions(emotions_vector, source="emotions_vector")
        self._embedding.assert_dimensions(moments_vector, source="moments_vector")

        if options.dry_run:
            logger.info(
                "backfill_dry_run_song",
                song_id=song.id,
                emotions_chars=len(generated.emotions.text),
                moments_chars=len(generated.moments.text),
            )
            return generated, False

        profile = AboutnessProfile(
            song_id=song.id,
            emotions_text=generated.emotions.text,
            emotions_vector=emotions_vector,
            emotions_confidence=generated.emotions.confidence,
            moments_text=generated.moments.text,
            moments_vector=moments_vector,
            moments_confidence=generated.moments.confidence,
            provider=generated.provider,
            generation_model=generated.model,
            version=options.version,
            updated_at=datetime.now(timezone.utc),
        )
        await self._store.upsert_aboutness(profile)
        logger.debug("backfill_song_written", song_id=song.id, version=options.version)
        return generated, True

    @staticmethod
    def _record_failure(report: BackfillReport, song_id: str) -> None:
        report.failed += 1
        report.failed_ids.append(song_id)
