"""SQLite-backed song store.

Persists the song catalog and the generated aboutness rows to a local SQLite
database at ``data/songs.db``.  Uses ``aiosqlite`` for async I/O.  Vectors
are stored as JSON arrays; nearest-neighbour queries are exact brute-force
cosine scans through :mod:`songmatch.utils.vector_math`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from songmatch.interfaces.song_store import ISongStore, Neighbor
from songmatch.models.song import AboutnessConfidence, AboutnessProfile, Song
from songmatch.utils import vector_math
from songmatch.utils.errors import SongStoreError
from songmatch.utils.text_normalizer import clean_text

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/songs.db")

_CREATE_SONGS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS songs (
    id          TEXT    PRIMARY KEY,
    title       TEXT    NOT NULL,
    artist      TEXT    NOT NULL,
    year        INTEGER,
    decade      INTEGER,
    popularity  REAL    NOT NULL DEFAULT 0,
    tags        TEXT    NOT NULL DEFAULT '[]',
    phrases     TEXT    NOT NULL DEFAULT '[]',
    embedding   TEXT
);
"""

_CREATE_PHRASES_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS song_phrases (
    phrase   TEXT NOT NULL,
    song_id  TEXT NOT NULL REFERENCES songs(id),
    PRIMARY KEY (phrase, song_id)
);
"""

_CREATE_ABOUTNESS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS song_aboutness (
    song_id              TEXT    PRIMARY KEY REFERENCES songs(id),
    emotions_text        TEXT    NOT NULL,
    emotions_vector      TEXT    NOT NULL,
    emotions_confidence  TEXT    NOT NULL,
    moments_text         TEXT    NOT NULL,
    moments_vector       TEXT    NOT NULL,
    moments_confidence   TEXT    NOT NULL,
    provider             TEXT    NOT NULL,
    generation_model     TEXT    NOT NULL,
    version              INTEGER NOT NULL,
    updated_at           TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_song_phrases_song ON song_phrases(song_id);",
    "CREATE INDEX IF NOT EXISTS idx_songs_popularity ON songs(popularity);",
    "CREATE INDEX IF NOT EXISTS idx_song_aboutness_version ON song_aboutness(version);",
]

_UPSERT_SONG_SQL = """\
INSERT INTO songs (id, title, artist, year, decade, popularity, tags, phrases, embedding)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    title = excluded.title,
    artist = excluded.artist,
    year = excluded.year,
    decade = excluded.decade,
    popularity = excluded.popularity,
    tags = excluded.tags,
    phrases = excluded.phrases,
    embedding = excluded.embedding;
"""

_UPSERT_ABOUTNESS_SQL = """\
INSERT INTO song_aboutness (
    song_id, emotions_text, emotions_vector, emotions_confidence,
    moments_text, moments_vector, moments_confidence,
    provider, generation_model, version
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(song_id) DO UPDATE SET
    emotions_text = excluded.emotions_text,
    emotions_vector = excluded.emotions_vector,
    emotions_confidence = excluded.emotions_confidence,
    moments_text = excluded.moments_text,
    moments_vector = excluded.moments_vector,
    moments_confidence = excluded.moments_confidence,
    provider = excluded.provider,
    generation_model = excluded.generation_model,
    version = excluded.version,
    updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

_SELECT_SONGS_SQL = """\
SELECT id, title, artist, year, decade, popularity, tags, phrases, embedding
FROM songs
WHERE id IN ({placeholders});
"""

_SELECT_ABOUTNESS_SQL = """\
SELECT *
FROM song_aboutness
WHERE song_id IN ({placeholders});
"""

_SELECT_EMBEDDINGS_SQL = "SELECT id, embedding FROM songs WHERE embedding IS NOT NULL ORDER BY id;"

_SELECT_EMOTION_VECTORS_SQL = "SELECT song_id, emotions_vector FROM song_aboutness ORDER BY song_id;"

_SELECT_MOMENT_VECTORS_SQL = """\
SELECT song_id, moments_vector
FROM song_aboutness
WHERE song_id IN ({placeholders});
"""

_SELECT_PHRASES_SQL = "SELECT phrase, song_id FROM song_phrases ORDER BY phrase, song_id;"

_SELECT_POPULAR_SQL = """\
SELECT id, title, artist, year, decade, popularity, tags, phrases, embedding
FROM songs
ORDER BY popularity DESC, id ASC
LIMIT ?;
"""

_SELECT_IDS_AFTER_SQL = """\
SELECT id
FROM songs
WHERE (? IS NULL OR id > ?)
ORDER BY id ASC
LIMIT ?;
"""

_SELECT_VERSIONS_SQL = """\
SELECT song_id, version
FROM song_aboutness
WHERE song_id IN ({placeholders});
"""


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _row_to_aboutness(row: aiosqlite.Row) -> AboutnessProfile:
    return AboutnessProfile(
        song_id=row["song_id"],
        emotions_text=row["emotions_text"],
        emotions_vector=json.loads(row["emotions_vector"]),
        emotions_confidence=AboutnessConfidence(row["emotions_confidence"]),
        moments_text=row["moments_text"],
        moments_vector=json.loads(row["moments_vector"]),
        moments_confidence=AboutnessConfidence(row["moments_confidence"]),
        provider=row["provider"],
        generation_model=row["generation_model"],
        version=row["version"],
        updated_at=row["updated_at"],
    )


def _row_to_song(row: aiosqlite.Row, aboutness: AboutnessProfile | None = None) -> Song:
    return Song(
        id=row["id"],
        title=row["title"],
        artist=row["artist"],
        year=row["year"],
        decade=row["decade"],
        popularity=row["popularity"],
        tags=json.loads(row["tags"]),
        phrases=json.loads(row["phrases"]),
        embedding=json.loads(row["embedding"]) if row["embedding"] else None,
        aboutness=aboutness,
    )


def _knn(query: list[float], rows: list[tuple[str, list[float]]], k: int) -> list[Neighbor]:
    rows = [(song_id, vec) for song_id, vec in rows if vec]
    if not rows:
        return []
    hits = vector_math.find_most_similar(
        query, [vec for _, vec in rows], metric=vector_math.Metric.COSINE, top_k=k
    )
    return [Neighbor(song_id=rows[h.index][0], distance=h.distance) for h in hits]


class SQLiteSongStore(ISongStore):
    """SQLite-backed song catalog and aboutness persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def initialize(self) -> None:
        """Create the songs, song_phrases, and song_aboutness tables if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_SONGS_TABLE_SQL)
            await db.execute(_CREATE_PHRASES_TABLE_SQL)
            await db.execute(_CREATE_ABOUTNESS_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("song_store_initialized", path=str(self._db_path))

    async def _fetch(self, sql: str, params: tuple | list = ()) -> list[aiosqlite.Row]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, params)
                return list(await cursor.fetchall())
        except aiosqlite.Error as exc:
            raise SongStoreError(message=f"Query failed: {exc}", provider_name="sqlite") from exc

    # ------------------------------------------------------------------
    # Catalog writes (seeding / ingestion)
    # ------------------------------------------------------------------

    async def upsert_song(self, song: Song) -> None:
        """Insert or replace one song and its phrase index entries."""
        phrases = sorted({clean_text(p) for p in song.phrases} - {""})
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _UPSERT_SONG_SQL,
                (
                    song.id,
                    song.title,
                    song.artist,
                    song.year,
                    song.decade,
                    song.popularity,
                    json.dumps(song.tags),
                    json.dumps(phrases),
                    json.dumps(song.embedding) if song.embedding is not None else None,
                ),
            )
            await db.execute("DELETE FROM song_phrases WHERE song_id = ?;", (song.id,))
            await db.executemany(
                "INSERT INTO song_phrases (phrase, song_id) VALUES (?, ?);",
                [(phrase, song.id) for phrase in phrases],
            )
            await db.commit()

    # ------------------------------------------------------------------
    # ISongStore implementation
    # ------------------------------------------------------------------

    async def get_song(self, song_id: str) -> Song | None:
        songs = await self.get_songs([song_id])
        return songs[0] if songs else None

    async def get_songs(self, song_ids: list[str]) -> list[Song]:
        if not song_ids:
            return []
        rows = await self._fetch(
            _SELECT_SONGS_SQL.format(placeholders=_placeholders(len(song_ids))), song_ids
        )
        aboutness = await self._aboutness_many(song_ids)
        by_id = {row["id"]: _row_to_song(row, aboutness.get(row["id"])) for row in rows}
        return [by_id[sid] for sid in song_ids if sid in by_id]

    async def _aboutness_many(self, song_ids: list[str]) -> dict[str, AboutnessProfile]:
        rows = await self._fetch(
            _SELECT_ABOUTNESS_SQL.format(placeholders=_placeholders(len(song_ids))), song_ids
        )
        return {row["song_id"]: _row_to_aboutness(row) for row in rows}

    async def get_aboutness(self, song_id: str) -> AboutnessProfile | None:
        return (await self._aboutness_many([song_id])).get(song_id)

    async def knn_metadata(self, vector: list[float], k: int) -> list[Neighbor]:
        rows = await self._fetch(_SELECT_EMBEDDINGS_SQL)
        return _knn(vector, [(r["id"], json.loads(r["embedding"])) for r in rows], k)

    async def knn_emotions(self, vector: list[float], k: int) -> list[Neighbor]:
        rows = await self._fetch(_SELECT_EMOTION_VECTORS_SQL)
        return _knn(vector, [(r["song_id"], json.loads(r["emotions_vector"])) for r in rows], k)

    async def moment_distances(
        self, vector: list[float], song_ids: list[str]
    ) -> dict[str, float]:
        if not song_ids:
            return {}
        rows = await self._fetch(
            _SELECT_MOMENT_VECTORS_SQL.format(placeholders=_placeholders(len(song_ids))),
            song_ids,
        )
        distances: dict[str, float] = {}
        for row in rows:
            moments = json.loads(row["moments_vector"])
            if not moments:
                continue
            _, dist = vector_math.calculate_similarity(vector, moments, vector_math.Metric.COSINE)
            distances[row["song_id"]] = dist
        return distances

    async def phrase_index(self) -> dict[str, list[str]]:
        index: dict[str, list[str]] = {}
        for row in await self._fetch(_SELECT_PHRASES_SQL):
            index.setdefault(row["phrase"], []).append(row["song_id"])
        return index

    async def get_popular(self, limit: int) -> list[Song]:
        rows = await self._fetch(_SELECT_POPULAR_SQL, (limit,))
        return [_row_to_song(row) for row in rows]

    async def list_song_ids(
        self,
        after: str | None = None,
        limit: int = 100,
        ids: list[str] | None = None,
    ) -> list[str]:
        if ids is not None:
            wanted = sorted(set(ids))
            if after is not None:
                wanted = [sid for sid in wanted if sid > after]
            return wanted[:limit]
        rows = await self._fetch(_SELECT_IDS_AFTER_SQL, (after, after, limit))
        return [row["id"] for row in rows]

    async def aboutness_versions(self, song_ids: list[str]) -> dict[str, int]:
        if not song_ids:
            return {}
        rows = await self._fetch(
            _SELECT_VERSIONS_SQL.format(placeholders=_placeholders(len(song_ids))), song_ids
        )
        return {row["song_id"]: row["version"] for row in rows}

    async def upsert_aboutness(self, profile: AboutnessProfile) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _UPSERT_ABOUTNESS_SQL,
                    (
                        profile.song_id,
                        profile.emotions_text,
                        json.dumps(profile.emotions_vector),
                        profile.emotions_confidence.value,
                        profile.moments_text,
                        json.dumps(profile.moments_vector),
                        profile.moments_confidence.value,
                        profile.provider,
                        profile.generation_model,
                        profile.version,
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise SongStoreError(message=f"Upsert failed: {exc}", provider_name="sqlite") from exc
        logger.debug("aboutness_upserted", song_id=profile.song_id, version=profile.version)

    async def vector_dimensions(self) -> set[int]:
        """Distinct dimensions across metadata, emotions and moments vectors."""
        dims: set[int] = set()
        for row in await self._fetch(_SELECT_EMBEDDINGS_SQL):
            dims.add(len(json.loads(row["embedding"])))
        for row in await self._fetch(
            "SELECT emotions_vector, moments_vector FROM song_aboutness;"
        ):
            dims.add(len(json.loads(row["emotions_vector"])))
            dims.add(len(json.loads(row["moments_vector"])))
        dims.discard(0)
        return dims

    async def count_songs(self) -> dict[str, Any]:
        """Return catalog and aboutness row counts."""
        songs = await self._fetch("SELECT COUNT(*) AS n FROM songs;")
        about = await self._fetch("SELECT COUNT(*) AS n FROM song_aboutness;")
        return {"songs": songs[0]["n"], "aboutness": about[0]["n"]}
