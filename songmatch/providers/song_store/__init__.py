"""Song store providers.

SQLiteSongStore keeps the catalog, the phrase index, and the aboutness rows
in one SQLite file and answers nearest-neighbour queries by exact scan.
"""

from songmatch.providers.song_store.sqlite_song_store import SQLiteSongStore

__all__ = ["SQLiteSongStore"]
