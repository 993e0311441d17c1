"""Command-line tools for songmatch.

- ``python -m songmatch.cli backfill`` -- generate and store aboutness
  profiles for songs missing the current version.
- ``python -m songmatch.cli stats`` -- show catalog and aboutness counts.

Heavy imports (embedding models, the OpenAI client) are deferred into the
handlers so ``--help`` stays fast.
"""
