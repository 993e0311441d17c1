"""Allow ``python -m songmatch.cli`` execution."""

from songmatch.cli.backfill import main

main()
