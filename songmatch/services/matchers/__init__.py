"""Per-signal matchers feeding the reranker: keyword, mood, entities."""
