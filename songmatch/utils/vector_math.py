"""Vector similarity primitives shared by every retrieval leg.

All binary operations require equal-length inputs and raise
:class:`~songmatch.utils.errors.DimensionMismatchError` otherwise -- vectors
are never truncated or padded to make them fit.  Functions are pure: inputs
are never mutated and results are plain Python floats/lists.

The heavy lifting is done with numpy so that :func:`find_most_similar`
scans a candidate matrix in a single O(n*d) pass.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np

from songmatch.utils.errors import DimensionMismatchError

Vector = Sequence[float]


class Metric(str, Enum):  # noqa: UP042
    """Similarity metric accepted by :func:`calculate_similarity`."""

    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    DOT = "dot"


@dataclass(frozen=True)
class SimilarityResult:
    """One scored candidate from :func:`find_most_similar`.

    ``index`` is the candidate's position in the input sequence.
    """

    index: int
    similarity: float
    distance: float


def _as_array(vector: Vector) -> np.ndarray:
    return np.asarray(vector, dtype=np.float64)


def _check_dimensions(a: np.ndarray, b: np.ndarray) -> None:
    if a.shape[-1] != b.shape[-1]:
        raise DimensionMismatchError(expected=a.shape[-1], actual=b.shape[-1])


def dot_product(a: Vector, b: Vector) -> float:
    """Return the dot product of two equal-length vectors."""
    va, vb = _as_array(a), _as_array(b)
    _check_dimensions(va, vb)
    return float(np.dot(va, vb))


def magnitude(vector: Vector) -> float:
    """Return the Euclidean (L2) norm of *vector*."""
    return float(np.linalg.norm(_as_array(vector)))


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Return ``dot / (|a| * |b|)`` in [-1, 1].

    Returns exactly ``0.0`` when either vector has zero magnitude.
    """
    va, vb = _as_array(a), _as_array(b)
    _check_dimensions(va, vb)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


def euclidean_distance(a: Vector, b: Vector) -> float:
    """Return the straight-line distance between two equal-length vectors."""
    va, vb = _as_array(a), _as_array(b)
    _check_dimensions(va, vb)
    return float(np.linalg.norm(va - vb))


def normalize(vector: Vector) -> list[float]:
    """Return a unit-length copy of *vector*.

    A zero vector is returned unchanged (as a copy).
    """
    arr = _as_array(vector)
    norm = np.linalg.norm(arr)
    if norm == 0.0:
        return arr.tolist()
    return (arr / norm).tolist()


def calculate_similarity(
    a: Vector,
    b: Vector,
    metric: Metric | str = Metric.COSINE,
) -> tuple[float, float]:
    """Return ``(similarity, distance)`` for the given metric.

    - cosine:    ``(s, 1 - s)``
    - euclidean: ``(1 / (1 + d), d)``
    - dot:       ``(p, -p)``
    """
    metric = Metric(metric)
    if metric is Metric.COSINE:
        sim = cosine_similarity(a, b)
        return sim, 1.0 - sim
    if metric is Metric.EUCLIDEAN:
        dist = euclidean_distance(a, b)
        return 1.0 / (1.0 + dist), dist
    prod = dot_product(a, b)
    return prod, -prod


def _score_matrix(
    query: Vector,
    candidates: Sequence[Vector],
    metric: Metric,
) -> tuple[np.ndarray, np.ndarray]:
    """Vectorised similarity/distance of *query* against every candidate row."""
    q = _as_array(query)
    rows = [_as_array(c) for c in candidates]
    for row in rows:
        _check_dimensions(q, row)
    matrix = np.vstack(rows)

    if metric is Metric.COSINE:
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
        dots = matrix @ q
        sims = np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0.0)
        return sims, 1.0 - sims
    if metric is Metric.EUCLIDEAN:
        dists = np.linalg.norm(matrix - q, axis=1)
        return 1.0 / (1.0 + dists), dists
    dots = matrix @ q
    return dots, -dots


def batch_similarity(
    query: Vector,
    candidates: Sequence[Vector],
    metric: Metric | str = Metric.COSINE,
) -> list[float]:
    """Return the similarity of *query* against each candidate, in input order."""
    if not candidates:
        return []
    sims, _ = _score_matrix(query, candidates, Metric(metric))
    return sims.tolist()


def find_most_similar(
    query: Vector,
    candidates: Sequence[Vector],
    metric: Metric | str = Metric.COSINE,
    top_k: int = 10,
) -> list[SimilarityResult]:
    """Rank *candidates* against *query* and return the best *top_k*.

    Sorted by descending similarity for cosine/dot and ascending distance
    for euclidean.  Ties keep the original candidate order.
    """
    if not candidates or top_k <= 0:
        return []
    metric = Metric(metric)
    sims, dists = _score_matrix(query, candidates, metric)

    sort_key = dists if metric is Metric.EUCLIDEAN else -sims
    order = np.argsort(sort_key, kind="stable")[:top_k]
    return [
        SimilarityResult(index=int(i), similarity=float(sims[i]), distance=float(dists[i]))
        for i in order
    ]
