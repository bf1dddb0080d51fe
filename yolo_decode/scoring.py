from __future__ import annotations

from typing import Tuple

import numpy as np

from .layout import LayoutVariant


# Rows whose objectness is at or below this are dropped before the class scan.
OBJECTNESS_EPS = np.float32(1e-6)


def score_candidates(
    matrix: np.ndarray,
    variant: LayoutVariant,
    conf_threshold: float = 0.25,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Score every candidate row and drop those under `conf_threshold`.

    Args:
        matrix: (N, A) float matrix from `normalize_output`
        variant: column layout of the score part of each row
        conf_threshold: minimum confidence kept (inclusive)

    Returns:
        rows: indices into `matrix` of the surviving candidates
        scores: confidence per surviving row
        class_ids: argmax class per surviving row (lowest index wins ties)
    """

    n = matrix.shape[0]
    rows = np.arange(n)

    if variant is LayoutVariant.OBJECTNESS_PRESENT:
        objectness = matrix[:, 4]
        alive = objectness > OBJECTNESS_EPS
        rows = rows[alive]
        objectness = objectness[alive]
    else:
        objectness = None

    class_scores = matrix[rows, variant.class_start:]
    if rows.size == 0 or class_scores.shape[1] == 0:
        return np.empty((0,), dtype=np.int64), np.empty((0,), dtype=np.float32), np.empty((0,), dtype=np.int64)

    # NaN scores never win; np.argmax returns the first occurrence of the max.
    class_scores = np.where(np.isnan(class_scores), -np.inf, class_scores)
    class_ids = np.argmax(class_scores, axis=1)
    best = class_scores[np.arange(class_scores.shape[0]), class_ids]
    scores = best if objectness is None else objectness * best

    keep = scores >= conf_threshold
    return rows[keep], scores[keep].astype(np.float32), class_ids[keep].astype(np.int64)
