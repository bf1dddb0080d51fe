from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

import numpy as np


logger = logging.getLogger(__name__)

# 4 box columns + objectness/best class + at least one more score column.
MIN_ATTRIBUTES = 6


class LayoutVariant(enum.Enum):
    """
    How the score columns of a candidate row are laid out.

    - OBJECTNESS_PRESENT: [cx, cy, w, h, obj, class_scores...] (YOLOv5 style)
    - OBJECTNESS_FREE: [cx, cy, w, h, class_scores...] (YOLOv8 style)
    """

    OBJECTNESS_PRESENT = "objectness"
    OBJECTNESS_FREE = "no-objectness"

    @property
    def class_start(self) -> int:
        return 5 if self is LayoutVariant.OBJECTNESS_PRESENT else 4

    @property
    def label(self) -> str:
        if self is LayoutVariant.OBJECTNESS_PRESENT:
            return "YOLOv5 (obj @4)"
        return "YOLOv8 (no obj)"

    @classmethod
    def parse(cls, value: Any) -> Optional["LayoutVariant"]:
        """Accept an enum member, its value string, or None/"auto" for auto-detect."""
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key in {"", "auto"}:
                return None
            for member in cls:
                if key in {member.value, member.name.lower()}:
                    return member
        raise ValueError(f"Unknown layout variant: {value!r}")


@dataclass(frozen=True)
class TensorLayout:
    """
    Result of a single shape inspection of a raw model output.

    Orientation and variant both come from comparing the two non-batch axes, so
    they cannot disagree. Add new layouts by extending `classify_output`.
    """

    shape: Tuple[int, ...]
    supported: bool
    transpose: bool = False
    variant: LayoutVariant = LayoutVariant.OBJECTNESS_PRESENT

    @property
    def rank(self) -> int:
        return len(self.shape)


def classify_output(shape: Sequence[int], variant: Optional[LayoutVariant] = None) -> TensorLayout:
    """
    Decide how to read a raw output tensor of the given shape.

    Rank 2 is already (candidates, attributes). Rank 3 must have a batch of 1;
    the larger of the remaining axes holds the candidates. When the attribute
    axis comes first and is the smaller one, the export is the anchor-major
    (4 + C, A) layout, which carries no objectness column.

    Args:
        shape: raw tensor shape
        variant: force a LayoutVariant instead of inferring it from the shape
    """

    shape = tuple(int(s) for s in shape)

    if len(shape) == 2:
        return TensorLayout(
            shape=shape,
            supported=True,
            transpose=False,
            variant=variant or LayoutVariant.OBJECTNESS_PRESENT,
        )

    if len(shape) == 3:
        d0, d1, d2 = shape
        if d0 != 1:
            return TensorLayout(shape=shape, supported=False)

        inferred = LayoutVariant.OBJECTNESS_FREE if d1 < d2 else LayoutVariant.OBJECTNESS_PRESENT
        return TensorLayout(
            shape=shape,
            supported=True,
            transpose=not d1 > d2,
            variant=variant or inferred,
        )

    return TensorLayout(shape=shape, supported=False)


def normalize_output(preds: Any, layout: TensorLayout) -> Optional[np.ndarray]:
    """
    Reshape a raw output into a float32 (candidates, attributes) matrix.

    Returns None for unsupported shapes, empty outputs, and matrices with
    fewer than MIN_ATTRIBUTES columns. Always returns a new array.
    """

    if not layout.supported:
        logger.debug("Unsupported output shape %s; no detections.", layout.shape)
        return None

    p = np.asarray(preds)
    if p.size == 0:
        logger.debug("Empty output tensor %s; no detections.", layout.shape)
        return None

    if layout.rank == 3:
        _, d1, d2 = layout.shape
        p = p.reshape(d1, d2)
        if layout.transpose:
            p = p.T

    # astype copies, so callers' buffers are never aliased or mutated.
    out = p.astype(np.float32)

    if out.shape[1] < MIN_ATTRIBUTES:
        logger.debug("Output matrix %s has fewer than %d columns; no detections.", out.shape, MIN_ATTRIBUTES)
        return None
    return out
