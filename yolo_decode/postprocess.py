from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from .boxes import decode_boxes
from .diagnostics import LogOnce, default_log_once
from .layout import LayoutVariant, classify_output, normalize_output
from .nms import NMSConfig, batched_nms, nms
from .scoring import score_candidates
from .types import Detection


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YoloPostConfig:
    """
    Configuration for YOLO post-processing.
    """

    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    # (width, height) of the image the model was fed.
    input_size: Tuple[int, int] = (640, 640)
    # None infers the layout from the tensor shape on every call.
    variant: Optional[LayoutVariant] = None
    # If False, runs per-class NMS then merges results by score.
    class_agnostic_nms: bool = True
    max_detections: Optional[int] = None
    # Optional list of class IDs to keep; None keeps all.
    class_ids: Optional[Sequence[int]] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if len(self.input_size) != 2 or any(int(v) <= 0 for v in self.input_size):
            raise ValueError(f"input_size must be two positive ints, got {self.input_size!r}")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1")
        if self.variant is not None and not isinstance(self.variant, LayoutVariant):
            raise ValueError(f"variant must be a LayoutVariant or None, got {self.variant!r}")


class YoloPostprocessor:
    """
    Turns one raw detector output into de-duplicated detections.

    Supported layouts (per image):
    - (N, 5 + C) / (1, N, 5 + C): [cx, cy, w, h, obj, class_scores...]
    - (1, 4 + C, A): anchor-major exports such as 1 x 84 x 8400 (YOLOv8)

    Box attributes may be fractions of the input size or input-size pixels;
    this is decided per candidate. Malformed outputs produce an empty list.
    """

    def __init__(self, cfg: YoloPostConfig = YoloPostConfig(), log_once: Optional[LogOnce] = None):
        self.cfg = cfg
        self.log_once = log_once if log_once is not None else LogOnce()

    def process(self, preds: Any, orig_size: Tuple[int, int]) -> List[Detection]:
        """
        Decode raw model output into detections in original image coordinates.

        Args:
            preds: model output for a single image (anything `np.asarray` accepts)
            orig_size: (width, height) of the image before resizing
        """

        p = _as_numeric(preds)
        layout = classify_output(p.shape, self.cfg.variant)
        matrix = normalize_output(p, layout)
        if matrix is None:
            return []

        self.log_once.shape_info(p.shape, matrix.shape, layout.variant.label)

        rows, scores, class_ids = score_candidates(matrix, layout.variant, self.cfg.conf_threshold)
        if rows.size == 0:
            return []

        # Optional class filter
        if self.cfg.class_ids is not None:
            mask = np.isin(class_ids, np.asarray(self.cfg.class_ids))
            rows, scores, class_ids = rows[mask], scores[mask], class_ids[mask]
            if rows.size == 0:
                return []

        boxes, valid = decode_boxes(matrix[rows, :4], orig_size, self.cfg.input_size)
        boxes, scores, class_ids = boxes[valid], scores[valid], class_ids[valid]
        if boxes.size == 0:
            logger.debug("All %d scored candidates were degenerate after clamping.", rows.size)
            return []

        keep = self._apply_nms(boxes, scores, class_ids)

        return [
            Detection(
                x1=int(boxes[i, 0]),
                y1=int(boxes[i, 1]),
                x2=int(boxes[i, 2]),
                y2=int(boxes[i, 3]),
                score=float(scores[i]),
                class_id=int(class_ids[i]),
            )
            for i in keep
        ]

    __call__ = process

    def _apply_nms(self, boxes: np.ndarray, scores: np.ndarray, class_ids: np.ndarray) -> np.ndarray:
        nms_cfg = NMSConfig(
            iou_threshold=self.cfg.iou_threshold,
            score_threshold=self.cfg.conf_threshold,
            max_detections=self.cfg.max_detections,
        )
        if self.cfg.class_agnostic_nms:
            return nms(boxes, scores, nms_cfg)
        return batched_nms(boxes, scores, class_ids, nms_cfg)


def _as_numeric(preds: Any) -> np.ndarray:
    if preds is None:
        raise TypeError("preds must be an array-like tensor, got None.")
    try:
        p = np.asarray(preds)
    except ValueError as e:
        raise TypeError(f"preds is not a rectangular numeric tensor: {e}") from e
    if not (np.issubdtype(p.dtype, np.number) or np.issubdtype(p.dtype, np.bool_)):
        raise TypeError(f"preds must hold numbers, got dtype {p.dtype}.")
    return p


def decode(
    tensor: Any,
    orig_size: Tuple[int, int],
    conf_threshold: float = 0.25,
    nms_threshold: float = 0.45,
    input_size: Tuple[int, int] = (640, 640),
    *,
    variant: Optional[LayoutVariant] = None,
    log_once: Optional[LogOnce] = None,
) -> List[Detection]:
    """
    One-call decode of a single output tensor.

    Shares a process-wide LogOnce unless one is passed in.
    """

    cfg = YoloPostConfig(
        conf_threshold=conf_threshold,
        iou_threshold=nms_threshold,
        input_size=input_size,
        variant=variant,
    )
    post = YoloPostprocessor(cfg, log_once=log_once if log_once is not None else default_log_once)
    return post.process(tensor, orig_size)
