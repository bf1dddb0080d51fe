from dataclasses import dataclass
from typing import List, Optional

import numpy as np


@dataclass
class NMSConfig:
    iou_threshold: float = 0.45
    # Boxes scoring below this never enter suppression.
    score_threshold: float = 0.0
    # None keeps every surviving box.
    max_detections: Optional[int] = None


def box_iou(box: np.ndarray, others: np.ndarray) -> np.ndarray:
    """
    IoU between one xyxy box (4,) and many (M, 4). Zero-area unions give 0.
    """

    box = box.astype(np.float64)
    others = others.astype(np.float64)

    xx1 = np.maximum(box[0], others[:, 0])
    yy1 = np.maximum(box[1], others[:, 1])
    xx2 = np.minimum(box[2], others[:, 2])
    yy2 = np.minimum(box[3], others[:, 3])

    w = np.maximum(0.0, xx2 - xx1)
    h = np.maximum(0.0, yy2 - yy1)
    inter = w * h
    area = (box[2] - box[0]) * (box[3] - box[1])
    areas = (others[:, 2] - others[:, 0]) * (others[:, 3] - others[:, 1])
    union = area + areas - inter
    return np.where(union > 0, inter / np.where(union > 0, union, 1.0), 0.0)


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of kept boxes in selection order (descending score).

    Equal scores keep their input order. A box is dropped when its IoU with an
    already kept box is strictly greater than `cfg.iou_threshold`.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    scores = np.asarray(scores)
    candidates = np.where(scores >= cfg.score_threshold)[0]
    # Stable sort on the negated scores keeps ties in index order.
    order = candidates[np.argsort(-scores[candidates], kind="stable")]
    keep: List[int] = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = order[0]
        keep.append(int(i))

        iou = box_iou(boxes[i], boxes[order[1:]])
        inds = np.where(iou <= cfg.iou_threshold)[0]
        order = order[inds + 1]

    return np.array(keep, dtype=np.int64)


def batched_nms(boxes: np.ndarray, scores: np.ndarray, class_ids: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Per-class NMS, merged back by descending score (stable on ties).
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    kept: List[int] = []
    for cls in np.unique(class_ids):
        idx = np.where(class_ids == cls)[0]
        keep_local = nms(boxes[idx], scores[idx], NMSConfig(cfg.iou_threshold, cfg.score_threshold, None))
        kept.extend(idx[keep_local].tolist())

    if not kept:
        return np.empty((0,), dtype=np.int64)

    merged = np.array(sorted(kept), dtype=np.int64)
    merged = merged[np.argsort(-scores[merged], kind="stable")]
    if cfg.max_detections is not None:
        merged = merged[: cfg.max_detections]
    return merged
