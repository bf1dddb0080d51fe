from __future__ import annotations

from typing import Tuple

import numpy as np


# Coordinates at or below this on all four attributes are read as fractions.
# Slightly above 1.0 so boxes spilling past the frame edge still count.
NORMALIZED_CUTOFF = 1.5


def is_normalized(raw_boxes: np.ndarray, cutoff: float = NORMALIZED_CUTOFF) -> np.ndarray:
    """
    Per-candidate coordinate space test for (N, 4) cx, cy, w, h boxes.
    """

    return np.all(raw_boxes <= cutoff, axis=1)


def to_pixel_cxcywh(
    raw_boxes: np.ndarray,
    orig_size: Tuple[int, int],
    input_size: Tuple[int, int],
) -> np.ndarray:
    """
    Map raw cx, cy, w, h into original image pixels.

    Normalized rows scale straight to the original size. Pixel rows are in
    model input pixels and get scaled by original / input per axis.
    """

    orig_w, orig_h = orig_size
    in_w, in_h = input_size
    sx = float(orig_w) / float(in_w)
    sy = float(orig_h) / float(in_h)

    norm = is_normalized(raw_boxes)
    scale_x = np.where(norm, float(orig_w), sx).astype(raw_boxes.dtype)
    scale_y = np.where(norm, float(orig_h), sy).astype(raw_boxes.dtype)

    out = np.empty_like(raw_boxes)
    out[:, 0] = raw_boxes[:, 0] * scale_x
    out[:, 1] = raw_boxes[:, 1] * scale_y
    out[:, 2] = raw_boxes[:, 2] * scale_x
    out[:, 3] = raw_boxes[:, 3] * scale_y
    return out


def cxcywh_to_xywh(boxes: np.ndarray) -> np.ndarray:
    """
    Center format to whole-pixel (left, top, width, height), truncating toward zero.

    Truncation happens in the input dtype; the result is float64 so that
    left + width stays exact for oversized boxes.
    """

    cx, cy, w, h = boxes.T
    left = np.trunc(cx - w / 2)
    top = np.trunc(cy - h / 2)
    return np.stack([left, top, np.trunc(w), np.trunc(h)], axis=1).astype(np.float64)


def clamp_boxes(boxes_xywh: np.ndarray, orig_size: Tuple[int, int]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Intersect (left, top, width, height) boxes with the image rectangle.

    Returns:
        boxes_xyxy: (N, 4) int64 corners, x2/y2 exclusive
        valid: (N,) bool, False where the intersection has no area
    """

    orig_w, orig_h = orig_size
    x, y, w, h = boxes_xywh.astype(np.float64).T
    # Both corners are clipped into the frame; an empty intersection ends up
    # with x2 <= x1 (or y2 <= y1) either way.
    x1 = np.clip(x, 0, orig_w)
    y1 = np.clip(y, 0, orig_h)
    x2 = np.clip(x + w, 0, orig_w)
    y2 = np.clip(y + h, 0, orig_h)
    valid = (x2 > x1) & (y2 > y1)
    return np.stack([x1, y1, x2, y2], axis=1).astype(np.int64), valid


def decode_boxes(
    raw_boxes: np.ndarray,
    orig_size: Tuple[int, int],
    input_size: Tuple[int, int],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Decode (N, 4) raw cx, cy, w, h boxes to clamped xyxy pixel boxes.

    Args:
        raw_boxes: first four columns of the surviving candidate rows
        orig_size: (width, height) of the original image
        input_size: (width, height) the model was fed

    Returns:
        boxes_xyxy: (N, 4) int64
        valid: (N,) bool mask of boxes with positive clamped area
    """

    raw_boxes = np.asarray(raw_boxes)
    if raw_boxes.shape[0] == 0:
        return np.empty((0, 4), dtype=np.int64), np.empty((0,), dtype=bool)

    # Non-finite coordinates cannot become a pixel rectangle.
    finite = np.all(np.isfinite(raw_boxes), axis=1)
    safe = np.where(finite[:, None], raw_boxes, 0)

    pixel = to_pixel_cxcywh(safe, orig_size, input_size)
    boxes_xyxy, valid = clamp_boxes(cxcywh_to_xywh(pixel), orig_size)
    return boxes_xyxy, valid & finite
