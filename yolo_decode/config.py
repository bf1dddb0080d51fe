from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .layout import LayoutVariant
from .postprocess import YoloPostConfig


PathLike = Union[str, Path]

_ALLOWED_KEYS = {
    "conf_threshold",
    "iou_threshold",
    "input_size",
    "variant",
    "class_agnostic_nms",
    "max_detections",
    "class_ids",
}


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _parse_size(value: Any, key: str) -> Tuple[int, int]:
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an int or a [width, height] pair")
    if isinstance(value, int):
        return value, value
    if isinstance(value, (list, tuple)) and len(value) == 2:
        if all(isinstance(v, int) and not isinstance(v, bool) for v in value):
            return int(value[0]), int(value[1])
    raise ValueError(f"{key} must be an int or a [width, height] pair")


def post_config_from_dict(payload: Dict[str, Any], base: Optional[YoloPostConfig] = None) -> YoloPostConfig:
    """
    Build a YoloPostConfig from a plain mapping, starting from `base` defaults.

    Unknown keys are rejected so typos do not silently fall back to defaults.
    """

    if not isinstance(payload, dict):
        raise ValueError("Post-process config must be a JSON object")

    unknown = sorted(set(payload.keys()) - _ALLOWED_KEYS)
    if unknown:
        raise ValueError(f"Unknown post-process config keys: {unknown}")

    base = base or YoloPostConfig()
    kwargs: Dict[str, Any] = {
        "conf_threshold": base.conf_threshold,
        "iou_threshold": base.iou_threshold,
        "input_size": base.input_size,
        "variant": base.variant,
        "class_agnostic_nms": base.class_agnostic_nms,
        "max_detections": base.max_detections,
        "class_ids": base.class_ids,
    }

    if "conf_threshold" in payload:
        kwargs["conf_threshold"] = _require_number(payload, "conf_threshold")
    if "iou_threshold" in payload:
        kwargs["iou_threshold"] = _require_number(payload, "iou_threshold")
    if "input_size" in payload:
        kwargs["input_size"] = _parse_size(payload["input_size"], "input_size")
    if "variant" in payload:
        kwargs["variant"] = LayoutVariant.parse(payload["variant"])
    if "class_agnostic_nms" in payload:
        if not isinstance(payload["class_agnostic_nms"], bool):
            raise ValueError("class_agnostic_nms must be a boolean")
        kwargs["class_agnostic_nms"] = payload["class_agnostic_nms"]
    if "max_detections" in payload:
        kwargs["max_detections"] = None if payload["max_detections"] is None else _require_int(payload, "max_detections")
    if "class_ids" in payload:
        ids = payload["class_ids"]
        if ids is not None:
            if not isinstance(ids, list) or any(isinstance(v, bool) or not isinstance(v, int) for v in ids):
                raise ValueError("class_ids must be a list of integers or null")
            ids = tuple(ids)
        kwargs["class_ids"] = ids

    return YoloPostConfig(**kwargs)


def load_post_config(path: PathLike) -> YoloPostConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Post-process config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid post-process config JSON: {path}") from exc
    return post_config_from_dict(payload)
