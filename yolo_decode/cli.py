"""
Decode dumped detector outputs from the command line.

Usage:
    python -m yolo_decode frame_000.npy frame_001.npy --orig-size 1280x960 --names models/classes.txt

Each .npy file holds one raw output tensor (e.g. the result of
`np.save(path, session.run(...)[0])`). Use --json for machine-readable output.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from .config import load_post_config, post_config_from_dict
from .layout import LayoutVariant
from .metadata import class_label, format_label, load_class_names
from .postprocess import YoloPostConfig, YoloPostprocessor
from .types import Detection


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _parse_size(text: str) -> Tuple[int, int]:
    """Parse "WxH" or a single "N" (square)."""
    try:
        if "x" in text.lower():
            w, h = text.lower().split("x", 1)
            size = int(w), int(h)
        else:
            size = int(text), int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got {text!r}")
    if size[0] <= 0 or size[1] <= 0:
        raise argparse.ArgumentTypeError(f"Size must be positive, got {text!r}")
    return size


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yolo_decode",
        description="Decode raw YOLO output tensors (.npy) into labelled, de-duplicated boxes.",
    )
    parser.add_argument("tensors", nargs="+", help="Path(s) to .npy files, one output tensor per frame.")
    parser.add_argument("--orig-size", type=_parse_size, required=True, help="Original image size WxH, e.g. 1280x960.")
    size = parser.add_mutually_exclusive_group()
    size.add_argument("--imgsz", type=int, default=None, help="Square model input size (e.g., 640).")
    size.add_argument("--input-size", type=_parse_size, default=None, help="Model input size WxH.")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold (default 0.25).")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS (default 0.45).")
    parser.add_argument(
        "--layout",
        choices=["auto"] + [v.value for v in LayoutVariant],
        default=None,
        help="Score layout: objectness column present, absent, or auto-detect from shape.",
    )
    parser.add_argument("--per-class-nms", action="store_true", help="Use per-class NMS (default is class-agnostic).")
    parser.add_argument("--max-det", type=int, default=None, help="Max detections to keep after NMS.")
    parser.add_argument("--names", default=None, help="Class names file (.txt one per line, or metadata.yaml).")
    parser.add_argument("--config", default=None, help="JSON post-process config; flags override its values.")
    parser.add_argument("--json", action="store_true", help="Print results as JSON instead of text.")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level.",
    )
    return parser


def make_config(args: argparse.Namespace) -> YoloPostConfig:
    base = load_post_config(args.config) if args.config else YoloPostConfig()

    overrides: Dict[str, object] = {}
    if args.conf is not None:
        overrides["conf_threshold"] = float(args.conf)
    if args.iou is not None:
        overrides["iou_threshold"] = float(args.iou)
    if args.imgsz is not None:
        overrides["input_size"] = [int(args.imgsz), int(args.imgsz)]
    if args.input_size is not None:
        overrides["input_size"] = list(args.input_size)
    if args.layout is not None:
        overrides["variant"] = args.layout
    if args.per_class_nms:
        overrides["class_agnostic_nms"] = False
    if args.max_det is not None:
        overrides["max_detections"] = int(args.max_det)
    return post_config_from_dict(overrides, base=base)


def detection_to_dict(det: Detection, class_names: Optional[Dict[int, str]] = None) -> Dict[str, object]:
    return {
        "class_id": det.class_id,
        "label": class_label(det.class_id, class_names),
        "score": round(det.score, 6),
        "box_xyxy": list(det.as_xyxy()),
    }


@dataclass(frozen=True)
class FrameResult:
    path: Path
    detections: List[Detection]
    # Set when the tensor could not be loaded or decoded.
    error: Optional[str] = None


def decode_frame(path: Path, post: YoloPostprocessor, orig_size: Tuple[int, int]) -> List[Detection]:
    if not path.exists():
        raise FileNotFoundError(f"Tensor file not found: {path}")
    tensor = np.load(str(path), allow_pickle=False)
    return post.process(tensor, orig_size)


def decode_files(
    paths: Sequence[Path],
    post: YoloPostprocessor,
    orig_size: Tuple[int, int],
) -> List[FrameResult]:
    """
    Decode every file; a file that fails is recorded and the rest still run.
    """

    results: List[FrameResult] = []
    iterator = tqdm(paths, unit="frame", disable=len(paths) < 2, file=sys.stderr)
    for p in iterator:
        try:
            results.append(FrameResult(path=p, detections=decode_frame(p, post, orig_size)))
        except (OSError, EOFError, ValueError, TypeError) as e:
            logger.error("Skipping %s: %s", p, e)
            results.append(FrameResult(path=p, detections=[], error=str(e)))
    return results


def _load_names_or_empty(path: Optional[str]) -> Dict[int, str]:
    if not path:
        return {}
    try:
        return load_class_names(path)
    except FileNotFoundError as e:
        logger.warning("%s; labels fall back to class ids.", e)
        return {}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        cfg = make_config(args)
        class_names = _load_names_or_empty(args.names)
    except (OSError, ValueError) as e:
        logger.error("%s", e)
        return 1

    paths = [Path(p) for p in args.tensors]
    results = decode_files(paths, YoloPostprocessor(cfg), args.orig_size)
    failed = sum(1 for r in results if r.error is not None)
    exit_code = 1 if failed else 0

    if args.json:
        payload = []
        for r in results:
            entry: Dict[str, object] = {
                "tensor": str(r.path),
                "detections": [detection_to_dict(d, class_names) for d in r.detections],
            }
            if r.error is not None:
                entry["error"] = r.error
            payload.append(entry)
        print(json.dumps(payload, indent=2))
        return exit_code

    for frame_idx, r in enumerate(results):
        if r.error is not None:
            print(f"Frame {frame_idx} - error: {r.error}")
            continue
        print(f"Frame {frame_idx} - detections: {len(r.detections)}")
        for det in r.detections:
            x, y, w, h = det.as_xywh()
            print(f"  {format_label(det, class_names)} box=({x}, {y}, {w}, {h})")
    if failed:
        logger.error("%d of %d frames failed.", failed, len(results))
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
