"""
YOLO output decoding: raw detector tensor -> labelled, de-duplicated boxes.

Framework-agnostic: works on NumPy arrays from ONNX Runtime, OpenCV DNN, or
PyTorch tensors converted to NumPy. Inference, video I/O and drawing are left
to the caller.
"""

from .types import Detection
from .diagnostics import LogOnce
from .layout import LayoutVariant, TensorLayout, classify_output, normalize_output
from .scoring import score_candidates
from .boxes import decode_boxes
from .nms import NMSConfig, batched_nms, nms
from .postprocess import YoloPostprocessor, YoloPostConfig, decode
from .config import load_post_config
from .metadata import class_label, format_label, load_class_names

__all__ = [
    "Detection",
    "LogOnce",
    "LayoutVariant",
    "TensorLayout",
    "classify_output",
    "normalize_output",
    "score_candidates",
    "decode_boxes",
    "NMSConfig",
    "nms",
    "batched_nms",
    "YoloPostprocessor",
    "YoloPostConfig",
    "decode",
    "load_post_config",
    "class_label",
    "format_label",
    "load_class_names",
]
