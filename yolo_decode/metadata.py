from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from .types import Detection


PathLike = Union[str, Path]


def _load_names_yaml(lines) -> Dict[int, str]:
    names: Dict[int, str] = {}
    in_names = False

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line == "names:":
            in_names = True
            continue
        if not in_names:
            continue

        # Parse "id: label"
        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        right = right.strip().strip("'").strip('"')
        if not left.isdigit():
            continue
        names[int(left)] = right

    return names


def _load_names_txt(lines) -> Dict[int, str]:
    names: Dict[int, str] = {}
    for raw in lines:
        line = raw.rstrip("\n").rstrip("\r")
        if line:
            names[len(names)] = line
    return names


def load_class_names(path: PathLike) -> Dict[int, str]:
    """
    Load a class-id -> name mapping.

    Two formats are understood:

    - plain text (`classes.txt`, `coco.names`): one name per line, blank lines
      skipped, ids assigned in file order
    - the lightweight `metadata.yaml` mapping:

        names:
          0: person
          1: bicycle

    The YAML form is parsed by hand; no PyYAML dependency.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Class names file not found: {path}")

    with open(path, "r", encoding="utf-8-sig") as f:
        lines = f.readlines()

    if path.suffix.lower() in {".yaml", ".yml"}:
        return _load_names_yaml(lines)
    return _load_names_txt(lines)


def class_label(class_id: Optional[int], class_names: Optional[Mapping[int, str]] = None) -> str:
    if class_id is None:
        return "object"
    if class_names and class_id in class_names:
        return class_names[class_id]
    return f"id={class_id}"


def format_label(det: Detection, class_names: Optional[Mapping[int, str]] = None, show_score: bool = True) -> str:
    """
    Human readable label, e.g. "person 87%" or "id=3 87%" without a name.
    """

    label = class_label(det.class_id, class_names)
    if show_score:
        label = f"{label} {int(det.score * 100)}%"
    return label
