from __future__ import annotations

import sys
from pathlib import Path


# Running pytest from a plain checkout (no `pip install -e .`) only puts tests/
# on sys.path; add the repo root so `import yolo_decode` resolves.
_REPO_ROOT = str(Path(__file__).resolve().parents[1])
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)
