from __future__ import annotations

import logging
from typing import Sequence, Tuple


logger = logging.getLogger(__name__)


class LogOnce:
    """
    Emit the tensor-shape diagnostic a single time.

    Owned by whoever drives the post-processor; `decode()` shares one
    module-level instance. Logging twice under concurrent frames is harmless.
    """

    def __init__(self, log: logging.Logger = logger, level: int = logging.INFO):
        self._log = log
        self._level = level
        self.done = False

    def shape_info(self, shape: Sequence[int], matrix_shape: Tuple[int, int], layout_name: str) -> None:
        if self.done:
            return
        sizes = ",".join(str(int(s)) for s in shape)
        self._log.log(
            self._level,
            "Output dims: %d sizes=[%s], out2d=%dx%d, layout=%s",
            len(shape),
            sizes,
            matrix_shape[0],
            matrix_shape[1],
            layout_name,
        )
        self.done = True

    def reset(self) -> None:
        self.done = False


default_log_once = LogOnce()
