"""
Inference engines for mango_kit.

The pipeline only needs something that maps a (1, S, S, 3) float tensor to a
(1, A, N) output and declares both shapes. Concrete runtimes live in their own
modules so pre/post-processing can be used without installing them.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

import numpy as np


class InferenceEngine(Protocol):
    @property
    def input_shape(self) -> Optional[Sequence[object]]: ...

    @property
    def output_shape(self) -> Optional[Sequence[object]]: ...

    def infer(self, tensor: np.ndarray) -> np.ndarray: ...


__all__ = ["InferenceEngine"]
