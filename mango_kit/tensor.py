from __future__ import annotations

from typing import Tuple

import numpy as np


class OutputTensor:
    """
    Strided view over a raw detector output of logical shape (1, A, N).

    Values are addressed by (attribute, anchor). The batch axis is dropped on
    construction; batches larger than one are rejected.
    """

    def __init__(self, raw: np.ndarray):
        data = np.asarray(raw, dtype=np.float32)
        if data.ndim == 3:
            if data.shape[0] != 1:
                raise ValueError(f"Batch > 1 is not supported (got shape {data.shape}). Pass one image at a time.")
            data = data[0]
        if data.ndim != 2:
            raise ValueError(f"Expected output of shape (1, A, N) or (A, N), got {np.shape(raw)}")
        self._data = data

    @property
    def shape(self) -> Tuple[int, int]:
        return int(self._data.shape[0]), int(self._data.shape[1])

    @property
    def attribute_count(self) -> int:
        return self.shape[0]

    @property
    def anchor_count(self) -> int:
        return self.shape[1]

    def at(self, attribute: int, anchor: int) -> float:
        """Bounds-checked scalar read."""
        a_count, n_count = self.shape
        if not 0 <= attribute < a_count:
            raise IndexError(f"attribute {attribute} out of range [0, {a_count})")
        if not 0 <= anchor < n_count:
            raise IndexError(f"anchor {anchor} out of range [0, {n_count})")
        return float(self._data[attribute, anchor])

    def rows(self, start: int, stop: int) -> np.ndarray:
        """Attributes [start, stop) for every anchor, shape (stop - start, N)."""
        a_count = self.attribute_count
        if not 0 <= start <= stop <= a_count:
            raise IndexError(f"attribute range [{start}, {stop}) out of range [0, {a_count}]")
        return self._data[start:stop, :]

    def row(self, attribute: int) -> np.ndarray:
        return self.rows(attribute, attribute + 1)[0]
