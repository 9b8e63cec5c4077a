from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


def infer_input_size(input_shape: Optional[Sequence[object]]) -> Optional[int]:
    """
    Read the square input size from a model input shape.

    Accepts NHWC `(1, S, S, 3)` and NCHW `(1, 3, S, S)`. Returns None when the
    shape is dynamic, non-square or not 4-D.
    """

    if not input_shape or len(input_shape) != 4:
        return None

    dims = list(input_shape)
    if dims[-1] == 3:
        height, width = dims[1], dims[2]
    elif dims[1] == 3:
        height, width = dims[2], dims[3]
    else:
        return None

    if isinstance(height, int) and isinstance(width, int) and height == width and height > 0:
        return height
    return None


def resize_square(raster: np.ndarray, input_size: int) -> np.ndarray:
    """Stretch an (H, W, 3) raster to (input_size, input_size, 3) with bilinear filtering."""
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for resize_square(). Install with `pip install opencv-python`.") from e

    h, w = raster.shape[:2]
    if (w, h) == (input_size, input_size):
        return raster
    return cv2.resize(raster, (input_size, input_size), interpolation=cv2.INTER_LINEAR)


def preprocess(raster: np.ndarray, input_size: int = 640) -> np.ndarray:
    """
    Resize an RGB raster to the model input and normalize to [0, 1].

    Returns:
        float32 tensor of shape (1, input_size, input_size, 3), row-major,
        channel-interleaved (NHWC).
    """

    if raster is None or not hasattr(raster, "shape"):
        raise TypeError("raster must be a NumPy array (RGB).")
    if raster.ndim != 3 or raster.shape[2] != 3:
        raise ValueError(f"Expected raster shape (H, W, 3), got {getattr(raster, 'shape', None)}")
    if raster.shape[0] < 1 or raster.shape[1] < 1:
        raise ValueError(f"Raster must not be empty, got shape {raster.shape}")
    if int(input_size) < 1:
        raise ValueError(f"input_size must be >= 1 (got {input_size})")

    img = resize_square(np.ascontiguousarray(raster, dtype=np.uint8), int(input_size))
    tensor = img.astype(np.float32) / 255.0
    return tensor[None, ...]
