from __future__ import annotations

from typing import Union

import numpy as np

from .errors import FrameConversionError
from .types import Plane, RawFrame


BufferLike = Union[bytes, bytearray, memoryview, np.ndarray]


def _plane_array(plane: Plane) -> np.ndarray:
    return np.frombuffer(plane.data, dtype=np.uint8)


def _check_plane(name: str, plane: Plane, rows: int) -> None:
    if plane.row_stride < 1:
        raise FrameConversionError(f"{name} plane row_stride must be >= 1 (got {plane.row_stride})")
    if plane.pixel_stride < 1:
        raise FrameConversionError(f"{name} plane pixel_stride must be >= 1 (got {plane.pixel_stride})")
    if len(plane.data) > plane.row_stride * rows:
        raise FrameConversionError(
            f"{name} plane holds {len(plane.data)} bytes, more than row_stride*rows={plane.row_stride * rows}"
        )


def yuv420_to_rgb(frame: RawFrame) -> np.ndarray:
    """
    Convert a 4:2:0 chroma-subsampled frame into an (H, W, 3) uint8 RGB raster.

    Chroma samples are read at `(y // 2) * row_stride + (x // 2) * pixel_stride`
    using the U plane strides for both chroma planes. Pixels whose luma or
    chroma index falls outside a plane are skipped and stay 0, so a short
    plane never aborts the conversion.

    Raises:
        FrameConversionError: fewer than three planes, non-positive size,
            or inconsistent strides.
    """

    if frame.planes is None or len(frame.planes) < 3:
        count = 0 if frame.planes is None else len(frame.planes)
        raise FrameConversionError(f"Expected 3 planes (Y, U, V), got {count}")

    width, height = int(frame.width), int(frame.height)
    if width < 1 or height < 1:
        raise FrameConversionError(f"Invalid frame size {width}x{height}")

    y_plane, u_plane, v_plane = frame.planes[0], frame.planes[1], frame.planes[2]
    if y_plane.row_stride < width:
        raise FrameConversionError(f"Y plane row_stride {y_plane.row_stride} is smaller than width {width}")
    chroma_rows = (height + 1) // 2
    _check_plane("Y", y_plane, height)
    _check_plane("U", u_plane, chroma_rows)
    _check_plane("V", v_plane, chroma_rows)

    rgb = np.zeros((height, width, 3), dtype=np.uint8)

    y_buf = _plane_array(y_plane)
    u_buf = _plane_array(u_plane)
    v_buf = _plane_array(v_plane)
    if y_buf.size == 0 or u_buf.size == 0 or v_buf.size == 0:
        return rgb

    ys = np.arange(height, dtype=np.int64)[:, None]
    xs = np.arange(width, dtype=np.int64)[None, :]
    y_idx = ys * y_plane.row_stride + xs
    uv_idx = (ys // 2) * u_plane.row_stride + (xs // 2) * u_plane.pixel_stride

    valid = (y_idx < y_buf.size) & (uv_idx < u_buf.size) & (uv_idx < v_buf.size)
    if not valid.any():
        return rgb

    luma = y_buf[y_idx[valid]]
    uv_flat = uv_idx[valid]
    u = u_buf[uv_flat].astype(np.float32) - 128.0
    v = v_buf[uv_flat].astype(np.float32) - 128.0
    luma = luma.astype(np.float32)

    r = np.clip(luma + 1.402 * v, 0, 255)
    g = np.clip(luma - 0.344136 * u - 0.714136 * v, 0, 255)
    b = np.clip(luma + 1.772 * u, 0, 255)

    rgb[valid] = np.stack([r, g, b], axis=1).astype(np.uint8)
    return rgb


def _as_bytes(buffer: BufferLike) -> bytes:
    if isinstance(buffer, np.ndarray):
        return np.ascontiguousarray(buffer, dtype=np.uint8).tobytes()
    return bytes(buffer)


def frame_from_i420(buffer: BufferLike, width: int, height: int) -> RawFrame:
    """
    Wrap a packed planar I420 buffer (Y, then U, then V) as a RawFrame.

    This is the layout produced by `cv2.cvtColor(bgr, cv2.COLOR_BGR2YUV_I420)`.
    """

    data = _as_bytes(buffer)
    cw, ch = (width + 1) // 2, (height + 1) // 2
    y_size, c_size = width * height, cw * ch
    if len(data) < y_size + 2 * c_size:
        raise FrameConversionError(f"I420 buffer too short for {width}x{height}: {len(data)} bytes")

    return RawFrame(
        width=width,
        height=height,
        planes=(
            Plane(data[:y_size], row_stride=width),
            Plane(data[y_size : y_size + c_size], row_stride=cw),
            Plane(data[y_size + c_size : y_size + 2 * c_size], row_stride=cw),
        ),
    )


def frame_from_nv21(buffer: BufferLike, width: int, height: int) -> RawFrame:
    """
    Wrap a semi-planar NV21 buffer (Y, then interleaved V/U) as a RawFrame.

    Chroma planes overlap the same bytes with a pixel stride of 2, which is
    how Android cameras expose YUV_420_888 on most devices.
    """

    data = _as_bytes(buffer)
    y_size = width * height
    vu = data[y_size:]
    if len(vu) < 2:
        raise FrameConversionError(f"NV21 buffer too short for {width}x{height}: {len(data)} bytes")

    row_stride = width + (width % 2)
    return RawFrame(
        width=width,
        height=height,
        planes=(
            Plane(data[:y_size], row_stride=width),
            Plane(vu[1:], row_stride=row_stride, pixel_stride=2),
            Plane(vu[:-1], row_stride=row_stride, pixel_stride=2),
        ),
    )
