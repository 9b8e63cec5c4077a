from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .types import Detection


# BGR, OpenCV order.
RIPE_COLOR = (0, 200, 0)
UNRIPE_COLOR = (0, 165, 255)
OTHER_COLOR = (0, 0, 255)


def color_for_label(label: str) -> Tuple[int, int, int]:
    """
    Box colour by ripeness keyword (English or Indonesian label names).
    """

    name = label.lower()
    # "unripe" contains "ripe", so check it first.
    if "unripe" in name or "mentah" in name:
        return UNRIPE_COLOR
    if "ripe" in name or "matang" in name:
        return RIPE_COLOR
    return OTHER_COLOR


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    show_score: bool = True,
    show_count: bool = True,
    box_thickness: int = 3,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw normalized detections on an OpenCV BGR image and return a copy.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]
    dets = list(detections)

    for det in dets:
        x1, y1, x2, y2 = det.to_pixels(w, h)
        x1, x2 = int(np.clip(x1, 0, w - 1)), int(np.clip(x2, 0, w - 1))
        y1, y2 = int(np.clip(y1, 0, h - 1)), int(np.clip(y2, 0, h - 1))

        color = color_for_label(det.label)
        cv2.rectangle(out, (x1, y1), (x2, y2), color, thickness=box_thickness)

        label = det.label or str(det.class_index)
        if show_score:
            label = f"{label} {int(det.confidence * 100)}%"

        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Label sits inside the top-left corner of the box.
        y_text_bottom = min(y1 + th + baseline, h - 1)
        x_text_right = min(x1 + tw, w - 1)
        cv2.rectangle(out, (x1, y1), (x_text_right, y_text_bottom), color, thickness=-1)
        cv2.putText(
            out,
            label,
            (x1, min(y1 + th, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    if show_count and dets:
        banner = f"Detected {len(dets)} mango" + ("es" if len(dets) != 1 else "")
        cv2.putText(out, banner, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (255, 255, 255), 2, cv2.LINE_AA)

    return out
