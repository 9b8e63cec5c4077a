from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .types import Detection, DetectionSet


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.5
    # None keeps every detection that survives suppression.
    max_detections: Optional[int] = None


def iou(a: Detection, b: Detection) -> float:
    """
    Intersection-over-union of two normalized boxes.

    Returns 0.0 for disjoint or touching boxes and whenever the union area is
    not positive.
    """

    inter_left = max(a.left, b.left)
    inter_top = max(a.top, b.top)
    inter_right = min(a.right, b.right)
    inter_bottom = min(a.bottom, b.bottom)

    if inter_left >= inter_right or inter_top >= inter_bottom:
        return 0.0

    inter_area = (inter_right - inter_left) * (inter_bottom - inter_top)
    union_area = a.area + b.area - inter_area
    return inter_area / union_area if union_area > 0 else 0.0


def nms(
    boxes: np.ndarray,
    scores: np.ndarray,
    cfg: NMSConfig,
    areas: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N, 4) in xyxy and scores shape (N,).
    Returns indices of kept boxes in pick order.

    Candidates are visited by descending score; equal scores keep their input
    order. A candidate is suppressed when its IoU with a kept box is strictly
    greater than `cfg.iou_threshold`.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    boxes = np.asarray(boxes, dtype=np.float64)
    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 2]
    y2 = boxes[:, 3]
    if areas is None:
        areas = (x2 - x1) * (y2 - y1)
    else:
        areas = np.asarray(areas, dtype=np.float64)

    order = np.argsort(-np.asarray(scores, dtype=np.float64), kind="stable")
    keep = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = order[0]
        keep.append(i)

        rest = order[1:]
        inter_w = np.minimum(x2[i], x2[rest]) - np.maximum(x1[i], x1[rest])
        inter_h = np.minimum(y2[i], y2[rest]) - np.maximum(y1[i], y1[rest])
        overlapping = (inter_w > 0) & (inter_h > 0)
        inter = np.where(overlapping, inter_w * inter_h, 0.0)
        union = areas[i] + areas[rest] - inter
        ratio = np.where(union > 0, inter / np.where(union > 0, union, 1.0), 0.0)

        order = rest[ratio <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)


def suppress(detections: Sequence[Detection], cfg: NMSConfig) -> DetectionSet:
    """
    Run greedy NMS over decoded detections and return the kept set.

    Input order is the decode order and breaks confidence ties (earlier wins).
    Running it again on its own output returns the same set.
    """

    if not detections:
        return ()

    boxes = np.array([d.as_xyxy() for d in detections], dtype=np.float64)
    scores = np.array([d.confidence for d in detections], dtype=np.float64)
    areas = np.array([d.area for d in detections], dtype=np.float64)
    keep = nms(boxes, scores, cfg, areas=areas)
    return tuple(detections[int(i)] for i in keep)
