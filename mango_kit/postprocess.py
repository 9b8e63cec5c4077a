from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .errors import ConfigurationError
from .tensor import OutputTensor
from .types import Detection


class AttributeLayout(str, Enum):
    """
    Attribute layout of a (1, A, N) detector output.

    - CLASS_ONLY: [cx, cy, w, h, class_scores...]       -> A = 4 + C
    - OBJECTNESS: [cx, cy, w, h, obj, class_scores...]  -> A = 5 + C
    """

    CLASS_ONLY = "class_only"
    OBJECTNESS = "objectness"

    @property
    def score_offset(self) -> int:
        return 5 if self is AttributeLayout.OBJECTNESS else 4

    @classmethod
    def parse(cls, value: "str | AttributeLayout") -> "AttributeLayout":
        if isinstance(value, AttributeLayout):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            allowed = ", ".join(m.value for m in cls)
            raise ConfigurationError(f"Unknown attribute layout {value!r} (expected one of: {allowed})") from e


@dataclass(frozen=True)
class DecoderConfig:
    """
    Output decoding settings for one model.
    """

    confidence_threshold: float = 0.25
    # Declared by the model; never guessed from the tensor shape.
    layout: AttributeLayout = AttributeLayout.OBJECTNESS
    labels: Sequence[str] = field(default_factory=tuple)
    # Keep at most this many candidates (highest confidence first) before NMS.
    max_candidates: Optional[int] = None


class OutputDecoder:
    """
    Turn a raw (1, A, N) output into unfiltered candidate detections.

    Boxes come out of the model as normalized (cx, cy, w, h) and are converted
    to left/top/width/height clamped to the unit frame. Candidates keep anchor
    order so suppression can break confidence ties deterministically.
    """

    def __init__(self, cfg: DecoderConfig):
        self.cfg = cfg
        self.layout = AttributeLayout.parse(cfg.layout)

    def expected_attribute_count(self) -> Optional[int]:
        if not self.cfg.labels:
            return None
        return self.layout.score_offset + len(self.cfg.labels)

    def check_shape(self, attribute_count: int) -> int:
        """Validate the attribute count against layout + labels; return the class count."""
        class_count = attribute_count - self.layout.score_offset
        if class_count < 1:
            raise ConfigurationError(
                f"Output has {attribute_count} attributes, too few for layout '{self.layout.value}'"
            )
        expected = self.expected_attribute_count()
        if expected is not None and expected != attribute_count:
            raise ConfigurationError(
                f"Output has {attribute_count} attributes but layout '{self.layout.value}' with "
                f"{len(self.cfg.labels)} labels expects {expected}"
            )
        return class_count

    def decode(self, raw: np.ndarray) -> List[Detection]:
        boxes_ltwh, scores, class_ids, anchors = self._decode(raw)

        if self.cfg.max_candidates is not None and scores.shape[0] > self.cfg.max_candidates:
            order = np.argsort(-scores, kind="stable")[: self.cfg.max_candidates]
            order.sort()
            boxes_ltwh, scores, class_ids, anchors = boxes_ltwh[order], scores[order], class_ids[order], anchors[order]

        labels = self.cfg.labels
        return [
            Detection(
                left=float(left),
                top=float(top),
                width=float(width),
                height=float(height),
                confidence=float(score),
                class_index=int(cls_id),
                label=labels[int(cls_id)] if labels else str(int(cls_id)),
                anchor=int(anchor),
            )
            for (left, top, width, height), score, cls_id, anchor in zip(boxes_ltwh, scores, class_ids, anchors)
        ]

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _decode(self, raw: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Decode to (boxes_ltwh (K, 4), confidence (K,), class_ids (K,), anchors (K,)).
        """

        t = OutputTensor(raw)
        a_count, n_count = t.shape
        self.check_shape(a_count)

        offset = self.layout.score_offset
        class_scores = t.rows(offset, a_count)  # (C, N)
        # np.argmax returns the first maximum, so ties go to the lowest class index.
        class_ids = np.argmax(class_scores, axis=0)
        class_conf = class_scores[class_ids, np.arange(n_count)]

        if self.layout is AttributeLayout.OBJECTNESS:
            scores = t.row(4) * class_conf
        else:
            scores = class_conf

        keep = scores > self.cfg.confidence_threshold
        anchors = np.flatnonzero(keep)
        if anchors.size == 0:
            return np.empty((0, 4), dtype=np.float32), np.empty((0,), dtype=np.float32), anchors, anchors

        cx, cy, w, h = t.rows(0, 4)[:, keep]
        boxes = center_to_ltwh(cx, cy, w, h)

        logger.debug("Decoded {} candidates out of {} anchors", int(anchors.size), n_count)
        return boxes, scores[keep], class_ids[keep], anchors


def center_to_ltwh(cx: np.ndarray, cy: np.ndarray, w: np.ndarray, h: np.ndarray) -> np.ndarray:
    """
    Convert normalized center boxes to left/top/width/height inside [0, 1].
    """

    left = np.clip(cx - w / 2, 0.0, 1.0)
    top = np.clip(cy - h / 2, 0.0, 1.0)
    width = np.clip(w, 0.0, 1.0 - left)
    height = np.clip(h, 0.0, 1.0 - top)
    return np.stack([left, top, width, height], axis=1)
