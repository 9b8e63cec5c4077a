from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigurationError
from .postprocess import AttributeLayout


@dataclass(frozen=True)
class PipelineConfig:
    """
    Externally settable knobs of the detection pipeline.

    Defaults match the live camera view. `input_size` is normally read from the
    model; set it only to assert what the model must declare.
    """

    confidence_threshold: float = 0.25
    iou_threshold: float = 0.5
    sample_interval: int = 5
    attribute_layout: AttributeLayout = AttributeLayout.OBJECTNESS
    run_timeout_s: float = 3.0
    input_size: Optional[int] = None
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "attribute_layout", AttributeLayout.parse(self.attribute_layout))
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ConfigurationError("confidence_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ConfigurationError("iou_threshold must be in [0, 1]")
        if self.sample_interval < 1:
            raise ConfigurationError("sample_interval must be >= 1")
        if self.run_timeout_s <= 0:
            raise ConfigurationError("run_timeout_s must be > 0")
        if self.input_size is not None and self.input_size < 1:
            raise ConfigurationError("input_size must be >= 1")
        if self.max_detections is not None and self.max_detections < 1:
            raise ConfigurationError("max_detections must be >= 1")

    @classmethod
    def for_still_images(cls, **overrides: Any) -> "PipelineConfig":
        """Stricter defaults for single captured/picked photos."""
        base = cls(
            confidence_threshold=0.5,
            iou_threshold=0.3,
            sample_interval=1,
            attribute_layout=AttributeLayout.CLASS_ONLY,
        )
        return replace(base, **overrides) if overrides else base


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ConfigurationError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer")
    return int(value)


def _optional_int(payload: Dict[str, Any], key: str) -> Optional[int]:
    if payload.get(key) is None:
        return None
    return _require_int(payload, key)


_ALLOWED_KEYS = {
    "schema_version",
    "confidence_threshold",
    "iou_threshold",
    "sample_interval",
    "attribute_layout",
    "run_timeout_s",
    "input_size",
    "max_detections",
}


def pipeline_config_from_dict(payload: Dict[str, Any]) -> PipelineConfig:
    if not isinstance(payload, dict):
        raise ConfigurationError("Pipeline config must be a JSON object")

    unknown = sorted(set(payload.keys()) - _ALLOWED_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown pipeline config keys: {unknown}")

    if _require_int(payload, "schema_version") != 1:
        raise ConfigurationError("pipeline config schema_version must be 1")

    kwargs: Dict[str, Any] = {}
    for key in ("confidence_threshold", "iou_threshold", "run_timeout_s"):
        if key in payload:
            kwargs[key] = _require_number(payload, key)
    if "sample_interval" in payload:
        kwargs["sample_interval"] = _require_int(payload, "sample_interval")
    if "attribute_layout" in payload:
        layout = payload["attribute_layout"]
        if not isinstance(layout, str):
            raise ConfigurationError("attribute_layout must be a string")
        kwargs["attribute_layout"] = AttributeLayout.parse(layout)
    kwargs["input_size"] = _optional_int(payload, "input_size")
    kwargs["max_detections"] = _optional_int(payload, "max_detections")

    return PipelineConfig(**kwargs)


def load_pipeline_config(path: Path) -> PipelineConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Pipeline config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid pipeline config JSON: {path}") from exc
    return pipeline_config_from_dict(payload)
