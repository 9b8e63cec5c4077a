"""
Post-processing pipeline for on-device mango ripeness detection.

Turns 4:2:0 camera frames (or decoded photos) plus raw detector outputs into
stable, de-duplicated sets of labeled, normalized boxes, and throttles a live
frame stream so at most one run is ever in flight. Core needs NumPy, OpenCV
for resizing, and loguru; ONNX Runtime is only needed by `load_pipeline`.
"""

from .types import Detection, DetectionSet, Plane, RawFrame
from .errors import ConfigurationError, FrameConversionError, InferenceError, MangoKitError
from .colorspace import frame_from_i420, frame_from_nv21, yuv420_to_rgb
from .preprocess import preprocess
from .postprocess import AttributeLayout, DecoderConfig, OutputDecoder
from .nms import NMSConfig, iou, nms, suppress
from .metadata import ModelMetadata, load_labels
from .config import PipelineConfig, load_pipeline_config
from .publish import DetectionCell
from .throttle import StreamThrottle, ThrottleState
from .runtime import DetectionPipeline, load_pipeline
from .visualize import draw_detections

__all__ = [
    "Detection",
    "DetectionSet",
    "Plane",
    "RawFrame",
    "ConfigurationError",
    "FrameConversionError",
    "InferenceError",
    "MangoKitError",
    "frame_from_i420",
    "frame_from_nv21",
    "yuv420_to_rgb",
    "preprocess",
    "AttributeLayout",
    "DecoderConfig",
    "OutputDecoder",
    "NMSConfig",
    "iou",
    "nms",
    "suppress",
    "ModelMetadata",
    "load_labels",
    "PipelineConfig",
    "load_pipeline_config",
    "DetectionCell",
    "StreamThrottle",
    "ThrottleState",
    "DetectionPipeline",
    "load_pipeline",
    "draw_detections",
]
