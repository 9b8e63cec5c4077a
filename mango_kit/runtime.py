from __future__ import annotations

import time
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
from loguru import logger

from .backends import InferenceEngine
from .colorspace import yuv420_to_rgb
from .config import PipelineConfig
from .errors import ConfigurationError, InferenceError
from .metadata import ModelMetadata, load_labels
from .nms import NMSConfig, suppress
from .postprocess import DecoderConfig, OutputDecoder
from .preprocess import preprocess
from .publish import DetectionCell
from .throttle import ErrorHook, StreamThrottle
from .types import DetectionSet, RawFrame


PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """Nearest directory at or above `start` (default: cwd) holding one of `markers`, else `start` itself."""

    here = (Path.cwd() if start is None else Path(start)).resolve()
    if here.is_file():
        here = here.parent
    return next((d for d in (here, *here.parents) if any((d / m).exists() for m in markers)), here)


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Absolute paths pass through; relative ones join `root`.

    With `root="auto"` (or None) a relative path that exists under the working
    directory wins, otherwise it is taken from the project root.
    """

    p = Path(path)
    if p.is_absolute():
        return p
    if root is not None and root != "auto":
        return (Path(root) / p).resolve()

    local = Path.cwd() / p
    if local.exists():
        return local.resolve()
    return (find_project_root() / p).resolve()


class DetectionPipeline:
    """
    Preprocess -> inference -> decode -> suppress, for one loaded model.

    Construction validates the engine's declared shapes against the configured
    layout and labels and raises ConfigurationError on any mismatch, so a
    misconfigured pipeline never starts.

    `run_frame` is the live camera path (starts with YUV -> RGB conversion),
    `run_image` the still-image path (already an RGB raster).
    """

    def __init__(
        self,
        engine: InferenceEngine,
        labels: Sequence[str],
        cfg: PipelineConfig = PipelineConfig(),
    ):
        self.engine = engine
        self.cfg = cfg
        self.metadata = ModelMetadata.from_shapes(
            engine.input_shape,
            engine.output_shape,
            layout=cfg.attribute_layout,
            labels=labels,
        )
        if cfg.input_size is not None and cfg.input_size != self.metadata.input_size:
            raise ConfigurationError(
                f"Configured input_size {cfg.input_size} does not match model input size {self.metadata.input_size}"
            )

        self.decoder = OutputDecoder(
            DecoderConfig(
                confidence_threshold=cfg.confidence_threshold,
                layout=self.metadata.layout,
                labels=self.metadata.labels,
            )
        )
        self.nms_cfg = NMSConfig(iou_threshold=cfg.iou_threshold, max_detections=cfg.max_detections)

    @property
    def labels(self) -> Sequence[str]:
        return self.metadata.labels

    @property
    def input_size(self) -> int:
        return self.metadata.input_size

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        try:
            raw = self.engine.infer(tensor)
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"Inference engine failed: {e}") from e

        shape = tuple(np.shape(raw))
        if shape not in (self.metadata.output_shape, self.metadata.output_shape[1:]):
            raise InferenceError(f"Engine returned shape {shape}, model declares {self.metadata.output_shape}")
        return raw

    def run_image(self, raster: np.ndarray) -> DetectionSet:
        """Detect on an (H, W, 3) uint8 RGB raster."""
        t0 = time.perf_counter()
        tensor = preprocess(raster, self.metadata.input_size)
        raw = self.infer(tensor)
        candidates = self.decoder.decode(raw)
        kept = suppress(candidates, self.nms_cfg)
        logger.debug(
            "Detections before NMS: {}, after NMS: {} ({:.1f} ms)",
            len(candidates),
            len(kept),
            (time.perf_counter() - t0) * 1000.0,
        )
        return kept

    def run_frame(self, frame: RawFrame) -> DetectionSet:
        """Detect on a 4:2:0 camera frame."""
        return self.run_image(yuv420_to_rgb(frame))

    __call__ = run_image

    def stream(
        self,
        *,
        cell: Optional[DetectionCell] = None,
        on_error: Optional[ErrorHook] = None,
        **throttle_kwargs: object,
    ) -> StreamThrottle:
        """Create a StreamThrottle that feeds camera frames through `run_frame`."""
        return StreamThrottle(
            self.run_frame,
            sample_interval=self.cfg.sample_interval,
            run_timeout_s=self.cfg.run_timeout_s,
            cell=cell,
            on_error=on_error,
            **throttle_kwargs,  # type: ignore[arg-type]
        )


def load_pipeline(
    model_path: PathLike,
    labels_path: PathLike,
    *,
    cfg: PipelineConfig = PipelineConfig(),
    root: Optional[PathLike] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_threads: int = 0,
) -> DetectionPipeline:
    """
    Load an ONNX detector and its labels into a ready pipeline.

    Relative paths resolve against the project root by default.

    Raises:
        ConfigurationError: declared model shapes disagree with the configured
            layout, labels or input size.
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    model = resolve_path(model_path, root=root)
    labels = load_labels(resolve_path(labels_path, root=root))
    engine = OnnxRuntimeBackend(
        model,
        OnnxRuntimeBackendConfig(providers=onnx_providers, intra_op_threads=onnx_threads),
    )
    try:
        pipeline = DetectionPipeline(engine, labels, cfg)
    except ConfigurationError as e:
        logger.error("Refusing to start pipeline for {}: {}", model.name, e)
        raise
    logger.info(
        "Pipeline ready: input {}x{}, {} anchors, {} labels, layout {}",
        pipeline.input_size,
        pipeline.input_size,
        pipeline.metadata.anchor_count,
        len(labels),
        pipeline.metadata.layout.value,
    )
    return pipeline
