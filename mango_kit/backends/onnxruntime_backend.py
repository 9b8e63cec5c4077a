from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
from loguru import logger

from ..errors import InferenceError


PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
    - intra_op_threads: cap ORT worker threads (0 lets ORT decide)
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None
    intra_op_threads: int = 0


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime engine.

    Takes the pipeline's NHWC float32 tensor (1, S, S, 3). Models exported
    channels-first (1, 3, S, S) get the tensor transposed before the call.
    Returns the primary output as a NumPy array.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        if cfg.intra_op_threads > 0:
            sess_opts.intra_op_num_threads = int(cfg.intra_op_threads)
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        inputs = self.session.get_inputs()
        outputs = self.session.get_outputs()
        self.input_name = cfg.input_name or inputs[0].name
        self.output_name = cfg.output_name or outputs[0].name

        in_meta = next(i for i in inputs if i.name == self.input_name)
        out_meta = next(o for o in outputs if o.name == self.output_name)
        self._raw_input_shape = list(in_meta.shape)
        self._raw_output_shape = list(out_meta.shape)
        self.channels_first = len(self._raw_input_shape) == 4 and self._raw_input_shape[1] == 3

        logger.info("Loaded ONNX model {} (providers: {})", self.model_path.name, ", ".join(self.providers_in_use))
        logger.debug("ONNX input {} {} / output {} {}", self.input_name, self._raw_input_shape, self.output_name, self._raw_output_shape)

    @property
    def input_shape(self) -> List[object]:
        """Declared input shape in NHWC order, matching what `infer` accepts."""
        shape = list(self._raw_input_shape)
        if self.channels_first:
            shape = [shape[0], shape[2], shape[3], shape[1]]
        return shape

    @property
    def output_shape(self) -> List[object]:
        return list(self._raw_output_shape)

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        blob = np.asarray(tensor, dtype=np.float32)
        if self.channels_first:
            blob = np.ascontiguousarray(np.transpose(blob, (0, 3, 1, 2)))
        try:
            outputs = self.session.run([self.output_name], {self.input_name: blob})
        except Exception as e:
            raise InferenceError(f"ONNX Runtime inference failed: {e}") from e
        return outputs[0]
