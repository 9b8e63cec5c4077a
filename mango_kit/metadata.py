from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from loguru import logger

from .errors import ConfigurationError
from .postprocess import AttributeLayout
from .preprocess import infer_input_size


PathLike = Union[str, Path]


def load_labels(labels_path: PathLike) -> Tuple[str, ...]:
    """
    Load class labels from a plain `labels.txt`: one label per line.

    Lines are trimmed and blank lines dropped, so the line order defines the
    class index.
    """

    path = Path(labels_path)
    if not path.exists():
        raise FileNotFoundError(f"Labels file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        labels = tuple(line.strip() for line in f if line.strip())

    if not labels:
        raise ConfigurationError(f"Labels file is empty: {path}")
    return labels


@dataclass(frozen=True)
class ModelMetadata:
    """
    Declared contract of a loaded detector.

    `input_size` is S in the (1, S, S, 3) input, `attribute_count` and
    `anchor_count` are A and N in the (1, A, N) output.
    """

    input_size: int
    attribute_count: int
    anchor_count: int
    layout: AttributeLayout
    labels: Tuple[str, ...]

    def __post_init__(self) -> None:
        if self.input_size < 1:
            raise ConfigurationError(f"input_size must be >= 1 (got {self.input_size})")
        if self.anchor_count < 1:
            raise ConfigurationError(f"anchor_count must be >= 1 (got {self.anchor_count})")
        if not self.labels:
            raise ConfigurationError("Model metadata needs at least one label")
        expected = self.layout.score_offset + len(self.labels)
        if self.attribute_count != expected:
            raise ConfigurationError(
                f"Model output has {self.attribute_count} attributes but layout '{self.layout.value}' "
                f"with {len(self.labels)} labels expects {expected}"
            )

    @property
    def class_count(self) -> int:
        return len(self.labels)

    @property
    def input_shape(self) -> Tuple[int, int, int, int]:
        return (1, self.input_size, self.input_size, 3)

    @property
    def output_shape(self) -> Tuple[int, int, int]:
        return (1, self.attribute_count, self.anchor_count)

    @classmethod
    def from_shapes(
        cls,
        input_shape: Optional[Sequence[object]],
        output_shape: Optional[Sequence[object]],
        *,
        layout: Union[str, AttributeLayout],
        labels: Sequence[str],
    ) -> "ModelMetadata":
        input_size = infer_input_size(input_shape)
        if input_size is None:
            raise ConfigurationError(f"Cannot read a square input size from model input shape {input_shape}")

        dims = list(output_shape) if output_shape is not None else []
        if len(dims) == 3 and dims[0] in (1, None, "batch"):
            dims = dims[1:]
        if len(dims) != 2 or not all(isinstance(d, int) for d in dims):
            raise ConfigurationError(f"Expected a static (1, A, N) model output shape, got {output_shape}")

        meta = cls(
            input_size=input_size,
            attribute_count=int(dims[0]),
            anchor_count=int(dims[1]),
            layout=AttributeLayout.parse(layout),
            labels=tuple(labels),
        )
        logger.debug(
            "Model metadata: input={} output={} layout={} labels={}",
            meta.input_shape,
            meta.output_shape,
            meta.layout.value,
            list(meta.labels),
        )
        return meta
