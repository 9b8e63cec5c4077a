from __future__ import annotations


class MangoKitError(Exception):
    """Base class for every error raised by the detection pipeline."""


class FrameConversionError(MangoKitError):
    """Camera frame is malformed (missing planes, bad strides, bad size)."""


class InferenceError(MangoKitError):
    """Inference engine failed or a pipeline run exceeded its timeout."""


class ConfigurationError(MangoKitError, ValueError):
    """
    Declared model metadata, configuration and actual tensor shapes disagree.

    Raised once at load time. The pipeline refuses to start until it is fixed.
    """
