"""
Model loading.

Components:
- ModelArchitecture: Supported model families
- ModelParameters: Load-time configuration
- TokenizerSource: Where the tokenizer comes from
- Model: Immutable loaded model handle
- load: Resolve an architecture and a weights path into a Model
"""

from stream_infer_lite.models.architecture import ModelArchitecture
from stream_infer_lite.models.loader import (
    LoadProgress,
    LoadProgressKind,
    Model,
    ModelParameters,
    TokenizerSource,
    load,
    log_load_progress,
)

__all__ = [
    "ModelArchitecture",
    "LoadProgress",
    "LoadProgressKind",
    "Model",
    "ModelParameters",
    "TokenizerSource",
    "load",
    "log_load_progress",
]
