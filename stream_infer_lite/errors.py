"""
Error taxonomy for stream_infer_lite.

Configuration and load errors propagate out of the core as exceptions.
Inference errors are captured by the session and returned as values.
"""

from pathlib import Path
from typing import Union


class StreamInferError(Exception):
    """Base class for all stream_infer_lite errors."""


class ConfigurationError(StreamInferError):
    """A required setting is missing or invalid."""


class LoadError(StreamInferError):
    """Base class for model loading errors."""


class UnknownArchitecture(LoadError):
    """The architecture identifier is not a supported model family."""

    def __init__(self, architecture_id: str) -> None:
        self.architecture_id = architecture_id
        super().__init__(f"Unknown model architecture: {architecture_id!r}")


class LoadFailure(LoadError):
    """The weights at `path` are missing, unreadable or invalid."""

    def __init__(self, path: Union[str, Path], cause: Union[str, BaseException]) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to load model from {str(self.path)!r}: {cause}")


class InferenceError(StreamInferError):
    """Base class for failures during generation."""


class TokenizationError(InferenceError):
    """The tokenizer could not encode or decode text."""


class EvaluationError(InferenceError):
    """The model forward pass or token sampling failed."""


class UserCallbackError(InferenceError):
    """The feedback callable raised an exception."""


class EmptyContextError(InferenceError):
    """Generation was requested with nothing to condition on."""


class SessionStateError(InferenceError):
    """The session is not in a state that allows the requested operation."""
