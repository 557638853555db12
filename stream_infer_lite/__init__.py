"""
stream_infer_lite: A lightweight streaming inference pipeline for causal LLMs.

This package loads a language model, runs one generation request against it,
and streams each produced token through a feedback-controlled loop:
- Model loading with architecture resolution and typed load errors
- Single-use inference sessions with a bounded context window
- Per-token feedback decisions (continue/halt)
- Token accumulation into the final output text plus run statistics
"""

from stream_infer_lite.api import hello, language_model

__version__ = "0.1.0"
__author__ = "stream-infer-lite contributors"

__all__ = ["hello", "language_model"]
