"""
Core streaming inference pipeline.

Components:
- InferenceSession: Per-request generation state and the token loop
- FeedbackController: Per-token continue/halt decisions
- TokenStreamAccumulator: Merges streamed token text into the output
- format_result: Renders the terminal result for the caller
"""

from stream_infer_lite.core.accumulator import TokenStreamAccumulator
from stream_infer_lite.core.events import InferenceFeedback, TokenEvent, TokenEventKind
from stream_infer_lite.core.feedback import FeedbackController, decide
from stream_infer_lite.core.session import (
    InferenceRequest,
    InferenceResult,
    InferenceSession,
    InferenceSessionConfig,
    InferenceStats,
    SessionState,
    start_session,
)
from stream_infer_lite.core.stats_reporter import format_result

__all__ = [
    "TokenStreamAccumulator",
    "InferenceFeedback",
    "TokenEvent",
    "TokenEventKind",
    "FeedbackController",
    "decide",
    "InferenceRequest",
    "InferenceResult",
    "InferenceSession",
    "InferenceSessionConfig",
    "InferenceStats",
    "SessionState",
    "start_session",
    "format_result",
]
