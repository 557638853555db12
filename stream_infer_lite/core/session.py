"""
Inference sessions.

A session holds the mutable generation state for one model: the token
history, the bounded context window and the session state. `infer` feeds the
prompt, then samples tokens one at a time, handing each to a feedback
callable and waiting for its decision before producing the next one.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Callable, Deque, List, Optional

import torch

from stream_infer_lite.core.events import InferenceFeedback, TokenEvent
from stream_infer_lite.errors import (
    EmptyContextError,
    EvaluationError,
    InferenceError,
    SessionStateError,
    UserCallbackError,
)
from stream_infer_lite.models.loader import Model
from stream_infer_lite.sampling.sampling import SamplingParams, sample


logger = logging.getLogger(__name__)

FeedbackCallable = Callable[[TokenEvent], InferenceFeedback]


class SessionState(Enum):
    """State of an inference session."""

    IDLE = "idle"  # Created, nothing generated yet
    GENERATING = "generating"  # Inside infer()
    HALTED = "halted"  # Feedback returned HALT
    EXHAUSTED = "exhausted"  # Maximum token count reached
    COMPLETED = "completed"  # Model emitted its end-of-sequence marker
    FAILED = "failed"  # Tokenizer, evaluation or callback failure


@dataclass(frozen=True)
class InferenceSessionConfig:
    """Per-session configuration.

    Attributes:
        context_size: Context window capacity; defaults to the model's.
    """

    context_size: Optional[int] = None

    def __post_init__(self) -> None:
        if self.context_size is not None and self.context_size <= 0:
            raise ValueError(f"context_size must be positive, got {self.context_size}")


@dataclass(frozen=True)
class InferenceRequest:
    """A single generation request.

    Attributes:
        prompt: Text to condition on.
        parameters: Sampling parameters.
        play_back_previous_tokens: Re-emit the session's earlier tokens as
            SNAPSHOT events before feeding the prompt.
        maximum_token_count: Upper bound on generated tokens (None = unbounded).
    """

    prompt: str
    parameters: SamplingParams = field(default_factory=SamplingParams)
    play_back_previous_tokens: bool = False
    maximum_token_count: Optional[int] = None

    def __post_init__(self) -> None:
        if self.maximum_token_count is not None and self.maximum_token_count < 0:
            raise ValueError(
                f"maximum_token_count must be non-negative, got {self.maximum_token_count}"
            )


@dataclass
class InferenceStats:
    """Aggregate statistics for one infer() call."""

    feed_prompt_duration: timedelta = timedelta(0)
    prompt_tokens: int = 0
    predict_duration: timedelta = timedelta(0)
    predict_tokens: int = 0

    @property
    def per_token_duration(self) -> float:
        """Average prediction time per generated token, in milliseconds."""
        if self.predict_tokens == 0:
            return 0.0
        return _millis(self.predict_duration) / self.predict_tokens

    def __str__(self) -> str:
        return (
            f"feed_prompt_duration: {int(_millis(self.feed_prompt_duration))}ms\n"
            f"prompt_tokens: {self.prompt_tokens}\n"
            f"predict_duration: {int(_millis(self.predict_duration))}ms\n"
            f"predict_tokens: {self.predict_tokens}\n"
            f"per_token_duration: {self.per_token_duration:.3f}ms"
        )


@dataclass(frozen=True)
class InferenceResult:
    """Outcome of one infer() call: stats on success, an error on failure."""

    state: SessionState
    stats: Optional[InferenceStats] = None
    error: Optional[InferenceError] = None

    @classmethod
    def success(cls, stats: InferenceStats, state: SessionState) -> "InferenceResult":
        return cls(state=state, stats=stats)

    @classmethod
    def failure(cls, error: InferenceError) -> "InferenceResult":
        return cls(state=SessionState.FAILED, error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None


class InferenceSession:
    """Mutable generation state bound to one model.

    Attributes:
        model: The model this session borrows.
        config: The configuration the session was started with.
        context_size: Capacity of the context window.
        tokens: Every token fed to or produced by the session, in order.
        context: The most recent `context_size` tokens.
        state: Current session state.
    """

    def __init__(self, model: Model, config: Optional[InferenceSessionConfig] = None) -> None:
        config = config or InferenceSessionConfig()
        context_size = config.context_size or model.context_size
        if context_size > model.context_size:
            raise ValueError(
                f"context_size ({context_size}) exceeds the model's "
                f"context size ({model.context_size})"
            )

        self.model = model
        self.config = config
        self.context_size = context_size
        self.tokens: List[int] = []
        self.context: Deque[int] = deque(maxlen=context_size)
        self.state = SessionState.IDLE

    def infer(
        self,
        request: InferenceRequest,
        rng: Optional[torch.Generator],
        feedback: FeedbackCallable,
    ) -> InferenceResult:
        """Run one generation request.

        Args:
            request: Prompt, sampling parameters and limits.
            rng: Random number generator for sampling.
            feedback: Called once per token event; returns CONTINUE or HALT.

        Returns:
            InferenceResult carrying stats for HALTED, EXHAUSTED and
            COMPLETED, or the InferenceError for FAILED.

        Raises:
            SessionStateError: If the session is already generating.
        """
        if self.state == SessionState.GENERATING:
            raise SessionStateError("Session is already generating")

        self.state = SessionState.GENERATING
        logger.debug("Starting inference (history: %d tokens)", len(self.tokens))

        stats = InferenceStats()
        try:
            state = self._run(request, rng, feedback, stats)
        except InferenceError as e:
            self.state = SessionState.FAILED
            logger.warning("Inference failed: %s", e)
            return InferenceResult.failure(e)

        self.state = state
        logger.debug("Inference finished: %s, %d tokens", state.value, stats.predict_tokens)
        return InferenceResult.success(stats, state)

    def _run(
        self,
        request: InferenceRequest,
        rng: Optional[torch.Generator],
        feedback: FeedbackCallable,
        stats: InferenceStats,
    ) -> SessionState:
        feed_start = time.perf_counter()
        try:
            if request.play_back_previous_tokens:
                previous = list(self.tokens)
                for i, token_id in enumerate(previous):
                    text = self.model.decode_token(token_id, previous[:i])
                    if self._emit(feedback, TokenEvent.snapshot(text)) == InferenceFeedback.HALT:
                        return SessionState.HALTED

            prompt_ids = self.model.tokenize(request.prompt) if request.prompt else []
            for token_id in prompt_ids:
                text = self.model.decode_token(token_id, self.tokens)
                self._push(token_id)
                stats.prompt_tokens += 1
                if self._emit(feedback, TokenEvent.prompt(text)) == InferenceFeedback.HALT:
                    return SessionState.HALTED
        finally:
            stats.feed_prompt_duration = _elapsed(feed_start)

        if not self.context:
            raise EmptyContextError("Cannot infer from an empty context")

        predict_start = time.perf_counter()
        try:
            return self._generate(request, rng, feedback, stats)
        finally:
            stats.predict_duration = _elapsed(predict_start)

    def _generate(
        self,
        request: InferenceRequest,
        rng: Optional[torch.Generator],
        feedback: FeedbackCallable,
        stats: InferenceStats,
    ) -> SessionState:
        limit = request.maximum_token_count
        eot_token_ids = self.model.eot_token_ids

        while True:
            if limit is not None and stats.predict_tokens >= limit:
                return SessionState.EXHAUSTED

            logits = self.model.evaluate(list(self.context))
            try:
                token_id = sample(logits, request.parameters, rng, self.tokens)
            except (RuntimeError, ValueError, IndexError) as e:
                raise EvaluationError(f"Sampling failed: {e}") from e

            if token_id in eot_token_ids:
                self._emit(feedback, TokenEvent.end_of_sequence())
                return SessionState.COMPLETED

            text = self.model.decode_token(token_id, self.tokens)
            self._push(token_id)
            stats.predict_tokens += 1

            if self._emit(feedback, TokenEvent.inferred(text)) == InferenceFeedback.HALT:
                return SessionState.HALTED

    def _push(self, token_id: int) -> None:
        # The deque drops the oldest token once the window is full
        self.tokens.append(token_id)
        self.context.append(token_id)

    @staticmethod
    def _emit(feedback: FeedbackCallable, event: TokenEvent) -> InferenceFeedback:
        try:
            return feedback(event)
        except Exception as e:
            raise UserCallbackError(f"Feedback callback failed: {e}") from e


def start_session(model: Model, config: Optional[InferenceSessionConfig] = None) -> InferenceSession:
    """Create a fresh session bound to `model`."""
    return InferenceSession(model, config)


def _elapsed(start: float) -> timedelta:
    return timedelta(seconds=time.perf_counter() - start)


def _millis(duration: timedelta) -> float:
    return duration / timedelta(milliseconds=1)
