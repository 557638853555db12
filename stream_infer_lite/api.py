"""
Boundary operations exposed to the host.
"""

import logging
from typing import Optional

import torch

from stream_infer_lite.config import Settings
from stream_infer_lite.core.accumulator import TokenStreamAccumulator
from stream_infer_lite.core.feedback import FeedbackController
from stream_infer_lite.core.session import InferenceRequest, start_session
from stream_infer_lite.core.stats_reporter import format_result
from stream_infer_lite.models.loader import load
from stream_infer_lite.sampling.sampling import SamplingParams


logger = logging.getLogger(__name__)

HELLO_MESSAGE = "hello python"
DEFAULT_PROMPT = "Rust is a cool programming language because"


def hello() -> str:
    return HELLO_MESSAGE


def make_generator(device: str, seed: Optional[int] = None) -> torch.Generator:
    """Random number generator on the device the logits are sampled on."""
    rng = torch.Generator(device=device)
    if seed is not None:
        rng.manual_seed(seed)
    else:
        rng.seed()
    return rng


def language_model(settings: Optional[Settings] = None) -> str:
    """Load the configured model and complete the built-in prompt.

    Args:
        settings: Resolved configuration; read from the environment when None.

    Returns:
        The generated text followed by the inference stats, or the error
        text if generation failed.

    Raises:
        ConfigurationError: If settings are not given and MODEL_PATH is unset.
        LoadError: If the model cannot be loaded.
    """
    if settings is None:
        settings = Settings.from_env()

    model = load(
        settings.architecture,
        settings.model_path,
        settings.tokenizer_source,
        settings.model_parameters,
    )

    rng = make_generator(settings.device, settings.seed)

    accumulator = TokenStreamAccumulator()
    session = start_session(model)
    result = session.infer(
        InferenceRequest(
            prompt=DEFAULT_PROMPT,
            parameters=SamplingParams(),
            play_back_previous_tokens=False,
            maximum_token_count=None,
        ),
        rng,
        FeedbackController(accumulator),
    )

    if not result.is_success:
        return format_result(result)

    logger.info("Generated %d tokens", result.stats.predict_tokens)
    return accumulator.out + format_result(result)
