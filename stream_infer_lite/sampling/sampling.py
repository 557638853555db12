"""
Sampling strategies for text generation.

All functions operate on the logits of a single position (shape [vocab_size])
and return a new tensor; the caller's logits are never modified in place.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import torch


@dataclass(frozen=True)
class SamplingParams:
    """Parameters for choosing the next token.

    A temperature of 0 selects the most likely token (greedy decoding).
    """

    temperature: float = 0.80
    top_k: int = 40
    top_p: float = 0.95
    repeat_penalty: float = 1.30
    repetition_penalty_last_n: int = 64
    bias_tokens: Optional[Dict[int, float]] = None

    def __post_init__(self) -> None:
        if self.temperature < 0.0:
            raise ValueError(f"temperature must be non-negative, got {self.temperature}")
        if self.top_k < 0:
            raise ValueError(f"top_k must be non-negative, got {self.top_k}")
        if not 0.0 < self.top_p <= 1.0:
            raise ValueError(f"top_p must be in (0, 1], got {self.top_p}")
        if self.repeat_penalty <= 0.0:
            raise ValueError(f"repeat_penalty must be positive, got {self.repeat_penalty}")
        if self.repetition_penalty_last_n < 0:
            raise ValueError(
                f"repetition_penalty_last_n must be non-negative, "
                f"got {self.repetition_penalty_last_n}"
            )
        for token_id in self.bias_tokens or {}:
            if token_id < 0:
                raise ValueError(f"bias token ids must be non-negative, got {token_id}")


def greedy_sampling(logits: torch.Tensor) -> torch.Tensor:
    """Greedy sampling (argmax)."""
    return logits.argmax(dim=-1)


def temperature_scaling(logits: torch.Tensor, temperature: float) -> torch.Tensor:
    """Apply temperature scaling."""
    return logits / temperature


def top_k_sampling(logits: torch.Tensor, k: int) -> torch.Tensor:
    """Keep only the k highest logits."""
    if k <= 0 or k >= logits.size(-1):
        return logits

    kth_value = torch.topk(logits, k, dim=-1).values[..., -1, None]
    return logits.masked_fill(logits < kth_value, float("-inf"))


def top_p_sampling(logits: torch.Tensor, p: float) -> torch.Tensor:
    """Top-p (nucleus) sampling."""
    if p >= 1.0:
        return logits

    sorted_logits, sorted_indices = torch.sort(logits, descending=True, dim=-1)
    cumulative_probs = torch.cumsum(torch.softmax(sorted_logits, dim=-1), dim=-1)

    # Shift right so the token that crosses the threshold is kept
    sorted_indices_to_remove = cumulative_probs > p
    sorted_indices_to_remove[..., 1:] = sorted_indices_to_remove[..., :-1].clone()
    sorted_indices_to_remove[..., 0] = False

    indices_to_remove = sorted_indices_to_remove.scatter(
        -1, sorted_indices, sorted_indices_to_remove
    )
    return logits.masked_fill(indices_to_remove, float("-inf"))


def apply_repetition_penalty(
    logits: torch.Tensor, previous_tokens: Sequence[int], penalty: float
) -> torch.Tensor:
    """Make previously seen tokens less likely."""
    if penalty == 1.0 or not previous_tokens:
        return logits

    logits = logits.clone()
    indices = torch.tensor(sorted(set(previous_tokens)), dtype=torch.long, device=logits.device)
    selected = logits[indices]
    logits[indices] = torch.where(selected > 0, selected / penalty, selected * penalty)
    return logits


def apply_logit_bias(logits: torch.Tensor, bias_tokens: Optional[Dict[int, float]]) -> torch.Tensor:
    """Add a fixed bias to specific token logits."""
    if not bias_tokens:
        return logits

    vocab_size = logits.size(-1)
    logits = logits.clone()
    for token_id, bias in bias_tokens.items():
        if not 0 <= token_id < vocab_size:
            raise ValueError(f"bias token id {token_id} is outside the vocabulary (size {vocab_size})")
        logits[token_id] += bias
    return logits


def sample(
    logits: torch.Tensor,
    params: SamplingParams,
    generator: Optional[torch.Generator] = None,
    previous_tokens: Sequence[int] = (),
) -> int:
    """Sample the next token id.

    Args:
        logits: Logits of the last position, shape [vocab_size].
        params: Sampling parameters.
        generator: Random number generator used for the draw.
        previous_tokens: Token history; the last
            `params.repetition_penalty_last_n` entries are penalized.

    Returns:
        The chosen token id.
    """
    logits = logits.float()
    logits = apply_logit_bias(logits, params.bias_tokens)

    last_n = params.repetition_penalty_last_n
    recent = list(previous_tokens[-last_n:]) if last_n > 0 else []
    logits = apply_repetition_penalty(logits, recent, params.repeat_penalty)

    if params.temperature == 0.0:
        return int(greedy_sampling(logits))

    logits = temperature_scaling(logits, params.temperature)
    logits = top_k_sampling(logits, params.top_k)
    logits = top_p_sampling(logits, params.top_p)

    probs = torch.softmax(logits, dim=-1)
    if generator is not None and probs.device != generator.device:
        probs = probs.to(generator.device)
    return int(torch.multinomial(probs, num_samples=1, generator=generator))
