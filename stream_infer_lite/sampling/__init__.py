"""
Token sampling.

Provides:
- SamplingParams: Inference parameters controlling token selection
- sample: Choose the next token id from a logits vector
- Strategies: greedy, temperature, top-k, top-p
- Penalties and biases: repetition penalty, per-token logit bias
"""

from stream_infer_lite.sampling.sampling import SamplingParams, sample

__all__ = ["SamplingParams", "sample"]
