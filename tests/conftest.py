"""
Pytest configuration and shared fixtures for stream-infer-lite tests.

This module provides reusable fixtures for testing, including:
- A scripted in-memory model that emits a fixed token sequence
- A tiny random-weight llama checkpoint with a word-level tokenizer
- A byte-level BPE tokenizer and a scripted torch module for the real Model
- CPU device enforcement
"""

import os
from types import SimpleNamespace
from typing import Callable, Dict, List, Optional, Sequence

import pytest
import torch

from stream_infer_lite.errors import EvaluationError


# Force CPU-only testing by disabling CUDA
os.environ["CUDA_VISIBLE_DEVICES"] = ""

EOS = None

TINY_VOCAB = [
    "<unk>", "</s>", "<s>", "Rust", "is", "a", "cool", "programming", "language", "because",
] + [f"w{i}" for i in range(22)]


class ScriptedModel:
    """Stand-in for a loaded Model.

    Each evaluate() call strongly favors the next entry of `script`; an entry
    of EOS (None) selects the end-of-sequence token. Once the script runs out
    the model keeps emitting end-of-sequence.
    """

    eot_token_id = 0
    eot_token_ids = frozenset({0})
    vocab_size = 64

    def __init__(
        self,
        script: Sequence[Optional[str]],
        context_size: int = 64,
        fail_at: Optional[int] = None,
    ) -> None:
        self.script = list(script)
        self.context_size = context_size
        self.fail_at = fail_at
        self.contexts: List[List[int]] = []
        self._ids: Dict[str, int] = {"</s>": 0}
        self._texts: Dict[int, str] = {0: "</s>"}

    def _id(self, text: str) -> int:
        if text not in self._ids:
            token_id = len(self._ids)
            self._ids[text] = token_id
            self._texts[token_id] = text
        return self._ids[text]

    def tokenize(self, text: str) -> List[int]:
        return [self._id(word) for word in text.split()]

    def decode_token(self, token_id: int, history: Sequence[int] = ()) -> str:
        return self._texts[token_id]

    def evaluate(self, token_ids: Sequence[int]) -> torch.Tensor:
        step = len(self.contexts)
        self.contexts.append(list(token_ids))
        if self.fail_at is not None and step == self.fail_at:
            raise EvaluationError("Model evaluation failed: scripted failure")

        entry = self.script[step] if step < len(self.script) else EOS
        target = self.eot_token_id if entry is EOS else self._id(entry)
        logits = torch.full((self.vocab_size,), -100.0)
        logits[target] = 100.0
        return logits


@pytest.fixture
def scripted_model() -> Callable[..., ScriptedModel]:
    """Factory for ScriptedModel instances.

    Example:
        def test_stream(scripted_model):
            model = scripted_model(["A", "B", None])
    """
    return ScriptedModel


@pytest.fixture
def rng() -> torch.Generator:
    """Seeded generator so sampling is reproducible."""
    generator = torch.Generator()
    generator.manual_seed(0)
    return generator


@pytest.fixture(scope="session")
def tiny_llama_path(tmp_path_factory):
    """
    Build a tiny llama checkpoint on disk (session-scoped).

    This fixture:
    - Creates a word-level tokenizer over TINY_VOCAB
    - Initializes a 1-layer LlamaForCausalLM with random weights
    - Saves both into one directory so the tokenizer is embedded

    Returns:
        Path: Directory holding config, weights and tokenizer files
    """
    from tokenizers import Tokenizer
    from tokenizers.models import WordLevel
    from tokenizers.pre_tokenizers import Whitespace
    from transformers import LlamaConfig, LlamaForCausalLM, PreTrainedTokenizerFast

    path = tmp_path_factory.mktemp("tiny-llama")

    backend = Tokenizer(
        WordLevel(vocab={w: i for i, w in enumerate(TINY_VOCAB)}, unk_token="<unk>")
    )
    backend.pre_tokenizer = Whitespace()
    tokenizer = PreTrainedTokenizerFast(
        tokenizer_object=backend,
        unk_token="<unk>",
        bos_token="<s>",
        eos_token="</s>",
    )
    tokenizer.save_pretrained(path)

    torch.manual_seed(0)
    config = LlamaConfig(
        vocab_size=len(TINY_VOCAB),
        hidden_size=16,
        intermediate_size=32,
        num_hidden_layers=1,
        num_attention_heads=2,
        num_key_value_heads=2,
        max_position_embeddings=64,
        bos_token_id=2,
        eos_token_id=1,
    )
    LlamaForCausalLM(config).save_pretrained(path)

    return path


class ScriptedModule(torch.nn.Module):
    """Causal LM module whose forward pass favors a fixed sequence of ids.

    Once `script_ids` is used up the last id is repeated.
    """

    def __init__(
        self,
        script_ids: Sequence[int],
        vocab_size: int,
        eos_token_id,
        max_position_embeddings: int = 64,
    ) -> None:
        super().__init__()
        self.config = SimpleNamespace(
            vocab_size=vocab_size,
            eos_token_id=eos_token_id,
            max_position_embeddings=max_position_embeddings,
        )
        self.script_ids = list(script_ids)
        self.calls = 0

    def forward(self, input_ids: torch.Tensor) -> SimpleNamespace:
        target = self.script_ids[min(self.calls, len(self.script_ids) - 1)]
        self.calls += 1
        logits = torch.full((1, input_ids.shape[1], self.config.vocab_size), -100.0)
        logits[0, -1, target] = 100.0
        return SimpleNamespace(logits=logits)


@pytest.fixture
def scripted_module() -> Callable[..., ScriptedModule]:
    """Factory for ScriptedModule instances."""
    return ScriptedModule


@pytest.fixture(scope="session")
def byte_level_tokenizer():
    """
    Byte-level BPE tokenizer with one token per byte and no merges.

    Every non-ASCII character spans several tokens, so decoding a prefix
    that stops inside a character yields U+FFFD. "</s>" is the EOS token.

    Returns:
        PreTrainedTokenizerFast: Tokenizer with a 257-entry vocabulary
    """
    from tokenizers import Tokenizer, decoders
    from tokenizers.models import BPE
    from tokenizers.pre_tokenizers import ByteLevel
    from transformers import PreTrainedTokenizerFast

    vocab = {ch: i for i, ch in enumerate(sorted(ByteLevel.alphabet()))}
    vocab["</s>"] = len(vocab)

    backend = Tokenizer(BPE(vocab=vocab, merges=[]))
    backend.pre_tokenizer = ByteLevel(add_prefix_space=False)
    backend.decoder = decoders.ByteLevel()

    return PreTrainedTokenizerFast(
        tokenizer_object=backend,
        eos_token="</s>",
        clean_up_tokenization_spaces=False,
    )
