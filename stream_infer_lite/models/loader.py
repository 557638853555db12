"""
Model loading.

This module resolves an architecture identifier and a weights location into
an immutable Model handle. Weights, hyperparameters and tokenizer are read by
the HuggingFace execution engine (safetensors or pytorch_model.bin); the
loader only checks that what it finds matches the requested architecture and
wraps every failure in a typed LoadFailure.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, FrozenSet, List, Optional, Sequence, Union

import torch
from transformers import AutoConfig, AutoModelForCausalLM, AutoTokenizer

from stream_infer_lite.errors import EvaluationError, LoadFailure, TokenizationError
from stream_infer_lite.models.architecture import ModelArchitecture


logger = logging.getLogger(__name__)

# Tokens of history decoded alongside a new token. Covers subword spacing
# and the pending bytes of a character split across up to four tokens.
DECODE_LOOKBACK = 6

# What byte-level decoders produce for an incomplete UTF-8 sequence.
INCOMPLETE_CHAR = "\ufffd"


class TokenizerSourceKind(Enum):
    """Where the tokenizer data lives."""

    EMBEDDED = "embedded"  # Tokenizer files sit next to the weights
    FILE = "file"  # Local tokenizer file or directory
    REMOTE = "remote"  # HuggingFace hub identifier


@dataclass(frozen=True)
class TokenizerSource:
    """Source of the token-to-text mapping.

    Attributes:
        kind: Where the tokenizer comes from.
        location: Path or hub identifier; unused for EMBEDDED.
    """

    kind: TokenizerSourceKind = TokenizerSourceKind.EMBEDDED
    location: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind != TokenizerSourceKind.EMBEDDED and not self.location:
            raise ValueError(f"{self.kind.value} tokenizer source requires a location")

    @classmethod
    def embedded(cls) -> "TokenizerSource":
        return cls(TokenizerSourceKind.EMBEDDED)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "TokenizerSource":
        return cls(TokenizerSourceKind.FILE, str(path))

    @classmethod
    def remote(cls, repo_id: str) -> "TokenizerSource":
        return cls(TokenizerSourceKind.REMOTE, repo_id)

    def resolve(self, model_path: Path) -> str:
        """Return the identifier to hand to AutoTokenizer."""
        if self.kind == TokenizerSourceKind.EMBEDDED:
            return str(model_path)
        return self.location


@dataclass(frozen=True)
class ModelParameters:
    """Load-time configuration.

    Attributes:
        prefer_mmap: Memory-map the checkpoint instead of materializing it
            up front, where the storage format allows it.
        context_size: Maximum number of tokens the model conditions on.
        device: Device to run the model on ("cpu" or "cuda").
        dtype: Parameter dtype.
    """

    prefer_mmap: bool = True
    context_size: int = 2048
    device: str = "cpu"
    dtype: torch.dtype = torch.float32

    def __post_init__(self) -> None:
        if self.context_size <= 0:
            raise ValueError(f"context_size must be positive, got {self.context_size}")
        if not self.device:
            raise ValueError("device cannot be empty")


class LoadProgressKind(Enum):
    """Stage reached while loading a model."""

    HYPERPARAMETERS_LOADED = "hyperparameters_loaded"
    TOKENIZER_LOADED = "tokenizer_loaded"
    LOADED = "loaded"


@dataclass(frozen=True)
class LoadProgress:
    """Progress event passed to the load progress callback."""

    kind: LoadProgressKind
    tensor_count: int = 0
    file_size: int = 0


LoadProgressCallback = Callable[[LoadProgress], None]


def log_load_progress(progress: LoadProgress) -> None:
    """Default progress callback: log each stage at INFO."""
    if progress.kind == LoadProgressKind.HYPERPARAMETERS_LOADED:
        logger.info("Loaded hyperparameters")
    elif progress.kind == LoadProgressKind.TOKENIZER_LOADED:
        logger.info("Loaded tokenizer")
    else:
        logger.info(
            "Loaded %d tensors (%.2f MB)",
            progress.tensor_count,
            progress.file_size / (1024 * 1024),
        )


@dataclass(frozen=True, eq=False)
class Model:
    """Immutable handle to a loaded model.

    Sessions borrow the handle read-only; nothing on it changes after load.

    Attributes:
        architecture: Resolved model family.
        path: Location the weights were loaded from.
        tokenizer_source: Where the tokenizer was loaded from.
        parameters: Load-time configuration.
        module: The execution engine's causal LM module (eval mode).
        tokenizer: The execution engine's tokenizer.
    """

    architecture: ModelArchitecture
    path: Path
    tokenizer_source: TokenizerSource
    parameters: ModelParameters
    module: Any = field(repr=False)
    tokenizer: Any = field(repr=False)

    @property
    def context_size(self) -> int:
        max_positions = getattr(self.module.config, "max_position_embeddings", None)
        if max_positions:
            return min(self.parameters.context_size, max_positions)
        return self.parameters.context_size

    @property
    def eot_token_ids(self) -> FrozenSet[int]:
        """Every token id that ends generation.

        Collected from the model config, its generation config and the
        tokenizer; configs may list several ids.
        """
        candidates = [
            getattr(self.module.config, "eos_token_id", None),
            getattr(getattr(self.module, "generation_config", None), "eos_token_id", None),
            getattr(self.tokenizer, "eos_token_id", None),
        ]
        ids = set()
        for eos in candidates:
            if isinstance(eos, (list, tuple, set, frozenset)):
                ids.update(int(i) for i in eos)
            elif eos is not None:
                ids.add(int(eos))
        return frozenset(ids)

    @property
    def vocab_size(self) -> int:
        return self.module.config.vocab_size

    def tokenize(self, text: str) -> List[int]:
        """Encode text into token ids.

        Raises:
            TokenizationError: If the tokenizer rejects the text.
        """
        try:
            return list(self.tokenizer.encode(text))
        except Exception as e:
            raise TokenizationError(f"Failed to tokenize prompt: {e}") from e

    def decode_token(self, token_id: int, history: Sequence[int] = ()) -> str:
        """Return the text `token_id` adds when appended to `history`.

        A token that ends in the middle of a multi-byte character adds "" and
        its bytes stay pending in `history`; the token that completes the
        character returns the whole character.

        Raises:
            TokenizationError: If the tokenizer cannot decode the ids.
        """
        tail = list(history[-DECODE_LOOKBACK:])
        try:
            after = self.tokenizer.decode(tail + [token_id], skip_special_tokens=True)
            if after.endswith(INCOMPLETE_CHAR):
                return ""

            # Text already handed out for the tail excludes its pending bytes
            before = self.tokenizer.decode(tail, skip_special_tokens=True).rstrip(INCOMPLETE_CHAR)
            if after.startswith(before):
                return after[len(before):]

            text = self.tokenizer.decode([token_id], skip_special_tokens=True)
            return "" if text.endswith(INCOMPLETE_CHAR) else text
        except Exception as e:
            raise TokenizationError(f"Failed to decode token {token_id}: {e}") from e

    def evaluate(self, token_ids: Sequence[int]) -> torch.Tensor:
        """Run a forward pass and return the logits of the last position.

        Args:
            token_ids: Context to condition on.

        Returns:
            Logits tensor of shape [vocab_size].

        Raises:
            EvaluationError: If the forward pass fails.
        """
        input_ids = torch.tensor([list(token_ids)], dtype=torch.long, device=self.parameters.device)
        try:
            with torch.no_grad():
                logits = self.module(input_ids).logits
        except Exception as e:
            raise EvaluationError(f"Model evaluation failed: {e}") from e
        return logits[0, -1, :]


def load(
    architecture_id: str,
    path: Union[str, Path],
    tokenizer_source: Optional[TokenizerSource] = None,
    params: Optional[ModelParameters] = None,
    load_progress_callback: LoadProgressCallback = log_load_progress,
) -> Model:
    """Load a model from disk.

    The workflow is:
    1. Resolve the architecture identifier
    2. Read the checkpoint hyperparameters and check the model family
    3. Load the tokenizer from its source
    4. Load the weights and move the module to the requested device

    Args:
        architecture_id: Architecture name (e.g. "llama").
        path: Directory holding the checkpoint.
        tokenizer_source: Tokenizer location (default: embedded).
        params: Load-time configuration (default: ModelParameters()).
        load_progress_callback: Receives a LoadProgress per stage.

    Returns:
        Immutable Model handle.

    Raises:
        UnknownArchitecture: If the architecture identifier is not supported.
        LoadFailure: If the checkpoint is missing, unreadable or does not
            match the architecture, or the tokenizer cannot be loaded.
    """
    architecture = ModelArchitecture.parse(architecture_id)
    tokenizer_source = tokenizer_source or TokenizerSource.embedded()
    params = params or ModelParameters()
    path = Path(path)

    if not path.exists():
        raise LoadFailure(path, "No such file or directory")

    try:
        hf_config = AutoConfig.from_pretrained(str(path))
    except Exception as e:
        raise LoadFailure(path, e) from e

    model_type = getattr(hf_config, "model_type", None)
    if model_type != architecture.value:
        raise LoadFailure(
            path,
            f"checkpoint model_type {model_type!r} does not match "
            f"architecture {str(architecture)!r}",
        )
    load_progress_callback(LoadProgress(LoadProgressKind.HYPERPARAMETERS_LOADED))

    try:
        tokenizer = AutoTokenizer.from_pretrained(tokenizer_source.resolve(path))
    except Exception as e:
        raise LoadFailure(path, f"tokenizer: {e}") from e
    load_progress_callback(LoadProgress(LoadProgressKind.TOKENIZER_LOADED))

    try:
        module = AutoModelForCausalLM.from_pretrained(
            str(path),
            config=hf_config,
            torch_dtype=params.dtype,
            low_cpu_mem_usage=params.prefer_mmap,
        )
        module = module.to(params.device)
    except Exception as e:
        raise LoadFailure(path, e) from e
    module.eval()

    load_progress_callback(
        LoadProgress(
            LoadProgressKind.LOADED,
            tensor_count=len(module.state_dict()),
            file_size=_checkpoint_size(path),
        )
    )

    return Model(
        architecture=architecture,
        path=path,
        tokenizer_source=tokenizer_source,
        parameters=params,
        module=module,
        tokenizer=tokenizer,
    )


def _checkpoint_size(path: Path) -> int:
    """Total size in bytes of the weight files under `path`."""
    if path.is_file():
        return path.stat().st_size
    return sum(
        f.stat().st_size
        for pattern in ("*.safetensors", "*.bin")
        for f in path.glob(pattern)
    )
