"""
Configuration management.

Settings are resolved once at the process boundary, from the environment and
an optional .env file, and passed explicitly to the loader.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from stream_infer_lite.errors import ConfigurationError
from stream_infer_lite.models.loader import ModelParameters, TokenizerSource


MODEL_PATH = "MODEL_PATH"
MODEL_ARCHITECTURE = "MODEL_ARCHITECTURE"
MODEL_TOKENIZER = "MODEL_TOKENIZER"
MODEL_PREFER_MMAP = "MODEL_PREFER_MMAP"
MODEL_DEVICE = "MODEL_DEVICE"
INFERENCE_SEED = "INFERENCE_SEED"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


@dataclass(frozen=True)
class Settings:
    """Resolved process configuration.

    Attributes:
        model_path: Location of the model weights (required).
        architecture: Architecture identifier handed to the loader.
        tokenizer_path: External tokenizer location; None means embedded.
        prefer_mmap: Memory-map weights where possible.
        device: Device to run the model on.
        seed: Sampling seed; None draws a fresh one per call.
    """

    model_path: str
    architecture: str = "llama"
    tokenizer_path: Optional[str] = None
    prefer_mmap: bool = True
    device: str = "cpu"
    seed: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Read settings from the environment.

        When `environ` is None, a .env file found from the working directory
        is loaded first (existing variables win) and os.environ is used.

        Raises:
            ConfigurationError: If MODEL_PATH is missing or a value is invalid.
        """
        if environ is None:
            load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        model_path = environ.get(MODEL_PATH, "").strip()
        if not model_path:
            raise ConfigurationError(f"{MODEL_PATH} must be set")

        seed = environ.get(INFERENCE_SEED, "").strip()
        try:
            seed = int(seed) if seed else None
        except ValueError:
            raise ConfigurationError(f"{INFERENCE_SEED} must be an integer, got {seed!r}")

        return cls(
            model_path=model_path,
            architecture=environ.get(MODEL_ARCHITECTURE, "").strip() or "llama",
            tokenizer_path=environ.get(MODEL_TOKENIZER, "").strip() or None,
            prefer_mmap=_parse_bool(MODEL_PREFER_MMAP, environ.get(MODEL_PREFER_MMAP), True),
            device=environ.get(MODEL_DEVICE, "").strip() or "cpu",
            seed=seed,
        )

    @property
    def tokenizer_source(self) -> TokenizerSource:
        if self.tokenizer_path:
            return TokenizerSource.from_file(self.tokenizer_path)
        return TokenizerSource.embedded()

    @property
    def model_parameters(self) -> ModelParameters:
        return ModelParameters(prefer_mmap=self.prefer_mmap, device=self.device)


def _parse_bool(name: str, value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default

    value = value.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")
