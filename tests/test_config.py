"""
Tests for settings resolution.
"""

import pytest
from stream_infer_lite.config import Settings
from stream_infer_lite.errors import ConfigurationError
from stream_infer_lite.models.loader import TokenizerSourceKind


@pytest.mark.unit
def test_missing_model_path_is_deterministic():
    """Test that a missing MODEL_PATH always yields the same message."""
    messages = []
    for _ in range(3):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings.from_env({})
        messages.append(str(exc_info.value))

    assert messages == ["MODEL_PATH must be set"] * 3


@pytest.mark.unit
def test_blank_model_path_is_missing():
    """Test that a whitespace-only MODEL_PATH counts as unset."""
    with pytest.raises(ConfigurationError, match="MODEL_PATH must be set"):
        Settings.from_env({"MODEL_PATH": "   "})


@pytest.mark.unit
def test_defaults():
    """Test defaults when only MODEL_PATH is given."""
    settings = Settings.from_env({"MODEL_PATH": "/models/llama"})

    assert settings.model_path == "/models/llama"
    assert settings.architecture == "llama"
    assert settings.tokenizer_path is None
    assert settings.prefer_mmap is True
    assert settings.device == "cpu"
    assert settings.seed is None
    assert settings.tokenizer_source.kind == TokenizerSourceKind.EMBEDDED
    assert settings.model_parameters.prefer_mmap is True


@pytest.mark.unit
def test_all_settings():
    """Test that every setting is read."""
    settings = Settings.from_env(
        {
            "MODEL_PATH": "/models/neox",
            "MODEL_ARCHITECTURE": "gpt-neox",
            "MODEL_TOKENIZER": "/models/tokenizer",
            "MODEL_PREFER_MMAP": "no",
            "MODEL_DEVICE": "cuda",
            "INFERENCE_SEED": "7",
        }
    )

    assert settings.architecture == "gpt-neox"
    assert settings.tokenizer_source.kind == TokenizerSourceKind.FILE
    assert settings.tokenizer_source.location == "/models/tokenizer"
    assert settings.prefer_mmap is False
    assert settings.model_parameters.device == "cuda"
    assert settings.seed == 7


@pytest.mark.unit
@pytest.mark.parametrize(
    "name, value",
    [("MODEL_PREFER_MMAP", "maybe"), ("INFERENCE_SEED", "seven")],
)
def test_invalid_values(name, value):
    """Test that malformed values raise ConfigurationError naming the setting."""
    with pytest.raises(ConfigurationError, match=name):
        Settings.from_env({"MODEL_PATH": "/models/llama", name: value})


@pytest.mark.unit
def test_from_process_environment(monkeypatch, tmp_path):
    """Test reading os.environ and a .env file in the working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MODEL_PATH", raising=False)
    monkeypatch.delenv("MODEL_DEVICE", raising=False)
    monkeypatch.setenv("MODEL_ARCHITECTURE", "mpt")
    (tmp_path / ".env").write_text("MODEL_PATH=/from/dotenv\nMODEL_ARCHITECTURE=bloom\n")

    try:
        settings = Settings.from_env()
    finally:
        monkeypatch.delenv("MODEL_PATH", raising=False)

    assert settings.model_path == "/from/dotenv"
    assert settings.architecture == "mpt"


@pytest.mark.unit
def test_missing_model_path_in_process_environment(monkeypatch, tmp_path):
    """Test the fatal configuration error without any .env file."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MODEL_PATH", raising=False)

    with pytest.raises(ConfigurationError, match="MODEL_PATH must be set"):
        Settings.from_env()
