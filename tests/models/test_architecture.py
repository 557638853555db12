"""
Tests for ModelArchitecture parsing.
"""

import pytest
from stream_infer_lite.errors import UnknownArchitecture
from stream_infer_lite.models.architecture import ModelArchitecture


@pytest.mark.unit
@pytest.mark.parametrize(
    "architecture_id, expected",
    [
        ("llama", ModelArchitecture.LLAMA),
        ("LLaMA", ModelArchitecture.LLAMA),
        ("gpt-neox", ModelArchitecture.GPTNEOX),
        ("gpt_neox", ModelArchitecture.GPTNEOX),
        ("GPTNeoX", ModelArchitecture.GPTNEOX),
        ("gpt2", ModelArchitecture.GPT2),
        ("GPT-J", ModelArchitecture.GPTJ),
        ("bloom", ModelArchitecture.BLOOM),
        (" mpt ", ModelArchitecture.MPT),
    ],
)
def test_parse_known_architectures(architecture_id, expected):
    """Test that identifiers resolve regardless of case and separators."""
    assert ModelArchitecture.parse(architecture_id) is expected


@pytest.mark.unit
@pytest.mark.parametrize("architecture_id", ["", "qwen3", "llama2", "gpt"])
def test_parse_unknown_architecture(architecture_id):
    """Test that unsupported identifiers raise UnknownArchitecture."""
    with pytest.raises(UnknownArchitecture) as exc_info:
        ModelArchitecture.parse(architecture_id)

    assert exc_info.value.architecture_id == architecture_id


@pytest.mark.unit
def test_parse_rejects_non_string():
    """Test that a non-string identifier is rejected."""
    with pytest.raises(UnknownArchitecture):
        ModelArchitecture.parse(None)


@pytest.mark.unit
def test_architecture_str():
    """Test the display name of an architecture."""
    assert str(ModelArchitecture.GPTNEOX) == "gptneox"
    assert ModelArchitecture.GPTNEOX.value == "gpt_neox"
