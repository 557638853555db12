"""
Supported model architectures.

Each architecture is a model family whose checkpoints the execution engine
can load. The enum value is the `model_type` the engine reports in the
checkpoint configuration.
"""

from enum import Enum

from stream_infer_lite.errors import UnknownArchitecture


class ModelArchitecture(Enum):
    """Model families the loader can resolve."""

    BLOOM = "bloom"
    GPT2 = "gpt2"
    GPTJ = "gptj"
    GPTNEOX = "gpt_neox"
    LLAMA = "llama"
    MPT = "mpt"

    @classmethod
    def parse(cls, architecture_id: str) -> "ModelArchitecture":
        """Resolve an architecture identifier.

        Matching is case-insensitive and ignores "-" and "_", so "GPT-NeoX",
        "gpt_neox" and "gptneox" all resolve to GPTNEOX.

        Args:
            architecture_id: Architecture name or engine model_type.

        Returns:
            The matching ModelArchitecture member.

        Raises:
            UnknownArchitecture: If the identifier matches no member.
        """
        if not isinstance(architecture_id, str):
            raise UnknownArchitecture(repr(architecture_id))

        key = _normalize(architecture_id)
        for member in cls:
            if key in (_normalize(member.name), _normalize(member.value)):
                return member

        raise UnknownArchitecture(architecture_id)

    def __str__(self) -> str:
        return self.name.lower()


def _normalize(name: str) -> str:
    return name.strip().lower().replace("-", "").replace("_", "")
