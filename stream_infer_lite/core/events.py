"""
Token events and feedback signals exchanged between a session and its
feedback callable.
"""

from dataclasses import dataclass
from enum import Enum


class TokenEventKind(Enum):
    """Kind of a token event."""

    INFERRED = "inferred"  # A newly generated token
    END_OF_SEQUENCE = "end_of_sequence"  # The model emitted its EOS marker
    PROMPT = "prompt"  # A prompt token being fed
    SNAPSHOT = "snapshot"  # A previous token being played back


class InferenceFeedback(Enum):
    """Decision returned for each token event."""

    CONTINUE = "continue"
    HALT = "halt"


@dataclass(frozen=True)
class TokenEvent:
    """A single event in the token stream.

    Attributes:
        kind: What the event reports.
        text: Token text; empty for END_OF_SEQUENCE.
    """

    kind: TokenEventKind
    text: str = ""

    @classmethod
    def inferred(cls, text: str) -> "TokenEvent":
        return cls(TokenEventKind.INFERRED, text)

    @classmethod
    def end_of_sequence(cls) -> "TokenEvent":
        return cls(TokenEventKind.END_OF_SEQUENCE)

    @classmethod
    def prompt(cls, text: str) -> "TokenEvent":
        return cls(TokenEventKind.PROMPT, text)

    @classmethod
    def snapshot(cls, text: str) -> "TokenEvent":
        return cls(TokenEventKind.SNAPSHOT, text)

    @property
    def is_other(self) -> bool:
        """True for control events that carry no generated text."""
        return self.kind in (TokenEventKind.PROMPT, TokenEventKind.SNAPSHOT)
