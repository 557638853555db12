"""
Accumulation of streamed token text into the final output string.
"""


class TokenStreamAccumulator:
    """Buffers streamed token text into the output string.

    `buf` is a lookback buffer that is never reassigned, so every token is
    appended to `out` verbatim in arrival order.

    Attributes:
        buf: Lookback buffer (always empty).
        out: Output text accumulated so far.
        token_count: Number of updates applied.
    """

    def __init__(self) -> None:
        self.buf = ""
        self.out = ""
        self.token_count = 0

    def update(self, token_text: str) -> None:
        """Append one token's text to the output."""
        candidate = self.buf + token_text

        if not self.buf:
            self.out += token_text
        else:
            self.out += candidate

        self.token_count += 1

    def __str__(self) -> str:
        return self.out
