"""
Per-token feedback decisions.

`decide` maps each token event to CONTINUE or HALT. Its one side effect is
updating the accumulator with the event's text, which always happens before
the decision is returned.
"""

from stream_infer_lite.core.accumulator import TokenStreamAccumulator
from stream_infer_lite.core.events import InferenceFeedback, TokenEvent, TokenEventKind


def decide(event: TokenEvent, accumulator: TokenStreamAccumulator) -> InferenceFeedback:
    """Decide whether generation continues after `event`.

    Args:
        event: The token event just produced.
        accumulator: Receives the text of INFERRED events.

    Returns:
        HALT for END_OF_SEQUENCE, CONTINUE otherwise.
    """
    if event.kind == TokenEventKind.INFERRED:
        accumulator.update(event.text)
        return InferenceFeedback.CONTINUE

    if event.kind == TokenEventKind.END_OF_SEQUENCE:
        return InferenceFeedback.HALT

    return InferenceFeedback.CONTINUE


class FeedbackController:
    """Feedback callable bound to one accumulator.

    Attributes:
        accumulator: Accumulator updated by INFERRED events.
        events_seen: Number of events processed.
    """

    def __init__(self, accumulator: TokenStreamAccumulator) -> None:
        self.accumulator = accumulator
        self.events_seen = 0

    def __call__(self, event: TokenEvent) -> InferenceFeedback:
        self.events_seen += 1
        return decide(event, self.accumulator)
