"""Example printing tokens as they stream and stopping at the first newline.

Usage: python streaming_feedback_example.py <architecture> <model_path>
"""

import sys

import torch

from stream_infer_lite.core import (
    FeedbackController,
    InferenceFeedback,
    InferenceRequest,
    TokenEventKind,
    TokenStreamAccumulator,
    format_result,
    start_session,
)
from stream_infer_lite.models import load


def main():
    """Stream one completion, halting once a line is finished."""
    architecture, path = sys.argv[1], sys.argv[2]
    model = load(architecture, path)

    accumulator = TokenStreamAccumulator()
    controller = FeedbackController(accumulator)

    def feedback(event):
        decision = controller(event)
        if event.kind == TokenEventKind.INFERRED:
            print(event.text, end="", flush=True)
            if "\n" in event.text:
                return InferenceFeedback.HALT
        return decision

    result = start_session(model).infer(
        InferenceRequest(prompt="The three primary colors are", maximum_token_count=64),
        torch.Generator().manual_seed(0),
        feedback,
    )
    print(format_result(result))


if __name__ == "__main__":
    main()
