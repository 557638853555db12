"""
Formatting of inference results for the caller.
"""

from stream_infer_lite.core.session import InferenceResult

STATS_HEADER = "\n\nInference stats:\n"


def format_result(result: InferenceResult) -> str:
    """Render a result: stats under a header on success, the bare error text on failure."""
    if result.is_success:
        return f"{STATS_HEADER}{result.stats}"
    return str(result.error)
