"""Example running the built-in prompt against the configured model.

Set MODEL_PATH (and optionally MODEL_ARCHITECTURE) in the environment or a
.env file before running.
"""

import logging
import sys

from stream_infer_lite import language_model
from stream_infer_lite.errors import ConfigurationError, LoadError
from stream_infer_lite.utils import setup_logger


def main():
    """Load the model, generate, and print the output with its stats."""
    setup_logger(level=logging.INFO)

    try:
        print(language_model())
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)
    except LoadError as e:
        print(e, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
