"""
Utilities and helper functions.

Provides:
- Logging configuration
"""

from stream_infer_lite.utils.logger_config import setup_logger

__all__ = ["setup_logger"]
