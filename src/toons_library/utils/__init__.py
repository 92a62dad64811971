# src/toons_library/utils/__init__.py

from .headless_detection import is_headless_environment
from .resilient_io import safe_write_json

__all__ = [
    "is_headless_environment",
    "safe_write_json",
]
