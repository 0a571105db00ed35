"""
exostore utilities module.

The :py:mod:`exostore.utilities` module provides the configuration, logging and caching utilities
shared across the library.
"""
from .config import exostore_params
from .containers import LRUCache
from .logging import devlog, mylog

__all__ = [
    "exostore_params",
    "devlog",
    "mylog",
    "LRUCache",
]
