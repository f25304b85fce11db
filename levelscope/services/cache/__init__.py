"""
Cache module for levelscope.

Provides an in-memory LRU for analysis results.
"""

from levelscope.services.cache.memory import ResultCache, fingerprint

__all__ = [
    "ResultCache",
    "fingerprint",
]
