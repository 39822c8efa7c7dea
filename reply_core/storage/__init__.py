"""
Storage package: response caches, persisted state and the quality log.
"""

from .cache import ResponseCache, ResponseCacheSet
from .quality_log import QualityLog, QualityLogEntry, QualityStats
from .state_store import (
    EncryptedFileStateStore,
    InMemoryStateStore,
    JsonFileStateStore,
    StateStore,
)

__all__ = [
    'ResponseCache',
    'ResponseCacheSet',
    'QualityLog',
    'QualityLogEntry',
    'QualityStats',
    'EncryptedFileStateStore',
    'InMemoryStateStore',
    'JsonFileStateStore',
    'StateStore'
]
