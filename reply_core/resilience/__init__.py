"""
Resilience package: retry, error tracking and fallback results.
"""

from .error_tracking import ErrorTracker, Operation
from .guard import ResilienceGuard

__all__ = [
    'ErrorTracker',
    'Operation',
    'ResilienceGuard'
]
