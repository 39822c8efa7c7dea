"""
Configuration package initialization.
"""

from .analyzer_config import CORE_CONFIG, get_section
from .settings import CoreSettings, EnvironmentType, get_settings

__all__ = [
    'CORE_CONFIG',
    'get_section',
    'CoreSettings',
    'EnvironmentType',
    'get_settings'
]
