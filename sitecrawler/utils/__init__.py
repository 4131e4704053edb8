"""
Utility modules for the crawler.
"""

from .config import Config, ConfigError, ConfigManager, load_config
from .url import InvalidURLError, validate_seed_url

__all__ = ['Config', 'ConfigError', 'ConfigManager', 'load_config',
           'InvalidURLError', 'validate_seed_url']
