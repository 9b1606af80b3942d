"""
Integration boundary: configuration loading.
"""

from .config import CONFIG_SCHEMA, VifConfig, load_config, load_from_env, parse_config

__all__ = [
    "CONFIG_SCHEMA",
    "VifConfig",
    "load_config",
    "load_from_env",
    "parse_config",
]
