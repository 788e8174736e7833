"""Configuration module for cubicmem."""

from cubicmem.config.loader import get_config_path, load_config, save_config
from cubicmem.config.schema import Config, LoggingConfig, MemoryConfig

__all__ = ["Config", "LoggingConfig", "MemoryConfig", "load_config", "save_config", "get_config_path"]
