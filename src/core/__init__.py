"""
Core Module - Shared infrastructure used across the engine, storage and CLI.

Components:
- log_config: loguru sink setup
"""

from src.core.log_config import set_log_level, setup_logging

__all__ = ["set_log_level", "setup_logging"]
