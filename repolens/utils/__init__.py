"""Shared utilities."""

from repolens.utils.config import load_config
from repolens.utils.logging import get_logger, setup_logging

__all__ = ["get_logger", "load_config", "setup_logging"]
