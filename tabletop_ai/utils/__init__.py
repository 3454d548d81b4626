"""Utility helpers shared across the package."""

from tabletop_ai.utils.logging import setup_logging, get_logger

__all__ = ['setup_logging', 'get_logger']
