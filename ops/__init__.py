"""
Operations package for the Voter Aggregates Pipeline

This package centralizes the operational tools:
- Configuration management
- The command-line driver for the aggregation pipeline

The Config class is exposed at the package level for convenient imports:
    from ops import Config
"""

from .config_loader import Config

__all__ = ["Config"]
