"""
Module: utils
Description: Package initialization for utility functions.

This package contains shared utility functions and helpers used
throughout the event relay.

Current utilities:
- logger: Structured logging configuration and helpers
"""

__all__ = []
