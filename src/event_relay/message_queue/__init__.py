"""
Package: message_queue
Description: Queue client and background lease sweep.

Provides the QueueClient that owns a queue's message set and the
LeaseSweeper that maintains it between requests.
"""

from .client import QueueClient
from .sweeper import LeaseSweeper

__all__ = ["QueueClient", "LeaseSweeper"]
