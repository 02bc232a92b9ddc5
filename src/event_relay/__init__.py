"""
Package: event_relay
Description: HTTP event relay backed by a durable, lease-based queue.

Events posted to /events are stored verbatim as queue messages and
delivered at least once to consumers through the QueueClient or the
/inbox endpoints.
"""

__version__ = "0.1.0"
