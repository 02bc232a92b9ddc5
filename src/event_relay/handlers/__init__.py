"""
Module: handlers
Description: Package initialization for API endpoint handlers.

This package contains FastAPI route handlers for the event relay:
- events: Event ingress (POST /events)
- inbox: Consumer peek, lease, acknowledge and dead-letter endpoints

Handlers receive the shared QueueClient through dependency injection.
"""

__all__ = []
