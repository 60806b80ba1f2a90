"""
Connection management for the display link.

This package provides:
- A FIFO command queue with single-consumer draining
- A bounded retry policy with linear backoff
- A fixed-interval reconnect schedule
"""

from .command_queue import CommandQueue, PendingCommand
from .retry_policy import RetryPolicy, RetryResult, RetryOutcome, RetryAttempt
from .reconnect_handler import ReconnectSchedule

__all__ = [
    # Queue
    'CommandQueue',
    'PendingCommand',
    # Retry
    'RetryPolicy',
    'RetryResult',
    'RetryOutcome',
    'RetryAttempt',
    # Reconnection
    'ReconnectSchedule',
]
