"""Building blocks for concurrent services: containers, thread groups, backoff, scheduling, pub/sub, tracing and map-reduce."""

__version__ = "0.1.0"