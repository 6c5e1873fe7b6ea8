"""
Queue Clues

Instrumentation for job queues: correlates the enqueue and dequeue of every job
through attached metadata and publishes lifecycle events, without changing how
the underlying queue stores or delivers work.
"""

__version__ = "1.0.0"
