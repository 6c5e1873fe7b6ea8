"""
Queue backends.
Reference implementations of the raw push/pop contract.
"""

from clues.backends.memory import InMemoryQueue

__all__ = [
    "InMemoryQueue",
]
