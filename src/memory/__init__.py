"""
Conversation memory: recording messages and recalling related earlier turns.
"""

from .recorder import MemoryRecorder, MemoryStore
from .retriever import MemoryRetriever

__all__ = [
    "MemoryRecorder",
    "MemoryRetriever",
    "MemoryStore",
]
