"""Indexing module - Hash Index"""

from .hash_index import HashIndex, IndexManager

__all__ = ['HashIndex', 'IndexManager']
