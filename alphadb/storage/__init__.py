"""Storage module - Persistence layer"""

from .engine import TableFiles

__all__ = ['TableFiles']
