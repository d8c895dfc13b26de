"""
UI service - handles user interface components and interactions.
"""

from .async_runner import AsyncRunner, get_async_runner
from .chat_interface import ChatInterface

__all__ = [
    'AsyncRunner',
    'get_async_runner',
    'ChatInterface'
]
