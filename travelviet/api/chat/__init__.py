"""Streaming chat against the AI planner gateway."""

from .client import CancelToken, MessageStore, StreamingChatClient
from .sse import DeltaEnvelope, SSELineBuffer

__all__ = [
    'StreamingChatClient',
    'CancelToken',
    'MessageStore',
    'SSELineBuffer',
    'DeltaEnvelope',
]
