"""Shared DTOs and type definitions used across services.

Only lightweight, common data models should live here. Do not place
aiortc objects or socket clients in this package.
"""

from .dto import ChatMessage, RemoteStreamInfo, SessionSnapshot

__all__ = [
    "ChatMessage",
    "RemoteStreamInfo",
    "SessionSnapshot",
]
