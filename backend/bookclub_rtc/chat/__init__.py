"""스페이스 텍스트 채팅 및 접속 현황 모듈."""

from .space_chat import SpaceChat, SpaceNotJoinedError

__all__ = [
    "SpaceChat",
    "SpaceNotJoinedError",
]
