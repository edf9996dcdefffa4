"""Book club real-time client package.

스페이스 비디오 룸(WebRTC 메시)과 텍스트 채팅을 위한 헤드리스 클라이언트.

Modules:
    webrtc: 로컬 미디어, 피어 연결, 메시 코디네이터
    signaling: Socket.IO 시그널링 채널
    chat: 스페이스 텍스트 채팅 및 접속 현황
    shared: API용 공용 DTO
"""

from .webrtc import (
    PeerMeshCoordinator,
    SessionState,
    PeerLink,
    RemoteStream,
    LocalMediaStream,
    acquire_local_media,
    RoomSessionError,
    MediaAcquisitionError,
    SessionStateError,
    SignalingUnavailableError,
)
from .signaling import SignalingChannel, SocketIOSignalingChannel
from .chat import SpaceChat, SpaceNotJoinedError
from .shared import ChatMessage, RemoteStreamInfo, SessionSnapshot

__all__ = [
    # WebRTC
    "PeerMeshCoordinator",
    "SessionState",
    "PeerLink",
    "RemoteStream",
    "LocalMediaStream",
    "acquire_local_media",
    "RoomSessionError",
    "MediaAcquisitionError",
    "SessionStateError",
    "SignalingUnavailableError",
    # Signaling
    "SignalingChannel",
    "SocketIOSignalingChannel",
    # Chat
    "SpaceChat",
    "SpaceNotJoinedError",
    # Shared DTOs
    "ChatMessage",
    "RemoteStreamInfo",
    "SessionSnapshot",
]
