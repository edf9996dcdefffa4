"""시그널링 모듈.

룸 입장, offer/answer 교환, 참가자 퇴장, 접속 현황, 스페이스 채팅 이벤트를
주고받는 채널을 제공합니다.

Classes:
    SignalingChannel: 논리 이벤트 기반 채널 인터페이스
    SocketIOSignalingChannel: Socket.IO 서버용 구현

Config:
    signaling_settings: 서버 주소 및 재연결 설정
"""

from . import events
from .channel import SignalingChannel, EventHandler
from .config import SignalingSettings, get_signaling_settings, signaling_settings
from .socketio_channel import SocketIOSignalingChannel

__all__ = [
    "events",
    "SignalingChannel",
    "EventHandler",
    "SocketIOSignalingChannel",
    "SignalingSettings",
    "get_signaling_settings",
    "signaling_settings",
]
