"""공유 의존성 모듈.

라우터들이 공통으로 사용하는 의존성과 클라이언트 인스턴스 참조를 정의합니다.
"""

import logging
import os
from typing import Optional, TYPE_CHECKING

from fastapi import Header, HTTPException

if TYPE_CHECKING:
    from bookclub_rtc import PeerMeshCoordinator, SignalingChannel, SpaceChat

logger = logging.getLogger(__name__)

# 접근 비밀번호 설정
ACCESS_PASSWORD = os.getenv("ACCESS_PASSWORD", "")

# 글로벌 클라이언트 참조 (app.py에서 설정됨)
_coordinator: Optional["PeerMeshCoordinator"] = None
_space_chat: Optional["SpaceChat"] = None
_channel: Optional["SignalingChannel"] = None


def init_clients(coordinator: "PeerMeshCoordinator", space_chat: "SpaceChat", channel: "SignalingChannel"):
    """클라이언트 인스턴스를 초기화합니다.

    app.py에서 호출하여 글로벌 참조를 설정합니다.

    Args:
        coordinator: PeerMeshCoordinator 인스턴스
        space_chat: SpaceChat 인스턴스
        channel: 두 클라이언트가 공유하는 시그널링 채널
    """
    global _coordinator, _space_chat, _channel
    _coordinator = coordinator
    _space_chat = space_chat
    _channel = channel
    logger.info("라우터 클라이언트 초기화 완료")


def get_coordinator() -> "PeerMeshCoordinator":
    if _coordinator is None:
        raise HTTPException(status_code=503, detail="Client not ready")
    return _coordinator


def get_space_chat() -> "SpaceChat":
    if _space_chat is None:
        raise HTTPException(status_code=503, detail="Client not ready")
    return _space_chat


def get_channel() -> Optional["SignalingChannel"]:
    return _channel


async def verify_auth_header(authorization: Optional[str] = Header(None)) -> bool:
    """Authorization 헤더를 검증합니다.

    Args:
        authorization: Authorization 헤더 값

    Returns:
        bool: 검증 성공 시 True

    Raises:
        HTTPException: 인증 실패 시
    """
    if not ACCESS_PASSWORD:
        return True
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization format")
    if parts[1] != ACCESS_PASSWORD:
        raise HTTPException(status_code=401, detail="Invalid password")
    return True
