"""Health Check API 라우터.

시그널링 연결과 비디오 세션 상태 확인을 위한 엔드포인트를 제공합니다.
"""

from fastapi import APIRouter

from .deps import get_channel, get_coordinator

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
async def health_check():
    """전체 클라이언트 상태를 확인합니다.

    Returns:
        dict: 시그널링 연결 상태와 비디오 세션 상태
    """
    channel = get_channel()
    signaling_status = "connected" if channel is not None and channel.connected else "disconnected"
    session_state = get_coordinator().state.value

    return {
        "status": "ok" if signaling_status == "connected" else "degraded",
        "services": {
            "signaling": signaling_status,
        },
        "session": session_state,
    }
