"""비디오 룸 세션 API 라우터.

룸 입장/퇴장과 카메라/마이크 on/off 같은 사용자 조작을 코디네이터에 전달합니다.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from bookclub_rtc import (
    MediaAcquisitionError, SessionSnapshot, SessionStateError, SignalingUnavailableError,
)
from .deps import get_coordinator, verify_auth_header

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"], dependencies=[Depends(verify_auth_header)])


class StartSessionRequest(BaseModel):
    """세션 시작 요청 모델."""
    room_id: str = Field(..., min_length=1)


class ToggleRequest(BaseModel):
    """트랙 on/off 요청 모델."""
    enabled: bool


@router.get("", response_model=SessionSnapshot)
async def get_session():
    """현재 세션 상태를 조회합니다."""
    return get_coordinator().snapshot()


@router.post("/start", response_model=SessionSnapshot)
async def start_session(request: StartSessionRequest):
    """비디오 룸에 입장합니다.

    Raises:
        HTTPException: 409 이미 세션 진행 중, 503 카메라/마이크 또는 시그널링 서버 사용 불가
    """
    coordinator = get_coordinator()
    try:
        await coordinator.start(request.room_id)
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MediaAcquisitionError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SignalingUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return coordinator.snapshot()


@router.post("/video", response_model=SessionSnapshot)
async def set_video(request: ToggleRequest):
    """로컬 비디오 송출을 켜거나 끕니다."""
    coordinator = get_coordinator()
    try:
        coordinator.set_local_video_enabled(request.enabled)
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return coordinator.snapshot()


@router.post("/audio", response_model=SessionSnapshot)
async def set_audio(request: ToggleRequest):
    """로컬 오디오 송출을 켜거나 끕니다."""
    coordinator = get_coordinator()
    try:
        coordinator.set_local_audio_enabled(request.enabled)
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return coordinator.snapshot()


@router.post("/leave", response_model=SessionSnapshot)
async def leave_session():
    """룸에서 퇴장합니다. 모든 연결이 닫힌 뒤 응답합니다."""
    coordinator = get_coordinator()
    await coordinator.stop()
    return coordinator.snapshot()
