"""스페이스 채팅 및 접속 현황 API 라우터."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from bookclub_rtc import ChatMessage, SpaceNotJoinedError
from .deps import get_space_chat, verify_auth_header

router = APIRouter(prefix="/api", tags=["spaces"], dependencies=[Depends(verify_auth_header)])


class SendMessageRequest(BaseModel):
    """메시지 전송 요청 모델."""
    message: str


class AnnounceRequest(BaseModel):
    """접속 알림 요청 모델."""
    user_id: str


@router.get("/presence")
async def get_presence():
    """접속 중인 사용자 목록을 조회합니다."""
    chat = get_space_chat()
    return {"user_id": chat.user_id, "active_users": chat.active_users}


@router.post("/presence")
async def announce_presence(request: AnnounceRequest):
    """로그인 사용자를 서버에 알립니다."""
    chat = get_space_chat()
    try:
        await chat.announce(request.user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"user_id": chat.user_id}


@router.post("/spaces/{room_id}/join")
async def join_space(room_id: str):
    """스페이스 채팅방에 입장합니다."""
    chat = get_space_chat()
    await chat.join(room_id)
    return {"room_id": room_id, "joined_rooms": chat.joined_rooms}


@router.post("/spaces/{room_id}/messages", status_code=202)
async def send_message(room_id: str, request: SendMessageRequest):
    """스페이스에 메시지를 전송합니다.

    Raises:
        HTTPException: 404 입장하지 않은 스페이스, 400 빈 메시지/길이 초과
    """
    chat = get_space_chat()
    try:
        await chat.send(room_id, request.message)
    except SpaceNotJoinedError:
        raise HTTPException(status_code=404, detail=f"Space '{room_id}' not joined")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "sent"}


@router.get("/spaces/{room_id}/messages", response_model=List[ChatMessage])
async def get_messages(room_id: str):
    """스페이스 메시지 기록을 조회합니다."""
    chat = get_space_chat()
    try:
        return chat.history(room_id)
    except SpaceNotJoinedError:
        raise HTTPException(status_code=404, detail=f"Space '{room_id}' not joined")
