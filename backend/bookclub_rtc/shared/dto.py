"""Lightweight shared DTOs exposed to the control API."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RemoteStreamInfo(BaseModel):
    """원격 참가자 1명의 연결/스트림 상태."""

    participant_id: str
    initiator: bool
    connection_state: str = Field(default="new", description="RTCPeerConnection.connectionState")
    track_kinds: List[str] = Field(default_factory=list, description="수신된 트랙 종류")


class SessionSnapshot(BaseModel):
    """비디오 룸 세션의 현재 상태."""

    state: str
    room_id: Optional[str] = None
    local_id: Optional[str] = None
    video_enabled: bool = False
    audio_enabled: bool = False
    remote_streams: List[RemoteStreamInfo] = Field(default_factory=list, description="입장 순서")


class ChatMessage(BaseModel):
    """스페이스 텍스트 채팅 메시지 (서버 ``receive-message`` 페이로드)."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    message: str
    timestamp: Optional[str] = None
    room_id: Optional[str] = Field(default=None, alias="roomId")
