"""스페이스 텍스트 채팅 및 접속 현황 모듈.

스페이스(모임방)의 텍스트 채팅방에 입장하고 메시지를 주고받으며,
서버가 브로드캐스트하는 접속 사용자 목록을 추적합니다.

Note:
    서버의 ``receive-message`` 페이로드에는 룸 ID가 없으므로, 룸 ID가 없는
    메시지는 가장 최근에 입장한 스페이스(``current_room``)의 기록에 추가됩니다.
"""

import logging
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from pydantic import ValidationError

from ..shared.dto import ChatMessage
from ..signaling import events
from ..signaling.channel import SignalingChannel
from ..signaling.config import get_signaling_settings

logger = logging.getLogger(__name__)


class SpaceNotJoinedError(KeyError):
    """입장하지 않은 스페이스에 대한 조작."""


class SpaceChat:
    """스페이스 텍스트 채팅 클라이언트.

    Attributes:
        channel (SignalingChannel): 시그널링 채널
        active_users (List[str]): 서버가 마지막으로 알려준 접속 사용자 ID 목록
        current_room (Optional[str]): 가장 최근에 입장한 스페이스 ID
        user_id (Optional[str]): announce()로 알린 로그인 사용자 ID

    Examples:
        >>> chat = SpaceChat(channel)
        >>> await chat.announce("user-1")
        >>> await chat.join("space-7")
        >>> await chat.send("space-7", "이번 주는 3장까지 읽어요")
        >>> chat.history("space-7")
    """

    def __init__(
        self,
        channel: SignalingChannel,
        history_limit: Optional[int] = None,
        max_message_length: Optional[int] = None,
    ):
        settings = get_signaling_settings()
        self.channel = channel
        self.history_limit = history_limit or settings.CHAT_HISTORY_LIMIT
        self.max_message_length = max_message_length or settings.CHAT_MESSAGE_MAX_LENGTH
        self.active_users: List[str] = []
        self.current_room: Optional[str] = None
        self.user_id: Optional[str] = None
        self._histories: Dict[str, Deque[ChatMessage]] = {}

        channel.on(events.ACTIVE_USERS, self._on_active_users)
        channel.on(events.SPACE_MESSAGE_RECEIVED, self._on_message)
        channel.on(events.SPACE_MEMBER_JOINED, self._on_member_joined)

    async def announce(self, user_id: str) -> None:
        """로그인 사용자를 서버에 알립니다 (접속 현황 등록)."""
        if not user_id:
            raise ValueError("user_id가 필요합니다")
        self.user_id = user_id
        await self.channel.emit(events.USER_CONNECTED, user_id)
        logger.info(f"[Chat] 사용자 접속 알림: {user_id}")

    async def join(self, room_id: str) -> None:
        """스페이스 채팅방에 입장합니다. 이미 입장한 방이면 기록을 유지합니다."""
        if not room_id:
            raise ValueError("room_id가 필요합니다")
        self._histories.setdefault(room_id, deque(maxlen=self.history_limit))
        self.current_room = room_id
        await self.channel.emit(events.SPACE_JOIN, room_id)
        logger.info(f"[Chat] 스페이스 입장: {room_id}")

    async def send(self, room_id: str, message: str) -> None:
        """메시지를 전송합니다.

        서버가 방 전체(본인 포함)에 다시 브로드캐스트하므로 로컬 기록에는
        수신 시점에 추가됩니다.

        Raises:
            SpaceNotJoinedError: 입장하지 않은 스페이스일 때
            ValueError: 메시지가 비어있거나 너무 길 때
        """
        if room_id not in self._histories:
            raise SpaceNotJoinedError(room_id)
        text = (message or "").strip()
        if not text:
            raise ValueError("빈 메시지는 보낼 수 없습니다")
        if len(text) > self.max_message_length:
            raise ValueError(f"메시지는 {self.max_message_length}자를 넘을 수 없습니다")
        await self.channel.emit(events.SPACE_MESSAGE, {"room_id": room_id, "message": text})

    def history(self, room_id: str) -> List[ChatMessage]:
        if room_id not in self._histories:
            raise SpaceNotJoinedError(room_id)
        return list(self._histories[room_id])

    @property
    def joined_rooms(self) -> List[str]:
        return list(self._histories.keys())

    async def _on_active_users(self, users: Any) -> None:
        self.active_users = [str(u) for u in users if u is not None] if isinstance(users, list) else []
        logger.debug(f"[Chat] 접속 사용자 {len(self.active_users)}명")

    async def _on_message(self, data: Any) -> None:
        try:
            message = ChatMessage.model_validate(data)
        except ValidationError:
            logger.warning(f"[Chat] 잘못된 메시지 페이로드 무시: {data!r}")
            return

        room_id = message.room_id or self.current_room
        if room_id is None or room_id not in self._histories:
            logger.warning(f"[Chat] 입장하지 않은 방의 메시지 무시 (room={room_id})")
            return
        self._histories[room_id].append(message)

    async def _on_member_joined(self, user_id: Any) -> None:
        logger.info(f"[Chat] 스페이스 {self.current_room}에 {user_id} 입장")
