"""Socket.IO 시그널링 채널 구현.

북클럽 백엔드의 Socket.IO 서버와 통신하며, 서버의 와이어 이벤트 이름을
``signaling.events``의 논리 이벤트로 변환합니다.

Wire Protocol (서버 계약):
    out join-video-room     room_id
    out sending-signal      {userToSignal, callerID, signal}
    out returning-signal    {signal, callerID}
    in  all-users           [socket_id, ...]
    in  user-joined-signal  {signal, callerID}
    in  receiving-returned-signal {signal, id}
    in  user-left-video     socket_id
    out user-connected      user_id
    in  active-users        [user_id, ...]
    out join-room           room_id
    out send-message        {roomId, message}
    in  receive-message     {userId, message, timestamp}
    in  user-joined         user_id

``signal``은 non-trickle ``{type, sdp}`` 세션 설명이므로 브라우저
클라이언트(simple-peer)와 그대로 호환됩니다.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Tuple

import socketio

from . import events
from .channel import EventHandler, SignalingChannel
from .config import SignalingSettings, get_signaling_settings

logger = logging.getLogger(__name__)


class SocketIOSignalingChannel(SignalingChannel):
    """python-socketio ``AsyncClient`` 기반 시그널링 채널.

    재연결 정책은 python-socketio 클라이언트가 담당하며, 최초 연결 이후의
    ``connect`` 이벤트는 논리 이벤트 ``RECONNECTED``로 전달됩니다.

    Attributes:
        settings (SignalingSettings): 서버 주소 및 재연결 설정
        sio (socketio.AsyncClient): Socket.IO 클라이언트

    Examples:
        >>> channel = SocketIOSignalingChannel()
        >>> await channel.connect()
        >>> channel.on(events.ROSTER, handle_roster)
        >>> await channel.emit(events.JOIN, "book-club-42")
    """

    def __init__(
        self,
        settings: Optional[SignalingSettings] = None,
        client: Optional[socketio.AsyncClient] = None,
    ):
        self.settings = settings or get_signaling_settings()
        self.sio = client or socketio.AsyncClient(
            reconnection=self.settings.RECONNECTION,
            reconnection_attempts=self.settings.RECONNECTION_ATTEMPTS,
            reconnection_delay=self.settings.RECONNECTION_DELAY,
            logger=False,
        )
        self._handlers: Dict[str, EventHandler] = {}
        self._connected_once = False
        # engineio가 메시지마다 별도 태스크로 핸들러를 실행하므로 도착 순서를 보장하기 위해 직렬화
        self._dispatch_lock = asyncio.Lock()

        self._outbound: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
            events.JOIN: ("join-video-room", lambda room_id: room_id),
            events.OFFER: ("sending-signal", self._encode_offer),
            events.ANSWER: ("returning-signal", self._encode_answer),
            events.USER_CONNECTED: ("user-connected", lambda user_id: user_id),
            events.SPACE_JOIN: ("join-room", lambda room_id: room_id),
            events.SPACE_MESSAGE: ("send-message", self._encode_space_message),
        }
        self._register_wire_handlers()

    # ------------------------------------------------------------------
    # SignalingChannel
    # ------------------------------------------------------------------

    @property
    def local_id(self) -> Optional[str]:
        if not self.sio.connected:
            return None
        return self.sio.get_sid()

    @property
    def connected(self) -> bool:
        return bool(self.sio.connected)

    async def emit(self, event: str, payload: Any = None) -> None:
        if event not in self._outbound:
            raise ValueError(f"지원하지 않는 시그널링 이벤트: {event}")
        wire_event, encode = self._outbound[event]
        await self.sio.emit(wire_event, encode(payload))
        logger.debug(f"[Signaling] emit {wire_event}")

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers[event] = handler

    def off(self, event: str) -> None:
        self._handlers.pop(event, None)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """시그널링 서버에 연결합니다.

        Raises:
            socketio.exceptions.ConnectionError: 서버에 연결할 수 없을 때
        """
        auth = {"token": self.settings.SOCKET_TOKEN} if self.settings.SOCKET_TOKEN else None
        logger.info(f"[Signaling] 서버 연결 중: {self.settings.SOCKET_URL}")
        await self.sio.connect(
            self.settings.SOCKET_URL,
            auth=auth,
            transports=self.settings.transports,
            wait_timeout=self.settings.CONNECT_TIMEOUT,
        )

    async def disconnect(self) -> None:
        if self.sio.connected:
            await self.sio.disconnect()
            logger.info("[Signaling] 서버 연결 종료")

    # ------------------------------------------------------------------
    # Wire handlers
    # ------------------------------------------------------------------

    def _register_wire_handlers(self) -> None:
        self.sio.on("connect", self._on_connect)
        self.sio.on("disconnect", self._on_disconnect)
        self.sio.on("connect_error", self._on_connect_error)
        self.sio.on("all-users", self._on_all_users)
        self.sio.on("user-joined-signal", self._on_user_joined_signal)
        self.sio.on("receiving-returned-signal", self._on_receiving_returned_signal)
        self.sio.on("user-left-video", self._on_user_left_video)
        self.sio.on("active-users", self._on_active_users)
        self.sio.on("receive-message", self._on_receive_message)
        self.sio.on("user-joined", self._on_user_joined)

    async def _on_connect(self) -> None:
        if self._connected_once:
            logger.warning(f"[Signaling] 재연결됨: sid={self.local_id}")
            await self._dispatch(events.RECONNECTED, None)
        else:
            self._connected_once = True
            logger.info(f"[Signaling] 연결됨: sid={self.local_id}")

    async def _on_disconnect(self, reason: Any = None) -> None:
        logger.warning(f"[Signaling] 연결 끊김 (reason={reason})")

    async def _on_connect_error(self, data: Any = None) -> None:
        logger.error(f"[Signaling] 연결 오류: {data}")

    async def _on_all_users(self, users: Any) -> None:
        await self._dispatch(events.ROSTER, list(users or []))

    async def _on_user_joined_signal(self, data: Any) -> None:
        if not isinstance(data, dict):
            logger.warning("[Signaling] 잘못된 user-joined-signal 페이로드 무시")
            return
        await self._dispatch(events.OFFER, {"from": data.get("callerID"), "description": data.get("signal")})

    async def _on_receiving_returned_signal(self, data: Any) -> None:
        if not isinstance(data, dict):
            logger.warning("[Signaling] 잘못된 receiving-returned-signal 페이로드 무시")
            return
        await self._dispatch(events.ANSWER, {"from": data.get("id"), "description": data.get("signal")})

    async def _on_user_left_video(self, participant_id: Any) -> None:
        await self._dispatch(events.PARTICIPANT_LEFT, participant_id)

    async def _on_active_users(self, users: Any) -> None:
        await self._dispatch(events.ACTIVE_USERS, list(users or []))

    async def _on_receive_message(self, data: Any) -> None:
        await self._dispatch(events.SPACE_MESSAGE_RECEIVED, data)

    async def _on_user_joined(self, user_id: Any) -> None:
        await self._dispatch(events.SPACE_MEMBER_JOINED, user_id)

    async def _dispatch(self, event: str, payload: Any) -> None:
        async with self._dispatch_lock:
            handler = self._handlers.get(event)
            if handler is None:
                logger.debug(f"[Signaling] 핸들러 없는 이벤트 무시: {event}")
                return
            try:
                await handler(payload)
            except Exception as e:
                logger.error(f"[Signaling] {event} 핸들러 오류: {type(e).__name__}: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Encoders
    # ------------------------------------------------------------------

    def _encode_offer(self, payload: dict) -> dict:
        return {
            "userToSignal": payload["to"],
            "callerID": self.local_id,
            "signal": payload["description"],
        }

    @staticmethod
    def _encode_answer(payload: dict) -> dict:
        # 서버는 callerID(원래 offer를 보낸 참가자)에게 응답을 전달
        return {"signal": payload["description"], "callerID": payload["to"]}

    @staticmethod
    def _encode_space_message(payload: dict) -> dict:
        return {"roomId": payload["room_id"], "message": payload["message"]}
