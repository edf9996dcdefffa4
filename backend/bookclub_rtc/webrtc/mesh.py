"""룸 기반 피어 메시 코디네이터 모듈.

이 모듈은 스페이스 비디오 룸의 클라이언트 측 메시 연결을 관리합니다.
시그널링 채널로 룸에 입장하고, 룸의 다른 참가자마다 WebRTC 연결을 하나씩
협상하며, 종료 시 모든 연결과 로컬 미디어를 정리합니다.

주요 기능:
    - 로컬 오디오/비디오 획득 및 공유
    - 기존 참가자에게 offer 전송 (initiator)
    - 새로 입장한 참가자의 offer에 answer 응답
    - 참가자 퇴장/연결 실패 시 해당 연결만 정리
    - 로컬 트랙 on/off (시그널링 없음)

Architecture:
    - Mesh: 참가자 N명이면 각 클라이언트가 N-1개의 연결을 가짐
    - MediaRelay: 로컬 트랙 하나를 여러 연결에 독립적으로 구독시킴
    - peer_links: 참가자 ID → PeerLink (입장 순서 유지)

Session Flow:
    1. start(room_id): 로컬 미디어 획득 → 핸들러 등록 → join 전송 → ACTIVE
    2. roster 수신: 기존 참가자마다 PeerLink(initiator) 생성 및 offer 전송
    3. offer 수신: PeerLink(responder) 생성 및 answer 전송
    4. answer 수신: 해당 PeerLink에 적용
    5. participant-left 수신: 해당 PeerLink 제거
    6. stop(): 트랙 정지 → 모든 연결 종료 대기 → IDLE

Examples:
    >>> channel = SocketIOSignalingChannel()
    >>> await channel.connect()
    >>> coordinator = PeerMeshCoordinator(channel)
    >>> await coordinator.start("book-club-42")
    >>> coordinator.set_local_video_enabled(False)
    >>> await coordinator.stop()
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from aiortc import RTCPeerConnection, RTCSessionDescription
from aiortc.contrib.media import MediaRelay

from ..shared.dto import RemoteStreamInfo, SessionSnapshot
from ..signaling import events
from ..signaling.channel import SignalingChannel
from .config import connection_config
from .errors import MediaAcquisitionError, SessionStateError, SignalingUnavailableError
from .media import LocalMediaStream, acquire_local_media
from .peer_link import PeerLink, RemoteStream, create_peer_connection

logger = logging.getLogger(__name__)

MediaAcquirer = Callable[[], Awaitable[LocalMediaStream]]
ConnectionFactory = Callable[[], RTCPeerConnection]
RemoteStreamsCallback = Callable[[List[RemoteStream]], Any]


class SessionState(str, Enum):
    """코디네이터 세션 상태."""
    IDLE = "idle"
    ACQUIRING_MEDIA = "acquiring_media"
    JOINING = "joining"
    ACTIVE = "active"
    LEAVING = "leaving"


def _describe(description: RTCSessionDescription) -> dict:
    return {"type": description.type, "sdp": description.sdp}


def _parse_signal(message: Any, expected_type: str) -> Optional[Tuple[str, RTCSessionDescription]]:
    """``{"from", "description"}`` 페이로드를 검증합니다. 형식이 잘못되면 None."""
    if not isinstance(message, dict):
        return None
    participant_id = message.get("from")
    description = message.get("description")
    if not isinstance(participant_id, str) or not participant_id:
        return None
    if not isinstance(description, dict) or description.get("type") != expected_type:
        return None
    sdp = description.get("sdp")
    if not isinstance(sdp, str):
        return None
    return participant_id, RTCSessionDescription(sdp=sdp, type=expected_type)


class PeerMeshCoordinator:
    """룸 하나에 대한 클라이언트 측 피어 메시를 관리하는 클래스.

    모든 상태 변경은 단일 asyncio 이벤트 루프에서 시그널링 이벤트 또는
    호출자 메서드를 통해서만 일어나므로 별도의 락을 사용하지 않습니다.
    이벤트 순서는 시그널링 채널의 전달 순서를 그대로 따릅니다.

    Attributes:
        channel (SignalingChannel): 룸 입장 및 협상 메시지 교환용 채널
        state (SessionState): 현재 세션 상태
        room_id (Optional[str]): 입장한 룸 ID (IDLE이면 None)
        local_stream (Optional[LocalMediaStream]): 이번 세션의 로컬 스트림
        peer_links (Dict[str, PeerLink]): 참가자 ID → PeerLink (입장 순서)
        on_remote_streams_changed (Optional[Callable]): 원격 스트림 목록이
            바뀔 때 호출되는 콜백 (동기/비동기 모두 가능)

    Error Handling:
        - 로컬 미디어 실패: MediaAcquisitionError를 호출자에게 전파, IDLE 유지
        - 피어 단위 실패: 해당 PeerLink만 제거, 재시도 없음
        - 프로토콜 이상 (모르는 피어의 answer, 중복 offer/answer): 경고 로그 후 무시
        - join 전송 실패: 세션 정리 후 SignalingUnavailableError 전파
    """

    def __init__(
        self,
        channel: SignalingChannel,
        media_acquirer: MediaAcquirer = acquire_local_media,
        connection_factory: ConnectionFactory = create_peer_connection,
    ):
        self.channel = channel
        self.state = SessionState.IDLE
        self.room_id: Optional[str] = None
        self.local_stream: Optional[LocalMediaStream] = None
        self.peer_links: Dict[str, PeerLink] = {}
        self.on_remote_streams_changed: Optional[RemoteStreamsCallback] = None

        self._media_acquirer = media_acquirer
        self._connection_factory = connection_factory
        self._relay = MediaRelay()
        self._leaving: Optional[asyncio.Future] = None
        # start/stop 호출마다 증가, 이전 start()가 새 세션을 건드리지 않도록 비교
        self._session_seq = 0
        # 비동기 콜백 태스크가 GC되지 않도록 보관
        self._callback_tasks: Set[asyncio.Task] = set()

        self._handlers = {
            events.ROSTER: self._on_roster,
            events.OFFER: self._on_offer,
            events.ANSWER: self._on_answer,
            events.PARTICIPANT_LEFT: self._on_participant_left,
            events.RECONNECTED: self._on_reconnected,
        }

    # ------------------------------------------------------------------
    # Caller operations
    # ------------------------------------------------------------------

    async def start(self, room_id: str) -> None:
        """룸에 입장합니다.

        IDLE → ACQUIRING_MEDIA → JOINING → ACTIVE 순서로 진행합니다.
        join은 fire-and-forget이며 참가자 목록(roster)을 기다리지 않습니다.

        Args:
            room_id (str): 입장할 룸 ID

        Raises:
            SessionStateError: IDLE 상태가 아닐 때
            ValueError: room_id가 비어있을 때
            MediaAcquisitionError: 카메라/마이크를 사용할 수 없을 때.
                이 경우 join은 전송되지 않고 상태는 IDLE로 돌아갑니다.
            SignalingUnavailableError: join을 전송할 수 없을 때 (세션은 정리됨)
        """
        if self.state != SessionState.IDLE:
            raise SessionStateError(f"이미 세션이 진행 중입니다 (state={self.state.value})")
        if not room_id:
            raise ValueError("room_id가 필요합니다")

        self._session_seq += 1
        session = self._session_seq
        self.state = SessionState.ACQUIRING_MEDIA
        self.room_id = room_id
        self.local_stream = None
        logger.info(f"[WebRTC] 세션 시작: room={room_id}")

        try:
            local_stream = await self._media_acquirer()
        except MediaAcquisitionError as e:
            logger.error(f"[WebRTC] 로컬 미디어 획득 실패: {e}")
            if session == self._session_seq:
                self._reset_idle()
            raise
        except Exception as e:
            logger.error(f"[WebRTC] 로컬 미디어 획득 실패: {type(e).__name__}: {e}", exc_info=True)
            if session == self._session_seq:
                self._reset_idle()
            raise MediaAcquisitionError(f"카메라/마이크를 시작할 수 없습니다: {e}") from e

        if session != self._session_seq:
            # 미디어 획득 중 stop()이 호출됨 (이후 새 세션이 시작됐을 수 있음)
            logger.info(f"[WebRTC] 미디어 획득 중 세션이 종료되어 스트림을 해제합니다: room={room_id}")
            local_stream.stop()
            return

        self.local_stream = local_stream
        self.state = SessionState.JOINING

        # join 응답으로 오는 이벤트를 놓치지 않도록 전송 전에 등록
        for event, handler in self._handlers.items():
            self.channel.on(event, handler)

        try:
            await self.channel.emit(events.JOIN, room_id)
        except Exception as e:
            logger.error(f"[WebRTC] join 전송 실패: room={room_id}", exc_info=True)
            if session == self._session_seq:
                await self.stop()
            raise SignalingUnavailableError(f"시그널링 서버에 연결할 수 없습니다: {e}") from e

        if session == self._session_seq and self.state == SessionState.JOINING:
            self.state = SessionState.ACTIVE
            logger.info(f"[WebRTC] 룸 입장 완료: room={room_id}, local={self._short(self.channel.local_id)}")

    def set_local_video_enabled(self, enabled: bool) -> None:
        """로컬 비디오 트랙 송출 여부를 설정합니다. 시그널링 메시지는 보내지 않습니다."""
        self._require_local_stream().set_video_enabled(enabled)
        logger.info(f"[WebRTC] 로컬 비디오 {'켜짐' if enabled else '꺼짐'}")

    def set_local_audio_enabled(self, enabled: bool) -> None:
        """로컬 오디오 트랙 송출 여부를 설정합니다. 시그널링 메시지는 보내지 않습니다."""
        self._require_local_stream().set_audio_enabled(enabled)
        logger.info(f"[WebRTC] 로컬 오디오 {'켜짐' if enabled else '꺼짐'}")

    async def stop(self) -> None:
        """세션을 종료하고 모든 리소스를 정리합니다.

        로컬 트랙을 정지하고, 모든 PeerLink 연결이 닫힐 때까지 기다린 뒤
        IDLE로 돌아갑니다. IDLE 상태에서 호출하면 아무 작업도 하지 않으며,
        종료 진행 중에 다시 호출하면 진행 중인 종료가 끝날 때까지 기다립니다.
        """
        if self._leaving is not None:
            await self._leaving
            return
        if self.state == SessionState.IDLE:
            return

        self._session_seq += 1
        self._leaving = asyncio.get_running_loop().create_future()
        try:
            await self._teardown()
        finally:
            self._leaving.set_result(None)
            self._leaving = None

    # ------------------------------------------------------------------
    # Read state
    # ------------------------------------------------------------------

    @property
    def remote_streams(self) -> List[RemoteStream]:
        """입장 순서대로 정렬된 (참가자 ID, 수신 트랙) 목록."""
        return [link.as_remote_stream() for link in self.peer_links.values()]

    @property
    def participant_ids(self) -> List[str]:
        return list(self.peer_links.keys())

    def snapshot(self) -> SessionSnapshot:
        """현재 세션 상태를 DTO로 반환합니다."""
        stream = self.local_stream if self.state != SessionState.IDLE else None
        return SessionSnapshot(
            state=self.state.value,
            room_id=self.room_id,
            local_id=self.channel.local_id,
            video_enabled=bool(stream and stream.video.enabled),
            audio_enabled=bool(stream and stream.audio.enabled),
            remote_streams=[
                RemoteStreamInfo(
                    participant_id=link.participant_id,
                    initiator=link.initiator,
                    connection_state=getattr(link.connection, "connectionState", "new"),
                    track_kinds=[track.kind for track in link.remote_tracks],
                )
                for link in self.peer_links.values()
            ],
        )

    # ------------------------------------------------------------------
    # Signalling handlers
    # ------------------------------------------------------------------

    async def _on_roster(self, participant_ids: Any) -> None:
        if not self._accepting_events():
            return
        if not isinstance(participant_ids, (list, tuple)):
            logger.warning(f"[WebRTC] 잘못된 roster 페이로드 무시: {participant_ids!r}")
            return

        logger.info(f"[WebRTC] roster 수신: 기존 참가자 {len(participant_ids)}명")
        for participant_id in participant_ids:
            if not isinstance(participant_id, str) or not participant_id:
                continue
            if participant_id == self.channel.local_id or participant_id in self.peer_links:
                continue
            if not self._accepting_events():
                return
            await self._connect_as_initiator(participant_id)

    async def _on_offer(self, message: Any) -> None:
        if not self._accepting_events():
            return
        parsed = _parse_signal(message, "offer")
        if parsed is None:
            logger.warning("[WebRTC] 잘못된 offer 페이로드 무시")
            return
        participant_id, offer = parsed
        if participant_id in self.peer_links:
            logger.warning(f"[WebRTC] 중복 offer 무시: {self._short(participant_id)}")
            return
        if participant_id == self.channel.local_id:
            return

        link = self._create_link(participant_id, initiator=False)
        pc = link.connection
        try:
            await pc.setRemoteDescription(offer)
            answer = await pc.createAnswer()
            await asyncio.wait_for(
                pc.setLocalDescription(answer), timeout=connection_config.NEGOTIATION_TIMEOUT
            )
            if self.peer_links.get(participant_id) is not link:
                return
            await self.channel.emit(events.ANSWER, {
                "to": participant_id,
                "description": _describe(pc.localDescription),
            })
            logger.info(f"[WebRTC] answer 전송: {self._short(participant_id)}")
        except Exception as e:
            logger.warning(f"[WebRTC] 피어 {self._short(participant_id)} answer 협상 실패: {type(e).__name__}: {e}")
            await self._remove_link(participant_id, expected=link, reason="negotiation failed")

    async def _on_answer(self, message: Any) -> None:
        if not self._accepting_events():
            return
        parsed = _parse_signal(message, "answer")
        if parsed is None:
            logger.warning("[WebRTC] 잘못된 answer 페이로드 무시")
            return
        participant_id, answer = parsed
        link = self.peer_links.get(participant_id)
        if link is None or not link.initiator:
            logger.warning(f"[WebRTC] 알 수 없는 피어의 answer 무시: {self._short(participant_id)}")
            return
        if link.connection.signalingState != "have-local-offer":
            # 이미 협상이 끝난 연결에 다시 도착한 answer
            logger.warning(
                f"[WebRTC] 중복 answer 무시: {self._short(participant_id)} "
                f"(signalingState={link.connection.signalingState})"
            )
            return

        try:
            await link.connection.setRemoteDescription(answer)
            logger.info(f"[WebRTC] answer 적용 완료: {self._short(participant_id)}")
        except Exception as e:
            logger.warning(f"[WebRTC] 피어 {self._short(participant_id)} answer 적용 실패: {type(e).__name__}: {e}")
            await self._remove_link(participant_id, expected=link, reason="negotiation failed")

    async def _on_participant_left(self, participant_id: Any) -> None:
        if not self._accepting_events() or not isinstance(participant_id, str):
            return
        await self._remove_link(participant_id, reason="participant left")

    async def _on_reconnected(self, _payload: Any = None) -> None:
        """시그널링 채널 재연결 처리.

        재연결되면 서버가 새 참가자 ID를 부여하므로 기존 연결은 더 이상
        시그널링으로 도달할 수 없습니다. 모든 PeerLink를 닫고 join을 다시
        보내 새 roster로 메시를 재구성합니다. 로컬 미디어는 유지합니다.
        """
        if self.state != SessionState.ACTIVE:
            return
        logger.warning(f"[WebRTC] 시그널링 재연결 감지, 메시 재구성: room={self.room_id}")
        for participant_id in list(self.peer_links.keys()):
            await self._remove_link(participant_id, reason="signalling reconnected")
        await self.channel.emit(events.JOIN, self.room_id)

    # ------------------------------------------------------------------
    # PeerLink management
    # ------------------------------------------------------------------

    async def _connect_as_initiator(self, participant_id: str) -> None:
        link = self._create_link(participant_id, initiator=True)
        pc = link.connection
        try:
            offer = await pc.createOffer()
            # aiortc는 setLocalDescription에서 ICE 수집을 끝내므로 후보가 SDP에 포함됨 (non-trickle)
            await asyncio.wait_for(
                pc.setLocalDescription(offer), timeout=connection_config.NEGOTIATION_TIMEOUT
            )
            if self.peer_links.get(participant_id) is not link:
                return
            await self.channel.emit(events.OFFER, {
                "to": participant_id,
                "description": _describe(pc.localDescription),
            })
            logger.info(f"[WebRTC] offer 전송: {self._short(participant_id)}")
        except Exception as e:
            logger.warning(f"[WebRTC] 피어 {self._short(participant_id)} offer 협상 실패: {type(e).__name__}: {e}")
            await self._remove_link(participant_id, expected=link, reason="negotiation failed")

    def _create_link(self, participant_id: str, initiator: bool) -> PeerLink:
        pc = self._connection_factory()
        link = PeerLink(participant_id=participant_id, connection=pc, initiator=initiator)

        # 로컬 트랙은 공유 자원이므로 연결마다 독립 구독을 추가
        for track in self.local_stream.tracks:
            pc.addTrack(self._relay.subscribe(track))

        self._bind_connection_events(link)
        self.peer_links[participant_id] = link
        logger.info(
            f"[WebRTC] PeerLink 생성: {self._short(participant_id)} "
            f"(initiator={initiator}, 총 {len(self.peer_links)}개)"
        )
        self._notify_remote_streams_changed()
        return link

    def _bind_connection_events(self, link: PeerLink) -> None:
        pc = link.connection
        participant_id = link.participant_id

        @pc.on("track")
        def on_track(track):
            if self.peer_links.get(participant_id) is not link:
                return
            link.remote_tracks.append(track)
            logger.info(f"[WebRTC] 피어 {self._short(participant_id)} {track.kind} 트랙 수신")
            self._notify_remote_streams_changed()

        @pc.on("connectionstatechange")
        async def on_connection_state_change():
            logger.info(f"[WebRTC] 피어 {self._short(participant_id)} 연결 상태: {pc.connectionState}")
            if pc.connectionState == "failed":
                await self._remove_link(participant_id, expected=link, reason="connection failed")

    async def _remove_link(
        self,
        participant_id: str,
        expected: Optional[PeerLink] = None,
        reason: str = "",
    ) -> bool:
        """PeerLink를 제거하고 연결을 닫습니다. 이미 없으면 아무 작업도 하지 않습니다."""
        link = self.peer_links.get(participant_id)
        if link is None or (expected is not None and link is not expected):
            return False

        del self.peer_links[participant_id]
        try:
            await link.close()
        except Exception as e:
            logger.warning(f"[WebRTC] 피어 {self._short(participant_id)} 연결 종료 오류: {e}")
        logger.info(
            f"[WebRTC] PeerLink 제거: {self._short(participant_id)} ({reason}), "
            f"남은 연결 {len(self.peer_links)}개"
        )
        self._notify_remote_streams_changed()
        return True

    async def _teardown(self) -> None:
        self.state = SessionState.LEAVING
        logger.info(f"[WebRTC] 세션 종료 중: room={self.room_id}, 연결 {len(self.peer_links)}개")

        for event in self._handlers:
            self.channel.off(event)

        if self.local_stream is not None:
            self.local_stream.stop()

        links = list(self.peer_links.values())
        self.peer_links.clear()
        results = await asyncio.gather(*(link.close() for link in links), return_exceptions=True)
        for link, result in zip(links, results):
            if isinstance(result, Exception):
                logger.warning(f"[WebRTC] 피어 {self._short(link.participant_id)} 연결 종료 오류: {result}")
        if links:
            self._notify_remote_streams_changed()

        self.room_id = None
        self.state = SessionState.IDLE
        logger.info("[WebRTC] 세션 종료 완료")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _accepting_events(self) -> bool:
        return self.state in (SessionState.JOINING, SessionState.ACTIVE)

    def _require_local_stream(self) -> LocalMediaStream:
        if self.local_stream is None or self.state in (SessionState.IDLE, SessionState.LEAVING):
            raise SessionStateError("진행 중인 세션이 없습니다")
        return self.local_stream

    def _reset_idle(self) -> None:
        self.room_id = None
        self.state = SessionState.IDLE

    def _notify_remote_streams_changed(self) -> None:
        callback = self.on_remote_streams_changed
        if callback is None:
            return
        try:
            result = callback(self.remote_streams)
        except Exception:
            logger.error("[WebRTC] remote stream 콜백 오류", exc_info=True)
            return
        if asyncio.iscoroutine(result):
            task = asyncio.ensure_future(result)
            self._callback_tasks.add(task)
            task.add_done_callback(self._on_callback_done)

    def _on_callback_done(self, task: asyncio.Task) -> None:
        self._callback_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("[WebRTC] remote stream 콜백 오류", exc_info=error)

    @staticmethod
    def _short(participant_id: Optional[str]) -> str:
        return participant_id[:8] if participant_id else "-"
