"""원격 참가자 1명과의 WebRTC 연결 레코드.

Classes:
    PeerLink: 참가자 ID → 협상 중/완료된 RTCPeerConnection 레코드
    RemoteStream: 렌더링용 (참가자 ID, 수신 트랙) 쌍

Functions:
    create_peer_connection: ICE 서버 설정이 적용된 RTCPeerConnection 생성
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, NamedTuple

from aiortc import (
    MediaStreamTrack,
    RTCConfiguration,
    RTCIceServer,
    RTCPeerConnection,
)

from .config import ICEServerConfig, connection_config, ice_config

logger = logging.getLogger(__name__)


class RemoteStream(NamedTuple):
    """원격 참가자의 수신 스트림."""
    participant_id: str
    tracks: List[MediaStreamTrack]


@dataclass
class PeerLink:
    """원격 참가자 1명과의 연결 레코드.

    코디네이터만 소유하며, 참가자 ID당 최대 1개만 존재합니다.
    ``connection``은 생성 시점부터 제거될 때까지 유효하고, 제거 시
    정확히 한 번 닫힙니다.

    Attributes:
        participant_id (str): 원격 참가자 ID (시그널링 채널이 부여)
        connection (RTCPeerConnection): 이 링크가 소유하는 피어 연결
        initiator (bool): 우리가 offer를 보냈으면 True (기존 참가자),
            상대의 offer에 응답했으면 False (나중에 입장한 참가자)
        remote_tracks (List[MediaStreamTrack]): 지금까지 수신된 원격 트랙
        created_at (float): 생성 시각 (epoch seconds)
    """
    participant_id: str
    connection: RTCPeerConnection
    initiator: bool
    remote_tracks: List[MediaStreamTrack] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    closed: bool = False

    async def close(self, timeout: float = connection_config.CLOSE_TIMEOUT) -> None:
        """연결을 닫습니다. 두 번째 호출부터는 아무 작업도 하지 않습니다."""
        if self.closed:
            return
        self.closed = True
        try:
            await asyncio.wait_for(self.connection.close(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[WebRTC] 피어 {self.participant_id[:8]} 연결 종료 타임아웃 ({timeout}s)")
        logger.info(f"[WebRTC] 피어 {self.participant_id[:8]} 연결 종료")

    def as_remote_stream(self) -> RemoteStream:
        return RemoteStream(self.participant_id, list(self.remote_tracks))


def create_peer_connection(config: ICEServerConfig = ice_config) -> RTCPeerConnection:
    """ICE 서버(STUN/TURN)가 설정된 새 RTCPeerConnection을 생성합니다.

    Args:
        config (ICEServerConfig): ICE 서버 설정 (기본: 환경변수 기반 싱글톤)

    Returns:
        RTCPeerConnection: 새 피어 연결
    """
    ice_servers = []

    # STUN 서버 추가 (커스텀 + Google 백업)
    if config.STUN_SERVER_URL:
        ice_servers.append(RTCIceServer(urls=[config.STUN_SERVER_URL]))
    for stun_url in config.DEFAULT_STUN_SERVERS:
        ice_servers.append(RTCIceServer(urls=[stun_url]))

    # TURN 서버 추가
    if config.has_turn_server:
        ice_servers.append(RTCIceServer(
            urls=[config.TURN_SERVER_URL],
            username=config.TURN_USERNAME,
            credential=config.TURN_CREDENTIAL
        ))
    else:
        logger.debug("[WebRTC] TURN 서버 설정 없음 - STUN만 사용")

    return RTCPeerConnection(configuration=RTCConfiguration(iceServers=ice_servers))
