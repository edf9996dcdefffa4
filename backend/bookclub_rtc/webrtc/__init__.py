"""WebRTC 모듈.

로컬 미디어 획득, 원격 참가자별 피어 연결, 룸 단위 메시 코디네이션을 제공합니다.

Classes:
    PeerMeshCoordinator: 룸 입장/협상/퇴장 프로토콜 및 PeerLink 관리
    SessionState: 코디네이터 세션 상태
    PeerLink: 원격 참가자 1명과의 연결 레코드
    RemoteStream: (참가자 ID, 수신 트랙) 쌍
    LocalMediaStream: 로컬 오디오+비디오 스트림
    ToggleableTrack: on/off 가능한 로컬 트랙

Config:
    ice_config: ICE 서버 설정
    media_config: 로컬 미디어 소스 설정
    connection_config: WebRTC 연결 설정
"""

from .errors import RoomSessionError, MediaAcquisitionError, SessionStateError, SignalingUnavailableError
from .tracks import ToggleableTrack
from .media import LocalMediaStream, acquire_local_media
from .peer_link import PeerLink, RemoteStream, create_peer_connection
from .mesh import PeerMeshCoordinator, SessionState
from .config import (
    ice_config,
    media_config,
    connection_config,
    ICEServerConfig,
    MediaConfig,
    ConnectionConfig,
)

__all__ = [
    # Classes
    "PeerMeshCoordinator",
    "SessionState",
    "PeerLink",
    "RemoteStream",
    "LocalMediaStream",
    "ToggleableTrack",
    "acquire_local_media",
    "create_peer_connection",
    # Errors
    "RoomSessionError",
    "MediaAcquisitionError",
    "SessionStateError",
    "SignalingUnavailableError",
    # Config
    "ice_config",
    "media_config",
    "connection_config",
    "ICEServerConfig",
    "MediaConfig",
    "ConnectionConfig",
]
