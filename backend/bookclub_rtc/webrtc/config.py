"""WebRTC 모듈 설정.

TURN/STUN 서버, 로컬 미디어 소스, 연결 타임아웃 등 WebRTC 관련 상수와
환경변수 기반 설정.
"""

import os
import logging
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, List

# 환경변수 로드 (상위에서 이미 로드됨)
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_env_path = Path(__file__).parent.parent.parent / "config" / ".env"
load_dotenv(_env_path)


# ============================================================
# ICE Server 설정
# ============================================================

@dataclass(frozen=True)
class ICEServerConfig:
    """ICE 서버 설정."""

    # TURN 서버
    TURN_SERVER_URL: Optional[str] = os.getenv("TURN_SERVER_URL")
    TURN_USERNAME: Optional[str] = os.getenv("TURN_USERNAME")
    TURN_CREDENTIAL: Optional[str] = os.getenv("TURN_CREDENTIAL")

    # STUN 서버
    STUN_SERVER_URL: Optional[str] = os.getenv("STUN_SERVER_URL")

    # 기본 공개 STUN 서버 (fallback)
    DEFAULT_STUN_SERVERS: tuple = (
        "stun:stun.l.google.com:19302",
        "stun:stun1.l.google.com:19302",
    )

    @property
    def has_turn_server(self) -> bool:
        """TURN 서버 설정 완료 여부."""
        return all([self.TURN_SERVER_URL, self.TURN_USERNAME, self.TURN_CREDENTIAL])

    def as_dicts(self) -> List[dict]:
        """브라우저 RTCPeerConnection 형식의 ICE 서버 목록.

        Returns:
            List[dict]: ``{"urls": ..., "username": ..., "credential": ...}`` 리스트
                (STUN 커스텀 → Google STUN → TURN 순서)
        """
        servers = []
        if self.STUN_SERVER_URL:
            servers.append({"urls": self.STUN_SERVER_URL})
        for stun_url in self.DEFAULT_STUN_SERVERS:
            servers.append({"urls": stun_url})
        if self.has_turn_server:
            servers.append({
                "urls": self.TURN_SERVER_URL,
                "username": self.TURN_USERNAME,
                "credential": self.TURN_CREDENTIAL,
            })
        return servers


# ============================================================
# 로컬 미디어 소스 설정
# ============================================================

# 장치 대신 aiortc 기본 트랙(무음/단색 프레임)을 사용하는 소스 이름
SYNTHETIC_SOURCE = "synthetic"


@dataclass(frozen=True)
class MediaConfig:
    """로컬 카메라/마이크 소스 설정.

    SOURCE 값은 ffmpeg 입력 이름입니다 (예: ``/dev/video0`` + ``v4l2``,
    ``default`` + ``pulse``, 또는 미디어 파일 경로).
    """

    VIDEO_SOURCE: str = os.getenv("MEDIA_VIDEO_SOURCE") or SYNTHETIC_SOURCE
    VIDEO_FORMAT: Optional[str] = os.getenv("MEDIA_VIDEO_FORMAT") or None
    VIDEO_SIZE: str = os.getenv("MEDIA_VIDEO_SIZE", "640x480")
    FRAMERATE: str = os.getenv("MEDIA_FRAMERATE", "30")

    AUDIO_SOURCE: str = os.getenv("MEDIA_AUDIO_SOURCE") or SYNTHETIC_SOURCE
    AUDIO_FORMAT: Optional[str] = os.getenv("MEDIA_AUDIO_FORMAT") or None

    @property
    def video_options(self) -> dict:
        """ffmpeg 비디오 입력 옵션."""
        return {"video_size": self.VIDEO_SIZE, "framerate": self.FRAMERATE}


# ============================================================
# WebRTC 연결 설정
# ============================================================

@dataclass(frozen=True)
class ConnectionConfig:
    """WebRTC 연결 관련 설정."""

    # offer/answer 생성 + ICE 수집 타임아웃 (초)
    NEGOTIATION_TIMEOUT: float = float(os.getenv("NEGOTIATION_TIMEOUT", "15"))

    # 피어 연결 종료 대기 타임아웃 (초)
    CLOSE_TIMEOUT: float = float(os.getenv("PEER_CLOSE_TIMEOUT", "5"))


# ============================================================
# 싱글톤 인스턴스
# ============================================================

ice_config = ICEServerConfig()
media_config = MediaConfig()
connection_config = ConnectionConfig()


# ============================================================
# 설정 로드 확인 로그
# ============================================================

logger.info(f"[WebRTC Config] .env 경로: {_env_path} (존재: {_env_path.exists()})")
logger.info(f"[WebRTC Config] TURN 서버 설정 완료: {ice_config.has_turn_server}")
if ice_config.STUN_SERVER_URL:
    logger.info(f"[WebRTC Config] STUN URL: {ice_config.STUN_SERVER_URL}")
else:
    logger.info(f"[WebRTC Config] STUN URL: 기본 Google STUN 사용")
logger.info(f"[WebRTC Config] 비디오 소스: {media_config.VIDEO_SOURCE}, 오디오 소스: {media_config.AUDIO_SOURCE}")
