"""시그널링/채팅 모듈 설정.

Socket.IO 서버 주소, 재연결 정책, 채팅 제한 등 시그널링 채널 설정.
"""

import logging
from typing import List, Optional
from functools import lru_cache
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# .env 파일 로드
_env_path = Path(__file__).parent.parent.parent / "config" / ".env"
load_dotenv(_env_path)

_ALLOWED_TRANSPORTS = ("websocket", "polling")


class SignalingSettings(BaseSettings):
    """시그널링 채널 설정 클래스.

    환경 변수를 Python 객체로 매핑하고 유효성을 검증합니다.
    """

    # Socket.IO 서버 설정
    SOCKET_URL: str = Field(
        default="http://localhost:5000",
        description="Socket.IO 시그널링 서버 URL"
    )

    SOCKET_TOKEN: Optional[str] = Field(
        default=None,
        description="연결 시 auth 페이로드로 전달할 토큰"
    )

    SOCKET_TRANSPORTS: str = Field(
        default="websocket",
        description="사용할 전송 방식 (쉼표 구분: websocket, polling)"
    )

    CONNECT_TIMEOUT: float = Field(
        default=10.0,
        description="연결 대기 타임아웃 (초)"
    )

    # 재연결 정책
    RECONNECTION: bool = Field(
        default=True,
        description="연결이 끊기면 자동 재연결"
    )

    RECONNECTION_ATTEMPTS: int = Field(
        default=5,
        description="최대 재연결 시도 횟수 (0이면 무제한)"
    )

    RECONNECTION_DELAY: float = Field(
        default=1.0,
        description="재연결 시도 간 대기 시간 (초)"
    )

    # 스페이스 채팅 설정
    CHAT_HISTORY_LIMIT: int = Field(
        default=200,
        description="스페이스별 보관할 최대 메시지 수"
    )

    CHAT_MESSAGE_MAX_LENGTH: int = Field(
        default=2000,
        description="메시지 최대 길이 (문자)"
    )

    @field_validator('SOCKET_URL')
    @classmethod
    def validate_socket_url(cls, v: str) -> str:
        """서버 URL 유효성 검증"""
        if not v.startswith(("http://", "https://")):
            raise ValueError("SOCKET_URL은 http:// 또는 https://로 시작해야 합니다.")
        return v.rstrip("/")

    @field_validator('SOCKET_TRANSPORTS')
    @classmethod
    def validate_transports(cls, v: str) -> str:
        """전송 방식 유효성 검증"""
        transports = [t.strip().lower() for t in v.split(",") if t.strip()]
        if not transports or any(t not in _ALLOWED_TRANSPORTS for t in transports):
            raise ValueError(f"SOCKET_TRANSPORTS는 {list(_ALLOWED_TRANSPORTS)} 중에서 선택해야 합니다.")
        return ",".join(transports)

    @field_validator('CHAT_HISTORY_LIMIT', 'CHAT_MESSAGE_MAX_LENGTH')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """양수 검증"""
        if v <= 0:
            raise ValueError("0보다 커야 합니다.")
        return v

    @property
    def transports(self) -> List[str]:
        return self.SOCKET_TRANSPORTS.split(",")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_signaling_settings() -> SignalingSettings:
    """설정 싱글톤 인스턴스 반환.

    Returns:
        SignalingSettings: 설정 객체
    """
    return SignalingSettings()


# 전역 settings 객체
signaling_settings = get_signaling_settings()

# 로그 출력
logger.info(f"[Signaling Config] .env 경로: {_env_path} (존재: {_env_path.exists()})")
logger.info(f"[Signaling Config] 서버 URL: {signaling_settings.SOCKET_URL}")
logger.info(f"[Signaling Config] 재연결: {signaling_settings.RECONNECTION} (최대 {signaling_settings.RECONNECTION_ATTEMPTS}회)")
