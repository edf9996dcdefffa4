"""Book Club Video Room Client (FastAPI).

이 모듈은 북클럽 스페이스의 비디오 룸과 텍스트 채팅에 참여하는 헤드리스
클라이언트를 실행합니다. Socket.IO 시그널링 서버에 연결하고, 로컬 제어용
HTTP API로 룸 입장/퇴장과 카메라/마이크 조작을 받습니다.

주요 기능:
    - 룸 기반 WebRTC 메시 (참가자마다 피어 연결 1개)
    - 카메라/마이크 on/off
    - 스페이스 텍스트 채팅 및 접속 현황
    - 종료 시 모든 피어 연결과 로컬 미디어 정리

Architecture:
    - SocketIOSignalingChannel: 시그널링 서버와의 이벤트 채널
    - PeerMeshCoordinator: WebRTC 메시 관리
    - SpaceChat: 스페이스 텍스트 채팅
"""
import logging
from contextlib import asynccontextmanager
import os
from typing import Optional
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from bookclub_rtc import (
    PeerMeshCoordinator, SpaceChat, SocketIOSignalingChannel, RoomSessionError,
)
from bookclub_rtc.webrtc import ice_config
from routes import (
    health_router, session_router, spaces_router, init_clients, verify_auth_header,
)
from dotenv import load_dotenv
from pathlib import Path

# Load 환경변수 로드 variables from config/.env
load_dotenv(Path(__file__).parent / "config" / ".env")


# 로그 설정
os.makedirs("logs", exist_ok=True)
log_filename = f"logs/client_{__import__('datetime').datetime.now().strftime('%Y%m%d')}.log"

# 환경별 로그 레벨 설정 (환경변수로 제어)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENV = os.getenv("ENV", "development")

# 로그 보관 기간 (일) - 기본 60일 (2개월)
LOG_RETENTION_DAYS = int(os.getenv("LOG_RETENTION_DAYS", "60"))

# 시작 시 자동으로 입장할 룸 (선택)
AUTO_JOIN_ROOM: Optional[str] = os.getenv("AUTO_JOIN_ROOM") or None


def cleanup_old_logs(log_dir: str = "logs", retention_days: int = LOG_RETENTION_DAYS) -> int:
    """오래된 로그 파일을 삭제합니다.

    Args:
        log_dir: 로그 디렉토리 경로
        retention_days: 보관 기간 (일)

    Returns:
        삭제된 파일 수
    """
    import glob
    from datetime import datetime, timedelta

    if not os.path.exists(log_dir):
        return 0

    cutoff_date = datetime.now() - timedelta(days=retention_days)
    deleted_count = 0

    for log_file in glob.glob(os.path.join(log_dir, "client_*.log")):
        try:
            date_str = os.path.basename(log_file).replace("client_", "").replace(".log", "")
            if datetime.strptime(date_str, "%Y%m%d") < cutoff_date:
                os.remove(log_file)
                deleted_count += 1
        except (ValueError, OSError):
            continue

    return deleted_count

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(),  # 콘솔 출력
        logging.FileHandler(log_filename, encoding="utf-8"),  # 파일 저장
    ]
)
logger = logging.getLogger(__name__)
logger.info(f"로깅 초기화 완료: level={LOG_LEVEL}, env={ENV}")


# 글로벌 클라이언트 인스턴스
channel = SocketIOSignalingChannel()
coordinator = PeerMeshCoordinator(channel)
space_chat = SpaceChat(channel)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI 앱의 생명주기를 관리하는 컨텍스트 매니저.

    시작 시 시그널링 서버에 연결하고 (설정된 경우) 룸에 자동 입장하며,
    종료 시 세션을 정리하고 연결을 끊습니다.

    Note:
        - 시작: 오래된 로그 정리, 시그널링 연결, AUTO_JOIN_ROOM 입장
        - 종료: 피어 연결/로컬 미디어 정리, 시그널링 연결 종료
    """
    logger.info("북클럽 비디오 룸 클라이언트 시작 중...")

    # 오래된 로그 파일 정리 (2개월 이상)
    deleted_logs = cleanup_old_logs()
    if deleted_logs > 0:
        logger.info(f"오래된 로그 파일 {deleted_logs}개 정리 완료 ({LOG_RETENTION_DAYS}일 이상)")

    # 시그널링 서버 연결 (실패해도 API는 degraded 상태로 실행)
    try:
        await channel.connect()
        logger.info("시그널링 서버 연결 완료")
    except Exception as e:
        logger.warning(f"시그널링 서버 연결 실패, 연결 없이 실행: {e}")

    if AUTO_JOIN_ROOM and channel.connected:
        try:
            await coordinator.start(AUTO_JOIN_ROOM)
        except RoomSessionError as e:
            logger.error(f"자동 입장 실패 (room={AUTO_JOIN_ROOM}): {e}")

    yield

    # 클라이언트 종료
    logger.info("클라이언트 종료 중...")

    # 피어 연결 및 로컬 미디어 정리
    await coordinator.stop()

    # 시그널링 연결 종료
    await channel.disconnect()


app = FastAPI(title="Book Club Video Room Client", lifespan=lifespan)

# CORS - 개발 환경에서는 로컬 네트워크 허용
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"^http://(localhost|127\.0\.0\.1|192\.168\.\d{1,3}\.\d{1,3}):\d+$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 라우터 등록
app.include_router(health_router)
app.include_router(session_router)
app.include_router(spaces_router)

# 라우터에 클라이언트 인스턴스 전달
init_clients(coordinator, space_chat, channel)


@app.get("/")
async def root():
    """서버 상태 확인 엔드포인트 (Health check).

    Returns:
        dict: 서비스 이름과 상태
    """
    return {"status": "ok", "service": "Book Club Video Room Client"}


@app.get("/api/ice-servers")
async def get_ice_servers(_: bool = Depends(verify_auth_header)):
    """설정된 ICE 서버(STUN/TURN) 목록을 반환합니다.

    Environment Variables:
        TURN_SERVER_URL / TURN_USERNAME / TURN_CREDENTIAL: TURN 서버
        STUN_SERVER_URL: 커스텀 STUN 서버 (선택)

    Examples:
        [
            {"urls": "stun:stun.l.google.com:19302"},
            {"urls": "turn:turn.example.com:3478", "username": "u", "credential": "p"}
        ]
    """
    servers = ice_config.as_dicts()
    logger.info(f"ICE 서버 제공: {'STUN + TURN' if ice_config.has_turn_server else 'STUN만 (TURN 미설정)'}")
    return servers


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=os.getenv("APP_HOST", "127.0.0.1"),
        port=int(os.getenv("APP_PORT", "8000")),
        log_level="info",
    )
