"""비디오 룸 세션 예외 정의.

Classes:
    RoomSessionError: 비디오 룸 세션 관련 예외의 기본 클래스
    MediaAcquisitionError: 로컬 카메라/마이크 획득 실패 (세션 진행 불가)
    SessionStateError: 현재 세션 상태에서 허용되지 않는 호출
    SignalingUnavailableError: 시그널링 서버 연결 불가로 룸 입장 실패
"""

from typing import Optional


class RoomSessionError(Exception):
    """비디오 룸 세션 예외의 기본 클래스."""


class MediaAcquisitionError(RoomSessionError):
    """로컬 미디어 장치를 사용할 수 없거나 권한이 거부된 경우.

    이 예외가 발생하면 세션은 시작되지 않으며 시그널링 채널과의
    상호작용도 일어나지 않습니다. 호출자는 사용자에게 안내 메시지를
    보여준 뒤 ``start()``를 다시 호출할 수 있습니다.

    Attributes:
        kind (Optional[str]): 실패한 미디어 종류 ("audio" / "video")
        source (Optional[str]): 실패한 장치 또는 파일 경로
    """

    def __init__(self, message: str, kind: Optional[str] = None, source: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.source = source


class SessionStateError(RoomSessionError):
    """현재 상태에서 허용되지 않는 세션 조작."""


class SignalingUnavailableError(RoomSessionError):
    """시그널링 서버에 join을 보낼 수 없는 경우 (연결 끊김 등)."""
