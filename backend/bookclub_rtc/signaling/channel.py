"""시그널링 채널 인터페이스.

코디네이터가 의존하는 최소한의 양방향 이벤트 채널 계약입니다.
채널은 수신 이벤트를 도착 순서대로 하나씩 핸들러에 전달해야 하며,
재연결 정책도 채널이 책임집니다.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

EventHandler = Callable[[Any], Awaitable[None]]


class SignalingChannel(ABC):
    """논리 이벤트 이름(``signaling.events``) 기반 시그널링 채널."""

    @property
    @abstractmethod
    def local_id(self) -> Optional[str]:
        """이 클라이언트의 참가자 ID. 연결 전에는 None."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """채널 연결 여부."""

    @abstractmethod
    async def emit(self, event: str, payload: Any = None) -> None:
        """논리 이벤트를 전송합니다."""

    @abstractmethod
    def on(self, event: str, handler: EventHandler) -> None:
        """수신 이벤트 핸들러를 등록합니다. 이벤트당 핸들러는 하나이며 재등록 시 교체됩니다."""

    @abstractmethod
    def off(self, event: str) -> None:
        """수신 이벤트 핸들러를 해제합니다. 등록되지 않은 이벤트면 무시합니다."""
