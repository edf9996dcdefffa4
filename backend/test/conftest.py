"""공용 pytest fixtures.

실제 Socket.IO 서버, 카메라/마이크, 네트워크 없이 코디네이터를 검증할 수 있도록
메모리 시그널링 채널, 가짜 피어 연결, synthetic 로컬 미디어를 제공합니다.
"""
import asyncio
from collections import deque
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from aiortc import AudioStreamTrack, RTCSessionDescription, VideoStreamTrack

from bookclub_rtc.signaling import events
from bookclub_rtc.signaling.channel import EventHandler, SignalingChannel
from bookclub_rtc.webrtc import LocalMediaStream, MediaAcquisitionError, ToggleableTrack


# ── 시그널링 채널 ──────────────────────────────────────────────────────

class FakeSignalingChannel(SignalingChannel):
    """전송한 이벤트를 기록하고 테스트가 수신 이벤트를 직접 전달하는 채널."""

    def __init__(self, local_id: str = "C"):
        self._local_id = local_id
        self.handlers: Dict[str, EventHandler] = {}
        self.emitted: List[Tuple[str, Any]] = []
        self.is_connected = True

    @property
    def local_id(self) -> Optional[str]:
        return self._local_id

    @property
    def connected(self) -> bool:
        return self.is_connected

    async def emit(self, event: str, payload: Any = None) -> None:
        self.emitted.append((event, payload))

    def on(self, event: str, handler: EventHandler) -> None:
        self.handlers[event] = handler

    def off(self, event: str) -> None:
        self.handlers.pop(event, None)

    async def deliver(self, event: str, payload: Any = None) -> bool:
        """수신 이벤트 전달. 핸들러가 없으면 False."""
        handler = self.handlers.get(event)
        if handler is None:
            return False
        await handler(payload)
        return True

    def sent(self, event: str) -> List[Any]:
        return [payload for name, payload in self.emitted if name == event]


class InMemorySignalingHub:
    """룸 서버 동작을 흉내내는 메모리 허브 (통합 테스트용).

    join 시 기존 참가자 목록을 roster로 돌려주고, offer/answer는 대상 참가자에게
    전달합니다. 전달은 큐에 쌓였다가 drain()에서 순서대로 처리됩니다.
    """

    def __init__(self):
        self.rooms: Dict[str, List[str]] = {}
        self.channels: Dict[str, "HubChannel"] = {}
        self._queue: deque = deque()

    def channel(self, participant_id: str) -> "HubChannel":
        channel = HubChannel(self, participant_id)
        self.channels[participant_id] = channel
        return channel

    def route(self, sender: str, event: str, payload: Any) -> None:
        if event == events.JOIN:
            members = self.rooms.setdefault(payload, [])
            others = [pid for pid in members if pid != sender]
            if sender not in members:
                members.append(sender)
            self._queue.append((sender, events.ROSTER, others))
        elif event in (events.OFFER, events.ANSWER):
            message = {"from": sender, "description": payload["description"]}
            self._queue.append((payload["to"], event, message))

    def leave(self, participant_id: str) -> None:
        for members in self.rooms.values():
            if participant_id in members:
                members.remove(participant_id)
                for other in members:
                    self._queue.append((other, events.PARTICIPANT_LEFT, participant_id))

    async def drain(self) -> None:
        while self._queue:
            target, event, payload = self._queue.popleft()
            handler = self.channels[target].handlers.get(event)
            if handler is not None:
                await handler(payload)


class HubChannel(FakeSignalingChannel):
    def __init__(self, hub: InMemorySignalingHub, participant_id: str):
        super().__init__(local_id=participant_id)
        self.hub = hub

    async def emit(self, event: str, payload: Any = None) -> None:
        await super().emit(event, payload)
        self.hub.route(self._local_id, event, payload)


# ── 피어 연결 ──────────────────────────────────────────────────────────

class FakeConnection:
    """RTCPeerConnection 대역. 협상 호출과 close 횟수를 기록합니다."""

    def __init__(self, fail_on: Optional[str] = None):
        self.fail_on = fail_on
        self.added_tracks: List[Any] = []
        self.localDescription: Optional[RTCSessionDescription] = None
        self.remoteDescription: Optional[RTCSessionDescription] = None
        self.connectionState = "new"
        self.signalingState = "stable"
        self.close_calls = 0
        self._listeners: Dict[str, Callable] = {}

    def on(self, event: str):
        def decorator(func):
            self._listeners[event] = func
            return func
        return decorator

    async def fire(self, event: str, *args) -> None:
        result = self._listeners[event](*args)
        if asyncio.iscoroutine(result):
            await result

    def addTrack(self, track) -> None:
        self.added_tracks.append(track)

    def _maybe_fail(self, step: str) -> None:
        if self.fail_on == step:
            raise RuntimeError(f"{step} failed")

    async def createOffer(self) -> RTCSessionDescription:
        self._maybe_fail("createOffer")
        return RTCSessionDescription(sdp="v=0 fake-offer", type="offer")

    async def createAnswer(self) -> RTCSessionDescription:
        self._maybe_fail("createAnswer")
        return RTCSessionDescription(sdp="v=0 fake-answer", type="answer")

    async def setLocalDescription(self, description: RTCSessionDescription) -> None:
        self.localDescription = description
        self.signalingState = "have-local-offer" if description.type == "offer" else "stable"

    async def setRemoteDescription(self, description: RTCSessionDescription) -> None:
        self._maybe_fail("setRemoteDescription")
        self.remoteDescription = description
        self.signalingState = "have-remote-offer" if description.type == "offer" else "stable"

    async def close(self) -> None:
        self.close_calls += 1
        self.connectionState = "closed"


class ConnectionFactory:
    """생성한 FakeConnection을 순서대로 보관하는 팩토리."""

    def __init__(self):
        self.created: List[FakeConnection] = []
        self.fail_next_on: Optional[str] = None

    def __call__(self) -> FakeConnection:
        connection = FakeConnection(fail_on=self.fail_next_on)
        self.fail_next_on = None
        self.created.append(connection)
        return connection


# ── 로컬 미디어 ────────────────────────────────────────────────────────

def make_synthetic_stream() -> LocalMediaStream:
    return LocalMediaStream(
        audio=ToggleableTrack(AudioStreamTrack()),
        video=ToggleableTrack(VideoStreamTrack()),
    )


class MediaAcquirer:
    """호출 횟수를 기록하고 필요하면 권한 거부를 흉내내는 미디어 획득기."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0
        self.streams: List[LocalMediaStream] = []

    async def __call__(self) -> LocalMediaStream:
        self.calls += 1
        if self.fail:
            raise MediaAcquisitionError("video 장치에 접근할 수 없습니다 (/dev/video0): Permission denied",
                                        kind="video", source="/dev/video0")
        stream = make_synthetic_stream()
        self.streams.append(stream)
        return stream


# ── fixtures ───────────────────────────────────────────────────────────

@pytest.fixture()
def channel() -> FakeSignalingChannel:
    return FakeSignalingChannel(local_id="C")


@pytest.fixture()
def connection_factory() -> ConnectionFactory:
    return ConnectionFactory()


@pytest.fixture()
def media_acquirer() -> MediaAcquirer:
    return MediaAcquirer()


def offer_from(participant_id: str, sdp: str = "v=0 remote-offer") -> dict:
    return {"from": participant_id, "description": {"type": "offer", "sdp": sdp}}


def answer_from(participant_id: str, sdp: str = "v=0 remote-answer") -> dict:
    return {"from": participant_id, "description": {"type": "answer", "sdp": sdp}}
