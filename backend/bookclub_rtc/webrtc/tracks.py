"""로컬 미디어 트랙 래퍼 모듈.

카메라/마이크 트랙을 감싸 브라우저의 ``track.enabled``와 같은 on/off 동작을
제공합니다. 비활성화된 트랙은 연결을 유지한 채 검은 화면/무음 프레임을
전송합니다.
"""

import logging

import numpy as np
from av import AudioFrame, VideoFrame
from aiortc import MediaStreamTrack

logger = logging.getLogger(__name__)


class ToggleableTrack(MediaStreamTrack):
    """enabled 플래그로 송출 여부를 제어하는 트랙.

    원본 트랙에서 프레임을 계속 읽되, 비활성화 상태에서는 같은 크기와
    타임스탬프의 빈 프레임으로 교체합니다. 상대 피어에게는 아무 알림도
    가지 않으며 단지 프레임/오디오 수신이 멈춘 것처럼 보입니다.

    Attributes:
        kind (str): 원본 트랙 종류 ("audio" / "video")
        track (MediaStreamTrack): 원본 트랙
        enabled (bool): 송출 여부

    Examples:
        >>> from aiortc import VideoStreamTrack
        >>> track = ToggleableTrack(VideoStreamTrack())
        >>> track.enabled = False
        >>> frame = await track.recv()  # 검은 화면 프레임
    """

    def __init__(self, track: MediaStreamTrack):
        super().__init__()
        self.kind = track.kind
        self.track = track
        self.enabled = True

    async def recv(self):
        frame = await self.track.recv()
        if self.enabled:
            return frame
        if self.kind == "video":
            return _blank_video_frame(frame)
        return _silent_audio_frame(frame)

    def stop(self):
        super().stop()
        self.track.stop()


def _blank_video_frame(frame: VideoFrame) -> VideoFrame:
    blank = VideoFrame.from_ndarray(
        np.zeros((frame.height, frame.width, 3), dtype=np.uint8), format="rgb24"
    )
    blank.pts = frame.pts
    blank.time_base = frame.time_base
    return blank


def _silent_audio_frame(frame: AudioFrame) -> AudioFrame:
    silent = AudioFrame(format=frame.format.name, layout=frame.layout.name, samples=frame.samples)
    for plane in silent.planes:
        plane.update(bytes(plane.buffer_size))
    silent.sample_rate = frame.sample_rate
    silent.pts = frame.pts
    silent.time_base = frame.time_base
    return silent
