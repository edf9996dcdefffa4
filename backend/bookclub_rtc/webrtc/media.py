"""로컬 미디어(카메라/마이크) 획득 모듈.

ffmpeg 입력 장치 또는 파일을 aiortc ``MediaPlayer``로 열어 오디오/비디오
트랙을 얻습니다. 장치가 없는 서버 환경에서는 ``synthetic`` 소스로 aiortc
기본 트랙(무음, 단색 화면)을 사용할 수 있습니다.

Classes:
    LocalMediaStream: 세션 동안 공유되는 로컬 오디오+비디오 스트림

Functions:
    acquire_local_media: 설정에 따라 로컬 미디어를 획득
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from av.error import FFmpegError
from aiortc import AudioStreamTrack, MediaStreamTrack, VideoStreamTrack
from aiortc.contrib.media import MediaPlayer

from .config import MediaConfig, SYNTHETIC_SOURCE, media_config
from .errors import MediaAcquisitionError
from .tracks import ToggleableTrack

logger = logging.getLogger(__name__)


@dataclass
class LocalMediaStream:
    """세션 하나가 소유하는 로컬 오디오+비디오 스트림.

    모든 PeerLink가 읽기 전용으로 공유하며, 어떤 PeerLink도 이 스트림을
    소유하지 않습니다. 정지는 세션 종료 시 코디네이터만 수행합니다.

    Attributes:
        audio (ToggleableTrack): 로컬 오디오 트랙
        video (ToggleableTrack): 로컬 비디오 트랙
        players (List[MediaPlayer]): 트랙을 제공하는 ffmpeg 플레이어 (synthetic이면 비어있음)
    """
    audio: ToggleableTrack
    video: ToggleableTrack
    players: List[MediaPlayer] = field(default_factory=list)

    @property
    def tracks(self) -> List[ToggleableTrack]:
        return [self.audio, self.video]

    @property
    def active(self) -> bool:
        """하나 이상의 트랙이 아직 live 상태인지 여부."""
        return any(track.readyState == "live" for track in self.tracks)

    def set_video_enabled(self, enabled: bool) -> None:
        self.video.enabled = bool(enabled)

    def set_audio_enabled(self, enabled: bool) -> None:
        self.audio.enabled = bool(enabled)

    def stop(self) -> None:
        """모든 로컬 트랙을 정지합니다. 여러 번 호출해도 안전합니다."""
        for track in self.tracks:
            if track.readyState != "ended":
                track.stop()
        logger.info("[WebRTC] 로컬 미디어 트랙 정지")


async def _open_player(kind: str, source: str, fmt: Optional[str], options: dict) -> MediaPlayer:
    try:
        # av.open()은 블로킹 호출이므로 스레드에서 실행
        return await asyncio.to_thread(MediaPlayer, source, format=fmt, options=options)
    except (FFmpegError, OSError) as e:
        raise MediaAcquisitionError(
            f"{kind} 장치에 접근할 수 없습니다 ({source}): {e}. "
            f"장치 연결 상태와 접근 권한을 확인한 뒤 다시 시도하세요.",
            kind=kind,
            source=source,
        ) from e


def _player_track(player: MediaPlayer, kind: str, source: str) -> MediaStreamTrack:
    track = player.video if kind == "video" else player.audio
    if track is None:
        raise MediaAcquisitionError(
            f"{source}에서 {kind} 트랙을 찾을 수 없습니다. MEDIA_{kind.upper()}_SOURCE 설정을 확인하세요.",
            kind=kind,
            source=source,
        )
    return track


async def _open_sources(config: MediaConfig) -> Tuple[MediaStreamTrack, MediaStreamTrack, List[MediaPlayer]]:
    players: List[MediaPlayer] = []
    try:
        if config.VIDEO_SOURCE == SYNTHETIC_SOURCE:
            video = VideoStreamTrack()
        else:
            video_player = await _open_player(
                "video", config.VIDEO_SOURCE, config.VIDEO_FORMAT, config.video_options
            )
            players.append(video_player)
            video = _player_track(video_player, "video", config.VIDEO_SOURCE)

        if config.AUDIO_SOURCE == SYNTHETIC_SOURCE:
            audio = AudioStreamTrack()
        elif players and (config.AUDIO_SOURCE, config.AUDIO_FORMAT) == (config.VIDEO_SOURCE, config.VIDEO_FORMAT):
            # 동일한 입력(예: 미디어 파일)은 플레이어 하나에서 두 트랙을 모두 사용
            audio = _player_track(players[0], "audio", config.AUDIO_SOURCE)
        else:
            audio_player = await _open_player("audio", config.AUDIO_SOURCE, config.AUDIO_FORMAT, {})
            players.append(audio_player)
            audio = _player_track(audio_player, "audio", config.AUDIO_SOURCE)
    except MediaAcquisitionError:
        for player in players:
            for track in (player.audio, player.video):
                if track is not None:
                    track.stop()
        raise

    return audio, video, players


async def acquire_local_media(config: MediaConfig = media_config) -> LocalMediaStream:
    """로컬 오디오+비디오를 획득합니다.

    Args:
        config (MediaConfig): 미디어 소스 설정 (기본: 환경변수 기반 싱글톤)

    Returns:
        LocalMediaStream: 활성화 상태의 로컬 스트림

    Raises:
        MediaAcquisitionError: 장치가 없거나 권한이 거부된 경우.
            이미 열린 다른 장치는 정리된 뒤 예외가 전파됩니다.

    Examples:
        >>> stream = await acquire_local_media()
        >>> stream.set_video_enabled(False)
        >>> stream.stop()
    """
    logger.info(f"[WebRTC] 로컬 미디어 요청: video={config.VIDEO_SOURCE}, audio={config.AUDIO_SOURCE}")
    audio, video, players = await _open_sources(config)
    stream = LocalMediaStream(
        audio=ToggleableTrack(audio),
        video=ToggleableTrack(video),
        players=players,
    )
    logger.info(f"[WebRTC] 로컬 미디어 획득 완료 (플레이어 {len(players)}개)")
    return stream
