"""在线状态监视器 - 响应 Spotify 收听状态变化并驱动歌词同步"""

import asyncio
import logging
from typing import Optional, Dict, Any

from lyricsync.core.exceptions import NoLyricsFound
from lyricsync.core.interfaces import SpotifyTrack, IStatusUpdater
from lyricsync.lyrics.lyrics_manager import LyricsManager
from lyricsync.lyrics.lyrics_parser import LyricsParser
from lyricsync.playback.sync_engine import SyncEngine, PlaybackSession
from lyricsync.status.status_projector import StatusProjector


class PresenceWatcher:
    """
    在线状态监视器

    比较前后两次在线状态，识别开始收听、停止收听和切歌三种事件：
    开始/切歌时获取歌词并重新启动同步引擎，停止时停止引擎并恢复默认状态。
    歌词获取在独立任务中进行，过期的获取结果会被丢弃。
    """

    def __init__(
        self,
        engine: SyncEngine,
        lyrics_manager: LyricsManager,
        status: IStatusUpdater,
        projector: Optional[StatusProjector] = None,
        watermark_status: Optional[str] = None
    ):
        """
        初始化在线状态监视器

        Args:
            engine: 歌词同步引擎
            lyrics_manager: 歌词管理器
            status: 状态更新器
            projector: 状态投影器
            watermark_status: 停止收听后恢复的默认状态
        """
        self.logger = logging.getLogger("lyricsync.presence.presence_watcher")
        self.engine = engine
        self.lyrics_manager = lyrics_manager
        self.status = status
        self.projector = projector or StatusProjector()
        self.watermark_status = watermark_status

        self._listening = False
        self._current_track: Optional[SpotifyTrack] = None
        self._resolve_generation = 0
        self._resolve_task: Optional[asyncio.Task] = None

    @property
    def current_track(self) -> Optional[SpotifyTrack]:
        return self._current_track

    @property
    def is_listening(self) -> bool:
        return self._listening

    def handle_presence_update(self, data: Dict[str, Any]) -> None:
        """
        处理 Lanyard 在线状态数据

        Args:
            data: Lanyard 推送的 ``d`` 字段
        """
        is_listening = bool(data.get('listening_to_spotify'))
        spotify = data.get('spotify')
        track = SpotifyTrack.from_presence(spotify) if isinstance(spotify, dict) else None

        if not self._listening and is_listening:
            self.logger.info("🎵 开始收听 Spotify!")
            if track:
                self.on_track_start(track)
        elif self._listening and not is_listening:
            self.on_playback_stop()
        elif is_listening and track:
            if self._current_track is None or self._current_track.track_id != track.track_id:
                self.on_track_change(track)

        self._listening = is_listening
        self._current_track = track

    def on_track_start(self, track: SpotifyTrack) -> None:
        """开始播放新曲目"""
        self._log_track_info(track)
        self.status.request_status_update(self.projector.now_playing_status(track.artist, track.song))
        self._load_track(track)

    def on_track_change(self, track: SpotifyTrack) -> None:
        """切换到另一首曲目"""
        self.logger.info("🎶 歌曲已切换!")
        self.on_track_start(track)

    def on_playback_stop(self) -> None:
        """停止收听"""
        self.logger.info("停止收听 Spotify")
        self._cancel_resolve()
        self.engine.stop()

        if self.watermark_status:
            self.status.request_status_update(self.watermark_status)

    def reset(self) -> None:
        """连接断开时重置状态，重连后的第一条数据会被视为开始收听"""
        self._cancel_resolve()
        self.engine.stop()
        self._listening = False
        self._current_track = None

    def _load_track(self, track: SpotifyTrack) -> None:
        # 先停止旧会话，之后的 tick 不会再发送旧曲目的歌词
        self._cancel_resolve()
        self.engine.stop()

        generation = self._resolve_generation
        self._resolve_task = asyncio.get_running_loop().create_task(self._resolve_and_start(track, generation))

    def _cancel_resolve(self) -> None:
        self._resolve_generation += 1
        if self._resolve_task is not None and not self._resolve_task.done():
            self._resolve_task.cancel()
        self._resolve_task = None

    async def _resolve_and_start(self, track: SpotifyTrack, generation: int) -> None:
        try:
            sequence = await self.lyrics_manager.resolve(track.song, track.artist, track.album)
        except NoLyricsFound as e:
            self.logger.warning(f"未找到歌词，跳过同步显示: {e}")
            return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"获取歌词失败: {e}", exc_info=True)
            return

        if generation != self._resolve_generation:
            self.logger.debug(f"丢弃过期的歌词结果: {track.song}")
            return

        if not track.has_timestamps and not sequence.is_plain_fallback:
            self.logger.warning("曲目没有时间戳，无法同步歌词")
            return

        session = PlaybackSession(
            track_id=track.track_id,
            start_timestamp_ms=track.start_ms if track.start_ms is not None else self.engine.clock.now_ms(),
            end_timestamp_ms=track.end_ms,
            lyrics=sequence
        )
        self.engine.start(session)

    def _log_track_info(self, track: SpotifyTrack) -> None:
        self.logger.info(f"正在播放 - 艺术家: {track.artist}, 标题: {track.song}, 专辑: {track.album}")

        if track.start_ms is not None and track.end_ms is not None:
            duration = (track.end_ms - track.start_ms) // 1000
            elapsed = (self.engine.clock.now_ms() - track.start_ms) // 1000
            self.logger.info(
                f"歌曲时长: {LyricsParser.format_time(duration)}, "
                f"已播放: {LyricsParser.format_time(elapsed)}"
            )
