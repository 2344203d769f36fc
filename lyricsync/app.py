"""LyricSync 应用主实现 - 组装各模块并管理生命周期"""
import logging
from typing import Optional

from lyricsync.lyrics import EnhancedLyricsClient, LRCLibClient, LyricLine, LyricsManager, LyricsParser
from lyricsync.playback import PlaybackClock, SyncEngine, PlaybackSession, EmissionEvent
from lyricsync.presence import LanyardClient, PresenceWatcher
from lyricsync.status import DiscordStatusClient, StatusProjector, StatusRateLimiter, CONSOLE_STYLES
from lyricsync.utils.config_manager import ConfigManager


class LyricSyncApp:
    """
    LyricSync 应用

    监视 Spotify 收听状态，将当前歌词行实时同步到 Discord 自定义状态：
    - Lanyard WebSocket 在线状态订阅
    - 逐字歌词API + LRCLib 回退链
    - 50ms 轮询的歌词同步引擎
    - 带限流的 Discord 状态更新
    """

    def __init__(self, config: ConfigManager):
        """
        Args:
            config: 配置管理器
        """
        self.logger = logging.getLogger("lyricsync.app")
        self.config = config

        self.clock = PlaybackClock()
        self.projector = StatusProjector(lyric_prefix=config.get_lyric_prefix())

        timeout = config.get_lyrics_timeout()
        self.lyrics_manager = LyricsManager(
            providers=[
                EnhancedLyricsClient(config.get_enhanced_lyrics_url(), timeout),
                LRCLibClient(config.get_lrclib_url(), timeout),
            ],
            parser=LyricsParser(),
            max_cache_size=config.get_lyrics_cache_size()
        )

        self.engine = SyncEngine(
            clock=self.clock,
            projector=self.projector,
            tick_interval=config.get_tick_interval()
        )

        self.status_client = DiscordStatusClient(
            token=config.get_discord_token(),
            api_base=config.get_discord_api_base(),
            watermark_status=config.get_watermark_status(),
            token_check_interval=config.get_token_check_interval()
        )
        self.rate_limiter = StatusRateLimiter(
            send=self.status_client.update_status,
            cooldown=config.get_status_cooldown()
        )

        self.watcher = PresenceWatcher(
            engine=self.engine,
            lyrics_manager=self.lyrics_manager,
            status=self.rate_limiter,
            projector=self.projector,
            watermark_status=config.get_watermark_status()
        )
        self.lanyard = LanyardClient(
            user_id=config.get_user_id(),
            on_presence=self.watcher.handle_presence_update,
            url=config.get_lanyard_url(),
            reconnect_delay=config.get_reconnect_delay(),
            on_disconnect=self.watcher.reset
        )

        self._last_word_render: Optional[str] = None
        self._register_engine_events()

        self.logger.info("🎵 LyricSync 初始化成功")

    def _register_engine_events(self) -> None:
        self.engine.add_event_handler("line_emitted", self._on_line_emitted)
        self.engine.add_event_handler("words_updated", self._on_words_updated)
        self.engine.add_event_handler("plain_lyrics", self._on_plain_lyrics)
        self.engine.add_event_handler("song_finished", self._on_song_finished)

    def _on_line_emitted(self, event: EmissionEvent, session: PlaybackSession) -> None:
        self.logger.info(self.projector.format_console_line(event.line, event.elapsed_ms))

        candidate = self.projector.status_candidate(event.line, event.elapsed_ms)
        if candidate:
            self.rate_limiter.request_status_update(candidate)

    def _on_words_updated(self, line: LyricLine, elapsed_ms: int, states) -> None:
        rendered = self.projector.project(line, elapsed_ms, CONSOLE_STYLES)
        if rendered != self._last_word_render:
            self._last_word_render = rendered
            self.logger.debug(f"♪ {rendered}")

    def _on_plain_lyrics(self, line: LyricLine, session: PlaybackSession) -> None:
        self.logger.info(f"显示纯文本歌词（无时间信息）:\n{line.text}")

    def _on_song_finished(self, session: PlaybackSession) -> None:
        self._last_word_render = None
        self.logger.info(f"🏁 歌曲播放完毕: {session.track_id}")

    async def run(self) -> None:
        """验证令牌并保持 Lanyard 连接，直到被取消"""
        self.logger.info("🚀 启动 LyricSync...")
        self.logger.info(f"监视用户ID: {self.lanyard.user_id}")

        if self.status_client.enabled:
            await self.status_client.validate_token()
            self.status_client.start_token_monitor()

        await self.lanyard.run_forever()

    async def shutdown(self) -> None:
        """停止所有任务并清除 Discord 状态"""
        self.logger.info("正在关闭...")

        await self.lanyard.close()
        await self.engine.close()
        await self.rate_limiter.close()
        await self.status_client.clear_status()
        await self.status_client.close()

        self.logger.info("关闭完成")
