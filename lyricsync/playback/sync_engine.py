"""
同步引擎 - 歌词时间同步的核心控制器

按固定间隔轮询播放时钟，在歌词序列上单调前移光标，
每行歌词在到达时只发送一次，并在歌曲结束或被替换时干净地停止。
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, List, Callable

from lyricsync.lyrics.lyrics_parser import LyricLine, LyricSequence
from lyricsync.status.status_projector import StatusProjector
from .playback_clock import PlaybackClock


class SyncState(Enum):
    """同步引擎状态"""
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class PlaybackSession:
    """
    播放会话

    曲目开始播放时创建，切歌时整体替换。光标只能由引擎修改。
    """
    track_id: str
    start_timestamp_ms: int
    end_timestamp_ms: Optional[int]
    lyrics: LyricSequence
    cursor: int = 0
    generation: int = 0


@dataclass(frozen=True)
class EmissionEvent:
    """某一行歌词变为当前行时产生的事件"""
    line: LyricLine
    elapsed_ms: int
    index: int


class SyncEngine:
    """
    歌词同步引擎

    状态机: IDLE -> RUNNING -> IDLE。
    所有会话替换都是单次引用赋值，tick 在入口处只读取一次会话引用，
    因此一次 tick 只会看到完整的旧会话或完整的新会话。
    """

    EVENT_TYPES = ("line_emitted", "words_updated", "plain_lyrics", "song_finished")

    def __init__(
        self,
        clock: Optional[PlaybackClock] = None,
        projector: Optional[StatusProjector] = None,
        tick_interval: float = 0.05
    ):
        """
        初始化同步引擎

        Args:
            clock: 播放时钟
            projector: 状态投影器（用于计算逐字高亮）
            tick_interval: 轮询间隔（秒）
        """
        self.logger = logging.getLogger("lyricsync.playback.sync_engine")
        self.clock = clock or PlaybackClock()
        self.projector = projector or StatusProjector()
        self.tick_interval = tick_interval

        self._session: Optional[PlaybackSession] = None
        self._state = SyncState.IDLE
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

        self._event_handlers: Dict[str, List[Callable]] = {event_type: [] for event_type in self.EVENT_TYPES}

        self.logger.debug(f"同步引擎初始化完成，轮询间隔: {tick_interval * 1000:.0f}ms")

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def session(self) -> Optional[PlaybackSession]:
        return self._session

    @property
    def is_running(self) -> bool:
        return self._state is SyncState.RUNNING

    def add_event_handler(self, event_type: str, handler: Callable) -> None:
        """
        添加同步事件处理器

        Args:
            event_type: 事件类型
            handler: 事件处理函数（普通函数或协程函数）
        """
        if event_type not in self._event_handlers:
            raise ValueError(f"未知事件类型: {event_type}")

        self._event_handlers[event_type].append(handler)
        self.logger.debug(f"添加事件处理器: {event_type}")

    def _trigger_event(self, event_type: str, **kwargs) -> None:
        """触发事件；处理器异常只记录日志，不会中断 tick"""
        for handler in self._event_handlers[event_type]:
            try:
                result = handler(**kwargs)
                if inspect.isawaitable(result):
                    asyncio.ensure_future(result)
            except Exception as e:
                self.logger.error(
                    f"事件处理器 {getattr(handler, '__name__', handler)} 处理 {event_type} 时出错: {e}",
                    exc_info=True
                )

    def start(self, session: PlaybackSession) -> None:
        """
        加载新会话并开始同步

        从任何状态都可调用：丢弃之前的会话和定时器，重置发送标记和光标。
        空歌词直接进入 IDLE；纯文本歌词只显示一次，不做调度。
        """
        self._cancel_timer()
        self._generation += 1

        session.generation = self._generation
        session.cursor = 0
        session.lyrics.reset_emission()

        if session.lyrics.is_empty:
            self._session = None
            self._state = SyncState.IDLE
            self.logger.info(f"曲目 {session.track_id} 没有歌词，不进行同步")
            return

        if session.lyrics.is_plain_fallback:
            self._session = None
            self._state = SyncState.IDLE
            self.logger.info("显示纯文本歌词（无时间信息）")
            self._trigger_event("plain_lyrics", line=session.lyrics[0], session=session)
            return

        self._session = session
        self._state = SyncState.RUNNING
        self.logger.info(f"🎤 开始同步歌词显示 ({len(session.lyrics)} 行, 曲目: {session.track_id})")
        self._schedule(session.generation)

    def stop(self) -> None:
        """停止同步；已排队的 tick 因代数检查而不会再发送任何歌词"""
        was_running = self.is_running
        self._cancel_timer()
        self._generation += 1
        self._session = None
        self._state = SyncState.IDLE
        if was_running:
            self.logger.info("停止歌词同步")

    def tick(self, now_ms: int) -> Optional[EmissionEvent]:
        """
        推进一次同步

        Args:
            now_ms: 当前 Unix 时间戳（毫秒）

        Returns:
            本次新变为当前行的事件，没有则返回None
        """
        session = self._session
        if session is None or self._state is not SyncState.RUNNING:
            return None

        try:
            event = self._advance(session, now_ms)
            ended = self.clock.is_session_ended(session, now_ms)
        except (IndexError, TypeError, AttributeError, ValueError) as e:
            self.logger.warning(f"会话数据异常，停止同步: {e}")
            self._finish(session, song_finished=False)
            return None

        if ended:
            self.logger.info("🏁 歌曲播放结束")
            self._finish(session, song_finished=True)

        return event

    def _advance(self, session: PlaybackSession, now_ms: int) -> Optional[EmissionEvent]:
        lyrics = session.lyrics
        elapsed = self.clock.elapsed_ms(session, now_ms)
        last_index = len(lyrics) - 1

        # 单调前移，从不回看已经过去的行
        cursor = session.cursor
        while cursor < last_index and lyrics[cursor + 1].time_ms <= elapsed:
            cursor += 1
        session.cursor = cursor

        line = lyrics[cursor]
        if line.time_ms > elapsed:
            return None

        event = None
        if not line.has_been_emitted:
            line.has_been_emitted = True
            event = EmissionEvent(line=line, elapsed_ms=elapsed, index=cursor)
            self._trigger_event("line_emitted", event=event, session=session)

        # 逐字高亮每次 tick 都重新计算
        if line.words:
            self._trigger_event(
                "words_updated",
                line=line,
                elapsed_ms=elapsed,
                states=self.projector.word_states(line, elapsed)
            )

        return event

    def _finish(self, session: PlaybackSession, song_finished: bool) -> None:
        # 期间会话可能已被事件处理器替换
        if self._session is not session:
            return

        self._generation += 1
        self._session = None
        self._state = SyncState.IDLE
        if song_finished:
            self._trigger_event("song_finished", session=session)

    def _schedule(self, generation: int) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # 没有事件循环时由调用方手动调用 tick
            self.logger.debug("没有运行中的事件循环，跳过定时器调度")
            return

        self._task = loop.create_task(self._run(generation))

    async def _run(self, generation: int) -> None:
        try:
            while self._generation == generation and self.is_running:
                self.tick(self.clock.now_ms())
                await asyncio.sleep(self.tick_interval)
        finally:
            if self._task is asyncio.current_task():
                self._task = None

    def _cancel_timer(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def close(self) -> None:
        """停止同步并等待定时器任务退出"""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
