"""
歌词同步引擎测试

在没有事件循环的情况下手动调用 tick，验证发送、光标单调性、
会话替换和歌曲结束等行为；异步测试验证定时器任务。
"""

import asyncio
import unittest

import pytest

from lyricsync.lyrics.lyrics_parser import LyricLine, LyricSequence, LyricsProvenance, WordToken
from lyricsync.playback.playback_clock import PlaybackClock
from lyricsync.playback.sync_engine import SyncEngine, SyncState, PlaybackSession
from lyricsync.status.status_projector import WordState

T0 = 1_700_000_000_000


def make_sequence(*lines):
    return LyricSequence(
        lines=tuple(LyricLine(time_ms=t, text=text) for t, text in lines),
        provenance=LyricsProvenance.SYNCED,
        provider="test"
    )


def make_session(sequence, track_id="track", start=T0, end=None):
    return PlaybackSession(track_id=track_id, start_timestamp_ms=start, end_timestamp_ms=end, lyrics=sequence)


class TestSyncEngineTick(unittest.TestCase):
    """测试手动 tick 的同步行为"""

    def setUp(self):
        self.engine = SyncEngine()
        self.emitted = []
        self.finished = []
        self.engine.add_event_handler("line_emitted", lambda event, session: self.emitted.append((session.track_id, event)))
        self.engine.add_event_handler("song_finished", lambda session: self.finished.append(session.track_id))

    def test_hello_world_scenario(self):
        """测试基本场景：每行在到达时发送一次"""
        self.engine.start(make_session(make_sequence((0, "Hello"), (1000, "World"))))

        first = self.engine.tick(T0 + 500)
        self.assertEqual((first.line.time_ms, first.line.text), (0, "Hello"))
        self.assertEqual(first.elapsed_ms, 500)

        second = self.engine.tick(T0 + 1200)
        self.assertEqual((second.line.time_ms, second.line.text), (1000, "World"))
        self.assertEqual(second.index, 1)

        self.assertIsNone(self.engine.tick(T0 + 1300))
        self.assertEqual(len(self.emitted), 2)

    def test_repeated_tick_same_time_is_idempotent(self):
        """测试相同时间多次 tick 只发送一次"""
        self.engine.start(make_session(make_sequence((0, "Hello"), (1000, "World"))))

        results = [self.engine.tick(T0 + 500) for _ in range(5)]

        self.assertEqual(sum(1 for r in results if r is not None), 1)
        self.assertEqual(len(self.emitted), 1)

    def test_cursor_never_decreases(self):
        """测试光标单调不减，时间回退时不会重新发送"""
        sequence = make_sequence((0, "a"), (1000, "b"), (2000, "c"), (3000, "d"))
        self.engine.start(make_session(sequence))

        cursors = []
        for now in (T0 + 100, T0 + 2500, T0 + 1100, T0 + 50, T0 + 3100):
            self.engine.tick(now)
            cursors.append(self.engine.session.cursor)

        self.assertEqual(cursors, sorted(cursors))
        self.assertEqual([event.line.text for _, event in self.emitted], ["a", "c", "d"])

    def test_coarse_polling_skips_intermediate_lines(self):
        """测试粗粒度轮询时直接跳到最新行，已过去的行不会补发"""
        sequence = make_sequence((0, "a"), (100, "b"), (200, "c"))
        self.engine.start(make_session(sequence))

        event = self.engine.tick(T0 + 2000)

        self.assertEqual(event.line.text, "c")
        self.assertIsNone(self.engine.tick(T0 + 2050))
        self.assertEqual(len(self.emitted), 1)

    def test_nothing_before_first_line(self):
        """测试第一行到达之前不发送"""
        self.engine.start(make_session(make_sequence((1000, "late"))))

        self.assertIsNone(self.engine.tick(T0 + 500))
        self.assertEqual(self.engine.session.cursor, 0)
        self.assertIsNotNone(self.engine.tick(T0 + 1000))

    def test_now_before_start_clamps_to_zero(self):
        """测试当前时间早于开始时间时已播放时长为0"""
        self.engine.start(make_session(make_sequence((0, "zero"), (10, "ten"))))

        event = self.engine.tick(T0 - 5000)

        self.assertEqual(event.elapsed_ms, 0)
        self.assertEqual(event.line.text, "zero")

    def test_empty_lyrics_goes_idle(self):
        """测试空歌词直接进入 IDLE"""
        self.engine.start(make_session(LyricSequence.empty()))

        self.assertEqual(self.engine.state, SyncState.IDLE)
        self.assertIsNone(self.engine.tick(T0 + 1000))

    def test_tick_without_session_is_noop(self):
        """测试没有会话时 tick 不做任何事"""
        self.assertIsNone(self.engine.tick(T0))
        self.assertEqual(self.engine.state, SyncState.IDLE)

    def test_replacing_session_before_tick(self):
        """测试连续启动两个会话后只有第二个会话发送歌词"""
        self.engine.start(make_session(make_sequence((0, "from A")), track_id="A"))
        self.engine.start(make_session(make_sequence((0, "from B")), track_id="B"))

        self.engine.tick(T0 + 100)
        self.engine.tick(T0 + 200)

        self.assertEqual([(track, event.line.text) for track, event in self.emitted], [("B", "from B")])
        self.assertEqual(self.engine.session.track_id, "B")

    def test_start_resets_emission_state(self):
        """测试重新加载相同歌词时重置发送标记和光标"""
        sequence = make_sequence((0, "Hello"), (1000, "World"))
        self.engine.start(make_session(sequence, track_id="first"))
        self.engine.tick(T0 + 1500)

        self.engine.start(make_session(sequence, track_id="again", start=T0 + 10_000))
        self.assertEqual(self.engine.session.cursor, 0)
        self.assertFalse(any(line.has_been_emitted for line in sequence))

        event = self.engine.tick(T0 + 10_100)
        self.assertEqual(event.line.text, "Hello")

    def test_stop_prevents_emission(self):
        """测试停止后不再发送"""
        self.engine.start(make_session(make_sequence((0, "Hello"))))
        self.engine.stop()

        self.assertIsNone(self.engine.tick(T0 + 500))
        self.assertEqual(self.emitted, [])
        self.assertIsNone(self.engine.session)

    def test_song_end(self):
        """测试歌曲结束：先处理本次的歌词行，再进入 IDLE 并发出结束信号"""
        sequence = make_sequence((0, "Hello"), (1000, "World"))
        self.engine.start(make_session(sequence, end=T0 + 1500))

        self.engine.tick(T0 + 100)
        event = self.engine.tick(T0 + 1600)

        self.assertEqual(event.line.text, "World")
        self.assertEqual(self.engine.state, SyncState.IDLE)
        self.assertEqual(self.finished, ["track"])
        self.assertIsNone(self.engine.tick(T0 + 1700))
        self.assertEqual(self.finished, ["track"])

    def test_malformed_session_goes_idle(self):
        """测试会话数据异常时进入 IDLE 而不是抛出异常"""
        sequence = LyricSequence(lines=(LyricLine(time_ms=None, text="bad"), LyricLine(time_ms=None, text="bad")))
        self.engine.start(make_session(sequence))

        self.assertIsNone(self.engine.tick(T0 + 100))
        self.assertEqual(self.engine.state, SyncState.IDLE)
        self.assertEqual(self.finished, [])

    def test_malformed_end_timestamp_goes_idle(self):
        """测试结束时间格式异常时进入 IDLE 而不是从 tick 抛出"""
        self.engine.start(make_session(make_sequence((0, "Hello")), end="not a timestamp"))

        self.engine.tick(T0 + 100)

        self.assertEqual(self.engine.state, SyncState.IDLE)
        self.assertIsNone(self.engine.session)
        self.assertEqual(self.finished, [])

    def test_handler_errors_do_not_break_tick(self):
        """测试事件处理器异常不影响同步"""
        def broken_handler(event, session):
            raise RuntimeError("handler failure")

        self.engine.add_event_handler("line_emitted", broken_handler)
        self.engine.start(make_session(make_sequence((0, "Hello"), (1000, "World"))))

        self.assertIsNotNone(self.engine.tick(T0 + 100))
        self.assertIsNotNone(self.engine.tick(T0 + 1100))
        self.assertEqual(len(self.emitted), 2)

    def test_unknown_event_type(self):
        with self.assertRaises(ValueError):
            self.engine.add_event_handler("unknown", lambda: None)


class TestPlainAndWordLevel(unittest.TestCase):
    """测试纯文本歌词和逐字高亮"""

    def setUp(self):
        self.engine = SyncEngine()

    def test_plain_fallback_displayed_once(self):
        """测试纯文本歌词只显示一次，不进行调度"""
        shown = []
        self.engine.add_event_handler("plain_lyrics", lambda line, session: shown.append(line.text))
        sequence = LyricSequence(
            lines=(LyricLine(time_ms=0, text="all the words", is_plain_fallback=True),),
            provenance=LyricsProvenance.PLAIN
        )

        self.engine.start(make_session(sequence))

        self.assertEqual(shown, ["all the words"])
        self.assertEqual(self.engine.state, SyncState.IDLE)
        self.assertIsNone(self.engine.tick(T0 + 100))

    def test_word_highlight_recomputed_every_tick(self):
        """测试逐字高亮每次 tick 都重新计算，而行事件只发送一次"""
        updates = []
        emitted = []
        self.engine.add_event_handler(
            "words_updated",
            lambda line, elapsed_ms, states: updates.append([state for _, state in states])
        )
        self.engine.add_event_handler("line_emitted", lambda event, session: emitted.append(event))

        line = LyricLine(time_ms=0, text="Hi", words=[WordToken("Hi", 0, 500)], is_enhanced=True)
        self.engine.start(make_session(LyricSequence(lines=(line,), provenance=LyricsProvenance.ENHANCED)))

        self.engine.tick(T0 + 250)
        self.engine.tick(T0 + 600)

        self.assertEqual(updates, [[WordState.ACTIVE], [WordState.SUNG]])
        self.assertEqual(len(emitted), 1)


class TestSyncEngineTimer:
    """测试定时器驱动的同步"""

    @pytest.mark.asyncio
    async def test_timer_drives_ticks(self):
        """测试启动后定时器自动 tick"""
        now = [T0 + 500]
        engine = SyncEngine(clock=PlaybackClock(time_source=lambda: now[0]), tick_interval=0.01)
        emitted = []
        engine.add_event_handler("line_emitted", lambda event, session: emitted.append(event.line.text))

        engine.start(make_session(make_sequence((0, "Hello"), (1000, "World"))))
        await asyncio.sleep(0.05)
        now[0] = T0 + 1200
        await asyncio.sleep(0.05)

        assert emitted == ["Hello", "World"]
        await engine.close()
        assert engine.state is SyncState.IDLE

    @pytest.mark.asyncio
    async def test_stop_cancels_timer(self):
        """测试停止后定时器不再发送"""
        now = [T0]
        engine = SyncEngine(clock=PlaybackClock(time_source=lambda: now[0]), tick_interval=0.01)
        emitted = []
        engine.add_event_handler("line_emitted", lambda event, session: emitted.append(event.line.text))

        engine.start(make_session(make_sequence((1000, "later"))))
        await asyncio.sleep(0.03)
        engine.stop()
        now[0] = T0 + 5000
        await asyncio.sleep(0.03)

        assert emitted == []

    @pytest.mark.asyncio
    async def test_restart_replaces_timer(self):
        """测试重新启动时旧会话的定时器被取消"""
        now = [T0 + 100]
        engine = SyncEngine(clock=PlaybackClock(time_source=lambda: now[0]), tick_interval=0.01)
        emitted = []
        engine.add_event_handler("line_emitted", lambda event, session: emitted.append(session.track_id))

        engine.start(make_session(make_sequence((0, "a")), track_id="A", start=T0 + 10_000))
        engine.start(make_session(make_sequence((0, "b")), track_id="B"))
        await asyncio.sleep(0.05)

        assert emitted == ["B"]
        await engine.close()

    @pytest.mark.asyncio
    async def test_timer_exits_when_song_ends(self):
        """测试歌曲结束后定时器任务退出"""
        now = [T0 + 2000]
        engine = SyncEngine(clock=PlaybackClock(time_source=lambda: now[0]), tick_interval=0.01)
        finished = []
        engine.add_event_handler("song_finished", lambda session: finished.append(session.track_id))

        engine.start(make_session(make_sequence((0, "a")), end=T0 + 1000))
        await asyncio.sleep(0.05)

        assert finished == ["track"]
        assert engine.state is SyncState.IDLE
        assert engine._task is None
