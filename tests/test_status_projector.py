"""
状态投影器测试

验证逐字高亮状态、状态文本过滤和前缀规则。
"""

import pytest

from lyricsync.lyrics.lyrics_parser import LyricLine
from lyricsync.status.status_projector import StatusProjector, WordState, CONSOLE_STYLES


@pytest.fixture
def projector():
    return StatusProjector(lyric_prefix="🎤 ")


class TestWordHighlight:
    """测试逐字高亮"""

    def test_first_word_active(self, projector, word_level_lyrics):
        states = [state for _, state in projector.word_states(word_level_lyrics[0], 250)]
        assert states == [WordState.ACTIVE, WordState.UPCOMING]

    def test_first_word_sung(self, projector, word_level_lyrics):
        states = [state for _, state in projector.word_states(word_level_lyrics[0], 600)]
        assert states == [WordState.SUNG, WordState.ACTIVE]

    def test_all_sung_after_line(self, projector, word_level_lyrics):
        states = [state for _, state in projector.word_states(word_level_lyrics[0], 5000)]
        assert states == [WordState.SUNG, WordState.SUNG]

    def test_window_boundaries_inclusive(self, projector, word_level_lyrics):
        """测试词的起止时间都算作 ACTIVE"""
        word = word_level_lyrics[0].words[0]
        assert projector.word_state(word, 0) is WordState.ACTIVE
        assert projector.word_state(word, 500) is WordState.ACTIVE
        assert projector.word_state(word, 501) is WordState.SUNG

    def test_gap_between_words(self, projector, word_level_lyrics):
        """测试两个词之间的间隙"""
        states = [state for _, state in projector.word_states(word_level_lyrics[0], 550)]
        assert states == [WordState.SUNG, WordState.UPCOMING]


class TestProject:
    """测试文本投影"""

    def test_line_without_words_verbatim(self, projector):
        line = LyricLine(time_ms=0, text="  spaced   text ")
        assert projector.project(line, 100) == "  spaced   text "

    def test_plain_styles_join_words(self, projector, word_level_lyrics):
        assert projector.project(word_level_lyrics[0], 250) == "Hi there"

    def test_console_styles_strip_to_plain_text(self, projector, word_level_lyrics):
        styled = projector.project(word_level_lyrics[0], 250, CONSOLE_STYLES)

        assert "\x1b[" in styled
        assert StatusProjector.plain_text(styled) == "Hi there"

    def test_format_console_line(self, projector):
        line = LyricLine(time_ms=61_000, text="a line", confidence=0.5)
        formatted = projector.format_console_line(line, 61_500)

        assert formatted == "♪ [1:01] a line (50%)"


class TestStatusFilter:
    """测试状态文本过滤"""

    def test_short_line_not_forwarded(self, projector):
        assert projector.status_candidate(LyricLine(time_ms=0, text="Hi!"), 0) is None

    def test_annotations_not_forwarded(self, projector):
        for text in ("[Instrumental break]", "(backing vocals here)"):
            assert projector.status_candidate(LyricLine(time_ms=0, text=text), 0) is None

    @pytest.mark.parametrize("length, expected", [(5, False), (6, True), (79, True), (80, False)])
    def test_length_boundaries(self, projector, length, expected):
        assert projector.is_forwardable("x" * length) is expected

    def test_synced_line_gets_prefix(self, projector):
        line = LyricLine(time_ms=0, text="Hello darkness")
        assert projector.status_candidate(line, 0) == "🎤 Hello darkness"

    def test_enhanced_line_has_no_prefix(self, projector, word_level_lyrics):
        assert projector.status_candidate(word_level_lyrics[0], 250) == "Hi there"

    def test_custom_prefix(self):
        projector = StatusProjector(lyric_prefix="♪ ")
        assert projector.status_candidate(LyricLine(time_ms=0, text="some words"), 0) == "♪ some words"


class TestNowPlaying:

    def test_artist_and_song(self):
        assert StatusProjector.now_playing_status("Artist", "Song") == "🎵 Artist - Song"

    def test_falls_back_to_song_only(self):
        status = StatusProjector.now_playing_status("A" * 130, "Song")
        assert status == "🎵 Song"
