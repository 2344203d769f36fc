"""
LyricSync 测试配置

提供测试所需的fixtures和配置
"""

import logging

import pytest

from lyricsync.lyrics.lyrics_parser import LyricLine, LyricSequence, LyricsProvenance, WordToken


@pytest.fixture(autouse=True)
def setup_logging():
    """设置测试日志"""
    # 禁用日志输出以保持测试输出清洁
    logging.getLogger("lyricsync").setLevel(logging.CRITICAL)
    yield
    logging.getLogger("lyricsync").setLevel(logging.DEBUG)


@pytest.fixture
def hello_world_lyrics():
    """两行同步歌词"""
    return LyricSequence(
        lines=(LyricLine(time_ms=0, text="Hello"), LyricLine(time_ms=1000, text="World")),
        provenance=LyricsProvenance.SYNCED,
        provider="test"
    )


@pytest.fixture
def word_level_lyrics():
    """带逐字时间轴的歌词"""
    return LyricSequence(
        lines=(
            LyricLine(
                time_ms=0,
                text="Hi there",
                words=[WordToken("Hi", 0, 500), WordToken("there", 600, 1200)],
                is_enhanced=True
            ),
        ),
        provenance=LyricsProvenance.ENHANCED,
        provider="test"
    )
