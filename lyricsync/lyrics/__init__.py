"""
歌词模块 - 歌词获取、解析功能

提供逐字歌词API和LRCLib的查询回退链，以及LRC/逐字歌词解析。
"""

from .lyrics_client import EnhancedLyricsClient, LRCLibClient
from .lyrics_parser import LyricsParser, LyricLine, LyricSequence, LyricsProvenance, WordToken
from .lyrics_manager import LyricsManager

__all__ = [
    'EnhancedLyricsClient',
    'LRCLibClient',
    'LyricsParser',
    'LyricLine',
    'LyricSequence',
    'LyricsProvenance',
    'WordToken',
    'LyricsManager'
]
