"""状态投影器 - 将歌词行渲染为状态文本"""

import re
from enum import Enum
from typing import Dict, List, Optional, Tuple

from lyricsync.lyrics.lyrics_parser import LyricLine, LyricsParser, WordToken


class WordState(Enum):
    """逐字高亮状态"""
    SUNG = "sung"  # 已唱过
    ACTIVE = "active"  # 正在唱
    UPCOMING = "upcoming"  # 未唱到


ANSI_PATTERN = re.compile(r'\x1b\[[0-9;]*m')

PLAIN_STYLES: Dict[WordState, str] = {state: "{word}" for state in WordState}

# 仅用于控制台日志输出
CONSOLE_STYLES: Dict[WordState, str] = {
    WordState.SUNG: "\x1b[36m{word}\x1b[0m",
    WordState.ACTIVE: "\x1b[1m\x1b[33m{word}\x1b[0m",
    WordState.UPCOMING: "\x1b[2m{word}\x1b[0m",
}


class StatusProjector:
    """
    状态投影器

    纯函数式组件，不做任何I/O。投影器输出完整文本，
    128字符的截断由状态客户端统一负责。
    """

    MIN_STATUS_LENGTH = 5
    MAX_STATUS_LENGTH = 80

    def __init__(self, lyric_prefix: str = "🎤 "):
        """
        Args:
            lyric_prefix: 普通同步歌词行发送到状态时的前缀
        """
        self.lyric_prefix = lyric_prefix

    @staticmethod
    def word_state(word: WordToken, elapsed_ms: int) -> WordState:
        """
        计算单个词的高亮状态

        词的时间是歌曲绝对时间，因此直接与已播放时长比较，
        等价于用行内相对时间与行内相对窗口比较。
        """
        if word.start_ms <= elapsed_ms <= word.end_ms:
            return WordState.ACTIVE
        if elapsed_ms > word.end_ms:
            return WordState.SUNG
        return WordState.UPCOMING

    def word_states(self, line: LyricLine, elapsed_ms: int) -> List[Tuple[WordToken, WordState]]:
        return [(word, self.word_state(word, elapsed_ms)) for word in line.words]

    def project(self, line: LyricLine, elapsed_ms: int, styles: Optional[Dict[WordState, str]] = None) -> str:
        """
        将歌词行投影为显示文本

        Args:
            line: 歌词行
            elapsed_ms: 已播放毫秒数
            styles: 各高亮状态的格式模板，默认为纯文本

        Returns:
            完整的显示文本（不截断）
        """
        if not line.words:
            return line.text

        styles = styles or PLAIN_STYLES
        parts = [styles[state].format(word=word.word) for word, state in self.word_states(line, elapsed_ms)]
        return " ".join(parts).strip()

    @staticmethod
    def plain_text(text: str) -> str:
        """去除ANSI格式后的纯文本"""
        return ANSI_PATTERN.sub('', text).strip()

    def is_forwardable(self, text: str) -> bool:
        """
        检查文本是否应发送到状态

        过滤掉过短、过长以及 "[Instrumental]" 之类的注释行。
        """
        clean = self.plain_text(text)
        return (
            self.MIN_STATUS_LENGTH < len(clean) < self.MAX_STATUS_LENGTH
            and '[' not in clean
            and '(' not in clean
        )

    def status_candidate(self, line: LyricLine, elapsed_ms: int) -> Optional[str]:
        """
        生成发送到状态的文本

        Returns:
            状态文本，不满足过滤条件时返回None
        """
        clean = self.plain_text(self.project(line, elapsed_ms))
        if not self.is_forwardable(clean):
            return None

        if line.is_enhanced:
            return clean
        return f"{self.lyric_prefix}{clean}"

    @staticmethod
    def now_playing_status(artist: str, song: str, max_length: int = 128) -> str:
        """正在播放的状态文本，过长时只保留歌名"""
        status = f"🎵 {artist} - {song}"
        if len(status) > max_length:
            status = f"🎵 {song}"
        return status

    def format_console_line(self, line: LyricLine, elapsed_ms: int) -> str:
        """格式化控制台日志中的歌词行"""
        timestamp = LyricsParser.format_time(elapsed_ms // 1000)
        text = self.project(line, elapsed_ms, CONSOLE_STYLES)
        confidence = f" ({round(line.confidence * 100)}%)" if line.confidence else ""
        return f"♪ [{timestamp}] {text}{confidence}"
