"""LRC格式和逐字歌词解析器"""

import logging
import math
import re
from enum import Enum
from typing import List, Optional, Any, Tuple, Iterable
from dataclasses import dataclass, field

from lyricsync.core.exceptions import MalformedLyricData


class LyricsProvenance(Enum):
    """歌词来源格式标记"""
    ENHANCED = "enhanced"  # 逐字时间轴
    SYNCED = "synced"  # 逐行时间轴
    PLAIN = "plain"  # 无时间轴纯文本
    NONE = "none"  # 无歌词


@dataclass
class WordToken:
    """逐字歌词中的单个词（时间为歌曲绝对时间，毫秒）"""
    word: str
    start_ms: int
    end_ms: int


@dataclass
class LyricLine:
    """表示带时间戳的单行歌词"""
    time_ms: int  # 行开始时间（毫秒）
    text: str
    words: List[WordToken] = field(default_factory=list)
    confidence: float = 0.0
    is_enhanced: bool = False
    is_plain_fallback: bool = False
    # 同步引擎私有状态，每次加载会话时重置
    has_been_emitted: bool = False


@dataclass(frozen=True)
class LyricSequence:
    """
    歌词序列

    按 time_ms 非递减排序，构造后不可修改。空序列表示"无歌词"。
    """
    lines: Tuple[LyricLine, ...] = ()
    provenance: LyricsProvenance = LyricsProvenance.NONE
    provider: str = ""

    def __len__(self) -> int:
        return len(self.lines)

    def __getitem__(self, index: int) -> LyricLine:
        return self.lines[index]

    def __iter__(self):
        return iter(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def is_plain_fallback(self) -> bool:
        return len(self.lines) == 1 and self.lines[0].is_plain_fallback

    @property
    def enhanced_count(self) -> int:
        return sum(1 for line in self.lines if line.is_enhanced)

    def reset_emission(self) -> None:
        """重置所有行的已发送标记"""
        for line in self.lines:
            line.has_been_emitted = False

    @classmethod
    def empty(cls, provider: str = "") -> "LyricSequence":
        return cls(lines=(), provenance=LyricsProvenance.NONE, provider=provider)


class LyricsParser:
    """
    歌词解析器

    将提供者返回的原始数据（带行内时间戳的文本，或逐字结构化数据）
    转换为统一的有序歌词序列。这是解析器而非校验器：
    格式错误的输入从不抛出异常，只会降级为更短或空的序列。
    """

    def __init__(self):
        """初始化歌词解析器"""
        self.logger = logging.getLogger("lyricsync.lyrics.lyrics_parser")

        # LRC时间戳模式: 严格的 [mm:ss.cc]
        self.timestamp_pattern = re.compile(r'^\[(\d{2}):(\d{2})\.(\d{2})\]\s*(.*)$')

        self.logger.debug("歌词解析器初始化完成")

    def parse_plain_timed(self, text: Optional[str], provider: str = "") -> LyricSequence:
        """
        解析带 [MM:SS.CC] 时间戳的歌词文本

        Args:
            text: LRC格式歌词内容
            provider: 歌词来源名称

        Returns:
            按时间戳稳定排序的歌词序列
        """
        if not text or not isinstance(text, str):
            return LyricSequence.empty(provider)

        lines = []
        for raw_line in text.split('\n'):
            match = self.timestamp_pattern.match(raw_line.rstrip('\r'))
            if not match:
                continue

            minutes, seconds, centiseconds, lyric_text = match.groups()
            lyric_text = lyric_text.strip()
            if not lyric_text:
                continue

            time_ms = (int(minutes) * 60 + int(seconds)) * 1000 + int(centiseconds) * 10
            lines.append(LyricLine(time_ms=time_ms, text=lyric_text))

        # sorted() 是稳定排序，相同时间戳保持原始顺序
        lines = sorted(lines, key=lambda line: line.time_ms)

        self.logger.debug(f"解析了 {len(lines)} 行同步歌词")
        return LyricSequence(
            lines=tuple(lines),
            provenance=LyricsProvenance.SYNCED if lines else LyricsProvenance.NONE,
            provider=provider
        )

    def parse_word_level(self, raw_lines: Any, provider: str = "") -> LyricSequence:
        """
        解析逐字歌词

        每行带有以秒为单位的 ``time``，可选的 ``words`` 数组中
        每个词带有 ``time``/``endTime``（秒）。

        Args:
            raw_lines: 提供者返回的逐字歌词列表
            provider: 歌词来源名称

        Returns:
            歌词序列（所有行 is_enhanced=True）
        """
        if not isinstance(raw_lines, list):
            self._report_malformed(f"逐字歌词不是列表: {type(raw_lines).__name__}")
            return LyricSequence.empty(provider)

        lines = []
        for raw in raw_lines:
            line = self._parse_word_level_line(raw)
            if line is not None:
                lines.append(line)

        lines = sorted(lines, key=lambda line: line.time_ms)

        skipped = len(raw_lines) - len(lines)
        if skipped:
            self.logger.debug(f"跳过了 {skipped} 行格式错误的逐字歌词")

        return LyricSequence(
            lines=tuple(lines),
            provenance=LyricsProvenance.ENHANCED if lines else LyricsProvenance.NONE,
            provider=provider
        )

    def _parse_word_level_line(self, raw: Any) -> Optional[LyricLine]:
        if not isinstance(raw, dict):
            return None

        time_ms = _seconds_to_ms(raw.get('time'))
        if time_ms is None:
            return None

        raw_words = raw.get('words')
        if not isinstance(raw_words, list):
            raw_words = []
        words = [token for token in (self._parse_word(w) for w in raw_words) if token]

        text = raw.get('text')
        if not isinstance(text, str):
            text = " ".join(token.word for token in words)

        confidence = raw.get('confidence')
        if not _is_number(confidence):
            confidence = 0.0

        return LyricLine(
            time_ms=max(0, time_ms),
            text=text.strip(),
            words=words,
            confidence=min(1.0, max(0.0, float(confidence))),
            is_enhanced=True
        )

    def _parse_word(self, raw: Any) -> Optional[WordToken]:
        if not isinstance(raw, dict):
            return None

        word = raw.get('word')
        if not isinstance(word, str) or not word.strip():
            return None

        start_ms = _seconds_to_ms(raw.get('time'))
        if start_ms is None:
            return None

        end_ms = _seconds_to_ms(raw.get('endTime'))
        if end_ms is None:
            end_ms = start_ms
        return WordToken(word=word.strip(), start_ms=start_ms, end_ms=max(start_ms, end_ms))

    def parse_plain_untimed(self, text: Optional[str], provider: str = "") -> LyricSequence:
        """
        将无时间轴的纯文本歌词包装为单行序列

        同步引擎对这种序列只显示一次，不做调度。
        """
        if not text or not isinstance(text, str) or not text.strip():
            return LyricSequence.empty(provider)

        line = LyricLine(time_ms=0, text=text.strip(), is_plain_fallback=True)
        return LyricSequence(lines=(line,), provenance=LyricsProvenance.PLAIN, provider=provider)

    def parse_payload(self, payload: Any, provider: str = "") -> LyricSequence:
        """
        按提供者响应格式分派解析

        支持的响应格式（按优先级）:
        ``enhancedLyrics`` > ``syncedLyrics`` > ``lyrics`` > ``plainLyrics``

        Args:
            payload: 提供者返回的JSON对象
            provider: 歌词来源名称

        Returns:
            歌词序列，四种字段都不存在时返回空序列
        """
        if not isinstance(payload, dict):
            self._report_malformed(f"{provider} 响应不是JSON对象")
            return LyricSequence.empty(provider)

        enhanced = payload.get('enhancedLyrics')
        if enhanced:
            sequence = self.parse_word_level(enhanced, provider)
            if not sequence.is_empty:
                self.logger.info(f"✨ 使用逐字歌词 ({provider})")
                return sequence

        synced = payload.get('syncedLyrics')
        if synced:
            sequence = self.parse_plain_timed(synced, provider)
            if not sequence.is_empty:
                self.logger.info(f"使用同步歌词 ({provider})")
                return sequence

        # lyrics 字段可能是LRC格式，也可能是纯文本
        lyrics = payload.get('lyrics')
        if lyrics and isinstance(lyrics, str):
            sequence = self.parse_plain_timed(lyrics, provider)
            if not sequence.is_empty:
                self.logger.info(f"使用简单歌词格式 ({provider})")
                return sequence
            return self.parse_plain_untimed(lyrics, provider)

        plain = payload.get('plainLyrics')
        if plain:
            self.logger.info(f"使用纯文本歌词，无时间信息 ({provider})")
            return self.parse_plain_untimed(plain, provider)

        return LyricSequence.empty(provider)

    def _report_malformed(self, message: str) -> None:
        self.logger.warning(f"歌词数据格式错误: {MalformedLyricData(message)}")

    @staticmethod
    def format_timestamp(time_ms: int) -> str:
        """
        将毫秒格式化为 [MM:SS.CC] 时间戳（精度10毫秒）

        Args:
            time_ms: 时间（毫秒）

        Returns:
            LRC时间戳字符串
        """
        minutes, remainder = divmod(max(0, int(time_ms)), 60000)
        seconds, millis = divmod(remainder, 1000)
        return f"[{minutes:02d}:{seconds:02d}.{millis // 10:02d}]"

    @staticmethod
    def format_time(seconds: float) -> str:
        """
        将秒数格式化为 M:SS 格式

        Args:
            seconds: 时间（秒）

        Returns:
            格式化的时间字符串
        """
        minutes, secs = divmod(max(0, int(seconds)), 60)
        return f"{minutes}:{secs:02d}"

    def format_lrc(self, lines: Iterable[LyricLine]) -> str:
        """将歌词行重新格式化为LRC文本"""
        return "\n".join(f"{self.format_timestamp(line.time_ms)} {line.text}" for line in lines)


def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _seconds_to_ms(value: Any) -> Optional[int]:
    """秒转换为毫秒；非数值或换算后溢出时返回None"""
    if not _is_number(value):
        return None

    ms = float(value) * 1000
    if not math.isfinite(ms):
        return None
    return int(round(ms))
