"""歌词管理器 - 按优先级查询歌词提供者并缓存结果"""

import logging
from typing import Optional, List, Dict, Any

from lyricsync.core.exceptions import NoLyricsFound, ProviderUnavailable
from lyricsync.core.interfaces import ILyricsProvider
from .lyrics_client import EnhancedLyricsClient, LRCLibClient
from .lyrics_parser import LyricsParser, LyricSequence


class LyricsManager:
    """
    歌词管理器

    按优先级依次尝试歌词提供者，第一个返回非空歌词的提供者即为结果。
    每个提供者只尝试一次，不做重试。所有提供者都失败时抛出 NoLyricsFound。
    包含简单的内存缓存（不跨进程持久化）。
    """

    def __init__(
        self,
        providers: Optional[List[ILyricsProvider]] = None,
        parser: Optional[LyricsParser] = None,
        max_cache_size: int = 100
    ):
        """
        初始化歌词管理器

        Args:
            providers: 按优先级排序的提供者列表，默认为逐字歌词API + LRCLib
            parser: 歌词解析器
            max_cache_size: 最大缓存条目数
        """
        self.logger = logging.getLogger("lyricsync.lyrics.lyrics_manager")

        self.providers = providers if providers is not None else [EnhancedLyricsClient(), LRCLibClient()]
        self.parser = parser or LyricsParser()

        # 歌词缓存 - 只缓存成功结果
        self._lyrics_cache: Dict[str, LyricSequence] = {}
        self.cache_enabled = max_cache_size > 0
        self.max_cache_size = max_cache_size

        self.logger.info(f"歌词管理器初始化完成，提供者: {[p.name for p in self.providers]}")

    async def resolve(self, title: str, artist: str, album: str) -> LyricSequence:
        """
        获取并解析歌曲歌词

        Args:
            title: 歌曲标题
            artist: 艺术家名称
            album: 专辑名称

        Returns:
            非空的歌词序列

        Raises:
            NoLyricsFound: 所有提供者都失败或返回空结果
        """
        cache_key = self._create_cache_key(title, artist, album)
        if self.cache_enabled and cache_key in self._lyrics_cache:
            self.logger.debug(f"从缓存返回歌词: {title}")
            return self._lyrics_cache[cache_key]

        self.logger.info(f"获取歌词: {artist} - {title}")

        errors: Dict[str, str] = {}
        for provider in self.providers:
            try:
                sequence = await self._attempt(provider, title, artist, album)
            except ProviderUnavailable as e:
                self.logger.warning(f"歌词提供者 {provider.name} 失败: {e.reason}")
                errors[provider.name] = e.reason
                continue

            self.logger.info(
                f"✅ 找到 {len(sequence)} 行歌词 "
                f"({sequence.enhanced_count} 行逐字, 来源: {provider.name}, 格式: {sequence.provenance.value})"
            )
            if self.cache_enabled:
                self._cache_lyrics(cache_key, sequence)
            return sequence

        self.logger.error(f"所有歌词提供者都失败: {title} - {errors}")
        raise NoLyricsFound(title, errors)

    async def _attempt(self, provider: ILyricsProvider, title: str, artist: str, album: str) -> LyricSequence:
        """
        尝试单个提供者

        Raises:
            ProviderUnavailable: 获取失败或解析结果为空
        """
        try:
            payload = await provider.fetch(title, artist, album)
        except ProviderUnavailable:
            raise
        except Exception as e:
            # 提供者实现中的意外错误同样视为不可用
            self.logger.error(f"歌词提供者 {provider.name} 出现意外错误: {e}", exc_info=True)
            raise ProviderUnavailable(provider.name, str(e)) from e

        try:
            sequence = self.parser.parse_payload(payload, provider.name)
        except Exception as e:
            self.logger.error(f"解析 {provider.name} 歌词时出错: {e}", exc_info=True)
            raise ProviderUnavailable(provider.name, f"歌词解析失败: {e}") from e

        if sequence.is_empty:
            raise ProviderUnavailable(provider.name, "解析结果为空")
        return sequence

    def _create_cache_key(self, title: str, artist: str, album: str) -> str:
        parts = [part.strip().lower() for part in (title, artist or "", album or "")]
        return "|".join(parts)

    def _cache_lyrics(self, cache_key: str, sequence: LyricSequence) -> None:
        # 简单的FIFO淘汰策略
        if len(self._lyrics_cache) >= self.max_cache_size:
            oldest_key = next(iter(self._lyrics_cache))
            del self._lyrics_cache[oldest_key]
            self.logger.debug(f"从缓存中移除最旧条目: {oldest_key}")

        self._lyrics_cache[cache_key] = sequence

    def clear_cache(self) -> None:
        """清除歌词缓存"""
        self._lyrics_cache.clear()
        self.logger.info("歌词缓存已清除")

    def get_cache_stats(self) -> Dict[str, Any]:
        """
        获取缓存统计信息

        Returns:
            缓存统计字典
        """
        return {
            'cache_size': len(self._lyrics_cache),
            'max_cache_size': self.max_cache_size,
            'cache_enabled': self.cache_enabled,
        }
